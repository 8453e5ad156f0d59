"""
Helper functions for the Telegram bot.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message, MessageOriginChannel

from ...db.models import ID_MAX, ORD_MAX, Section
from ...exceptions import ValidationError
from ...services.guards import AdminGuard
from ...services.ingestion import (
    AwaitingLessonForward,
    AwaitingLessonMeta,
    AwaitingNewsForward,
    ChannelForward,
    InboundMessage,
    LessonMeta,
    PendingAction,
    PlainMessage,
    StepResult,
    StepStatus,
    parse_lesson_meta,
)
from ...services.types import parse_section
from .constants import BUTTON_TITLE_MAX, SECTION_TITLES

if TYPE_CHECKING:
    from aiogram.types import InlineKeyboardMarkup

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AdminFilter(BaseFilter):
    """Pass only events from users on the admin allow-list."""

    async def __call__(self, event: Message | CallbackQuery, admin_guard: AdminGuard) -> bool:
        user = event.from_user
        return admin_guard.is_admin(user.id if user else None)


# -----------------------------------------------------------------------------
# Input adapters
# -----------------------------------------------------------------------------


def inbound_from_message(message: Message) -> InboundMessage:
    """Classify a chat message by forward provenance."""
    origin = message.forward_origin
    if isinstance(origin, MessageOriginChannel):
        return ChannelForward(
            chat_id=origin.chat.id,
            message_id=origin.message_id,
            chat_username=origin.chat.username,
        )
    return PlainMessage(text=message.text or message.caption)


def parse_add_lesson_args(args: str | None) -> tuple[Section, LessonMeta | None]:
    """
    Parse "/add_lesson <section> [<ord> | <title>]" arguments.

    Raises:
        ValidationError: unknown section or malformed ord/title.
    """
    if not args or not args.strip():
        raise ValidationError("Usage: /add_lesson <prep|steam> [<ord> | <title>]")
    head, _, rest = args.strip().partition(" ")
    section = parse_section(head)
    if not rest.strip():
        return section, None
    return section, parse_lesson_meta(rest)


def parse_link_args(args: str | None) -> tuple[str, str, int]:
    """Parse "<title> | <url> [| <ord>]"."""
    parts = [part.strip() for part in (args or "").split("|")]
    if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
        raise ValidationError("Usage: /add_link <title> | <url> [| <ord>]")
    ord = 0
    if len(parts) == 3 and parts[2]:
        try:
            ord = int(parts[2])
        except ValueError:
            raise ValidationError("Link ord must be an integer") from None
        if abs(ord) > ORD_MAX:
            raise ValidationError(f"Link ord must be between -{ORD_MAX} and {ORD_MAX}")
    return parts[0], parts[1], ord


def parse_positive_int(value: str | None, name: str, maximum: int = ID_MAX) -> int:
    """Parse a command argument as an integer from 1 to `maximum`."""
    try:
        number = int((value or "").strip())
    except ValueError:
        raise ValidationError(f"{name} must be a positive integer") from None
    if not 0 < number <= maximum:
        raise ValidationError(f"{name} must be an integer from 1 to {maximum}")
    return number


# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------


def paginate(items: Sequence[T], page: int, page_size: int) -> tuple[list[T], int, int]:
    """Return (items on page, clamped page, total pages); always at least one page."""
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(page, 0), total_pages - 1)
    start = page * page_size
    return list(items[start : start + page_size]), page, total_pages


def shorten(text: str, limit: int = BUTTON_TITLE_MAX) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def describe_pending(action: PendingAction | None) -> str:
    """Plain-text description of a pending action."""
    if action is None:
        return "Nothing pending."
    if isinstance(action, AwaitingLessonMeta):
        return (
            f"Adding a lesson to {SECTION_TITLES[action.section]}. "
            "Send: <ord> | <title>"
        )
    if isinstance(action, AwaitingLessonForward):
        return (
            f"Adding lesson #{action.ord} \"{action.title}\" to "
            f"{SECTION_TITLES[action.section]}. Forward the channel post."
        )
    if isinstance(action, AwaitingNewsForward):
        return "Adding news. Forward the channel post."
    return "Unknown pending action."


def render_step(result: StepResult) -> str:
    """MarkdownV2 reply for the outcome of an ingestion step."""
    pending = result.pending
    if result.status in (StepStatus.AWAITING_META, StepStatus.AWAITING_FORWARD):
        return escape_markdown(describe_pending(pending))
    if result.status == StepStatus.NOT_FORWARDED:
        return escape_markdown(
            "That is not a forwarded channel post. Use Telegram's Forward on the "
            "original post in the channel (a copy or a re-sent message will not work). "
            "/cancel to stop."
        )
    if result.status == StepStatus.CHANNEL_MISMATCH:
        return escape_markdown(
            "This post was forwarded from a different channel. Forward a post from "
            "the course channel. /cancel to stop."
        )
    if result.status == StepStatus.NO_PENDING:
        return escape_markdown("Nothing pending. Use /admin to start.")
    if result.status == StepStatus.CANCELLED:
        if pending is None:
            return escape_markdown("Nothing to cancel.")
        return escape_markdown("Cancelled.")
    if result.status == StepStatus.FAILED:
        return escape_markdown(f"Could not save: {result.detail}. Start again with /admin.")
    if result.status == StepStatus.DUPLICATE:
        return escape_markdown(f"News post {result.message_id} is already filed.") + _link_line(result)
    if result.status == StepStatus.COMMITTED:
        if isinstance(pending, AwaitingLessonForward):
            text = (
                f"Saved lesson #{pending.ord} \"{pending.title}\" in "
                f"{SECTION_TITLES[pending.section]}."
            )
        else:
            text = f"Saved news post {result.message_id}."
        return "✅ " + escape_markdown(text) + _link_line(result)
    return ""


def _link_line(result: StepResult) -> str:
    if not result.post_url:
        return ""
    return "\n" + escape_markdown(result.post_url)


def escape_markdown(text: str) -> str:
    """Escape markdown special characters."""
    special_chars = [
        "\\",
        "_",
        "*",
        "[",
        "]",
        "(",
        ")",
        "~",
        "`",
        ">",
        "<",
        "#",
        "+",
        "-",
        "=",
        "|",
        "{",
        "}",
        ".",
        "!",
    ]
    for char in special_chars:
        text = text.replace(char, f"\\{char}")
    return text


async def safe_answer(callback: CallbackQuery, text: str | None = None) -> None:
    """Answer a callback query; an expired query is only logged."""
    try:
        await callback.answer(text)
    except TelegramBadRequest as e:
        LOGGER.debug("Callback answer failed: %s", e)


async def safe_edit_text(
    message: Any,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str | None = "MarkdownV2",
) -> None:
    """
    Edit message text, suppressing 'message is not modified' errors.

    This error occurs when trying to edit a message with identical content,
    which is common when users click the same button twice.
    """
    try:
        await message.edit_text(
            text,
            reply_markup=reply_markup,
            parse_mode=parse_mode,
            disable_web_page_preview=True,
        )
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e):
            raise


__all__ = [
    "AdminFilter",
    "LOGGER",
    "describe_pending",
    "escape_markdown",
    "inbound_from_message",
    "paginate",
    "parse_add_lesson_args",
    "parse_link_args",
    "parse_positive_int",
    "render_step",
    "safe_answer",
    "safe_edit_text",
    "shorten",
]
