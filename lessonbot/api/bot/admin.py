"""
Admin handlers: content ingestion through forwards, plus direct edits.

Every handler here sits behind `AdminFilter`; non-admins fall through to
the other routers and never reach the ingestion machine. Admin messages
are only taken from private chats.
"""

from __future__ import annotations

from aiogram import F, Router
from aiogram.enums import ChatType
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.models import ORD_MAX
from ...db.repositories import LessonRepository, LinkRepository, NewsRepository
from ...exceptions import ValidationError
from ...services.ingestion import AwaitingLessonMeta, IngestionMachine, parse_lesson_meta
from ...services.types import parse_section
from .keyboards import build_admin_keyboard
from .utils import (
    LOGGER,
    AdminFilter,
    describe_pending,
    escape_markdown,
    inbound_from_message,
    parse_add_lesson_args,
    parse_link_args,
    parse_positive_int,
    render_step,
    safe_answer,
    safe_edit_text,
)

router = Router(name="admin")
router.message.filter(F.chat.type == ChatType.PRIVATE, AdminFilter())
router.callback_query.filter(AdminFilter())

ADMIN_PANEL_TEXT = "*Admin panel*\n\n"


def _panel_text(ingestion: IngestionMachine, admin_id: int) -> str:
    return ADMIN_PANEL_TEXT + escape_markdown(describe_pending(ingestion.pending(admin_id)))


# -----------------------------------------------------------------------------
# Ingestion Commands
# -----------------------------------------------------------------------------


@router.message(Command("admin"))
async def cmd_admin(message: Message, ingestion: IngestionMachine) -> None:
    """Show the admin panel with the current pending action."""
    if not message.from_user:
        return
    admin_id = message.from_user.id
    await message.answer(
        _panel_text(ingestion, admin_id),
        reply_markup=build_admin_keyboard(has_pending=ingestion.pending(admin_id) is not None),
        parse_mode="MarkdownV2",
    )


@router.message(Command("add_lesson"))
async def cmd_add_lesson(message: Message, command: CommandObject, ingestion: IngestionMachine) -> None:
    """/add_lesson <section> [<ord> | <title>]"""
    if not message.from_user:
        return
    try:
        section, meta = parse_add_lesson_args(command.args)
    except ValidationError as exc:
        await message.answer(escape_markdown(exc.message), parse_mode="MarkdownV2")
        return

    result = await ingestion.start_lesson(message.from_user.id, section, meta)
    await message.answer(render_step(result), parse_mode="MarkdownV2")


@router.message(Command("add_news"))
async def cmd_add_news(message: Message, ingestion: IngestionMachine) -> None:
    if not message.from_user:
        return
    result = await ingestion.start_news(message.from_user.id)
    await message.answer(render_step(result), parse_mode="MarkdownV2")


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, ingestion: IngestionMachine) -> None:
    if not message.from_user:
        return
    result = await ingestion.cancel(message.from_user.id)
    await message.answer(render_step(result), parse_mode="MarkdownV2")


@router.message(Command("pending"))
async def cmd_pending(message: Message, ingestion: IngestionMachine) -> None:
    if not message.from_user:
        return
    text = describe_pending(ingestion.pending(message.from_user.id))
    await message.answer(escape_markdown(text), parse_mode="MarkdownV2")


# -----------------------------------------------------------------------------
# Direct Edits
# -----------------------------------------------------------------------------


@router.message(Command("del_lesson"))
async def cmd_del_lesson(message: Message, command: CommandObject, session: AsyncSession) -> None:
    """/del_lesson <section> <ord>"""
    parts = (command.args or "").split()
    try:
        if len(parts) != 2:
            raise ValidationError("Usage: /del_lesson <prep|steam> <ord>")
        section = parse_section(parts[0])
        ord = parse_positive_int(parts[1], "ord", maximum=ORD_MAX)
    except ValidationError as exc:
        await message.answer(escape_markdown(exc.message), parse_mode="MarkdownV2")
        return

    deleted = await LessonRepository(session).delete(section, ord)
    text = f"Deleted lesson {section.value} #{ord}." if deleted else f"No lesson at {section.value} #{ord}."
    await message.answer(escape_markdown(text), parse_mode="MarkdownV2")


@router.message(Command("add_link"))
async def cmd_add_link(message: Message, command: CommandObject, session: AsyncSession) -> None:
    """/add_link <title> | <url> [| <ord>]"""
    try:
        title, url, ord = parse_link_args(command.args)
    except ValidationError as exc:
        await message.answer(escape_markdown(exc.message), parse_mode="MarkdownV2")
        return

    link = await LinkRepository(session).add(title, url, ord)
    LOGGER.info("Link %d added: %s", link.id, url)
    await message.answer(escape_markdown(f"Added link {link.id}: {title}"), parse_mode="MarkdownV2")


@router.message(Command("del_link"))
async def cmd_del_link(message: Message, command: CommandObject, session: AsyncSession) -> None:
    try:
        link_id = parse_positive_int(command.args, "id")
    except ValidationError as exc:
        await message.answer(escape_markdown(exc.message), parse_mode="MarkdownV2")
        return

    deleted = await LinkRepository(session).delete(link_id)
    text = f"Deleted link {link_id}." if deleted else f"Link {link_id} not found."
    await message.answer(escape_markdown(text), parse_mode="MarkdownV2")


@router.message(Command("del_news"))
async def cmd_del_news(message: Message, command: CommandObject, session: AsyncSession) -> None:
    try:
        message_id = parse_positive_int(command.args, "message_id")
    except ValidationError as exc:
        await message.answer(escape_markdown(exc.message), parse_mode="MarkdownV2")
        return

    deleted = await NewsRepository(session).delete(message_id)
    text = f"Deleted news {message_id}." if deleted else f"News {message_id} not found."
    await message.answer(escape_markdown(text), parse_mode="MarkdownV2")


# -----------------------------------------------------------------------------
# Admin Panel Callbacks
# -----------------------------------------------------------------------------


@router.callback_query(F.data == "admin:panel")
async def callback_panel(callback: CallbackQuery, ingestion: IngestionMachine) -> None:
    if not callback.message or not callback.from_user:
        return
    await safe_answer(callback)
    admin_id = callback.from_user.id
    await safe_edit_text(
        callback.message,
        _panel_text(ingestion, admin_id),
        reply_markup=build_admin_keyboard(has_pending=ingestion.pending(admin_id) is not None),
    )


@router.callback_query(F.data.startswith("admin:add:"))
async def callback_add(callback: CallbackQuery, ingestion: IngestionMachine) -> None:
    """admin:add:<prep|steam|news> starts the matching ingestion."""
    if not callback.message or not callback.from_user or not callback.data:
        return
    target = callback.data.split(":", 2)[2]
    admin_id = callback.from_user.id

    if target == "news":
        result = await ingestion.start_news(admin_id)
    else:
        try:
            section = parse_section(target)
        except ValidationError:
            await safe_answer(callback, "Unknown section")
            return
        result = await ingestion.start_lesson(admin_id, section)

    await safe_answer(callback)
    await callback.message.answer(render_step(result), parse_mode="MarkdownV2")


@router.callback_query(F.data == "admin:cancel")
async def callback_cancel(callback: CallbackQuery, ingestion: IngestionMachine) -> None:
    if not callback.message or not callback.from_user:
        return
    result = await ingestion.cancel(callback.from_user.id)
    await safe_answer(callback, "Cancelled" if result.pending else "Nothing to cancel")
    await safe_edit_text(
        callback.message,
        _panel_text(ingestion, callback.from_user.id),
        reply_markup=build_admin_keyboard(has_pending=False),
    )


# -----------------------------------------------------------------------------
# Pending Action Input
# -----------------------------------------------------------------------------


@router.message()
async def handle_admin_input(
    message: Message,
    session: AsyncSession,
    ingestion: IngestionMachine,
) -> None:
    """
    Feed an admin message to the pending action.

    Awaiting "<ord> | <title>": the text is parsed as lesson meta.
    Awaiting a forward: the message's forward origin is checked and, when it
    is a post of the course channel, the lesson or news item is saved.
    """
    if not message.from_user:
        return
    admin_id = message.from_user.id
    action = ingestion.pending(admin_id)
    if action is None:
        return

    if isinstance(action, AwaitingLessonMeta):
        try:
            meta = parse_lesson_meta(message.text)
        except ValidationError as exc:
            await message.answer(
                escape_markdown(f"{exc.message}. Example: 3 | Intro to Robotics. /cancel to stop."),
                parse_mode="MarkdownV2",
            )
            return
        result = await ingestion.provide_meta(admin_id, meta)
    else:
        result = await ingestion.provide_forward(admin_id, inbound_from_message(message), session)

    await message.answer(render_step(result), parse_mode="MarkdownV2")


__all__ = ["router"]
