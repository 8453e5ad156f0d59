"""
Admin content ingestion: a two-step "declare, then forward" workflow.

An admin first says what to add (a lesson slot or a news item), then forwards
the channel post that holds the content. Nothing is written until the forward
is verified as a genuine forward from the configured channel.

Each admin has exactly one pending slot; starting a new action replaces the
old one. Pending actions never expire, only an explicit cancel clears them.
Text parsing stays in the chat adapter: the machine works on `LessonMeta`
and on provenance objects (`PlainMessage` / `ChannelForward`).
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import ORD_MAX, Section
from ..db.repositories import LessonRepository, NewsRepository
from ..exceptions import StoreConstraintError, ValidationError
from .content import build_post_url
from .guards import AdminGuard

LOGGER = logging.getLogger(__name__)

_LESSON_META_RE = re.compile(r"^\s*(\d+)\s*\|\s*(.*?)\s*$", re.DOTALL)


# -----------------------------------------------------------------------------
# Pending actions
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class AwaitingLessonMeta:
    """Admin asked to add a lesson but has not sent "<ord> | <title>" yet."""

    section: Section


@dataclass(frozen=True)
class AwaitingLessonForward:
    """Slot and title captured; waiting for the channel forward."""

    section: Section
    ord: int
    title: str


@dataclass(frozen=True)
class AwaitingNewsForward:
    """Waiting for a channel forward to file as news."""


PendingAction = Union[AwaitingLessonMeta, AwaitingLessonForward, AwaitingNewsForward]


# -----------------------------------------------------------------------------
# Inbound messages
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class PlainMessage:
    """Anything that is not a forward from a channel: typed text, a copy, a user forward."""

    text: str | None = None


@dataclass(frozen=True)
class ChannelForward:
    """Forward of a channel post, with the source channel and original post id."""

    chat_id: int
    message_id: int
    chat_username: str | None = None


InboundMessage = Union[PlainMessage, ChannelForward]


@dataclass(frozen=True)
class LessonMeta:
    """Validated slot and title for a lesson."""

    ord: int
    title: str

    def __post_init__(self) -> None:
        if not 0 < self.ord <= ORD_MAX:
            raise ValidationError(
                f"ord must be an integer from 1 to {ORD_MAX}", context={"ord": self.ord}
            )
        if not self.title.strip():
            raise ValidationError("title must not be empty")


def parse_lesson_meta(text: str | None) -> LessonMeta:
    """
    Parse "<ord> | <title>".

    Raises:
        ValidationError: if ord is out of range or the title is blank.
    """
    match = _LESSON_META_RE.match(text or "")
    if match is None:
        raise ValidationError("Expected format: <ord> | <title>", context={"text": text})
    return LessonMeta(ord=int(match.group(1)), title=match.group(2).strip())


def has_news_tag(text: str | None, tag: str) -> bool:
    """True when `tag` appears in the post text (case-insensitive)."""
    if not tag or not text:
        return False
    return tag.lower() in text.lower()


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------


class PendingActionRegistry:
    """
    Owner of every admin's pending action.

    One slot and one lock per admin id; different admins never share an entry.
    """

    def __init__(self) -> None:
        self._actions: dict[int, PendingAction] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, admin_id: int) -> PendingAction | None:
        return self._actions.get(admin_id)

    def set(self, admin_id: int, action: PendingAction) -> PendingAction | None:
        """Store `action`, returning the one it replaced."""
        previous = self._actions.get(admin_id)
        self._actions[admin_id] = action
        return previous

    def clear(self, admin_id: int) -> PendingAction | None:
        return self._actions.pop(admin_id, None)

    def lock(self, admin_id: int) -> asyncio.Lock:
        """Lock that serializes the steps of one admin."""
        lock = self._locks.get(admin_id)
        if lock is None:
            lock = self._locks[admin_id] = asyncio.Lock()
        return lock

    def __contains__(self, admin_id: object) -> bool:
        return admin_id in self._actions

    def __len__(self) -> int:
        return len(self._actions)


# -----------------------------------------------------------------------------
# State machine
# -----------------------------------------------------------------------------


class StepStatus(str, Enum):
    """Outcome of one ingestion step."""

    IGNORED = "ignored"
    AWAITING_META = "awaiting_meta"
    AWAITING_FORWARD = "awaiting_forward"
    NO_PENDING = "no_pending"
    NOT_FORWARDED = "not_forwarded"
    CHANNEL_MISMATCH = "channel_mismatch"
    COMMITTED = "committed"
    DUPLICATE = "duplicate"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    status: StepStatus
    pending: PendingAction | None = None
    message_id: int | None = None
    post_url: str | None = None
    detail: str = ""

    @property
    def done(self) -> bool:
        """True once the write happened (or the news id was already filed)."""
        return self.status in (StepStatus.COMMITTED, StepStatus.DUPLICATE)


def _awaiting(action: PendingAction | None) -> StepResult:
    if action is None:
        return StepResult(StepStatus.NO_PENDING)
    if isinstance(action, AwaitingLessonMeta):
        return StepResult(StepStatus.AWAITING_META, pending=action)
    return StepResult(StepStatus.AWAITING_FORWARD, pending=action)


class IngestionMachine:
    """
    Drives each admin through declare -> (meta) -> forward -> write.

    Every entry point checks the admin guard before touching any state, so
    non-admin senders are always answered with IGNORED.
    """

    def __init__(
        self,
        registry: PendingActionRegistry,
        admin_guard: AdminGuard,
        *,
        channel_username: str = "",
        channel_id: int | None = None,
    ) -> None:
        self._registry = registry
        self._guard = admin_guard
        self._channel_username = channel_username.strip().lstrip("@")
        self._channel_id = channel_id

    @property
    def registry(self) -> PendingActionRegistry:
        return self._registry

    def is_admin(self, user_id: int | None) -> bool:
        return self._guard.is_admin(user_id)

    def pending(self, admin_id: int) -> PendingAction | None:
        if not self._guard.is_admin(admin_id):
            return None
        return self._registry.get(admin_id)

    def forward_matches_channel(self, chat_id: int, chat_username: str | None) -> bool:
        """
        Check the forward source against the configured channel.

        The numeric id wins when configured; otherwise the username is compared
        case-insensitively. With neither configured any channel is accepted.
        """
        if self._channel_id is not None:
            return chat_id == self._channel_id
        if self._channel_username:
            return (chat_username or "").lower() == self._channel_username.lower()
        return True

    async def start_lesson(
        self,
        admin_id: int,
        section: Section,
        meta: LessonMeta | None = None,
    ) -> StepResult:
        """Begin adding a lesson; with inline meta skip straight to the forward step."""
        if not self._guard.is_admin(admin_id):
            return StepResult(StepStatus.IGNORED)

        action: PendingAction
        if meta is None:
            action = AwaitingLessonMeta(section=Section(section))
        else:
            action = AwaitingLessonForward(section=Section(section), ord=meta.ord, title=meta.title)

        async with self._registry.lock(admin_id):
            replaced = self._registry.set(admin_id, action)
        if replaced is not None:
            LOGGER.info("Admin %d replaced pending action %r", admin_id, replaced)
        return _awaiting(action)

    async def start_news(self, admin_id: int) -> StepResult:
        if not self._guard.is_admin(admin_id):
            return StepResult(StepStatus.IGNORED)

        action = AwaitingNewsForward()
        async with self._registry.lock(admin_id):
            replaced = self._registry.set(admin_id, action)
        if replaced is not None:
            LOGGER.info("Admin %d replaced pending action %r", admin_id, replaced)
        return _awaiting(action)

    async def provide_meta(self, admin_id: int, meta: LessonMeta) -> StepResult:
        """Attach ord/title to a lesson waiting for them. Other states are left as is."""
        if not self._guard.is_admin(admin_id):
            return StepResult(StepStatus.IGNORED)

        async with self._registry.lock(admin_id):
            action = self._registry.get(admin_id)
            if not isinstance(action, AwaitingLessonMeta):
                return _awaiting(action)
            next_action = AwaitingLessonForward(
                section=action.section, ord=meta.ord, title=meta.title
            )
            self._registry.set(admin_id, next_action)
        return _awaiting(next_action)

    async def provide_forward(
        self,
        admin_id: int,
        inbound: InboundMessage,
        session: AsyncSession,
    ) -> StepResult:
        """
        Verify a forward and, when it checks out, write it to the store.

        A plain message or a forward from another channel leaves the pending
        action in place. A verified forward consumes the action and issues
        exactly one write, committed before the result is returned. A store
        failure rolls the session back and is reported as FAILED, not retried.
        """
        if not self._guard.is_admin(admin_id):
            return StepResult(StepStatus.IGNORED)

        async with self._registry.lock(admin_id):
            action = self._registry.get(admin_id)
            if not isinstance(action, (AwaitingLessonForward, AwaitingNewsForward)):
                return _awaiting(action)

            if not isinstance(inbound, ChannelForward):
                return StepResult(
                    StepStatus.NOT_FORWARDED,
                    pending=action,
                    detail="Forward the original channel post, not a copy.",
                )

            if not self.forward_matches_channel(inbound.chat_id, inbound.chat_username):
                LOGGER.warning(
                    "Admin %d forwarded from chat %s (@%s), expected @%s / %s",
                    admin_id,
                    inbound.chat_id,
                    inbound.chat_username,
                    self._channel_username,
                    self._channel_id,
                )
                return StepResult(
                    StepStatus.CHANNEL_MISMATCH,
                    pending=action,
                    detail="This post comes from a different channel.",
                )

            self._registry.clear(admin_id)
            post_url = build_post_url(
                self._channel_username or inbound.chat_username, inbound.message_id
            )

            # A COMMITTED or DUPLICATE result means the row is already durable.
            try:
                if isinstance(action, AwaitingLessonForward):
                    await LessonRepository(session).upsert(
                        action.section, action.ord, action.title, inbound.message_id
                    )
                    status = StepStatus.COMMITTED
                else:
                    created = await NewsRepository(session).add_if_absent(inbound.message_id)
                    status = StepStatus.COMMITTED if created else StepStatus.DUPLICATE
                await session.commit()
            except (StoreConstraintError, SQLAlchemyError, OverflowError) as exc:
                await session.rollback()
                LOGGER.error("Admin %d ingestion failed: %s", admin_id, exc)
                return StepResult(StepStatus.FAILED, message_id=inbound.message_id, detail=str(exc))

            if isinstance(action, AwaitingLessonForward):
                LOGGER.info(
                    "Admin %d filed lesson %s #%d from post %d",
                    admin_id,
                    action.section.value,
                    action.ord,
                    inbound.message_id,
                )
            else:
                LOGGER.info(
                    "Admin %d filed news post %d (%s)", admin_id, inbound.message_id, status.value
                )

        return StepResult(
            status,
            pending=action,
            message_id=inbound.message_id,
            post_url=post_url,
        )

    async def cancel(self, admin_id: int) -> StepResult:
        """Drop whatever the admin had pending."""
        if not self._guard.is_admin(admin_id):
            return StepResult(StepStatus.IGNORED)

        async with self._registry.lock(admin_id):
            cleared = self._registry.clear(admin_id)
        return StepResult(StepStatus.CANCELLED, pending=cleared)


__all__ = [
    "AwaitingLessonForward",
    "AwaitingLessonMeta",
    "AwaitingNewsForward",
    "ChannelForward",
    "InboundMessage",
    "IngestionMachine",
    "LessonMeta",
    "PendingAction",
    "PendingActionRegistry",
    "PlainMessage",
    "StepResult",
    "StepStatus",
    "has_news_tag",
    "parse_lesson_meta",
]
