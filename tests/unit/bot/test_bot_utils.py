"""
Tests for bot helpers: forward classification, argument parsing, formatting and keyboards.
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from aiogram.types import Chat, Message, MessageOriginChannel, MessageOriginUser, User

from lessonbot.api.bot.keyboards import build_lessons_keyboard, build_main_menu_keyboard, webapp_url
from lessonbot.api.bot.utils import (
    AdminFilter,
    escape_markdown,
    inbound_from_message,
    paginate,
    parse_add_lesson_args,
    parse_link_args,
    parse_positive_int,
    render_step,
)
from lessonbot.config import Settings
from lessonbot.db.models import ORD_MAX, Section
from lessonbot.exceptions import ValidationError
from lessonbot.services.guards import AdminGuard
from lessonbot.services.ingestion import (
    AwaitingLessonForward,
    ChannelForward,
    LessonMeta,
    PlainMessage,
    StepResult,
    StepStatus,
)
from lessonbot.services.types import LessonView
from tests.conftest import ADMIN_ID, CHANNEL_ID, CHANNEL_USERNAME, USER_ID

NOW = datetime(2026, 1, 1, tzinfo=UTC)
ADMIN = User(id=ADMIN_ID, is_bot=False, first_name="Admin")
PRIVATE_CHAT = Chat(id=ADMIN_ID, type="private")


def _message(**kwargs: object) -> Message:
    return Message(message_id=1, date=NOW, chat=PRIVATE_CHAT, from_user=ADMIN, **kwargs)


class TestInboundFromMessage:
    def test_channel_forward(self) -> None:
        origin = MessageOriginChannel(
            type="channel",
            date=NOW,
            chat=Chat(id=CHANNEL_ID, type="channel", username=CHANNEL_USERNAME),
            message_id=777,
        )

        inbound = inbound_from_message(_message(forward_origin=origin, text="Lesson body"))

        assert inbound == ChannelForward(
            chat_id=CHANNEL_ID, message_id=777, chat_username=CHANNEL_USERNAME
        )

    def test_forward_from_user_is_plain(self) -> None:
        origin = MessageOriginUser(type="user", date=NOW, sender_user=ADMIN)

        inbound = inbound_from_message(_message(forward_origin=origin, text="hi"))

        assert inbound == PlainMessage(text="hi")

    def test_typed_text_is_plain(self) -> None:
        assert inbound_from_message(_message(text="3 | Intro")) == PlainMessage(text="3 | Intro")

    def test_caption_is_used_without_text(self) -> None:
        assert inbound_from_message(_message(caption="photo")) == PlainMessage(text="photo")


class TestArgumentParsing:
    def test_add_lesson_section_only(self) -> None:
        assert parse_add_lesson_args("steam") == (Section.STEAM, None)

    def test_add_lesson_with_meta(self) -> None:
        assert parse_add_lesson_args("steam 3 | Intro to Robotics") == (
            Section.STEAM,
            LessonMeta(3, "Intro to Robotics"),
        )

    @pytest.mark.parametrize(
        "args", [None, "", "art", "prep 3 Intro", "prep 0 | Intro", "prep 2147483648 | Big"]
    )
    def test_add_lesson_rejects_bad_input(self, args: str | None) -> None:
        with pytest.raises(ValidationError):
            parse_add_lesson_args(args)

    def test_link_args(self) -> None:
        assert parse_link_args("Docs | https://example.com") == ("Docs", "https://example.com", 0)
        assert parse_link_args("Docs | https://example.com | 5") == (
            "Docs",
            "https://example.com",
            5,
        )

    @pytest.mark.parametrize(
        "args",
        [None, "Docs", "Docs |", "Docs | url | x", "a | b | 1 | 2", "a | b | 2147483648"],
    )
    def test_link_args_reject_bad_input(self, args: str | None) -> None:
        with pytest.raises(ValidationError):
            parse_link_args(args)

    def test_positive_int(self) -> None:
        assert parse_positive_int(" 12 ", "id") == 12
        with pytest.raises(ValidationError, match="id must be"):
            parse_positive_int("0", "id")
        with pytest.raises(ValidationError):
            parse_positive_int(None, "id")
        with pytest.raises(ValidationError):
            parse_positive_int("18446744073709551616", "message_id")
        assert parse_positive_int(str(ORD_MAX), "ord", maximum=ORD_MAX) == ORD_MAX
        with pytest.raises(ValidationError, match="ord must be"):
            parse_positive_int(str(ORD_MAX + 1), "ord", maximum=ORD_MAX)


class TestFormatting:
    def test_paginate_clamps_page(self) -> None:
        items = list(range(20))

        assert paginate(items, 0, 8) == (list(range(8)), 0, 3)
        assert paginate(items, 2, 8) == ([16, 17, 18, 19], 2, 3)
        assert paginate(items, 9, 8)[1] == 2
        assert paginate([], 3, 8) == ([], 0, 1)

    def test_escape_markdown(self) -> None:
        assert escape_markdown("1. Intro (part #2)!") == "1\\. Intro \\(part \\#2\\)\\!"

    def test_render_committed_lesson(self) -> None:
        result = StepResult(
            StepStatus.COMMITTED,
            pending=AwaitingLessonForward(Section.STEAM, 3, "Intro to Robotics"),
            message_id=777,
            post_url="https://t.me/robo_channel/777",
        )

        text = render_step(result)

        assert "Intro to Robotics" in text
        assert "STEAM course" in text
        assert "https://t\\.me/robo\\_channel/777" in text

    def test_render_not_forwarded_mentions_forward(self) -> None:
        text = render_step(StepResult(StepStatus.NOT_FORWARDED))

        assert "Forward" in text


class TestKeyboards:
    def test_webapp_url_replaces_fragment(self) -> None:
        assert webapp_url("https://app.example/#news", "prep") == "https://app.example/#prep"

    def test_main_menu_with_web_app(self, settings: Settings) -> None:
        keyboard = build_main_menu_keyboard(settings, is_admin=False)

        web_apps = [
            button.web_app.url
            for row in keyboard.inline_keyboard
            for button in row
            if button.web_app
        ]
        callbacks = [
            button.callback_data
            for row in keyboard.inline_keyboard
            for button in row
            if button.callback_data
        ]
        assert web_apps[0] == settings.telegram.web_app_url
        assert web_apps[1].endswith("#prep")
        assert web_apps[2].endswith("#steam")
        assert "admin:panel" not in callbacks
        assert "lessons:steam:0" in callbacks

    def test_main_menu_admin_button(self, settings: Settings) -> None:
        keyboard = build_main_menu_keyboard(settings, is_admin=True)

        assert keyboard.inline_keyboard[-1][0].callback_data == "admin:panel"

    def test_lessons_keyboard_pagination(self) -> None:
        lessons = [
            LessonView(Section.PREP, ord, f"Lesson {ord}", 100 + ord, None) for ord in range(9, 17)
        ]

        keyboard = build_lessons_keyboard(Section.PREP, lessons, page=1, total_pages=3)

        nav = keyboard.inline_keyboard[-2]
        assert [button.callback_data for button in nav] == ["lessons:prep:0", "noop", "lessons:prep:2"]
        assert keyboard.inline_keyboard[0][0].callback_data == "lesson:prep:9"


class TestAdminFilter:
    @pytest.mark.asyncio
    async def test_allows_admins_only(self) -> None:
        guard = AdminGuard([ADMIN_ID])
        admin_event = MagicMock(from_user=MagicMock(id=ADMIN_ID))
        user_event = MagicMock(from_user=MagicMock(id=USER_ID))
        anonymous_event = MagicMock(from_user=None)

        assert await AdminFilter()(admin_event, admin_guard=guard) is True
        assert await AdminFilter()(user_event, admin_guard=guard) is False
        assert await AdminFilter()(anonymous_event, admin_guard=guard) is False
