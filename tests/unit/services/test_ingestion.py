"""
Tests for the admin ingestion machine: declare, give slot and title, forward, write.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy import text as sql_text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lessonbot.db.models import ORD_MAX, Lesson, NewsItem, Section
from lessonbot.db.repositories import LessonRepository, NewsRepository
from lessonbot.exceptions import ValidationError
from lessonbot.services.ingestion import (
    AwaitingLessonForward,
    AwaitingLessonMeta,
    AwaitingNewsForward,
    ChannelForward,
    IngestionMachine,
    LessonMeta,
    PendingActionRegistry,
    PlainMessage,
    StepStatus,
    has_news_tag,
    parse_lesson_meta,
)
from lessonbot.services.guards import AdminGuard
from tests.conftest import ADMIN_ID, CHANNEL_ID, CHANNEL_USERNAME, SECOND_ADMIN_ID, USER_ID


def _forward(
    message_id: int,
    chat_id: int = CHANNEL_ID,
    username: str | None = CHANNEL_USERNAME,
) -> ChannelForward:
    return ChannelForward(chat_id=chat_id, message_id=message_id, chat_username=username)


async def _lesson_count(session: AsyncSession) -> int:
    return await session.scalar(select(func.count()).select_from(Lesson)) or 0


class TestParseLessonMeta:
    def test_parses_ord_and_title(self) -> None:
        meta = parse_lesson_meta("3 | Intro to Robotics")

        assert meta == LessonMeta(ord=3, title="Intro to Robotics")

    def test_trims_whitespace(self) -> None:
        assert parse_lesson_meta("  12|  Gears and levers  ") == LessonMeta(12, "Gears and levers")

    def test_title_may_contain_pipes(self) -> None:
        assert parse_lesson_meta("1 | A | B").title == "A | B"

    @pytest.mark.parametrize(
        "text",
        [None, "", "Intro", "x | Intro", "0 | Intro", "-2 | Intro", "4 |   ", "18446744073709551616 | Huge"],
    )
    def test_rejects_malformed_input(self, text: str | None) -> None:
        with pytest.raises(ValidationError):
            parse_lesson_meta(text)

    def test_ord_upper_bound(self) -> None:
        assert LessonMeta(ORD_MAX, "Last").ord == ORD_MAX
        with pytest.raises(ValidationError):
            LessonMeta(ORD_MAX + 1, "Too far")


class TestNewsTag:
    def test_tag_match_is_case_insensitive(self) -> None:
        assert has_news_tag("Big update #News today", "#news")

    def test_missing_tag_or_text(self) -> None:
        assert not has_news_tag("plain post", "#news")
        assert not has_news_tag(None, "#news")
        assert not has_news_tag("#news", "")


class TestPendingActionRegistry:
    def test_set_returns_replaced_action(self) -> None:
        registry = PendingActionRegistry()

        assert registry.set(1, AwaitingNewsForward()) is None
        assert registry.set(1, AwaitingLessonMeta(Section.PREP)) == AwaitingNewsForward()
        assert registry.get(1) == AwaitingLessonMeta(Section.PREP)
        assert 1 in registry
        assert len(registry) == 1

    def test_lock_is_per_admin(self) -> None:
        registry = PendingActionRegistry()

        assert registry.lock(1) is registry.lock(1)
        assert registry.lock(1) is not registry.lock(2)


class TestLessonIngestion:
    @pytest.mark.asyncio
    async def test_full_flow_writes_exactly_one_lesson(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        started = await ingestion.start_lesson(ADMIN_ID, Section.STEAM)
        assert started.status is StepStatus.AWAITING_META
        assert ingestion.pending(ADMIN_ID) == AwaitingLessonMeta(Section.STEAM)

        meta = await ingestion.provide_meta(ADMIN_ID, parse_lesson_meta("3 | Intro to Robotics"))
        assert meta.status is StepStatus.AWAITING_FORWARD
        assert ingestion.pending(ADMIN_ID) == AwaitingLessonForward(
            Section.STEAM, 3, "Intro to Robotics"
        )

        result = await ingestion.provide_forward(ADMIN_ID, _forward(777), db_session)

        assert result.status is StepStatus.COMMITTED
        assert result.done
        assert result.post_url == f"https://t.me/{CHANNEL_USERNAME}/777"
        assert ingestion.pending(ADMIN_ID) is None
        lessons = await LessonRepository(db_session).list_by_section(Section.STEAM)
        assert [(lesson.section, lesson.ord, lesson.title, lesson.message_id) for lesson in lessons] == [
            ("steam", 3, "Intro to Robotics", 777)
        ]

    @pytest.mark.asyncio
    async def test_inline_meta_skips_to_forward(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        result = await ingestion.start_lesson(ADMIN_ID, Section.PREP, LessonMeta(2, "Shapes"))

        assert result.status is StepStatus.AWAITING_FORWARD
        assert ingestion.pending(ADMIN_ID) == AwaitingLessonForward(Section.PREP, 2, "Shapes")

    @pytest.mark.asyncio
    async def test_plain_message_keeps_state_and_writes_nothing(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.STEAM)
        await ingestion.provide_meta(ADMIN_ID, LessonMeta(3, "Intro to Robotics"))

        result = await ingestion.provide_forward(
            ADMIN_ID, PlainMessage(text="here it is"), db_session
        )

        assert result.status is StepStatus.NOT_FORWARDED
        assert ingestion.pending(ADMIN_ID) == AwaitingLessonForward(
            Section.STEAM, 3, "Intro to Robotics"
        )
        assert await _lesson_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_forward_from_other_channel_is_refused(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.PREP, LessonMeta(1, "Basics"))

        result = await ingestion.provide_forward(
            ADMIN_ID, _forward(55, chat_id=-100999, username="other_channel"), db_session
        )

        assert result.status is StepStatus.CHANNEL_MISMATCH
        assert isinstance(ingestion.pending(ADMIN_ID), AwaitingLessonForward)
        assert await _lesson_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_forward_while_awaiting_meta_is_not_accepted(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.PREP)

        result = await ingestion.provide_forward(ADMIN_ID, _forward(10), db_session)

        assert result.status is StepStatus.AWAITING_META
        assert await _lesson_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_forward_replaces_existing_slot(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await LessonRepository(db_session).upsert(Section.PREP, 1, "Old", 5)
        await ingestion.start_lesson(ADMIN_ID, Section.PREP, LessonMeta(1, "New"))

        result = await ingestion.provide_forward(ADMIN_ID, _forward(6), db_session)

        assert result.status is StepStatus.COMMITTED
        lesson = await LessonRepository(db_session).get(Section.PREP, 1)
        assert lesson is not None
        assert (lesson.title, lesson.message_id) == ("New", 6)

    @pytest.mark.asyncio
    async def test_committed_lesson_is_visible_to_other_sessions(
        self,
        ingestion: IngestionMachine,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.STEAM, LessonMeta(4, "Gears"))

        result = await ingestion.provide_forward(ADMIN_ID, _forward(404), db_session)

        assert result.status is StepStatus.COMMITTED
        async with session_factory() as other:
            lesson = await LessonRepository(other).get(Section.STEAM, 4)
        assert lesson is not None
        assert lesson.message_id == 404

    @pytest.mark.asyncio
    async def test_store_failure_clears_pending(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await db_session.execute(sql_text("DROP TABLE lessons"))
        await db_session.commit()
        await ingestion.start_lesson(ADMIN_ID, Section.PREP, LessonMeta(1, "Basics"))

        result = await ingestion.provide_forward(ADMIN_ID, _forward(10), db_session)

        assert result.status is StepStatus.FAILED
        assert "lessons" in result.detail
        assert ingestion.pending(ADMIN_ID) is None

    @pytest.mark.asyncio
    async def test_out_of_range_post_id_fails_without_writing(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.STEAM, LessonMeta(3, "Intro"))

        result = await ingestion.provide_forward(ADMIN_ID, _forward(2**64), db_session)

        assert result.status is StepStatus.FAILED
        assert ingestion.pending(ADMIN_ID) is None
        assert await _lesson_count(db_session) == 0


class TestNewsIngestion:
    @pytest.mark.asyncio
    async def test_forward_files_news_once(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await ingestion.start_news(ADMIN_ID)
        first = await ingestion.provide_forward(ADMIN_ID, _forward(900), db_session)

        await ingestion.start_news(ADMIN_ID)
        second = await ingestion.provide_forward(ADMIN_ID, _forward(900), db_session)

        assert first.status is StepStatus.COMMITTED
        assert second.status is StepStatus.DUPLICATE
        assert second.done
        assert await NewsRepository(db_session).get(900) is not None
        count = await db_session.scalar(select(func.count()).select_from(NewsItem))
        assert count == 1


class TestAdminIsolation:
    @pytest.mark.asyncio
    async def test_admins_do_not_share_pending_actions(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.STEAM, LessonMeta(3, "Intro to Robotics"))
        await ingestion.start_news(SECOND_ADMIN_ID)

        result = await ingestion.provide_forward(ADMIN_ID, _forward(777), db_session)

        assert result.status is StepStatus.COMMITTED
        assert ingestion.pending(ADMIN_ID) is None
        assert ingestion.pending(SECOND_ADMIN_ID) == AwaitingNewsForward()
        assert await NewsRepository(db_session).get(777) is None

    @pytest.mark.asyncio
    async def test_new_action_replaces_old_one(self, ingestion: IngestionMachine) -> None:
        await ingestion.start_lesson(ADMIN_ID, Section.PREP)
        await ingestion.start_news(ADMIN_ID)

        assert ingestion.pending(ADMIN_ID) == AwaitingNewsForward()
        assert len(ingestion.registry) == 1

    @pytest.mark.asyncio
    async def test_non_admin_is_ignored(
        self, ingestion: IngestionMachine, db_session: AsyncSession
    ) -> None:
        assert (await ingestion.start_lesson(USER_ID, Section.PREP)).status is StepStatus.IGNORED
        assert (await ingestion.start_news(USER_ID)).status is StepStatus.IGNORED
        assert (await ingestion.provide_meta(USER_ID, LessonMeta(1, "x"))).status is StepStatus.IGNORED
        assert (
            await ingestion.provide_forward(USER_ID, _forward(1), db_session)
        ).status is StepStatus.IGNORED
        assert (await ingestion.cancel(USER_ID)).status is StepStatus.IGNORED
        assert len(ingestion.registry) == 0
        assert ingestion.pending(USER_ID) is None


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_clears_pending(self, ingestion: IngestionMachine) -> None:
        await ingestion.start_news(ADMIN_ID)

        result = await ingestion.cancel(ADMIN_ID)

        assert result.status is StepStatus.CANCELLED
        assert result.pending == AwaitingNewsForward()
        assert ingestion.pending(ADMIN_ID) is None

    @pytest.mark.asyncio
    async def test_cancel_without_pending(self, ingestion: IngestionMachine) -> None:
        result = await ingestion.cancel(ADMIN_ID)

        assert result.status is StepStatus.CANCELLED
        assert result.pending is None


class TestChannelMatching:
    def test_channel_id_wins_over_username(self, admin_guard: AdminGuard) -> None:
        machine = IngestionMachine(
            PendingActionRegistry(), admin_guard, channel_username="robo", channel_id=-100
        )

        assert machine.forward_matches_channel(-100, "someone_else")
        assert not machine.forward_matches_channel(-200, "robo")

    def test_username_compared_case_insensitively(self, admin_guard: AdminGuard) -> None:
        machine = IngestionMachine(PendingActionRegistry(), admin_guard, channel_username="@Robo")

        assert machine.forward_matches_channel(-1, "robo")
        assert not machine.forward_matches_channel(-1, None)

    def test_unconfigured_channel_accepts_any(self, admin_guard: AdminGuard) -> None:
        machine = IngestionMachine(PendingActionRegistry(), admin_guard)

        assert machine.forward_matches_channel(-5, None)
