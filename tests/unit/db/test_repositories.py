"""
Unit tests for the lesson, link, news and progress repositories.

Every test runs against its own SQLite file, so the upsert and
insert-or-ignore statements execute exactly as in production.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from lessonbot.db.models import Lesson, NewsItem, Section
from lessonbot.db.repositories import (
    LessonRepository,
    LinkRepository,
    NewsRepository,
    ProgressRepository,
)
from lessonbot.exceptions import StoreConstraintError
from tests.factories import LessonFactory, LinkFactory, NewsItemFactory, _utcnow


class TestLessonRepository:
    """Slots are unique per (section, ord) and upsert replaces in place."""

    @pytest.mark.asyncio
    async def test_upsert_inserts_new_slot(self, db_session: AsyncSession) -> None:
        repo = LessonRepository(db_session)

        lesson = await repo.upsert(Section.STEAM, 3, "Intro to Robotics", 777)

        assert lesson.id is not None
        assert lesson.section == "steam"
        assert lesson.ord == 3
        assert lesson.title == "Intro to Robotics"
        assert lesson.message_id == 777

    @pytest.mark.asyncio
    async def test_upsert_replaces_existing_slot(self, db_session: AsyncSession) -> None:
        repo = LessonRepository(db_session)

        first = await repo.upsert(Section.PREP, 1, "Old title", 10)
        second = await repo.upsert(Section.PREP, 1, "New title", 11)

        assert second.id == first.id
        stored = await repo.get(Section.PREP, 1)
        assert stored is not None
        assert stored.title == "New title"
        assert stored.message_id == 11
        count = await db_session.scalar(select(func.count()).select_from(Lesson))
        assert count == 1

    @pytest.mark.asyncio
    async def test_same_ord_in_other_section_is_separate(self, db_session: AsyncSession) -> None:
        repo = LessonRepository(db_session)

        await repo.upsert(Section.PREP, 1, "Prep one", 10)
        await repo.upsert(Section.STEAM, 1, "Steam one", 20)

        assert [lesson.title for lesson in await repo.list_by_section(Section.PREP)] == ["Prep one"]
        assert [lesson.title for lesson in await repo.list_by_section(Section.STEAM)] == [
            "Steam one"
        ]

    @pytest.mark.asyncio
    async def test_list_by_section_is_ordered(self, db_session: AsyncSession) -> None:
        for ord in (5, 1, 3):
            db_session.add(LessonFactory.build(section="prep", ord=ord))
        await db_session.flush()

        lessons = await LessonRepository(db_session).list_by_section(Section.PREP)

        assert [lesson.ord for lesson in lessons] == [1, 3, 5]

    @pytest.mark.asyncio
    async def test_add_into_taken_slot_raises(self, db_session: AsyncSession) -> None:
        repo = LessonRepository(db_session)
        await repo.add(Section.PREP, 2, "First", 30)
        await db_session.commit()

        with pytest.raises(StoreConstraintError):
            await repo.add(Section.PREP, 2, "Second", 31)

        stored = await repo.get(Section.PREP, 2)
        assert stored is not None
        assert stored.title == "First"

    @pytest.mark.asyncio
    async def test_delete(self, db_session: AsyncSession) -> None:
        repo = LessonRepository(db_session)
        await repo.upsert(Section.STEAM, 4, "Motors", 40)

        assert await repo.delete(Section.STEAM, 4) is True
        assert await repo.delete(Section.STEAM, 4) is False
        assert await repo.get(Section.STEAM, 4) is None


class TestLinkRepository:
    @pytest.mark.asyncio
    async def test_list_orders_by_ord_then_id(self, db_session: AsyncSession) -> None:
        repo = LinkRepository(db_session)
        late = await repo.add("Late", "https://example.com/late", ord=10)
        first = await repo.add("First", "https://example.com/first", ord=0)
        second = await repo.add("Second", "https://example.com/second", ord=0)

        links = await repo.list_all()

        assert [link.id for link in links] == [first.id, second.id, late.id]

    @pytest.mark.asyncio
    async def test_delete(self, db_session: AsyncSession) -> None:
        link = LinkFactory.build()
        db_session.add(link)
        await db_session.flush()
        repo = LinkRepository(db_session)

        assert await repo.delete(link.id) is True
        assert await repo.delete(link.id) is False
        assert await repo.list_all() == []


class TestNewsRepository:
    @pytest.mark.asyncio
    async def test_add_if_absent_is_idempotent(self, db_session: AsyncSession) -> None:
        repo = NewsRepository(db_session)

        assert await repo.add_if_absent(900) is True
        assert await repo.add_if_absent(900) is False

        count = await db_session.scalar(select(func.count()).select_from(NewsItem))
        assert count == 1

    @pytest.mark.asyncio
    async def test_list_recent_newest_first_with_limit(self, db_session: AsyncSession) -> None:
        now = _utcnow()
        for offset, message_id in enumerate((1, 2, 3)):
            db_session.add(
                NewsItemFactory.build(message_id=message_id, created_at=now + timedelta(minutes=offset))
            )
        await db_session.flush()

        news = await NewsRepository(db_session).list_recent(limit=2)

        assert [item.message_id for item in news] == [3, 2]

    @pytest.mark.asyncio
    async def test_delete(self, db_session: AsyncSession) -> None:
        repo = NewsRepository(db_session)
        await repo.add_if_absent(42)

        assert await repo.delete(42) is True
        assert await repo.get(42) is None
        assert await repo.delete(42) is False


class TestProgressRepository:
    @pytest.mark.asyncio
    async def test_upsert_keeps_one_row_per_section(self, db_session: AsyncSession) -> None:
        repo = ProgressRepository(db_session)

        await repo.upsert(7, Section.PREP, 1)
        latest = await repo.upsert(7, Section.PREP, 4)
        await repo.upsert(7, Section.STEAM, 2)

        assert latest.ord == 4
        records = await repo.list_for_user(7)
        assert [(record.section, record.ord) for record in records] == [("prep", 4), ("steam", 2)]

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, db_session: AsyncSession) -> None:
        repo = ProgressRepository(db_session)
        await repo.upsert(1, Section.PREP, 3)
        await repo.upsert(2, Section.PREP, 8)

        assert [record.ord for record in await repo.list_for_user(1)] == [3]
        assert [record.ord for record in await repo.list_for_user(2)] == [8]
        assert await repo.list_for_user(3) == []


class TestSchema:
    """Tables created at startup carry the constraint names of the migration."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("table", "names"),
        [
            ("lessons", ["pk_lessons", "uq_lessons_section_ord", "ck_lessons_section"]),
            ("links", ["pk_links"]),
            ("news", ["pk_news", "uq_news_message_id"]),
            ("progress", ["pk_progress", "ck_progress_section"]),
        ],
    )
    async def test_constraint_names(
        self, db_session: AsyncSession, table: str, names: list[str]
    ) -> None:
        ddl = await db_session.scalar(
            text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :name"),
            {"name": table},
        )

        assert ddl is not None
        for name in names:
            assert f"CONSTRAINT {name}" in ddl
