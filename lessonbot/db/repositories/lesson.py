"""
Lesson repository: ordered slots per section.

Notes:
- (section, ord) is unique at the table level
- upsert uses INSERT ... ON CONFLICT DO UPDATE so a slot is replaced in one statement
- add is a plain INSERT and surfaces a taken slot as StoreConstraintError
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from ...exceptions import StoreConstraintError
from ..models import Lesson, Section
from .base import BaseRepository


class LessonRepository(BaseRepository):
    """Data access helpers for Lesson entities."""

    async def upsert(
        self,
        section: Section,
        ord: int,
        title: str,
        message_id: int,
    ) -> Lesson:
        """
        Insert a lesson or replace the one already filed at (section, ord).

        Returns the stored row with its current values.
        """
        stmt = sqlite_insert(Lesson).values(
            section=Section(section).value,
            ord=ord,
            title=title,
            message_id=message_id,
        )
        upsert_stmt = stmt.on_conflict_do_update(
            index_elements=["section", "ord"],
            set_={
                "title": stmt.excluded.title,
                "message_id": stmt.excluded.message_id,
            },
        ).returning(Lesson)

        result = await self._session.scalars(
            upsert_stmt,
            execution_options={"populate_existing": True},
        )
        return result.one()

    async def add(
        self,
        section: Section,
        ord: int,
        title: str,
        message_id: int,
    ) -> Lesson:
        """
        Insert a lesson into a free slot.

        Raises:
            StoreConstraintError: if the slot is already taken.
        """
        lesson = Lesson(
            section=Section(section).value,
            ord=ord,
            title=title,
            message_id=message_id,
        )
        self._session.add(lesson)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            raise StoreConstraintError(
                f"Lesson slot {Section(section).value} #{ord} is already taken.",
                context={"section": Section(section).value, "ord": ord},
            ) from exc
        return lesson

    async def get(self, section: Section, ord: int) -> Lesson | None:
        """Fetch the lesson at (section, ord), if any."""
        return await self._session.scalar(
            select(Lesson).where(
                Lesson.section == Section(section).value,
                Lesson.ord == ord,
            )
        )

    async def list_by_section(self, section: Section) -> list[Lesson]:
        """Return all lessons of a section ordered by ord."""
        stmt = (
            select(Lesson)
            .where(Lesson.section == Section(section).value)
            .order_by(Lesson.ord.asc())
        )
        result = await self._session.scalars(stmt)
        return list(result)

    async def delete(self, section: Section, ord: int) -> bool:
        """Remove the lesson at (section, ord). Returns False if the slot was empty."""
        stmt = delete(Lesson).where(
            Lesson.section == Section(section).value,
            Lesson.ord == ord,
        )
        return await self._execute_rowcount(stmt) > 0


__all__ = ["LessonRepository"]
