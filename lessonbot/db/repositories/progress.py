"""
Progress repository: one reading position per (user, section).
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ..models import Progress, Section, _utc_now
from .base import BaseRepository


class ProgressRepository(BaseRepository):
    """Data access helpers for Progress entities."""

    async def upsert(self, user_id: int, section: Section, ord: int) -> Progress:
        """
        Store the user's position in a section, overwriting the previous one.

        The timestamp is refreshed on every call.
        """
        stmt = sqlite_insert(Progress).values(
            user_id=user_id,
            section=Section(section).value,
            ord=ord,
            updated_at=_utc_now(),
        )
        upsert_stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "section"],
            set_={
                "ord": stmt.excluded.ord,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(Progress)

        result = await self._session.scalars(
            upsert_stmt,
            execution_options={"populate_existing": True},
        )
        return result.one()

    async def list_for_user(self, user_id: int) -> list[Progress]:
        stmt = (
            select(Progress)
            .where(Progress.user_id == user_id)
            .order_by(Progress.section.asc())
        )
        result = await self._session.scalars(stmt)
        return list(result)


__all__ = ["ProgressRepository"]
