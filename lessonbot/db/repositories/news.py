"""
News repository: channel posts filed as news, newest first.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ..models import NewsItem, _utc_now
from .base import BaseRepository


class NewsRepository(BaseRepository):
    """Data access helpers for NewsItem entities."""

    async def add_if_absent(self, message_id: int) -> bool:
        """
        File a channel post as news.

        A message id that is already stored is left alone.

        Returns:
            True when a new row was created
        """
        stmt = (
            sqlite_insert(NewsItem)
            .values(message_id=message_id, created_at=_utc_now())
            .on_conflict_do_nothing(index_elements=["message_id"])
        )
        return await self._execute_rowcount(stmt) == 1

    async def get(self, message_id: int) -> NewsItem | None:
        return await self._session.scalar(
            select(NewsItem).where(NewsItem.message_id == message_id)
        )

    async def list_recent(self, limit: int = 200) -> list[NewsItem]:
        """Most recent news first."""
        stmt = (
            select(NewsItem)
            .order_by(NewsItem.created_at.desc(), NewsItem.id.desc())
            .limit(limit)
        )
        result = await self._session.scalars(stmt)
        return list(result)

    async def delete(self, message_id: int) -> bool:
        stmt = delete(NewsItem).where(NewsItem.message_id == message_id)
        return await self._execute_rowcount(stmt) > 0


__all__ = ["NewsRepository"]
