"""
Link repository for the useful-links menu.
"""

from __future__ import annotations

from sqlalchemy import delete, select

from ..models import Link
from .base import BaseRepository


class LinkRepository(BaseRepository):
    """Data access helpers for Link entities."""

    async def add(self, title: str, url: str, ord: int = 0) -> Link:
        link = Link(title=title, url=url, ord=ord)
        self._session.add(link)
        await self._session.flush()
        return link

    async def list_all(self) -> list[Link]:
        """Links ordered by ord, ties broken by insertion order."""
        result = await self._session.scalars(select(Link).order_by(Link.ord.asc(), Link.id.asc()))
        return list(result)

    async def delete(self, link_id: int) -> bool:
        return await self._execute_rowcount(delete(Link).where(Link.id == link_id)) > 0


__all__ = ["LinkRepository"]
