"""
Base repository class with shared utilities.
"""

from __future__ import annotations

from typing import cast

from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable


class BaseRepository:
    """
    Base class for all repositories.

    Repositories never commit; the caller owns the unit of work.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Expose the underlying session for transaction management."""
        return self._session

    async def _execute_rowcount(self, stmt: Executable) -> int:
        """Run a DML statement and return the number of affected rows."""
        result = cast(CursorResult, await self._session.execute(stmt))
        return result.rowcount


__all__ = ["BaseRepository"]
