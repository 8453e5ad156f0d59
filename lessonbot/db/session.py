"""
Engine and session factory helpers for the embedded SQLite store.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import Settings
from .models import Base

LOGGER = logging.getLogger(__name__)


def _set_sqlite_pragmas(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database file.

    The parent directory is created if needed and every new connection gets
    WAL journaling.
    """
    db_path = settings.database.path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(settings.database.url, echo=settings.database.echo)
    event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
    LOGGER.info("Using SQLite database at %s", db_path)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the API dependencies and the bot middleware."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create missing tables and indexes; existing ones are left untouched."""
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


__all__ = ["create_engine", "create_session_factory", "init_models"]
