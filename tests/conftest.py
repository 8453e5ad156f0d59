"""
Shared pytest fixtures: settings, a per-test SQLite file, guards and an API client.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from lessonbot.api.dependencies import get_db
from lessonbot.api.main import create_app
from lessonbot.config import (
    ApiSettings,
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    Settings,
    TelegramBotSettings,
)
from lessonbot.db.session import create_engine, create_session_factory, init_models
from lessonbot.services.guards import AdminGuard
from lessonbot.services.ingestion import IngestionMachine, PendingActionRegistry

ADMIN_ID = 1001
SECOND_ADMIN_ID = 1002
USER_ID = 5005
CHANNEL_ID = -1001234567890
CHANNEL_USERNAME = "robo_channel"
ADMIN_SECRET = "s3cret-token"
WEB_APP_URL = "https://webapp.example.com/app/"
WEB_APP_ORIGIN = "https://webapp.example.com"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test configuration pointing at a throwaway database file."""

    return Settings(
        app=AppSettings(debug=True),
        database=DatabaseSettings(path=tmp_path / "data" / "bot.db"),
        telegram=TelegramBotSettings(
            token="123456:TEST",
            admin_ids=[ADMIN_ID, SECOND_ADMIN_ID],
            channel_username=CHANNEL_USERNAME,
            channel_id=CHANNEL_ID,
            web_app_url=WEB_APP_URL,
            chat_url="https://t.me/+robochat",
        ),
        api=ApiSettings(admin_secret=ADMIN_SECRET),
        logging=LoggingSettings(directory=tmp_path / "logs"),
    )


@pytest.fixture
async def db_engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    """Async SQLite engine with all tables created."""

    engine = create_engine(settings)
    await init_models(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """One session per test; the database file is discarded afterwards."""

    async with session_factory() as session:
        yield session


@pytest.fixture
def admin_guard() -> AdminGuard:
    return AdminGuard([ADMIN_ID, SECOND_ADMIN_ID])


@pytest.fixture
def ingestion(admin_guard: AdminGuard) -> IngestionMachine:
    """Ingestion machine bound to the test channel by id and username."""

    return IngestionMachine(
        PendingActionRegistry(),
        admin_guard,
        channel_username=CHANNEL_USERNAME,
        channel_id=CHANNEL_ID,
    )


@pytest.fixture
async def api_client(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client bound to an app that uses the test database."""

    app = create_app(settings)

    async def _get_test_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
