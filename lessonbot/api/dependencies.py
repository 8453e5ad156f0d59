"""
FastAPI dependency injection providers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..db.session import create_engine, create_session_factory, init_models
from ..services.content import ContentService
from ..services.guards import OriginGuard, check_shared_secret

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Type Aliases for Dependency Injection
# -----------------------------------------------------------------------------


def get_app_settings(request: Request) -> Settings:
    """Settings the app was built with, falling back to the environment."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# -----------------------------------------------------------------------------
# Database Session Management
# -----------------------------------------------------------------------------

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_engine(settings: Settings) -> AsyncEngine:
    """Create or return cached async engine."""
    global _engine
    if _engine is None:
        _engine = create_engine(settings)
    return _engine


def _get_session_factory(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Create or return cached session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(_get_engine(settings))
    return _session_factory


async def get_db(
    settings: SettingsDep,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a transactional database session.

    The session is committed on success and rolled back on exception.
    """
    factory = _get_session_factory(settings)
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbSessionDep = Annotated[AsyncSession, Depends(get_db)]


# -----------------------------------------------------------------------------
# Service Dependencies
# -----------------------------------------------------------------------------


async def get_content_service(session: DbSessionDep, settings: SettingsDep) -> ContentService:
    """Provide the read service bound to the request session."""
    return ContentService(session, settings.telegram.channel_username)


ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]


def build_origin_guard(settings: Settings) -> OriginGuard:
    return OriginGuard(
        web_app_origin=settings.telegram.web_app_origin,
        fallback_origins=settings.api.fallback_origins,
        local_origins=settings.api.local_origins,
    )


def get_origin_guard(settings: SettingsDep) -> OriginGuard:
    return build_origin_guard(settings)


OriginGuardDep = Annotated[OriginGuard, Depends(get_origin_guard)]


# -----------------------------------------------------------------------------
# Authentication
# -----------------------------------------------------------------------------


async def require_admin_secret(
    settings: SettingsDep,
    x_admin_secret: Annotated[str | None, Header(alias="X-Admin-Secret")] = None,
) -> None:
    """
    Guard for admin write routes.

    Unset server secret -> ConfigurationError (500); missing or wrong
    header -> AuthorizationError (401). Both are mapped by the app's
    exception handlers.
    """
    check_shared_secret(settings.api.admin_secret, x_admin_secret)


AdminSecretDep = Depends(require_admin_secret)


# -----------------------------------------------------------------------------
# Lifecycle Helpers
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan_dependencies(settings: Settings) -> AsyncIterator[None]:
    """
    Context manager for application lifespan.

    Opens the engine, makes sure the tables exist, and disposes the engine on exit.
    """
    global _engine, _session_factory

    LOGGER.info("Initializing application dependencies...")

    engine = _get_engine(settings)
    _get_session_factory(settings)
    await init_models(engine)

    try:
        yield
    finally:
        LOGGER.info("Shutting down application dependencies...")

        if _engine:
            await _engine.dispose()
            _engine = None
            _session_factory = None


# -----------------------------------------------------------------------------
# Health Check Helpers
# -----------------------------------------------------------------------------


async def check_database_health(session: AsyncSession) -> tuple[bool, float]:
    """Check database connectivity and return (healthy, latency_ms)."""
    start = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
        latency = (time.perf_counter() - start) * 1000
        return True, latency
    except Exception as exc:
        LOGGER.error("Database health check failed: %s", exc)
        latency = (time.perf_counter() - start) * 1000
        return False, latency


__all__ = [
    "AdminSecretDep",
    "ContentServiceDep",
    "DbSessionDep",
    "OriginGuardDep",
    "SettingsDep",
    "build_origin_guard",
    "check_database_health",
    "get_app_settings",
    "get_content_service",
    "get_db",
    "get_origin_guard",
    "get_settings",
    "lifespan_dependencies",
    "require_admin_secret",
]
