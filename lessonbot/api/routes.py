"""
API route definitions: public reads and secret-guarded admin writes.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from fastapi.responses import PlainTextResponse

from ..db.models import ID_MAX, ORD_MAX, Section
from ..db.repositories import LessonRepository, LinkRepository, NewsRepository
from ..services.content import NEWS_LIMIT_MAX, build_post_url
from .dependencies import (
    AdminSecretDep,
    ContentServiceDep,
    DbSessionDep,
    OriginGuardDep,
    SettingsDep,
    check_database_health,
)
from .schemas import (
    AckResponse,
    ErrorResponse,
    HealthResponse,
    HealthStatus,
    LessonItem,
    LessonListResponse,
    LessonUpsertRequest,
    LinkCreateRequest,
    LinkItem,
    LinkListResponse,
    MetaResponse,
    NewsCreateRequest,
    NewsEntry,
    NewsListResponse,
    ProgressEntry,
    ProgressResponse,
)

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Router Definitions
# -----------------------------------------------------------------------------

health_router = APIRouter(tags=["Health"])
content_router = APIRouter(tags=["Content"])
admin_router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[AdminSecretDep],
    responses={
        401: {"model": ErrorResponse, "description": "Missing or wrong admin secret"},
        500: {"model": ErrorResponse, "description": "Admin secret not configured"},
    },
)


# -----------------------------------------------------------------------------
# Health Endpoints
# -----------------------------------------------------------------------------


@health_router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "OK. Try /health or /meta"


@health_router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service and its database.",
)
async def health_check(settings: SettingsDep, session: DbSessionDep) -> HealthResponse:
    """Ping the database and report."""
    db_healthy, db_latency = await check_database_health(session)
    return HealthResponse(
        ok=db_healthy,
        status=HealthStatus.HEALTHY if db_healthy else HealthStatus.UNHEALTHY,
        version=settings.app.version,
        database_latency_ms=db_latency,
    )


@health_router.get("/meta", response_model=MetaResponse, summary="Public metadata")
async def get_meta(settings: SettingsDep, origin_guard: OriginGuardDep) -> MetaResponse:
    return MetaResponse(
        channel_username=settings.telegram.channel_username,
        chat_url=settings.telegram.chat_url,
        webapp_origin=settings.telegram.web_app_origin,
        allowed_origins=origin_guard.allowed_origins,
    )


# -----------------------------------------------------------------------------
# Content Endpoints
# -----------------------------------------------------------------------------


@content_router.get(
    "/lessons",
    response_model=LessonListResponse,
    summary="List lessons of a section",
    responses={400: {"model": ErrorResponse, "description": "section must be prep|steam"}},
)
async def list_lessons(
    content: ContentServiceDep,
    section: Annotated[Section, Query(description="prep or steam")],
) -> LessonListResponse:
    lessons = await content.lessons(section)
    return LessonListResponse(
        section=section,
        items=[LessonItem.model_validate(lesson) for lesson in lessons],
    )


@content_router.get("/links", response_model=LinkListResponse, summary="List useful links")
async def list_links(content: ContentServiceDep) -> LinkListResponse:
    links = await content.links()
    return LinkListResponse(items=[LinkItem.model_validate(link) for link in links])


@content_router.get("/news", response_model=NewsListResponse, summary="List news, newest first")
async def list_news(
    content: ContentServiceDep,
    limit: Annotated[int, Query(ge=1, le=NEWS_LIMIT_MAX, description="Max items")] = NEWS_LIMIT_MAX,
) -> NewsListResponse:
    news = await content.news(limit)
    return NewsListResponse(items=[NewsEntry.model_validate(item) for item in news])


@content_router.get(
    "/progress",
    response_model=ProgressResponse,
    summary="Reading progress of a user",
    responses={400: {"model": ErrorResponse, "description": "user_id required"}},
)
async def get_progress(
    content: ContentServiceDep,
    user_id: Annotated[int, Query(gt=0, le=ID_MAX, description="Telegram user ID")],
) -> ProgressResponse:
    records = await content.progress(user_id)
    return ProgressResponse(
        user_id=user_id,
        items=[ProgressEntry.model_validate(record) for record in records],
    )


# -----------------------------------------------------------------------------
# Admin Endpoints
# -----------------------------------------------------------------------------


@admin_router.post("/lessons", response_model=AckResponse, summary="Create or replace a lesson")
async def upsert_lesson(
    body: LessonUpsertRequest,
    session: DbSessionDep,
    settings: SettingsDep,
) -> AckResponse:
    lesson = await LessonRepository(session).upsert(
        body.section, body.ord, body.title, body.message_id
    )
    LOGGER.info("Lesson %s #%d set via API (post %d)", body.section.value, body.ord, body.message_id)
    return AckResponse(
        id=lesson.id,
        post_url=build_post_url(settings.telegram.channel_username, lesson.message_id),
    )


@admin_router.delete(
    "/lessons/{section}/{ord}",
    response_model=AckResponse,
    summary="Delete a lesson",
    responses={404: {"model": ErrorResponse, "description": "No lesson in that slot"}},
)
async def delete_lesson(
    section: Section,
    ord: Annotated[int, Path(gt=0, le=ORD_MAX)],
    session: DbSessionDep,
) -> AckResponse:
    if not await LessonRepository(session).delete(section, ord):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No lesson at {section.value} #{ord}.",
        )
    return AckResponse()


@admin_router.post("/links", response_model=AckResponse, summary="Add a link")
async def create_link(body: LinkCreateRequest, session: DbSessionDep) -> AckResponse:
    link = await LinkRepository(session).add(body.title, body.url, body.ord)
    return AckResponse(id=link.id, created=True)


@admin_router.delete(
    "/links/{link_id}",
    response_model=AckResponse,
    summary="Delete a link",
    responses={404: {"model": ErrorResponse, "description": "Link not found"}},
)
async def delete_link(
    link_id: Annotated[int, Path(gt=0, le=ID_MAX)],
    session: DbSessionDep,
) -> AckResponse:
    if not await LinkRepository(session).delete(link_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Link with ID {link_id} not found.",
        )
    return AckResponse()


@admin_router.post("/news", response_model=AckResponse, summary="File a channel post as news")
async def create_news(
    body: NewsCreateRequest,
    session: DbSessionDep,
    settings: SettingsDep,
) -> AckResponse:
    created = await NewsRepository(session).add_if_absent(body.message_id)
    return AckResponse(
        created=created,
        post_url=build_post_url(settings.telegram.channel_username, body.message_id),
    )


@admin_router.delete(
    "/news/{message_id}",
    response_model=AckResponse,
    summary="Delete a news item",
    responses={404: {"model": ErrorResponse, "description": "News item not found"}},
)
async def delete_news(
    message_id: Annotated[int, Path(gt=0, le=ID_MAX)],
    session: DbSessionDep,
) -> AckResponse:
    if not await NewsRepository(session).delete(message_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"News item {message_id} not found.",
        )
    return AckResponse()


__all__ = [
    "admin_router",
    "content_router",
    "health_router",
]
