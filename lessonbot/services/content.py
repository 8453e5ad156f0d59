"""
Query/read service shared by the HTTP API and the bot.

Wraps the repositories with the joins the raw tables do not provide:
post URL derivation and resolving a progress record into its lesson.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import Lesson, NewsItem, Section
from ..db.repositories import (
    LessonRepository,
    LinkRepository,
    NewsRepository,
    ProgressRepository,
)
from .types import LessonView, LinkView, NewsView, ProgressView

LOGGER = logging.getLogger(__name__)

NEWS_LIMIT_MAX = 200


def build_post_url(channel_username: str | None, message_id: int | None) -> str | None:
    """
    Return the t.me deep link for a channel post.

    None when no channel is configured or the message id is missing or zero.
    """
    channel = (channel_username or "").strip().lstrip("@")
    if not channel or not message_id:
        return None
    return f"https://t.me/{channel}/{message_id}"


class ContentService:
    """Composed reads (and the progress write) over one session."""

    def __init__(self, session: AsyncSession, channel_username: str = "") -> None:
        self._session = session
        self._channel = channel_username
        self._lessons = LessonRepository(session)
        self._links = LinkRepository(session)
        self._news = NewsRepository(session)
        self._progress = ProgressRepository(session)

    def post_url(self, message_id: int | None) -> str | None:
        return build_post_url(self._channel, message_id)

    def _lesson_view(self, lesson: Lesson) -> LessonView:
        return LessonView(
            section=Section(lesson.section),
            ord=lesson.ord,
            title=lesson.title,
            message_id=lesson.message_id,
            post_url=self.post_url(lesson.message_id),
        )

    def _news_view(self, item: NewsItem) -> NewsView:
        return NewsView(
            message_id=item.message_id,
            created_at=item.created_at,
            post_url=self.post_url(item.message_id),
        )

    async def lessons(self, section: Section) -> list[LessonView]:
        rows = await self._lessons.list_by_section(section)
        return [self._lesson_view(row) for row in rows]

    async def lesson(self, section: Section, ord: int) -> LessonView | None:
        row = await self._lessons.get(section, ord)
        return self._lesson_view(row) if row else None

    async def neighbours(self, section: Section, ord: int) -> tuple[int | None, int | None]:
        """Ords of the lessons right before and after `ord` in the section."""
        ords = [row.ord for row in await self._lessons.list_by_section(section)]
        prev_ord = max((o for o in ords if o < ord), default=None)
        next_ord = min((o for o in ords if o > ord), default=None)
        return prev_ord, next_ord

    async def links(self) -> list[LinkView]:
        rows = await self._links.list_all()
        return [LinkView(id=row.id, title=row.title, url=row.url, ord=row.ord) for row in rows]

    async def news(self, limit: int = NEWS_LIMIT_MAX) -> list[NewsView]:
        limit = max(1, min(limit, NEWS_LIMIT_MAX))
        rows = await self._news.list_recent(limit)
        return [self._news_view(row) for row in rows]

    async def progress(self, user_id: int) -> list[ProgressView]:
        """
        Return the user's positions, each joined with the lesson in that slot.

        A position whose slot is empty (lesson deleted or not filed yet)
        comes back with title, message_id and post_url set to None.
        """
        views: list[ProgressView] = []
        for record in await self._progress.list_for_user(user_id):
            section = Section(record.section)
            lesson = await self._lessons.get(section, record.ord)
            views.append(
                ProgressView(
                    section=section,
                    ord=record.ord,
                    updated_at=record.updated_at,
                    title=lesson.title if lesson else None,
                    message_id=lesson.message_id if lesson else None,
                    post_url=self.post_url(lesson.message_id) if lesson else None,
                )
            )
        return views

    async def record_progress(self, user_id: int, section: Section, ord: int) -> ProgressView:
        """Move the user's position in `section` to `ord`."""
        record = await self._progress.upsert(user_id, section, ord)
        LOGGER.debug("Progress of user %d in %s set to %d", user_id, section.value, ord)
        lesson = await self._lessons.get(section, ord)
        return ProgressView(
            section=section,
            ord=record.ord,
            updated_at=record.updated_at,
            title=lesson.title if lesson else None,
            message_id=lesson.message_id if lesson else None,
            post_url=self.post_url(lesson.message_id) if lesson else None,
        )


__all__ = ["ContentService", "NEWS_LIMIT_MAX", "build_post_url"]
