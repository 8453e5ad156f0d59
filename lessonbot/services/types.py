"""
Read-side records handed from the services to the presentation adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..db.models import SECTION_VALUES, Section
from ..exceptions import ValidationError


@dataclass(frozen=True)
class LessonView:
    """Lesson with its derived channel post URL."""

    section: Section
    ord: int
    title: str
    message_id: int
    post_url: str | None


@dataclass(frozen=True)
class LinkView:
    id: int
    title: str
    url: str
    ord: int


@dataclass(frozen=True)
class NewsView:
    message_id: int
    created_at: datetime
    post_url: str | None


@dataclass(frozen=True)
class ProgressView:
    """A user's position in a section, joined with the lesson at that slot."""

    section: Section
    ord: int
    updated_at: datetime
    title: str | None = None
    message_id: int | None = None
    post_url: str | None = None


def parse_section(value: object) -> Section:
    """Turn user input into a Section or raise ValidationError."""
    raw = str(value or "").strip().lower()
    try:
        return Section(raw)
    except ValueError:
        raise ValidationError(
            f"section must be {'|'.join(SECTION_VALUES)}",
            context={"section": raw},
        ) from None


__all__ = ["LessonView", "LinkView", "NewsView", "ProgressView", "Section", "parse_section"]
