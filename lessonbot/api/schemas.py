"""
Pydantic schemas for API request/response serialization.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from ..db.models import ID_MAX, ORD_MAX, Section

# -----------------------------------------------------------------------------
# Content Schemas
# -----------------------------------------------------------------------------


class LessonItem(BaseModel):
    """Lesson as listed for a section."""

    model_config = ConfigDict(from_attributes=True)

    ord: int = Field(..., ge=1, description="Position inside the section.")
    title: str = Field(..., description="Lesson title.")
    message_id: int = Field(..., description="Channel post ID.")
    post_url: str | None = Field(default=None, description="Deep link to the channel post.")


class LessonListResponse(BaseModel):
    section: Section = Field(..., description="Requested section.")
    items: list[LessonItem] = Field(default_factory=list, description="Lessons ordered by ord.")


class LinkItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Link identifier used for deletion.")
    title: str = Field(..., description="Link label.")
    url: str = Field(..., description="Target URL.")
    ord: int = Field(default=0, description="Sort key.")


class LinkListResponse(BaseModel):
    items: list[LinkItem] = Field(default_factory=list, description="Links ordered by ord, id.")


class NewsEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: int = Field(..., description="Channel post ID.")
    created_at: datetime = Field(..., description="When the post was filed.")
    post_url: str | None = Field(default=None, description="Deep link to the channel post.")


class NewsListResponse(BaseModel):
    items: list[NewsEntry] = Field(default_factory=list, description="Newest first.")


class ProgressEntry(BaseModel):
    """User position in a section joined with the lesson at that slot."""

    model_config = ConfigDict(from_attributes=True)

    section: Section = Field(..., description="Section.")
    ord: int = Field(..., description="Lesson position the user reached.")
    updated_at: datetime = Field(..., description="Last update timestamp.")
    title: str | None = Field(default=None, description="Lesson title if the slot is filled.")
    message_id: int | None = Field(default=None, description="Lesson post ID if filled.")
    post_url: str | None = Field(default=None, description="Deep link if filled.")


class ProgressResponse(BaseModel):
    user_id: int = Field(..., description="Telegram user ID.")
    items: list[ProgressEntry] = Field(default_factory=list, description="One entry per section.")


class MetaResponse(BaseModel):
    """Public configuration the web front end needs."""

    channel_username: str = Field(default="", description="Channel username.")
    chat_url: str = Field(default="", description="Discussion chat URL.")
    webapp_origin: str = Field(default="", description="Origin of the configured Web App.")
    allowed_origins: list[str] = Field(default_factory=list, description="CORS allow-list.")


# -----------------------------------------------------------------------------
# Admin Schemas
# -----------------------------------------------------------------------------


class LessonUpsertRequest(BaseModel):
    section: Section = Field(..., description="prep or steam.")
    ord: PositiveInt = Field(..., le=ORD_MAX, description="Slot inside the section.")
    title: str = Field(..., min_length=1, description="Lesson title.")
    message_id: PositiveInt = Field(..., le=ID_MAX, description="Channel post ID.")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v


class LinkCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, description="Link label.")
    url: str = Field(..., min_length=1, description="Target URL.")
    ord: int = Field(default=0, ge=-ORD_MAX, le=ORD_MAX, description="Sort key.")

    @field_validator("title", "url")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class NewsCreateRequest(BaseModel):
    message_id: PositiveInt = Field(..., le=ID_MAX, description="Channel post ID.")


class AckResponse(BaseModel):
    """Acknowledgement for admin writes."""

    ok: bool = Field(default=True, description="Always true on success.")
    created: bool | None = Field(default=None, description="False when nothing new was stored.")
    id: int | None = Field(default=None, description="Identifier of the created row.")
    post_url: str | None = Field(default=None, description="Deep link for the affected post.")


# -----------------------------------------------------------------------------
# Health / Status Schemas
# -----------------------------------------------------------------------------


class HealthStatus(str, Enum):
    """Service health status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    ok: bool = Field(..., description="True when the database answers.")
    status: HealthStatus = Field(..., description="Overall service status.")
    version: str = Field(..., description="Application version.")
    database_latency_ms: float | None = Field(default=None, description="Ping latency.")


# -----------------------------------------------------------------------------
# Error Schemas
# -----------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Structured error detail."""

    field: str | None = Field(default=None, description="Field that caused the error.")
    message: str = Field(..., description="Human-readable error message.")
    code: str | None = Field(default=None, description="Machine-readable error code.")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Error type or category.")
    message: str = Field(..., description="Human-readable error description.")
    details: list[ErrorDetail] = Field(
        default_factory=list,
        description="Detailed error information.",
    )
    request_id: str | None = Field(default=None, description="Request trace ID for debugging.")


__all__ = [
    "AckResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "HealthStatus",
    "LessonItem",
    "LessonListResponse",
    "LessonUpsertRequest",
    "LinkCreateRequest",
    "LinkItem",
    "LinkListResponse",
    "MetaResponse",
    "NewsCreateRequest",
    "NewsEntry",
    "NewsListResponse",
    "ProgressEntry",
    "ProgressResponse",
]
