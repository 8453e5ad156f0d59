"""
Domain services: reads, access checks and admin ingestion.
"""

from .content import ContentService, build_post_url
from .guards import AdminGuard, OriginGuard, check_shared_secret
from .ingestion import (
    AwaitingLessonForward,
    AwaitingLessonMeta,
    AwaitingNewsForward,
    ChannelForward,
    IngestionMachine,
    LessonMeta,
    PendingActionRegistry,
    PlainMessage,
    StepResult,
    StepStatus,
    parse_lesson_meta,
)
from .types import LessonView, LinkView, NewsView, ProgressView, parse_section

__all__ = [
    "AdminGuard",
    "AwaitingLessonForward",
    "AwaitingLessonMeta",
    "AwaitingNewsForward",
    "ChannelForward",
    "ContentService",
    "IngestionMachine",
    "LessonMeta",
    "LessonView",
    "LinkView",
    "NewsView",
    "OriginGuard",
    "PendingActionRegistry",
    "PlainMessage",
    "ProgressView",
    "StepResult",
    "StepStatus",
    "build_post_url",
    "check_shared_secret",
    "parse_lesson_meta",
    "parse_section",
]
