"""
Database toolkit exposing ORM models, repositories and engine helpers.
"""

from .models import Base, Lesson, Link, NewsItem, Progress, Section
from .repositories import (
    BaseRepository,
    LessonRepository,
    LinkRepository,
    NewsRepository,
    ProgressRepository,
)
from .session import create_engine, create_session_factory, init_models

__all__ = [
    "Base",
    "BaseRepository",
    "Lesson",
    "LessonRepository",
    "Link",
    "LinkRepository",
    "NewsItem",
    "NewsRepository",
    "Progress",
    "ProgressRepository",
    "Section",
    "create_engine",
    "create_session_factory",
    "init_models",
]
