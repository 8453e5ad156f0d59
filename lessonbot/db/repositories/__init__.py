"""
Repository classes for database access.

This module provides one repository per stored entity:
- LessonRepository: ordered lessons per section
- LinkRepository: useful links
- NewsRepository: channel posts filed as news
- ProgressRepository: per-user reading position
"""

from .base import BaseRepository
from .lesson import LessonRepository
from .link import LinkRepository
from .news import NewsRepository
from .progress import ProgressRepository

__all__ = [
    "BaseRepository",
    "LessonRepository",
    "LinkRepository",
    "NewsRepository",
    "ProgressRepository",
]
