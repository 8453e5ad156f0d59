"""
Exception hierarchy for content, access and ingestion errors.
"""

from __future__ import annotations

from typing import Any


class ContentError(Exception):
    """Base exception for all lessonbot errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ContentError):
    """Raised when input is malformed: bad section, ord out of range, empty title."""


class AuthorizationError(ContentError):
    """Raised when an admin, secret or origin check fails."""


class StoreConstraintError(ContentError):
    """Raised when a write violates a uniqueness constraint."""


class ConfigurationError(ContentError):
    """Raised when a required server setting is missing."""


__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "ContentError",
    "StoreConstraintError",
    "ValidationError",
]
