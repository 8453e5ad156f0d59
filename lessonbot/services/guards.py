"""
Access checks: admin allow-list, shared-secret header and CORS origins.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterable

from ..exceptions import AuthorizationError, ConfigurationError

LOGGER = logging.getLogger(__name__)


class AdminGuard:
    """Fixed allow-list of Telegram user IDs, set at startup."""

    def __init__(self, admin_ids: Iterable[int]) -> None:
        self._admin_ids = frozenset(int(admin_id) for admin_id in admin_ids)

    @property
    def admin_ids(self) -> frozenset[int]:
        return self._admin_ids

    def is_admin(self, user_id: int | None) -> bool:
        return bool(user_id) and user_id in self._admin_ids


def check_shared_secret(configured: str | None, supplied: str | None) -> None:
    """
    Validate the admin secret sent by an HTTP client.

    Raises:
        ConfigurationError: the server has no secret configured; nothing is allowed.
        AuthorizationError: the header is missing or does not match.
    """
    if not configured:
        LOGGER.error("Admin route called but no admin secret is configured")
        raise ConfigurationError("Admin secret is not configured on the server.")
    if not supplied:
        raise AuthorizationError("Missing admin secret.")
    if not hmac.compare_digest(supplied.encode("utf-8"), configured.encode("utf-8")):
        LOGGER.warning("Rejected admin request with a wrong secret")
        raise AuthorizationError("Invalid admin secret.")


class OriginGuard:
    """
    Exact-match allow-list of browser origins.

    Requests without an Origin header (server to server) are always allowed.
    """

    def __init__(
        self,
        web_app_origin: str = "",
        fallback_origins: Iterable[str] = (),
        local_origins: Iterable[str] = (),
    ) -> None:
        origins: list[str] = []
        for origin in (web_app_origin, *fallback_origins, *local_origins):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
        self._allowed = tuple(origins)

    @property
    def allowed_origins(self) -> list[str]:
        return list(self._allowed)

    def is_allowed(self, origin: str | None) -> bool:
        if not origin:
            return True
        return origin in self._allowed


__all__ = ["AdminGuard", "OriginGuard", "check_shared_secret"]
