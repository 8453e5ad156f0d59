"""
FastAPI application entrypoint with middleware, lifecycle, and error handling.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import Settings, get_settings
from ..exceptions import (
    AuthorizationError,
    ConfigurationError,
    ContentError,
    StoreConstraintError,
    ValidationError,
)
from ..logger import setup_logging
from .dependencies import build_origin_guard, lifespan_dependencies
from .routes import admin_router, content_router, health_router
from .schemas import ErrorDetail, ErrorResponse

LOGGER = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[ContentError], tuple[int, str]] = {
    ValidationError: (status.HTTP_400_BAD_REQUEST, "validation_error"),
    AuthorizationError: (status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    StoreConstraintError: (status.HTTP_409_CONFLICT, "conflict"),
    ConfigurationError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "server_misconfigured"),
}


def _error_json(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: list[ErrorDetail] | None = None,
) -> JSONResponse:
    error_response = ErrorResponse(
        error=error,
        message=message,
        details=details or [],
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(exclude_none=True),
    )


# -----------------------------------------------------------------------------
# Application Lifespan
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan context manager.

    Handles startup and shutdown of shared resources.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)

    LOGGER.info(
        "Starting %s API v%s in %s environment",
        settings.app.name,
        settings.app.version,
        settings.app.environment.value,
    )

    async with lifespan_dependencies(settings):
        yield

    LOGGER.info("Application shutdown complete.")


# -----------------------------------------------------------------------------
# Application Factory
# -----------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns a fully configured FastAPI instance with all routes and middleware.
    """
    settings = settings or get_settings()
    origin_guard = build_origin_guard(settings)

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description="Lessons, news and reading progress for the channel bot",
        docs_url="/docs" if settings.app.debug else None,
        redoc_url="/redoc" if settings.app.debug else None,
        openapi_url="/openapi.json" if settings.app.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origin_guard.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # -------------------------------------------------------------------------
    # Origin Guard Middleware
    # -------------------------------------------------------------------------

    @app.middleware("http")
    async def origin_guard_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Reject browsers calling from an origin outside the allow-list."""
        origin = request.headers.get("origin")
        if not origin_guard.is_allowed(origin):
            LOGGER.warning("CORS blocked: %s %s from %s", request.method, request.url.path, origin)
            return _error_json(
                request,
                status.HTTP_403_FORBIDDEN,
                "origin_not_allowed",
                f"CORS blocked: {origin}",
            )
        return await call_next(request)

    # -------------------------------------------------------------------------
    # Request Logging Middleware
    # -------------------------------------------------------------------------

    @app.middleware("http")
    async def request_logging_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Log request details and add request ID header."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        start_time = time.perf_counter()

        # Attach request_id to request state for access in handlers
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:
            LOGGER.exception(
                "Unhandled exception for %s %s [%s]",
                request.method,
                request.url.path,
                request_id,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        LOGGER.info(
            "%s %s -> %d (%.2fms) [%s]",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )

        response.headers["X-Request-ID"] = request_id
        return response

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------

    @app.exception_handler(ContentError)
    async def content_error_handler(request: Request, exc: ContentError) -> JSONResponse:
        """Map domain errors to HTTP status codes."""
        status_code, error = status.HTTP_400_BAD_REQUEST, "bad_request"
        for exc_type, mapped in _ERROR_STATUS.items():
            if isinstance(exc, exc_type):
                status_code, error = mapped
                break
        if status_code >= 500:
            LOGGER.error("%s: %s", error, exc.message)
        return _error_json(request, status_code, error, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        """Handle HTTP exceptions with consistent error format."""
        return _error_json(request, exc.status_code, exc.__class__.__name__, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Bad query parameters or body: 400 with per-field details."""
        details = [
            ErrorDetail(
                field=".".join(str(loc) for loc in error.get("loc", [])),
                message=error.get("msg", "Validation error"),
                code=error.get("type"),
            )
            for error in exc.errors()
        ]
        message = "; ".join(
            f"{detail.field}: {detail.message}" if detail.field else detail.message
            for detail in details
        )
        return _error_json(
            request,
            status.HTTP_400_BAD_REQUEST,
            "validation_error",
            message or "Request validation failed",
            details,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        LOGGER.exception(
            "Unhandled exception: %s [%s]",
            str(exc),
            getattr(request.state, "request_id", None),
        )

        # Hide internal errors in production
        message = str(exc) if settings.app.debug else "An internal error occurred"
        return _error_json(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "InternalServerError",
            message,
        )

    # -------------------------------------------------------------------------
    # Route Registration
    # -------------------------------------------------------------------------

    app.include_router(health_router)
    app.include_router(content_router)
    app.include_router(admin_router)

    return app


# -----------------------------------------------------------------------------
# Application Instance
# -----------------------------------------------------------------------------

app = create_app()


__all__ = ["app", "create_app"]
