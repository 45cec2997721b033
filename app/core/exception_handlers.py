"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return the landing-page JSON shape
``{"ok": false, "error": "..."}`` with proper HTTP status codes.

Design:
- AppError subclasses → appropriate HTTP status (400, 405, 413, 429, 502)
- HTTPException (unknown paths, missing static files) → same status,
  JSON under /api/ and plain text for pages
- Unexpected Exception → generic 500 (safety net)
- Responses are never cached
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    AppError,
    CRMAppError,
    MethodNotAllowedAppError,
    PayloadTooLargeAppError,
    RateLimitAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store"}
API_PATH_PREFIX = "/api/"

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (MethodNotAllowedAppError, 405),
    (PayloadTooLargeAppError, 413),
    (RateLimitAppError, 429),
    (CRMAppError, 502),
)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (400 when unknown)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - ValidationAppError → 400 Bad Request
    - MethodNotAllowedAppError → 405 Method Not Allowed
    - PayloadTooLargeAppError → 413 Payload Too Large
    - RateLimitAppError → 429 Too Many Requests
    - CRMAppError → 502 Bad Gateway

    Only ``exc.message`` reaches the client; ``exc.details`` is logged.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error message.
    """
    status_code = status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    headers = dict(NO_STORE_HEADERS)
    if exc.headers:
        headers.update(exc.headers)

    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": exc.message},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render framework HTTP errors such as 404 for unknown paths.

    API paths keep the ``{"ok": false, "error"}`` shape; page paths get a
    plain-text body like any static file server.
    """
    headers = dict(NO_STORE_HEADERS)
    if exc.headers:
        headers.update(exc.headers)

    logger.info(
        "http_error",
        extra={"status_code": exc.status_code, "request_path": request.url.path},
    )

    if request.url.path.startswith(API_PATH_PREFIX):
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": str(exc.detail)},
            headers=headers,
        )
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Catches any exception not handled by specific handlers.
    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "Internal server error."},
        headers=dict(NO_STORE_HEADERS),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
