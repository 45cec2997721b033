"""HTTP middleware for request correlation and landing-page headers.

The request id middleware:
- Accepts incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id into response headers for client-side tracking
- Measures total request duration and includes it in response headers
- Renders unhandled errors as 500 while the request id is still set
- Clears context after request completion to prevent context leaks

The static headers middleware keeps promo pages out of search indexes and
disables MIME sniffing on served files.

Usage:
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(static_headers_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.exception_handlers import API_PATH_PREFIX, general_exception_handler
from app.core.logging import clear_request_id, set_request_id

PROMO_PATH_PREFIX = "/promo-email"


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID is
    generated. The ID is propagated back in the response headers and stored
    in contextvars for log correlation.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        # 500s still carry the request id
        response = await general_exception_handler(request, exc)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def static_headers_middleware(request: Request, call_next) -> Response:
    """Add robots and content-type hardening headers to page responses."""

    response: Response = await call_next(request)
    path = request.url.path

    if path.startswith(API_PATH_PREFIX):
        return response

    if path.startswith(PROMO_PATH_PREFIX):
        response.headers.setdefault("X-Robots-Tag", "noindex, nofollow")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    return response
