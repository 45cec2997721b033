"""Client IP resolution for rate limiting and lead records."""

from __future__ import annotations

from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Return the originating client IP for a request.

    The first entry of ``X-Forwarded-For`` wins (the app runs behind a CDN
    or reverse proxy); otherwise the socket peer address is used.
    """

    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return request.client.host if request.client else UNKNOWN_CLIENT
