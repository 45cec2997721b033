"""Request body reading with a hard size ceiling."""

from __future__ import annotations

import logging

from fastapi import Request

from app.core.errors import PayloadTooLargeAppError

logger = logging.getLogger(__name__)

PAYLOAD_TOO_LARGE_MESSAGE = "Payload too large."


def payload_too_large(max_bytes: int, actual_bytes: int) -> PayloadTooLargeAppError:
    return PayloadTooLargeAppError(
        code="payload_too_large",
        message=PAYLOAD_TOO_LARGE_MESSAGE,
        details={"max_bytes": max_bytes, "actual_bytes": actual_bytes},
    )


async def read_body_limited(request: Request, max_bytes: int) -> bytes:
    """Read the request body in chunks enforcing the max size limit.

    Rejects early on a declared Content-Length above the limit, then falls
    back to counting streamed bytes so chunked uploads are bounded too.

    Args:
        request: Incoming request.
        max_bytes: Largest accepted body size in bytes.

    Returns:
        Body bytes if within the allowed size limit.

    Raises:
        PayloadTooLargeAppError: If the body exceeds the limit.
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        logger.warning(
            "body_limit.rejected_by_header",
            extra={"content_length": int(declared), "max_bytes": max_bytes},
        )
        raise payload_too_large(max_bytes, int(declared))

    size = 0
    chunks: list[bytes] = []

    async for chunk in request.stream():
        if not chunk:
            continue
        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "body_limit.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise payload_too_large(max_bytes, size)
        chunks.append(chunk)

    return b"".join(chunks)
