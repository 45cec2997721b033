"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent across the codebase
    without forcing every error to carry every field.
    """

    hint: str
    max_bytes: int
    actual_bytes: int
    http_status: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    allow: str
    upstream_message: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message (safe to show to clients).
        details: Optional structured details for debugging/observability.
        headers: Optional HTTP headers attached to the error response.
    """

    code: str
    message: str
    details: ErrorDetails | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when the request body or one of its fields is invalid."""


class MethodNotAllowedAppError(AppError):
    """Raised when the endpoint is called with an unsupported HTTP method."""


class PayloadTooLargeAppError(AppError):
    """Raised when the request body exceeds the configured ceiling."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its request quota."""


class CRMAppError(AppError):
    """Raised when the lead could not be forwarded to the CRM."""
