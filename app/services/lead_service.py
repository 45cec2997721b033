"""Promo lead intake service: rate limiting, validation and CRM forwarding.

This service is the core business logic behind ``/api/promo-lead``. Each
step short-circuits:

1. Method check (pre-flight answered with 204, anything but POST is 405)
2. Body size ceiling, before any parsing
3. Sliding-window rate limit keyed by client IP
4. JSON parsing
5. Field extraction with string coercion and defaults
6. Honeypot check (silent success, nothing forwarded)
7. Name/email validation
8. Lead construction and logging
9. CRM upsert; failures become a 502 with a generic message

Rejections are raised as ``AppError`` subclasses and rendered by the global
exception handlers; successful outcomes are returned as ``LeadIntakeResult``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.crm.base import AbstractCRMClient, Failed, Forwarded, Skipped
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.body_limits import payload_too_large
from app.core.client_ip import UNKNOWN_CLIENT
from app.core.config import AppSettings, settings
from app.core.errors import (
    CRMAppError,
    MethodNotAllowedAppError,
    RateLimitAppError,
    ValidationAppError,
)
from app.schemas.lead import Lead, LeadSubmission, PromoLeadResponse

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$", re.IGNORECASE)
MIN_NAME_LENGTH = 2

PREFLIGHT_ALLOW = "POST, OPTIONS"
POST_ALLOW = "POST"

INVALID_BODY_MESSAGE = "Invalid request body."
MISSING_NAME_MESSAGE = "Please send your name."
INVALID_EMAIL_MESSAGE = "Please send a valid email address."
RATE_LIMITED_MESSAGE = "Too many requests. Try again later."
METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed."
CRM_FAILED_MESSAGE = "We could not save your details right now. Please try again later."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(moment: datetime) -> str:
    """Format a datetime like JavaScript's ``Date.toISOString``."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(payload: dict[str, Any], key: str) -> str | None:
    """Return the trimmed string value of ``key``, or None if absent/not a string."""
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else None


def _hash_client(client_ip: str) -> str:
    """Hash the client identifier for logging without exposing it."""
    return hashlib.sha256(client_ip.encode()).hexdigest()[:16]


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def parse_json_body(raw_body: bytes) -> dict[str, Any]:
    """Decode a request body into a JSON object.

    An empty (or whitespace-only) body is treated as ``{}``.

    Raises:
        ValidationAppError: If the body is not UTF-8, not JSON, or not an object.
    """
    try:
        text = raw_body.decode("utf-8")
        payload = json.loads(text) if text.strip() else {}
    except ValueError as exc:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise ValidationAppError(
            code="invalid_body",
            message=INVALID_BODY_MESSAGE,
            details={"hint": type(exc).__name__},
        ) from exc

    if not isinstance(payload, dict):
        raise ValidationAppError(
            code="invalid_body",
            message=INVALID_BODY_MESSAGE,
            details={"hint": f"expected object, got {type(payload).__name__}"},
        )
    return payload


@dataclass(frozen=True)
class LeadIntakeResult:
    """Successful handler outcome, rendered as-is by the HTTP layer.

    ``payload`` is None for responses without a body (204 pre-flight).
    """

    status_code: int
    payload: dict[str, Any] | None
    headers: dict[str, str] = field(default_factory=dict)


class LeadIntakeService:
    """Validates promo form submissions and forwards accepted leads.

    Attributes:
        limiter: Rate limiter keyed by client IP.
        crm: CRM client used to upsert accepted leads.
    """

    def __init__(
        self,
        *,
        limiter: AbstractRateLimiter,
        crm: AbstractCRMClient,
        max_body_bytes: int = 16 * 1024,
        require_name: bool = True,
        coupon_code: str = "BEST10",
        default_source: str = "promo-email",
        default_page_path: str = "/promo-email/",
        rate_limit_enabled: bool = True,
        rate_limit_headers: bool = True,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.limiter = limiter
        self.crm = crm
        self.max_body_bytes = max_body_bytes
        self.require_name = require_name
        self.coupon_code = coupon_code
        self.default_source = default_source
        self.default_page_path = default_page_path
        self.rate_limit_enabled = rate_limit_enabled
        self.rate_limit_headers = rate_limit_headers
        self._now = now

    @classmethod
    def from_settings(
        cls,
        *,
        limiter: AbstractRateLimiter,
        crm: AbstractCRMClient,
        app_settings: AppSettings | None = None,
    ) -> "LeadIntakeService":
        """Build a service configured from ``AppSettings``."""
        cfg = app_settings or settings.app
        return cls(
            limiter=limiter,
            crm=crm,
            max_body_bytes=cfg.max_body_bytes,
            require_name=cfg.require_name,
            coupon_code=cfg.coupon_code,
            default_source=cfg.default_source,
            default_page_path=cfg.default_page_path,
            rate_limit_enabled=cfg.rate_limit_enabled,
            rate_limit_headers=cfg.rate_limit_include_headers,
        )

    def _check_method(self, method: str) -> LeadIntakeResult | None:
        method = method.upper()
        if method == "OPTIONS":
            return LeadIntakeResult(status_code=204, payload=None, headers={"Allow": PREFLIGHT_ALLOW})
        if method != "POST":
            raise MethodNotAllowedAppError(
                code="method_not_allowed",
                message=METHOD_NOT_ALLOWED_MESSAGE,
                details={"allow": POST_ALLOW},
                headers={"Allow": POST_ALLOW},
            )
        return None

    def _rate_limit_headers(self, result: RateLimitResult) -> dict[str, str]:
        if not self.rate_limit_headers:
            return {}
        return {
            "Retry-After": str(result.retry_after_seconds or 0),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

    def _enforce_rate_limit(self, client_ip: str) -> None:
        """Consume one request from the client's budget.

        Raises:
            RateLimitAppError: When the client exceeded its quota.
        """
        if not self.rate_limit_enabled:
            return

        result = self.limiter.consume(client_ip)
        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={"client_hash": _hash_client(client_ip), "remaining": result.remaining},
            )
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "client_hash": _hash_client(client_ip),
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        raise RateLimitAppError(
            code="rate_limited",
            message=RATE_LIMITED_MESSAGE,
            details={
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
                "retry_after": result.retry_after_seconds or 0,
            },
            headers=self._rate_limit_headers(result),
        )

    def _extract(self, payload: dict[str, Any], user_agent: str, now: datetime) -> LeadSubmission:
        """Coerce raw JSON fields into a submission, applying defaults."""
        created_at_client = _text(payload, "createdAt")
        page_path = _text(payload, "pagePath")
        body_user_agent = _text(payload, "userAgent")

        return LeadSubmission(
            name=_text(payload, "name") or "",
            email=_text(payload, "email") or "",
            source=_text(payload, "source") or self.default_source,
            created_at_client=created_at_client if created_at_client is not None else _iso_timestamp(now),
            page_path=page_path or self.default_page_path,
            user_agent=body_user_agent if body_user_agent is not None else (user_agent or ""),
            company=_text(payload, "company") or "",
        )

    def _validate(self, submission: LeadSubmission) -> None:
        """Check the visible fields of a submission.

        Raises:
            ValidationAppError: If the name (when required) or email is invalid.
        """
        if self.require_name and len(submission.name) < MIN_NAME_LENGTH:
            raise ValidationAppError(code="invalid_name", message=MISSING_NAME_MESSAGE)

        if not is_valid_email(submission.email):
            raise ValidationAppError(code="invalid_email", message=INVALID_EMAIL_MESSAGE)

    async def _forward(self, lead: Lead) -> None:
        """Upsert the lead in the CRM.

        Raises:
            CRMAppError: If the CRM rejected the contact or was unreachable.
        """
        result = await self.crm.upsert_contact(lead)

        if isinstance(result, Failed):
            logger.error(
                "crm.forward_failed",
                extra={"upstream_message": result.message, "upstream_status": result.status_code},
            )
            raise CRMAppError(
                code="crm_forward_failed",
                message=CRM_FAILED_MESSAGE,
                details={"upstream_message": result.message},
            )
        if isinstance(result, Forwarded):
            logger.info("crm.forwarded", extra={"action": result.action})
        elif isinstance(result, Skipped):
            logger.info("crm.skipped", extra={"reason": result.reason})

    async def handle(
        self,
        method: str,
        raw_body: bytes | str,
        client_ip: str,
        user_agent: str = "",
    ) -> LeadIntakeResult:
        """Run a promo form submission through the intake pipeline.

        Args:
            method: HTTP method of the request.
            raw_body: Undecoded request body.
            client_ip: Originating client address (rate limit key).
            user_agent: ``User-Agent`` header, used when the body has none.

        Returns:
            LeadIntakeResult for pre-flight, honeypot and accepted submissions.

        Raises:
            MethodNotAllowedAppError: Method other than POST/OPTIONS.
            PayloadTooLargeAppError: Body above ``max_body_bytes``.
            RateLimitAppError: Client exceeded its quota.
            ValidationAppError: Malformed body or invalid name/email.
            CRMAppError: Lead could not be forwarded.
        """
        preflight = self._check_method(method)
        if preflight is not None:
            return preflight

        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")
        if len(raw_body) > self.max_body_bytes:
            raise payload_too_large(self.max_body_bytes, len(raw_body))

        client_ip = client_ip or UNKNOWN_CLIENT
        self._enforce_rate_limit(client_ip)

        payload = parse_json_body(raw_body)
        now = self._now()
        submission = self._extract(payload, user_agent, now)

        if submission.is_bot:
            logger.info("lead.honeypot_triggered", extra={"client_hash": _hash_client(client_ip)})
            return LeadIntakeResult(status_code=200, payload=PromoLeadResponse().model_dump(exclude_none=True))

        self._validate(submission)

        lead = Lead(
            name=submission.name or None,
            email=submission.email.lower(),
            source=submission.source,
            created_at=_iso_timestamp(now),
            created_at_client=submission.created_at_client,
            page_path=submission.page_path,
            user_agent=submission.user_agent,
            client_ip=client_ip,
        )
        logger.info("lead.accepted", extra={"lead": lead.to_log_dict()})

        await self._forward(lead)

        return LeadIntakeResult(
            status_code=200,
            payload=PromoLeadResponse(coupon=self.coupon_code).model_dump(exclude_none=True),
        )
