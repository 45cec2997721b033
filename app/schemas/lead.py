"""Pydantic schemas for promo lead submissions and responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LeadSubmission(BaseModel):
    """Trimmed, string-coerced view of a submitted promo form.

    Built by the intake service from the raw JSON body; missing or
    non-string fields have already been replaced by defaults.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    source: str
    created_at_client: str
    page_path: str
    user_agent: str
    company: str = Field(
        "",
        description="Honeypot field. Hidden from humans; must stay empty.",
    )

    @property
    def is_bot(self) -> bool:
        return bool(self.company)


class Lead(BaseModel):
    """An accepted lead, ready to be logged and forwarded to the CRM.

    Immutable and request-scoped: leads are never persisted by this service.
    Serializes with the camelCase keys used by the landing-page form.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str | None = Field(
        default=None,
        description="Visible name, only collected when the name variant is enabled.",
    )
    email: str = Field(..., description="Lowercased, format-validated email address.")
    source: str = Field(..., description="Campaign/source tag of the form.")
    created_at: str = Field(
        ...,
        alias="createdAt",
        description="Server-side ISO-8601 UTC timestamp.",
    )
    created_at_client: str = Field(
        ...,
        alias="createdAtClient",
        description="Client-supplied timestamp (unvalidated).",
    )
    page_path: str = Field(..., alias="pagePath")
    user_agent: str = Field("", alias="userAgent")
    client_ip: str = Field(..., alias="clientIp")

    def to_log_dict(self) -> dict[str, str | None]:
        return self.model_dump(by_alias=True)


class PromoLeadResponse(BaseModel):
    """Successful intake response. ``coupon`` is absent for honeypot hits."""

    ok: Literal[True] = True
    coupon: str | None = None


class PromoLeadError(BaseModel):
    """Error body shared by every rejected submission."""

    ok: Literal[False] = False
    error: str
