"""HubSpot CRM client adapter.

Contacts are upserted by email with two calls at most:
PATCH the contact keyed by email, and POST a new contact when HubSpot answers
404. Any other non-2xx status (or a transport error) is reported as Failed.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from app.adapters.crm.base import AbstractCRMClient, Failed, Forwarded, ForwardResult
from app.schemas.lead import Lead

logger = logging.getLogger(__name__)

CONTACTS_PATH = "/crm/v3/objects/contacts"

# Upstream error bodies can be large HTML pages
_MAX_ERROR_TEXT = 300


def build_contact_properties(lead: Lead) -> dict[str, str]:
    """Map a lead to HubSpot contact properties.

    The first word of the name becomes ``firstname`` and the rest
    ``lastname``; empty parts are left out so an update never blanks
    existing values.
    """
    properties = {"email": lead.email}
    parts = (lead.name or "").split()
    if parts:
        properties["firstname"] = parts[0]
    if len(parts) > 1:
        properties["lastname"] = " ".join(parts[1:])
    return properties


def extract_error_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        data: Any = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

    text = response.text.strip()
    if text:
        return text[:_MAX_ERROR_TEXT]
    return f"HTTP {response.status_code}"


class HubSpotClient(AbstractCRMClient):
    """Async client for the HubSpot CRM v3 contacts API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.hubapi.com",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HubSpot client.

        Args:
            access_token: Private app token sent as a bearer credential.
            base_url: API root URL.
            timeout_seconds: Timeout applied to every request.
            transport: Optional httpx transport (used by tests).
        """
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upsert_contact(self, lead: Lead) -> ForwardResult:
        payload = {"properties": build_contact_properties(lead)}

        try:
            response = await self._client.patch(
                f"{CONTACTS_PATH}/{quote(lead.email, safe='')}",
                params={"idProperty": "email"},
                json=payload,
            )
            if response.status_code == 404:
                logger.debug("crm.contact_not_found", extra={"action": "create"})
                response = await self._client.post(CONTACTS_PATH, json=payload)
                action = "created"
            else:
                action = "updated"
        except httpx.HTTPError as exc:
            return Failed(message=f"HubSpot request failed: {type(exc).__name__}: {exc}")

        if response.is_success:
            return Forwarded(action=action)

        return Failed(
            message=extract_error_message(response),
            status_code=response.status_code,
        )
