"""CRM client interface and forwarding results.

Forwarding never raises for upstream failures: it returns a tagged result so
the intake service handles every outcome explicitly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Union

from app.schemas.lead import Lead


@dataclass(frozen=True)
class Skipped:
    """Forwarding is not configured; the lead was only logged."""

    reason: str = "crm_not_configured"


@dataclass(frozen=True)
class Forwarded:
    """The contact was stored upstream."""

    action: Literal["updated", "created"]


@dataclass(frozen=True)
class Failed:
    """The CRM rejected the contact or could not be reached."""

    message: str
    status_code: int | None = None


ForwardResult = Union[Skipped, Forwarded, Failed]


class AbstractCRMClient(ABC):
    """Interface for CRM clients that upsert contacts by email."""

    @abstractmethod
    async def upsert_contact(self, lead: Lead) -> ForwardResult:
        """Create or update the contact for ``lead``.

        Args:
            lead: Accepted lead to forward.

        Returns:
            ForwardResult describing what happened upstream.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the client."""


class DisabledCRMClient(AbstractCRMClient):
    """CRM client used when no provider credentials are configured."""

    def __init__(self, reason: str = "crm_not_configured") -> None:
        self.reason = reason

    async def upsert_contact(self, lead: Lead) -> ForwardResult:
        return Skipped(reason=self.reason)
