"""CRM adapter layer - forwards accepted leads to an external CRM."""

from app.adapters.crm.base import (
    AbstractCRMClient,
    DisabledCRMClient,
    Failed,
    Forwarded,
    ForwardResult,
    Skipped,
)
from app.adapters.crm.factory import create_crm_client
from app.adapters.crm.hubspot import HubSpotClient

__all__ = [
    "AbstractCRMClient",
    "DisabledCRMClient",
    "Failed",
    "Forwarded",
    "ForwardResult",
    "HubSpotClient",
    "Skipped",
    "create_crm_client",
]
