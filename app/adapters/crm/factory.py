"""Factory pattern for creating CRM client instances."""

import logging

from app.adapters.crm.base import AbstractCRMClient, DisabledCRMClient
from app.adapters.crm.hubspot import HubSpotClient
from app.core.config import CRMSettings, settings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def create_crm_client(crm_settings: CRMSettings | None = None) -> AbstractCRMClient:
    """Factory function to instantiate CRM clients based on provider.

    Reads configuration from app.core.config.settings (Pydantic Settings)
    unless explicit settings are passed.

    Returns:
        AbstractCRMClient: HubSpot client, or a disabled client when the
            provider is "none" or no access token is configured.

    Raises:
        ValidationAppError: If the provider name is unknown.
    """
    cfg = crm_settings or settings.crm
    provider = cfg.provider.lower()

    if provider == "none":
        return DisabledCRMClient(reason="crm_disabled")

    if provider == "hubspot":
        if not cfg.access_token:
            logger.warning(
                "crm.not_configured",
                extra={"provider": provider, "hint": "Set HUBSPOT_ACCESS_TOKEN to forward leads"},
            )
            return DisabledCRMClient()
        return HubSpotClient(
            access_token=cfg.access_token,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise ValidationAppError(
        code="crm_unknown_provider",
        message=f"Unknown CRM provider: '{provider}'. Supported providers: hubspot, none",
    )
