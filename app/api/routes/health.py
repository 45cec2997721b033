from __future__ import annotations

from fastapi import APIRouter, Request

from app.adapters.crm.base import DisabledCRMClient

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Used by load balancers and uptime probes. Also reports whether accepted
    leads are forwarded to the CRM, so a missing token shows up without
    submitting a test lead.

    Returns:
        dict: ``{"status": "ok", "crm": "enabled" | "disabled"}``.
    """
    crm = getattr(request.app.state, "crm_client", None)
    forwarding = crm is not None and not isinstance(crm, DisabledCRMClient)
    return {"status": "ok", "crm": "enabled" if forwarding else "disabled"}
