from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.adapters.crm.base import AbstractCRMClient, DisabledCRMClient
from app.core.body_limits import read_body_limited
from app.core.client_ip import get_client_ip
from app.core.config import settings
from app.core.exception_handlers import NO_STORE_HEADERS
from app.core.rate_limit import get_rate_limiter
from app.schemas.lead import PromoLeadError, PromoLeadResponse
from app.services.lead_service import LeadIntakeService

router = APIRouter(tags=["Leads"])

PROMO_LEAD_PATH = "/api/promo-lead"
_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_crm_client(request: Request) -> AbstractCRMClient:
    """Return the CRM client created at application startup."""
    crm = getattr(request.app.state, "crm_client", None)
    return crm if crm is not None else DisabledCRMClient()


def get_lead_service(crm: AbstractCRMClient = Depends(get_crm_client)) -> LeadIntakeService:
    """Build the intake service around the shared limiter and CRM client."""
    return LeadIntakeService.from_settings(limiter=get_rate_limiter(), crm=crm)


@router.api_route(
    PROMO_LEAD_PATH,
    methods=_ALL_METHODS,
    response_model=PromoLeadResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": PromoLeadError},
        405: {"model": PromoLeadError},
        413: {"model": PromoLeadError},
        429: {"model": PromoLeadError},
        502: {"model": PromoLeadError},
    },
)
async def promo_lead(
    request: Request,
    service: LeadIntakeService = Depends(get_lead_service),
) -> Response:
    """Capture a promo form lead and return the coupon code.

    Accepts a JSON body ``{name?, email, source?, createdAt?, pagePath?,
    userAgent?, company?}``. ``company`` is a honeypot and must stay empty.

    Returns:
        ``{"ok": true, "coupon": "..."}`` for accepted leads, ``{"ok": true}``
        for honeypot hits, 204 for pre-flight requests.

    Raises:
        AppError subclasses, rendered as ``{"ok": false, "error": "..."}``.
    """
    raw_body = b""
    if request.method == "POST":
        raw_body = await read_body_limited(request, settings.app.max_body_bytes)

    result = await service.handle(
        request.method,
        raw_body,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
    )

    headers = {**NO_STORE_HEADERS, **result.headers}
    if result.payload is None:
        return Response(status_code=result.status_code, headers=headers)
    return JSONResponse(status_code=result.status_code, content=result.payload, headers=headers)
