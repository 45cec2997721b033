"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
static pages and the CRM client lifecycle).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.crm.base import AbstractCRMClient
from app.adapters.crm.factory import create_crm_client
from app.api.routes import health_router, promo_lead_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware, static_headers_middleware
from app.core.static_site import mount_static_site, resolve_static_root


def create_app(
    *,
    crm_client: AbstractCRMClient | None = None,
    static_root: Path | None = None,
    serve_static: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        crm_client: CRM client to use instead of the configured one.
        static_root: Landing-page directory; resolved from settings when None.
        serve_static: Mount the landing pages at all.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and pages.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client = crm_client if crm_client is not None else create_crm_client()
        app.state.crm_client = client
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(
        title="Promo Lead API",
        description=(
            "Landing-page server for the promotional lead-capture form. "
            "Validates submissions, rate limits per client IP, forwards leads "
            "to the CRM and returns the promo coupon."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware (last registered runs first)
    app.middleware("http")(static_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(promo_lead_router)
    app.include_router(health_router)

    # Static pages go last: the mount matches every path
    if serve_static:
        mount_static_site(app, static_root or resolve_static_root())

    return app
