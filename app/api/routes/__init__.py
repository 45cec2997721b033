from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.promo_lead import router as promo_lead_router

__all__ = ["health_router", "promo_lead_router"]
