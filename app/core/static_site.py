"""Static landing-page serving.

Starlette's ``StaticFiles`` handles the file plumbing: directory index
(``index.html``), content types, path traversal protection and 404s.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.core.config import AppSettings, settings

logger = logging.getLogger(__name__)

DEFAULT_STATIC_DIRNAME = "public"


def resolve_static_root(app_settings: AppSettings | None = None) -> Path | None:
    """Return the landing-page directory, or None when there is nothing to serve."""
    cfg = app_settings or settings.app
    root = Path(cfg.static_root) if cfg.static_root else Path.cwd() / DEFAULT_STATIC_DIRNAME
    root = root.resolve()
    if not root.is_dir():
        logger.info("static_site.disabled", extra={"static_root": str(root)})
        return None
    return root


def mount_static_site(app: FastAPI, static_root: Path | None) -> bool:
    """Mount the landing pages at ``/``.

    Must run after the API routers are included: the mount matches every
    path, so routes registered later would be unreachable.

    Returns:
        True if a mount was installed.
    """
    if static_root is None:
        return False

    app.mount("/", StaticFiles(directory=static_root, html=True), name="site")
    logger.info("static_site.mounted", extra={"static_root": str(static_root)})
    return True
