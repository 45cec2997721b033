"""Tests for the static landing-page mount."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import AppSettings
from app.core.static_site import resolve_static_root


@pytest.fixture
def site(tmp_path: Path) -> Path:
    (tmp_path / "index.html").write_text("<h1>Home</h1>", encoding="utf-8")
    (tmp_path / "promo-email").mkdir()
    (tmp_path / "promo-email" / "index.html").write_text("<h1>Promo</h1>", encoding="utf-8")
    (tmp_path / "styles.css").write_text("body{}", encoding="utf-8")
    return tmp_path


@pytest.fixture
def site_client(site: Path, fake_crm: AsyncMock):
    app = create_app(crm_client=fake_crm, static_root=site)
    with TestClient(app) as client:
        yield client


def test_root_serves_index(site_client: TestClient):
    resp = site_client.get("/")

    assert resp.status_code == 200
    assert "Home" in resp.text
    assert resp.headers["content-type"].startswith("text/html")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Robots-Tag" not in resp.headers


def test_promo_page_is_noindex(site_client: TestClient):
    resp = site_client.get("/promo-email/")

    assert resp.status_code == 200
    assert "Promo" in resp.text
    assert resp.headers["X-Robots-Tag"] == "noindex, nofollow"


def test_content_type_by_extension(site_client: TestClient):
    resp = site_client.get("/styles.css")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/css")


def test_missing_file_is_plain_text_404(site_client: TestClient):
    resp = site_client.get("/nope.html")

    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "Not Found"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_unknown_api_path_is_json_404(site_client: TestClient):
    resp = site_client.get("/api/unknown")

    assert resp.status_code == 404
    assert resp.json() == {"ok": False, "error": "Not Found"}
    assert resp.headers["Cache-Control"] == "no-store"


def test_traversal_is_not_served(site_client: TestClient, site: Path):
    (site.parent / "secret.txt").write_text("top secret", encoding="utf-8")

    resp = site_client.get("/..%2Fsecret.txt")

    assert resp.status_code == 404
    assert "top secret" not in resp.text


def test_api_route_wins_over_static_mount(site_client: TestClient):
    resp = site_client.post("/api/promo-lead", json={"name": "Jane", "email": "jane@example.com"})

    assert resp.json() == {"ok": True, "coupon": "BEST10"}
    assert "X-Content-Type-Options" not in resp.headers


def test_resolve_static_root_missing_dir(tmp_path: Path):
    settings = AppSettings(static_root=str(tmp_path / "does-not-exist"))

    assert resolve_static_root(settings) is None


def test_resolve_static_root_existing_dir(site: Path):
    settings = AppSettings(static_root=str(site))

    assert resolve_static_root(settings) == site.resolve()
