"""Tests for the promo lead API route.

The CRM client is replaced by the ``fake_crm`` fixture (see conftest.py),
and the process-wide rate limiter is reset before every test.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from app.adapters.crm.base import DisabledCRMClient, Failed, Forwarded, Skipped
from app.adapters.crm.hubspot import HubSpotClient
from app.core.app_factory import create_app
from app.core.config import settings
from app.core.rate_limit import get_rate_limiter

PATH = "/api/promo-lead"
VALID_LEAD = {"name": "Jane Doe", "email": "jane@example.com"}


def test_valid_lead_returns_coupon(client: TestClient, fake_crm: AsyncMock) -> None:
    resp = client.post(PATH, json=VALID_LEAD)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "coupon": "BEST10"}
    assert resp.headers["Cache-Control"] == "no-store"
    fake_crm.upsert_contact.assert_awaited_once()


def test_lead_uses_forwarded_ip_and_user_agent(client: TestClient, fake_crm: AsyncMock) -> None:
    client.post(
        PATH,
        json=VALID_LEAD,
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "Browser/1.0"},
    )

    lead = fake_crm.upsert_contact.await_args.args[0]
    assert lead.client_ip == "203.0.113.7"
    assert lead.user_agent == "Browser/1.0"


def test_preflight_returns_204_with_allow(client: TestClient) -> None:
    resp = client.options(PATH)

    assert resp.status_code == 204
    assert resp.headers["Allow"] == "POST, OPTIONS"
    assert resp.headers["Cache-Control"] == "no-store"
    assert resp.content == b""


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
def test_wrong_method_returns_405(client: TestClient, method: str) -> None:
    resp = client.request(method, PATH)

    assert resp.status_code == 405
    assert resp.headers["Allow"] == "POST"
    assert resp.json() == {"ok": False, "error": "Method not allowed."}


def test_malformed_json_returns_400(client: TestClient, fake_crm: AsyncMock) -> None:
    resp = client.post(PATH, content=b"{not json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Invalid request body."}
    assert resp.headers["Cache-Control"] == "no-store"
    fake_crm.upsert_contact.assert_not_called()


def test_invalid_email_returns_400(client: TestClient) -> None:
    resp = client.post(PATH, json={"name": "Jane", "email": "not-an-email"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Please send a valid email address."}


def test_short_email_passes(client: TestClient) -> None:
    resp = client.post(PATH, json={"name": "Jane", "email": "a@b.co"})

    assert resp.status_code == 200


def test_missing_name_returns_400(client: TestClient) -> None:
    resp = client.post(PATH, json={"email": "jane@example.com"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Please send your name."}


def test_honeypot_returns_ok_without_coupon(client: TestClient, fake_crm: AsyncMock) -> None:
    resp = client.post(PATH, json={**VALID_LEAD, "company": "Bots R Us"})

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    fake_crm.upsert_contact.assert_not_called()


def test_oversized_body_returns_413(client: TestClient, fake_crm: AsyncMock) -> None:
    body = json.dumps({**VALID_LEAD, "padding": "x" * (16 * 1024)})

    resp = client.post(PATH, content=body, headers={"Content-Type": "application/json"})

    assert resp.status_code == 413
    assert resp.json() == {"ok": False, "error": "Payload too large."}
    fake_crm.upsert_contact.assert_not_called()


def test_oversized_body_is_not_rate_limited(client: TestClient) -> None:
    big = b"x" * (16 * 1024 + 1)
    for _ in range(10):
        assert client.post(PATH, content=big).status_code == 413

    assert client.post(PATH, json=VALID_LEAD).status_code == 200


def test_sixth_request_returns_429(client: TestClient) -> None:
    headers = {"X-Forwarded-For": "198.51.100.23"}
    for _ in range(5):
        assert client.post(PATH, json=VALID_LEAD, headers=headers).status_code == 200

    resp = client.post(PATH, json=VALID_LEAD, headers=headers)

    assert resp.status_code == 429
    assert resp.json() == {"ok": False, "error": "Too many requests. Try again later."}
    assert resp.headers["X-RateLimit-Limit"] == str(settings.app.rate_limit_requests)
    assert int(resp.headers["Retry-After"]) > 0

    # Other clients keep their own window
    other = client.post(PATH, json=VALID_LEAD, headers={"X-Forwarded-For": "198.51.100.99"})
    assert other.status_code == 200


def test_rate_limiter_is_shared_across_requests(client: TestClient) -> None:
    client.post(PATH, json=VALID_LEAD, headers={"X-Forwarded-For": "192.0.2.1"})
    client.post(PATH, json=VALID_LEAD, headers={"X-Forwarded-For": "192.0.2.1"})

    assert len(get_rate_limiter().hits("192.0.2.1")) == 2


def test_crm_404_then_create_returns_coupon(client: TestClient, fake_crm: AsyncMock) -> None:
    fake_crm.upsert_contact.return_value = Forwarded(action="created")

    resp = client.post(PATH, json=VALID_LEAD)

    assert resp.json() == {"ok": True, "coupon": "BEST10"}


class _HubSpotReplay:
    """Serves canned HubSpot responses in order and records each request."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.method)
        return self.responses.pop(0)


def _hubspot_app(replay: _HubSpotReplay):
    crm = HubSpotClient(
        access_token="pat-test-token",
        base_url="https://crm.test",
        transport=httpx.MockTransport(replay),
    )
    return create_app(crm_client=crm, serve_static=False)


def test_hubspot_missing_contact_is_created_and_coupon_returned() -> None:
    replay = _HubSpotReplay(
        httpx.Response(404, json={"message": "resource not found"}),
        httpx.Response(201, json={"id": "101"}),
    )

    with TestClient(_hubspot_app(replay)) as client:
        resp = client.post(PATH, json=VALID_LEAD)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "coupon": "BEST10"}
    assert replay.calls == ["PATCH", "POST"]


def test_hubspot_server_error_returns_502_without_create() -> None:
    replay = _HubSpotReplay(httpx.Response(500, json={"message": "internal error"}))

    with TestClient(_hubspot_app(replay)) as client:
        resp = client.post(PATH, json=VALID_LEAD)

    assert resp.status_code == 502
    assert resp.json()["ok"] is False
    assert "internal error" not in resp.text
    assert replay.calls == ["PATCH"]


def test_crm_not_configured_still_returns_coupon(client: TestClient, fake_crm: AsyncMock) -> None:
    fake_crm.upsert_contact.return_value = Skipped()

    resp = client.post(PATH, json=VALID_LEAD)

    assert resp.status_code == 200
    assert resp.json()["coupon"] == "BEST10"


def test_crm_failure_returns_502(client: TestClient, fake_crm: AsyncMock) -> None:
    fake_crm.upsert_contact.return_value = Failed(message="token expired", status_code=401)

    resp = client.post(PATH, json=VALID_LEAD)

    assert resp.status_code == 502
    body = resp.json()
    assert body["ok"] is False
    assert "token expired" not in body["error"]
    fake_crm.upsert_contact.assert_awaited_once()


def test_unexpected_crm_exception_returns_500(app, fake_crm: AsyncMock) -> None:
    fake_crm.upsert_contact.side_effect = RuntimeError("socket exploded")

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.post(PATH, json=VALID_LEAD)

    assert resp.status_code == 500
    assert resp.json() == {"ok": False, "error": "Internal server error."}


def test_crm_client_closed_on_shutdown(app, fake_crm: AsyncMock) -> None:
    with TestClient(app):
        pass

    fake_crm.aclose.assert_awaited_once()


def test_health_reports_crm_forwarding(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "crm": "enabled"}


def test_health_reports_disabled_crm() -> None:
    app = create_app(crm_client=DisabledCRMClient(), serve_static=False)
    with TestClient(app) as client:
        resp = client.get("/health")

    assert resp.json() == {"status": "ok", "crm": "disabled"}
