"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment so settings never come from a developer's .env
file or a real CRM token.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["HUBSPOT_PROVIDER"] = "none"
os.environ.pop("HUBSPOT_ACCESS_TOKEN", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.crm.base import AbstractCRMClient, Forwarded
from app.core.app_factory import create_app
from app.core.rate_limit import reset_rate_limiter


@pytest.fixture(autouse=True)
def _fresh_rate_limiter():
    """Every test starts with empty rate-limit windows."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def fake_crm() -> AsyncMock:
    """CRM client double that accepts every contact as an update."""
    crm = AsyncMock(spec=AbstractCRMClient)
    crm.upsert_contact.return_value = Forwarded(action="updated")
    return crm


@pytest.fixture
def app(fake_crm: AsyncMock) -> FastAPI:
    return create_app(crm_client=fake_crm, serve_static=False)


@pytest.fixture
def client(app: FastAPI):
    with TestClient(app) as test_client:
        yield test_client
