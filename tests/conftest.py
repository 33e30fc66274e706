"""
tests/conftest.py -- Shared test fixtures for Overseer.

This module provides:
  - settings / tokens / store / service: unit-level fixtures over a private
    in-memory database and a fixed signing key
  - _patch_lifespan(): wires test objects into app.state, bypassing real startup
  - api_client: TestClient plus an administrator token for route tests

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI shares one in-memory instance across all
connections in the same process.

Environment variables are set before any project import so get_settings()
(used by the rate limiter) sees them on first call.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("SECRET_TOKEN", "test-signing-key-0123456789abcdef0123456789")
os.environ.setdefault("API_JWT_TOKEN_LIFESPAN_MINUTES", "15")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import DEFAULT_ADMIN_LOGIN, DEFAULT_ADMIN_PASSWORD, AccountService
from auth.store import AccountStore, DeviceStore
from auth.tokens import TokenService
from core.config import Settings

TEST_SECRET = "unit-test-signing-key-abcdefghijklmnopqrstuvwxyz"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(secret_token=TEST_SECRET, api_jwt_token_lifespan_minutes="15")


@pytest.fixture
def tokens(settings: Settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def device_store() -> Generator[DeviceStore, None, None]:
    s = DeviceStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: AccountStore, tokens: TokenService) -> AccountService:
    return AccountService(store, tokens)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AccountService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test service into app.state so routes hit an isolated
    in-memory database, and runs the same bootstrap the real lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = service.store
        app.state.token_service = service.tokens
        app.state.account_service = service
        service.bootstrap_default_admin()
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, admin_token) for API integration tests.

    One client per test module. The admin token comes from a real login
    against the bootstrapped default administrator.
    """
    store = AccountStore("sqlite:///file:overseer_test_api?mode=memory&cache=shared&uri=true")
    service = AccountService(
        store,
        TokenService(Settings(secret_token=TEST_SECRET, api_jwt_token_lifespan_minutes="15")),
    )
    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        resp = client.post(
            "/api/v1/auth/login",
            json={"login": DEFAULT_ADMIN_LOGIN, "password": DEFAULT_ADMIN_PASSWORD},
        )
        assert resp.status_code == 200, resp.text
        yield client, resp.json()["access_token"]

    store.close()
