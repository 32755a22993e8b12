"""
tests/conftest.py -- Shared test fixtures for the SSO service tests.

This module provides:
  - make_store(): isolated named shared-memory SQLite CredentialStore
  - _patch_lifespan(): wires a test store and service into app.state
  - store / service / ctx: unit-test fixtures
  - api_client: TestClient against the real app with an isolated store

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

bcrypt runs at the minimum cost (4 rounds) in the tests, apart from one check
that the unknown-email dummy hash follows a production cost.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import SQLCredentialStore
from core.config import Settings
from core.context import RequestContext

TEST_ROUNDS = 4
TEST_TTL = timedelta(hours=1)
APP_SECRET = "test-secret"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_store(db_suffix: str | None = None) -> SQLCredentialStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name. Defaults to a random
                   one so every call gets a fresh database.
    """
    suffix = db_suffix or uuid.uuid4().hex
    return SQLCredentialStore(f"sqlite:///file:test_sso_{suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: SQLCredentialStore, settings: Settings):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.store = store
        app.state.auth_service = AuthService(store, token_ttl=settings.token_ttl, bcrypt_rounds=settings.bcrypt_rounds)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[SQLCredentialStore, None, None]:
    """Fresh store with one app (id 1, secret APP_SECRET) provisioned."""
    s = make_store()
    s.create_app("test-app", APP_SECRET)
    yield s
    s.close()


@pytest.fixture
def service(store: SQLCredentialStore) -> AuthService:
    return AuthService(store, token_ttl=TEST_TTL, bcrypt_rounds=TEST_ROUNDS)


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext.background()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, SQLCredentialStore, Settings], None, None]:
    """Yield (client, store, settings) for API integration tests.

    The store has one app provisioned: id 1, secret APP_SECRET.
    base_url uses localhost so TrustedHostMiddleware accepts the requests.
    """
    store = make_store()
    store.create_app("test-app", APP_SECRET)
    settings = Settings(bcrypt_rounds=TEST_ROUNDS, token_ttl=TEST_TTL)

    app.router.lifespan_context = _patch_lifespan(store, settings)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield client, store, settings

    store.close()
