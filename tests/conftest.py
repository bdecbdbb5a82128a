"""
tests/conftest.py -- Shared test fixtures for VaultDesk tests.

This module provides:
  - make_test_stores(): creates isolated in-memory DBs for users + records
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a pre-registered user and its bearer token
  - register_and_login(): helper for tests that need a second identity

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DEBUG must be set before any app import so get_settings() auto-generates
SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.models import DEFAULT_PERMISSIONS, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenCodec
from records.store import RecordStore

TEST_SECRET = "test-signing-key-" + "x" * 32

# bcrypt's minimum cost keeps the suite fast; the algorithm is unchanged.
FAST_ROUNDS = 4

OWNER_EMAIL = "owner@example.com"
OWNER_PASSWORD = "ownerpass123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_stores(db_suffix: str) -> tuple[UserStore, RecordStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_vault_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=url), RecordStore(db_url=url)


def _patch_lifespan(user_store: UserStore, records: RecordStore, hasher: PasswordHasher, codec: TokenCodec):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, user_store=user_store, records=records, hasher=hasher, codec=codec)
        yield

    return test_lifespan


def register_and_login(client: TestClient, email: str, password: str) -> str:
    """Register a user through the API and return a bearer token for it."""
    resp = client.post("/api/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=FAST_ROUNDS)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET, default_ttl=3600)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def records() -> Generator[RecordStore, None, None]:
    store = RecordStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Module-scoped API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores. The
    owner user is created before the client starts and its token is issued
    with the same codec the app verifies with.
    """
    user_store, records = make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    hasher = PasswordHasher(rounds=FAST_ROUNDS)
    codec = TokenCodec(TEST_SECRET, default_ttl=3600)

    owner = user_store.save(User(email=OWNER_EMAIL, hashed_password=hasher.hash(OWNER_PASSWORD)))
    token = codec.issue(str(owner.id), email=owner.email, permissions=DEFAULT_PERMISSIONS)

    app.router.lifespan_context = _patch_lifespan(user_store, records, hasher, codec)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, owner.id

    records.close()
    user_store.close()
