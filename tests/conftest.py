"""
tests/conftest.py -- Shared test fixtures for CredCore.

This module provides:
  - store / hasher / issuer / service: isolated core components per test
  - api_client: TestClient over the real FastAPI app with a patched lifespan
  - isolated_client: per-test TestClient for tests that damage the store

Design: stores use a SQLite file under pytest's tmp_path rather than
':memory:'. TestClient runs sync route handlers in a thread pool and the
concurrency tests insert from several threads; a file database gives every
connection the same schema and lets SQLite's busy timeout serialize writers.

bcrypt runs at its minimum work factor (4) so the suite stays fast. Every
issuer gets its own random secret -- nothing is shared between tests.

The DEBUG env var is set before any project import so get_settings() can
auto-generate SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
import secrets
from collections.abc import Generator
from contextlib import asynccontextmanager

# Set DEBUG before any core import so get_settings() can auto-generate
# SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import CredentialStore
from auth.tokens import SessionIssuer

FAST_ROUNDS = 4


# ---------------------------------------------------------------------------
# Core component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path) -> Generator[CredentialStore, None, None]:
    s = CredentialStore(f"sqlite:///{tmp_path / 'users.db'}")
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=FAST_ROUNDS)


@pytest.fixture
def issuer() -> SessionIssuer:
    return SessionIssuer(secret=secrets.token_hex(32))


@pytest.fixture
def service(store: CredentialStore, hasher: PasswordHasher, issuer: SessionIssuer) -> AuthService:
    return AuthService(store, hasher, issuer)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires a pre-built test service into app.state so routes see an isolated
    database and a per-module secret rather than Settings.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_service = service
        app.state.secure_cookies = False
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(tmp_path_factory) -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) for API integration tests.

    base_url uses localhost so requests pass TrustedHostMiddleware.
    """
    db_path = tmp_path_factory.mktemp("api") / "users.db"
    store = CredentialStore(f"sqlite:///{db_path}")
    service = AuthService(
        store,
        PasswordHasher(rounds=FAST_ROUNDS),
        SessionIssuer(secret=secrets.token_hex(32)),
    )

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield client, service

    store.close()


@pytest.fixture
def isolated_client(tmp_path) -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) over a fresh database for tests that break things.

    Function-scoped so a test may damage the store without affecting others.
    raise_server_exceptions=False lets the catch-all 500 handler's response
    reach the test instead of the exception being re-raised.
    """
    store = CredentialStore(f"sqlite:///{tmp_path / 'isolated.db'}")
    service = AuthService(
        store,
        PasswordHasher(rounds=FAST_ROUNDS),
        SessionIssuer(secret=secrets.token_hex(32)),
    )

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=False) as client:
        yield client, service

    app.dependency_overrides.clear()
    store.close()
