"""
tests/conftest.py -- Shared test fixtures for authkit.

This module provides:
  - make_settings(): Settings with fixed secrets and the cheapest bcrypt cost
  - store / issuer / service: unit-level fixtures over an in-memory UserStore
  - _patch_lifespan(): wires a test AuthService into app.state, bypassing real startup
  - api_client: TestClient over the real FastAPI app with an isolated DB

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs `def` route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Each api_client gets a uniquely named DB so tests never
see each other's users.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates signing secrets in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate signing secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import Settings

ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012345678"


def make_settings(**overrides) -> Settings:
    """Settings for tests: fixed secrets, bcrypt cost 4, no .env file."""
    values = {
        "debug": True,
        "access_token_secret": ACCESS_SECRET,
        "refresh_token_secret": REFRESH_SECRET,
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings)


@pytest.fixture
def service(store: UserStore, issuer: TokenIssuer, settings: Settings) -> AuthService:
    return AuthService(store, issuer, settings)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and a service built from test settings into
    app.state so routes never touch the on-disk database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.auth_service = AuthService(user_store, TokenIssuer(settings), settings)
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, UserStore], None, None]:
    """Yield (client, user_store) over an isolated shared-memory database."""
    test_settings = make_settings()
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=db_url)

    app.router.lifespan_context = _patch_lifespan(test_settings, user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store

    user_store.close()
