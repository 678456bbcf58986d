"""
tests/conftest.py -- Shared test fixtures for the CasinoVizion integration tests.

This module provides:
  - _make_test_stores(): isolated in-memory DBs for the auth and panel stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api / web: a Harness per test, with fresh identity and backend mocks
  - Harness.login_as(): record a user and an open session, return its app token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

Environment variables must be set before any core/auth import so
get_settings() sees them: DEBUG auto-generates SECRET_KEY, ALLOWED_HOSTS
admits the TestClient host, LOGIN_RATE_LIMIT keeps repeated logins under the
limiter.
"""

from __future__ import annotations

import os
import time
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, create_autospec

# CRITICAL: set before any core/auth import -- get_settings() is cached.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost,127.0.0.1")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api.main import app
from auth.cognito import CognitoClient
from auth.context import AuthService
from auth.models import AuthSession, User
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, create_session_token, new_session_id
from core.backend import BackendClient
from core.config import get_settings
from panel.store import PanelStore
from web.routes import router as web_router

# Mount the web router once; guard against a second include when conftest is
# imported more than once in the same session.
if not any(getattr(r, "path", "") == "/adminpanel" for r in app.routes):
    app.include_router(web_router, tags=["Admin Pages"])


def provider_token(exp_offset: int = 3600, **claims) -> str:
    """A stand-in provider id token. Only its exp claim is ever read."""
    return jwt.encode({"exp": int(time.time()) + exp_offset, **claims}, "provider-test-key", algorithm="HS256")


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, PanelStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'web').
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    panel_url = f"sqlite:///file:test_panel_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), PanelStore(db_url=panel_url)


def _patch_lifespan(user_store: UserStore, panel: PanelStore):
    """Return an async context manager that replaces the real lifespan.

    Identity and backend clients are placeholders here; the per-test
    fixtures swap in fresh autospec mocks so no test reaches the network.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.user_store = user_store
        app.state.panel = panel
        app.state.identity = create_autospec(CognitoClient, instance=True)
        app.state.auth_service = AuthService(app.state.identity, user_store)
        app.state.oauth = MagicMock()
        app.state.backend = create_autospec(BackendClient, instance=True)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


@dataclass
class Harness:
    client: TestClient
    user_store: UserStore
    panel: PanelStore

    @property
    def identity(self):
        return self.client.app.state.identity

    @property
    def backend(self):
        return self.client.app.state.backend

    @property
    def oauth(self):
        return self.client.app.state.oauth

    def reset(self) -> None:
        """Fresh collaborator mocks and an empty cookie jar for the next test."""
        state = self.client.app.state
        state.identity = create_autospec(CognitoClient, instance=True)
        state.auth_service = AuthService(state.identity, self.user_store)
        state.backend = create_autospec(BackendClient, instance=True)
        state.backend.list_subcategories.return_value = []
        state.oauth = MagicMock()
        self.client.cookies.clear()

    def login_as(self, username: str, role: str = "admin", email: str = "", is_active: bool = True) -> str:
        """Record a user with an open session and return the app session token."""
        self.user_store.upsert_user(
            User(
                id=username,
                username=username,
                email=email or f"{username}@casinovizion.test",
                role=role,
                name=username.title(),
                is_active=is_active,
            )
        )
        session_id = new_session_id()
        self.user_store.create_session(
            AuthSession(
                session_id=session_id,
                username=username,
                id_token=provider_token(sub=username),
                access_token=f"access-{username}",
                refresh_token=f"refresh-{username}",
                expires_at=(datetime.now(timezone.utc) + timedelta(hours=1)).isoformat(),
            )
        )
        return create_session_token(session_id, username, role)

    def browse_as(self, username: str, role: str = "admin") -> str:
        """login_as() plus the session cookie in the client jar, for page requests."""
        token = self.login_as(username, role=role)
        self.client.cookies.set(COOKIE_NAME, token)
        return token


def _harness(db_suffix: str, **client_kwargs) -> Generator[Harness, None, None]:
    user_store, panel = _make_test_stores(db_suffix)
    app.router.lifespan_context = _patch_lifespan(user_store, panel)
    with TestClient(app, raise_server_exceptions=True, **client_kwargs) as client:
        yield Harness(client=client, user_store=user_store, panel=panel)
    user_store.close()
    panel.close()


# ---------------------------------------------------------------------------
# Module-scoped clients -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_harness() -> Generator[Harness, None, None]:
    yield from _harness("api")


@pytest.fixture(scope="module")
def web_harness() -> Generator[Harness, None, None]:
    """follow_redirects=False: web tests assert on redirect Location headers."""
    yield from _harness("web", follow_redirects=False)


@pytest.fixture()
def api(api_harness: Harness) -> Harness:
    api_harness.reset()
    return api_harness


@pytest.fixture()
def web(web_harness: Harness) -> Harness:
    web_harness.reset()
    return web_harness
