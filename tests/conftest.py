"""
tests/conftest.py -- Shared test fixtures for BlogAPI tests.

This module provides:
  - make_settings(): explicit Settings for tests (fast bcrypt, no rate limit)
  - make_engine(): isolated named shared-memory SQLite engine
  - FakeIdentityProvider: stands in for Google; tests set .profile / .error
  - app_ctx: module-scoped TestClient + stores + provider, patched lifespan
  - client: the same TestClient with cookies cleared around each test
  - user_factory: registers and logs in a fresh user, returns its token
  - limited_client: a second app with the login rate limit enabled

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import pytest
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.limiter import limiter
from api.main import create_app
from auth.models import OAuthProfile
from auth.resolver import OAuthIdentityResolver
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings
from core.db import create_db_engine
from posts.store import PostStore

TEST_SECRET = "test-secret-key-that-is-long-enough-1234567890"
FRONTEND_URL = "http://frontend.test"


def make_settings(**overrides) -> Settings:
    values = {
        "debug": True,
        "jwt_secret": TEST_SECRET,
        "bcrypt_rounds": 4,
        "rate_limit_enabled": False,
        "frontend_url": FRONTEND_URL,
        "backend_url": "http://testserver",
        "google_client_id": "",
        "google_client_secret": "",
    }
    values.update(overrides)
    return Settings(**values)


def make_engine(db_suffix: str) -> Engine:
    """Create an isolated named shared-memory SQLite engine.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return create_db_engine(f"sqlite:///file:test_blog_{db_suffix}?mode=memory&cache=shared&uri=true")


class FakeIdentityProvider:
    """In-process stand-in for GoogleIdentityProvider."""

    name = "google"
    label = "Google"

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.enabled = True
        self.profile: OAuthProfile | None = None
        self.error: Exception | None = None
        self.redirect_uris: list[str] = []

    async def authorize_redirect(self, request, redirect_uri: str):
        self.redirect_uris.append(redirect_uri)
        return RedirectResponse(f"https://accounts.example.test/authorize?redirect_uri={redirect_uri}", 302)

    async def resolve_profile(self, request) -> OAuthProfile:
        if self.error is not None:
            raise self.error
        assert self.profile is not None, "test did not set provider.profile"
        return self.profile


@dataclass
class AppContext:
    client: TestClient
    app: FastAPI
    settings: Settings
    tokens: TokenService
    user_store: UserStore
    post_store: PostStore
    provider: FakeIdentityProvider


def _patch_lifespan(user_store: UserStore, post_store: PostStore, provider: FakeIdentityProvider):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and the fake provider into app.state so
    routes never open a real database or talk to Google.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.post_store = post_store
        app.state.identity_provider = provider
        app.state.resolver = OAuthIdentityResolver(user_store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def app_ctx(request) -> Generator[AppContext, None, None]:
    """One app + TestClient per test module, on its own in-memory database.

    follow_redirects=False so OAuth tests can assert on Location headers.
    """
    settings = make_settings()
    engine = make_engine(request.module.__name__.rsplit(".", 1)[-1])
    user_store = UserStore(engine)
    post_store = PostStore(engine)
    provider = FakeIdentityProvider()

    app = create_app(settings)
    app.router.lifespan_context = _patch_lifespan(user_store, post_store, provider)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield AppContext(
            client=client,
            app=app,
            settings=settings,
            tokens=app.state.tokens,
            user_store=user_store,
            post_store=post_store,
            provider=provider,
        )

    engine.dispose()


@pytest.fixture
def client(app_ctx: AppContext) -> Generator[TestClient, None, None]:
    """The module TestClient with an empty cookie jar and a reset provider."""
    app_ctx.client.cookies.clear()
    app_ctx.provider.reset()
    yield app_ctx.client
    app_ctx.client.cookies.clear()


@dataclass
class RegisteredUser:
    id: int
    name: str
    email: str
    password: str
    token: str

    @property
    def auth(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def user_factory(client: TestClient):
    """Return a callable that registers + logs in a fresh user via the API."""

    def _make(name: str = "Test User", password: str = "s3cret-pass") -> RegisteredUser:
        email = f"user-{uuid.uuid4().hex[:10]}@example.com"
        resp = client.post("/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        user_id = resp.json()["user"]["id"]

        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        token = resp.cookies.get("token")
        assert token, "login did not set the session cookie"
        client.cookies.clear()
        return RegisteredUser(id=user_id, name=name, email=email, password=password, token=token)

    return _make


@pytest.fixture
def limited_client(engine: Engine) -> Generator[TestClient, None, None]:
    """A separate app with the login rate limit switched on.

    The slowapi limiter is shared by every app in the process: its counters
    are cleared before and after, and it is switched back off afterwards.
    """
    app = create_app(make_settings(rate_limit_enabled=True))
    app.router.lifespan_context = _patch_lifespan(UserStore(engine), PostStore(engine), FakeIdentityProvider())
    limiter.reset()
    try:
        with TestClient(app, follow_redirects=False) as client:
            yield client
    finally:
        limiter.reset()
        limiter.enabled = False


@pytest.fixture
def settings_factory():
    """Return make_settings so unit tests can build variants without the app."""
    return make_settings


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """A fresh in-memory database per test, for store-level unit tests."""
    eng = make_engine(f"unit_{uuid.uuid4().hex}")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def post_store(engine: Engine, user_store: UserStore) -> PostStore:
    return PostStore(engine)
