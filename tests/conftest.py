"""
tests/conftest.py -- Shared test fixtures for Courtside.

This module provides:
  - SECRET: a fixed signing secret for unit tests that build a TokenAuthority
  - hasher / authority / store / service: isolated unit-level components
  - _make_test_store(): creates an isolated shared-memory DB for the API
  - _patch_lifespan(): wires a test AuthService into app.state, bypassing real startup
  - api_client: TestClient with an admin and a member account pre-created

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
LOGIN_RATE_LIMIT is raised so the module-scoped client can log in freely.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

# CRITICAL: Set before any core/api import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenAuthority

SECRET = "test-secret-key-that-is-at-least-32-characters"
ISSUER = "courtside-test"

# Cheapest bcrypt cost -- hashing correctness does not depend on the cost factor.
FAST_ROUNDS = 4


class StepClock:
    """Deterministic clock: each call returns a time one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


# ---------------------------------------------------------------------------
# Unit-level component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=FAST_ROUNDS)


@pytest.fixture
def authority() -> TokenAuthority:
    return TokenAuthority(SECRET, ttl=timedelta(hours=1), issuer=ISSUER)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:", clock=StepClock())
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore, hasher: PasswordHasher, authority: TokenAuthority) -> AuthService:
    return AuthService(store, hasher, authority)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    """Everything an API test needs: the client plus two ready-made accounts."""

    client: TestClient
    service: AuthService
    admin: User
    admin_token: str
    member: User
    member_token: str

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Named URIs allow multiple connections (from different threads in TestClient)
    to access the same in-memory database.
    """
    return UserStore(f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The admin (admin@club.test / adminpass123) and member
    (member@club.test / memberpass123) exist before the client starts.
    """
    # One database per test module; a name shared across modules could outlive its store.
    user_store = _make_test_store(request.module.__name__.replace(".", "_"))
    service = AuthService(
        user_store,
        PasswordHasher(rounds=FAST_ROUNDS),
        TokenAuthority(SECRET, ttl=timedelta(hours=1), issuer=ISSUER),
    )

    admin = service.ensure_admin("admin@club.test", "Club Admin", "adminpass123")
    member = service.register("member@club.test", "Regular Member", "memberpass123")
    admin_token = service.authority.issue(admin.id, Role.admin)
    member_token = service.authority.issue(member.id, Role.member)

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            service=service,
            admin=admin,
            admin_token=admin_token,
            member=member,
            member_token=member_token,
        )

    user_store.close()
