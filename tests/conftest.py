"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import itertools
import os

# ---------------------------------------------------------------------------
# Environment must be in place before any commonweal import:
#   * commonweal.api.deps validates JWT_SECRET at module-load time
#   * commonweal.services.user_service reads BCRYPT_ROUNDS at import
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("COMMONWEAL_CONFIG", os.path.join(os.path.dirname(__file__), "missing.yaml"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

# get_engine is the override key the routers captured; never reload deps.
from commonweal.api.auth import create_access_token  # noqa: E402
from commonweal.api.deps import get_engine  # noqa: E402
from commonweal.api.main import app  # noqa: E402
from commonweal.database.models import Base, Role, User  # noqa: E402
from commonweal.services import user_service  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Commonweal tables.

    Uses StaticPool so the request threads of the TestClient and the test
    body all share the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session for direct service-level tests."""
    with Session(db_engine, expire_on_commit=False) as session:
        yield session
        session.rollback()


@pytest.fixture
def client(db_engine: Engine):
    """FastAPI TestClient bound to the in-memory database."""
    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_engine: Engine):
    """Factory: ``make_user(role=Role.ADMIN, name=..., location=...)`` → User."""
    counter = itertools.count(1)

    def _make(
        name: str | None = None,
        role: str = Role.USER,
        password: str = "password123",
        **profile,
    ) -> User:
        n = next(counter)
        with Session(db_engine, expire_on_commit=False) as session:
            user = user_service.register_user(
                session,
                name=name or f"User {n}",
                email=f"user{n}@example.com",
                password=password,
                role=role,
            )
            if profile:
                user = user_service.update_profile(session, user, profile)
        return user

    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def headers():
    """``headers(user)`` → Authorization header dict with a fresh JWT."""
    return auth_headers


INITIATIVE_BODY = {
    "title": "Community Garden",
    "description": "Turn the empty lot into a vegetable garden.",
    "category": "Environment",
    "location": "Riverside",
}

EVENT_BODY = {
    "title": "Planting Day",
    "description": "Bring gloves.",
    "category": "Environment",
    "date": "2030-05-01T10:00:00Z",
    "location": "Riverside",
}


@pytest.fixture
def event_body() -> dict:
    return dict(EVENT_BODY)


@pytest.fixture
def create_initiative(client, headers):
    """Factory: POST an initiative as *user* and return the JSON body."""
    def _create(user: User, **overrides) -> dict:
        resp = client.post(
            "/api/initiatives", json={**INITIATIVE_BODY, **overrides}, headers=headers(user)
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture
def create_event(client, headers):
    """Factory: POST an event as *user* and return the JSON body."""
    def _create(user: User, **overrides) -> dict:
        resp = client.post("/api/events", json={**EVENT_BODY, **overrides}, headers=headers(user))
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create
