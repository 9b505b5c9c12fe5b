"""
tests/test_auth.py — Registration, Login, Tokens & Role Guards
================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from commonweal.api.auth import create_access_token
from commonweal.api.deps import (
    JWT_ALGORITHM,
    JWT_SECRET,
    get_engine,
    require_moderator,
)
from commonweal.database.models import Role, User
from commonweal.services import user_service

REGISTER = {"name": "Ada", "email": "Ada@Example.com", "password": "hunter22"}


# ===========================================================================
# Register / login
# ===========================================================================
class TestRegisterAndLogin:
    def test_register_returns_token_and_user(self, client):
        resp = client.post("/api/auth/register", json=REGISTER)
        assert resp.status_code == 201
        body = resp.json()
        assert body["user"]["email"] == "ada@example.com"
        assert body["user"]["role"] == "user"
        assert "passwordHash" not in body["user"]
        payload = jwt.decode(body["token"], JWT_SECRET, algorithms=[JWT_ALGORITHM])
        assert payload["sub"] == str(body["user"]["id"])

    def test_duplicate_email_rejected(self, client):
        client.post("/api/auth/register", json=REGISTER)
        resp = client.post("/api/auth/register", json={**REGISTER, "email": "ada@example.com"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "User already exists"

    def test_short_password_is_validation_error(self, client):
        resp = client.post("/api/auth/register", json={**REGISTER, "password": "123"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["detail"] == "Validation failed"
        assert any(e["field"] == "password" for e in body["errors"])

    def test_login_success(self, client):
        client.post("/api/auth/register", json=REGISTER)
        resp = client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "hunter22"}
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["name"] == "Ada"

    def test_login_bad_password(self, client):
        client.post("/api/auth/register", json=REGISTER)
        resp = client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "wrong-one"}
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid credentials"

    def test_login_unknown_email(self, client):
        resp = client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"}
        )
        assert resp.status_code == 400


# ===========================================================================
# Bearer token handling
# ===========================================================================
class TestCurrentUser:
    def test_me_requires_token(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401

    def test_me_rejects_garbage_token(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_me_rejects_expired_token(self, client, make_user):
        user = make_user()
        token = jwt.encode(
            {"sub": str(user.id), "exp": datetime.now(UTC) - timedelta(minutes=1)},
            JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_me_rejects_token_for_missing_user(self, client):
        ghost = User(id=4242, name="Ghost", email="g@example.com", password_hash="x", role="user")
        resp = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {create_access_token(ghost)}"}
        )
        assert resp.status_code == 401

    def test_me_returns_account(self, client, make_user, headers):
        user = make_user(name="Grace")
        resp = client.get("/api/auth/me", headers=headers(user))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Grace"

    def test_update_me(self, client, make_user, headers):
        user = make_user()
        resp = client.put(
            "/api/auth/me",
            json={"bio": "Gardener", "interests": ["gardening", "cycling"]},
            headers=headers(user),
        )
        assert resp.status_code == 200
        assert resp.json()["bio"] == "Gardener"
        assert resp.json()["interests"] == ["gardening", "cycling"]

    def test_update_me_ignores_null_for_required_fields(self, client, make_user, headers):
        user = make_user(name="Grace", bio="Admiral", location="Arlington")
        resp = client.put(
            "/api/auth/me",
            json={"name": None, "interests": None, "bio": None},
            headers=headers(user),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Grace"
        assert body["interests"] == []
        assert body["bio"] is None
        assert body["location"] == "Arlington"


# ===========================================================================
# Password reset
# ===========================================================================
class TestPasswordReset:
    def test_forgot_password_is_generic(self, client, make_user):
        make_user()
        known = client.post("/api/auth/forgot-password", json={"email": "user1@example.com"})
        unknown = client.post("/api/auth/forgot-password", json={"email": "who@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_reset_with_valid_token(self, client, make_user, db_session: Session):
        user = make_user()
        token = user_service.issue_password_reset(db_session, user.email, ttl_minutes=30)

        resp = client.post(
            "/api/auth/reset-password", json={"token": token, "password": "brand-new-pw"}
        )
        assert resp.status_code == 200

        login = client.post(
            "/api/auth/login", json={"email": user.email, "password": "brand-new-pw"}
        )
        assert login.status_code == 200

        again = client.post(
            "/api/auth/reset-password", json={"token": token, "password": "another-pw"}
        )
        assert again.status_code == 400

    def test_expired_token_rejected(self, client, make_user, db_session: Session):
        user = make_user()
        token = user_service.issue_password_reset(db_session, user.email, ttl_minutes=-1)
        resp = client.post(
            "/api/auth/reset-password", json={"token": token, "password": "brand-new-pw"}
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid or expired reset token"


# ===========================================================================
# Role guards
# ===========================================================================
class TestRoleGuards:
    def test_role_change_requires_admin(self, client, make_user, headers):
        user = make_user()
        target = make_user()
        resp = client.put(
            f"/api/users/{target.id}/role", json={"role": "moderator"}, headers=headers(user)
        )
        assert resp.status_code == 403

    def test_admin_changes_role(self, client, make_user, headers):
        admin = make_user(role=Role.ADMIN)
        target = make_user()
        resp = client.put(
            f"/api/users/{target.id}/role", json={"role": "moderator"}, headers=headers(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "moderator"

    @pytest.mark.parametrize(
        "role, expected",
        [(Role.USER, 403), (Role.MODERATOR, 200), (Role.ADMIN, 200)],
    )
    def test_require_moderator(self, db_engine, make_user, headers, role, expected):
        gated = FastAPI()

        @gated.get("/moderated")
        def _moderated(user: User = Depends(require_moderator)):
            return {"id": user.id}

        gated.dependency_overrides[get_engine] = lambda: db_engine
        resp = TestClient(gated).get("/moderated", headers=headers(make_user(role=role)))
        assert resp.status_code == expected
