"""
commonweal.api.auth — Registration, login & JWT issuance
==========================================================

Tokens are stateless HS256 JWTs carrying ``sub`` (user id), ``role``,
``iat`` and ``exp``.  Password-reset tokens are delivered out of band; this
API only ever answers with a generic message so it cannot be used to discover
which e-mail addresses have accounts.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from commonweal.api.deps import (
    JWT_ALGORITHM,
    JWT_SECRET,
    get_config,
    get_current_user,
    get_session,
)
from commonweal.api.schemas import changes
from commonweal.api.serializers import user_dict
from commonweal.config import CommonwealConfig
from commonweal.database.models import User
from commonweal.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

RESET_MESSAGE = "If that account exists, a password reset link has been sent"
PROFILE_NULLABLE = frozenset({"bio", "location", "avatar"})


def create_access_token(user: User, ttl_hours: int = 24) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(hours=ttl_hours),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RegisterBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginBody(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    bio: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=200)
    avatar: str | None = None
    interests: list[str] | None = None


class ForgotPasswordBody(BaseModel):
    email: EmailStr


class ResetPasswordBody(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/register", status_code=201)
def register(
    body: RegisterBody,
    session: Session = Depends(get_session),
    cfg: CommonwealConfig = Depends(get_config),
):
    user = user_service.register_user(
        session, name=body.name, email=body.email, password=body.password
    )
    return {
        "token": create_access_token(user, cfg.token_ttl_hours),
        "user": user_dict(user, private=True),
    }


@router.post("/login")
def login(
    body: LoginBody,
    session: Session = Depends(get_session),
    cfg: CommonwealConfig = Depends(get_config),
):
    user = user_service.authenticate(session, email=body.email, password=body.password)
    logger.info("User %d logged in", user.id)
    return {
        "token": create_access_token(user, cfg.token_ttl_hours),
        "user": user_dict(user, private=True),
    }


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    """Return the current authenticated user's account."""
    return user_dict(user, private=True)


@router.put("/me")
def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    user = user_service.update_profile(session, user, changes(body, PROFILE_NULLABLE))
    return user_dict(user, private=True)


@router.post("/forgot-password")
def forgot_password(
    body: ForgotPasswordBody,
    session: Session = Depends(get_session),
    cfg: CommonwealConfig = Depends(get_config),
):
    # Token delivery (e-mail) is not wired up; the raw token is dropped here.
    user_service.issue_password_reset(session, body.email, cfg.reset_token_ttl_minutes)
    return {"message": RESET_MESSAGE}


@router.post("/reset-password")
def reset_password(body: ResetPasswordBody, session: Session = Depends(get_session)):
    user_service.reset_password(session, token=body.token, password=body.password)
    return {"message": "Password has been reset"}
