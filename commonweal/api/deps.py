"""
commonweal.api.deps — FastAPI dependency injection
====================================================
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, Query, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from commonweal.config import CommonwealConfig, load_config
from commonweal.database.engine import create_db_engine
from commonweal.database.models import User
from commonweal.services.pagination import PageRequest

logger = logging.getLogger(__name__)

_WEAK_SECRETS = frozenset({
    "commonweal-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "").strip()
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> CommonwealConfig:
    return load_config()


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine, expire_on_commit=False) as session:
        yield session


def get_page(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1)] = None,
    cfg: CommonwealConfig = Depends(get_config),
) -> PageRequest:
    """``?page=&limit=`` with the limit clamped to ``max_page_size``."""
    size = min(limit or cfg.default_page_size, cfg.max_page_size)
    return PageRequest(page=page, limit=size)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
def _user_from_header(authorization: str | None, session: Session) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "No token, authorization denied")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        user_id = int(payload["sub"])
    except (InvalidTokenError, KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token is not valid")
    user = session.get(User, user_id)
    if user is None:
        logger.warning("Token presented for unknown user %d", user_id)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token is not valid")
    return user


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    session: Session = Depends(get_session),
) -> User:
    """Validate the bearer JWT and return the live user row. Raises 401."""
    return _user_from_header(authorization, session)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning("User %d denied admin-only route", user.id)
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Access denied. Admin only.")
    return user


def require_moderator(user: User = Depends(get_current_user)) -> User:
    if not user.is_moderator:
        logger.warning("User %d denied moderator-only route", user.id)
        raise HTTPException(
            status.HTTP_403_FORBIDDEN, "Access denied. Moderator or admin only."
        )
    return user
