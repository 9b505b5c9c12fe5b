"""
commonweal.services.user_service — Accounts, Credentials & Profiles
====================================================================

Registration, password checks, password-reset tokens, profile edits and
user-centric lookups (search, "initiatives of", "events of").

Passwords are stored as bcrypt hashes.  Reset tokens are random, single
use, and only their SHA-256 digest is persisted.
"""

from __future__ import annotations

import hashlib
import logging
import os
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from sqlalchemy import String, cast, or_, select
from sqlalchemy.orm import Session

from commonweal.database.models import (
    Event,
    EventAttendee,
    Initiative,
    InitiativeMember,
    Role,
    User,
)
from commonweal.services.errors import InvalidRequest, NotFound
from commonweal.services.pagination import Page, PageRequest, contains, paginate

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

PROFILE_FIELDS = frozenset({"name", "bio", "location", "avatar", "interests"})


# ---------------------------------------------------------------------------
# Password helpers
# ---------------------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------
def register_user(
    session: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: str = Role.USER,
) -> User:
    email = email.strip().lower()
    if session.scalar(select(User.id).where(User.email == email)) is not None:
        raise InvalidRequest("User already exists")
    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        interests=[],
    )
    session.add(user)
    session.commit()
    logger.info("Registered user %d (%s)", user.id, role)
    return user


def authenticate(session: Session, *, email: str, password: str) -> User:
    user = session.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidRequest("Invalid credentials")
    return user


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def update_profile(session: Session, user: User, changes: dict[str, Any]) -> User:
    for key, value in changes.items():
        if key in PROFILE_FIELDS:
            setattr(user, key, value)
    session.commit()
    return user


def set_role(session: Session, actor: User, user_id: int, role: str) -> User:
    user = get_user(session, user_id)
    if user.role != role:
        logger.info("User %d changed role of user %d: %s → %s", actor.id, user.id, user.role, role)
        user.role = role
        session.commit()
    return user


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------
def issue_password_reset(session: Session, email: str, ttl_minutes: int) -> str | None:
    """Create a reset token for *email*.

    Returns the raw token (to be delivered out-of-band) or ``None`` when no
    such account exists.  Callers must not reveal which case happened.
    """
    user = session.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None:
        return None
    token = secrets.token_urlsafe(32)
    user.reset_token_hash = _digest(token)
    user.reset_token_expires_at = datetime.now(UTC) + timedelta(minutes=ttl_minutes)
    session.commit()
    logger.info("Password reset issued for user %d", user.id)
    return token


def reset_password(session: Session, *, token: str, password: str) -> User:
    user = session.scalar(select(User).where(User.reset_token_hash == _digest(token)))
    if (
        user is None
        or user.reset_token_expires_at is None
        or _aware(user.reset_token_expires_at) <= datetime.now(UTC)
    ):
        raise InvalidRequest("Invalid or expired reset token")
    user.password_hash = hash_password(password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    session.commit()
    logger.info("Password reset completed for user %d", user.id)
    return user


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def search_users(
    session: Session,
    request: PageRequest,
    *,
    q: str | None = None,
    location: str | None = None,
    interests: list[str] | None = None,
) -> Page:
    stmt = select(User)
    if q:
        stmt = stmt.where(or_(contains(User.name, q), contains(User.bio, q)))
    if location:
        stmt = stmt.where(contains(User.location, location))
    if interests:
        stmt = stmt.where(or_(*(
            contains(cast(User.interests, String), f'"{interest}"') for interest in interests
        )))
    stmt = stmt.order_by(User.name, User.id)
    return paginate(session, stmt, request)


def joined_initiatives(session: Session, user_id: int) -> list[Initiative]:
    """Initiatives *user_id* is a member of but did not create."""
    return list(session.scalars(
        select(Initiative)
        .join(InitiativeMember, InitiativeMember.initiative_id == Initiative.id)
        .where(InitiativeMember.user_id == user_id, Initiative.creator_id != user_id)
        .order_by(Initiative.created_at.desc(), Initiative.id.desc())
    ).all())


def initiatives_for_user(session: Session, user_id: int) -> list[Initiative]:
    """Public initiatives *user_id* created or belongs to."""
    get_user(session, user_id)
    member_of = select(InitiativeMember.initiative_id).where(InitiativeMember.user_id == user_id)
    return list(session.scalars(
        select(Initiative)
        .where(
            or_(Initiative.creator_id == user_id, Initiative.id.in_(member_of)),
            Initiative.is_public.is_(True),
        )
        .order_by(Initiative.created_at.desc(), Initiative.id.desc())
    ).all())


def events_for_user(session: Session, user_id: int) -> list[Event]:
    """Public events *user_id* organizes or attends, soonest first."""
    get_user(session, user_id)
    attending = select(EventAttendee.event_id).where(EventAttendee.user_id == user_id)
    return list(session.scalars(
        select(Event)
        .where(
            or_(Event.organizer_id == user_id, Event.id.in_(attending)),
            Event.is_public.is_(True),
        )
        .order_by(Event.date, Event.id)
    ).all())
