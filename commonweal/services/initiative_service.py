"""
commonweal.services.initiative_service — Initiative Lifecycle
==============================================================

Every public function takes the request's :class:`Session` and the acting
:class:`User` (where one is needed), enforces ownership, mutates, and
commits.  Derived columns (``average_rating``, ``impact_score``…) are never
written here; the ``before_flush`` hook in
:mod:`commonweal.database.models` recomputes them on commit.

Ownership rules:
  * update / delete / milestones — creator or admin (others: 401)
  * delete comment               — comment author, moderator or admin (403)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from commonweal.database.models import (
    Initiative,
    InitiativeComment,
    InitiativeFeedback,
    InitiativeLike,
    InitiativeMember,
    InitiativeMilestone,
    NotificationType,
    User,
)
from commonweal.services import notification_service
from commonweal.services.errors import Forbidden, InvalidRequest, NotFound, NotOwner
from commonweal.services.pagination import (
    Page,
    PageRequest,
    contains,
    paginate,
    text_search,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    "title", "description", "category", "location", "status",
    "start_date", "end_date", "tags", "images", "is_public", "progress",
})

IMPACT_FIELDS = frozenset({
    "people_reached", "hours_volunteered", "funds_raised",
    "environmental_impact", "social_connections",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _ensure_owner(initiative: Initiative, user: User) -> None:
    if initiative.creator_id != user.id and not user.is_admin:
        logger.warning(
            "User %d refused mutation of initiative %d (creator %d)",
            user.id, initiative.id, initiative.creator_id,
        )
        raise NotOwner("Not authorized")


def _apply(initiative: Initiative, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key == "impact_metrics" and value:
            for metric, amount in value.items():
                if metric in IMPACT_FIELDS and amount is not None:
                    setattr(initiative, metric, amount)
        elif key in EDITABLE_FIELDS:
            setattr(initiative, key, value)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_initiatives(
    session: Session,
    request: PageRequest,
    *,
    category: str | None = None,
    status: str | None = None,
    location: str | None = None,
    search: str | None = None,
) -> Page:
    stmt = select(Initiative).where(Initiative.is_public.is_(True))
    if category:
        stmt = stmt.where(Initiative.category == category)
    if status:
        stmt = stmt.where(Initiative.status == status)
    if location:
        stmt = stmt.where(contains(Initiative.location, location))
    if search:
        stmt = stmt.where(
            text_search(search, Initiative.title, Initiative.description, Initiative.tags)
        )
    stmt = stmt.order_by(Initiative.created_at.desc(), Initiative.id.desc())
    return paginate(session, stmt, request)


def get_initiative(session: Session, initiative_id: int) -> Initiative:
    initiative = session.get(Initiative, initiative_id)
    if initiative is None:
        raise NotFound("Initiative not found")
    return initiative


def view_initiative(session: Session, initiative_id: int) -> Initiative:
    """Fetch for display and bump the view counter."""
    initiative = get_initiative(session, initiative_id)
    initiative.view_count = (initiative.view_count or 0) + 1
    session.commit()
    return initiative


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------
def create_initiative(session: Session, user: User, data: dict[str, Any]) -> Initiative:
    initiative = Initiative(
        creator_id=user.id,
        title=data["title"],
        description=data["description"],
        category=data["category"],
        location=data["location"],
        start_date=data.get("start_date") or datetime.now(UTC),
        end_date=data.get("end_date"),
        tags=data.get("tags") or [],
        images=data.get("images") or [],
        is_public=data.get("is_public", True),
    )
    _apply(initiative, {"impact_metrics": data.get("impact_metrics")})
    initiative.members.append(InitiativeMember(user_id=user.id, role="creator"))
    session.add(initiative)
    session.commit()
    logger.info("User %d created initiative %d", user.id, initiative.id)
    return initiative


def update_initiative(
    session: Session, user: User, initiative_id: int, changes: dict[str, Any]
) -> Initiative:
    initiative = get_initiative(session, initiative_id)
    _ensure_owner(initiative, user)
    _apply(initiative, changes)
    for member_id in sorted(initiative.member_ids() - {user.id}):
        notification_service.notify(
            session,
            recipient_id=member_id,
            sender_id=user.id,
            type=NotificationType.INITIATIVE_UPDATED,
            title="Initiative updated",
            message=f"{initiative.title} has been updated",
            initiative_id=initiative.id,
        )
    session.commit()
    return initiative


def delete_initiative(session: Session, user: User, initiative_id: int) -> None:
    initiative = get_initiative(session, initiative_id)
    _ensure_owner(initiative, user)
    session.delete(initiative)
    session.commit()
    logger.info("User %d deleted initiative %d", user.id, initiative_id)


# ---------------------------------------------------------------------------
# Toggles
# ---------------------------------------------------------------------------
def toggle_membership(
    session: Session, user: User, initiative_id: int, role: str = "member"
) -> tuple[Initiative, bool]:
    """Join if not a member, otherwise leave.  Returns ``(initiative, joined)``."""
    initiative = get_initiative(session, initiative_id)
    existing = next((m for m in initiative.members if m.user_id == user.id), None)

    if existing is not None:
        if initiative.creator_id == user.id:
            raise InvalidRequest("The creator cannot leave their own initiative")
        initiative.members.remove(existing)
        session.commit()
        return initiative, False

    initiative.members.append(InitiativeMember(user_id=user.id, role=role or "member"))
    notification_service.notify(
        session,
        recipient_id=initiative.creator_id,
        sender_id=user.id,
        type=NotificationType.INITIATIVE_JOINED,
        title="New member",
        message=f"{user.name} joined {initiative.title}",
        initiative_id=initiative.id,
    )
    session.commit()
    return initiative, True


def toggle_like(session: Session, user: User, initiative_id: int) -> tuple[Initiative, bool]:
    """Like if not yet liked, otherwise unlike.  Returns ``(initiative, liked)``."""
    initiative = get_initiative(session, initiative_id)
    existing = initiative.liked_by(user.id)
    if existing is not None:
        initiative.likes.remove(existing)
        session.commit()
        return initiative, False

    initiative.likes.append(InitiativeLike(user_id=user.id))
    notification_service.notify(
        session,
        recipient_id=initiative.creator_id,
        sender_id=user.id,
        type=NotificationType.LIKE_RECEIVED,
        title="New like",
        message=f"{user.name} liked {initiative.title}",
        initiative_id=initiative.id,
    )
    session.commit()
    return initiative, True


# ---------------------------------------------------------------------------
# Comments & feedback
# ---------------------------------------------------------------------------
def add_comment(
    session: Session, user: User, initiative_id: int, text: str
) -> list[InitiativeComment]:
    initiative = get_initiative(session, initiative_id)
    initiative.comments.insert(0, InitiativeComment(user_id=user.id, content=text))
    notification_service.notify(
        session,
        recipient_id=initiative.creator_id,
        sender_id=user.id,
        type=NotificationType.COMMENT_ADDED,
        title="New comment",
        message=f"{user.name} commented on {initiative.title}",
        initiative_id=initiative.id,
    )
    session.commit()
    return list(initiative.comments)


def delete_comment(
    session: Session, user: User, initiative_id: int, comment_id: int
) -> list[InitiativeComment]:
    initiative = get_initiative(session, initiative_id)
    comment = next((c for c in initiative.comments if c.id == comment_id), None)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user.id and not user.is_moderator:
        raise Forbidden("Access denied")
    initiative.comments.remove(comment)
    session.commit()
    return list(initiative.comments)


def submit_feedback(
    session: Session,
    user: User,
    initiative_id: int,
    rating: int,
    comment: str | None = None,
) -> Initiative:
    """Record *user*'s rating, replacing any rating they gave before."""
    initiative = get_initiative(session, initiative_id)
    existing = next((f for f in initiative.feedback if f.user_id == user.id), None)
    if existing is not None:
        existing.rating = rating
        existing.comment = comment
        existing.created_at = datetime.now(UTC)
    else:
        initiative.feedback.append(
            InitiativeFeedback(user_id=user.id, rating=rating, comment=comment)
        )
    session.commit()
    return initiative


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------
def add_milestone(
    session: Session, user: User, initiative_id: int, data: dict[str, Any]
) -> Initiative:
    initiative = get_initiative(session, initiative_id)
    _ensure_owner(initiative, user)
    initiative.milestones.append(InitiativeMilestone(
        title=data["title"],
        description=data.get("description"),
        target_date=data.get("target_date"),
    ))
    session.commit()
    return initiative


def update_milestone(
    session: Session,
    user: User,
    initiative_id: int,
    milestone_id: int,
    changes: dict[str, Any],
) -> Initiative:
    initiative = get_initiative(session, initiative_id)
    _ensure_owner(initiative, user)
    milestone = next((m for m in initiative.milestones if m.id == milestone_id), None)
    if milestone is None:
        raise NotFound("Milestone not found")

    for key in ("title", "description", "target_date"):
        if key in changes:
            setattr(milestone, key, changes[key])
    if "completed" in changes:
        done = bool(changes["completed"])
        if done and not milestone.completed:
            milestone.completed_date = datetime.now(UTC)
        elif not done:
            milestone.completed_date = None
        milestone.completed = done
    session.commit()
    return initiative
