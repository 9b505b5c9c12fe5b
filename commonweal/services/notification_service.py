"""
commonweal.services.notification_service — Pull-only Notifications
====================================================================

Other services call :func:`notify` inside their own transaction; the
notification row commits (or rolls back) together with the change that
caused it.  Clients poll the list / unread-count endpoints.

Expired notifications (``expires_at`` in the past) are invisible to every
read here and are physically removed by
:func:`commonweal.services.retention_service.purge_expired_notifications`.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import ColumnElement, func, or_, select, update
from sqlalchemy.orm import Session

from commonweal.database.models import Notification, NotificationType, Priority, User
from commonweal.services.errors import NotFound
from commonweal.services.pagination import Page, PageRequest, paginate

logger = logging.getLogger(__name__)


def _live(now: datetime | None = None) -> ColumnElement[bool]:
    now = now or datetime.now(UTC)
    return or_(Notification.expires_at.is_(None), Notification.expires_at > now)


# ---------------------------------------------------------------------------
# Producing
# ---------------------------------------------------------------------------
def notify(
    session: Session,
    *,
    recipient_id: int,
    type: NotificationType,
    title: str,
    message: str,
    sender_id: int | None = None,
    initiative_id: int | None = None,
    event_id: int | None = None,
    donation_id: int | None = None,
    message_id: int | None = None,
    priority: str = Priority.NORMAL,
    expires_at: datetime | None = None,
) -> Notification | None:
    """Queue a notification on *session*.  Self-notifications are skipped."""
    if sender_id is not None and sender_id == recipient_id:
        return None
    row = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=type,
        title=title,
        message=message,
        initiative_id=initiative_id,
        event_id=event_id,
        donation_id=donation_id,
        message_id=message_id,
        priority=priority,
        expires_at=expires_at,
    )
    session.add(row)
    return row


def broadcast(
    session: Session,
    sender: User,
    *,
    title: str,
    message: str,
    priority: str = Priority.NORMAL,
    expires_at: datetime | None = None,
) -> int:
    """Send a ``system_announcement`` to every user.  Returns the count."""
    user_ids = session.scalars(select(User.id)).all()
    for uid in user_ids:
        session.add(Notification(
            recipient_id=uid,
            sender_id=sender.id,
            type=NotificationType.SYSTEM_ANNOUNCEMENT,
            title=title,
            message=message,
            priority=priority,
            expires_at=expires_at,
        ))
    session.commit()
    logger.info("Broadcast %r sent to %d users by user %d", title, len(user_ids), sender.id)
    return len(user_ids)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------
def list_notifications(
    session: Session,
    user: User,
    request: PageRequest,
    *,
    unread_only: bool = False,
) -> Page:
    stmt = select(Notification).where(Notification.recipient_id == user.id, _live())
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
    return paginate(session, stmt, request)


def get_notification(session: Session, user: User, notification_id: int) -> Notification:
    """Fetch one of *user*'s notifications; anyone else's reads as missing."""
    row = session.scalar(
        select(Notification).where(Notification.id == notification_id, _live())
    )
    if row is None or row.recipient_id != user.id:
        raise NotFound("Notification not found")
    return row


def unread_count(session: Session, user: User) -> int:
    return session.scalar(
        select(func.count())
        .select_from(Notification)
        .where(
            Notification.recipient_id == user.id,
            Notification.is_read.is_(False),
            _live(),
        )
    ) or 0


# ---------------------------------------------------------------------------
# Mutating
# ---------------------------------------------------------------------------
def mark_read(session: Session, user: User, notification_id: int) -> Notification:
    row = get_notification(session, user, notification_id)
    if not row.is_read:
        row.is_read = True
        row.read_at = datetime.now(UTC)
        session.commit()
    return row


def mark_all_read(session: Session, user: User) -> int:
    result = session.execute(
        update(Notification)
        .where(
            Notification.recipient_id == user.id,
            Notification.is_read.is_(False),
            _live(),
        )
        .values(is_read=True, read_at=datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return result.rowcount or 0


def delete_notification(session: Session, user: User, notification_id: int) -> None:
    row = get_notification(session, user, notification_id)
    session.delete(row)
    session.commit()
