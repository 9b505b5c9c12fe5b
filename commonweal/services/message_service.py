"""
commonweal.services.message_service — Direct Messages
======================================================

One sender, one recipient, optionally scoped to an initiative or event.
Only the two participants may see or delete a message; only the
recipient may mark it read, and doing so twice changes nothing.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from commonweal.database.models import (
    Event,
    Initiative,
    Message,
    MessageType,
    NotificationType,
    Priority,
    User,
)
from commonweal.services import notification_service
from commonweal.services.errors import Forbidden, InvalidRequest, NotFound
from commonweal.services.pagination import Page, PageRequest, paginate

logger = logging.getLogger(__name__)


def _fetch(session: Session, message_id: int) -> Message:
    message = session.get(Message, message_id)
    if message is None:
        raise NotFound("Message not found")
    return message


def _ensure_participant(message: Message, user: User) -> None:
    if user.id not in (message.sender_id, message.recipient_id):
        logger.warning("User %d refused access to message %d", user.id, message.id)
        raise Forbidden("Access denied")


def _mark_read(message: Message) -> bool:
    if message.is_read:
        return False
    message.is_read = True
    message.read_at = datetime.now(UTC)
    return True


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def inbox(session: Session, user: User, request: PageRequest, *, unread_only: bool = False) -> Page:
    stmt = select(Message).where(Message.recipient_id == user.id)
    if unread_only:
        stmt = stmt.where(Message.is_read.is_(False))
    stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc())
    return paginate(session, stmt, request)


def sent(session: Session, user: User, request: PageRequest) -> Page:
    stmt = (
        select(Message)
        .where(Message.sender_id == user.id)
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    return paginate(session, stmt, request)


def unread_count(session: Session, user: User) -> int:
    return session.scalar(
        select(func.count())
        .select_from(Message)
        .where(Message.recipient_id == user.id, Message.is_read.is_(False))
    ) or 0


def open_message(session: Session, user: User, message_id: int) -> Message:
    """Return a message to one of its participants.

    When the recipient opens an unread message it is marked read.
    """
    message = _fetch(session, message_id)
    _ensure_participant(message, user)
    if message.recipient_id == user.id and _mark_read(message):
        session.commit()
    return message


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def send(session: Session, sender: User, data: dict[str, Any]) -> Message:
    recipient_id = data["recipient_id"]
    if session.get(User, recipient_id) is None:
        raise NotFound("Recipient not found")
    if recipient_id == sender.id:
        raise InvalidRequest("Cannot send message to yourself")
    if data.get("initiative_id") is not None and session.get(Initiative, data["initiative_id"]) is None:
        raise NotFound("Initiative not found")
    if data.get("event_id") is not None and session.get(Event, data["event_id"]) is None:
        raise NotFound("Event not found")

    message = Message(
        sender_id=sender.id,
        recipient_id=recipient_id,
        subject=data["subject"],
        content=data["content"],
        message_type=data.get("message_type") or MessageType.PERSONAL,
        priority=data.get("priority") or Priority.NORMAL,
        initiative_id=data.get("initiative_id"),
        event_id=data.get("event_id"),
    )
    session.add(message)
    session.flush()
    notification_service.notify(
        session,
        recipient_id=recipient_id,
        sender_id=sender.id,
        type=NotificationType.MESSAGE_RECEIVED,
        title="New message",
        message=f"{sender.name}: {message.subject}",
        message_id=message.id,
        priority=message.priority,
    )
    session.commit()
    logger.info("User %d sent message %d to user %d", sender.id, message.id, recipient_id)
    return message


def mark_read(session: Session, user: User, message_id: int) -> Message:
    message = _fetch(session, message_id)
    if message.recipient_id != user.id:
        raise Forbidden("Access denied")
    if _mark_read(message):
        session.commit()
    return message


def delete_message(session: Session, user: User, message_id: int) -> None:
    message = _fetch(session, message_id)
    _ensure_participant(message, user)
    session.delete(message)
    session.commit()
