"""
commonweal.services.event_service — Event Lifecycle & Attendance
=================================================================

Same shape as :mod:`commonweal.services.initiative_service`, plus
capacity-limited attendance.  Attending is *not* a toggle: a duplicate
attempt is rejected, and leaving has its own operation.

Attendees may keep one reminder per event.  Due reminders are turned into
notifications by :mod:`commonweal.services.reminder_service`.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from commonweal.database.models import (
    Event,
    EventAttendee,
    EventComment,
    EventFeedback,
    EventLike,
    EventReminder,
    Initiative,
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
    "title", "description", "category", "date", "end_date", "location",
    "status", "max_attendees", "is_free", "ticket_price", "ticket_url",
    "tags", "images", "is_public", "initiative_id",
    "contact_info", "social_media",
})

SOCIAL_IMPACT_FIELDS = frozenset({
    "people_connected", "knowledge_shared", "community_building", "environmental_impact",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _ensure_organizer(event: Event, user: User) -> None:
    if event.organizer_id != user.id and not user.is_admin:
        logger.warning(
            "User %d refused mutation of event %d (organizer %d)",
            user.id, event.id, event.organizer_id,
        )
        raise NotOwner("Not authorized")


def _check_initiative(session: Session, initiative_id: int | None) -> None:
    if initiative_id is not None and session.get(Initiative, initiative_id) is None:
        raise NotFound("Initiative not found")


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _check_dates(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and _aware(end) < _aware(start):
        raise InvalidRequest("End date cannot be before the start date")


def _apply(event: Event, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key == "social_impact" and value:
            for metric, amount in value.items():
                if metric in SOCIAL_IMPACT_FIELDS and amount is not None:
                    setattr(event, metric, amount)
        elif key in EDITABLE_FIELDS:
            setattr(event, key, value)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_events(
    session: Session,
    request: PageRequest,
    *,
    category: str | None = None,
    status: str | None = None,
    location: str | None = None,
    on_date: date | None = None,
    search: str | None = None,
    initiative_id: int | None = None,
) -> Page:
    stmt = select(Event).where(Event.is_public.is_(True))
    if category:
        stmt = stmt.where(Event.category == category)
    if status:
        stmt = stmt.where(Event.status == status)
    if location:
        stmt = stmt.where(contains(Event.location, location))
    if on_date is not None:
        day_start = datetime.combine(on_date, time.min, tzinfo=UTC)
        stmt = stmt.where(Event.date >= day_start, Event.date < day_start + timedelta(days=1))
    if search:
        stmt = stmt.where(text_search(search, Event.title, Event.description, Event.tags))
    if initiative_id is not None:
        stmt = stmt.where(Event.initiative_id == initiative_id)
    stmt = stmt.order_by(Event.date, Event.id)
    return paginate(session, stmt, request)


def get_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def view_event(session: Session, event_id: int) -> Event:
    event = get_event(session, event_id)
    event.view_count = (event.view_count or 0) + 1
    session.commit()
    return event


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------
def create_event(session: Session, user: User, data: dict[str, Any]) -> Event:
    _check_initiative(session, data.get("initiative_id"))
    _check_dates(data["date"], data.get("end_date"))

    event = Event(
        organizer_id=user.id,
        title=data["title"],
        description=data["description"],
        category=data["category"],
        date=data["date"],
        end_date=data.get("end_date"),
        location=data["location"],
        initiative_id=data.get("initiative_id"),
        max_attendees=data.get("max_attendees") or 0,
        is_free=data.get("is_free", True),
        ticket_price=data.get("ticket_price") or 0,
        ticket_url=data.get("ticket_url"),
        tags=data.get("tags") or [],
        images=data.get("images") or [],
        is_public=data.get("is_public", True),
        contact_info=data.get("contact_info"),
        social_media=data.get("social_media"),
    )
    _apply(event, {"social_impact": data.get("social_impact")})
    event.attendees.append(EventAttendee(user_id=user.id))
    session.add(event)
    session.commit()
    logger.info("User %d created event %d", user.id, event.id)
    return event


def update_event(session: Session, user: User, event_id: int, changes: dict[str, Any]) -> Event:
    event = get_event(session, event_id)
    _ensure_organizer(event, user)
    if "initiative_id" in changes:
        _check_initiative(session, changes["initiative_id"])
    _check_dates(changes.get("date", event.date), changes.get("end_date", event.end_date))
    _apply(event, changes)
    for attendee_id in sorted(event.attendee_ids() - {user.id}):
        notification_service.notify(
            session,
            recipient_id=attendee_id,
            sender_id=user.id,
            type=NotificationType.EVENT_UPDATED,
            title="Event updated",
            message=f"{event.title} has been updated",
            event_id=event.id,
        )
    session.commit()
    return event


def delete_event(session: Session, user: User, event_id: int) -> None:
    event = get_event(session, event_id)
    _ensure_organizer(event, user)
    session.delete(event)
    session.commit()
    logger.info("User %d deleted event %d", user.id, event_id)


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------
def _check_reminder_time(event: Event, remind_at: datetime) -> datetime:
    remind_at = _aware(remind_at)
    if remind_at <= datetime.now(UTC):
        raise InvalidRequest("Reminder time must be in the future")
    if remind_at > _aware(event.date):
        raise InvalidRequest("Reminder time cannot be after the event starts")
    return remind_at


def _reminder_for(event: Event, user_id: int) -> EventReminder | None:
    return next((r for r in event.reminders if r.user_id == user_id), None)


def _put_reminder(event: Event, user_id: int, remind_at: datetime) -> EventReminder:
    row = _reminder_for(event, user_id)
    if row is None:
        row = EventReminder(user_id=user_id, remind_at=remind_at)
        event.reminders.append(row)
    else:
        row.remind_at = remind_at
        row.sent = False
    return row


def attend(
    session: Session,
    user: User,
    event_id: int,
    remind_at: datetime | None = None,
) -> Event:
    """Join *event_id*, optionally scheduling a reminder at *remind_at*."""
    event = get_event(session, event_id)
    if user.id in event.attendee_ids():
        raise InvalidRequest("Already attending this event")
    if event.is_full:
        raise InvalidRequest("Event is full")
    if remind_at is not None:
        remind_at = _check_reminder_time(event, remind_at)

    event.attendees.append(EventAttendee(user_id=user.id))
    if remind_at is not None:
        _put_reminder(event, user.id, remind_at)
    notification_service.notify(
        session,
        recipient_id=event.organizer_id,
        sender_id=user.id,
        type=NotificationType.EVENT_ATTENDING,
        title="New attendee",
        message=f"{user.name} is attending {event.title}",
        event_id=event.id,
    )
    session.commit()
    return event


def unattend(session: Session, user: User, event_id: int) -> Event:
    event = get_event(session, event_id)
    row = next((a for a in event.attendees if a.user_id == user.id), None)
    if row is None:
        raise InvalidRequest("Not attending this event")
    event.attendees.remove(row)
    reminder = _reminder_for(event, user.id)
    if reminder is not None:
        event.reminders.remove(reminder)
    session.commit()
    return event


def set_reminder(
    session: Session, user: User, event_id: int, remind_at: datetime
) -> EventReminder:
    """Schedule (or move) *user*'s reminder; only attendees may set one."""
    event = get_event(session, event_id)
    if user.id not in event.attendee_ids():
        raise InvalidRequest("Not attending this event")
    row = _put_reminder(event, user.id, _check_reminder_time(event, remind_at))
    session.commit()
    logger.info("User %d set a reminder for event %d", user.id, event.id)
    return row


def cancel_reminder(session: Session, user: User, event_id: int) -> None:
    event = get_event(session, event_id)
    row = _reminder_for(event, user.id)
    if row is None:
        raise NotFound("Reminder not found")
    event.reminders.remove(row)
    session.commit()


def toggle_like(session: Session, user: User, event_id: int) -> tuple[Event, bool]:
    event = get_event(session, event_id)
    existing = event.liked_by(user.id)
    if existing is not None:
        event.likes.remove(existing)
        session.commit()
        return event, False

    event.likes.append(EventLike(user_id=user.id))
    notification_service.notify(
        session,
        recipient_id=event.organizer_id,
        sender_id=user.id,
        type=NotificationType.LIKE_RECEIVED,
        title="New like",
        message=f"{user.name} liked {event.title}",
        event_id=event.id,
    )
    session.commit()
    return event, True


# ---------------------------------------------------------------------------
# Comments & feedback
# ---------------------------------------------------------------------------
def add_comment(session: Session, user: User, event_id: int, text: str) -> list[EventComment]:
    event = get_event(session, event_id)
    event.comments.insert(0, EventComment(user_id=user.id, content=text))
    notification_service.notify(
        session,
        recipient_id=event.organizer_id,
        sender_id=user.id,
        type=NotificationType.COMMENT_ADDED,
        title="New comment",
        message=f"{user.name} commented on {event.title}",
        event_id=event.id,
    )
    session.commit()
    return list(event.comments)


def delete_comment(
    session: Session, user: User, event_id: int, comment_id: int
) -> list[EventComment]:
    event = get_event(session, event_id)
    comment = next((c for c in event.comments if c.id == comment_id), None)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user.id and not user.is_moderator:
        raise Forbidden("Access denied")
    event.comments.remove(comment)
    session.commit()
    return list(event.comments)


def submit_feedback(
    session: Session,
    user: User,
    event_id: int,
    rating: int,
    comment: str | None = None,
) -> Event:
    """Record *user*'s rating, replacing any rating they gave before."""
    event = get_event(session, event_id)
    existing = next((f for f in event.feedback if f.user_id == user.id), None)
    if existing is not None:
        existing.rating = rating
        existing.comment = comment
        existing.created_at = datetime.now(UTC)
    else:
        event.feedback.append(EventFeedback(user_id=user.id, rating=rating, comment=comment))
    session.commit()
    return event
