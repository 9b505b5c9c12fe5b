"""
commonweal.api.routes.events — Event CRUD, attendance & feedback
==================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session

from commonweal.api.deps import get_current_user, get_page, get_session
from commonweal.api.schemas import (
    CamelModel,
    CommentBody,
    FeedbackBody,
    UTCDatetime,
    changes,
)
from commonweal.api.serializers import comment_list, event_dict, page_dict, reminder_dict
from commonweal.database.models import EventCategory, EventStatus, User
from commonweal.services import event_service
from commonweal.services.errors import InvalidRequest, parse_id
from commonweal.services.pagination import PageRequest

router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)

NULLABLE_FIELDS = frozenset({
    "end_date", "initiative_id", "ticket_url", "contact_info", "social_media",
})


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SocialImpact(CamelModel):
    people_connected: float | None = Field(default=None, ge=0)
    knowledge_shared: float | None = Field(default=None, ge=0)
    community_building: float | None = Field(default=None, ge=0)
    environmental_impact: float | None = Field(default=None, ge=0)


class ContactInfo(CamelModel):
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)


class SocialMedia(CamelModel):
    facebook: str | None = Field(default=None, max_length=200)
    twitter: str | None = Field(default=None, max_length=200)
    instagram: str | None = Field(default=None, max_length=200)


class EventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    category: EventCategory
    date: UTCDatetime
    end_date: UTCDatetime | None = None
    location: str = Field(min_length=1, max_length=200)
    initiative_id: int | None = Field(default=None, alias="initiative")
    max_attendees: int = Field(default=0, ge=0)
    is_free: bool = True
    ticket_price: float = Field(default=0, ge=0)
    ticket_url: str | None = None
    tags: list[str] = []
    images: list[str] = []
    is_public: bool = True
    social_impact: SocialImpact | None = None
    contact_info: ContactInfo | None = None
    social_media: SocialMedia | None = None


class EventUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    category: EventCategory | None = None
    date: UTCDatetime | None = None
    end_date: UTCDatetime | None = None
    location: str | None = Field(default=None, min_length=1, max_length=200)
    initiative_id: int | None = Field(default=None, alias="initiative")
    status: EventStatus | None = None
    max_attendees: int | None = Field(default=None, ge=0)
    is_free: bool | None = None
    ticket_price: float | None = Field(default=None, ge=0)
    ticket_url: str | None = None
    tags: list[str] | None = None
    images: list[str] | None = None
    is_public: bool | None = None
    social_impact: SocialImpact | None = None
    contact_info: ContactInfo | None = None
    social_media: SocialMedia | None = None


class AttendBody(CamelModel):
    reminder_time: UTCDatetime | None = None


class ReminderBody(CamelModel):
    reminder_time: UTCDatetime


def _day(raw: str | None):
    if not raw:
        return None
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidRequest("date must be formatted YYYY-MM-DD") from None


# ---------------------------------------------------------------------------
# Listing & reading
# ---------------------------------------------------------------------------
@router.get("")
def list_events(
    category: str | None = None,
    status: str | None = None,
    location: str | None = None,
    date: str | None = None,
    search: str | None = None,
    initiative: str | None = None,
    page: PageRequest = Depends(get_page),
    session: Session = Depends(get_session),
):
    result = event_service.list_events(
        session,
        page,
        category=category,
        status=status,
        location=location,
        on_date=_day(date),
        search=search,
        initiative_id=parse_id(initiative, "Initiative") if initiative else None,
    )
    return page_dict(result, "events", [event_dict(e) for e in result.items])


@router.get("/{event_id}")
def get_event(event_id: str, session: Session = Depends(get_session)):
    event = event_service.view_event(session, parse_id(event_id, "Event"))
    return event_dict(event, detail=True)


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_event(
    body: EventCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event = event_service.create_event(session, user, body.model_dump())
    return event_dict(event, detail=True)


@router.put("/{event_id}")
def update_event(
    event_id: str,
    body: EventUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event = event_service.update_event(
        session, user, parse_id(event_id, "Event"), changes(body, NULLABLE_FIELDS)
    )
    return event_dict(event, detail=True)


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event_service.delete_event(session, user, parse_id(event_id, "Event"))
    return {"message": "Event removed"}


# ---------------------------------------------------------------------------
# Attendance, reminders & likes
# ---------------------------------------------------------------------------
@router.post("/{event_id}/attend")
def attend_event(
    event_id: str,
    body: AttendBody | None = None,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    remind_at = body.reminder_time if body is not None else None
    event = event_service.attend(session, user, parse_id(event_id, "Event"), remind_at)
    return event_dict(event, detail=True)


@router.delete("/{event_id}/attend")
def leave_event(
    event_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event = event_service.unattend(session, user, parse_id(event_id, "Event"))
    return event_dict(event, detail=True)


@router.post("/{event_id}/reminder")
def set_reminder(
    event_id: str,
    body: ReminderBody,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    reminder = event_service.set_reminder(
        session, user, parse_id(event_id, "Event"), body.reminder_time
    )
    return reminder_dict(reminder)


@router.delete("/{event_id}/reminder")
def cancel_reminder(
    event_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event_service.cancel_reminder(session, user, parse_id(event_id, "Event"))
    return {"message": "Reminder cancelled"}


@router.post("/{event_id}/like")
def like_event(
    event_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event, liked = event_service.toggle_like(session, user, parse_id(event_id, "Event"))
    return {"liked": liked, "event": event_dict(event, detail=True)}


# ---------------------------------------------------------------------------
# Comments & feedback
# ---------------------------------------------------------------------------
@router.post("/{event_id}/comment")
def comment_on_event(
    event_id: str,
    body: CommentBody,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return comment_list(
        event_service.add_comment(session, user, parse_id(event_id, "Event"), body.text)
    )


@router.delete("/{event_id}/comments/{comment_id}")
def delete_event_comment(
    event_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return comment_list(
        event_service.delete_comment(
            session, user, parse_id(event_id, "Event"), parse_id(comment_id, "Comment")
        )
    )


@router.post("/{event_id}/feedback")
def rate_event(
    event_id: str,
    body: FeedbackBody,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    event = event_service.submit_feedback(
        session, user, parse_id(event_id, "Event"), body.rating, body.comment
    )
    return event_dict(event, detail=True)
