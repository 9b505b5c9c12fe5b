"""
commonweal.api.routes.notifications — Pull-only notification inbox
====================================================================
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session

from commonweal.api.deps import get_current_user, get_page, get_session, require_admin
from commonweal.api.schemas import CamelModel, UTCDatetime
from commonweal.api.serializers import notification_dict, page_dict
from commonweal.database.models import Priority, User
from commonweal.services import notification_service
from commonweal.services.errors import parse_id
from commonweal.services.pagination import PageRequest

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


class BroadcastBody(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    priority: Priority = Priority.NORMAL
    expires_at: UTCDatetime | None = None


@router.get("")
def list_notifications(
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
    page: PageRequest = Depends(get_page),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = notification_service.list_notifications(
        session, user, page, unread_only=unread_only
    )
    return page_dict(result, "notifications", [notification_dict(n) for n in result.items])


@router.get("/unread/count")
def unread_count(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return {"count": notification_service.unread_count(session, user)}


@router.put("/read-all")
def mark_all_read(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    updated = notification_service.mark_all_read(session, user)
    return {"message": "All notifications marked as read", "updated": updated}


@router.post("/broadcast", status_code=201)
def broadcast(
    body: BroadcastBody,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    sent = notification_service.broadcast(
        session,
        admin,
        title=body.title,
        message=body.message,
        priority=body.priority,
        expires_at=body.expires_at,
    )
    return {"message": "Announcement sent", "recipients": sent}


@router.get("/{notification_id}")
def get_notification(
    notification_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    row = notification_service.get_notification(
        session, user, parse_id(notification_id, "Notification")
    )
    return notification_dict(row)


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    row = notification_service.mark_read(session, user, parse_id(notification_id, "Notification"))
    return notification_dict(row)


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    notification_service.delete_notification(
        session, user, parse_id(notification_id, "Notification")
    )
    return {"message": "Notification deleted"}
