"""
commonweal.api.routes.messages — Direct messages between users
=================================================================
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session

from commonweal.api.deps import get_current_user, get_page, get_session
from commonweal.api.schemas import CamelModel
from commonweal.api.serializers import message_dict, page_dict
from commonweal.database.models import MessageType, Priority, User
from commonweal.services import message_service
from commonweal.services.errors import parse_id
from commonweal.services.pagination import PageRequest

router = APIRouter(prefix="/messages", tags=["messages"])
logger = logging.getLogger(__name__)


class MessageCreate(CamelModel):
    recipient_id: int = Field(alias="recipient")
    subject: str = Field(min_length=1, max_length=100)
    content: str = Field(min_length=1, max_length=2000)
    message_type: MessageType = MessageType.PERSONAL
    priority: Priority = Priority.NORMAL
    initiative_id: int | None = Field(default=None, alias="initiative")
    event_id: int | None = Field(default=None, alias="event")


@router.get("")
def inbox(
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
    page: PageRequest = Depends(get_page),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = message_service.inbox(session, user, page, unread_only=unread_only)
    return page_dict(result, "messages", [message_dict(m) for m in result.items])


@router.get("/sent")
def sent_messages(
    page: PageRequest = Depends(get_page),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    result = message_service.sent(session, user, page)
    return page_dict(result, "messages", [message_dict(m) for m in result.items])


@router.get("/unread/count")
def unread_count(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return {"count": message_service.unread_count(session, user)}


@router.get("/{message_id}")
def get_message(
    message_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return message_dict(message_service.open_message(session, user, parse_id(message_id, "Message")))


@router.post("", status_code=201)
def send_message(
    body: MessageCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return message_dict(message_service.send(session, user, body.model_dump()))


@router.put("/{message_id}/read")
def mark_message_read(
    message_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return message_dict(message_service.mark_read(session, user, parse_id(message_id, "Message")))


@router.delete("/{message_id}")
def delete_message(
    message_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    message_service.delete_message(session, user, parse_id(message_id, "Message"))
    return {"message": "Message deleted"}
