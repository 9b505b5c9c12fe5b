"""
commonweal.api.routes.users — Profiles, search & role management
==================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from commonweal.api.deps import get_current_user, get_page, get_session, require_admin
from commonweal.api.schemas import CamelModel
from commonweal.api.serializers import event_dict, initiative_dict, page_dict, user_dict
from commonweal.database.models import Role, User
from commonweal.services import user_service
from commonweal.services.errors import parse_id
from commonweal.services.pagination import PageRequest

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


class RoleUpdate(CamelModel):
    role: Role


@router.get("/profile")
def profile(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """The caller's account plus what they created and joined."""
    data = user_dict(user, private=True)
    data["createdInitiatives"] = [
        {"id": i.id, "title": i.title, "status": i.status} for i in user.created_initiatives
    ]
    data["joinedInitiatives"] = [
        {"id": i.id, "title": i.title, "status": i.status}
        for i in user_service.joined_initiatives(session, user.id)
    ]
    return data


@router.get("/search")
def search_users(
    q: str | None = None,
    location: str | None = None,
    interests: str | None = None,
    page: PageRequest = Depends(get_page),
    session: Session = Depends(get_session),
):
    wanted = [s.strip() for s in interests.split(",") if s.strip()] if interests else None
    result = user_service.search_users(
        session, page, q=q, location=location, interests=wanted
    )
    return page_dict(result, "users", [user_dict(u) for u in result.items])


@router.get("/{user_id}")
def get_user(user_id: str, session: Session = Depends(get_session)):
    return user_dict(user_service.get_user(session, parse_id(user_id, "User")))


@router.get("/{user_id}/initiatives")
def user_initiatives(user_id: str, session: Session = Depends(get_session)):
    rows = user_service.initiatives_for_user(session, parse_id(user_id, "User"))
    return [initiative_dict(i) for i in rows]


@router.get("/{user_id}/events")
def user_events(user_id: str, session: Session = Depends(get_session)):
    rows = user_service.events_for_user(session, parse_id(user_id, "User"))
    return [event_dict(e) for e in rows]


@router.put("/{user_id}/role")
def set_user_role(
    user_id: str,
    body: RoleUpdate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    user = user_service.set_role(session, admin, parse_id(user_id, "User"), body.role)
    return user_dict(user)
