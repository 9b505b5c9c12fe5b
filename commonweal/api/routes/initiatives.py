"""
commonweal.api.routes.initiatives — Initiative CRUD, membership & feedback
============================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from commonweal.api.deps import get_current_user, get_page, get_session
from commonweal.api.schemas import (
    CamelModel,
    CommentBody,
    FeedbackBody,
    UTCDatetime,
    changes,
)
from commonweal.api.serializers import comment_list, initiative_dict, page_dict
from commonweal.database.models import InitiativeCategory, InitiativeStatus, User
from commonweal.services import initiative_service
from commonweal.services.errors import parse_id
from commonweal.services.pagination import PageRequest

router = APIRouter(prefix="/initiatives", tags=["initiatives"])
logger = logging.getLogger(__name__)

MILESTONE_NULLABLE = frozenset({"description", "target_date"})


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ImpactMetrics(CamelModel):
    people_reached: float | None = Field(default=None, ge=0)
    hours_volunteered: float | None = Field(default=None, ge=0)
    funds_raised: float | None = Field(default=None, ge=0)
    environmental_impact: float | None = Field(default=None, ge=0)
    social_connections: float | None = Field(default=None, ge=0)


class InitiativeCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    category: InitiativeCategory
    location: str = Field(min_length=1, max_length=200)
    start_date: UTCDatetime | None = None
    end_date: UTCDatetime | None = None
    tags: list[str] = []
    images: list[str] = []
    is_public: bool = True
    impact_metrics: ImpactMetrics | None = None


class InitiativeUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    category: InitiativeCategory | None = None
    location: str | None = Field(default=None, min_length=1, max_length=200)
    status: InitiativeStatus | None = None
    start_date: UTCDatetime | None = None
    end_date: UTCDatetime | None = None
    tags: list[str] | None = None
    images: list[str] | None = None
    is_public: bool | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    impact_metrics: ImpactMetrics | None = None


class JoinBody(CamelModel):
    role: str = Field(default="member", min_length=1, max_length=30)


class MilestoneCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    target_date: UTCDatetime | None = None


class MilestoneUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    target_date: UTCDatetime | None = None
    completed: bool | None = None


# ---------------------------------------------------------------------------
# Listing & reading
# ---------------------------------------------------------------------------
@router.get("")
def list_initiatives(
    category: str | None = None,
    status: str | None = None,
    location: str | None = None,
    search: str | None = None,
    page: PageRequest = Depends(get_page),
    session: Session = Depends(get_session),
):
    result = initiative_service.list_initiatives(
        session, page, category=category, status=status, location=location, search=search
    )
    return page_dict(result, "initiatives", [initiative_dict(i) for i in result.items])


@router.get("/{initiative_id}")
def get_initiative(initiative_id: str, session: Session = Depends(get_session)):
    initiative = initiative_service.view_initiative(session, parse_id(initiative_id, "Initiative"))
    return initiative_dict(initiative, detail=True)


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_initiative(
    body: InitiativeCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative = initiative_service.create_initiative(session, user, body.model_dump())
    return initiative_dict(initiative, detail=True)


@router.put("/{initiative_id}")
def update_initiative(
    initiative_id: str,
    body: InitiativeUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative = initiative_service.update_initiative(
        session, user, parse_id(initiative_id, "Initiative"), changes(body, nullable={"end_date"})
    )
    return initiative_dict(initiative, detail=True)


@router.delete("/{initiative_id}")
def delete_initiative(
    initiative_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative_service.delete_initiative(session, user, parse_id(initiative_id, "Initiative"))
    return {"message": "Initiative removed"}


# ---------------------------------------------------------------------------
# Membership, likes, comments, feedback
# ---------------------------------------------------------------------------
@router.post("/{initiative_id}/join")
def join_initiative(
    initiative_id: str,
    body: JoinBody | None = None,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    role = body.role if body is not None else "member"
    initiative, joined = initiative_service.toggle_membership(
        session, user, parse_id(initiative_id, "Initiative"), role
    )
    return {"joined": joined, "initiative": initiative_dict(initiative, detail=True)}


@router.post("/{initiative_id}/like")
def like_initiative(
    initiative_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative, liked = initiative_service.toggle_like(
        session, user, parse_id(initiative_id, "Initiative")
    )
    return {"liked": liked, "initiative": initiative_dict(initiative, detail=True)}


@router.post("/{initiative_id}/comment")
def comment_on_initiative(
    initiative_id: str,
    body: CommentBody,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    comments = initiative_service.add_comment(
        session, user, parse_id(initiative_id, "Initiative"), body.text
    )
    return comment_list(comments)


@router.delete("/{initiative_id}/comments/{comment_id}")
def delete_initiative_comment(
    initiative_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    comments = initiative_service.delete_comment(
        session,
        user,
        parse_id(initiative_id, "Initiative"),
        parse_id(comment_id, "Comment"),
    )
    return comment_list(comments)


@router.post("/{initiative_id}/feedback")
def rate_initiative(
    initiative_id: str,
    body: FeedbackBody,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative = initiative_service.submit_feedback(
        session, user, parse_id(initiative_id, "Initiative"), body.rating, body.comment
    )
    return initiative_dict(initiative, detail=True)


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------
@router.post("/{initiative_id}/milestones", status_code=201)
def add_milestone(
    initiative_id: str,
    body: MilestoneCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative = initiative_service.add_milestone(
        session, user, parse_id(initiative_id, "Initiative"), body.model_dump()
    )
    return initiative_dict(initiative, detail=True)


@router.put("/{initiative_id}/milestones/{milestone_id}")
def update_milestone(
    initiative_id: str,
    milestone_id: str,
    body: MilestoneUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    initiative = initiative_service.update_milestone(
        session,
        user,
        parse_id(initiative_id, "Initiative"),
        parse_id(milestone_id, "Milestone"),
        changes(body, MILESTONE_NULLABLE),
    )
    return initiative_dict(initiative, detail=True)
