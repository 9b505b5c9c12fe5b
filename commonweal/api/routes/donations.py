"""
commonweal.api.routes.donations — Pledges, settlement & donation stats
========================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from commonweal.api.deps import get_current_user, get_page, get_session, require_admin
from commonweal.api.schemas import CamelModel
from commonweal.api.serializers import donation_dict, page_dict
from commonweal.database.models import DonationStatus, PaymentMethod, User
from commonweal.services import donation_service, initiative_service
from commonweal.services.errors import parse_id
from commonweal.services.pagination import PageRequest

router = APIRouter(prefix="/donations", tags=["donations"])
logger = logging.getLogger(__name__)


class DonationCreate(CamelModel):
    initiative_id: int = Field(alias="initiative")
    amount: float = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    payment_method: PaymentMethod
    message: str | None = Field(default=None, max_length=500)
    is_anonymous: bool = False


class StatusUpdate(CamelModel):
    status: DonationStatus
    transaction_id: str | None = Field(default=None, max_length=200)


@router.get("")
def list_donations(
    admin: User = Depends(require_admin),
    page: PageRequest = Depends(get_page),
    session: Session = Depends(get_session),
):
    result = donation_service.list_all(session, page)
    return page_dict(result, "donations", [donation_dict(d) for d in result.items])


@router.get("/stats")
def donation_stats(
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return donation_service.stats(session)


@router.get("/my-donations")
def my_donations(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return [donation_dict(d) for d in donation_service.list_mine(session, user)]


@router.get("/initiative/{initiative_id}")
def initiative_donations(initiative_id: str, session: Session = Depends(get_session)):
    initiative = initiative_service.get_initiative(session, parse_id(initiative_id, "Initiative"))
    donations, total = donation_service.for_initiative(session, initiative.id)
    return {
        "donations": [donation_dict(d, public=True) for d in donations],
        "totalAmount": total,
        "totalDonations": len(donations),
    }


@router.post("", status_code=201)
def create_donation(
    body: DonationCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    donation = donation_service.create_donation(session, user, body.model_dump())
    return donation_dict(donation)


@router.put("/{donation_id}/status")
def update_donation_status(
    donation_id: str,
    body: StatusUpdate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    donation = donation_service.update_status(
        session, admin, parse_id(donation_id, "Donation"), body.status, body.transaction_id
    )
    return donation_dict(donation)
