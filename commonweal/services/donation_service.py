"""
commonweal.services.donation_service — Pledges & Manual Settlement
===================================================================

There is no payment gateway.  A donation is recorded as ``pending`` and an
admin moves it through its states by hand:

    pending ─┬─> completed ──> refunded
             └─> failed

Once ``completed``, amount and donor are frozen and the only way out is a
refund.  Completing a donation credits the initiative's ``funds_raised``
(which feeds its impact score); refunding a completed one debits it.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from commonweal.database.models import (
    Donation,
    DonationStatus,
    Initiative,
    NotificationType,
    User,
)
from commonweal.services import notification_service
from commonweal.services.errors import InvalidRequest, NotFound
from commonweal.services.pagination import Page, PageRequest, paginate

logger = logging.getLogger(__name__)

# Allowed status moves out of each state.  States not listed are free.
_LOCKED_TRANSITIONS: dict[str, frozenset[str]] = {
    DonationStatus.COMPLETED: frozenset({DonationStatus.COMPLETED, DonationStatus.REFUNDED}),
    DonationStatus.REFUNDED: frozenset({DonationStatus.REFUNDED}),
}


def get_donation(session: Session, donation_id: int) -> Donation:
    donation = session.get(Donation, donation_id)
    if donation is None:
        raise NotFound("Donation not found")
    return donation


def create_donation(session: Session, donor: User, data: dict[str, Any]) -> Donation:
    initiative = session.get(Initiative, data["initiative_id"])
    if initiative is None:
        raise NotFound("Initiative not found")

    donation = Donation(
        initiative_id=initiative.id,
        donor_id=donor.id,
        amount=data["amount"],
        currency=(data.get("currency") or "USD").upper(),
        payment_method=data["payment_method"],
        message=data.get("message"),
        is_anonymous=bool(data.get("is_anonymous", False)),
        status=DonationStatus.PENDING,
    )
    session.add(donation)
    session.commit()
    logger.info(
        "User %d pledged %.2f %s to initiative %d (donation %d)",
        donor.id, donation.amount, donation.currency, initiative.id, donation.id,
    )
    return donation


def update_status(
    session: Session,
    admin: User,
    donation_id: int,
    status: str,
    transaction_id: str | None = None,
) -> Donation:
    donation = get_donation(session, donation_id)
    previous = donation.status

    allowed = _LOCKED_TRANSITIONS.get(previous)
    if allowed is not None and status not in allowed:
        raise InvalidRequest(f"Cannot change a {previous} donation to {status}")

    donation.status = status
    if transaction_id:
        donation.transaction_id = transaction_id

    initiative = donation.initiative
    if initiative is not None:
        if status == DonationStatus.COMPLETED and previous != DonationStatus.COMPLETED:
            initiative.funds_raised = (initiative.funds_raised or 0) + donation.amount
            notification_service.notify(
                session,
                recipient_id=initiative.creator_id,
                sender_id=None if donation.is_anonymous else donation.donor_id,
                type=NotificationType.DONATION_RECEIVED,
                title="Donation received",
                message=f"{initiative.title} received {donation.amount:.2f} {donation.currency}",
                initiative_id=initiative.id,
                donation_id=donation.id,
            )
        elif previous == DonationStatus.COMPLETED and status == DonationStatus.REFUNDED:
            initiative.funds_raised = max((initiative.funds_raised or 0) - donation.amount, 0)

    session.commit()
    logger.info(
        "Admin %d moved donation %d: %s → %s", admin.id, donation.id, previous, status
    )
    return donation


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_all(session: Session, request: PageRequest) -> Page:
    stmt = select(Donation).order_by(Donation.created_at.desc(), Donation.id.desc())
    return paginate(session, stmt, request)


def list_mine(session: Session, user: User) -> list[Donation]:
    return list(session.scalars(
        select(Donation)
        .where(Donation.donor_id == user.id)
        .order_by(Donation.created_at.desc(), Donation.id.desc())
    ).all())


def for_initiative(session: Session, initiative_id: int) -> tuple[list[Donation], float]:
    """Completed donations for one initiative and their total amount."""
    donations = list(session.scalars(
        select(Donation)
        .where(
            Donation.initiative_id == initiative_id,
            Donation.status == DonationStatus.COMPLETED,
        )
        .order_by(Donation.created_at.desc(), Donation.id.desc())
    ).all())
    return donations, sum(d.amount for d in donations)


def stats(session: Session, year: int | None = None) -> dict[str, Any]:
    """Overall totals plus per-month totals for *year* (default: current)."""
    count, total, avg = session.execute(
        select(
            func.count(Donation.id),
            func.coalesce(func.sum(Donation.amount), 0),
            func.coalesce(func.avg(Donation.amount), 0),
        )
    ).one()

    year = year or datetime.now(UTC).year
    year_start = datetime(year, 1, 1, tzinfo=UTC)
    month = extract("month", Donation.created_at)
    rows = session.execute(
        select(month.label("month"), func.count(Donation.id), func.sum(Donation.amount))
        .where(Donation.created_at >= year_start)
        .where(Donation.created_at < datetime(year + 1, 1, 1, tzinfo=UTC))
        .group_by(month)
        .order_by(month)
    ).all()

    return {
        "overall": {
            "totalDonations": count,
            "totalAmount": float(total),
            "avgAmount": float(avg),
        },
        "monthly": [
            {"month": int(m), "count": c, "amount": float(a or 0)} for m, c, a in rows
        ],
    }
