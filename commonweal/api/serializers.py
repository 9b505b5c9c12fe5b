"""
commonweal.api.serializers — ORM rows → camelCase JSON dicts
=============================================================

Referenced users are embedded as ``{"id", "name", "avatar"}`` summaries and
referenced initiatives/events as ``{"id", "title"}``.  Password hashes and
reset-token digests never leave this module.
"""

from __future__ import annotations

from datetime import UTC, datetime

from commonweal.database.models import (
    Donation,
    Event,
    EventReminder,
    Initiative,
    Message,
    Notification,
    User,
)
from commonweal.services.pagination import Page


def _ts(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


def user_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "avatar": user.avatar}


def ref(obj: Initiative | Event | None) -> dict | None:
    if obj is None:
        return None
    return {"id": obj.id, "title": obj.title}


def page_dict(page: Page, key: str, items: list[dict]) -> dict:
    return {
        key: items,
        "totalPages": page.total_pages,
        "currentPage": page.page,
        "total": page.total,
    }


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def user_dict(user: User, *, private: bool = False) -> dict:
    data = {
        "id": user.id,
        "name": user.name,
        "role": user.role,
        "bio": user.bio,
        "location": user.location,
        "avatar": user.avatar,
        "interests": list(user.interests or []),
        "createdAt": _ts(user.created_at),
    }
    if private:
        data["email"] = user.email
        data["updatedAt"] = _ts(user.updated_at)
    return data


# ---------------------------------------------------------------------------
# Initiatives
# ---------------------------------------------------------------------------
def _comment(c) -> dict:
    return {
        "id": c.id,
        "user": user_summary(c.user),
        "text": c.content,
        "createdAt": _ts(c.created_at),
    }


def _feedback(f) -> dict:
    return {
        "id": f.id,
        "user": user_summary(f.user),
        "rating": f.rating,
        "comment": f.comment,
        "createdAt": _ts(f.created_at),
    }


def comment_list(comments) -> list[dict]:
    return [_comment(c) for c in comments]


def initiative_dict(i: Initiative, *, detail: bool = False) -> dict:
    data = {
        "id": i.id,
        "title": i.title,
        "description": i.description,
        "category": i.category,
        "location": i.location,
        "creator": user_summary(i.creator),
        "status": i.status,
        "startDate": _ts(i.start_date),
        "endDate": _ts(i.end_date),
        "tags": list(i.tags or []),
        "images": list(i.images or []),
        "isPublic": i.is_public,
        "impactMetrics": {
            "peopleReached": i.people_reached,
            "hoursVolunteered": i.hours_volunteered,
            "fundsRaised": i.funds_raised,
            "environmentalImpact": i.environmental_impact,
            "socialConnections": i.social_connections,
        },
        "impactScore": i.impact_score,
        "averageRating": i.average_rating,
        "totalRatings": i.total_ratings,
        "progress": i.progress,
        "shareCount": i.share_count,
        "viewCount": i.view_count,
        "memberCount": len(i.members),
        "likeCount": len(i.likes),
        "createdAt": _ts(i.created_at),
        "updatedAt": _ts(i.updated_at),
    }
    if detail:
        data["members"] = [
            {"user": user_summary(m.user), "role": m.role, "joinedAt": _ts(m.joined_at)}
            for m in i.members
        ]
        data["likes"] = [user_summary(lk.user) for lk in i.likes]
        data["comments"] = comment_list(i.comments)
        data["feedback"] = [_feedback(f) for f in i.feedback]
        data["milestones"] = [
            {
                "id": m.id,
                "title": m.title,
                "description": m.description,
                "targetDate": _ts(m.target_date),
                "completed": m.completed,
                "completedDate": _ts(m.completed_date),
            }
            for m in i.milestones
        ]
    return data


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
def _pick(raw: dict | None, *keys: str) -> dict:
    raw = raw or {}
    return {key: raw.get(key) for key in keys}


def event_dict(e: Event, *, detail: bool = False) -> dict:
    data = {
        "id": e.id,
        "title": e.title,
        "description": e.description,
        "category": e.category,
        "date": _ts(e.date),
        "endDate": _ts(e.end_date),
        "location": e.location,
        "organizer": user_summary(e.organizer),
        "initiative": ref(e.initiative),
        "status": e.status,
        "maxAttendees": e.max_attendees or 0,
        "isFree": e.is_free,
        "ticketPrice": e.ticket_price,
        "ticketUrl": e.ticket_url,
        "tags": list(e.tags or []),
        "images": list(e.images or []),
        "isPublic": e.is_public,
        "contactInfo": _pick(e.contact_info, "email", "phone"),
        "socialMedia": _pick(e.social_media, "facebook", "twitter", "instagram"),
        "socialImpact": {
            "peopleConnected": e.people_connected,
            "knowledgeShared": e.knowledge_shared,
            "communityBuilding": e.community_building,
            "environmentalImpact": e.environmental_impact,
        },
        "socialImpactScore": e.social_impact_score,
        "averageRating": e.average_rating,
        "totalRatings": e.total_ratings,
        "engagementRate": e.engagement_rate,
        "totalAttendees": e.total_attendees,
        "totalLikes": e.total_likes,
        "shareCount": e.share_count,
        "viewCount": e.view_count,
        "createdAt": _ts(e.created_at),
        "updatedAt": _ts(e.updated_at),
    }
    if detail:
        data["attendees"] = [
            {"user": user_summary(a.user), "joinedAt": _ts(a.joined_at)} for a in e.attendees
        ]
        data["likes"] = [user_summary(lk.user) for lk in e.likes]
        data["comments"] = comment_list(e.comments)
        data["feedback"] = [_feedback(f) for f in e.feedback]
    return data


def reminder_dict(r: EventReminder) -> dict:
    return {
        "id": r.id,
        "event": ref(r.event),
        "reminderTime": _ts(r.remind_at),
        "sent": r.sent,
        "createdAt": _ts(r.created_at),
    }


# ---------------------------------------------------------------------------
# Donations, messages, notifications
# ---------------------------------------------------------------------------
def donation_dict(d: Donation, *, public: bool = False) -> dict:
    """*public* hides the donor of anonymous donations."""
    donor = None if (public and d.is_anonymous) else user_summary(d.donor)
    return {
        "id": d.id,
        "initiative": ref(d.initiative),
        "donor": donor,
        "amount": d.amount,
        "currency": d.currency,
        "paymentMethod": d.payment_method,
        "status": d.status,
        "transactionId": None if public else d.transaction_id,
        "message": d.message,
        "isAnonymous": d.is_anonymous,
        "createdAt": _ts(d.created_at),
        "updatedAt": _ts(d.updated_at),
    }


def message_dict(m: Message) -> dict:
    return {
        "id": m.id,
        "sender": user_summary(m.sender),
        "recipient": user_summary(m.recipient),
        "subject": m.subject,
        "content": m.content,
        "isRead": m.is_read,
        "readAt": _ts(m.read_at),
        "messageType": m.message_type,
        "priority": m.priority,
        "initiative": ref(m.initiative),
        "event": ref(m.event),
        "createdAt": _ts(m.created_at),
    }


def notification_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "sender": user_summary(n.sender),
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "initiativeId": n.initiative_id,
        "eventId": n.event_id,
        "donationId": n.donation_id,
        "messageId": n.message_id,
        "isRead": n.is_read,
        "readAt": _ts(n.read_at),
        "priority": n.priority,
        "expiresAt": _ts(n.expires_at),
        "createdAt": _ts(n.created_at),
    }
