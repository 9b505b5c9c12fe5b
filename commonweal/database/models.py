"""
commonweal.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- users                  — Accounts, credentials, roles, public profile
- initiatives            — Community projects with impact tracking
- initiative_members     — Membership rows (creator is always one of them)
- initiative_likes       — One like per (initiative, user)
- initiative_feedback    — One rating per (initiative, user)
- initiative_comments    — Discussion thread
- initiative_milestones  — Progress checkpoints
- events                 — Time-boxed, capacity-limited gatherings
- event_attendees        — One attendance per (event, user)
- event_likes            — One like per (event, user)
- event_feedback         — One rating per (event, user)
- event_comments         — Discussion thread
- event_reminders        — Per-attendee reminder times, sent once
- donations              — Monetary pledges toward an initiative
- messages               — Direct user-to-user notes
- notifications          — System-generated, recipient-scoped alerts

Feedback, comments, members and attendees are owned child tables keyed by
the parent id.  A ``before_flush`` listener at the bottom of this module
keeps every derived metric column in step with those children.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from itertools import chain

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
)

from commonweal.engine import metrics


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Commonweal ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Role(enum.StrEnum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class InitiativeCategory(enum.StrEnum):
    ENVIRONMENT = "Environment"
    EDUCATION = "Education"
    HEALTH = "Health"
    TECHNOLOGY = "Technology"
    ARTS = "Arts"
    SPORTS = "Sports"
    SOCIAL = "Social"
    COMMUNITY_DEVELOPMENT = "Community Development"
    OTHER = "Other"


class InitiativeStatus(enum.StrEnum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class EventCategory(enum.StrEnum):
    COMMUNITY = "Community"
    EDUCATION = "Education"
    HEALTH = "Health"
    ENVIRONMENT = "Environment"
    ARTS = "Arts"
    SPORTS = "Sports"
    TECHNOLOGY = "Technology"
    SOCIAL = "Social"
    FUNDRAISER = "Fundraiser"
    WORKSHOP = "Workshop"
    OTHER = "Other"


class EventStatus(enum.StrEnum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(enum.StrEnum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    OTHER = "other"


class DonationStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class MessageType(enum.StrEnum):
    PERSONAL = "personal"
    INITIATIVE = "initiative"
    EVENT = "event"
    SYSTEM = "system"


class Priority(enum.StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationType(enum.StrEnum):
    """Every kind of event the system notifies a user about."""
    INITIATIVE_CREATED = "initiative_created"
    INITIATIVE_UPDATED = "initiative_updated"
    INITIATIVE_JOINED = "initiative_joined"
    EVENT_CREATED = "event_created"
    EVENT_UPDATED = "event_updated"
    EVENT_REMINDER = "event_reminder"
    EVENT_ATTENDING = "event_attending"
    DONATION_RECEIVED = "donation_received"
    MESSAGE_RECEIVED = "message_received"
    COMMENT_ADDED = "comment_added"
    LIKE_RECEIVED = "like_received"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.USER)
    bio: Mapped[str | None] = mapped_column(String(500), default=None)
    location: Mapped[str | None] = mapped_column(String(200), default=None)
    avatar: Mapped[str | None] = mapped_column(String(1024), default=None)
    interests: Mapped[list] = mapped_column(JSON, default=list)
    reset_token_hash: Mapped[str | None] = mapped_column(String(64), default=None)
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    created_initiatives: Mapped[list[Initiative]] = relationship(
        back_populates="creator", order_by="Initiative.created_at.desc()"
    )
    memberships: Mapped[list[InitiativeMember]] = relationship(back_populates="user")

    __table_args__ = (
        Index("ix_users_name", "name"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_moderator(self) -> bool:
        return self.role in (Role.ADMIN, Role.MODERATOR)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Initiatives
# ---------------------------------------------------------------------------
class Initiative(Base):
    __tablename__ = "initiatives"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InitiativeStatus.PLANNING
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)

    # Impact tracking
    people_reached: Mapped[float] = mapped_column(Float, default=0)
    hours_volunteered: Mapped[float] = mapped_column(Float, default=0)
    funds_raised: Mapped[float] = mapped_column(Float, default=0)
    environmental_impact: Mapped[float] = mapped_column(Float, default=0)
    social_connections: Mapped[float] = mapped_column(Float, default=0)

    # Derived (see refresh_metrics)
    impact_score: Mapped[int] = mapped_column(Integer, default=0)
    average_rating: Mapped[float] = mapped_column(Float, default=0)
    total_ratings: Mapped[int] = mapped_column(Integer, default=0)

    progress: Mapped[int] = mapped_column(Integer, default=0)
    share_count: Mapped[int] = mapped_column(Integer, default=0)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    creator: Mapped[User] = relationship(back_populates="created_initiatives")
    members: Mapped[list[InitiativeMember]] = relationship(
        back_populates="initiative",
        cascade="all, delete-orphan",
        order_by="InitiativeMember.id",
    )
    likes: Mapped[list[InitiativeLike]] = relationship(
        back_populates="initiative",
        cascade="all, delete-orphan",
        order_by="InitiativeLike.id",
    )
    feedback: Mapped[list[InitiativeFeedback]] = relationship(
        back_populates="initiative",
        cascade="all, delete-orphan",
        order_by="InitiativeFeedback.id",
    )
    comments: Mapped[list[InitiativeComment]] = relationship(
        back_populates="initiative",
        cascade="all, delete-orphan",
        order_by="InitiativeComment.id.desc()",
    )
    milestones: Mapped[list[InitiativeMilestone]] = relationship(
        back_populates="initiative",
        cascade="all, delete-orphan",
        order_by="InitiativeMilestone.id",
    )

    __table_args__ = (
        Index("ix_initiatives_public_created", "is_public", "created_at"),
        Index("ix_initiatives_category", "category"),
        Index("ix_initiatives_creator", "creator_id"),
    )

    def member_ids(self) -> set[int]:
        return {m.user_id for m in self.members}

    def liked_by(self, user_id: int) -> InitiativeLike | None:
        return next((lk for lk in self.likes if lk.user_id == user_id), None)

    def refresh_metrics(self) -> None:
        """Recompute every derived column from current children/metrics."""
        if self.feedback:
            self.average_rating = metrics.average_rating(f.rating for f in self.feedback)
            self.total_ratings = len(self.feedback)
        self.impact_score = metrics.impact_score(
            people_reached=self.people_reached or 0,
            hours_volunteered=self.hours_volunteered or 0,
            funds_raised=self.funds_raised or 0,
            environmental_impact=self.environmental_impact or 0,
            social_connections=self.social_connections or 0,
        )

    def __repr__(self) -> str:
        return f"<Initiative id={self.id} title={self.title!r} status={self.status}>"


class InitiativeMember(Base):
    __tablename__ = "initiative_members"
    __metrics_parent__ = "initiative"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    initiative_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(30), default="member")
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    initiative: Mapped[Initiative] = relationship(back_populates="members")
    user: Mapped[User] = relationship(back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("initiative_id", "user_id", name="uq_initiative_members"),
        Index("ix_initiative_members_user", "user_id"),
    )


class InitiativeLike(Base):
    __tablename__ = "initiative_likes"
    __metrics_parent__ = "initiative"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    initiative_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    initiative: Mapped[Initiative] = relationship(back_populates="likes")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("initiative_id", "user_id", name="uq_initiative_likes"),
    )


class InitiativeFeedback(Base):
    __tablename__ = "initiative_feedback"
    __metrics_parent__ = "initiative"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    initiative_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..5
    comment: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    initiative: Mapped[Initiative] = relationship(back_populates="feedback")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("initiative_id", "user_id", name="uq_initiative_feedback"),
    )


class InitiativeComment(Base):
    __tablename__ = "initiative_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    initiative_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(String(1000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    initiative: Mapped[Initiative] = relationship(back_populates="comments")
    user: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_initiative_comments_parent", "initiative_id"),
    )


class InitiativeMilestone(Base):
    __tablename__ = "initiative_milestones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    initiative_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    initiative: Mapped[Initiative] = relationship(back_populates="milestones")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    organizer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    initiative_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=EventStatus.UPCOMING)
    max_attendees: Mapped[int | None] = mapped_column(Integer, default=0)  # 0/None = unlimited
    is_free: Mapped[bool] = mapped_column(Boolean, default=True)
    ticket_price: Mapped[float] = mapped_column(Float, default=0)
    ticket_url: Mapped[str | None] = mapped_column(String(1024), default=None)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    contact_info: Mapped[dict | None] = mapped_column(JSON, default=None)  # {email, phone}
    social_media: Mapped[dict | None] = mapped_column(JSON, default=None)

    # Social impact inputs
    people_connected: Mapped[float] = mapped_column(Float, default=0)
    knowledge_shared: Mapped[float] = mapped_column(Float, default=0)
    community_building: Mapped[float] = mapped_column(Float, default=0)
    environmental_impact: Mapped[float] = mapped_column(Float, default=0)

    # Derived (see refresh_metrics)
    social_impact_score: Mapped[int] = mapped_column(Integer, default=0)
    average_rating: Mapped[float] = mapped_column(Float, default=0)
    total_ratings: Mapped[int] = mapped_column(Integer, default=0)
    engagement_rate: Mapped[float] = mapped_column(Float, default=0)
    total_attendees: Mapped[int] = mapped_column(Integer, default=0)
    total_likes: Mapped[int] = mapped_column(Integer, default=0)

    share_count: Mapped[int] = mapped_column(Integer, default=0)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    organizer: Mapped[User] = relationship()
    initiative: Mapped[Initiative | None] = relationship()
    attendees: Mapped[list[EventAttendee]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventAttendee.id",
    )
    likes: Mapped[list[EventLike]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventLike.id",
    )
    feedback: Mapped[list[EventFeedback]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventFeedback.id",
    )
    comments: Mapped[list[EventComment]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventComment.id.desc()",
    )
    reminders: Mapped[list[EventReminder]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventReminder.id",
    )

    __table_args__ = (
        Index("ix_events_date", "date"),
        Index("ix_events_public_date", "is_public", "date"),
        Index("ix_events_organizer", "organizer_id"),
    )

    def attendee_ids(self) -> set[int]:
        return {a.user_id for a in self.attendees}

    def liked_by(self, user_id: int) -> EventLike | None:
        return next((lk for lk in self.likes if lk.user_id == user_id), None)

    @property
    def is_full(self) -> bool:
        return bool(self.max_attendees) and len(self.attendees) >= self.max_attendees

    def refresh_metrics(self) -> None:
        """Recompute every derived column from current children/metrics."""
        if self.feedback:
            self.average_rating = metrics.average_rating(f.rating for f in self.feedback)
            self.total_ratings = len(self.feedback)
        self.total_attendees = len(self.attendees)
        self.total_likes = len(self.likes)
        if self.attendees:
            self.engagement_rate = metrics.engagement_rate(
                len(self.likes), len(self.attendees)
            )
        self.social_impact_score = metrics.social_impact_score(
            people_connected=self.people_connected or 0,
            knowledge_shared=self.knowledge_shared or 0,
            community_building=self.community_building or 0,
            environmental_impact=self.environmental_impact or 0,
        )

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r} date={self.date}>"


class EventAttendee(Base):
    __tablename__ = "event_attendees"
    __metrics_parent__ = "event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    event: Mapped[Event] = relationship(back_populates="attendees")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_attendees"),
        Index("ix_event_attendees_user", "user_id"),
    )


class EventLike(Base):
    __tablename__ = "event_likes"
    __metrics_parent__ = "event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    event: Mapped[Event] = relationship(back_populates="likes")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_likes"),
    )


class EventFeedback(Base):
    __tablename__ = "event_feedback"
    __metrics_parent__ = "event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..5
    comment: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    event: Mapped[Event] = relationship(back_populates="feedback")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_feedback"),
    )


class EventComment(Base):
    __tablename__ = "event_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(String(1000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    event: Mapped[Event] = relationship(back_populates="comments")
    user: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_event_comments_parent", "event_id"),
    )


class EventReminder(Base):
    """One pending reminder per (event, attendee); ``sent`` flips once delivered."""

    __tablename__ = "event_reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    remind_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sent: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    event: Mapped[Event] = relationship(back_populates="reminders")
    user: Mapped[User] = relationship()

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_reminders"),
        Index("ix_event_reminders_due", "sent", "remind_at"),
    )


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------
class Donation(Base):
    __tablename__ = "donations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    initiative_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="SET NULL"), nullable=True
    )
    donor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=DonationStatus.PENDING)
    transaction_id: Mapped[str | None] = mapped_column(String(200), default=None)
    message: Mapped[str | None] = mapped_column(String(500), default=None)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    initiative: Mapped[Initiative | None] = relationship()
    donor: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_donations_initiative_time", "initiative_id", "created_at"),
        Index("ix_donations_donor_time", "donor_id", "created_at"),
        Index("ix_donations_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Donation id={self.id} amount={self.amount} status={self.status}>"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    initiative_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="SET NULL"), nullable=True
    )
    event_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True
    )
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(String(2000), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    message_type: Mapped[str] = mapped_column(String(20), default=MessageType.PERSONAL)
    priority: Mapped[str] = mapped_column(String(10), default=Priority.NORMAL)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    sender: Mapped[User] = relationship(foreign_keys=[sender_id])
    recipient: Mapped[User] = relationship(foreign_keys=[recipient_id])
    initiative: Mapped[Initiative | None] = relationship()
    event: Mapped[Event | None] = relationship()

    __table_args__ = (
        Index("ix_messages_sender_time", "sender_id", "created_at"),
        Index("ix_messages_recipient_time", "recipient_id", "created_at"),
        Index("ix_messages_recipient_read", "recipient_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id} from={self.sender_id} to={self.recipient_id}>"


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    initiative_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("initiatives.id", ondelete="SET NULL"), nullable=True
    )
    event_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True
    )
    donation_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("donations.id", ondelete="SET NULL"), nullable=True
    )
    message_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    priority: Mapped[str] = mapped_column(String(10), default=Priority.NORMAL)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    sender: Mapped[User | None] = relationship(foreign_keys=[sender_id])

    __table_args__ = (
        Index("ix_notifications_recipient_read_time", "recipient_id", "is_read", "created_at"),
        Index("ix_notifications_type", "type"),
        Index("ix_notifications_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id} to={self.recipient_id} type={self.type}>"


# ---------------------------------------------------------------------------
# Derived-metric hook
# ---------------------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def _refresh_derived_metrics(session: Session, flush_context, instances) -> None:
    """Recompute ratings/scores on any initiative or event about to be written.

    A parent is refreshed when it is new or dirty itself, or when one of its
    metric-bearing children (members, likes, feedback, attendees) is.
    """
    parents: dict[int, Initiative | Event] = {}
    for obj in chain(session.new, session.dirty, session.deleted):
        if isinstance(obj, (Initiative, Event)):
            parent = obj
        else:
            attr = getattr(type(obj), "__metrics_parent__", None)
            parent = getattr(obj, attr, None) if attr else None
        if parent is not None and parent not in session.deleted:
            parents[id(parent)] = parent

    for parent in parents.values():
        parent.refresh_metrics()
