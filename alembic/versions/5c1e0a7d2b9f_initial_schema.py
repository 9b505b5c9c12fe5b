"""Initial Commonweal schema

Revision ID: 5c1e0a7d2b9f
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c1e0a7d2b9f'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer, primary_key=True, autoincrement=True)


def _fk(name: str, target: str, *, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, sa.Integer, sa.ForeignKey(f"{target}.id", ondelete=ondelete), nullable=nullable
    )


def _ts(name: str, *, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create users, initiatives, events and their child tables."""

    # --- users ---
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("bio", sa.String(500), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("avatar", sa.String(1024), nullable=True),
        sa.Column("interests", sa.JSON, nullable=True),
        sa.Column("reset_token_hash", sa.String(64), nullable=True),
        _ts("reset_token_expires_at"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_users_name", "users", ["name"])

    # --- initiatives ---
    op.create_table(
        "initiatives",
        _id(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(40), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        _fk("creator_id", "users"),
        sa.Column("status", sa.String(20), nullable=False, server_default="planning"),
        _ts("start_date"),
        _ts("end_date"),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("images", sa.JSON, nullable=True),
        sa.Column("is_public", sa.Boolean, server_default=sa.true()),
        sa.Column("people_reached", sa.Float, server_default="0"),
        sa.Column("hours_volunteered", sa.Float, server_default="0"),
        sa.Column("funds_raised", sa.Float, server_default="0"),
        sa.Column("environmental_impact", sa.Float, server_default="0"),
        sa.Column("social_connections", sa.Float, server_default="0"),
        sa.Column("impact_score", sa.Integer, server_default="0"),
        sa.Column("average_rating", sa.Float, server_default="0"),
        sa.Column("total_ratings", sa.Integer, server_default="0"),
        sa.Column("progress", sa.Integer, server_default="0"),
        sa.Column("share_count", sa.Integer, server_default="0"),
        sa.Column("view_count", sa.Integer, server_default="0"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_initiatives_public_created", "initiatives", ["is_public", "created_at"]
    )
    op.create_index("ix_initiatives_category", "initiatives", ["category"])
    op.create_index("ix_initiatives_creator", "initiatives", ["creator_id"])

    op.create_table(
        "initiative_members",
        _id(),
        _fk("initiative_id", "initiatives"),
        _fk("user_id", "users"),
        sa.Column("role", sa.String(30), server_default="member"),
        _ts("joined_at"),
        sa.UniqueConstraint("initiative_id", "user_id", name="uq_initiative_members"),
    )
    op.create_index("ix_initiative_members_user", "initiative_members", ["user_id"])

    op.create_table(
        "initiative_likes",
        _id(),
        _fk("initiative_id", "initiatives"),
        _fk("user_id", "users"),
        _ts("created_at"),
        sa.UniqueConstraint("initiative_id", "user_id", name="uq_initiative_likes"),
    )

    op.create_table(
        "initiative_feedback",
        _id(),
        _fk("initiative_id", "initiatives"),
        _fk("user_id", "users"),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.String(500), nullable=True),
        _ts("created_at"),
        sa.UniqueConstraint("initiative_id", "user_id", name="uq_initiative_feedback"),
    )

    op.create_table(
        "initiative_comments",
        _id(),
        _fk("initiative_id", "initiatives"),
        _fk("user_id", "users"),
        sa.Column("content", sa.String(1000), nullable=False),
        _ts("created_at"),
    )
    op.create_index(
        "ix_initiative_comments_parent", "initiative_comments", ["initiative_id"]
    )

    op.create_table(
        "initiative_milestones",
        _id(),
        _fk("initiative_id", "initiatives"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _ts("target_date"),
        sa.Column("completed", sa.Boolean, server_default=sa.false()),
        _ts("completed_date"),
    )

    # --- events ---
    op.create_table(
        "events",
        _id(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(40), nullable=False),
        _ts("date", nullable=False),
        _ts("end_date"),
        sa.Column("location", sa.String(200), nullable=False),
        _fk("organizer_id", "users"),
        _fk("initiative_id", "initiatives", nullable=True, ondelete="SET NULL"),
        sa.Column("status", sa.String(20), nullable=False, server_default="upcoming"),
        sa.Column("max_attendees", sa.Integer, nullable=True, server_default="0"),
        sa.Column("is_free", sa.Boolean, server_default=sa.true()),
        sa.Column("ticket_price", sa.Float, server_default="0"),
        sa.Column("ticket_url", sa.String(1024), nullable=True),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("images", sa.JSON, nullable=True),
        sa.Column("is_public", sa.Boolean, server_default=sa.true()),
        sa.Column("contact_info", sa.JSON, nullable=True),
        sa.Column("social_media", sa.JSON, nullable=True),
        sa.Column("people_connected", sa.Float, server_default="0"),
        sa.Column("knowledge_shared", sa.Float, server_default="0"),
        sa.Column("community_building", sa.Float, server_default="0"),
        sa.Column("environmental_impact", sa.Float, server_default="0"),
        sa.Column("social_impact_score", sa.Integer, server_default="0"),
        sa.Column("average_rating", sa.Float, server_default="0"),
        sa.Column("total_ratings", sa.Integer, server_default="0"),
        sa.Column("engagement_rate", sa.Float, server_default="0"),
        sa.Column("total_attendees", sa.Integer, server_default="0"),
        sa.Column("total_likes", sa.Integer, server_default="0"),
        sa.Column("share_count", sa.Integer, server_default="0"),
        sa.Column("view_count", sa.Integer, server_default="0"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_public_date", "events", ["is_public", "date"])
    op.create_index("ix_events_organizer", "events", ["organizer_id"])

    op.create_table(
        "event_attendees",
        _id(),
        _fk("event_id", "events"),
        _fk("user_id", "users"),
        _ts("joined_at"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_attendees"),
    )
    op.create_index("ix_event_attendees_user", "event_attendees", ["user_id"])

    op.create_table(
        "event_likes",
        _id(),
        _fk("event_id", "events"),
        _fk("user_id", "users"),
        _ts("created_at"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_likes"),
    )

    op.create_table(
        "event_feedback",
        _id(),
        _fk("event_id", "events"),
        _fk("user_id", "users"),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.String(500), nullable=True),
        _ts("created_at"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_feedback"),
    )

    op.create_table(
        "event_comments",
        _id(),
        _fk("event_id", "events"),
        _fk("user_id", "users"),
        sa.Column("content", sa.String(1000), nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_event_comments_parent", "event_comments", ["event_id"])

    op.create_table(
        "event_reminders",
        _id(),
        _fk("event_id", "events"),
        _fk("user_id", "users"),
        _ts("remind_at", nullable=False),
        sa.Column("sent", sa.Boolean, server_default=sa.false()),
        _ts("created_at"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_reminders"),
    )
    op.create_index("ix_event_reminders_due", "event_reminders", ["sent", "remind_at"])

    # --- donations ---
    op.create_table(
        "donations",
        _id(),
        _fk("initiative_id", "initiatives", nullable=True, ondelete="SET NULL"),
        _fk("donor_id", "users"),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("transaction_id", sa.String(200), nullable=True),
        sa.Column("message", sa.String(500), nullable=True),
        sa.Column("is_anonymous", sa.Boolean, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_donations_initiative_time", "donations", ["initiative_id", "created_at"]
    )
    op.create_index("ix_donations_donor_time", "donations", ["donor_id", "created_at"])
    op.create_index("ix_donations_status", "donations", ["status"])

    # --- messages ---
    op.create_table(
        "messages",
        _id(),
        _fk("sender_id", "users"),
        _fk("recipient_id", "users"),
        _fk("initiative_id", "initiatives", nullable=True, ondelete="SET NULL"),
        _fk("event_id", "events", nullable=True, ondelete="SET NULL"),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("content", sa.String(2000), nullable=False),
        sa.Column("is_read", sa.Boolean, server_default=sa.false()),
        _ts("read_at"),
        sa.Column("message_type", sa.String(20), server_default="personal"),
        sa.Column("priority", sa.String(10), server_default="normal"),
        _ts("created_at"),
    )
    op.create_index("ix_messages_sender_time", "messages", ["sender_id", "created_at"])
    op.create_index(
        "ix_messages_recipient_time", "messages", ["recipient_id", "created_at"]
    )
    op.create_index("ix_messages_recipient_read", "messages", ["recipient_id", "is_read"])

    # --- notifications ---
    op.create_table(
        "notifications",
        _id(),
        _fk("recipient_id", "users"),
        _fk("sender_id", "users", nullable=True, ondelete="SET NULL"),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        _fk("initiative_id", "initiatives", nullable=True, ondelete="SET NULL"),
        _fk("event_id", "events", nullable=True, ondelete="SET NULL"),
        _fk("donation_id", "donations", nullable=True, ondelete="SET NULL"),
        _fk("message_id", "messages", nullable=True, ondelete="SET NULL"),
        sa.Column("is_read", sa.Boolean, server_default=sa.false()),
        _ts("read_at"),
        sa.Column("priority", sa.String(10), server_default="normal"),
        _ts("expires_at"),
        _ts("created_at"),
    )
    op.create_index(
        "ix_notifications_recipient_read_time",
        "notifications",
        ["recipient_id", "is_read", "created_at"],
    )
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_expires_at", "notifications", ["expires_at"])


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    for table in (
        "notifications",
        "messages",
        "donations",
        "event_reminders",
        "event_comments",
        "event_feedback",
        "event_likes",
        "event_attendees",
        "events",
        "initiative_milestones",
        "initiative_comments",
        "initiative_feedback",
        "initiative_likes",
        "initiative_members",
        "initiatives",
        "users",
    ):
        op.drop_table(table)
