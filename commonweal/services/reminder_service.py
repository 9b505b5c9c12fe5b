"""
commonweal.services.reminder_service — Event Reminder Dispatch
===============================================================

Attendees schedule reminders through :func:`event_service.attend` or
:func:`event_service.set_reminder`.  This module turns every reminder that
has come due into an ``event_reminder`` notification and flags it sent.
It runs once at API startup and can be scheduled externally (cron,
systemd timer) through the console script::

    commonweal-remind

A reminder for an event that was cancelled or has already started is
flagged sent without notifying anyone.  Reminder notifications expire when
the event ends, so the retention purge clears them afterwards.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from dotenv import load_dotenv
from sqlalchemy import Engine, select

from commonweal.config import configure_logging, load_config
from commonweal.database.engine import create_db_engine, get_session
from commonweal.database.models import (
    EventReminder,
    EventStatus,
    NotificationType,
    Priority,
)
from commonweal.services import notification_service

logger = logging.getLogger(__name__)

# How many reminders to process per transaction
BATCH_SIZE = 500


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def dispatch_due_reminders(
    engine: Engine,
    now: datetime | None = None,
    batch_size: int = BATCH_SIZE,
) -> int:
    """Notify every attendee whose reminder time is at or before *now*.

    Returns the number of notifications created.
    """
    cutoff = now or datetime.now(UTC)
    delivered = 0
    skipped = 0

    while True:
        with get_session(engine) as session:
            due = session.scalars(
                select(EventReminder)
                .where(EventReminder.sent.is_(False))
                .where(EventReminder.remind_at <= cutoff)
                .order_by(EventReminder.remind_at, EventReminder.id)
                .limit(batch_size)
            ).all()

            if not due:
                break

            for reminder in due:
                reminder.sent = True
                event = reminder.event
                starts = _aware(event.date)
                if event.status == EventStatus.CANCELLED or starts <= cutoff:
                    skipped += 1
                    continue
                notification_service.notify(
                    session,
                    recipient_id=reminder.user_id,
                    type=NotificationType.EVENT_REMINDER,
                    title="Event reminder",
                    message=(
                        f"{event.title} starts {starts:%Y-%m-%d %H:%M} UTC "
                        f"at {event.location}"
                    ),
                    event_id=event.id,
                    priority=Priority.HIGH,
                    expires_at=event.end_date or event.date,
                )
                delivered += 1

    if delivered or skipped:
        logger.info(
            "Reminders: delivered %d, skipped %d (cancelled or already started)",
            delivered, skipped,
        )
    return delivered


def main() -> None:
    """Console entry point: dispatch due reminders against ``DATABASE_URL`` and exit."""
    load_dotenv()
    configure_logging(load_config().log_level)
    engine = create_db_engine()
    count = dispatch_due_reminders(engine)
    logger.info("Dispatch complete: %d reminders delivered", count)


if __name__ == "__main__":
    main()
