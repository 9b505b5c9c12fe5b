"""
commonweal.services.retention_service — Expired Notification Cleanup
=====================================================================

Notifications may carry an ``expires_at``.  Reads already hide expired
rows; this module deletes them.  It runs once at API startup and can be
scheduled externally (cron, systemd timer) through the console script::

    commonweal-purge

**Deletion is batched** so a large backlog never holds a long lock on the
notifications table.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from dotenv import load_dotenv
from sqlalchemy import Engine, delete, select

from commonweal.config import configure_logging, load_config
from commonweal.database.engine import create_db_engine, get_session
from commonweal.database.models import Notification

logger = logging.getLogger(__name__)

# How many rows to delete in each batch
BATCH_SIZE = 5_000


def purge_expired_notifications(
    engine: Engine,
    now: datetime | None = None,
    batch_size: int = BATCH_SIZE,
) -> int:
    """Delete every notification whose ``expires_at`` is at or before *now*.

    Returns the number of rows deleted.
    """
    cutoff = now or datetime.now(UTC)
    deleted = 0

    while True:
        with get_session(engine) as session:
            ids = session.scalars(
                select(Notification.id)
                .where(Notification.expires_at.is_not(None))
                .where(Notification.expires_at <= cutoff)
                .limit(batch_size)
            ).all()

            if not ids:
                break

            result = session.execute(
                delete(Notification).where(Notification.id.in_(ids))
            )
            deleted += result.rowcount or 0

    if deleted:
        logger.info("Retention: purged %d expired notifications", deleted)
    return deleted


def main() -> None:
    """Console entry point: purge once against ``DATABASE_URL`` and exit."""
    load_dotenv()
    configure_logging(load_config().log_level)
    engine = create_db_engine()
    count = purge_expired_notifications(engine)
    logger.info("Purge complete — %d notifications removed", count)


if __name__ == "__main__":
    main()
