"""
tests/test_reminders.py — Event Reminder Dispatch
===================================================
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from commonweal.database.models import EventReminder, NotificationType
from commonweal.services.reminder_service import dispatch_due_reminders

REMIND_AT = "2030-04-30T10:00:00Z"
BEFORE_DUE = datetime(2030, 4, 29, 10, 0, tzinfo=UTC)
AFTER_DUE = datetime(2030, 4, 30, 10, 5, tzinfo=UTC)


def _attend_with_reminder(client, headers, event_id: int, user) -> None:
    resp = client.post(
        f"/api/events/{event_id}/attend", json={"reminderTime": REMIND_AT}, headers=headers(user)
    )
    assert resp.status_code == 200, resp.text


def _reminder_types(client, headers, user) -> list[str]:
    inbox = client.get("/api/notifications", headers=headers(user)).json()
    return [
        n["type"]
        for n in inbox["notifications"]
        if n["type"] == NotificationType.EVENT_REMINDER
    ]


class TestDispatch:
    def test_due_reminder_becomes_notification(
        self, client, db_engine, make_user, headers, create_event
    ):
        eid = create_event(make_user())["id"]
        guest = make_user()
        _attend_with_reminder(client, headers, eid, guest)

        assert dispatch_due_reminders(db_engine, now=AFTER_DUE) == 1

        inbox = client.get("/api/notifications", headers=headers(guest)).json()
        [note] = inbox["notifications"]
        assert note["type"] == NotificationType.EVENT_REMINDER
        assert note["eventId"] == eid
        assert note["sender"] is None
        assert note["priority"] == "high"
        assert note["expiresAt"] == "2030-05-01T10:00:00+00:00"
        assert "Planting Day" in note["message"]

    def test_sent_only_once(self, client, db_engine, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        guest = make_user()
        _attend_with_reminder(client, headers, eid, guest)

        dispatch_due_reminders(db_engine, now=AFTER_DUE)
        assert dispatch_due_reminders(db_engine, now=AFTER_DUE) == 0
        assert len(_reminder_types(client, headers, guest)) == 1

    def test_not_yet_due(self, client, db_engine, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        guest = make_user()
        _attend_with_reminder(client, headers, eid, guest)

        assert dispatch_due_reminders(db_engine, now=BEFORE_DUE) == 0
        with Session(db_engine) as session:
            assert session.scalar(select(EventReminder.sent)) is False

    def test_cancelled_event_is_skipped(self, client, db_engine, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer)["id"]
        guest = make_user()
        _attend_with_reminder(client, headers, eid, guest)
        client.put(f"/api/events/{eid}", json={"status": "cancelled"}, headers=headers(organizer))

        assert dispatch_due_reminders(db_engine, now=AFTER_DUE) == 0
        assert _reminder_types(client, headers, guest) == []
        with Session(db_engine) as session:
            assert session.scalar(select(EventReminder.sent)) is True

    def test_leaving_drops_the_reminder(self, client, db_engine, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        guest = make_user()
        _attend_with_reminder(client, headers, eid, guest)
        client.delete(f"/api/events/{eid}/attend", headers=headers(guest))

        assert dispatch_due_reminders(db_engine, now=AFTER_DUE) == 0
        with Session(db_engine) as session:
            assert session.scalars(select(EventReminder)).all() == []

    def test_batches_cover_every_due_reminder(
        self, client, db_engine, make_user, headers, create_event
    ):
        eid = create_event(make_user())["id"]
        guests = [make_user() for _ in range(3)]
        for guest in guests:
            _attend_with_reminder(client, headers, eid, guest)

        assert dispatch_due_reminders(db_engine, now=AFTER_DUE, batch_size=2) == 3
        for guest in guests:
            assert len(_reminder_types(client, headers, guest)) == 1
