"""
tests/test_notifications.py — Notification Inbox, Broadcast & Retention
=========================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from commonweal.database.models import Notification, NotificationType, Role
from commonweal.services import notification_service
from commonweal.services.retention_service import purge_expired_notifications


def _seed(db_session: Session, user, count: int = 1, **kwargs) -> list[int]:
    ids = []
    for n in range(count):
        row = notification_service.notify(
            db_session,
            recipient_id=user.id,
            type=NotificationType.SYSTEM_ANNOUNCEMENT,
            title=f"Note {n}",
            message="body",
            **kwargs,
        )
        db_session.flush()
        ids.append(row.id)
    db_session.commit()
    return ids


class TestInbox:
    def test_newest_first_and_scoped(self, client, make_user, headers, db_session):
        me, other = make_user(), make_user()
        _seed(db_session, me, count=3)
        _seed(db_session, other)

        body = client.get("/api/notifications", headers=headers(me)).json()
        assert body["total"] == 3
        assert [n["title"] for n in body["notifications"]] == ["Note 2", "Note 1", "Note 0"]

    def test_expired_are_hidden(self, client, make_user, headers, db_session):
        me = make_user()
        past = datetime.now(UTC) - timedelta(minutes=5)
        future = datetime.now(UTC) + timedelta(days=1)
        [expired] = _seed(db_session, me, expires_at=past)
        _seed(db_session, me, expires_at=future)

        body = client.get("/api/notifications", headers=headers(me)).json()
        assert body["total"] == 1
        assert client.get(f"/api/notifications/{expired}", headers=headers(me)).status_code == 404
        assert client.get("/api/notifications/unread/count", headers=headers(me)).json() == {
            "count": 1
        }

    def test_other_users_notification_is_404(self, client, make_user, headers, db_session):
        me, other = make_user(), make_user()
        [nid] = _seed(db_session, other)
        assert client.get(f"/api/notifications/{nid}", headers=headers(me)).status_code == 404
        assert client.put(f"/api/notifications/{nid}/read", headers=headers(me)).status_code == 404
        assert client.delete(f"/api/notifications/{nid}", headers=headers(me)).status_code == 404

    def test_mark_read_and_read_all(self, client, make_user, headers, db_session):
        me = make_user()
        first, _, _ = _seed(db_session, me, count=3)

        resp = client.put(f"/api/notifications/{first}/read", headers=headers(me)).json()
        assert resp["isRead"] is True

        unread = client.get("/api/notifications?unreadOnly=true", headers=headers(me)).json()
        assert unread["total"] == 2

        client.put("/api/notifications/read-all", headers=headers(me))
        assert client.get("/api/notifications/unread/count", headers=headers(me)).json() == {
            "count": 0
        }

    def test_read_all_leaves_expired_rows_alone(self, client, make_user, headers, db_session):
        me = make_user()
        [expired] = _seed(db_session, me, expires_at=datetime.now(UTC) - timedelta(minutes=5))
        _seed(db_session, me, count=2)

        resp = client.put("/api/notifications/read-all", headers=headers(me))
        assert resp.json()["updated"] == 2

        db_session.expire_all()
        row = db_session.get(Notification, expired)
        assert row.is_read is False
        assert row.read_at is None

    def test_delete(self, client, make_user, headers, db_session):
        me = make_user()
        [nid] = _seed(db_session, me)
        assert client.delete(f"/api/notifications/{nid}", headers=headers(me)).status_code == 200
        assert client.get(f"/api/notifications/{nid}", headers=headers(me)).status_code == 404


class TestBroadcast:
    def test_admin_reaches_everyone(self, client, make_user, headers):
        admin = make_user(role=Role.ADMIN)
        users = [make_user(), make_user()]
        resp = client.post(
            "/api/notifications/broadcast",
            json={"title": "Maintenance", "message": "Down at noon", "priority": "high"},
            headers=headers(admin),
        )
        assert resp.status_code == 201
        assert resp.json()["recipients"] == 3
        for user in users:
            inbox = client.get("/api/notifications", headers=headers(user)).json()
            assert inbox["notifications"][0]["title"] == "Maintenance"
            assert inbox["notifications"][0]["priority"] == "high"

    def test_requires_admin(self, client, make_user, headers):
        resp = client.post(
            "/api/notifications/broadcast",
            json={"title": "Spam", "message": "Buy now"},
            headers=headers(make_user(role=Role.MODERATOR)),
        )
        assert resp.status_code == 403


class TestRetention:
    def test_purge_deletes_only_expired(self, db_engine, make_user, db_session):
        me = make_user()
        now = datetime.now(UTC)
        _seed(db_session, me, count=3, expires_at=now - timedelta(hours=1))
        _seed(db_session, me, expires_at=now + timedelta(hours=1))
        _seed(db_session, me)

        assert purge_expired_notifications(db_engine, batch_size=2) == 3

        with Session(db_engine) as session:
            assert session.scalar(select(func.count()).select_from(Notification)) == 2

    def test_self_notifications_are_skipped(self, db_session, make_user):
        me = make_user()
        row = notification_service.notify(
            db_session,
            recipient_id=me.id,
            sender_id=me.id,
            type=NotificationType.LIKE_RECEIVED,
            title="t",
            message="m",
        )
        assert row is None
