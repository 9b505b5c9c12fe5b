"""
tests/test_events.py — Event Routes
=====================================
Capacity-limited attendance, date filtering, engagement metrics.
"""

from __future__ import annotations

import pytest

from commonweal.database.models import NotificationType, Role


class TestCreate:
    def test_organizer_is_first_attendee(self, make_user, create_event):
        organizer = make_user()
        body = create_event(organizer)
        assert body["organizer"]["id"] == organizer.id
        assert [a["user"]["id"] for a in body["attendees"]] == [organizer.id]
        assert body["totalAttendees"] == 1
        assert body["engagementRate"] == 0

    def test_end_before_start_rejected(self, client, make_user, headers, event_body):
        resp = client.post(
            "/api/events",
            json={**event_body, "endDate": "2030-04-30T10:00:00Z"},
            headers=headers(make_user()),
        )
        assert resp.status_code == 400

    def test_unknown_initiative_rejected(self, client, make_user, headers, event_body):
        resp = client.post(
            "/api/events", json={**event_body, "initiative": 999}, headers=headers(make_user())
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Initiative not found"

    def test_linked_initiative_is_populated(self, make_user, create_initiative, create_event):
        organizer = make_user()
        initiative = create_initiative(organizer)
        body = create_event(organizer, initiative=initiative["id"])
        assert body["initiative"] == {"id": initiative["id"], "title": "Community Garden"}

    def test_social_impact_score(self, make_user, create_event):
        body = create_event(
            make_user(),
            socialImpact={"peopleConnected": 50, "knowledgeShared": 10},
        )
        assert body["socialImpactScore"] == 7


class TestAttendance:
    def test_capacity(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer, maxAttendees=3)["id"]

        ok = [make_user(), make_user()]
        for user in ok:
            assert client.post(f"/api/events/{eid}/attend", headers=headers(user)).status_code == 200

        late = client.post(f"/api/events/{eid}/attend", headers=headers(make_user()))
        assert late.status_code == 400
        assert late.json()["detail"] == "Event is full"

        body = client.get(f"/api/events/{eid}").json()
        assert body["totalAttendees"] == 3

    def test_duplicate_attendance(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer)["id"]
        resp = client.post(f"/api/events/{eid}/attend", headers=headers(organizer))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Already attending this event"

    def test_unlimited_when_max_is_zero(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        for _ in range(5):
            resp = client.post(f"/api/events/{eid}/attend", headers=headers(make_user()))
            assert resp.status_code == 200
        assert client.get(f"/api/events/{eid}").json()["totalAttendees"] == 6

    def test_leave(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        guest = make_user()
        client.post(f"/api/events/{eid}/attend", headers=headers(guest))
        resp = client.delete(f"/api/events/{eid}/attend", headers=headers(guest))
        assert resp.status_code == 200
        assert resp.json()["totalAttendees"] == 1
        again = client.delete(f"/api/events/{eid}/attend", headers=headers(guest))
        assert again.status_code == 400

    def test_attend_notifies_organizer(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer)["id"]
        client.post(f"/api/events/{eid}/attend", headers=headers(make_user()))
        inbox = client.get("/api/notifications", headers=headers(organizer)).json()
        assert inbox["notifications"][0]["type"] == NotificationType.EVENT_ATTENDING
        assert inbox["notifications"][0]["eventId"] == eid

    def test_engagement_rate(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer)["id"]
        fan = make_user()
        client.post(f"/api/events/{eid}/attend", headers=headers(fan))
        body = client.post(f"/api/events/{eid}/like", headers=headers(fan)).json()
        assert body["liked"] is True
        assert body["event"]["totalLikes"] == 1
        assert body["event"]["engagementRate"] == pytest.approx(50.0)


class TestOwnership:
    def test_non_organizer_update_rejected(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        resp = client.put(f"/api/events/{eid}", json={"title": "Mine now"}, headers=headers(make_user()))
        assert resp.status_code == 401
        assert client.get(f"/api/events/{eid}").json()["title"] == "Planting Day"

    def test_update_notifies_attendees(self, client, make_user, headers, create_event):
        organizer, guest = make_user(), make_user()
        eid = create_event(organizer)["id"]
        client.post(f"/api/events/{eid}/attend", headers=headers(guest))
        resp = client.put(
            f"/api/events/{eid}", json={"status": "cancelled"}, headers=headers(organizer)
        )
        assert resp.json()["status"] == "cancelled"
        inbox = client.get("/api/notifications", headers=headers(guest)).json()
        assert [n["type"] for n in inbox["notifications"]] == [NotificationType.EVENT_UPDATED]

    def test_admin_deletes(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        resp = client.delete(f"/api/events/{eid}", headers=headers(make_user(role=Role.ADMIN)))
        assert resp.status_code == 200
        assert client.get(f"/api/events/{eid}").status_code == 404


class TestListing:
    def test_soonest_first_and_date_filter(self, client, make_user, create_event):
        organizer = make_user()
        later = create_event(organizer, date="2030-06-01T09:00:00Z")
        sooner = create_event(organizer, date="2030-05-01T23:30:00Z")

        body = client.get("/api/events").json()
        assert [e["id"] for e in body["events"]] == [sooner["id"], later["id"]]

        on_day = client.get("/api/events?date=2030-05-01").json()
        assert [e["id"] for e in on_day["events"]] == [sooner["id"]]

    def test_bad_date_filter(self, client):
        assert client.get("/api/events?date=May-1").status_code == 400

    def test_initiative_filter(self, client, make_user, create_initiative, create_event):
        organizer = make_user()
        iid = create_initiative(organizer)["id"]
        linked = create_event(organizer, initiative=iid)
        create_event(organizer)
        body = client.get(f"/api/events?initiative={iid}").json()
        assert [e["id"] for e in body["events"]] == [linked["id"]]


class TestFeedback:
    def test_resubmission_replaces_rating(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        guest = make_user()
        url = f"/api/events/{eid}/feedback"
        client.post(url, json={"rating": 1}, headers=headers(guest))
        body = client.post(url, json={"rating": 5}, headers=headers(guest)).json()
        assert body["totalRatings"] == 1
        assert body["averageRating"] == pytest.approx(5.0)


class TestContactDetails:
    def test_contact_and_social_links_round_out_the_event(self, make_user, create_event):
        body = create_event(
            make_user(),
            contactInfo={"email": "hello@riverside.org", "phone": "555-0100"},
            socialMedia={"twitter": "@riverside"},
        )
        assert body["contactInfo"] == {"email": "hello@riverside.org", "phone": "555-0100"}
        assert body["socialMedia"] == {
            "facebook": None, "twitter": "@riverside", "instagram": None,
        }

    def test_defaults_are_empty(self, make_user, create_event):
        body = create_event(make_user())
        assert body["contactInfo"] == {"email": None, "phone": None}

    def test_bad_contact_email_rejected(self, client, make_user, headers, event_body):
        resp = client.post(
            "/api/events",
            json={**event_body, "contactInfo": {"email": "not-an-email"}},
            headers=headers(make_user()),
        )
        assert resp.status_code == 400

    def test_null_clears_contact_info(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer, contactInfo={"phone": "555-0100"})["id"]
        resp = client.put(
            f"/api/events/{eid}", json={"contactInfo": None}, headers=headers(organizer)
        )
        assert resp.status_code == 200
        assert resp.json()["contactInfo"] == {"email": None, "phone": None}


class TestReminders:
    def test_attend_with_reminder(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        guest = make_user()
        resp = client.post(
            f"/api/events/{eid}/attend",
            json={"reminderTime": "2030-04-30T10:00:00Z"},
            headers=headers(guest),
        )
        assert resp.status_code == 200
        assert resp.json()["totalAttendees"] == 2

    @pytest.mark.parametrize(
        "when, detail",
        [
            ("2020-01-01T00:00:00Z", "Reminder time must be in the future"),
            ("2030-05-02T00:00:00Z", "Reminder time cannot be after the event starts"),
        ],
    )
    def test_bad_reminder_time_blocks_attendance(
        self, client, make_user, headers, create_event, when, detail
    ):
        eid = create_event(make_user())["id"]
        resp = client.post(
            f"/api/events/{eid}/attend", json={"reminderTime": when}, headers=headers(make_user())
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == detail
        assert client.get(f"/api/events/{eid}").json()["totalAttendees"] == 1

    def test_only_attendees_set_reminders(self, client, make_user, headers, create_event):
        eid = create_event(make_user())["id"]
        resp = client.post(
            f"/api/events/{eid}/reminder",
            json={"reminderTime": "2030-04-30T10:00:00Z"},
            headers=headers(make_user()),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Not attending this event"

    def test_moving_a_reminder_keeps_one_row(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer)["id"]
        url = f"/api/events/{eid}/reminder"
        first = client.post(
            url, json={"reminderTime": "2030-04-29T10:00:00Z"}, headers=headers(organizer)
        ).json()
        second = client.post(
            url, json={"reminderTime": "2030-05-01T08:00:00Z"}, headers=headers(organizer)
        ).json()
        assert second["id"] == first["id"]
        assert second["reminderTime"] == "2030-05-01T08:00:00+00:00"
        assert second["sent"] is False
        assert second["event"] == {"id": eid, "title": "Planting Day"}

    def test_cancel(self, client, make_user, headers, create_event):
        organizer = make_user()
        eid = create_event(organizer)["id"]
        url = f"/api/events/{eid}/reminder"
        client.post(url, json={"reminderTime": "2030-04-30T10:00:00Z"}, headers=headers(organizer))
        assert client.delete(url, headers=headers(organizer)).status_code == 200
        assert client.delete(url, headers=headers(organizer)).status_code == 404
