"""Tests for reminder CRUD, ownership and uniqueness.

Covers:
- Create: success, event not found, out of window, invalid format, duplicate
- Target event must be visible to the requester (own, or PUBLISHED)
- Uniqueness enforced by the database constraint, not only the pre-check
- Update: owner only, re-validation against the target event, re-arming
- Delete: owner only, two-step confirmation
- Listing and lookup by id
- Every failure comes back as a {success: false, error} envelope
"""
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from eventdash.errors import DuplicateReminder, Forbidden, PersistenceError, ReminderNotFound
from eventdash.models.event import EventStatus
from eventdash.models.reminder import Reminder
from eventdash.services import reminder_service
from eventdash.timeutil import parse_instant, utcnow
from tests.conftest import (
    auth,
    create_test_event,
    create_test_user,
    insert_event,
    insert_reminder,
    insert_user,
    iso,
)


def _event_date(event: dict):
    return parse_instant(event["date"])


def _create_reminder(client, user, event, before=timedelta(hours=1), reminder_time=None):
    when = reminder_time or iso(_event_date(event) - before)
    return client.post("/api/reminders/", headers=auth(user), json={
        "eventId": event["id"],
        "reminderTime": when,
    })


def _setup(client):
    owner = create_test_user(client, name="Alice")
    other = create_test_user(client, name="Bob")
    event = create_test_event(client, owner, title="Launch", hours_ahead=2)
    return owner, other, event


class TestReminderCreate:

    def test_create_one_hour_before(self, client):
        """Event at now+2h, reminder 1h before → succeeds and starts unseen."""
        owner, _, event = _setup(client)
        resp = _create_reminder(client, owner, event)
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["error"] is None
        data = body["data"]
        assert data["eventId"] == event["id"]
        assert data["eventTitle"] == "Launch"
        assert data["userId"] == owner["id"]
        assert data["seen"] is False

    def test_create_ten_minutes_before_out_of_window(self, client):
        """Event at now+2h, reminder 10 min before → OutOfWindow."""
        owner, _, event = _setup(client)
        resp = _create_reminder(client, owner, event, before=timedelta(minutes=10))
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "OutOfWindow"

    def test_create_invalid_format(self, client):
        owner, _, event = _setup(client)
        resp = _create_reminder(client, owner, event, reminder_time="tomorrow-ish")
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "InvalidFormat"

    def test_create_event_not_found(self, client):
        owner = create_test_user(client)
        resp = client.post("/api/reminders/", headers=auth(owner), json={
            "eventId": 9999,
            "reminderTime": iso(utcnow() + timedelta(hours=1)),
        })
        assert resp.status_code == 404
        assert resp.json()["error"]["kind"] == "EventNotFound"

    def test_create_requires_identity(self, client):
        _, _, event = _setup(client)
        resp = client.post("/api/reminders/", json={
            "eventId": event["id"],
            "reminderTime": iso(_event_date(event) - timedelta(hours=1)),
        })
        assert resp.status_code == 401
        assert resp.json()["error"]["kind"] == "Unauthorized"

    def test_second_create_is_duplicate(self, client):
        """Two sequential creates for the same (event, user) → DuplicateReminder."""
        owner, _, event = _setup(client)
        assert _create_reminder(client, owner, event).status_code == 201
        resp = _create_reminder(client, owner, event, before=timedelta(minutes=30))
        assert resp.status_code == 409
        assert resp.json()["error"]["kind"] == "DuplicateReminder"

    def test_other_user_may_remind_on_same_event(self, client):
        """Uniqueness is per (event, user): a second user gets their own reminder."""
        owner, other, event = _setup(client)
        assert _create_reminder(client, owner, event).status_code == 201
        assert _create_reminder(client, other, event).status_code == 201

    def test_missing_fields_is_validation_error(self, client):
        owner = create_test_user(client)
        resp = client.post("/api/reminders/", headers=auth(owner), json={"eventId": 1})
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "ValidationError"


class TestReminderEventVisibility:
    """Reminders can only target events the requester is allowed to see."""

    def test_create_on_foreign_draft_forbidden(self, client):
        owner, other, _ = _setup(client)
        draft = create_test_event(client, owner, title="Secret Draft", status="DRAFT", hours_ahead=3)
        assert client.get(f"/api/events/{draft['id']}", headers=auth(other)).status_code == 403

        resp = _create_reminder(client, other, draft)
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "Forbidden"
        assert "Secret Draft" not in resp.text
        assert client.get("/api/reminders/", headers=auth(other)).json() == []

    def test_create_on_foreign_canceled_forbidden(self, client):
        owner, other, _ = _setup(client)
        canceled = create_test_event(client, owner, title="Called Off", status="CANCELED", hours_ahead=3)
        assert _create_reminder(client, other, canceled).status_code == 403

    def test_owner_may_remind_on_own_draft(self, client):
        owner, _, _ = _setup(client)
        draft = create_test_event(client, owner, title="My Draft", status="DRAFT", hours_ahead=3)
        resp = _create_reminder(client, owner, draft)
        assert resp.status_code == 201
        assert resp.json()["data"]["eventTitle"] == "My Draft"

    def test_update_onto_foreign_draft_forbidden(self, client):
        owner, other, event = _setup(client)
        draft = create_test_event(client, owner, title="Secret Draft", status="DRAFT", hours_ahead=3)
        created = _create_reminder(client, other, event).json()["data"]

        resp = client.put(f"/api/reminders/{created['id']}", headers=auth(other), json={
            "eventId": draft["id"],
            "reminderTime": iso(_event_date(draft) - timedelta(hours=1)),
        })
        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "Forbidden"
        mine = client.get(f"/api/reminders/{created['id']}", headers=auth(other)).json()
        assert mine["eventId"] == event["id"]

    def test_service_rejects_foreign_draft(self, db):
        alice = insert_user(db, "Alice")
        bob = insert_user(db, "Bob")
        draft = insert_event(db, alice, "Hidden", status=EventStatus.draft, date=utcnow() + timedelta(hours=3))
        with pytest.raises(Forbidden):
            reminder_service.create_reminder(db, draft.id, bob.id, iso(utcnow() + timedelta(hours=1)))


class TestReminderUniquenessConstraint:
    """The unique (event_id, user_id) constraint is the authoritative duplicate signal."""

    def test_moving_onto_event_with_existing_reminder(self, db):
        alice = insert_user(db, "Alice")
        first = insert_event(db, alice, "First", date=utcnow() + timedelta(hours=3))
        second = insert_event(db, alice, "Second", date=utcnow() + timedelta(hours=3))
        insert_reminder(db, first, alice, utcnow() + timedelta(hours=1))
        movable = insert_reminder(db, second, alice, utcnow() + timedelta(hours=1))

        with pytest.raises(DuplicateReminder):
            reminder_service.update_reminder(
                db, movable.id, first.id, iso(utcnow() + timedelta(hours=2)), alice.id,
            )

    def test_pre_check_bypassed_still_duplicate(self, db, monkeypatch):
        """Simulates the check-then-create race: the pre-check sees nothing, the insert fails."""
        alice = insert_user(db, "Alice")
        ev = insert_event(db, alice, "Race", date=utcnow() + timedelta(hours=3))
        insert_reminder(db, ev, alice, utcnow() + timedelta(hours=1))

        real_execute = db.execute

        class _Empty:
            def first(self):
                return None

        def _blind_execute(statement, *args, **kwargs):
            if getattr(statement, "is_select", False):
                return _Empty()
            return real_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", _blind_execute)
        with pytest.raises(DuplicateReminder):
            reminder_service.create_reminder(db, ev.id, alice.id, iso(utcnow() + timedelta(hours=2)))

    def test_event_removed_before_commit_is_persistence_error(self, db, monkeypatch):
        """A foreign-key failure is not reported as a duplicate."""
        alice = insert_user(db, "Alice")
        vanished = SimpleNamespace(
            id=4242, date=utcnow() + timedelta(hours=3), status=EventStatus.published, user_id=alice.id,
        )
        monkeypatch.setattr(reminder_service, "_load_event", lambda db, event_id, requester_id: vanished)

        with pytest.raises(PersistenceError):
            reminder_service.create_reminder(db, vanished.id, alice.id, iso(utcnow() + timedelta(hours=2)))
        assert db.scalar(select(func.count()).select_from(Reminder)) == 0


class TestReminderUpdate:

    def test_owner_can_update_and_rearms(self, client, db):
        owner, _, event = _setup(client)
        created = _create_reminder(client, owner, event).json()["data"]

        # Acknowledge it first so we can see it re-armed
        db.get(Reminder, created["id"]).seen = True
        db.commit()

        new_time = iso(_event_date(event) - timedelta(minutes=20))
        resp = client.put(f"/api/reminders/{created['id']}", headers=auth(owner), json={
            "eventId": event["id"],
            "reminderTime": new_time,
        })
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["seen"] is False
        assert data["reminderTime"] == new_time

    def test_update_non_owner_forbidden(self, client):
        owner, other, event = _setup(client)
        created = _create_reminder(client, owner, event).json()["data"]
        resp = client.put(f"/api/reminders/{created['id']}", headers=auth(other), json={
            "eventId": event["id"],
            "reminderTime": iso(_event_date(event) - timedelta(minutes=30)),
        })
        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "Forbidden"

    def test_update_not_found(self, client):
        owner, _, event = _setup(client)
        resp = client.put("/api/reminders/4242", headers=auth(owner), json={
            "eventId": event["id"],
            "reminderTime": iso(_event_date(event) - timedelta(minutes=30)),
        })
        assert resp.status_code == 404
        assert resp.json()["error"]["kind"] == "ReminderNotFound"

    def test_update_revalidates_against_new_event(self, client):
        """Moving to a different event checks the window against that event's date."""
        owner, _, event = _setup(client)
        later = create_test_event(client, owner, title="Later", hours_ahead=24 * 10)
        created = _create_reminder(client, owner, event).json()["data"]

        # 1h before the first event is ~10 days before the later one → out of window
        resp = client.put(f"/api/reminders/{created['id']}", headers=auth(owner), json={
            "eventId": later["id"],
            "reminderTime": created["reminderTime"],
        })
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "OutOfWindow"

    def test_update_service_forbidden(self, db):
        alice = insert_user(db, "Alice")
        bob = insert_user(db, "Bob")
        ev = insert_event(db, alice, "Mine", date=utcnow() + timedelta(hours=3))
        reminder = insert_reminder(db, ev, alice, utcnow() + timedelta(hours=1))
        with pytest.raises(Forbidden):
            reminder_service.update_reminder(db, reminder.id, ev.id, iso(utcnow() + timedelta(hours=2)), bob.id)


class TestReminderDelete:

    def test_delete_requires_confirmation(self, client):
        owner, _, event = _setup(client)
        created = _create_reminder(client, owner, event).json()["data"]

        resp = client.delete(f"/api/reminders/{created['id']}", headers=auth(owner))
        assert resp.status_code == 428
        assert resp.json()["error"]["kind"] == "ConfirmationRequired"
        # Still there
        assert client.get(f"/api/reminders/{created['id']}", headers=auth(owner)).status_code == 200

    def test_owner_can_delete(self, client):
        owner, _, event = _setup(client)
        created = _create_reminder(client, owner, event).json()["data"]

        resp = client.delete(f"/api/reminders/{created['id']}?confirm=true", headers=auth(owner))
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": None, "error": None}
        assert client.get(f"/api/reminders/{created['id']}", headers=auth(owner)).status_code == 404

    def test_delete_non_owner_forbidden(self, client):
        owner, other, event = _setup(client)
        created = _create_reminder(client, owner, event).json()["data"]
        resp = client.delete(f"/api/reminders/{created['id']}?confirm=true", headers=auth(other))
        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "Forbidden"

    def test_delete_missing(self, db):
        alice = insert_user(db, "Alice")
        with pytest.raises(ReminderNotFound):
            reminder_service.delete_reminder(db, 12345, alice.id)


class TestReminderQueries:

    def test_list_for_user_ordered_by_time(self, client):
        owner = create_test_user(client, name="Alice")
        soon = create_test_event(client, owner, title="Soon", hours_ahead=3)
        later = create_test_event(client, owner, title="Later", hours_ahead=30)
        _create_reminder(client, owner, later)
        _create_reminder(client, owner, soon)

        resp = client.get("/api/reminders/", headers=auth(owner))
        assert resp.status_code == 200
        titles = [r["eventTitle"] for r in resp.json()]
        assert titles == ["Soon", "Later"]

    def test_list_only_own_reminders(self, client):
        owner, other, event = _setup(client)
        _create_reminder(client, owner, event)
        resp = client.get("/api/reminders/", headers=auth(other))
        assert resp.status_code == 200
        assert resp.json() == []

    def test_get_by_id(self, db):
        alice = insert_user(db, "Alice")
        ev = insert_event(db, alice, "Lookup", date=utcnow() + timedelta(hours=3))
        reminder = insert_reminder(db, ev, alice, utcnow() + timedelta(hours=1))

        found = reminder_service.get_reminder(db, reminder.id)
        assert found["event_title"] == "Lookup"
        assert found["seen"] is False
        assert reminder_service.get_reminder(db, 999) is None

    def test_get_other_users_reminder_hidden(self, client):
        owner, other, event = _setup(client)
        created = _create_reminder(client, owner, event).json()["data"]
        assert client.get(f"/api/reminders/{created['id']}", headers=auth(other)).status_code == 404
