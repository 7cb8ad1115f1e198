"""Reminder store and due-reminder scanner.

Responsibilities:
- Ownership: only the reminder's own user may update or delete it
- Time window: every create/update runs through validate_reminder_time
- Uniqueness: one reminder per (event, user), settled by the database constraint
- Re-arming: an edited reminder goes back to unseen
- Due feed: due-and-unseen reminders for a user, and the "mark seen" sweep
"""
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from eventdash.errors import DuplicateReminder, EventNotFound, Forbidden, PersistenceError, ReminderNotFound
from eventdash.models.event import Event, EventStatus
from eventdash.models.reminder import Reminder
from eventdash.services.reminder_window import validate_reminder_time
from eventdash.timeutil import as_utc, isoformat

logger = logging.getLogger(__name__)

UNIQUE_CONSTRAINT = "uq_reminders_event_user"


def _reminder_dict(reminder: Reminder) -> dict[str, Any]:
    return {
        "id": reminder.id,
        "event_id": reminder.event_id,
        "event_title": reminder.event.title if reminder.event else "Unknown",
        "reminder_time": isoformat(reminder.reminder_time),
        "user_id": reminder.user_id,
        "seen": reminder.seen,
    }


def _load_event(db: Session, event_id: int, requester_id: int) -> Event:
    """Load an event the requester may see: their own, or any PUBLISHED one."""
    event = db.get(Event, event_id)
    if not event:
        raise EventNotFound()
    if event.status != EventStatus.published and event.user_id != requester_id:
        raise Forbidden("You do not have permission to view this event")
    return event


def _load_owned_reminder(db: Session, reminder_id: int, requester_id: int) -> Reminder:
    reminder = db.get(Reminder, reminder_id)
    if not reminder:
        raise ReminderNotFound()
    if reminder.user_id != requester_id:
        raise Forbidden()
    return reminder


def _is_duplicate(exc: IntegrityError) -> bool:
    """True when the failure is the one-reminder-per-(event, user) constraint."""
    message = str(exc.orig)
    # PostgreSQL names the constraint; SQLite lists its columns
    return UNIQUE_CONSTRAINT in message or "reminders.event_id, reminders.user_id" in message


def _commit(db: Session, action: str) -> None:
    """Commit, translating storage failures into domain errors."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_duplicate(exc):
            raise DuplicateReminder()
        logger.exception("Integrity failure while trying to %s reminder", action)
        raise PersistenceError(f"Failed to {action} reminder") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s reminder", action)
        raise PersistenceError(f"Failed to {action} reminder") from exc


def create_reminder(db: Session, event_id: int, user_id: int, reminder_time: str) -> dict[str, Any]:
    """Create a reminder for ``user_id`` on ``event_id``."""
    event = _load_event(db, event_id, user_id)
    reminder_at = validate_reminder_time(event.date, reminder_time)

    # Advisory pre-check for a clean message; the unique constraint is authoritative
    existing = db.execute(
        select(Reminder.id).where(Reminder.event_id == event_id, Reminder.user_id == user_id)
    ).first()
    if existing:
        raise DuplicateReminder()

    reminder = Reminder(event_id=event_id, user_id=user_id, reminder_time=reminder_at, seen=False)
    db.add(reminder)
    _commit(db, "create")
    db.refresh(reminder)
    logger.info("Created reminder %s for event %s by user %s", reminder.id, event_id, user_id)
    return _reminder_dict(reminder)


def update_reminder(
    db: Session,
    reminder_id: int,
    event_id: int,
    reminder_time: str,
    requester_id: int,
) -> dict[str, Any]:
    """Move or retime a reminder; the reminder is re-armed (seen=False)."""
    reminder = _load_owned_reminder(db, reminder_id, requester_id)
    event = _load_event(db, event_id, requester_id)
    reminder_at = validate_reminder_time(event.date, reminder_time)

    reminder.event_id = event.id
    reminder.reminder_time = reminder_at
    reminder.seen = False
    _commit(db, "update")
    db.refresh(reminder)
    logger.info("Updated reminder %s (event %s, time %s)", reminder_id, event_id, reminder_at.isoformat())
    return _reminder_dict(reminder)


def delete_reminder(db: Session, reminder_id: int, requester_id: int) -> None:
    reminder = _load_owned_reminder(db, reminder_id, requester_id)
    db.delete(reminder)
    _commit(db, "delete")
    logger.info("Deleted reminder %s by user %s", reminder_id, requester_id)


def list_reminders_for_user(db: Session, user_id: int) -> list[dict[str, Any]]:
    """All of a user's reminders with their event titles, earliest first."""
    reminders = db.scalars(
        select(Reminder)
        .options(joinedload(Reminder.event))
        .where(Reminder.user_id == user_id)
        .order_by(Reminder.reminder_time.asc(), Reminder.id.asc())
    ).all()
    return [_reminder_dict(r) for r in reminders]


def get_reminder(db: Session, reminder_id: int) -> Optional[dict[str, Any]]:
    reminder = db.get(Reminder, reminder_id)
    return _reminder_dict(reminder) if reminder else None


def _due_unseen_clause(user_id: int, now: datetime):
    return (
        Reminder.user_id == user_id,
        Reminder.reminder_time <= as_utc(now),
        Reminder.seen.is_(False),
    )


def due_unseen(db: Session, user_id: int, now: datetime) -> list[dict[str, Any]]:
    """Reminders of ``user_id`` that are due at ``now`` and not yet acknowledged.

    Read-only; ordered by reminder time ascending.
    """
    rows = db.execute(
        select(Reminder.id, Reminder.event_id, Event.title, Reminder.reminder_time, Reminder.user_id)
        .join(Event, Event.id == Reminder.event_id)
        .where(*_due_unseen_clause(user_id, now))
        .order_by(Reminder.reminder_time.asc(), Reminder.id.asc())
    ).all()
    return [
        {
            "reminder_id": row.id,
            "event_id": row.event_id,
            "event_title": row.title,
            "reminder_time": isoformat(row.reminder_time),
            "user_id": row.user_id,
        }
        for row in rows
    ]


def mark_seen(
    db: Session,
    user_id: int,
    now: datetime,
    reminder_ids: Optional[list[int]] = None,
) -> int:
    """Acknowledge due reminders and return how many rows flipped to seen.

    With ``reminder_ids`` only those (due, unseen, owned) rows are touched;
    without, every due-and-unseen reminder of the user is swept. A reminder
    that becomes due between a scan and this sweep is marked too, so alerting
    is at-least-once, not exactly-once.
    """
    stmt = update(Reminder).where(*_due_unseen_clause(user_id, now))
    if reminder_ids is not None:
        if not reminder_ids:
            return 0
        stmt = stmt.where(Reminder.id.in_(reminder_ids))
    stmt = stmt.values(seen=True).execution_options(synchronize_session=False)

    try:
        result = db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to mark reminders seen for user %s", user_id)
        raise PersistenceError("Failed to mark as seen") from exc

    logger.info("Marked %d reminder(s) seen for user %s", result.rowcount, user_id)
    return result.rowcount
