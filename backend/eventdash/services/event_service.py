"""Event CRUD service.

Responsibilities:
- Authorization hook: only the owner may update or delete an event
- Visibility on the read path: non-owners only see PUBLISHED events
- Creation rule: the event date must lie in the future (create only)
- Cascade: deleting an event removes every reminder attached to it
"""
import logging
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventdash.errors import EventNotFound, Forbidden, PersistenceError, ValidationError
from eventdash.models.event import Event, EventStatus
from eventdash.models.reminder import Reminder
from eventdash.schemas.event import EventCreate, EventUpdate
from eventdash.timeutil import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)


def event_row(event: Event, reminder: Optional[Reminder] = None) -> dict[str, Any]:
    """Map an event (plus the requester's own reminder, if any) to the UI row shape."""
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description or "",
        "date": isoformat(event.date),
        "location": event.location,
        "status": event.status,
        "reminder": isoformat(reminder.reminder_time) if reminder else None,
        "reminder_id": reminder.id if reminder else None,
        "user_id": event.user_id,
    }


def _check_authorization(event: Event, requester_id: int) -> None:
    """Only the owner may modify or delete an event."""
    if event.user_id != requester_id:
        raise Forbidden("Event not found or you do not have permission")


def _own_reminder(db: Session, event_id: int, user_id: Optional[int]) -> Optional[Reminder]:
    if user_id is None:
        return None
    return db.scalars(
        select(Reminder).where(Reminder.event_id == event_id, Reminder.user_id == user_id)
    ).first()


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s event", action)
        raise PersistenceError(f"Failed to {action} event") from exc


def create_event(db: Session, owner_id: int, payload: EventCreate) -> dict[str, Any]:
    """Create an event owned by ``owner_id``."""
    date = as_utc(payload.date)
    if date <= utcnow():
        raise ValidationError("Date must be in the future")

    event = Event(
        title=payload.title,
        description=payload.description,
        date=date,
        location=payload.location,
        status=payload.status,
        user_id=owner_id,
    )
    db.add(event)
    _commit(db, "create")
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s", event.title, event.id, owner_id)
    return event_row(event)


def update_event(db: Session, event_id: int, requester_id: int, payload: EventUpdate) -> dict[str, Any]:
    """Replace the editable fields of an event. Status changes are unconstrained."""
    event = db.get(Event, event_id)
    if not event:
        raise EventNotFound()
    _check_authorization(event, requester_id)

    event.title = payload.title
    event.description = payload.description
    event.date = as_utc(payload.date)
    event.location = payload.location
    event.status = payload.status
    _commit(db, "update")
    db.refresh(event)
    logger.info("Updated event %s (status %s)", event_id, event.status.value)
    return event_row(event, _own_reminder(db, event.id, requester_id))


def delete_event(db: Session, event_id: int, requester_id: int) -> None:
    """Delete an event and, with it, every reminder that points at it."""
    event = db.get(Event, event_id)
    if not event:
        raise EventNotFound()
    _check_authorization(event, requester_id)

    removed = db.execute(delete(Reminder).where(Reminder.event_id == event_id)).rowcount
    db.delete(event)
    _commit(db, "delete")
    logger.info("Deleted event %s and %d reminder(s)", event_id, removed)


def get_event(db: Session, event_id: int, requester_id: Optional[int]) -> dict[str, Any]:
    """Read path: owners see any status, everyone else only PUBLISHED."""
    event = db.get(Event, event_id)
    if not event:
        raise EventNotFound()
    if event.status != EventStatus.published and event.user_id != requester_id:
        raise Forbidden("You do not have permission to view this event")
    return event_row(event, _own_reminder(db, event.id, requester_id))
