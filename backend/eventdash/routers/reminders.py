"""Reminder API routes: CRUD, the due-reminder feed and acknowledgment."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eventdash.auth import require_user
from eventdash.database import get_db
from eventdash.models.user import User
from eventdash.routers.actions import require_confirmation, run_action
from eventdash.schemas.action import ActionResult
from eventdash.schemas.reminder import (
    DueReminderOut,
    MarkSeenOut,
    MarkSeenRequest,
    ReminderCreate,
    ReminderOut,
    ReminderUpdate,
)
from eventdash.services import reminder_service
from eventdash.services.response_cache import ResponseCache, get_response_cache
from eventdash.timeutil import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ActionResult, status_code=status.HTTP_201_CREATED)
def create_reminder(
    payload: ReminderCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Attach a reminder for the requester to an event."""
    return run_action(
        lambda: ReminderOut(**reminder_service.create_reminder(
            db, payload.event_id, user.id, payload.reminder_time,
        )),
        cache=cache,
        success_status=status.HTTP_201_CREATED,
        name="create_reminder",
    )


@router.get("/", response_model=list[ReminderOut])
def list_reminders(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """The requester's reminders, earliest first."""
    return reminder_service.list_reminders_for_user(db, user.id)


@router.get("/due", response_model=list[DueReminderOut])
def list_due_reminders(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Due and unseen reminders for the requester. Does not acknowledge them."""
    return reminder_service.due_unseen(db, user.id, utcnow())


@router.post("/seen", response_model=ActionResult)
def mark_reminders_seen(
    payload: Optional[MarkSeenRequest] = None,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Acknowledge the given due reminders, or all of them when no ids (or no body) are sent."""
    reminder_ids = payload.reminder_ids if payload else None
    return run_action(
        lambda: MarkSeenOut(updated=reminder_service.mark_seen(
            db, user.id, utcnow(), reminder_ids,
        )),
        name="mark_seen",
    )


@router.get("/{reminder_id}", response_model=ReminderOut)
def get_reminder(reminder_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    reminder = reminder_service.get_reminder(db, reminder_id)
    if not reminder or reminder["user_id"] != user.id:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@router.put("/{reminder_id}", response_model=ActionResult)
def update_reminder(
    reminder_id: int,
    payload: ReminderUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Retime or move a reminder (owner only); it is re-armed as unseen."""
    return run_action(
        lambda: ReminderOut(**reminder_service.update_reminder(
            db, reminder_id, payload.event_id, payload.reminder_time, user.id,
        )),
        cache=cache,
        name="update_reminder",
    )


@router.delete("/{reminder_id}", response_model=ActionResult)
def delete_reminder(
    reminder_id: int,
    confirm: bool = Query(False, description="Must be true; deletion is a two-step action"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    def _delete():
        require_confirmation(confirm)
        reminder_service.delete_reminder(db, reminder_id, user.id)
        return None

    return run_action(_delete, cache=cache, name="delete_reminder")
