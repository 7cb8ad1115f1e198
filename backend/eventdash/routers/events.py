"""Event API routes: listing through event_query, mutations through event_service."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eventdash.auth import get_current_user, require_user
from eventdash.config import settings
from eventdash.database import get_db
from eventdash.errors import DomainError
from eventdash.models.event import EventStatus
from eventdash.models.user import User
from eventdash.routers.actions import raise_for_read, require_confirmation, run_action
from eventdash.schemas.action import ActionResult
from eventdash.schemas.event import EventCreate, EventUpdate, EventOut, EventPageOut
from eventdash.services import event_service
from eventdash.services.event_query import (
    EventFilters,
    EventQueryParams,
    ReminderPresence,
    ReminderScope,
    parse_date_bound,
    query_events,
)
from eventdash.services.response_cache import ResponseCache, get_response_cache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=EventPageOut)
def list_events(
    page: int = Query(1),
    sort: str = Query("date"),
    order: str = Query("asc"),
    search: Optional[str] = Query(None),
    status_filter: Optional[EventStatus] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    has_reminder: Optional[ReminderPresence] = Query(None, alias="hasReminder"),
    reminder_scope: ReminderScope = Query(ReminderScope.mine, alias="reminderScope"),
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    """List visible events with filters, sorting and pagination.

    Unknown ``sort``/``order`` values fall back to date ascending.
    """
    try:
        start = parse_date_bound(start_date)
        end = parse_date_bound(end_date, end_of_day=True)
    except ValueError:
        raise HTTPException(status_code=400, detail="startDate/endDate must be YYYY-MM-DD or ISO-8601")

    params = EventQueryParams(
        page=max(1, page),
        page_size=settings.PAGE_SIZE,
        sort=sort,
        order=order,
        filters=EventFilters(
            search=search or None,
            status=status_filter,
            start_date=start,
            end_date=end,
            has_reminder=has_reminder,
            reminder_scope=reminder_scope,
        ),
    )
    result = query_events(db, user.id if user else None, params, cache=cache)
    return result.to_dict()


@router.post("/", response_model=ActionResult, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Create an event owned by the requester."""
    return run_action(
        lambda: EventOut(**event_service.create_event(db, user.id, payload)),
        cache=cache,
        success_status=status.HTTP_201_CREATED,
        name="create_event",
    )


@router.get("/{event_id}", response_model=EventOut)
def get_event(
    event_id: int,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Fetch a single event; non-owners only see PUBLISHED events."""
    try:
        return event_service.get_event(db, event_id, user.id if user else None)
    except DomainError as exc:
        raise_for_read(exc)


@router.put("/{event_id}", response_model=ActionResult)
def update_event(
    event_id: int,
    payload: EventUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Update an event (owner only)."""
    return run_action(
        lambda: EventOut(**event_service.update_event(db, event_id, user.id, payload)),
        cache=cache,
        name="update_event",
    )


@router.delete("/{event_id}", response_model=ActionResult)
def delete_event(
    event_id: int,
    confirm: bool = Query(False, description="Must be true; deletion is a two-step action"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Delete an event and its reminders (owner only, confirmed)."""
    def _delete():
        require_confirmation(confirm)
        event_service.delete_event(db, event_id, user.id)
        return None

    return run_action(_delete, cache=cache, name="delete_event")
