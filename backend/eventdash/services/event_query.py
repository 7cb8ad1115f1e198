"""Filtered, sorted, paginated event listing.

Visibility:
- a signed-in requester sees their own events of any status plus every
  PUBLISHED event;
- an anonymous requester sees PUBLISHED events only.

Filters (all optional, AND-combined with visibility): free-text search on
title or location, status, an inclusive date range, and reminder presence.
Reminder presence comes in two scopes: ``mine`` (the requester holds a
reminder on the event) and ``any`` (anyone does).

Page 1 of every query signature goes through the injected ResponseCache.
"""
import enum
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.orm import Session, aliased

from eventdash.models.event import Event, EventStatus
from eventdash.models.reminder import Reminder
from eventdash.services.event_service import event_row
from eventdash.services.response_cache import ResponseCache
from eventdash.timeutil import as_utc

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "date": Event.date,
    "title": Event.title,
    "status": Event.status,
    "location": Event.location,
    "createdAt": Event.created_at,
}
DEFAULT_SORT = "date"
DEFAULT_ORDER = "asc"


class ReminderPresence(str, enum.Enum):
    yes = "yes"
    no = "no"


class ReminderScope(str, enum.Enum):
    mine = "mine"
    any = "any"


@dataclass(frozen=True)
class EventFilters:
    search: Optional[str] = None
    status: Optional[EventStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    has_reminder: Optional[ReminderPresence] = None
    reminder_scope: ReminderScope = ReminderScope.mine


@dataclass(frozen=True)
class EventQueryParams:
    page: int = 1
    page_size: int = 10
    sort: str = DEFAULT_SORT
    order: str = DEFAULT_ORDER
    filters: EventFilters = field(default_factory=EventFilters)

    def normalized(self) -> "EventQueryParams":
        """Replace sort/order values outside the allow-list with the defaults."""
        sort = self.sort if self.sort in SORT_COLUMNS else DEFAULT_SORT
        order = self.order.lower() if isinstance(self.order, str) else DEFAULT_ORDER
        if order not in ("asc", "desc"):
            order = DEFAULT_ORDER
        return EventQueryParams(self.page, self.page_size, sort, order, self.filters)


@dataclass
class EventPage:
    rows: list[dict[str, Any]]
    total: int
    published_count: int
    draft_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size)) if self.page_size else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "total": self.total,
            "published_count": self.published_count,
            "draft_count": self.draft_count,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


def parse_date_bound(raw: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse a ``YYYY-MM-DD`` or ISO-8601 bound into aware UTC.

    A date-only upper bound covers the whole day. Raises ValueError on junk.
    """
    if not raw:
        return None
    text = raw.strip()
    if len(text) == 10:
        day = date.fromisoformat(text)
        bound = datetime.combine(day, time.min)
        if end_of_day:
            bound = bound + timedelta(days=1) - timedelta(microseconds=1)
        return as_utc(bound)
    return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))


def visibility_clause(requester_id: Optional[int]):
    if requester_id is None:
        return Event.status == EventStatus.published
    return or_(Event.user_id == requester_id, Event.status == EventStatus.published)


def _reminder_clause(filters: EventFilters, requester_id: Optional[int]):
    if filters.has_reminder is None:
        return None
    conditions = [Reminder.event_id == Event.id]
    if filters.reminder_scope == ReminderScope.mine:
        if requester_id is None:
            # anonymous visitors hold no reminders
            return Event.id.is_(None) if filters.has_reminder == ReminderPresence.yes else None
        conditions.append(Reminder.user_id == requester_id)
    has_any = exists().where(and_(*conditions))
    return has_any if filters.has_reminder == ReminderPresence.yes else ~has_any


def build_where(requester_id: Optional[int], filters: EventFilters) -> list:
    """Visibility predicate intersected with every active filter."""
    clauses = [visibility_clause(requester_id)]
    if filters.search:
        term = filters.search.strip().lower()
        clauses.append(or_(
            func.lower(Event.title).contains(term, autoescape=True),
            func.lower(Event.location).contains(term, autoescape=True),
        ))
    if filters.status is not None:
        clauses.append(Event.status == filters.status)
    if filters.start_date is not None:
        clauses.append(Event.date >= filters.start_date)
    if filters.end_date is not None:
        clauses.append(Event.date <= filters.end_date)
    reminder = _reminder_clause(filters, requester_id)
    if reminder is not None:
        clauses.append(reminder)
    return clauses


def query_signature(requester_id: Optional[int], params: EventQueryParams) -> tuple:
    """Hashable cache key covering requester, pagination, sort and filters."""
    f = params.filters
    return (
        requester_id,
        params.page,
        params.page_size,
        params.sort,
        params.order,
        f.search,
        f.status.value if f.status else None,
        f.start_date.isoformat() if f.start_date else None,
        f.end_date.isoformat() if f.end_date else None,
        f.has_reminder.value if f.has_reminder else None,
        f.reminder_scope.value,
    )


def query_events(
    db: Session,
    requester_id: Optional[int],
    params: EventQueryParams,
    cache: Optional[ResponseCache] = None,
) -> EventPage:
    """Run a listing query.

    ``page`` is expected to be clamped to >= 1 by the caller; the engine does
    not clamp against ``total`` (callers use ``EventPage.total_pages``).
    """
    params = params.normalized()
    key = query_signature(requester_id, params)
    use_cache = cache is not None and params.page == 1
    if use_cache:
        cached = cache.get(key)
        if cached is not None:
            logger.debug("Listing cache hit for %s", key)
            return cached

    where = build_where(requester_id, params.filters)
    column = SORT_COLUMNS[params.sort]
    ordering = column.desc() if params.order == "desc" else column.asc()
    skip = (params.page - 1) * params.page_size

    if requester_id is not None:
        # Outer-join the requester's own reminder so each row carries it
        own = aliased(Reminder)
        stmt = (
            select(Event, own)
            .outerjoin(own, and_(own.event_id == Event.id, own.user_id == requester_id))
            .where(*where)
            .order_by(ordering, Event.id.asc())
            .offset(skip)
            .limit(params.page_size)
        )
        rows = [event_row(event, reminder) for event, reminder in db.execute(stmt).all()]
    else:
        stmt = select(Event).where(*where).order_by(ordering, Event.id.asc()).offset(skip).limit(params.page_size)
        rows = [event_row(event) for event in db.scalars(stmt).all()]
    total = db.scalar(select(func.count()).select_from(Event).where(*where)) or 0
    published_count = db.scalar(
        select(func.count()).select_from(Event).where(Event.status == EventStatus.published)
    ) or 0
    draft_count = 0
    if requester_id is not None:
        draft_count = db.scalar(
            select(func.count()).select_from(Event).where(
                Event.user_id == requester_id, Event.status == EventStatus.draft
            )
        ) or 0

    page = EventPage(
        rows=rows,
        total=total,
        published_count=published_count,
        draft_count=draft_count,
        page=params.page,
        page_size=params.page_size,
    )
    if use_cache:
        cache.set(key, page)
    logger.info(
        "Listed events for %s: page %d, %d/%d rows (sort %s %s)",
        requester_id if requester_id is not None else "anonymous",
        params.page, len(rows), total, params.sort, params.order,
    )
    return page
