"""Reminder time-window validation.

A reminder must fire between ``REMINDER_MIN_LEAD_MINUTES`` and
``REMINDER_MAX_LEAD_DAYS`` before its event (both bounds inclusive). This
module has no database access so it can be exercised on its own.
"""
from datetime import datetime, timedelta

from eventdash.config import settings
from eventdash.errors import InvalidFormat, OutOfWindow
from eventdash.timeutil import as_utc, parse_instant

MIN_LEAD = timedelta(minutes=settings.REMINDER_MIN_LEAD_MINUTES)
MAX_LEAD = timedelta(days=settings.REMINDER_MAX_LEAD_DAYS)


def validate_reminder_time(
    event_date: datetime,
    reminder_time: str,
    min_lead: timedelta = MIN_LEAD,
    max_lead: timedelta = MAX_LEAD,
) -> datetime:
    """Parse ``reminder_time`` and check it against ``event_date``.

    Returns the reminder instant as aware UTC.
    Raises InvalidFormat if the string is not an instant, OutOfWindow if the
    lead time falls outside ``[min_lead, max_lead]``.
    """
    if not isinstance(reminder_time, str):
        raise InvalidFormat()
    try:
        reminder_at = parse_instant(reminder_time)
    except ValueError:
        raise InvalidFormat()

    lead = as_utc(event_date) - reminder_at
    if lead < min_lead or lead > max_lead:
        raise OutOfWindow(
            f"Reminder must be {_describe(min_lead)} to {_describe(max_lead)} before event."
        )
    return reminder_at


def _describe(delta: timedelta) -> str:
    if delta.days and delta.seconds == 0:
        return f"{delta.days} day{'s' if delta.days != 1 else ''}"
    minutes = int(delta.total_seconds() // 60)
    return f"{minutes} minute{'s' if minutes != 1 else ''}"
