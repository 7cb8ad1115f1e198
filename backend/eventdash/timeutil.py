"""UTC helpers shared by models, services and the notifier."""
from datetime import datetime

import pytz
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(pytz.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def parse_instant(raw: str) -> datetime:
    """Parse an ISO-8601 instant (``Z`` suffix allowed) into aware UTC.

    Raises ValueError when ``raw`` is not a valid instant.
    """
    text = raw.strip()
    if not text:
        raise ValueError("empty instant")
    return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


class UTCDateTime(TypeDecorator):
    """DateTime column that always binds and returns aware UTC values.

    SQLite drops tzinfo on storage, so values are normalized to UTC before
    binding and re-localized on load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)
