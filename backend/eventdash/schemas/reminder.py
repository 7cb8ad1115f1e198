"""Pydantic schemas for Reminders and the due-reminder feed."""
from typing import Optional

from eventdash.schemas.event import CamelModel


class ReminderCreate(CamelModel):
    event_id: int
    reminder_time: str  # ISO-8601; parsed by the window validator so bad input maps to InvalidFormat


class ReminderUpdate(CamelModel):
    event_id: int
    reminder_time: str


class ReminderOut(CamelModel):
    id: int
    event_id: int
    event_title: str
    reminder_time: str
    user_id: int
    seen: bool


class DueReminderOut(CamelModel):
    reminder_id: int
    event_id: int
    event_title: str
    reminder_time: str
    user_id: int


class MarkSeenRequest(CamelModel):
    reminder_ids: Optional[list[int]] = None


class MarkSeenOut(CamelModel):
    updated: int
