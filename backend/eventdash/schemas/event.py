"""Pydantic schemas for Events and the paged listing."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from eventdash.models.event import EventStatus


class CamelModel(BaseModel):
    """Base for wire models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: datetime
    location: str = Field(min_length=1, max_length=255)
    status: EventStatus = EventStatus.draft


class EventUpdate(EventCreate):
    """Full replacement of the editable fields (same rules as create, minus the future-date check)."""


class EventOut(CamelModel):
    id: int
    title: str
    description: str = ""
    date: str  # ISO-8601
    location: str
    status: EventStatus
    reminder: Optional[str] = None  # requester's own reminder, ISO-8601
    reminder_id: Optional[int] = None
    user_id: int


class EventPageOut(CamelModel):
    rows: list[EventOut]
    total: int
    published_count: int
    draft_count: int
    page: int
    page_size: int
    total_pages: int
