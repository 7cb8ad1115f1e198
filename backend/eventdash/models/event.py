"""Event ORM model."""
import enum
from sqlalchemy import Column, String, Integer, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventdash.database import Base
from eventdash.timeutil import UTCDateTime


class EventStatus(str, enum.Enum):
    draft = "DRAFT"
    published = "PUBLISHED"
    canceled = "CANCELED"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    date = Column(UTCDateTime, nullable=False, index=True)
    location = Column(String(255), nullable=False)
    status = Column(
        SAEnum(EventStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EventStatus.draft,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    reminders = relationship(
        "Reminder",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
