"""Reminder ORM model."""
from sqlalchemy import Column, Boolean, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from eventdash.database import Base
from eventdash.timeutil import UTCDateTime


class Reminder(Base):
    __tablename__ = "reminders"
    __table_args__ = (
        # One reminder per user per event; violations surface as DuplicateReminder
        UniqueConstraint("event_id", "user_id", name="uq_reminders_event_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reminder_time = Column(UTCDateTime, nullable=False, index=True)
    seen = Column(Boolean, nullable=False, default=False)

    event = relationship("Event", back_populates="reminders")
