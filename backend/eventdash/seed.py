"""Seed demo data: two users, twenty events of mixed status, a few reminders.

Run with ``python -m eventdash.seed``. Existing rows are removed first.
"""
import logging
import random
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from eventdash.database import Base, SessionLocal, engine
from eventdash.models.event import Event, EventStatus
from eventdash.models.reminder import Reminder
from eventdash.models.user import User
from eventdash.services.reminder_window import MAX_LEAD, MIN_LEAD
from eventdash.timeutil import utcnow

logger = logging.getLogger(__name__)

DEMO_EVENTS = [
    ("Tech Conference", "A conference about latest tech trends", "US-NY: New York", EventStatus.published),
    ("Music Festival", "Annual music festival", "US-CA: Los Angeles", EventStatus.draft),
    ("Startup Meetup", "Networking for startups", "US-TX: Austin", EventStatus.canceled),
    ("Art Expo", "Exhibition of modern art", "US-NY: New York", EventStatus.published),
    ("Food Fair", "Tasting event for gourmet food", "US-CA: San Francisco", EventStatus.draft),
    ("Marathon", "City marathon event", "US-TX: Houston", EventStatus.published),
    ("Book Launch", "New book release", "US-NY: New York", EventStatus.draft),
    ("Charity Gala", "Fundraising gala", "US-CA: Los Angeles", EventStatus.canceled),
    ("Film Screening", "Indie film premiere", "US-TX: Dallas", EventStatus.published),
    ("Gaming Tournament", "Esports competition", "US-NY: New York", EventStatus.draft),
    ("Tech Workshop", "Hands-on tech workshop", "US-CA: San Francisco", EventStatus.published),
    ("Yoga Retreat", "Weekend wellness retreat", "US-TX: Austin", EventStatus.draft),
    ("Photography Expo", "Photography exhibition", "US-NY: New York", EventStatus.canceled),
    ("Coding Bootcamp", "Intensive coding training", "US-CA: Los Angeles", EventStatus.published),
    ("Wine Tasting", "Gourmet wine event", "US-TX: Houston", EventStatus.draft),
    ("Startup Pitch", "Pitch your startup idea", "US-NY: New York", EventStatus.published),
    ("Comedy Night", "Stand-up comedy show", "US-CA: San Francisco", EventStatus.canceled),
    ("Fashion Show", "Latest fashion trends", "US-TX: Dallas", EventStatus.published),
    ("Charity Run", "5k fundraising run", "US-NY: New York", EventStatus.draft),
    ("Film Festival", "Independent films showcase", "US-CA: Los Angeles", EventStatus.published),
]


def random_reminder_offset(rng: random.Random) -> timedelta:
    """A lead time inside the valid reminder window."""
    return timedelta(seconds=rng.randint(int(MIN_LEAD.total_seconds()), int(MAX_LEAD.total_seconds())))


def seed(db: Session, rng: random.Random | None = None) -> dict[str, int]:
    rng = rng or random.Random()
    db.execute(delete(Reminder))
    db.execute(delete(Event))
    db.execute(delete(User))

    alice = User(name="Alice", email="alice@example.com")
    bob = User(name="Bob", email="bob@example.com")
    db.add_all([alice, bob])
    db.flush()

    now = utcnow()
    events = []
    for index, (title, description, location, status) in enumerate(DEMO_EVENTS):
        events.append(Event(
            title=title,
            description=description,
            location=location,
            status=status,
            date=now + timedelta(days=index + 1, hours=rng.randint(0, 12)),
            user_id=alice.id if index % 2 == 0 else bob.id,
        ))
    db.add_all(events)
    db.flush()

    reminders = []
    for event in events[::3]:
        for user in (alice, bob):
            if event.status != EventStatus.published and event.user_id != user.id:
                continue
            reminders.append(Reminder(
                event_id=event.id,
                user_id=user.id,
                reminder_time=event.date - random_reminder_offset(rng),
                seen=False,
            ))
    db.add_all(reminders)
    db.commit()

    counts = {"users": 2, "events": len(events), "reminders": len(reminders)}
    logger.info("Seeded %(users)d users, %(events)d events, %(reminders)d reminders", counts)
    return counts


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed(session)
    finally:
        session.close()
