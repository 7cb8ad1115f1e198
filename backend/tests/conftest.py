"""Pytest fixtures: file-backed SQLite database, fresh per test."""
from datetime import datetime, timedelta
from typing import Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from eventdash.database import Base, get_db
from eventdash.main import app
from eventdash.services.response_cache import ResponseCache
from eventdash.timeutil import utcnow

# Import all models so they register with Base.metadata
from eventdash.models.user import User                     # noqa: F401
from eventdash.models.event import Event, EventStatus      # noqa: F401
from eventdash.models.reminder import Reminder             # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def cache():
    """Fresh listing cache installed on the app for each test."""
    fresh = ResponseCache(ttl_seconds=60, max_entries=128)
    app.state.response_cache = fresh
    return fresh


@pytest.fixture(scope="function")
def client(db_engine, cache):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def auth(user: dict) -> dict:
    """Identity header for a user dict returned by create_test_user."""
    return {"X-User-Id": str(user["id"])}


def iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def create_test_user(client: TestClient, name: str = "Test User", email: Optional[str] = None) -> dict:
    """POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={
        "name": name,
        "email": email or f"{name.lower().replace(' ', '.')}@example.com",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(
    client: TestClient,
    owner: dict,
    title: str = "Test Event",
    hours_ahead: float = 24,
    status: str = "PUBLISHED",
    location: str = "US-NY: New York",
    description: Optional[str] = None,
) -> dict:
    """POST /api/events and return the created row."""
    resp = client.post("/api/events/", headers=auth(owner), json={
        "title": title,
        "description": description,
        "date": iso(utcnow() + timedelta(hours=hours_ahead)),
        "location": location,
        "status": status,
    })
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["success"] is True
    return body["data"]


def insert_user(db, name: str, email: Optional[str] = None) -> User:
    """add a user straight through the session."""
    user = User(name=name, email=email or f"{name.lower()}@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def insert_event(
    db,
    owner: User,
    title: str,
    status: EventStatus = EventStatus.published,
    date: Optional[datetime] = None,
    location: str = "US-NY: New York",
) -> Event:
    """add an event straight through the session (no future-date rule)."""
    ev = Event(
        title=title,
        status=status,
        date=date or utcnow() + timedelta(days=1),
        location=location,
        user_id=owner.id,
    )
    db.add(ev)
    db.commit()
    db.refresh(ev)
    return ev


def insert_reminder(db, ev: Event, user: User, reminder_time: datetime, seen: bool = False) -> Reminder:
    """add a reminder without running the window validator."""
    reminder = Reminder(event_id=ev.id, user_id=user.id, reminder_time=reminder_time, seen=seen)
    db.add(reminder)
    db.commit()
    db.refresh(reminder)
    return reminder
