"""Pytest fixtures: file-backed SQLite database per test."""
import os
from datetime import datetime, timezone, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# The app's own engine must never point at a real server during tests
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from rally.database import Base, configure_sqlite, get_db  # noqa: E402
from rally.main import app  # noqa: E402

# Import all models so they register with Base.metadata
from rally.models.event import Event                        # noqa: F401,E402
from rally.models.attendance import AttendanceRecord        # noqa: F401,E402
from rally.models.attendance_log import AttendanceLogEntry  # noqa: F401,E402
from rally.models.feedback import EventFeedback             # noqa: F401,E402

ORGANIZER_ID = "organizer-1"


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _fast_retries(monkeypatch):
    """No real sleeping between transaction retries."""
    from rally.config import settings
    monkeypatch.setattr(settings, "TX_BACKOFF_SECONDS", 0.0)
    monkeypatch.setattr(settings, "TX_BACKOFF_MAX_SECONDS", 0.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def create_test_event(
    client: TestClient,
    capacity=2,
    organizer_id: str = ORGANIZER_ID,
    start_offset_hours: float = 24,
    duration_hours: float = 2,
    waitlist_enabled: bool = True,
    title: str = "Sunday Pickup Soccer",
) -> dict:
    """Helper: POST /api/events and return response JSON."""
    start = datetime.now(timezone.utc) + timedelta(hours=start_offset_hours)
    resp = client.post("/api/events/", json={
        "title": title,
        "organizer_id": organizer_id,
        "start_time_utc": start.isoformat(),
        "end_time_utc": (start + timedelta(hours=duration_hours)).isoformat(),
        "capacity": capacity,
        "waitlist_enabled": waitlist_enabled,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def join(client: TestClient, event_id: str, user_id: str):
    return client.post(f"/api/events/{event_id}/attendance/join", json={"user_id": user_id})


def leave(client: TestClient, event_id: str, user_id: str):
    return client.post(f"/api/events/{event_id}/attendance/leave", json={"user_id": user_id})


def organizer_action(client: TestClient, event_id: str, action: str,
                     target_user_id=None, actor_id: str = ORGANIZER_ID, **extra):
    body = {"action": action, **extra}
    if target_user_id is not None:
        body["target_user_id"] = target_user_id
    return client.post(f"/api/events/{event_id}/organizer?actor_id={actor_id}", json=body)


def make_event(db, capacity=2, start_offset_hours: float = 24, waitlist_enabled: bool = True,
               organizer_id: str = ORGANIZER_ID):
    """Helper: create an event through the service layer, returns its id."""
    from rally.services import event_service
    event = event_service.create_event(
        db,
        title="Tuesday Futsal",
        organizer_id=organizer_id,
        start_utc=datetime.now(timezone.utc) + timedelta(hours=start_offset_hours),
        capacity=capacity,
        waitlist_enabled=waitlist_enabled,
    )
    event_id = event.event_id
    db.commit()  # release the SQLite write lock taken by the refresh
    return event_id
