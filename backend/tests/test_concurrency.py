"""Concurrent writers against the same event never overbook it or duplicate rows.

Each worker thread gets its own session, the way concurrent requests would,
and all of them are released at once through a barrier.
"""
import threading

from rally.errors import AttendanceError
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from rally.models.feedback import EventFeedback
from rally.services import feedback_service, organizer_service, rsvp_service
from rally.services.organizer_service import OrganizerAction, OrganizerCommand
from tests.conftest import ORGANIZER_ID, make_event


def _race(session_factory, event_id, user_ids, operation=rsvp_service.join):
    barrier = threading.Barrier(len(user_ids))
    results, errors = {}, []

    def worker(user_id):
        session = session_factory()
        try:
            barrier.wait()
            results[user_id] = operation(session, event_id, user_id)
        except Exception as exc:  # surfaced through the errors list below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(u,)) for u in user_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert not errors, errors
    return results


def _records(db, event_id):
    return db.query(AttendanceRecord).filter(AttendanceRecord.event_id == event_id).all()


def test_two_joins_for_last_seat(db, session_factory):
    event_id = make_event(db, capacity=1)

    results = _race(session_factory, event_id, ["D", "E"])

    statuses = sorted(r.status.value for r in results.values())
    assert statuses == ["CONFIRMED", "WAITLISTED"]


def test_many_joins_respect_capacity(db, session_factory):
    event_id = make_event(db, capacity=3)
    users = [f"player-{i}" for i in range(8)]

    _race(session_factory, event_id, users)

    records = _records(db, event_id)
    confirmed = [r for r in records if r.status == AttendanceStatus.CONFIRMED]
    waitlisted = [r for r in records if r.status == AttendanceStatus.WAITLISTED]
    assert len(confirmed) == 3
    assert len(waitlisted) == 5
    positions = sorted(r.position for r in waitlisted)
    assert positions == [1, 2, 3, 4, 5]


def test_concurrent_leaves_promote_distinct_users(db, session_factory):
    event_id = make_event(db, capacity=2)
    for user in ("A", "B", "C", "D", "E"):
        rsvp_service.join(db, event_id, user)
    db.commit()

    results = _race(session_factory, event_id, ["A", "B"], operation=rsvp_service.leave)

    promoted = sorted(r.promoted_user_id for r in results.values())
    assert promoted == ["C", "D"]
    records = _records(db, event_id)
    confirmed = sorted(r.user_id for r in records if r.status == AttendanceStatus.CONFIRMED)
    assert confirmed == ["C", "D"]


def test_same_user_double_join(db, session_factory):
    event_id = make_event(db, capacity=5)
    barrier = threading.Barrier(2)
    outcomes = []

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            outcomes.append(rsvp_service.join(session, event_id, "A").status.value)
        except AttendanceError as exc:
            outcomes.append(exc.code.value)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(outcomes) == [
        "ALREADY_CONFIRMED", "CONFIRMED",
    ]
    active = [r for r in _records(db, event_id) if r.status != AttendanceStatus.CANCELLED]
    assert len(active) == 1


def test_simultaneous_first_feedback_keeps_one_row(db, session_factory):
    event_id = make_event(db, capacity=5)
    rsvp_service.join(db, event_id, "A")
    organizer_service.perform_action(
        db, event_id, ORGANIZER_ID, OrganizerCommand(OrganizerAction.CHECK_IN, "A"),
    )
    db.commit()
    barrier = threading.Barrier(2)
    errors = []

    def worker(rating):
        session = session_factory()
        try:
            barrier.wait()
            feedback_service.submit_feedback(session, event_id, "A", rating)
        except Exception as exc:  # surfaced through the errors list below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(r,)) for r in (3, 5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert not errors, errors
    rows = db.query(EventFeedback).filter(EventFeedback.event_id == event_id).all()
    assert len(rows) == 1
    assert rows[0].rating in (3, 5)
