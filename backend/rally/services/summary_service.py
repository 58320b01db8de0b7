"""Attendance summary: the read model returned after every transition."""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from rally.services.capacity_ledger import get_event, get_snapshot


@dataclass(frozen=True)
class AttendanceSummary:
    """Seat counts for one event.

    ``confirmed_count`` counts every seat-holding record: CONFIRMED, CHECKED_IN
    and NO_SHOW. Checking someone in or marking a no-show never frees a seat,
    so the count does not drop as the event runs.
    """

    confirmed_count: int
    waitlist_count: int
    capacity: Optional[int]
    is_full: bool


def build_summary(db: Session, event_id: str) -> AttendanceSummary:
    """Always re-aggregated from the records; never cached between requests."""
    event = get_event(db, event_id)
    snapshot = get_snapshot(db, event)
    return AttendanceSummary(
        confirmed_count=snapshot.confirmed,
        waitlist_count=snapshot.waitlisted,
        capacity=snapshot.capacity,
        is_full=snapshot.is_full,
    )
