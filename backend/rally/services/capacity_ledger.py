"""Capacity ledger: confirmed/waitlisted counts derived from attendance records.

Nothing here keeps a running counter. Each call re-aggregates the
``attendance_records`` rows for one event, so callers must invoke it after
``lock_event`` inside the same unit of work that acts on the answer.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from rally.errors import AttendanceError, AttendanceErrorCode
from rally.models.attendance import AttendanceRecord, AttendanceStatus, SEATED_STATUSES
from rally.models.event import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacitySnapshot:
    confirmed: int
    waitlisted: int
    capacity: Optional[int]

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.confirmed >= self.capacity

    @property
    def has_free_slot(self) -> bool:
        return not self.is_full


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise AttendanceError(AttendanceErrorCode.EVENT_NOT_FOUND, "Event not found")
    return event


def lock_event(db: Session, event_id: str) -> Event:
    """Take the per-event row lock that linearizes attendance transitions."""
    event = (
        db.query(Event)
        .filter(Event.event_id == event_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not event:
        raise AttendanceError(AttendanceErrorCode.EVENT_NOT_FOUND, "Event not found")
    return event


def get_snapshot(db: Session, event: Event) -> CapacitySnapshot:
    rows = (
        db.query(AttendanceRecord.status, func.count(AttendanceRecord.record_id))
        .filter(AttendanceRecord.event_id == event.event_id)
        .group_by(AttendanceRecord.status)
        .all()
    )
    counts = {status: total for status, total in rows}
    confirmed = sum(counts.get(status, 0) for status in SEATED_STATUSES)
    waitlisted = counts.get(AttendanceStatus.WAITLISTED, 0)
    return CapacitySnapshot(confirmed=confirmed, waitlisted=waitlisted, capacity=event.capacity)


def get_active_record(db: Session, event_id: str, user_id: str) -> Optional[AttendanceRecord]:
    """The pair's single non-cancelled record, if any."""
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.event_id == event_id,
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.status != AttendanceStatus.CANCELLED,
        )
        .first()
    )


def get_latest_record(db: Session, event_id: str, user_id: str) -> Optional[AttendanceRecord]:
    """The pair's most recent record, cancelled ones included."""
    return (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.event_id == event_id, AttendanceRecord.user_id == user_id)
        .order_by(AttendanceRecord.record_id.desc())
        .first()
    )


def next_waitlist_position(db: Session, event_id: str) -> int:
    current_max = (
        db.query(func.max(AttendanceRecord.position))
        .filter(
            AttendanceRecord.event_id == event_id,
            AttendanceRecord.status == AttendanceStatus.WAITLISTED,
        )
        .scalar()
    )
    return (current_max or 0) + 1


def head_of_waitlist(db: Session, event_id: str) -> Optional[AttendanceRecord]:
    """Lowest position wins; record_id only breaks a (corrupt) position tie."""
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.event_id == event_id,
            AttendanceRecord.status == AttendanceStatus.WAITLISTED,
        )
        .order_by(AttendanceRecord.position.asc(), AttendanceRecord.record_id.asc())
        .first()
    )
