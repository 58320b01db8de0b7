"""RSVP state machine: member-initiated join and leave.

Each call is one unit of work scoped to an (event, user) pair: the event row
is locked first, the capacity ledger is read under that lock, and the record,
audit entry and sold-out flag are written before a single commit.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from rally.errors import AttendanceError, AttendanceErrorCode
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from rally.models.event import Event
from rally.services.capacity_ledger import get_active_record, get_snapshot, lock_event
from rally.services.promotion_service import promote_next
from rally.services.transitions import apply_transition, refresh_sold_out
from rally.services.unit_of_work import run_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    status: AttendanceStatus
    waitlisted: bool
    position: Optional[int] = None


@dataclass(frozen=True)
class LeaveResult:
    status: AttendanceStatus
    promoted_user_id: Optional[str] = None


def cancel_record(
    db: Session,
    event: Event,
    record: AttendanceRecord,
    actor_id: str,
    reason: Optional[str] = None,
) -> Optional[str]:
    """Cancel an active record; a freed seat is handed to the waitlist head."""
    freed_seat = record.status == AttendanceStatus.CONFIRMED
    apply_transition(db, event, record, record.user_id, AttendanceStatus.CANCELLED, actor_id, reason=reason)

    promoted_user_id = None
    if freed_seat:
        promoted_user_id = promote_next(db, event, actor_id)
    refresh_sold_out(db, event)
    return promoted_user_id


def _join(db: Session, event_id: str, user_id: str) -> JoinResult:
    event = lock_event(db, event_id)

    existing = get_active_record(db, event_id, user_id)
    if existing is not None:
        if existing.status == AttendanceStatus.WAITLISTED:
            return JoinResult(status=existing.status, waitlisted=True, position=existing.position)
        if existing.status in (AttendanceStatus.CONFIRMED, AttendanceStatus.CHECKED_IN):
            raise AttendanceError(AttendanceErrorCode.ALREADY_CONFIRMED, "User already confirmed for this event")
        raise AttendanceError(
            AttendanceErrorCode.INVALID_TRANSITION,
            f"Attendance for this event is closed ({existing.status.value})",
        )

    # Unlimited capacity never waitlists, whatever waitlist_enabled says
    snapshot = get_snapshot(db, event)
    if snapshot.has_free_slot:
        target = AttendanceStatus.CONFIRMED
    elif event.waitlist_enabled:
        target = AttendanceStatus.WAITLISTED
    else:
        raise AttendanceError(
            AttendanceErrorCode.WAITLIST_DISABLED, "Event capacity reached and waitlist disabled",
        )

    record = apply_transition(db, event, None, user_id, target, actor_id=user_id)
    refresh_sold_out(db, event)
    return JoinResult(
        status=record.status,
        waitlisted=target == AttendanceStatus.WAITLISTED,
        position=record.position,
    )


def join(db: Session, event_id: str, user_id: str) -> JoinResult:
    """RSVP ``user_id`` to the event: confirmed if a seat is free, else waitlisted."""
    result = run_atomic(db, _join, event_id, user_id)
    logger.info("User %s joined event %s -> %s", user_id, event_id, result.status.value)
    return result


def _leave(db: Session, event_id: str, user_id: str) -> LeaveResult:
    event = lock_event(db, event_id)
    if event.organizer_id == user_id:
        raise AttendanceError(AttendanceErrorCode.ORGANIZER_CANNOT_LEAVE, "Organizers cannot leave their own events")

    record = get_active_record(db, event_id, user_id)
    if record is None or record.status not in (AttendanceStatus.CONFIRMED, AttendanceStatus.WAITLISTED):
        raise AttendanceError(AttendanceErrorCode.NOT_ATTENDING, "User is not currently attending")

    promoted_user_id = cancel_record(db, event, record, actor_id=user_id)
    return LeaveResult(status=AttendanceStatus.CANCELLED, promoted_user_id=promoted_user_id)


def leave(db: Session, event_id: str, user_id: str) -> LeaveResult:
    """Cancel the user's RSVP, promoting the next waitlisted attendee if a seat frees."""
    result = run_atomic(db, _leave, event_id, user_id)
    logger.info(
        "User %s left event %s (promoted: %s)", user_id, event_id, result.promoted_user_id or "nobody",
    )
    return result


def _sync_sold_out(db: Session, event_id: str) -> bool:
    event = lock_event(db, event_id)
    return refresh_sold_out(db, event).is_full


def sync_sold_out(db: Session, event_id: str) -> bool:
    """Re-derive ``is_sold_out`` after the event's capacity was edited."""
    return run_atomic(db, _sync_sold_out, event_id)
