"""The single atomic-transition primitive every attendance path goes through.

Member RSVPs, inline promotion, the sweep and organizer overrides all call
``apply_transition``; only the preconditions each caller checks beforehand
differ. The allowed-move table below is enforced here for every caller, so
terminal statuses stay terminal whoever asks.
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from rally.errors import AttendanceError, AttendanceErrorCode
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from rally.models.attendance_log import AttendanceAction
from rally.models.event import Event
from rally.services import audit_log
from rally.services.capacity_ledger import CapacitySnapshot, get_snapshot, next_waitlist_position
from rally.services.unit_of_work import utcnow

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"

# current status (None = no active record) -> statuses it may move into
ALLOWED_TRANSITIONS: dict[Optional[AttendanceStatus], frozenset] = {
    None: frozenset({AttendanceStatus.CONFIRMED, AttendanceStatus.WAITLISTED}),
    AttendanceStatus.WAITLISTED: frozenset({AttendanceStatus.CONFIRMED, AttendanceStatus.CANCELLED}),
    AttendanceStatus.CONFIRMED: frozenset({
        AttendanceStatus.WAITLISTED,
        AttendanceStatus.CANCELLED,
        AttendanceStatus.CHECKED_IN,
        AttendanceStatus.NO_SHOW,
    }),
    AttendanceStatus.CHECKED_IN: frozenset({AttendanceStatus.NO_SHOW}),
    AttendanceStatus.NO_SHOW: frozenset(),
    AttendanceStatus.CANCELLED: frozenset(),
}


def can_transition(current: Optional[AttendanceStatus], target: AttendanceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def apply_transition(
    db: Session,
    event: Event,
    record: Optional[AttendanceRecord],
    user_id: str,
    target: AttendanceStatus,
    actor_id: str,
    reason: Optional[str] = None,
    action: Optional[AttendanceAction] = None,
    details: Optional[dict[str, Any]] = None,
) -> AttendanceRecord:
    """Move the pair into ``target`` and append the matching audit entry.

    ``record`` is the pair's active record, or None to start a fresh one.
    The caller must hold the event lock.
    """
    current = record.status if record is not None else None
    if not can_transition(current, target):
        raise AttendanceError(
            AttendanceErrorCode.INVALID_TRANSITION,
            f"Cannot move attendance from {current.value if current else 'none'} to {target.value}",
        )

    now = utcnow()
    position = next_waitlist_position(db, event.event_id) if target == AttendanceStatus.WAITLISTED else None
    if record is None:
        record = AttendanceRecord(event_id=event.event_id, user_id=user_id, status=target, created_at=now)
        db.add(record)

    record.status = target
    record.position = position
    record.updated_at = now
    if target == AttendanceStatus.CONFIRMED:
        record.confirmed_at = now
    elif target == AttendanceStatus.WAITLISTED:
        record.waitlisted_at = now
    elif target == AttendanceStatus.CANCELLED:
        record.cancelled_at = now
    elif target == AttendanceStatus.CHECKED_IN:
        record.checked_in_at = now

    entry_details = dict(details or {})
    if current is not None:
        entry_details.setdefault("previous_status", current.value)
    if position is not None:
        entry_details["position"] = position

    audit_log.write_entry(
        db,
        event_id=event.event_id,
        user_id=user_id,
        action=action or audit_log.action_for_status(target),
        actor_id=actor_id,
        reason=reason,
        details=entry_details or None,
    )
    db.flush()
    return record


def refresh_sold_out(db: Session, event: Event) -> CapacitySnapshot:
    """Recompute the denormalized ``is_sold_out`` flag from the ledger."""
    db.flush()
    snapshot = get_snapshot(db, event)
    if event.is_sold_out != snapshot.is_full:
        logger.info(
            "Event %s sold-out flag %s -> %s (%d/%s)",
            event.event_id, event.is_sold_out, snapshot.is_full, snapshot.confirmed, snapshot.capacity,
        )
        event.is_sold_out = snapshot.is_full
    return snapshot
