"""Organizer control surface: privileged, forced attendance transitions.

Actions are a closed set, each mapped to one handler. Handlers reuse the
same event lock and ``apply_transition`` primitive as member RSVPs; they only
skip the member-facing guards ("already confirmed", "waitlist disabled").
Authorization (is ``actor_id`` allowed to organize this event) is decided by
the caller before anything here runs.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.orm import Session

from rally.config import settings
from rally.errors import AttendanceError, AttendanceErrorCode
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from rally.models.feedback import EventFeedback
from rally.services import feedback_service, promotion_service
from rally.services.capacity_ledger import (
    get_active_record,
    get_event,
    get_latest_record,
    get_snapshot,
    lock_event,
)
from rally.services.rsvp_service import cancel_record
from rally.services.summary_service import AttendanceSummary, build_summary
from rally.services.transitions import apply_transition, can_transition, refresh_sold_out
from rally.services.unit_of_work import run_atomic

logger = logging.getLogger(__name__)


class OrganizerAction(str, enum.Enum):
    CONFIRM = "confirm"
    WAITLIST = "waitlist"
    CANCEL = "cancel"
    CHECK_IN = "check-in"
    NO_SHOW = "no-show"
    SWEEP_WAITLIST = "sweep-waitlist"
    FEEDBACK = "feedback"


TARGETED_ACTIONS = frozenset({
    OrganizerAction.CONFIRM,
    OrganizerAction.WAITLIST,
    OrganizerAction.CANCEL,
    OrganizerAction.CHECK_IN,
    OrganizerAction.NO_SHOW,
})


@dataclass
class OrganizerCommand:
    action: OrganizerAction
    target_user_id: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


@dataclass
class DashboardMeta:
    total_records: int
    total_feedback: int
    average_rating: Optional[float]


@dataclass
class OrganizerResult:
    roster: list[AttendanceRecord]
    summary: AttendanceSummary
    feedback: list[EventFeedback]
    meta: DashboardMeta
    action: Optional[OrganizerAction] = None
    promoted_user_ids: list[str] = field(default_factory=list)


def _require_record(db: Session, event_id: str, user_id: str, target: AttendanceStatus) -> AttendanceRecord:
    record = get_active_record(db, event_id, user_id)
    if record is not None:
        return record
    if get_latest_record(db, event_id, user_id) is not None:
        raise AttendanceError(
            AttendanceErrorCode.INVALID_TRANSITION,
            f"Cannot move a CANCELLED record to {target.value}",
        )
    raise AttendanceError(AttendanceErrorCode.NOT_ATTENDING, "User has no attendance record for this event")


def _force_confirm(db: Session, event_id: str, actor_id: str, target: str) -> list[str]:
    event = lock_event(db, event_id)
    record = get_active_record(db, event_id, target)
    if record is not None and record.status == AttendanceStatus.CONFIRMED:
        return []
    if record is not None and not can_transition(record.status, AttendanceStatus.CONFIRMED):
        raise AttendanceError(
            AttendanceErrorCode.INVALID_TRANSITION,
            f"Cannot confirm an attendee who is {record.status.value}",
        )

    snapshot = get_snapshot(db, event)
    if snapshot.is_full and not settings.ORGANIZER_CAN_EXCEED_CAPACITY:
        raise AttendanceError(AttendanceErrorCode.CAPACITY_REACHED, "Event capacity reached")

    apply_transition(
        db, event, record, target, AttendanceStatus.CONFIRMED, actor_id,
        reason="organizer-confirmed",
    )
    refresh_sold_out(db, event)
    return []


def _force_waitlist(db: Session, event_id: str, actor_id: str, target: str) -> list[str]:
    event = lock_event(db, event_id)
    record = get_active_record(db, event_id, target)
    if record is not None and record.status == AttendanceStatus.WAITLISTED:
        return []

    apply_transition(
        db, event, record, target, AttendanceStatus.WAITLISTED, actor_id,
        reason="organizer-waitlisted",
    )
    refresh_sold_out(db, event)
    return []


def _force_cancel(db: Session, event_id: str, actor_id: str, target: str) -> list[str]:
    event = lock_event(db, event_id)
    record = _require_record(db, event_id, target, AttendanceStatus.CANCELLED)
    promoted = cancel_record(db, event, record, actor_id, reason="organizer-cancelled")
    return [promoted] if promoted else []


def _check_in(db: Session, event_id: str, actor_id: str, target: str) -> list[str]:
    event = lock_event(db, event_id)
    record = _require_record(db, event_id, target, AttendanceStatus.CHECKED_IN)
    apply_transition(db, event, record, target, AttendanceStatus.CHECKED_IN, actor_id, reason="checked-in")
    return []


def _mark_no_show(db: Session, event_id: str, actor_id: str, target: str) -> list[str]:
    event = lock_event(db, event_id)
    record = _require_record(db, event_id, target, AttendanceStatus.NO_SHOW)
    apply_transition(db, event, record, target, AttendanceStatus.NO_SHOW, actor_id, reason="no-show")
    return []


def _targeted(handler: Callable[[Session, str, str, str], list[str]]):
    def run(db: Session, event_id: str, actor_id: str, command: OrganizerCommand) -> list[str]:
        return run_atomic(db, handler, event_id, actor_id, command.target_user_id)
    return run


def _sweep(db: Session, event_id: str, actor_id: str, command: OrganizerCommand) -> list[str]:
    return promotion_service.sweep_event(db, event_id, actor_id=actor_id)


def _feedback(db: Session, event_id: str, actor_id: str, command: OrganizerCommand) -> list[str]:
    subject = command.target_user_id or actor_id
    feedback_service.submit_feedback(db, event_id, subject, command.rating, command.comment)
    return []


_HANDLERS = {
    OrganizerAction.CONFIRM: _targeted(_force_confirm),
    OrganizerAction.WAITLIST: _targeted(_force_waitlist),
    OrganizerAction.CANCEL: _targeted(_force_cancel),
    OrganizerAction.CHECK_IN: _targeted(_check_in),
    OrganizerAction.NO_SHOW: _targeted(_mark_no_show),
    OrganizerAction.SWEEP_WAITLIST: _sweep,
    OrganizerAction.FEEDBACK: _feedback,
}


def list_roster(db: Session, event_id: str) -> list[AttendanceRecord]:
    """Every record for the event, cancelled history included."""
    return (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.event_id == event_id)
        .order_by(AttendanceRecord.created_at, AttendanceRecord.record_id)
        .all()
    )


def build_dashboard(
    db: Session,
    event_id: str,
    action: Optional[OrganizerAction] = None,
    promoted_user_ids: Optional[list[str]] = None,
) -> OrganizerResult:
    get_event(db, event_id)
    roster = list_roster(db, event_id)
    total_feedback, average_rating = feedback_service.feedback_stats(db, event_id)
    return OrganizerResult(
        roster=roster,
        summary=build_summary(db, event_id),
        feedback=feedback_service.list_feedback(db, event_id, limit=settings.RECENT_FEEDBACK_LIMIT),
        meta=DashboardMeta(
            total_records=len(roster),
            total_feedback=total_feedback,
            average_rating=average_rating,
        ),
        action=action,
        promoted_user_ids=list(promoted_user_ids or []),
    )


def perform_action(db: Session, event_id: str, actor_id: str, command: OrganizerCommand) -> OrganizerResult:
    """Run one organizer action and return the refreshed roster, summary and feedback."""
    if command.action in TARGETED_ACTIONS and not command.target_user_id:
        raise AttendanceError(
            AttendanceErrorCode.TARGET_REQUIRED, f"target_user_id is required for '{command.action.value}'",
        )

    promoted = _HANDLERS[command.action](db, event_id, actor_id, command)
    logger.info(
        "Organizer %s performed %s on event %s (target=%s, promoted=%s)",
        actor_id, command.action.value, event_id, command.target_user_id, promoted or "none",
    )
    return build_dashboard(db, event_id, action=command.action, promoted_user_ids=promoted)
