"""Audit log writer: the only code that creates AttendanceLogEntry rows."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from rally.models.attendance import AttendanceStatus
from rally.models.attendance_log import AttendanceAction, AttendanceLogEntry
from rally.services.unit_of_work import utcnow

logger = logging.getLogger(__name__)

_ACTION_BY_STATUS = {
    AttendanceStatus.CONFIRMED: AttendanceAction.RSVP_CONFIRMED,
    AttendanceStatus.WAITLISTED: AttendanceAction.WAITLISTED,
    AttendanceStatus.CANCELLED: AttendanceAction.CANCELLED,
    AttendanceStatus.CHECKED_IN: AttendanceAction.CHECKED_IN,
    AttendanceStatus.NO_SHOW: AttendanceAction.NO_SHOW,
}


def action_for_status(status: AttendanceStatus) -> AttendanceAction:
    """Map the status a record moved into onto its log action."""
    return _ACTION_BY_STATUS[status]


def write_entry(
    db: Session,
    event_id: str,
    user_id: str,
    action: AttendanceAction,
    actor_id: str,
    reason: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AttendanceLogEntry:
    """Append one entry to the session; the caller's unit of work commits it."""
    entry = AttendanceLogEntry(
        event_id=event_id,
        user_id=user_id,
        action=action,
        actor_id=actor_id,
        reason=reason,
        details=details,
        occurred_at=utcnow(),
    )
    db.add(entry)
    logger.debug("Audit %s user=%s event=%s actor=%s", action.value, user_id, event_id, actor_id)
    return entry


def list_entries(
    db: Session,
    event_id: str,
    user_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[AttendanceLogEntry]:
    query = db.query(AttendanceLogEntry).filter(AttendanceLogEntry.event_id == event_id)
    if user_id:
        query = query.filter(AttendanceLogEntry.user_id == user_id)
    query = query.order_by(AttendanceLogEntry.occurred_at, AttendanceLogEntry.log_id)
    if limit:
        query = query.limit(limit)
    return query.all()
