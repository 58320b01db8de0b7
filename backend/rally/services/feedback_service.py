"""Feedback store: post-event ratings, gated by prior attendance."""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from rally.config import settings
from rally.errors import AttendanceError, AttendanceErrorCode
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from rally.models.event import Event
from rally.models.feedback import EventFeedback
from rally.services.capacity_ledger import lock_event
from rally.services.unit_of_work import as_utc, run_atomic, utcnow

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def is_eligible(db: Session, event: Event, user_id: str) -> bool:
    """Whether any record of the pair ever reached check-in.

    A later no-show correction keeps ``checked_in_at``, so it stays eligible.
    With FEEDBACK_ALLOW_CONFIRMED_AFTER_END, a confirmation on an event that
    has already ended also counts.
    """
    records = (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.event_id == event.event_id, AttendanceRecord.user_id == user_id)
        .all()
    )
    if any(record.checked_in_at is not None for record in records):
        return True

    if settings.FEEDBACK_ALLOW_CONFIRMED_AFTER_END:
        ended_at = as_utc(event.end_time_utc or event.start_time_utc)
        if ended_at <= utcnow():
            return any(record.status == AttendanceStatus.CONFIRMED for record in records)
    return False


def _submit(db: Session, event_id: str, user_id: str, rating: int, comment: Optional[str]) -> EventFeedback:
    event = lock_event(db, event_id)
    if not is_eligible(db, event, user_id):
        raise AttendanceError(
            AttendanceErrorCode.FEEDBACK_NOT_ELIGIBLE, "Feedback requires having attended this event",
        )

    feedback = (
        db.query(EventFeedback)
        .filter(EventFeedback.event_id == event_id, EventFeedback.user_id == user_id)
        .first()
    )
    if feedback is None:
        feedback = EventFeedback(
            event_id=event_id, user_id=user_id, rating=rating, comment=comment, created_at=utcnow(),
        )
        db.add(feedback)
    else:
        feedback.rating = rating
        feedback.comment = comment
        feedback.updated_at = utcnow()
    db.flush()
    return feedback


def submit_feedback(
    db: Session,
    event_id: str,
    user_id: str,
    rating: int,
    comment: Optional[str] = None,
) -> EventFeedback:
    """Create or replace the user's feedback for the event."""
    if rating is None or not MIN_RATING <= rating <= MAX_RATING:
        raise AttendanceError(
            AttendanceErrorCode.INVALID_FEEDBACK_RATING,
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
        )
    feedback = run_atomic(db, _submit, event_id, user_id, rating, comment)
    db.refresh(feedback)
    logger.info("Feedback %d/5 recorded for user %s on event %s", rating, user_id, event_id)
    return feedback


def list_feedback(db: Session, event_id: str, limit: Optional[int] = None) -> list[EventFeedback]:
    """Newest first."""
    query = (
        db.query(EventFeedback)
        .filter(EventFeedback.event_id == event_id)
        .order_by(EventFeedback.created_at.desc(), EventFeedback.feedback_id)
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def feedback_stats(db: Session, event_id: str) -> tuple[int, Optional[float]]:
    """(total feedback count, average rating or None)."""
    total, average = (
        db.query(func.count(EventFeedback.feedback_id), func.avg(EventFeedback.rating))
        .filter(EventFeedback.event_id == event_id)
        .one()
    )
    return total, float(average) if average is not None else None
