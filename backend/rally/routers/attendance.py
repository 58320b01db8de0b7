"""Member-facing attendance routes: join, leave, summary, history, feedback."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rally.database import get_db
from rally.schemas.attendance import (
    AttendanceLogOut, AttendeePayload, FeedbackCreate, FeedbackOut,
    JoinOut, LeaveOut, SummaryOut,
)
from rally.services import audit_log, feedback_service, rsvp_service, summary_service
from rally.services.capacity_ledger import get_event

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{event_id}/attendance/join", response_model=JoinOut)
def join_event(event_id: str, payload: AttendeePayload, db: Session = Depends(get_db)):
    """RSVP to an event. Confirmed while seats remain, waitlisted afterwards."""
    result = rsvp_service.join(db, event_id, payload.user_id)
    summary = summary_service.build_summary(db, event_id)
    return JoinOut(
        status=result.status,
        waitlisted=result.waitlisted,
        position=result.position,
        summary=SummaryOut.model_validate(summary),
    )


@router.post("/{event_id}/attendance/leave", response_model=LeaveOut)
def leave_event(event_id: str, payload: AttendeePayload, db: Session = Depends(get_db)):
    """Cancel an RSVP. ``promoted_user_id`` names whoever took the freed seat."""
    result = rsvp_service.leave(db, event_id, payload.user_id)
    summary = summary_service.build_summary(db, event_id)
    return LeaveOut(
        status=result.status,
        promoted_user_id=result.promoted_user_id,
        summary=SummaryOut.model_validate(summary),
    )


@router.get("/{event_id}/attendance/summary", response_model=SummaryOut)
def get_summary(event_id: str, db: Session = Depends(get_db)):
    return SummaryOut.model_validate(summary_service.build_summary(db, event_id))


@router.get("/{event_id}/attendance/history", response_model=list[AttendanceLogOut])
def get_history(
    event_id: str,
    user_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Audit trail of attendance transitions, oldest first."""
    get_event(db, event_id)
    return audit_log.list_entries(db, event_id, user_id=user_id, limit=limit)


@router.post("/{event_id}/feedback", response_model=FeedbackOut, status_code=status.HTTP_201_CREATED)
def submit_feedback(event_id: str, payload: FeedbackCreate, db: Session = Depends(get_db)):
    """Rate an event you attended. Resubmitting replaces the earlier rating."""
    return feedback_service.submit_feedback(db, event_id, payload.user_id, payload.rating, payload.comment)


@router.get("/{event_id}/feedback", response_model=list[FeedbackOut])
def list_feedback(
    event_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    get_event(db, event_id)
    return feedback_service.list_feedback(db, event_id, limit=limit)
