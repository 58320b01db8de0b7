"""Organizer control routes: forced transitions, manual sweep, dashboard."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from rally.database import get_db
from rally.schemas.attendance import OrganizerActionRequest, OrganizerResultOut
from rally.services import organizer_service
from rally.services.capacity_ledger import get_event
from rally.services.organizer_service import OrganizerCommand

logger = logging.getLogger(__name__)
router = APIRouter()


def require_organizer(
    event_id: str,
    actor_id: str = Query(..., description="ID of the user acting as organizer"),
    db: Session = Depends(get_db),
) -> str:
    """Authorization seam: the acting user must organize this event."""
    event = get_event(db, event_id)
    if event.organizer_id != actor_id:
        logger.warning("User %s denied organizer access to event %s", actor_id, event_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the organizer may manage attendance for this event.",
        )
    return actor_id


@router.get("/{event_id}/organizer", response_model=OrganizerResultOut)
def get_dashboard(
    event_id: str,
    actor_id: str = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    """Roster, attendance summary and recent feedback for the organizer."""
    return OrganizerResultOut.model_validate(organizer_service.build_dashboard(db, event_id))


@router.post("/{event_id}/organizer", response_model=OrganizerResultOut)
def organizer_action(
    event_id: str,
    payload: OrganizerActionRequest,
    actor_id: str = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    """Apply one organizer action and return the refreshed dashboard."""
    command = OrganizerCommand(
        action=payload.action,
        target_user_id=payload.target_user_id,
        rating=payload.rating,
        comment=payload.comment,
    )
    result = organizer_service.perform_action(db, event_id, actor_id, command)
    return OrganizerResultOut.model_validate(result)
