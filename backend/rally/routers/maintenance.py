"""Maintenance routes hit by the external scheduler."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rally.database import get_db
from rally.schemas.attendance import SweepOut
from rally.services import promotion_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sweep-waitlists", response_model=SweepOut)
def sweep_waitlists(
    lookahead_hours: Optional[int] = Query(None, ge=1, le=24 * 30),
    db: Session = Depends(get_db),
):
    """Promote waitlisted attendees into free seats of upcoming events."""
    return SweepOut.model_validate(promotion_service.sweep_waitlists(db, lookahead_hours))
