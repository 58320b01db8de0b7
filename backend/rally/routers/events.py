"""Event API routes: thin CRUD delegating to event_service."""
import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rally.database import get_db
from rally.schemas.event import EventCreate, EventUpdate, EventOut
from rally.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    """Create a new event. A null capacity means unlimited seats."""
    return event_service.create_event(
        db=db,
        title=payload.title,
        organizer_id=payload.organizer_id,
        start_utc=payload.start_time_utc,
        end_utc=payload.end_time_utc,
        capacity=payload.capacity,
        waitlist_enabled=payload.waitlist_enabled,
    )


@router.get("/", response_model=list[EventOut])
def list_events(
    start_after: Optional[datetime] = Query(None),
    start_before: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    """List events with optional start-time filters."""
    return event_service.list_events(db, start_after=start_after, start_before=start_before)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    actor_id: str = Query(..., description="ID of the user performing the update"),
    db: Session = Depends(get_db),
):
    """Update an event (organizer only). Capacity changes re-derive the sold-out flag."""
    updates = payload.model_dump(exclude_unset=True)
    return event_service.update_event(db=db, event_id=event_id, actor_id=actor_id, updates=updates)
