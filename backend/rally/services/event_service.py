"""Event service: the thin event CRUD the attendance engine hangs off.

Capacity edits never promote anyone directly; they only re-derive the
sold-out flag. Freed seats are filled by the waitlist sweep.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from rally.models.event import Event
from rally.services import rsvp_service
from rally.services.unit_of_work import as_utc, utcnow

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "start_time_utc", "end_time_utc", "capacity", "waitlist_enabled")


def _check_authorization(event: Event, actor_id: str) -> None:
    """Only the organizer may edit the event."""
    if event.organizer_id != actor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the organizer may modify this event.",
        )


def _check_times(start_utc: datetime, end_utc: Optional[datetime]) -> None:
    if end_utc is not None and end_utc < start_utc:
        raise HTTPException(status_code=400, detail="Event cannot end before it starts")


def create_event(
    db: Session,
    title: str,
    organizer_id: str,
    start_utc: datetime,
    end_utc: Optional[datetime] = None,
    capacity: Optional[int] = None,
    waitlist_enabled: bool = True,
) -> Event:
    start_utc, end_utc = as_utc(start_utc), as_utc(end_utc)
    _check_times(start_utc, end_utc)

    event = Event(
        title=title,
        organizer_id=organizer_id,
        start_time_utc=start_utc,
        end_time_utc=end_utc,
        capacity=capacity,
        waitlist_enabled=waitlist_enabled,
        is_sold_out=False,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) capacity=%s by organizer %s", title, event.event_id, capacity, organizer_id)
    return event


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def list_events(
    db: Session,
    start_after: Optional[datetime] = None,
    start_before: Optional[datetime] = None,
) -> list[Event]:
    query = db.query(Event)
    if start_after:
        query = query.filter(Event.start_time_utc >= as_utc(start_after))
    if start_before:
        query = query.filter(Event.start_time_utc <= as_utc(start_before))
    return query.order_by(Event.start_time_utc).all()


def update_event(db: Session, event_id: str, actor_id: str, updates: dict[str, Any]) -> Event:
    event = get_event(db, event_id)
    _check_authorization(event, actor_id)

    for field, value in updates.items():
        if field not in _EDITABLE_FIELDS:
            continue
        if field in ("start_time_utc", "end_time_utc"):
            value = as_utc(value)
        setattr(event, field, value)
    _check_times(as_utc(event.start_time_utc), as_utc(event.end_time_utc))

    event.updated_at = utcnow()
    db.commit()

    if "capacity" in updates:
        rsvp_service.sync_sold_out(db, event_id)
    db.refresh(event)
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(updates)) or "no changes")
    return event
