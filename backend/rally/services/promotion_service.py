"""Waitlist promotion: inline after a freed seat, and the periodic sweep.

FIFO is by ``position`` alone; it is assigned under the event lock at join
time, so wall-clock skew between requests cannot reorder the queue. The sweep
commits each promotion separately, which makes an interrupted sweep safe to
re-run: the next pass simply picks up where this one stopped.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from rally.config import settings
from rally.models.attendance import AttendanceRecord, AttendanceStatus
from rally.models.attendance_log import AttendanceAction
from rally.models.event import Event
from rally.services.capacity_ledger import get_snapshot, head_of_waitlist, lock_event
from rally.services.transitions import SYSTEM_ACTOR_ID, apply_transition, refresh_sold_out
from rally.services.unit_of_work import run_atomic, utcnow

logger = logging.getLogger(__name__)


@dataclass
class EventPromotions:
    event_id: str
    promoted_user_ids: list[str] = field(default_factory=list)


@dataclass
class SweepResult:
    events_processed: int = 0
    promotions: list[EventPromotions] = field(default_factory=list)

    @property
    def total_promoted(self) -> int:
        return sum(len(p.promoted_user_ids) for p in self.promotions)


def promote_next(db: Session, event: Event, actor_id: str, reason: str = "waitlist-promoted") -> Optional[str]:
    """Promote the head of the waitlist if a seat is free. Caller holds the event lock."""
    snapshot = get_snapshot(db, event)
    if not snapshot.has_free_slot:
        return None

    head = head_of_waitlist(db, event.event_id)
    if head is None:
        return None

    apply_transition(
        db, event, head, head.user_id, AttendanceStatus.CONFIRMED,
        actor_id=actor_id,
        reason=reason,
        action=AttendanceAction.PROMOTED,
    )
    refresh_sold_out(db, event)
    logger.info("Promoted user %s from waitlist for event %s (%s)", head.user_id, event.event_id, reason)
    return head.user_id


def _promote_one(db: Session, event_id: str, actor_id: str) -> Optional[str]:
    event = lock_event(db, event_id)
    return promote_next(db, event, actor_id, reason="sweep")


def sweep_event(db: Session, event_id: str, actor_id: str = SYSTEM_ACTOR_ID) -> list[str]:
    """Fill every free seat of one event from its waitlist, one commit per promotion."""
    promoted: list[str] = []
    while True:
        user_id = run_atomic(db, _promote_one, event_id, actor_id)
        if user_id is None:
            break
        promoted.append(user_id)
    return promoted


def find_sweep_candidates(db: Session, lookahead_hours: int) -> list[str]:
    """Upcoming events (start within the lookahead) with a waitlist and a free seat."""
    now = utcnow()
    window_end = now + timedelta(hours=lookahead_hours)
    has_waitlist = (
        db.query(AttendanceRecord.event_id)
        .filter(AttendanceRecord.status == AttendanceStatus.WAITLISTED)
        .distinct()
    )
    events = (
        db.query(Event)
        .filter(
            Event.start_time_utc >= now,
            Event.start_time_utc <= window_end,
            Event.event_id.in_(has_waitlist),
        )
        .order_by(Event.start_time_utc)
        .all()
    )
    return [event.event_id for event in events if get_snapshot(db, event).has_free_slot]


def sweep_waitlists(db: Session, lookahead_hours: Optional[int] = None) -> SweepResult:
    """Bulk promotion pass, invoked by an external timer."""
    if lookahead_hours is None:
        lookahead_hours = settings.WAITLIST_SWEEP_LOOKAHEAD_HOURS

    event_ids = find_sweep_candidates(db, lookahead_hours)
    result = SweepResult(events_processed=len(event_ids))
    for event_id in event_ids:
        promoted = sweep_event(db, event_id)
        if promoted:
            result.promotions.append(EventPromotions(event_id=event_id, promoted_user_ids=promoted))

    logger.info(
        "Waitlist sweep (%dh lookahead): %d events checked, %d promotions",
        lookahead_hours, result.events_processed, result.total_promoted,
    )
    return result
