"""AttendanceLogEntry ORM model: append-only ledger of attendance transitions."""
import enum
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, Enum as SAEnum
from sqlalchemy.sql import func
from rally.database import Base


class AttendanceAction(str, enum.Enum):
    RSVP_CONFIRMED = "RSVP_CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"
    PROMOTED = "PROMOTED"
    CHECKED_IN = "CHECKED_IN"
    NO_SHOW = "NO_SHOW"


class AttendanceLogEntry(Base):
    __tablename__ = "attendance_log"

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False)
    user_id = Column(String(64), nullable=False)
    action = Column(SAEnum(AttendanceAction, name="attendance_action"), nullable=False)
    actor_id = Column(String(64), nullable=False)
    reason = Column(String(64), nullable=True)
    details = Column(JSON, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_attendance_log_event_user", "event_id", "user_id"),
    )
