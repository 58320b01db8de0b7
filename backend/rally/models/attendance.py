"""AttendanceRecord ORM model: one row per RSVP attempt for an (event, user) pair."""
import enum
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Enum as SAEnum, text
from sqlalchemy.sql import func
from rally.database import Base

class AttendanceStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"
    CHECKED_IN = "CHECKED_IN"
    NO_SHOW = "NO_SHOW"

# Statuses that occupy one of the event's seats
SEATED_STATUSES = (
    AttendanceStatus.CONFIRMED,
    AttendanceStatus.CHECKED_IN,
    AttendanceStatus.NO_SHOW,
)

class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    record_id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False)
    user_id = Column(String(64), nullable=False)
    status = Column(SAEnum(AttendanceStatus, name="attendance_status"), nullable=False)
    position = Column(Integer, nullable=True)  # only while WAITLISTED
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    waitlisted_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # At most one non-cancelled record per (event, user)
        Index(
            "uq_attendance_active_pair",
            "event_id",
            "user_id",
            unique=True,
            sqlite_where=text("status != 'CANCELLED'"),
            postgresql_where=text("status != 'CANCELLED'"),
        ),
        Index("ix_attendance_event_status", "event_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status != AttendanceStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<AttendanceRecord(event={self.event_id}, user={self.user_id}, status={self.status})>"
