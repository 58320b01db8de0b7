"""Event ORM model: the capacity-bounded thing people RSVP to."""
import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func
from rally.database import Base

class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    organizer_id = Column(String(64), nullable=False)
    start_time_utc = Column(DateTime(timezone=True), nullable=False)
    end_time_utc = Column(DateTime(timezone=True), nullable=True)
    capacity = Column(Integer, nullable=True)  # NULL = unlimited
    waitlist_enabled = Column(Boolean, nullable=False, default=True)
    is_sold_out = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity >= 1", name="ck_events_capacity_positive"),
        Index("ix_events_start_time_utc", "start_time_utc"),
    )

    def __repr__(self) -> str:
        return f"<Event(event_id={self.event_id}, capacity={self.capacity}, sold_out={self.is_sold_out})>"
