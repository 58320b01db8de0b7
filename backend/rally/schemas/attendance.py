"""Pydantic schemas for attendance, feedback and organizer payloads."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from rally.models.attendance import AttendanceStatus
from rally.models.attendance_log import AttendanceAction
from rally.services.organizer_service import OrganizerAction


class AttendeePayload(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)


class JoinOut(BaseModel):
    status: AttendanceStatus
    waitlisted: bool
    position: Optional[int] = None
    summary: Optional[SummaryOut] = None

    model_config = {"from_attributes": True}


class LeaveOut(BaseModel):
    status: AttendanceStatus
    promoted_user_id: Optional[str] = None
    summary: Optional[SummaryOut] = None

    model_config = {"from_attributes": True}


class SummaryOut(BaseModel):
    confirmed_count: int
    waitlist_count: int
    capacity: Optional[int] = None
    is_full: bool

    model_config = {"from_attributes": True}


class AttendanceRecordOut(BaseModel):
    record_id: int
    event_id: str
    user_id: str
    status: AttendanceStatus
    position: Optional[int] = None
    confirmed_at: Optional[datetime] = None
    waitlisted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AttendanceLogOut(BaseModel):
    log_id: int
    event_id: str
    user_id: str
    action: AttendanceAction
    actor_id: str
    reason: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    occurred_at: datetime

    model_config = {"from_attributes": True}


class FeedbackCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    rating: Optional[int] = None
    comment: Optional[str] = Field(default=None, max_length=2000)


class FeedbackOut(BaseModel):
    feedback_id: str
    event_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrganizerActionRequest(BaseModel):
    action: OrganizerAction
    target_user_id: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = Field(default=None, max_length=2000)


class DashboardMetaOut(BaseModel):
    total_records: int
    total_feedback: int
    average_rating: Optional[float] = None

    model_config = {"from_attributes": True}


class OrganizerResultOut(BaseModel):
    action: Optional[OrganizerAction] = None
    roster: list[AttendanceRecordOut]
    summary: SummaryOut
    feedback: list[FeedbackOut]
    meta: DashboardMetaOut
    promoted_user_ids: list[str] = []

    model_config = {"from_attributes": True}


class EventPromotionsOut(BaseModel):
    event_id: str
    promoted_user_ids: list[str]

    model_config = {"from_attributes": True}


class SweepOut(BaseModel):
    events_processed: int
    total_promoted: int
    promotions: list[EventPromotionsOut]

    model_config = {"from_attributes": True}


# Rebuild models that reference SummaryOut before it was defined
JoinOut.model_rebuild()
LeaveOut.model_rebuild()
