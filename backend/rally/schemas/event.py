"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    organizer_id: str
    start_time_utc: datetime
    end_time_utc: Optional[datetime] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    waitlist_enabled: bool = True


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    start_time_utc: Optional[datetime] = None
    end_time_utc: Optional[datetime] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    waitlist_enabled: Optional[bool] = None


class EventOut(BaseModel):
    event_id: str
    title: str
    organizer_id: str
    start_time_utc: datetime
    end_time_utc: Optional[datetime] = None
    capacity: Optional[int] = None
    waitlist_enabled: bool
    is_sold_out: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
