"""Schemas for booking request endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel
from .event import EventResponse


class BookingCreate(StrictRequestModel):
    request_type: str = Field("PUBLIC", description="PUBLIC or INHOUSE")
    requested_date: Optional[date] = None
    end_date: Optional[date] = None
    course_id: Optional[str] = None
    trainer_id: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = Field(None, max_length=255)
    client_email: Optional[str] = Field(None, max_length=255)


class BookingStatusUpdate(StrictRequestModel):
    status: str


class BookingConfirmRequest(StrictRequestModel):
    availability_ids: List[str] = Field(default_factory=list)
    total_slots: int
    registered_participants: int
    event_date: Optional[date] = None


class BookingResponse(StrictModel):
    id: str
    course_id: Optional[str] = None
    trainer_id: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    request_type: str
    requested_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str
    trainer_availability_id: Optional[str] = None
    created_at: Optional[datetime] = None


class BookingConfirmResponse(StrictModel):
    booking: BookingResponse
    event: EventResponse
