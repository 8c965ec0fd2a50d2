"""Schemas for conflict detection and resolution."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel
from .availability import BlockedDateResponse
from .booking import BookingResponse


class WeeklyAvailabilityResponse(StrictModel):
    blocked_days: List[int] = Field(default_factory=list)
    affected_dates: List[date] = Field(default_factory=list)


class SuggestedAlternativeResponse(StrictModel):
    start_date: date
    end_date: date
    reason: str


class ConflictReportResponse(StrictModel):
    trainer_id: str
    start_date: date
    end_date: date
    has_conflict: bool
    existing_bookings: List[BookingResponse]
    blocked_dates: List[BlockedDateResponse]
    weekly_availability: WeeklyAvailabilityResponse
    suggested_alternatives: List[SuggestedAlternativeResponse]


class ConflictResolveRequest(StrictRequestModel):
    booking_id: str
    resolution: str = Field(..., description="reschedule, override or cancel")
    new_date: Optional[date] = None
    reason: Optional[str] = Field(None, max_length=255)
