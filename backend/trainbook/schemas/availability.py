"""Schemas for the trainer calendar endpoints."""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import Field, model_validator

from ._strict_base import StrictModel, StrictRequestModel


class AvailabilityUpsertRequest(StrictRequestModel):
    date: dt.date
    status: str = Field(..., description="AVAILABLE, NOT_AVAILABLE, TENTATIVE or BOOKED")


class AvailabilityBulkRequest(StrictRequestModel):
    dates: List[dt.date] = Field(..., min_length=1)
    status: str


class DateRangeRequest(StrictRequestModel):
    start_date: dt.date
    end_date: dt.date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRangeRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class AvailabilityResponse(StrictModel):
    id: str
    trainer_id: str
    date: dt.date
    status: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class AvailabilityWithCountsResponse(StrictModel):
    id: str
    trainer_id: str
    date: dt.date
    status: str
    pending_bookings: int = 0
    approved_bookings: int = 0


class BlockedDateCreate(StrictRequestModel):
    blocked_date: dt.date
    reason: Optional[str] = Field(None, max_length=255)


class BlockedDateResponse(StrictModel):
    id: str
    trainer_id: str
    blocked_date: dt.date
    reason: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class BlockedDaysRequest(StrictRequestModel):
    """Whole weekly set; values outside 0-6 are dropped by the service."""

    days: List[Any] = Field(default_factory=list, description="0 = Sunday .. 6 = Saturday")


class BlockedDaysResponse(StrictModel):
    trainer_id: str
    days: List[int]
