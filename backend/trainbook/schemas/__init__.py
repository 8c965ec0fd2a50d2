# backend/trainbook/schemas/__init__.py
"""Pydantic request/response schemas for the scheduling API."""

from .availability import (
    AvailabilityBulkRequest,
    AvailabilityResponse,
    AvailabilityUpsertRequest,
    AvailabilityWithCountsResponse,
    BlockedDateCreate,
    BlockedDateResponse,
    BlockedDaysRequest,
    BlockedDaysResponse,
    DateRangeRequest,
)
from .booking import (
    BookingConfirmRequest,
    BookingConfirmResponse,
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
)
from .conflict import ConflictReportResponse, ConflictResolveRequest
from .event import (
    AutoCompleteResponse,
    EventFromCourseRequest,
    EventResponse,
    EventStatusUpdate,
    ParticipantsAdd,
    RegistrationApprove,
    RegistrationCreate,
    RegistrationResponse,
    RemainingCapacityResponse,
)

__all__ = [
    "AutoCompleteResponse",
    "AvailabilityBulkRequest",
    "AvailabilityResponse",
    "AvailabilityUpsertRequest",
    "AvailabilityWithCountsResponse",
    "BlockedDateCreate",
    "BlockedDateResponse",
    "BlockedDaysRequest",
    "BlockedDaysResponse",
    "BookingConfirmRequest",
    "BookingConfirmResponse",
    "BookingCreate",
    "BookingResponse",
    "BookingStatusUpdate",
    "ConflictReportResponse",
    "ConflictResolveRequest",
    "DateRangeRequest",
    "EventFromCourseRequest",
    "EventResponse",
    "EventStatusUpdate",
    "ParticipantsAdd",
    "RegistrationApprove",
    "RegistrationCreate",
    "RegistrationResponse",
    "RemainingCapacityResponse",
]
