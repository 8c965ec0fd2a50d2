"""
Database models for the trainer scheduling platform.

The models are organized by functionality:
- Trainers and courses
- Trainer calendar (availability, blocked dates, recurring blocked days)
- Booking requests and their transition table
- Events and registrations
- Notifications and the activity trail
"""

from .availability import (
    TrainerAvailability,
    TrainerAvailabilityStatus,
    TrainerBlockedDate,
    TrainerBlockedDay,
)
from .booking import BookingRequest, BookingRequestType, BookingStatus
from .event import Event, EventRegistration, EventStatus, RegistrationStatus
from .notification import ActivityLog, Notification
from .trainer import Course, Trainer

__all__ = [
    "ActivityLog",
    "BookingRequest",
    "BookingRequestType",
    "BookingStatus",
    "Course",
    "Event",
    "EventRegistration",
    "EventStatus",
    "Notification",
    "RegistrationStatus",
    "Trainer",
    "TrainerAvailability",
    "TrainerAvailabilityStatus",
    "TrainerBlockedDate",
    "TrainerBlockedDay",
]
