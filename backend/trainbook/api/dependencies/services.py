# backend/trainbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets fresh service instances bound to its own session.
Authentication lives outside this service; the acting user, when known,
arrives in the X-User-Id header and is only used for audit entries.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.conflict_checker import ConflictChecker
from ...services.conflict_resolver import ConflictResolver
from ...services.event_service import EventService
from .database import get_db


def get_actor_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id or None


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Get booking service instance for dependency injection."""
    return BookingService(db)


def get_conflict_checker(db: Session = Depends(get_db)) -> ConflictChecker:
    return ConflictChecker(db)


def get_conflict_resolver(db: Session = Depends(get_db)) -> ConflictResolver:
    return ConflictResolver(db)
