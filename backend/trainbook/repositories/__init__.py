# backend/trainbook/repositories/__init__.py
"""
Repository Pattern Implementation for the trainer scheduling platform.

Key Components:
- BaseRepository: Generic CRUD, row locking and idempotent inserts
- RepositoryFactory: Factory for creating repository instances
- AvailabilityRepository: Trainer calendar, blocked dates and blocked days
- BookingRepository: Booking requests
- ConflictCheckerRepository: Queries behind conflict detection
- EventRepository: Events and registrations

Usage:
    from trainbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_booking_repository(db)
    booking = repository.get_for_update(booking_id)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .event_repository import EventRepository
from .factory import RepositoryFactory

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "EventRepository",
    "RepositoryFactory",
]
