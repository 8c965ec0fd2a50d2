# backend/trainbook/repositories/booking_repository.py
"""
Booking Repository for the trainer scheduling platform.

Implements all data access operations for booking request management:
- Row-locked reads for status transitions
- Same-date collision query among approved bookings
- Range queries for per-date booking counts
"""

from datetime import date
import logging
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.booking import BookingRequest, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[BookingRequest]):
    """Repository for booking request data access."""

    def __init__(self, db: Session):
        super().__init__(db, BookingRequest)

    def get_for_update(self, booking_id: str) -> Optional[BookingRequest]:
        """Lock the booking row for a status transition."""
        return self.get_by_id(booking_id, for_update=True)

    def set_status(self, booking: BookingRequest, status: BookingStatus) -> BookingRequest:
        booking.status = status.value
        self.db.flush()
        return booking

    def get_same_date_approved(self, booking: BookingRequest) -> List[BookingRequest]:
        """
        Other APPROVED bookings for the same trainer on the exact same date.

        Oldest first, so the admin sees which approval came first.
        """
        query = (
            self.db.query(BookingRequest)
            .filter(
                BookingRequest.id != booking.id,
                BookingRequest.trainer_id == booking.trainer_id,
                BookingRequest.requested_date == booking.requested_date,
                BookingRequest.status == BookingStatus.APPROVED.value,
            )
            .order_by(BookingRequest.created_at.asc(), BookingRequest.id.asc())
        )
        return self._execute_query(query)

    def get_covering_range(
        self,
        trainer_id: str,
        course_id: str,
        start_date: date,
        end_date: date,
        statuses: Sequence[BookingStatus],
    ) -> List[BookingRequest]:
        """Bookings whose inclusive day range overlaps [start_date, end_date]."""
        last_day = func.coalesce(BookingRequest.end_date, BookingRequest.requested_date)
        query = self.db.query(BookingRequest).filter(
            BookingRequest.trainer_id == trainer_id,
            BookingRequest.course_id == course_id,
            BookingRequest.requested_date.isnot(None),
            BookingRequest.requested_date <= end_date,
            last_day >= start_date,
            BookingRequest.status.in_([s.value for s in statuses]),
        )
        return self._execute_query(query)

    def is_availability_referenced_by_confirmed(self, availability_id: str) -> bool:
        query = self.db.query(BookingRequest.id).filter(
            BookingRequest.trainer_availability_id == availability_id,
            BookingRequest.status == BookingStatus.CONFIRMED.value,
        )
        return self._execute_scalar(query.limit(1)) is not None
