# backend/trainbook/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the trainer scheduling platform.

Read-only queries behind conflict detection: bookings that occupy a
trainer's days, per-date blocks and the recurring weekly blocks.
"""

from datetime import date
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.availability import TrainerBlockedDate, TrainerBlockedDay
from ..models.booking import OCCUPYING_STATUSES, BookingRequest
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_OCCUPYING_VALUES = sorted(status.value for status in OCCUPYING_STATUSES)


class ConflictCheckerRepository(BaseRepository[BookingRequest]):
    """
    Repository for conflict checking data access.

    A booking occupies the trainer when its requested_date falls in the
    checked window and its status is APPROVED, CONFIRMED or TENTATIVE.
    """

    def __init__(self, db: Session):
        """Initialize with BookingRequest model as primary."""
        super().__init__(db, BookingRequest)
        self.logger = logging.getLogger(__name__)

    # Booking Conflict Queries

    def get_occupying_bookings(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[BookingRequest]:
        query = (
            self.db.query(BookingRequest)
            .filter(
                BookingRequest.trainer_id == trainer_id,
                BookingRequest.requested_date >= start_date,
                BookingRequest.requested_date <= end_date,
                BookingRequest.status.in_(_OCCUPYING_VALUES),
            )
            .order_by(BookingRequest.requested_date, BookingRequest.created_at)
        )
        return self._execute_query(query)

    def count_occupying_bookings(self, trainer_id: str, start_date: date, end_date: date) -> int:
        query = self.db.query(func.count(BookingRequest.id)).filter(
            BookingRequest.trainer_id == trainer_id,
            BookingRequest.requested_date >= start_date,
            BookingRequest.requested_date <= end_date,
            BookingRequest.status.in_(_OCCUPYING_VALUES),
        )
        return int(self._execute_scalar(query) or 0)

    # Blocked Date Queries

    def get_blocked_dates(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[TrainerBlockedDate]:
        query = (
            self.db.query(TrainerBlockedDate)
            .filter(
                TrainerBlockedDate.trainer_id == trainer_id,
                TrainerBlockedDate.blocked_date >= start_date,
                TrainerBlockedDate.blocked_date <= end_date,
            )
            .order_by(TrainerBlockedDate.blocked_date)
        )
        return self._execute_query(query)

    def count_blocked_dates(self, trainer_id: str, start_date: date, end_date: date) -> int:
        query = self.db.query(func.count(TrainerBlockedDate.id)).filter(
            TrainerBlockedDate.trainer_id == trainer_id,
            TrainerBlockedDate.blocked_date >= start_date,
            TrainerBlockedDate.blocked_date <= end_date,
        )
        return int(self._execute_scalar(query) or 0)

    def get_blocked_days_of_week(self, trainer_id: str) -> List[int]:
        query = (
            self.db.query(TrainerBlockedDay.day_of_week)
            .filter(TrainerBlockedDay.trainer_id == trainer_id)
            .order_by(TrainerBlockedDay.day_of_week)
        )
        return [row[0] for row in self._execute_query(query)]
