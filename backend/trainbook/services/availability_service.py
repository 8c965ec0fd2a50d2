# backend/trainbook/services/availability_service.py
"""
Availability Service for the trainer scheduling platform.

The trainer calendar: one full-day record per (trainer, date), manual
per-date blocks and a recurring weekly blackout set.

Any status may be written here by an authorized caller. The system-driven
moves (TENTATIVE on approval, BOOKED on confirmation) live in
BookingService; the only way back from BOOKED is release_dates.
"""

from datetime import date
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, StateConflictException, ValidationException
from ..models.availability import (
    TrainerAvailability,
    TrainerAvailabilityStatus,
    TrainerBlockedDate,
)
from ..models.booking import BookingStatus
from ..models.trainer import Trainer
from ..repositories import RepositoryFactory
from ..repositories.availability_repository import AvailabilityRepository
from ..utils.dates import iter_days, normalize_days_of_week
from .base import BaseService
from .notification_service import ActivityLogService

logger = logging.getLogger(__name__)


def parse_status(value: object) -> TrainerAvailabilityStatus:
    status = TrainerAvailabilityStatus.normalize(value)
    if status is None:
        raise ValidationException(
            f"Invalid availability status: {value}",
            code="INVALID_STATUS",
            details={"allowed": [s.value for s in TrainerAvailabilityStatus]},
        )
    return status


def validate_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationException(
            "End date must be on or after start date",
            code="INVALID_DATE_RANGE",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )


class AvailabilityService(BaseService):
    """Calendar store operations for trainers."""

    def __init__(
        self,
        db: Session,
        repository: Optional[AvailabilityRepository] = None,
        activity_log: Optional[ActivityLogService] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_availability_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.trainer_repository = RepositoryFactory.create_base_repository(db, Trainer)
        self.activity_log = activity_log or ActivityLogService(db)

    def _require_trainer(self, trainer_id: str) -> Trainer:
        trainer = self.trainer_repository.get_by_id(trainer_id)
        if trainer is None:
            raise NotFoundException(f"Trainer {trainer_id} not found", details={"trainer_id": trainer_id})
        return trainer

    # Availability records

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[TrainerAvailability]:
        """Records in [start_date, end_date], ordered by date."""
        validate_range(start_date, end_date)
        return self.repository.get_range(trainer_id, start_date, end_date)

    @BaseService.measure_operation("set_availability")
    def set_availability(
        self, trainer_id: str, target_date: date, status: object
    ) -> TrainerAvailability:
        """
        Create or overwrite the single record for (trainer, date).

        An existing record's status is replaced, never merged.
        """
        new_status = parse_status(status)
        with self.transaction():
            self._require_trainer(trainer_id)
            record = self.repository.upsert(trainer_id, target_date, new_status.value)
        self.logger.info(f"Availability set: trainer={trainer_id} date={target_date} status={new_status.value}")
        return record

    @BaseService.measure_operation("bulk_set_availability")
    def bulk_set_availability(
        self,
        trainer_id: str,
        dates: Iterable[date],
        status: object,
        actor_id: Optional[str] = None,
    ) -> List[TrainerAvailability]:
        new_status = parse_status(status)
        unique_dates = sorted(set(dates))
        if not unique_dates:
            raise ValidationException("At least one date is required", code="DATES_REQUIRED")

        with self.transaction():
            self._require_trainer(trainer_id)
            records = [
                self.repository.upsert(trainer_id, day, new_status.value) for day in unique_dates
            ]

        self.logger.info(
            f"Bulk availability set: trainer={trainer_id} days={len(records)} status={new_status.value}"
        )
        self._best_effort(
            "activity_log",
            self.activity_log.log_activity,
            actor_id,
            "AVAILABILITY_BULK_SET",
            "TRAINER_AVAILABILITY",
            trainer_id,
            f"Set {len(records)} day(s) to {new_status.value}",
            {"dates": [d.isoformat() for d in unique_dates], "status": new_status.value},
        )
        return records

    @BaseService.measure_operation("delete_availability")
    def delete_availability(self, availability_id: str) -> None:
        with self.transaction():
            record = self.repository.get_by_id(availability_id, for_update=True)
            if record is None:
                raise NotFoundException(
                    f"Availability {availability_id} not found",
                    details={"availability_ids": [availability_id]},
                )
            if record.status == TrainerAvailabilityStatus.BOOKED.value or (
                self.booking_repository.is_availability_referenced_by_confirmed(availability_id)
            ):
                raise StateConflictException(
                    f"Availability {availability_id} is held by a confirmed booking",
                    details={"availability_ids": [availability_id]},
                )
            self.repository.delete(availability_id)
        self.logger.info(f"Availability deleted: {availability_id}")

    @BaseService.measure_operation("release_dates")
    def release_dates(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[TrainerAvailability]:
        """The explicit BOOKED -> AVAILABLE release for a date range."""
        validate_range(start_date, end_date)
        with self.transaction():
            released = self.repository.release_booked(trainer_id, start_date, end_date)
        self.logger.info(
            f"Released {len(released)} booked day(s) for trainer {trainer_id} "
            f"between {start_date} and {end_date}"
        )
        return released

    @BaseService.measure_operation("get_availability_with_booking_counts")
    def get_availability_with_booking_counts(
        self, trainer_id: str, start_date: date, end_date: date, course_id: str
    ) -> List[Dict[str, object]]:
        """
        Availability list annotated with how many PENDING and APPROVED
        bookings for the course cover each date.
        """
        validate_range(start_date, end_date)
        records = self.repository.get_range(trainer_id, start_date, end_date)
        bookings = self.booking_repository.get_covering_range(
            trainer_id,
            course_id,
            start_date,
            end_date,
            [BookingStatus.PENDING, BookingStatus.APPROVED],
        )

        counts: Dict[date, Dict[str, int]] = {}
        for booking in bookings:
            for day in iter_days(booking.requested_date, booking.end_date):
                bucket = counts.setdefault(day, {"pending": 0, "approved": 0})
                if booking.status == BookingStatus.PENDING.value:
                    bucket["pending"] += 1
                else:
                    bucket["approved"] += 1

        result = []
        for record in records:
            bucket = counts.get(record.date, {"pending": 0, "approved": 0})
            result.append(
                {
                    "id": record.id,
                    "trainer_id": record.trainer_id,
                    "date": record.date,
                    "status": record.status,
                    "pending_bookings": bucket["pending"],
                    "approved_bookings": bucket["approved"],
                }
            )
        return result

    # Blocked dates

    @BaseService.measure_operation("block_date")
    def block_date(
        self, trainer_id: str, blocked_date: date, reason: Optional[str] = None
    ) -> TrainerBlockedDate:
        """Idempotent: blocking an already blocked date returns the existing row."""
        with self.transaction():
            self._require_trainer(trainer_id)
            row, created = self.repository.block_date(trainer_id, blocked_date, reason)
        if created:
            self.logger.info(f"Blocked date added: trainer={trainer_id} date={blocked_date}")
        return row

    @BaseService.measure_operation("unblock_date")
    def unblock_date(self, trainer_id: str, blocked_date_id: str) -> None:
        with self.transaction():
            row = self.repository.get_blocked_date(blocked_date_id)
            if row is None or row.trainer_id != trainer_id:
                raise NotFoundException(
                    f"Blocked date {blocked_date_id} not found",
                    details={"blocked_date_id": blocked_date_id},
                )
            self.repository.delete_blocked_date(row)
        self.logger.info(f"Blocked date removed: trainer={trainer_id} id={blocked_date_id}")

    def list_blocked_dates(
        self,
        trainer_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TrainerBlockedDate]:
        if start_date is not None and end_date is not None:
            validate_range(start_date, end_date)
        return self.repository.get_blocked_dates(trainer_id, start_date, end_date)

    # Recurring blocked days

    def get_blocked_days(self, trainer_id: str) -> List[int]:
        return self.repository.get_blocked_days(trainer_id)

    @BaseService.measure_operation("replace_blocked_days")
    def replace_blocked_days(self, trainer_id: str, days: Sequence[object]) -> List[int]:
        """
        Replace the whole weekly set.

        Anything that is not an integer 0-6 (0 = Sunday) is dropped and
        duplicates collapse.
        """
        kept = normalize_days_of_week(days)
        with self.transaction():
            self._require_trainer(trainer_id)
            self.repository.replace_blocked_days(trainer_id, kept)
        self.logger.info(f"Blocked days replaced: trainer={trainer_id} days={kept}")
        return kept
