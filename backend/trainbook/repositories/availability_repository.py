# backend/trainbook/repositories/availability_repository.py
"""
Availability Repository for the trainer scheduling platform.

Data access for the trainer calendar: per-day availability records,
per-date blocks and recurring weekly blocks. Writes only flush; the
calling service commits.
"""

from datetime import date
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import (
    TrainerAvailability,
    TrainerAvailabilityStatus,
    TrainerBlockedDate,
    TrainerBlockedDay,
)
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[TrainerAvailability]):
    """Repository for trainer availability, blocked dates and blocked days."""

    def __init__(self, db: Session):
        super().__init__(db, TrainerAvailability)

    # Availability records

    def get_for_date(
        self, trainer_id: str, target_date: date, for_update: bool = False
    ) -> Optional[TrainerAvailability]:
        try:
            query = self.db.query(TrainerAvailability).filter(
                TrainerAvailability.trainer_id == trainer_id,
                TrainerAvailability.date == target_date,
            )
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting availability for {trainer_id} on {target_date}: {e}")
            raise RepositoryException(f"Failed to get availability: {str(e)}")

    def get_range(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[TrainerAvailability]:
        """Records in [start_date, end_date], ordered by date."""
        query = (
            self.db.query(TrainerAvailability)
            .filter(
                TrainerAvailability.trainer_id == trainer_id,
                TrainerAvailability.date >= start_date,
                TrainerAvailability.date <= end_date,
            )
            .order_by(TrainerAvailability.date)
        )
        return self._execute_query(query)

    def get_by_ids_for_update(self, availability_ids: Sequence[str]) -> List[TrainerAvailability]:
        """
        Lock the given availability rows.

        Rows are locked in ascending id order so two transactions touching
        overlapping sets cannot deadlock.
        """
        if not availability_ids:
            return []
        query = (
            self.db.query(TrainerAvailability)
            .filter(TrainerAvailability.id.in_(sorted(set(availability_ids))))
            .order_by(TrainerAvailability.id)
            .with_for_update()
            .populate_existing()
        )
        return self._execute_query(query)

    def ensure_record(self, trainer_id: str, target_date: date, status: str) -> bool:
        """Create the (trainer, date) record with ``status`` if none exists."""
        return self._insert_if_absent(
            {"trainer_id": trainer_id, "date": target_date, "status": status},
            ["trainer_id", "date"],
        )

    def upsert(self, trainer_id: str, target_date: date, status: str) -> TrainerAvailability:
        """Create or overwrite the single record for (trainer, date)."""
        self.ensure_record(trainer_id, target_date, status)
        record = self.get_for_date(trainer_id, target_date, for_update=True)
        if record is None:
            raise RepositoryException(
                f"Availability for {trainer_id} on {target_date} vanished during upsert"
            )
        if record.status != status:
            record.status = status
            self.db.flush()
        return record

    def set_status(self, records: Iterable[TrainerAvailability], status: str) -> None:
        for record in records:
            record.status = status
        self.db.flush()

    def get_booked_in_range_for_update(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[TrainerAvailability]:
        query = (
            self.db.query(TrainerAvailability)
            .filter(
                TrainerAvailability.trainer_id == trainer_id,
                TrainerAvailability.date >= start_date,
                TrainerAvailability.date <= end_date,
                TrainerAvailability.status == TrainerAvailabilityStatus.BOOKED.value,
            )
            .order_by(TrainerAvailability.id)
            .with_for_update()
            .populate_existing()
        )
        return self._execute_query(query)

    def release_booked(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> List[TrainerAvailability]:
        """BOOKED -> AVAILABLE for every BOOKED record in range; returns the released rows."""
        records = self.get_booked_in_range_for_update(trainer_id, start_date, end_date)
        self.set_status(records, TrainerAvailabilityStatus.AVAILABLE.value)
        return sorted(records, key=lambda record: record.date)

    # Blocked dates

    def get_blocked_dates(
        self,
        trainer_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TrainerBlockedDate]:
        query = self.db.query(TrainerBlockedDate).filter(
            TrainerBlockedDate.trainer_id == trainer_id
        )
        if start_date is not None:
            query = query.filter(TrainerBlockedDate.blocked_date >= start_date)
        if end_date is not None:
            query = query.filter(TrainerBlockedDate.blocked_date <= end_date)
        return self._execute_query(query.order_by(TrainerBlockedDate.blocked_date))

    def get_blocked_date(self, blocked_date_id: str) -> Optional[TrainerBlockedDate]:
        try:
            return self.db.get(TrainerBlockedDate, blocked_date_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting blocked date {blocked_date_id}: {e}")
            raise RepositoryException(f"Failed to get blocked date: {str(e)}")

    def find_blocked_date(self, trainer_id: str, blocked_date: date) -> Optional[TrainerBlockedDate]:
        try:
            return (
                self.db.query(TrainerBlockedDate)
                .filter(
                    TrainerBlockedDate.trainer_id == trainer_id,
                    TrainerBlockedDate.blocked_date == blocked_date,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding blocked date: {e}")
            raise RepositoryException(f"Failed to find blocked date: {str(e)}")

    def block_date(
        self, trainer_id: str, blocked_date: date, reason: Optional[str] = None
    ) -> tuple[TrainerBlockedDate, bool]:
        """Idempotent block; returns (row, created)."""
        created = self._insert_if_absent(
            {"trainer_id": trainer_id, "blocked_date": blocked_date, "reason": reason},
            ["trainer_id", "blocked_date"],
            model=TrainerBlockedDate,
        )
        row = self.find_blocked_date(trainer_id, blocked_date)
        if row is None:
            raise RepositoryException(f"Blocked date {blocked_date} vanished after insert")
        return row, created

    def delete_blocked_date(self, row: TrainerBlockedDate) -> None:
        try:
            self.db.delete(row)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting blocked date {row.id}: {e}")
            raise RepositoryException(f"Failed to delete blocked date: {str(e)}")

    # Recurring blocked days

    def get_blocked_days(self, trainer_id: str) -> List[int]:
        query = (
            self.db.query(TrainerBlockedDay)
            .filter(TrainerBlockedDay.trainer_id == trainer_id)
            .order_by(TrainerBlockedDay.day_of_week)
        )
        return [row.day_of_week for row in self._execute_query(query)]

    def replace_blocked_days(self, trainer_id: str, days: Sequence[int]) -> List[int]:
        """Delete the trainer's whole weekly set and write ``days`` in its place."""
        try:
            self.db.query(TrainerBlockedDay).filter(
                TrainerBlockedDay.trainer_id == trainer_id
            ).delete(synchronize_session=False)
            for day in days:
                self.db.add(TrainerBlockedDay(trainer_id=trainer_id, day_of_week=day))
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing blocked days for {trainer_id}: {e}")
            raise RepositoryException(f"Failed to replace blocked days: {str(e)}")
        return list(days)
