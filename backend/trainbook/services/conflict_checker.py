# backend/trainbook/services/conflict_checker.py
"""
Conflict Checker Service for the trainer scheduling platform.

Reports what stands in the way of booking a trainer for a date range:
- bookings already occupying it (APPROVED, CONFIRMED or TENTATIVE)
- per-date blocks
- recurring weekly blocks (informational only)

has_conflict is driven by bookings and blocked dates alone. Weekly
blocks are reported but can be overridden case by case.

The alternative suggestion is a single narrow heuristic: shift the whole
window forward by a fixed number of days and offer it when that window is
free of bookings and blocked dates. It is not a search.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.availability import TrainerBlockedDate
from ..models.booking import BookingRequest
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..utils.dates import day_of_week, day_span, iter_days
from .availability_service import validate_range
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class WeeklyAvailability:
    blocked_days: List[int] = field(default_factory=list)
    affected_dates: List[date] = field(default_factory=list)


@dataclass
class SuggestedAlternative:
    start_date: date
    end_date: date
    reason: str


@dataclass
class ConflictReport:
    trainer_id: str
    start_date: date
    end_date: date
    has_conflict: bool
    existing_bookings: List[BookingRequest]
    blocked_dates: List[TrainerBlockedDate]
    weekly_availability: WeeklyAvailability
    suggested_alternatives: List[SuggestedAlternative]


class ConflictChecker(BaseService):
    """
    Service for detecting trainer booking conflicts.

    Read-only; never mutates bookings or the calendar.
    """

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("detect_conflicts")
    def detect_conflicts(
        self, trainer_id: str, start_date: date, end_date: Optional[date] = None
    ) -> ConflictReport:
        """
        Build the conflict report for [start_date, end_date or start_date].

        Args:
            trainer_id: The trainer to check
            start_date: First day of the requested window
            end_date: Last day of the window (inclusive); defaults to start_date

        Returns:
            ConflictReport with bookings, blocked dates, weekly blocks and
            at most one suggested alternative window
        """
        end_date = end_date or start_date
        validate_range(start_date, end_date)

        bookings = self.repository.get_occupying_bookings(trainer_id, start_date, end_date)
        blocked = self.repository.get_blocked_dates(trainer_id, start_date, end_date)
        weekly = self._weekly_availability(trainer_id, start_date, end_date)

        has_conflict = bool(bookings) or bool(blocked)
        alternatives = []
        if has_conflict:
            suggestion = self.suggest_alternative(trainer_id, start_date, end_date)
            if suggestion is not None:
                alternatives.append(suggestion)

        self.logger.info(
            f"Conflict check trainer={trainer_id} {start_date}..{end_date}: "
            f"bookings={len(bookings)} blocked={len(blocked)} "
            f"weekly_hits={len(weekly.affected_dates)} has_conflict={has_conflict}"
        )
        return ConflictReport(
            trainer_id=trainer_id,
            start_date=start_date,
            end_date=end_date,
            has_conflict=has_conflict,
            existing_bookings=bookings,
            blocked_dates=blocked,
            weekly_availability=weekly,
            suggested_alternatives=alternatives,
        )

    def _weekly_availability(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> WeeklyAvailability:
        blocked_days = self.repository.get_blocked_days_of_week(trainer_id)
        if not blocked_days:
            return WeeklyAvailability()
        affected = [d for d in iter_days(start_date, end_date) if day_of_week(d) in blocked_days]
        return WeeklyAvailability(blocked_days=blocked_days, affected_dates=affected)

    def suggest_alternative(
        self, trainer_id: str, start_date: date, end_date: date
    ) -> Optional[SuggestedAlternative]:
        """The same span shifted forward, if that window has no bookings or blocks."""
        shift = timedelta(days=settings.alternative_shift_days)
        new_start = start_date + shift
        new_end = new_start + timedelta(days=day_span(start_date, end_date))

        if self.repository.count_occupying_bookings(trainer_id, new_start, new_end):
            return None
        if self.repository.count_blocked_dates(trainer_id, new_start, new_end):
            return None
        return SuggestedAlternative(
            start_date=new_start,
            end_date=new_end,
            reason=f"Same duration, {settings.alternative_shift_days} days later",
        )
