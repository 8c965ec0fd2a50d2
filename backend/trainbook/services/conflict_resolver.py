# backend/trainbook/services/conflict_resolver.py
"""
Conflict Resolver Service for the trainer scheduling platform.

Admin-facing: applies one resolution to a booking flagged by conflict
detection. This is an authority path, so the resulting status is written
directly rather than through the normal transition table.

    reschedule  requested_date := new_date, status := TENTATIVE
    override    block the original date for the trainer (idempotent),
                status := APPROVED
    cancel      status := CANCELLED

Each resolution commits the status update and its (at most one) calendar
write together or not at all.
"""

from datetime import date, timedelta
from enum import Enum
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.calendar_lock import calendar_lock
from ..core.exceptions import NotFoundException, StateConflictException, ValidationException
from ..models.booking import BookingRequest, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .booking_service import calendar_busy
from .notification_service import ActivityLogService, NotificationService

logger = logging.getLogger(__name__)


class ResolutionType(str, Enum):
    RESCHEDULE = "reschedule"
    OVERRIDE = "override"
    CANCEL = "cancel"


_TARGET_STATUS = {
    ResolutionType.RESCHEDULE: BookingStatus.TENTATIVE,
    ResolutionType.OVERRIDE: BookingStatus.APPROVED,
    ResolutionType.CANCEL: BookingStatus.CANCELLED,
}


def parse_resolution(value: object) -> ResolutionType:
    try:
        return ResolutionType(str(value).strip().lower())
    except ValueError:
        raise ValidationException(
            f"Invalid resolution: {value}",
            code="INVALID_RESOLUTION",
            details={"allowed": [r.value for r in ResolutionType]},
        )


class ConflictResolver(BaseService):
    """Applies reschedule / override / cancel to a conflicting booking."""

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        notifications: Optional[NotificationService] = None,
        activity_log: Optional[ActivityLogService] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.notifications = notifications or NotificationService(db)
        self.activity_log = activity_log or ActivityLogService(db)

    @BaseService.measure_operation("resolve_conflict")
    def resolve_conflict(
        self,
        booking_id: str,
        resolution: object,
        new_date: Optional[date] = None,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> BookingRequest:
        kind = parse_resolution(resolution)
        if kind == ResolutionType.RESCHEDULE and new_date is None:
            raise ValidationException(
                "A new date is required to reschedule", code="NEW_DATE_REQUIRED"
            )

        trainer_id = self._get_booking(booking_id, lock=False).trainer_id
        with calendar_lock(trainer_id) as acquired:
            if not acquired:
                raise calendar_busy(trainer_id)
            with self.transaction():
                booking = self._get_booking(booking_id, lock=True)
                previous = booking.status
                original_date = booking.requested_date
                self._check_resolvable(booking, kind)

                if kind == ResolutionType.RESCHEDULE:
                    self._reschedule(booking, new_date)
                elif kind == ResolutionType.OVERRIDE:
                    self._override(booking, reason)

                target = _TARGET_STATUS[kind]
                self.repository.set_status(booking, target)

        prometheus_metrics.record_conflict_resolution(kind.value)
        prometheus_metrics.record_booking_transition(previous, target.value)
        self.logger.info(
            f"Conflict resolved: resolution={kind.value} booking={booking_id} "
            f"trainer={booking.trainer_id} {previous} -> {target.value}"
            + (f" new_date={new_date}" if kind == ResolutionType.RESCHEDULE else "")
        )
        self._notify(booking, kind, original_date)
        self._best_effort(
            "activity_log",
            self.activity_log.log_activity,
            actor_id,
            "RESOLVE_CONFLICT",
            "BOOKING",
            booking.id,
            f"Conflict resolved with {kind.value}",
            {
                "resolution": kind.value,
                "from": previous,
                "to": target.value,
                "original_date": original_date.isoformat() if original_date else None,
                "new_date": new_date.isoformat() if new_date else None,
                "reason": reason,
            },
        )
        return booking

    def _get_booking(self, booking_id: str, lock: bool) -> BookingRequest:
        booking = self.repository.get_by_id(booking_id, for_update=lock)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", details={"booking_id": booking_id})
        return booking

    @staticmethod
    def _check_resolvable(booking: BookingRequest, kind: ResolutionType) -> None:
        if booking.is_terminal:
            raise StateConflictException(
                f"Booking {booking.id} is {booking.status} and cannot be resolved",
                details={"booking_id": booking.id, "status": booking.status},
            )
        if kind != ResolutionType.CANCEL and booking.status == BookingStatus.CONFIRMED.value:
            raise StateConflictException(
                f"Booking {booking.id} is already confirmed; only cancel is allowed",
                details={"booking_id": booking.id, "status": booking.status},
            )

    def _reschedule(self, booking: BookingRequest, new_date: date) -> None:
        """Move the request, keeping its span; the calendar is left untouched."""
        if booking.requested_date is not None and booking.end_date is not None:
            span = (booking.end_date - booking.requested_date).days
            booking.end_date = new_date + timedelta(days=span)
        booking.requested_date = new_date

    def _override(self, booking: BookingRequest, reason: Optional[str]) -> None:
        # An override must leave the date blocked; a booking with no trainer or
        # date is refused instead of being approved unblocked (see DESIGN.md).
        if not booking.trainer_id or booking.requested_date is None:
            raise ValidationException(
                "Override needs a booking with a trainer and a requested date",
                code="BOOKING_INCOMPLETE",
                details={"booking_id": booking.id},
            )
        _, created = self.availability_repository.block_date(
            booking.trainer_id,
            booking.requested_date,
            reason or f"Admin override for booking {booking.id}",
        )
        if not created:
            self.logger.info(
                f"Date {booking.requested_date} already blocked for trainer {booking.trainer_id}"
            )

    def _notify(
        self, booking: BookingRequest, kind: ResolutionType, original_date: Optional[date]
    ) -> None:
        when = original_date.isoformat() if original_date else "the requested date"
        messages = {
            ResolutionType.RESCHEDULE: (
                "Booking Rescheduled",
                f"Your booking has been moved to {booking.requested_date} pending confirmation.",
            ),
            ResolutionType.OVERRIDE: (
                "Booking Approved",
                f"Your booking for {when} has been approved by an administrator.",
            ),
            ResolutionType.CANCEL: (
                "Booking Cancelled",
                "Your booking was cancelled because of a scheduling conflict.",
            ),
        }
        title, message = messages[kind]
        self._best_effort(
            "notification",
            self.notifications.notify,
            booking.client_id,
            title,
            message,
            "INFO",
            "booking",
            booking.id,
        )
        if kind == ResolutionType.OVERRIDE:
            self._best_effort(
                "notification",
                self.notifications.notify,
                booking.trainer_id,
                "Date Blocked By Override",
                f"An administrator approved a booking for {when}; the date is now blocked.",
                "WARNING",
                "booking",
                booking.id,
            )
