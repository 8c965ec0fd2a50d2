# backend/trainbook/services/booking_service.py
"""
Booking Service for the trainer scheduling platform.

Drives the booking request state machine and keeps the trainer calendar
consistent with it:

    PENDING   -> APPROVED | DENIED | CANCELLED
    APPROVED  -> TENTATIVE | CONFIRMED | CANCELLED
    TENTATIVE -> APPROVED | CANCELLED
    CONFIRMED -> CANCELLED | COMPLETED

Calendar side effects:
- APPROVED (INHOUSE with a date): every day of the request becomes
  TENTATIVE unless it is already BOOKED.
- CONFIRMED: the admin-selected availability rows become BOOKED and an
  Event is materialized, all in one transaction with the rows locked.
- CANCELLED: nothing is released. An admin frees days explicitly.

Notifications and activity-log entries are written after commit and
never undo the transition that triggered them.
"""

from datetime import date
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.calendar_lock import calendar_lock
from ..core.exceptions import (
    AvailabilityUnavailableException,
    InvalidTransitionException,
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from ..models.availability import CONFIRMABLE_STATUSES, TrainerAvailabilityStatus
from ..models.booking import BookingRequest, BookingRequestType, BookingStatus
from ..models.event import Event
from ..models.trainer import Course, Trainer
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .event_service import EventService
from .notification_service import ActivityLogService, NotificationService

logger = logging.getLogger(__name__)

_CLIENT_MESSAGES = {
    BookingStatus.APPROVED: ("Booking Approved", "Your booking request has been approved."),
    BookingStatus.DENIED: ("Booking Denied", "Your booking request has been denied."),
    BookingStatus.CANCELLED: ("Booking Cancelled", "Your booking request has been cancelled."),
    BookingStatus.COMPLETED: ("Booking Completed", "Your booking has been marked as completed."),
}


def parse_booking_status(value: object) -> BookingStatus:
    try:
        return BookingStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationException(
            f"Invalid booking status: {value}",
            code="INVALID_STATUS",
            details={"allowed": [s.value for s in BookingStatus]},
        )


def calendar_busy(trainer_id: str) -> StateConflictException:
    return StateConflictException(
        f"Calendar for trainer {trainer_id} is being modified by another request; retry shortly",
        code="CALENDAR_BUSY",
        details={"trainer_id": trainer_id},
    )


class BookingService(BaseService):
    """
    Service layer for booking request operations.

    Every transition re-reads the booking with a row lock, checks the
    transition table and writes inside one transaction.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        notifications: Optional[NotificationService] = None,
        activity_log: Optional[ActivityLogService] = None,
        event_service: Optional[EventService] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.trainer_repository = RepositoryFactory.create_base_repository(db, Trainer)
        self.course_repository = RepositoryFactory.create_base_repository(db, Course)
        self.notifications = notifications or NotificationService(db)
        self.activity_log = activity_log or ActivityLogService(db)
        self.event_service = event_service or EventService(
            db, notifications=self.notifications, activity_log=self.activity_log
        )

    # Reads

    def get_booking(self, booking_id: str) -> BookingRequest:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", details={"booking_id": booking_id})
        return booking

    def get_conflicting_bookings(self, booking_id: str) -> List[BookingRequest]:
        """
        Other APPROVED bookings for the same trainer on the same exact date.

        Returns an empty list when the booking is missing or has no
        trainer/date to compare against.
        """
        booking = self.repository.get_by_id(booking_id)
        if booking is None or not booking.trainer_id or booking.requested_date is None:
            return []
        return self.repository.get_same_date_approved(booking)

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        *,
        request_type: object,
        requested_date: Optional[date],
        end_date: Optional[date] = None,
        course_id: Optional[str] = None,
        trainer_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        client_email: Optional[str] = None,
    ) -> BookingRequest:
        try:
            kind = BookingRequestType(str(request_type).strip().upper())
        except ValueError:
            raise ValidationException(
                f"Invalid request type: {request_type}",
                code="INVALID_REQUEST_TYPE",
                details={"allowed": [t.value for t in BookingRequestType]},
            )
        if end_date is not None:
            if requested_date is None:
                raise ValidationException("End date requires a requested date", code="INVALID_DATE_RANGE")
            if end_date < requested_date:
                raise ValidationException(
                    "End date must be on or after the requested date",
                    code="INVALID_DATE_RANGE",
                    details={
                        "requested_date": requested_date.isoformat(),
                        "end_date": end_date.isoformat(),
                    },
                )

        with self.transaction():
            if trainer_id and self.trainer_repository.get_by_id(trainer_id) is None:
                raise NotFoundException(f"Trainer {trainer_id} not found", details={"trainer_id": trainer_id})
            if course_id and self.course_repository.get_by_id(course_id) is None:
                raise NotFoundException(f"Course {course_id} not found", details={"course_id": course_id})
            booking = self.repository.create(
                course_id=course_id,
                trainer_id=trainer_id,
                client_id=client_id,
                client_name=client_name,
                client_email=client_email,
                request_type=kind.value,
                requested_date=requested_date,
                end_date=end_date,
                status=BookingStatus.PENDING.value,
            )

        self.logger.info(f"Booking {booking.id} created ({kind.value}) for trainer {trainer_id}")
        self._best_effort(
            "notification",
            self.notifications.notify,
            trainer_id,
            "New Booking Request",
            f"You have a new {kind.value.lower()} booking request.",
            "INFO",
            "booking",
            booking.id,
        )
        return booking

    # Transitions

    def _lock_booking(self, booking_id: str) -> BookingRequest:
        booking = self.repository.get_for_update(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", details={"booking_id": booking_id})
        return booking

    def _move(self, booking: BookingRequest, target: BookingStatus) -> str:
        """Check the transition table and write the new status; returns the old one."""
        current = booking.status
        if not booking.can_transition_to(target):
            raise InvalidTransitionException(booking.id, current, target.value)
        self.repository.set_status(booking, target)
        prometheus_metrics.record_booking_transition(current, target.value)
        return current

    def _propagate_tentative(self, booking: BookingRequest) -> List[date]:
        """
        Hold every day of an INHOUSE request as TENTATIVE.

        Days already BOOKED are left alone. Each day is an idempotent
        insert-if-absent followed by a locked upgrade.
        """
        if not (booking.is_inhouse and booking.trainer_id and booking.requested_date):
            return []

        held = []
        tentative = TrainerAvailabilityStatus.TENTATIVE.value
        for day in booking.covered_dates():
            if self.availability_repository.ensure_record(booking.trainer_id, day, tentative):
                held.append(day)
                continue
            record = self.availability_repository.get_for_date(
                booking.trainer_id, day, for_update=True
            )
            if record is None or record.status == TrainerAvailabilityStatus.BOOKED.value:
                continue
            if record.status != tentative:
                self.availability_repository.set_status([record], tentative)
            held.append(day)
        return held

    def _after_transition(
        self,
        booking: BookingRequest,
        target: BookingStatus,
        actor_id: Optional[str],
        previous: str,
    ) -> None:
        title, message = _CLIENT_MESSAGES.get(target, (None, None))
        if title:
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
        self._best_effort(
            "activity_log",
            self.activity_log.log_activity,
            actor_id,
            "UPDATE",
            "BOOKING",
            booking.id,
            f"Booking status changed from {previous} to {target.value}",
            {"from": previous, "to": target.value},
        )

    @BaseService.measure_operation("approve_booking")
    def approve_booking(self, booking_id: str, actor_id: Optional[str] = None) -> BookingRequest:
        """PENDING/TENTATIVE -> APPROVED, holding the calendar for INHOUSE requests."""
        trainer_id = self.get_booking(booking_id).trainer_id
        with calendar_lock(trainer_id) as acquired:
            if not acquired:
                raise calendar_busy(trainer_id)
            with self.transaction():
                booking = self._lock_booking(booking_id)
                previous = self._move(booking, BookingStatus.APPROVED)
                held = self._propagate_tentative(booking)

        self.logger.info(
            f"Booking {booking_id} approved ({previous} -> APPROVED); "
            f"{len(held)} day(s) held TENTATIVE for trainer {booking.trainer_id}"
        )
        self._after_transition(booking, BookingStatus.APPROVED, actor_id, previous)
        return booking

    def _simple_transition(
        self, booking_id: str, target: BookingStatus, actor_id: Optional[str]
    ) -> BookingRequest:
        with self.transaction():
            booking = self._lock_booking(booking_id)
            previous = self._move(booking, target)
        self.logger.info(f"Booking {booking_id} moved {previous} -> {target.value}")
        self._after_transition(booking, target, actor_id, previous)
        return booking

    @BaseService.measure_operation("deny_booking")
    def deny_booking(self, booking_id: str, actor_id: Optional[str] = None) -> BookingRequest:
        return self._simple_transition(booking_id, BookingStatus.DENIED, actor_id)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, actor_id: Optional[str] = None) -> BookingRequest:
        """Cancel without releasing any calendar day the booking holds."""
        return self._simple_transition(booking_id, BookingStatus.CANCELLED, actor_id)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, actor_id: Optional[str] = None) -> BookingRequest:
        return self._simple_transition(booking_id, BookingStatus.COMPLETED, actor_id)

    @BaseService.measure_operation("transition_booking")
    def transition_booking(
        self, booking_id: str, status: object, actor_id: Optional[str] = None
    ) -> BookingRequest:
        """
        Generic status change checked against the transition table.

        APPROVED goes through approve_booking so the calendar is held;
        CONFIRMED needs availability ids and is only reachable through
        confirm_booking.
        """
        target = parse_booking_status(status)
        if target == BookingStatus.APPROVED:
            return self.approve_booking(booking_id, actor_id)
        if target == BookingStatus.CONFIRMED:
            raise ValidationException(
                "Confirming a booking requires availability ids; use the confirm operation",
                code="CONFIRM_REQUIRES_AVAILABILITY",
            )
        return self._simple_transition(booking_id, target, actor_id)

    # Confirmation

    @staticmethod
    def _validate_confirmation_input(
        availability_ids: Sequence[str], total_slots: int, registered_participants: int
    ) -> List[str]:
        ids = [str(i) for i in availability_ids if i]
        if not ids:
            raise ValidationException(
                "At least one availability id is required to confirm a booking",
                code="AVAILABILITY_IDS_REQUIRED",
            )
        if total_slots < 1:
            raise ValidationException("Total slots must be at least 1", code="INVALID_TOTAL_SLOTS")
        if registered_participants < 1:
            raise ValidationException(
                "Registered participants must be at least 1", code="INVALID_PARTICIPANTS"
            )
        if registered_participants > total_slots:
            raise ValidationException(
                "Registered participants cannot exceed total slots",
                code="PARTICIPANTS_EXCEED_SLOTS",
                details={
                    "total_slots": total_slots,
                    "registered_participants": registered_participants,
                },
            )
        # Keep caller order, drop repeats
        return list(dict.fromkeys(ids))

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self,
        booking_id: str,
        availability_ids: Sequence[str],
        total_slots: int,
        registered_participants: int,
        event_date: Optional[date] = None,
        actor_id: Optional[str] = None,
    ) -> Tuple[BookingRequest, Event]:
        """
        APPROVED -> CONFIRMED, consuming the selected calendar days.

        All of these happen in one transaction with the booking and the
        availability rows locked:
        1. every id exists, belongs to the booking's trainer and is
           AVAILABLE or TENTATIVE
        2. no event exists yet for (course, earliest date)
        3. rows become BOOKED, the booking CONFIRMED, and the Event plus
           its pre-approved registration are created

        Any failure leaves the booking, the rows and the events untouched.
        """
        ids = self._validate_confirmation_input(
            availability_ids, total_slots, registered_participants
        )
        trainer_id = self.get_booking(booking_id).trainer_id

        with calendar_lock(trainer_id) as acquired:
            if not acquired:
                raise calendar_busy(trainer_id)
            with self.transaction():
                booking = self._lock_booking(booking_id)
                if booking.status != BookingStatus.APPROVED.value:
                    raise InvalidTransitionException(
                        booking.id, booking.status, BookingStatus.CONFIRMED.value
                    )
                if not booking.course_id or not booking.trainer_id:
                    raise ValidationException(
                        "Booking must have a course and a trainer before it can be confirmed",
                        code="BOOKING_INCOMPLETE",
                        details={"booking_id": booking.id},
                    )

                records = self.availability_repository.get_by_ids_for_update(ids)
                found = {record.id for record in records}
                missing = [i for i in ids if i not in found]
                if missing:
                    raise NotFoundException(
                        f"Availability not found: {', '.join(sorted(missing))}",
                        details={"availability_ids": sorted(missing)},
                    )
                foreign = [r.id for r in records if r.trainer_id != booking.trainer_id]
                if foreign:
                    raise AvailabilityUnavailableException(
                        "Availability does not belong to the booking's trainer", foreign
                    )
                taken = [
                    r.id
                    for r in records
                    if TrainerAvailabilityStatus.normalize(r.status) not in CONFIRMABLE_STATUSES
                ]
                if taken:
                    raise AvailabilityUnavailableException(
                        "Dates already booked or not available", taken
                    )

                dates = sorted(record.date for record in records)
                first_date, last_date = dates[0], dates[-1]
                if (
                    event_date is not None
                    and booking.request_type == BookingRequestType.PUBLIC.value
                    and event_date != first_date
                ):
                    raise ValidationException(
                        "Event date must match the earliest selected availability date",
                        code="EVENT_DATE_MISMATCH",
                        details={
                            "event_date": event_date.isoformat(),
                            "earliest_date": first_date.isoformat(),
                        },
                    )

                event = self.event_service.materialize_event(
                    course_id=booking.course_id,
                    trainer_id=booking.trainer_id,
                    event_date=first_date,
                    start_date=first_date,
                    end_date=last_date if last_date != first_date else None,
                    max_packs=total_slots,
                    created_by=actor_id,
                    initial_registration={
                        "client_id": booking.client_id,
                        "client_name": booking.client_name,
                        "number_of_participants": registered_participants,
                    },
                )
                self.availability_repository.set_status(
                    records, TrainerAvailabilityStatus.BOOKED.value
                )
                booking.trainer_availability_id = ids[0]
                self._move(booking, BookingStatus.CONFIRMED)

        self.logger.info(
            f"Booking {booking_id} confirmed: event={event.id} trainer={booking.trainer_id} "
            f"dates={first_date}..{last_date} slots={total_slots} "
            f"registered={registered_participants}"
        )
        self._best_effort(
            "notification",
            self.notifications.notify,
            booking.client_id,
            "Booking Confirmed",
            f"Your booking has been confirmed for {first_date.isoformat()}.",
            "SUCCESS",
            "event",
            event.id,
        )
        self._best_effort(
            "activity_log",
            self.activity_log.log_activity,
            actor_id,
            "CONFIRM",
            "BOOKING",
            booking.id,
            f"Booking confirmed and event {event.id} created",
            {
                "event_id": event.id,
                "availability_ids": ids,
                "total_slots": total_slots,
                "registered_participants": registered_participants,
            },
        )
        return booking, event
