# backend/trainbook/services/event_service.py
"""
Event Service for the trainer scheduling platform.

Materializes events (from a confirmed booking or straight from a
fixed-date course) and guards event capacity:

    sum(number_of_participants of REGISTERED + APPROVED registrations) <= max_packs

Every capacity check locks the event row before summing, so two
registrations racing for the last seats cannot both pass. A null
max_packs means the event is unbounded.
"""

from datetime import date
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityExceededException,
    DuplicateEventException,
    NotFoundException,
    RepositoryException,
    StateConflictException,
    ValidationException,
)
from ..models.event import Event, EventRegistration, EventStatus, RegistrationStatus
from ..models.trainer import Course
from ..repositories import RepositoryFactory
from ..repositories.event_repository import EventRepository
from .base import BaseService
from .notification_service import ActivityLogService, NotificationService

logger = logging.getLogger(__name__)

EVENT_TRANSITIONS = {
    EventStatus.ACTIVE: {EventStatus.COMPLETED, EventStatus.CANCELLED},
    EventStatus.COMPLETED: set(),
    EventStatus.CANCELLED: set(),
}


class EventService(BaseService):
    """Service for events and their registrations."""

    def __init__(
        self,
        db: Session,
        repository: Optional[EventRepository] = None,
        notifications: Optional[NotificationService] = None,
        activity_log: Optional[ActivityLogService] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_event_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.course_repository = RepositoryFactory.create_base_repository(db, Course)
        self.notifications = notifications or NotificationService(db)
        self.activity_log = activity_log or ActivityLogService(db)

    # Materialization

    def materialize_event(
        self,
        *,
        course_id: str,
        trainer_id: Optional[str],
        event_date: date,
        start_date: date,
        end_date: Optional[date],
        max_packs: Optional[int],
        created_by: Optional[str] = None,
        initial_registration: Optional[Dict[str, object]] = None,
    ) -> Event:
        """
        Create the Event row (and optionally its first APPROVED registration).

        Runs inside the caller's transaction and never commits. Raises
        DuplicateEventException when (course_id, event_date) already has an
        event, whether found up front or reported by the unique constraint.
        """
        existing = self.repository.find_by_course_and_date(course_id, event_date)
        if existing is not None:
            raise DuplicateEventException(course_id, event_date.isoformat(), existing.id)

        try:
            event = self.repository.create(
                course_id=course_id,
                trainer_id=trainer_id,
                created_by=created_by,
                event_date=event_date,
                start_date=start_date,
                end_date=end_date,
                max_packs=max_packs,
                status=EventStatus.ACTIVE.value,
            )
        except RepositoryException as exc:
            # Lost the race to a concurrent materialization
            raise DuplicateEventException(course_id, event_date.isoformat()) from exc

        if initial_registration:
            participants = int(initial_registration.get("number_of_participants") or 1)
            self._check_capacity(event, participants)
            self.repository.create_registration(
                event_id=event.id,
                client_id=initial_registration.get("client_id"),
                client_name=initial_registration.get("client_name"),
                number_of_participants=participants,
                status=RegistrationStatus.APPROVED.value,
            )
        return event

    @BaseService.measure_operation("create_event_from_course")
    def create_event_from_course(
        self, course_id: str, actor_id: Optional[str] = None, max_packs: Optional[int] = None
    ) -> Event:
        if max_packs is not None and max_packs < 1:
            raise ValidationException("max_packs must be at least 1", code="INVALID_CAPACITY")

        with self.transaction():
            course = self.course_repository.get_by_id(course_id)
            if course is None:
                raise NotFoundException(f"Course {course_id} not found", details={"course_id": course_id})
            if course.fixed_date is None:
                raise ValidationException(
                    "Course does not have a fixed date",
                    code="FIXED_DATE_REQUIRED",
                    details={"course_id": course_id},
                )
            event = self.materialize_event(
                course_id=course.id,
                trainer_id=course.trainer_id,
                event_date=course.fixed_date,
                start_date=course.start_date or course.fixed_date,
                end_date=course.end_date,
                max_packs=max_packs,
                created_by=course.created_by or actor_id,
            )

        self.logger.info(f"Event {event.id} created from course {course_id} on {event.event_date}")
        self._best_effort(
            "activity_log",
            self.activity_log.log_activity,
            actor_id,
            "CREATE",
            "EVENT",
            event.id,
            f"Created event from course {course.title}",
            {"course_id": course_id, "event_date": event.event_date.isoformat()},
        )
        return event

    # Capacity

    def _check_capacity(
        self, event: Event, requested: int, exclude_registration_id: Optional[str] = None
    ) -> None:
        if event.max_packs is None:
            return
        taken = self.repository.sum_registered_participants(event.id, exclude_registration_id)
        available = max(event.max_packs - taken, 0)
        if requested > available:
            raise CapacityExceededException(requested, available)

    def _lock_active_event(self, event_id: str) -> Event:
        event = self.repository.get_by_id(event_id, for_update=True)
        if event is None:
            raise NotFoundException(f"Event {event_id} not found", details={"event_id": event_id})
        if event.status != EventStatus.ACTIVE.value:
            raise StateConflictException(
                f"Event {event_id} is {event.status} and no longer accepts registrations",
                details={"event_id": event_id, "status": event.status},
            )
        return event

    @staticmethod
    def _require_participants(number_of_participants: int) -> None:
        if number_of_participants < 1:
            raise ValidationException(
                "Number of participants must be at least 1", code="INVALID_PARTICIPANTS"
            )

    def get_event(self, event_id: str) -> Event:
        event = self.repository.get_by_id(event_id)
        if event is None:
            raise NotFoundException(f"Event {event_id} not found", details={"event_id": event_id})
        return event

    def get_remaining_capacity(self, event_id: str) -> Optional[int]:
        """Seats left, or None for an unbounded event."""
        event = self.get_event(event_id)
        if event.max_packs is None:
            return None
        return max(event.max_packs - self.repository.sum_registered_participants(event.id), 0)

    # Registrations

    @BaseService.measure_operation("register_for_event")
    def register_for_event(
        self,
        event_id: str,
        client_id: Optional[str] = None,
        client_name: Optional[str] = None,
        number_of_participants: int = 1,
    ) -> EventRegistration:
        self._require_participants(number_of_participants)
        with self.transaction():
            event = self._lock_active_event(event_id)
            self._check_capacity(event, number_of_participants)
            registration = self.repository.create_registration(
                event_id=event.id,
                client_id=client_id,
                client_name=client_name,
                number_of_participants=number_of_participants,
                status=RegistrationStatus.REGISTERED.value,
            )

        self.logger.info(f"Registration {registration.id} created for event {event_id}")
        self._best_effort(
            "notification",
            self.notifications.notify,
            event.trainer_id,
            "New Event Registration",
            f"A new registration has been made for the event on {event.event_date.isoformat()}.",
            "INFO",
            "event",
            event.id,
        )
        return registration

    @BaseService.measure_operation("add_participants")
    def add_participants(
        self, event_id: str, client_name: Optional[str], number_of_participants: int
    ) -> EventRegistration:
        """Extra seats from the same organization, approved immediately."""
        self._require_participants(number_of_participants)
        with self.transaction():
            event = self._lock_active_event(event_id)
            self._check_capacity(event, number_of_participants)
            registration = self.repository.create_registration(
                event_id=event.id,
                client_name=client_name,
                number_of_participants=number_of_participants,
                status=RegistrationStatus.APPROVED.value,
            )
        self.logger.info(
            f"Added {number_of_participants} participant(s) to event {event_id} "
            f"(registration {registration.id})"
        )
        return registration

    def _get_registration(self, registration_id: str, for_update: bool = False) -> EventRegistration:
        registration = self.repository.get_registration(registration_id, for_update=for_update)
        if registration is None:
            raise NotFoundException(
                f"Registration {registration_id} not found",
                details={"registration_id": registration_id},
            )
        return registration

    @BaseService.measure_operation("approve_registration")
    def approve_registration(
        self, registration_id: str, number_of_participants: Optional[int] = None
    ) -> EventRegistration:
        """
        Approve a registration, optionally resizing it.

        Locks the event, then the registration, and checks the registration's
        status on the locked row. The registration's own seats are excluded
        from the capacity sum so re-approving never double counts.
        """
        if number_of_participants is not None:
            self._require_participants(number_of_participants)

        with self.transaction():
            event_id = self._get_registration(registration_id).event_id
            event = self._lock_active_event(event_id)
            registration = self._get_registration(registration_id, for_update=True)
            if registration.status == RegistrationStatus.CANCELLED.value:
                raise StateConflictException(
                    f"Registration {registration_id} is cancelled",
                    details={"registration_id": registration_id},
                )
            seats = number_of_participants or registration.number_of_participants
            self._check_capacity(event, seats, exclude_registration_id=registration.id)
            registration.number_of_participants = seats
            registration.status = RegistrationStatus.APPROVED.value
            self.db.flush()

        self.logger.info(f"Registration {registration_id} approved with {seats} participant(s)")
        self._best_effort(
            "notification",
            self.notifications.notify,
            registration.client_id,
            "Registration Approved",
            f"Your registration for the event on {event.event_date.isoformat()} has been approved.",
            "SUCCESS",
            "event",
            event.id,
        )
        return registration

    @BaseService.measure_operation("cancel_registration")
    def cancel_registration(self, registration_id: str) -> EventRegistration:
        with self.transaction():
            registration = self._get_registration(registration_id, for_update=True)
            registration.status = RegistrationStatus.CANCELLED.value
            self.db.flush()
        self.logger.info(f"Registration {registration_id} cancelled")
        return registration

    # Event status

    @BaseService.measure_operation("update_event_status")
    def update_event_status(
        self, event_id: str, status: object, actor_id: Optional[str] = None
    ) -> Event:
        """
        ACTIVE -> COMPLETED or CANCELLED.

        Cancelling releases the event's BOOKED calendar days back to AVAILABLE.
        """
        try:
            target = EventStatus(str(status).strip().upper())
        except ValueError:
            raise ValidationException(f"Invalid event status: {status}", code="INVALID_STATUS")

        released = []
        with self.transaction():
            event = self.repository.get_by_id(event_id, for_update=True)
            if event is None:
                raise NotFoundException(f"Event {event_id} not found", details={"event_id": event_id})
            current = EventStatus(event.status)
            if target not in EVENT_TRANSITIONS[current]:
                raise StateConflictException(
                    f"Event {event_id} cannot move from {current.value} to {target.value}",
                    code="INVALID_TRANSITION",
                    details={"event_id": event_id, "from": current.value, "to": target.value},
                )
            event.status = target.value
            self.db.flush()
            if target == EventStatus.CANCELLED and event.trainer_id:
                released = self.availability_repository.release_booked(
                    event.trainer_id, event.event_date, event.last_date
                )

        self.logger.info(
            f"Event {event_id} moved {current.value} -> {target.value}; "
            f"released {len(released)} calendar day(s)"
        )
        self._best_effort(
            "activity_log",
            self.activity_log.log_activity,
            actor_id,
            "UPDATE",
            "EVENT",
            event_id,
            f"Event status changed to {target.value}",
            {"released_dates": [r.date.isoformat() for r in released]},
        )
        return event

    @BaseService.measure_operation("auto_complete_past_events")
    def auto_complete_past_events(self, today: date) -> List[Event]:
        """ACTIVE events whose last day is before ``today`` become COMPLETED."""
        with self.transaction():
            events = self.repository.get_active_ended_before(today)
            for event in events:
                event.status = EventStatus.COMPLETED.value
            self.db.flush()
        self.logger.info(f"Auto-completed {len(events)} past event(s) before {today}")
        return events
