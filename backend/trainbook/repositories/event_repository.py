# backend/trainbook/repositories/event_repository.py
"""
Event Repository for the trainer scheduling platform.

Events and their registrations. Capacity checks lock the event row
first and then sum the registrations that consume seats.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.event import CAPACITY_STATUSES, Event, EventRegistration, EventStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class EventRepository(BaseRepository[Event]):
    """Repository for events and event registrations."""

    def __init__(self, db: Session):
        super().__init__(db, Event)

    def find_by_course_and_date(self, course_id: str, event_date: date) -> Optional[Event]:
        try:
            return (
                self.db.query(Event)
                .filter(Event.course_id == course_id, Event.event_date == event_date)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding event for {course_id} on {event_date}: {e}")
            raise RepositoryException(f"Failed to find event: {str(e)}")

    def get_active_ended_before(self, today: date) -> List[Event]:
        last_day = func.coalesce(Event.end_date, Event.event_date)
        query = (
            self.db.query(Event)
            .filter(Event.status == EventStatus.ACTIVE.value, last_day < today)
            .order_by(Event.event_date)
        )
        return self._execute_query(query)

    # Registrations

    def get_registration(
        self, registration_id: str, for_update: bool = False
    ) -> Optional[EventRegistration]:
        try:
            query = self.db.query(EventRegistration).filter(EventRegistration.id == registration_id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting registration {registration_id}: {e}")
            raise RepositoryException(f"Failed to get registration: {str(e)}")

    def create_registration(self, **kwargs) -> EventRegistration:
        try:
            registration = EventRegistration(**kwargs)
            self.db.add(registration)
            self.db.flush()
            return registration
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating registration: {e}")
            raise RepositoryException(f"Failed to create registration: {str(e)}")

    def get_registrations(self, event_id: str) -> List[EventRegistration]:
        query = (
            self.db.query(EventRegistration)
            .filter(EventRegistration.event_id == event_id)
            .order_by(EventRegistration.created_at, EventRegistration.id)
        )
        return self._execute_query(query)

    def sum_registered_participants(
        self, event_id: str, exclude_registration_id: Optional[str] = None
    ) -> int:
        """Seats held by REGISTERED and APPROVED registrations."""
        query = self.db.query(
            func.coalesce(func.sum(EventRegistration.number_of_participants), 0)
        ).filter(
            EventRegistration.event_id == event_id,
            EventRegistration.status.in_(CAPACITY_STATUSES),
        )
        if exclude_registration_id:
            query = query.filter(EventRegistration.id != exclude_registration_id)
        return int(self._execute_scalar(query) or 0)
