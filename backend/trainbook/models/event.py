# backend/trainbook/models/event.py
"""
Event and registration models.

An Event is the confirmed, capacity-bounded instance of a course on one or
more consecutive days. Its dates never change after creation; a date edit
means cancelling and creating a new event.
"""

from enum import Enum
import logging
from typing import Any, Dict, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class EventStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RegistrationStatus(str, Enum):
    REGISTERED = "REGISTERED"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


# Registrations that consume event capacity
CAPACITY_STATUSES = (RegistrationStatus.REGISTERED.value, RegistrationStatus.APPROVED.value)


class Event(Base):
    """Materialized course run with a hard capacity ceiling (max_packs)."""

    __tablename__ = "events"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    course_id = Column(String(26), ForeignKey("courses.id"), nullable=False)
    trainer_id = Column(String(26), ForeignKey("trainers.id"), nullable=True, index=True)
    created_by = Column(String(26), nullable=True)

    event_date = Column(Date, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    # None means unbounded
    max_packs = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=EventStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    course = relationship("Course")
    registrations = relationship(
        "EventRegistration", back_populates="event", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("course_id", "event_date", name="uq_events_course_event_date"),
        CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')", name="ck_events_status"
        ),
        CheckConstraint("max_packs IS NULL OR max_packs >= 1", name="ck_events_max_packs"),
    )

    def __repr__(self) -> str:
        return f"<Event {self.id} course={self.course_id} {self.event_date} {self.status}>"

    @property
    def last_date(self):
        return self.end_date or self.event_date

    def to_dict(self) -> Dict[str, Optional[Any]]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "trainer_id": self.trainer_id,
            "event_date": self.event_date.isoformat() if self.event_date else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "max_packs": self.max_packs,
            "status": self.status,
        }


class EventRegistration(Base):
    """A client's (or organization's) claim on event seats."""

    __tablename__ = "event_registrations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    event_id = Column(
        String(26), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id = Column(String(26), nullable=True)
    client_name = Column(String(255), nullable=True)
    number_of_participants = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=RegistrationStatus.REGISTERED.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    event = relationship("Event", back_populates="registrations")

    __table_args__ = (
        CheckConstraint(
            "status IN ('REGISTERED', 'APPROVED', 'CANCELLED')",
            name="ck_event_registrations_status",
        ),
        CheckConstraint(
            "number_of_participants >= 1", name="ck_event_registrations_participants"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<EventRegistration {self.id} event={self.event_id} "
            f"x{self.number_of_participants} {self.status}>"
        )
