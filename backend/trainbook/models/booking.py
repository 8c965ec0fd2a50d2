# backend/trainbook/models/booking.py
"""
Booking request model for the trainer scheduling platform.

A booking request asks for a trainer on a single day or an inclusive
day range. Its status drives mutations of the trainer calendar; the
allowed moves are listed in BOOKING_TRANSITIONS and checked before any
status write.
"""

from datetime import date
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from ..utils.dates import iter_days

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking request lifecycle statuses."""

    PENDING = "PENDING"  # Initial
    APPROVED = "APPROVED"  # Trainer/admin accepted, calendar held TENTATIVE
    DENIED = "DENIED"
    TENTATIVE = "TENTATIVE"  # Rescheduled by an admin, awaiting re-approval
    CONFIRMED = "CONFIRMED"  # Event materialized
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class BookingRequestType(str, Enum):
    """Who the booking is for."""

    PUBLIC = "PUBLIC"
    INHOUSE = "INHOUSE"


BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.APPROVED, BookingStatus.DENIED, BookingStatus.CANCELLED}
    ),
    BookingStatus.APPROVED: frozenset(
        {BookingStatus.TENTATIVE, BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    ),
    BookingStatus.TENTATIVE: frozenset({BookingStatus.APPROVED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.DENIED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)

# Statuses that occupy a trainer's day for conflict detection
OCCUPYING_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.APPROVED, BookingStatus.CONFIRMED, BookingStatus.TENTATIVE}
)


def can_transition(current: str, target: str) -> bool:
    """Return True when the transition table allows current -> target."""
    try:
        return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]
    except (KeyError, ValueError):
        return False


class BookingRequest(Base):
    """
    Request to reserve a trainer for a course on given date(s).

    Retained for audit once terminal; only an admin hard delete removes it.
    """

    __tablename__ = "booking_requests"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    course_id = Column(String(26), ForeignKey("courses.id"), nullable=True)
    trainer_id = Column(String(26), ForeignKey("trainers.id"), nullable=True, index=True)
    client_id = Column(String(26), nullable=True)
    client_name = Column(String(255), nullable=True)
    client_email = Column(String(255), nullable=True)

    request_type = Column(String(10), nullable=False, default=BookingRequestType.PUBLIC.value)
    requested_date = Column(Date, nullable=True, index=True)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    # First consumed availability record, kept for traceability
    trainer_availability_id = Column(
        String(26), ForeignKey("trainer_availability.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    course = relationship("Course")
    trainer = relationship("Trainer")
    trainer_availability = relationship("TrainerAvailability")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'DENIED', 'TENTATIVE', "
            "'CONFIRMED', 'CANCELLED', 'COMPLETED')",
            name="ck_booking_requests_status",
        ),
        CheckConstraint(
            "request_type IN ('PUBLIC', 'INHOUSE')",
            name="ck_booking_requests_request_type",
        ),
        CheckConstraint(
            "end_date IS NULL OR requested_date IS NULL OR end_date >= requested_date",
            name="ck_booking_requests_date_order",
        ),
        Index("ix_booking_requests_trainer_date_status", "trainer_id", "requested_date", "status"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if self.status is None:
            self.status = BookingStatus.PENDING.value
        if self.request_type is None:
            self.request_type = BookingRequestType.PUBLIC.value

    def __repr__(self) -> str:
        return f"<BookingRequest {self.id} {self.requested_date} {self.status}>"

    def can_transition_to(self, target: BookingStatus) -> bool:
        return can_transition(self.status, target)

    @property
    def is_terminal(self) -> bool:
        return BookingStatus(self.status) in TERMINAL_STATUSES

    @property
    def is_inhouse(self) -> bool:
        return self.request_type == BookingRequestType.INHOUSE.value

    def covered_dates(self) -> List[date]:
        """Every day in the inclusive range [requested_date, end_date or requested_date]."""
        if self.requested_date is None:
            return []
        return list(iter_days(self.requested_date, self.end_date))

    def to_dict(self) -> Dict[str, Optional[Any]]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "course_id": self.course_id,
            "trainer_id": self.trainer_id,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "request_type": self.request_type,
            "requested_date": self.requested_date.isoformat() if self.requested_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status,
            "trainer_availability_id": self.trainer_availability_id,
        }
