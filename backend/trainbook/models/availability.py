# backend/trainbook/models/availability.py
"""
Trainer calendar models.

Classes:
    TrainerAvailability: One whole-day calendar entry per trainer and date
    TrainerBlockedDate: Authoritative "never book this day" override
    TrainerBlockedDay: Standing weekly blackout rule (0 = Sunday .. 6 = Saturday)
"""

from enum import Enum
import logging

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class TrainerAvailabilityStatus(str, Enum):
    """Calendar status of a single trainer day."""

    AVAILABLE = "AVAILABLE"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    TENTATIVE = "TENTATIVE"  # Held by an approved booking awaiting confirmation
    BOOKED = "BOOKED"  # Consumed by a confirmed booking

    @classmethod
    def normalize(cls, value: object) -> "TrainerAvailabilityStatus | None":
        """Case-insensitive lookup; returns None for unknown values."""
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


# Statuses a confirmation may consume
CONFIRMABLE_STATUSES = frozenset(
    {TrainerAvailabilityStatus.AVAILABLE, TrainerAvailabilityStatus.TENTATIVE}
)


class TrainerAvailability(Base):
    """Full-day availability record; at most one per (trainer, date)."""

    __tablename__ = "trainer_availability"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    trainer_id = Column(
        String(26), ForeignKey("trainers.id", ondelete="CASCADE"), nullable=False
    )
    date = Column(Date, nullable=False)
    status = Column(
        String(20), nullable=False, default=TrainerAvailabilityStatus.AVAILABLE.value
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    trainer = relationship("Trainer", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("trainer_id", "date", name="uq_trainer_availability_trainer_date"),
        Index("ix_trainer_availability_trainer_date", "trainer_id", "date"),
        CheckConstraint(
            "status IN ('AVAILABLE', 'NOT_AVAILABLE', 'TENTATIVE', 'BOOKED')",
            name="ck_trainer_availability_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<TrainerAvailability {self.trainer_id} {self.date} {self.status}>"


class TrainerBlockedDate(Base):
    """Manual per-date block; always wins over AVAILABLE/TENTATIVE."""

    __tablename__ = "trainer_blocked_dates"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    trainer_id = Column(
        String(26), ForeignKey("trainers.id", ondelete="CASCADE"), nullable=False
    )
    blocked_date = Column(Date, nullable=False, index=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    trainer = relationship("Trainer", back_populates="blocked_dates")

    __table_args__ = (
        UniqueConstraint("trainer_id", "blocked_date", name="uq_trainer_blocked_date"),
    )

    def __repr__(self) -> str:
        return f"<TrainerBlockedDate {self.blocked_date} - {self.reason or 'No reason'}>"


class TrainerBlockedDay(Base):
    """Recurring weekly block, replaced wholesale on update."""

    __tablename__ = "trainer_blocked_days"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    trainer_id = Column(
        String(26), ForeignKey("trainers.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week = Column(Integer, nullable=False)

    trainer = relationship("Trainer", back_populates="blocked_days")

    __table_args__ = (
        UniqueConstraint("trainer_id", "day_of_week", name="uq_trainer_blocked_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_trainer_blocked_day_range"),
    )

    def __repr__(self) -> str:
        return f"<TrainerBlockedDay {self.trainer_id} dow={self.day_of_week}>"
