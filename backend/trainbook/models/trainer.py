# backend/trainbook/models/trainer.py
"""
Trainer and course models.

Only the columns the scheduling core reads are mapped here; profile data,
qualifications and the course catalog detail live in the CRUD layer.
"""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Trainer(Base):
    """A trainer whose calendar can be booked."""

    __tablename__ = "trainers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    availability = relationship(
        "TrainerAvailability", back_populates="trainer", cascade="all, delete-orphan"
    )
    blocked_dates = relationship(
        "TrainerBlockedDate", back_populates="trainer", cascade="all, delete-orphan"
    )
    blocked_days = relationship(
        "TrainerBlockedDay", back_populates="trainer", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Trainer {self.id} {self.full_name}>"


class Course(Base):
    """A course that bookings and events are created for."""

    __tablename__ = "courses"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(255), nullable=False)
    trainer_id = Column(String(26), ForeignKey("trainers.id"), nullable=True)
    created_by = Column(String(26), nullable=True)
    duration_hours = Column(Integer, nullable=True)
    duration_unit = Column(String(20), nullable=True, default="hours")

    # Fixed-date courses materialize straight into an event
    fixed_date = Column(Date, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    trainer = relationship("Trainer")

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title}>"
