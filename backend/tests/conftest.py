# backend/tests/conftest.py
"""
Pytest configuration for the trainer scheduling backend.

Every test gets its own in-memory SQLite database with the full schema,
so tests never share rows. The Redis calendar mutex is switched off
here; tests that exercise it turn it back on and patch the client.
"""

import os

# CRITICAL: Set testing mode BEFORE any trainbook imports!
os.environ["is_testing"] = "true"
os.environ["calendar_lock_enabled"] = "false"

from datetime import date
from typing import Callable, Iterator, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trainbook.api.dependencies.database import get_db
from trainbook.core.config import settings
from trainbook.database import Base
import trainbook.models  # noqa: F401
from trainbook.models.availability import TrainerAvailability, TrainerAvailabilityStatus
from trainbook.models.booking import BookingRequest, BookingRequestType, BookingStatus
from trainbook.models.trainer import Course, Trainer

settings.is_testing = True
settings.calendar_lock_enabled = False


@pytest.fixture
def engine() -> Iterator[Engine]:
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Iterator[Session]:
    """Create a new database session for each test."""
    TestSessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db: Session) -> Iterator[TestClient]:
    """TestClient whose requests share the test session."""
    from trainbook.main import app

    def override_get_db() -> Iterator[Session]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ============================================================================
# Row factories
# ============================================================================


@pytest.fixture
def trainer_factory(db: Session) -> Callable[..., Trainer]:
    def _make(full_name: str = "Sarah Chen", email: Optional[str] = None) -> Trainer:
        trainer = Trainer(full_name=full_name, email=email)
        db.add(trainer)
        db.commit()
        return trainer

    return _make


@pytest.fixture
def course_factory(db: Session) -> Callable[..., Course]:
    def _make(
        trainer: Optional[Trainer] = None,
        title: str = "First Aid Level 1",
        fixed_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Course:
        course = Course(
            title=title,
            trainer_id=trainer.id if trainer else None,
            fixed_date=fixed_date,
            start_date=start_date,
            end_date=end_date,
        )
        db.add(course)
        db.commit()
        return course

    return _make


@pytest.fixture
def booking_factory(db: Session) -> Callable[..., BookingRequest]:
    def _make(
        trainer: Optional[Trainer],
        course: Optional[Course],
        requested_date: Optional[date],
        end_date: Optional[date] = None,
        status: BookingStatus = BookingStatus.PENDING,
        request_type: BookingRequestType = BookingRequestType.INHOUSE,
        client_id: Optional[str] = "client-01",
    ) -> BookingRequest:
        booking = BookingRequest(
            trainer_id=trainer.id if trainer else None,
            course_id=course.id if course else None,
            requested_date=requested_date,
            end_date=end_date,
            status=status.value,
            request_type=request_type.value,
            client_id=client_id,
            client_name="Acme Corp",
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def availability_factory(db: Session) -> Callable[..., TrainerAvailability]:
    def _make(
        trainer: Trainer,
        day: date,
        status: TrainerAvailabilityStatus = TrainerAvailabilityStatus.AVAILABLE,
    ) -> TrainerAvailability:
        record = TrainerAvailability(trainer_id=trainer.id, date=day, status=status.value)
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def trainer(trainer_factory) -> Trainer:
    return trainer_factory()


@pytest.fixture
def course(course_factory, trainer) -> Course:
    return course_factory(trainer)
