"""AvailabilityService against a real (SQLite) session."""

from datetime import date

import pytest

from trainbook.core.exceptions import (
    NotFoundException,
    StateConflictException,
    ValidationException,
)
from trainbook.models.availability import (
    TrainerAvailability,
    TrainerAvailabilityStatus,
    TrainerBlockedDate,
)
from trainbook.models.booking import BookingStatus
from trainbook.models.notification import ActivityLog
from trainbook.services.availability_service import AvailabilityService


@pytest.fixture
def service(db):
    return AvailabilityService(db)


class TestSetAvailability:
    def test_repeated_upserts_keep_one_record(self, db, service, trainer):
        day = date(2025, 3, 10)
        service.set_availability(trainer.id, day, "AVAILABLE")
        service.set_availability(trainer.id, day, "not_available")
        record = service.set_availability(trainer.id, day, "TENTATIVE")

        rows = db.query(TrainerAvailability).filter_by(trainer_id=trainer.id, date=day).all()
        assert len(rows) == 1
        assert rows[0].id == record.id
        assert rows[0].status == TrainerAvailabilityStatus.TENTATIVE.value

    def test_overwrites_booked_when_set_explicitly(self, service, trainer, availability_factory):
        day = date(2025, 3, 10)
        availability_factory(trainer, day, TrainerAvailabilityStatus.BOOKED)
        record = service.set_availability(trainer.id, day, "AVAILABLE")
        assert record.status == "AVAILABLE"

    def test_invalid_status(self, service, trainer):
        with pytest.raises(ValidationException) as exc:
            service.set_availability(trainer.id, date(2025, 3, 10), "MAYBE")
        assert exc.value.code == "INVALID_STATUS"

    def test_unknown_trainer(self, service):
        with pytest.raises(NotFoundException):
            service.set_availability("01UNKNOWNTRAINER0000000000", date(2025, 3, 10), "AVAILABLE")

    def test_bulk_set_dedupes_dates_and_logs_activity(self, db, service, trainer):
        days = [date(2025, 3, 12), date(2025, 3, 10), date(2025, 3, 12)]
        records = service.bulk_set_availability(trainer.id, days, "AVAILABLE", actor_id="admin-1")

        assert [r.date for r in records] == [date(2025, 3, 10), date(2025, 3, 12)]
        entry = db.query(ActivityLog).filter_by(action_type="AVAILABILITY_BULK_SET").one()
        assert entry.user_id == "admin-1"
        assert entry.details["status"] == "AVAILABLE"

    def test_bulk_set_requires_dates(self, service, trainer):
        with pytest.raises(ValidationException):
            service.bulk_set_availability(trainer.id, [], "AVAILABLE")

    def test_get_availability_is_ordered_and_bounded(self, service, trainer, availability_factory):
        for day in (date(2025, 3, 12), date(2025, 3, 10), date(2025, 3, 20)):
            availability_factory(trainer, day)
        records = service.get_availability(trainer.id, date(2025, 3, 10), date(2025, 3, 15))
        assert [r.date for r in records] == [date(2025, 3, 10), date(2025, 3, 12)]

    def test_get_availability_rejects_reversed_range(self, service, trainer):
        with pytest.raises(ValidationException):
            service.get_availability(trainer.id, date(2025, 3, 12), date(2025, 3, 10))


class TestDeleteAndRelease:
    def test_delete_available_record(self, db, service, trainer, availability_factory):
        record = availability_factory(trainer, date(2025, 3, 10))
        service.delete_availability(record.id)
        assert db.get(TrainerAvailability, record.id) is None

    def test_delete_missing_record(self, service):
        with pytest.raises(NotFoundException):
            service.delete_availability("01MISSING00000000000000000")

    def test_delete_booked_record_is_refused(self, db, service, trainer, availability_factory):
        record = availability_factory(trainer, date(2025, 3, 10), TrainerAvailabilityStatus.BOOKED)
        with pytest.raises(StateConflictException):
            service.delete_availability(record.id)
        assert db.get(TrainerAvailability, record.id) is not None

    def test_delete_record_held_by_confirmed_booking(
        self, db, service, trainer, course, availability_factory, booking_factory
    ):
        record = availability_factory(trainer, date(2025, 3, 10))
        booking = booking_factory(trainer, course, date(2025, 3, 10), status=BookingStatus.CONFIRMED)
        booking.trainer_availability_id = record.id
        db.commit()

        with pytest.raises(StateConflictException):
            service.delete_availability(record.id)

    def test_release_only_touches_booked_days(self, service, trainer, availability_factory):
        booked = availability_factory(trainer, date(2025, 3, 10), TrainerAvailabilityStatus.BOOKED)
        tentative = availability_factory(
            trainer, date(2025, 3, 11), TrainerAvailabilityStatus.TENTATIVE
        )
        outside = availability_factory(trainer, date(2025, 3, 20), TrainerAvailabilityStatus.BOOKED)

        released = service.release_dates(trainer.id, date(2025, 3, 10), date(2025, 3, 12))

        assert [r.id for r in released] == [booked.id]
        assert booked.status == "AVAILABLE"
        assert tentative.status == "TENTATIVE"
        assert outside.status == "BOOKED"


class TestBookingCounts:
    def test_counts_per_day(self, service, trainer, course, availability_factory, booking_factory):
        availability_factory(trainer, date(2025, 3, 10))
        availability_factory(trainer, date(2025, 3, 11))
        booking_factory(trainer, course, date(2025, 3, 10), end_date=date(2025, 3, 11))
        booking_factory(trainer, course, date(2025, 3, 11), status=BookingStatus.APPROVED)
        booking_factory(trainer, course, date(2025, 3, 11), status=BookingStatus.DENIED)

        rows = service.get_availability_with_booking_counts(
            trainer.id, date(2025, 3, 10), date(2025, 3, 11), course.id
        )

        by_date = {row["date"]: row for row in rows}
        assert by_date[date(2025, 3, 10)]["pending_bookings"] == 1
        assert by_date[date(2025, 3, 10)]["approved_bookings"] == 0
        assert by_date[date(2025, 3, 11)]["pending_bookings"] == 1
        assert by_date[date(2025, 3, 11)]["approved_bookings"] == 1


class TestBlockedDates:
    def test_block_date_is_idempotent(self, db, service, trainer):
        first = service.block_date(trainer.id, date(2025, 3, 10), "Holiday")
        second = service.block_date(trainer.id, date(2025, 3, 10), "Other reason")

        assert first.id == second.id
        assert db.query(TrainerBlockedDate).filter_by(trainer_id=trainer.id).count() == 1
        assert second.reason == "Holiday"

    def test_unblock_requires_ownership(self, service, trainer, trainer_factory):
        row = service.block_date(trainer.id, date(2025, 3, 10))
        other = trainer_factory("Other Trainer")
        with pytest.raises(NotFoundException):
            service.unblock_date(other.id, row.id)
        service.unblock_date(trainer.id, row.id)
        assert service.list_blocked_dates(trainer.id) == []

    def test_list_blocked_dates_in_range(self, service, trainer):
        service.block_date(trainer.id, date(2025, 3, 10))
        service.block_date(trainer.id, date(2025, 4, 1))
        rows = service.list_blocked_dates(trainer.id, date(2025, 3, 1), date(2025, 3, 31))
        assert [r.blocked_date for r in rows] == [date(2025, 3, 10)]


class TestBlockedDays:
    def test_replace_normalizes_and_replaces_whole_set(self, service, trainer):
        assert service.replace_blocked_days(trainer.id, [6, 0, 0, 9, "x"]) == [0, 6]
        assert service.get_blocked_days(trainer.id) == [0, 6]

        assert service.replace_blocked_days(trainer.id, [3]) == [3]
        assert service.get_blocked_days(trainer.id) == [3]

    def test_replace_with_empty_clears(self, service, trainer):
        service.replace_blocked_days(trainer.id, [1, 2])
        assert service.replace_blocked_days(trainer.id, []) == []
        assert service.get_blocked_days(trainer.id) == []
