"""
BookingService: the booking state machine and its calendar side effects.

Runs against a real SQLite session so that every rollback is observed
on the rows themselves.
"""

from datetime import date
from unittest.mock import patch

import pytest

from trainbook.core.exceptions import (
    AvailabilityUnavailableException,
    CapacityExceededException,
    DuplicateEventException,
    InvalidTransitionException,
    NotFoundException,
    TransientInfraException,
    ValidationException,
)
from trainbook.models.availability import TrainerAvailability, TrainerAvailabilityStatus
from trainbook.models.booking import BookingRequestType, BookingStatus
from trainbook.models.event import Event, EventRegistration
from trainbook.models.notification import ActivityLog, Notification
from trainbook.repositories.availability_repository import AvailabilityRepository
from trainbook.services.booking_service import BookingService

MAR_10 = date(2025, 3, 10)
MAR_11 = date(2025, 3, 11)
MAR_12 = date(2025, 3, 12)


@pytest.fixture
def service(db):
    return BookingService(db)


def _calendar(db, trainer):
    rows = db.query(TrainerAvailability).filter_by(trainer_id=trainer.id).all()
    return {row.date: row.status for row in rows}


class TestCreateBooking:
    def test_creates_pending_and_notifies_trainer(self, db, service, trainer, course):
        booking = service.create_booking(
            request_type="inhouse",
            requested_date=MAR_10,
            end_date=MAR_12,
            course_id=course.id,
            trainer_id=trainer.id,
            client_id="client-01",
            client_name="Acme Corp",
        )

        assert booking.status == "PENDING"
        assert booking.request_type == "INHOUSE"
        note = db.query(Notification).filter_by(user_id=trainer.id).one()
        assert note.title == "New Booking Request"

    def test_rejects_end_before_start(self, service, trainer):
        with pytest.raises(ValidationException) as exc:
            service.create_booking(
                request_type="PUBLIC",
                requested_date=MAR_12,
                end_date=MAR_10,
                trainer_id=trainer.id,
            )
        assert exc.value.code == "INVALID_DATE_RANGE"

    def test_rejects_unknown_request_type(self, service):
        with pytest.raises(ValidationException):
            service.create_booking(request_type="PRIVATE", requested_date=MAR_10)

    def test_unknown_trainer(self, service):
        with pytest.raises(NotFoundException):
            service.create_booking(
                request_type="PUBLIC",
                requested_date=MAR_10,
                trainer_id="01MISSING00000000000000000",
            )


class TestApproveBooking:
    def test_inhouse_range_holds_every_day_tentative(
        self, db, service, trainer, course, booking_factory
    ):
        booking = booking_factory(trainer, course, MAR_10, end_date=MAR_12)

        approved = service.approve_booking(booking.id, actor_id="admin-1")

        assert approved.status == "APPROVED"
        assert _calendar(db, trainer) == {
            MAR_10: "TENTATIVE",
            MAR_11: "TENTATIVE",
            MAR_12: "TENTATIVE",
        }

    def test_booked_day_is_never_downgraded(
        self, db, service, trainer, course, booking_factory, availability_factory
    ):
        availability_factory(trainer, MAR_11, TrainerAvailabilityStatus.BOOKED)
        availability_factory(trainer, MAR_12, TrainerAvailabilityStatus.NOT_AVAILABLE)
        booking = booking_factory(trainer, course, MAR_10, end_date=MAR_12)

        service.approve_booking(booking.id)

        assert _calendar(db, trainer) == {
            MAR_10: "TENTATIVE",
            MAR_11: "BOOKED",
            MAR_12: "TENTATIVE",
        }

    def test_public_booking_leaves_calendar_alone(self, db, service, trainer, course, booking_factory):
        booking = booking_factory(
            trainer, course, MAR_10, request_type=BookingRequestType.PUBLIC
        )
        service.approve_booking(booking.id)
        assert _calendar(db, trainer) == {}

    def test_booking_without_date_skips_propagation(
        self, db, service, trainer, course, booking_factory
    ):
        booking = booking_factory(trainer, course, None)
        assert service.approve_booking(booking.id).status == "APPROVED"
        assert _calendar(db, trainer) == {}

    def test_approve_twice_is_rejected(self, db, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)
        with pytest.raises(InvalidTransitionException):
            service.approve_booking(booking.id)

    def test_notifies_client_and_logs(self, db, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10)
        service.approve_booking(booking.id, actor_id="admin-1")

        assert db.query(Notification).filter_by(user_id="client-01").count() == 1
        entry = db.query(ActivityLog).filter_by(entity_id=booking.id).one()
        assert entry.details == {"from": "PENDING", "to": "APPROVED"}


class TestSimpleTransitions:
    def test_deny_pending(self, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10)
        assert service.deny_booking(booking.id).status == "DENIED"

    def test_cancel_keeps_calendar(self, db, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10)
        service.approve_booking(booking.id)
        service.cancel_booking(booking.id)

        assert db.get(type(booking), booking.id).status == "CANCELLED"
        assert _calendar(db, trainer) == {MAR_10: "TENTATIVE"}

    def test_terminal_booking_cannot_move(self, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10, status=BookingStatus.DENIED)
        with pytest.raises(InvalidTransitionException) as exc:
            service.cancel_booking(booking.id)
        assert exc.value.details["from"] == "DENIED"

    def test_complete_requires_confirmed(self, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)
        with pytest.raises(InvalidTransitionException):
            service.complete_booking(booking.id)

    def test_transition_booking_routes_approval(self, db, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10)
        service.transition_booking(booking.id, "approved")
        assert _calendar(db, trainer) == {MAR_10: "TENTATIVE"}

    def test_transition_booking_cannot_confirm(self, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)
        with pytest.raises(ValidationException) as exc:
            service.transition_booking(booking.id, "CONFIRMED")
        assert exc.value.code == "CONFIRM_REQUIRES_AVAILABILITY"

    def test_missing_booking(self, service):
        with pytest.raises(NotFoundException):
            service.deny_booking("01MISSING00000000000000000")


class TestConflictingBookings:
    def test_same_date_approved_only(self, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)
        other = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)
        booking_factory(trainer, course, MAR_10, status=BookingStatus.PENDING)
        booking_factory(trainer, course, MAR_11, status=BookingStatus.APPROVED)

        assert [b.id for b in service.get_conflicting_bookings(booking.id)] == [other.id]

    def test_missing_or_dateless_booking_returns_empty(
        self, service, trainer, course, booking_factory
    ):
        dateless = booking_factory(trainer, course, None, status=BookingStatus.APPROVED)
        assert service.get_conflicting_bookings(dateless.id) == []
        assert service.get_conflicting_bookings("01MISSING00000000000000000") == []


class TestConfirmBooking:
    @pytest.fixture
    def approved(self, service, trainer, course, booking_factory):
        booking = booking_factory(trainer, course, MAR_10, end_date=MAR_12)
        return service.approve_booking(booking.id)

    def _tentative_ids(self, db, trainer):
        rows = (
            db.query(TrainerAvailability)
            .filter_by(trainer_id=trainer.id)
            .order_by(TrainerAvailability.date)
            .all()
        )
        return [row.id for row in rows]

    def test_confirm_books_days_and_materializes_event(self, db, service, trainer, course, approved):
        ids = self._tentative_ids(db, trainer)

        booking, event = service.confirm_booking(approved.id, ids, 20, 12, actor_id="admin-1")

        assert booking.status == "CONFIRMED"
        assert booking.trainer_availability_id == ids[0]
        assert set(_calendar(db, trainer).values()) == {"BOOKED"}
        assert event.course_id == course.id
        assert event.event_date == MAR_10
        assert event.end_date == MAR_12
        assert event.max_packs == 20
        registration = db.query(EventRegistration).filter_by(event_id=event.id).one()
        assert registration.status == "APPROVED"
        assert registration.number_of_participants == 12
        assert db.query(ActivityLog).filter_by(action_type="CONFIRM").count() == 1

    def test_rows_are_locked_for_update(self, db, service, trainer, approved):
        ids = self._tentative_ids(db, trainer)
        with patch.object(
            AvailabilityRepository,
            "get_by_ids_for_update",
            autospec=True,
            side_effect=AvailabilityRepository.get_by_ids_for_update,
        ) as locked_read:
            service.confirm_booking(approved.id, ids, 20, 12)
        locked_read.assert_called_once()

    def test_participants_exceeding_slots_rejected_before_any_write(
        self, db, service, trainer, approved
    ):
        ids = self._tentative_ids(db, trainer)
        with pytest.raises(ValidationException) as exc:
            service.confirm_booking(approved.id, ids, 20, 25)

        assert exc.value.code == "PARTICIPANTS_EXCEED_SLOTS"
        assert db.get(type(approved), approved.id).status == "APPROVED"
        assert db.query(Event).count() == 0

    @pytest.mark.parametrize(
        "ids,slots,participants,code",
        [
            ([], 20, 10, "AVAILABILITY_IDS_REQUIRED"),
            (["x"], 0, 1, "INVALID_TOTAL_SLOTS"),
            (["x"], 5, 0, "INVALID_PARTICIPANTS"),
        ],
    )
    def test_input_validation(self, service, approved, ids, slots, participants, code):
        with pytest.raises(ValidationException) as exc:
            service.confirm_booking(approved.id, ids, slots, participants)
        assert exc.value.code == code

    def test_one_booked_row_rolls_back_everything(self, db, service, trainer, approved):
        ids = self._tentative_ids(db, trainer)
        taken = db.get(TrainerAvailability, ids[1])
        taken.status = TrainerAvailabilityStatus.BOOKED.value
        db.commit()

        with pytest.raises(AvailabilityUnavailableException) as exc:
            service.confirm_booking(approved.id, ids, 20, 12)

        assert exc.value.details["availability_ids"] == [ids[1]]
        assert db.get(type(approved), approved.id).status == "APPROVED"
        assert _calendar(db, trainer) == {MAR_10: "TENTATIVE", MAR_11: "BOOKED", MAR_12: "TENTATIVE"}
        assert db.query(Event).count() == 0

    def test_not_available_row_rejected(self, db, service, trainer, approved):
        ids = self._tentative_ids(db, trainer)
        db.get(TrainerAvailability, ids[0]).status = "NOT_AVAILABLE"
        db.commit()
        with pytest.raises(AvailabilityUnavailableException):
            service.confirm_booking(approved.id, ids, 20, 12)

    def test_missing_availability_id(self, db, service, trainer, approved):
        ids = self._tentative_ids(db, trainer) + ["01MISSING00000000000000000"]
        with pytest.raises(NotFoundException):
            service.confirm_booking(approved.id, ids, 20, 12)
        assert db.query(Event).count() == 0

    def test_foreign_trainer_row_rejected(
        self, db, service, trainer, trainer_factory, approved, availability_factory
    ):
        other = trainer_factory("Other Trainer")
        foreign = availability_factory(other, MAR_10)
        with pytest.raises(AvailabilityUnavailableException):
            service.confirm_booking(approved.id, [foreign.id], 20, 12)
        assert foreign.status == "AVAILABLE"

    def test_second_confirmation_on_same_rows_fails(
        self, db, service, trainer, course, approved, booking_factory
    ):
        ids = self._tentative_ids(db, trainer)
        service.confirm_booking(approved.id, ids, 20, 12)

        rival = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)
        with pytest.raises(AvailabilityUnavailableException):
            service.confirm_booking(rival.id, ids, 20, 12)

        assert db.query(Event).count() == 1
        assert db.get(type(rival), rival.id).status == "APPROVED"

    def test_duplicate_event_rolls_back(
        self, db, service, trainer, course, booking_factory, availability_factory
    ):
        db.add(Event(course_id=course.id, event_date=MAR_10, start_date=MAR_10, status="ACTIVE"))
        db.commit()
        row = availability_factory(trainer, MAR_10)
        booking = booking_factory(trainer, course, MAR_10, status=BookingStatus.APPROVED)

        with pytest.raises(DuplicateEventException):
            service.confirm_booking(booking.id, [row.id], 10, 5)

        assert row.status == "AVAILABLE"
        assert db.get(type(booking), booking.id).status == "APPROVED"

    def test_requires_approved_status(self, db, service, trainer, course, booking_factory, availability_factory):
        row = availability_factory(trainer, MAR_10)
        booking = booking_factory(trainer, course, MAR_10)
        with pytest.raises(InvalidTransitionException):
            service.confirm_booking(booking.id, [row.id], 10, 5)

    def test_requires_course(self, service, trainer, booking_factory, availability_factory):
        row = availability_factory(trainer, MAR_10)
        booking = booking_factory(trainer, None, MAR_10, status=BookingStatus.APPROVED)
        with pytest.raises(ValidationException) as exc:
            service.confirm_booking(booking.id, [row.id], 10, 5)
        assert exc.value.code == "BOOKING_INCOMPLETE"

    def test_public_event_date_must_match_earliest_row(
        self, service, trainer, course, booking_factory, availability_factory
    ):
        row = availability_factory(trainer, MAR_11)
        booking = booking_factory(
            trainer,
            course,
            MAR_11,
            status=BookingStatus.APPROVED,
            request_type=BookingRequestType.PUBLIC,
        )
        with pytest.raises(ValidationException) as exc:
            service.confirm_booking(booking.id, [row.id], 10, 5, event_date=MAR_10)
        assert exc.value.code == "EVENT_DATE_MISMATCH"

    def test_notification_failure_keeps_confirmation(self, db, service, trainer, approved):
        ids = self._tentative_ids(db, trainer)
        with patch.object(
            service.notifications,
            "notify",
            side_effect=TransientInfraException("mail relay down"),
        ):
            booking, event = service.confirm_booking(approved.id, ids, 20, 12)

        db.expire_all()
        assert db.get(type(booking), booking.id).status == "CONFIRMED"
        assert db.get(Event, event.id) is not None
        assert set(_calendar(db, trainer).values()) == {"BOOKED"}

    def test_capacity_ceiling_on_materialized_event(self, db, service, trainer, approved):
        ids = self._tentative_ids(db, trainer)
        _, event = service.confirm_booking(approved.id, ids, 12, 12)

        with pytest.raises(CapacityExceededException):
            service.event_service.register_for_event(event.id, client_name="Walk-in")
