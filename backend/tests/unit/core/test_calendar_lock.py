"""Redis calendar mutex: acquire/release and fail-open behaviour."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from trainbook.core import calendar_lock as lock_module
from trainbook.core.calendar_lock import calendar_lock
from trainbook.core.config import settings
from trainbook.core.exceptions import StateConflictException
from trainbook.services.booking_service import BookingService


@pytest.fixture
def lock_enabled(monkeypatch):
    monkeypatch.setattr(settings, "calendar_lock_enabled", True)
    lock_module.reset_redis_client()
    yield
    lock_module.reset_redis_client()


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.set.return_value = True
    client.eval.return_value = 1
    with patch.object(lock_module, "_get_sync_redis", return_value=client):
        yield client


class TestCalendarLock:
    def test_acquire_and_release(self, lock_enabled, redis_client):
        with calendar_lock("trainer-1") as acquired:
            assert acquired is True

        key = "trainbook:lock:trainer:trainer-1:calendar"
        redis_client.set.assert_called_once()
        args, kwargs = redis_client.set.call_args
        assert args[0] == key
        assert kwargs == {"nx": True, "ex": settings.calendar_lock_ttl_seconds}
        token = args[1]
        redis_client.eval.assert_called_once_with(lock_module.RELEASE_LUA, 1, key, token)
        redis_client.delete.assert_not_called()

    def test_each_holder_gets_its_own_token(self, lock_enabled, redis_client):
        with calendar_lock("trainer-1"):
            pass
        with calendar_lock("trainer-1"):
            pass

        first, second = (c.args[1] for c in redis_client.set.call_args_list)
        assert first != second

    def test_release_after_expiry_leaves_new_holder_alone(self, lock_enabled, redis_client):
        # The key now carries another worker's token, so the compare-and-delete is a no-op
        redis_client.eval.return_value = 0
        with calendar_lock("trainer-1") as acquired:
            assert acquired is True

        redis_client.eval.assert_called_once()
        redis_client.delete.assert_not_called()

    def test_release_script_compares_owner_before_delete(self):
        script = lock_module.RELEASE_LUA
        assert script.index('redis.call("get", KEYS[1]) == ARGV[1]') < script.index(
            'redis.call("del", KEYS[1])'
        )

    def test_held_lock_is_not_released_by_loser(self, lock_enabled, redis_client):
        redis_client.set.return_value = None
        with calendar_lock("trainer-1") as acquired:
            assert acquired is False
        redis_client.eval.assert_not_called()

    def test_redis_unavailable_fails_open(self, lock_enabled):
        with patch.object(lock_module, "_get_sync_redis", return_value=None):
            with calendar_lock("trainer-1") as acquired:
                assert acquired is True

    def test_redis_error_fails_open(self, lock_enabled, redis_client):
        redis_client.set.side_effect = ConnectionError("redis down")
        with calendar_lock("trainer-1") as acquired:
            assert acquired is True

    def test_disabled_never_touches_redis(self, redis_client):
        with calendar_lock("trainer-1") as acquired:
            assert acquired is True
        redis_client.set.assert_not_called()

    def test_no_trainer_skips_lock(self, lock_enabled, redis_client):
        with calendar_lock(None) as acquired:
            assert acquired is True
        redis_client.set.assert_not_called()


class TestBusyCalendar:
    def test_approval_fails_fast_when_calendar_busy(
        self, db, lock_enabled, redis_client, trainer, course, booking_factory
    ):
        redis_client.set.return_value = None
        booking = booking_factory(trainer, course, date(2025, 3, 10))

        with pytest.raises(StateConflictException) as exc:
            BookingService(db).approve_booking(booking.id)

        assert exc.value.code == "CALENDAR_BUSY"
        assert db.get(type(booking), booking.id).status == "PENDING"
