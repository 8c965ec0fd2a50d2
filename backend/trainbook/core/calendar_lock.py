"""
Advisory Redis mutex around a trainer's calendar.

The database row locks are the authoritative guard against double
booking. This mutex only serializes admin actions per trainer across
API workers so the losing request fails fast instead of waiting on a
row lock. When Redis is unreachable the lock fails open.

Each holder stores a random owner token as the key's value and release
only deletes the key while it still carries that token, so a holder
whose TTL lapsed cannot free a lock another worker has since taken.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
from typing import Iterator, Optional
import uuid

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

# KEYS[1] = lock key
# ARGV[1] = owner token
RELEASE_LUA = """
if redis.call("get", KEYS[1]) == ARGV[1] then
  return redis.call("del", KEYS[1])
end
return 0
"""


def _lock_key(trainer_id: str) -> str:
    return f"{settings.lock_namespace}:lock:trainer:{trainer_id}:calendar"


def new_lock_token() -> str:
    return uuid.uuid4().hex


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
            )
            client.ping()
        except Exception as exc:
            logger.warning("calendar_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def reset_redis_client() -> None:
    """Drop the cached client so the next acquire reconnects."""
    global _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        _SYNC_REDIS = None


def acquire_calendar_lock(trainer_id: str, token: str, ttl_s: Optional[int] = None) -> bool:
    if not settings.calendar_lock_enabled:
        return True
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_calendar_lock("acquire", "redis_unavailable")
        return True
    ttl = ttl_s or settings.calendar_lock_ttl_seconds
    try:
        acquired = bool(client.set(_lock_key(trainer_id), token, nx=True, ex=ttl))
    except Exception as exc:
        prometheus_metrics.record_calendar_lock("acquire", "error")
        logger.warning(
            "calendar_lock_acquire_failed",
            extra={"trainer_id": trainer_id, "error": str(exc), "error_type": type(exc).__name__},
        )
        return True
    prometheus_metrics.record_calendar_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_calendar_lock(trainer_id: str, token: str) -> None:
    """Delete the lock key only while it still holds ``token``."""
    if not settings.calendar_lock_enabled:
        return
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_calendar_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.eval(RELEASE_LUA, 1, _lock_key(trainer_id), token)
    except Exception as exc:
        prometheus_metrics.record_calendar_lock("release", "error")
        logger.warning(
            "calendar_lock_release_failed",
            extra={"trainer_id": trainer_id, "error": str(exc), "error_type": type(exc).__name__},
        )
        return
    prometheus_metrics.record_calendar_lock("release", "success" if deleted else "not_owner")


@contextmanager
def calendar_lock(trainer_id: Optional[str], ttl_s: Optional[int] = None) -> Iterator[bool]:
    """
    Hold the trainer's calendar mutex for the duration of the block.

    Yields False when another worker holds it. A missing trainer_id
    yields True without touching Redis.
    """
    if not trainer_id:
        yield True
        return
    token = new_lock_token()
    acquired = acquire_calendar_lock(trainer_id, token, ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_calendar_lock(trainer_id, token)
