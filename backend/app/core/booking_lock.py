"""
Per-mentor booking lock.

Every operation that reads a mentor's calendar and then writes to it
(reserving, rescheduling, editing availability, materializing slots) runs
inside ``mentor_booking_lock(mentor_id)``. Two layers are taken in order:

1. An in-process re-entrant lock per mentor, so threads of one worker queue
   behind each other.
2. A Redis ``SET NX EX`` key when ``BOOKING_LOCK_REDIS_URL`` is configured, so
   separate worker processes do too. If Redis is configured but unreachable
   the operation proceeds on the in-process lock alone; the database
   exclusion constraint still rejects a double booking.

Acquisition is bounded by ``booking_lock_timeout_seconds``; on timeout
``BookingLockTimeoutException`` is raised and nothing has been written.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterator, Optional

from redis import Redis

from app.core.config import settings
from app.core.exceptions import BookingLockTimeoutException
from app.core.ulid_helper import generate_ulid
from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_LOCAL_LOCKS: Dict[str, threading.RLock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()
_HELD = threading.local()

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_REDIS_POLL_INTERVAL_S = 0.05


def _lock_key(mentor_id: str) -> str:
    return f"{settings.booking_lock_namespace}:lock:mentor:{mentor_id}:booking"


def _local_lock(mentor_id: str) -> threading.RLock:
    with _LOCAL_LOCKS_GUARD:
        lock = _LOCAL_LOCKS.get(mentor_id)
        if lock is None:
            lock = threading.RLock()
            _LOCAL_LOCKS[mentor_id] = lock
        return lock


def _held_depths() -> Dict[str, int]:
    depths = getattr(_HELD, "depths", None)
    if depths is None:
        depths = {}
        _HELD.depths = depths
    return depths


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.booking_lock_redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.booking_lock_redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("booking_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _acquire_distributed(mentor_id: str, token: str, ttl_s: int, deadline: float) -> bool:
    """
    Poll for the Redis key until ``deadline``.

    Returns True when the key is held (or Redis is not in play), False when
    another process kept it past the deadline.
    """
    client = _get_sync_redis()
    if client is None:
        if settings.booking_lock_redis_url:
            prometheus_metrics.record_booking_lock("acquire", "redis_unavailable")
        return True
    key = _lock_key(mentor_id)
    while True:
        try:
            if client.set(key, token, nx=True, ex=ttl_s):
                return True
        except Exception as exc:
            prometheus_metrics.record_booking_lock("acquire", "error")
            logger.warning(
                "booking_lock_redis_acquire_failed",
                extra={
                    "mentor_id": mentor_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(_REDIS_POLL_INTERVAL_S)


def _release_distributed(mentor_id: str, token: str) -> None:
    client = _get_sync_redis()
    if client is None:
        return
    key = _lock_key(mentor_id)
    try:
        # Only drop the key if it is still ours; it may have expired and been retaken
        if client.get(key) == token:
            client.delete(key)
            prometheus_metrics.record_booking_lock("release", "success")
        else:
            prometheus_metrics.record_booking_lock("release", "expired")
    except Exception as exc:
        prometheus_metrics.record_booking_lock("release", "error")
        logger.warning(
            "booking_lock_redis_release_failed",
            extra={
                "mentor_id": mentor_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def mentor_booking_lock(
    mentor_id: str,
    timeout_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[None]:
    """
    Serialize calendar-mutating work for one mentor.

    Re-entrant within a thread: nested use for the same mentor only takes the
    locks once.

    Raises:
        BookingLockTimeoutException: if the lock is not obtained in time
    """
    timeout = settings.booking_lock_timeout_seconds if timeout_s is None else timeout_s
    ttl = settings.booking_lock_ttl_seconds if ttl_s is None else ttl_s
    depths = _held_depths()

    if depths.get(mentor_id):
        depths[mentor_id] += 1
        try:
            yield
        finally:
            depths[mentor_id] -= 1
        return

    deadline = time.monotonic() + timeout
    local = _local_lock(mentor_id)
    if not local.acquire(timeout=timeout):
        prometheus_metrics.record_booking_lock("acquire", "timeout")
        logger.warning("booking_lock_timeout", extra={"mentor_id": mentor_id, "layer": "local"})
        raise BookingLockTimeoutException(mentor_id)

    token = generate_ulid()
    try:
        if not _acquire_distributed(mentor_id, token, ttl, deadline):
            prometheus_metrics.record_booking_lock("acquire", "timeout")
            logger.warning(
                "booking_lock_timeout", extra={"mentor_id": mentor_id, "layer": "redis"}
            )
            raise BookingLockTimeoutException(mentor_id)
        prometheus_metrics.record_booking_lock("acquire", "success")
        depths[mentor_id] = 1
        try:
            yield
        finally:
            depths.pop(mentor_id, None)
            _release_distributed(mentor_id, token)
    finally:
        local.release()
