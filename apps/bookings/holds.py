"""Short-lived holds on a spot's calendar, kept in the Django cache.

A hold says "this renter is paying for this window right now". It only
steers other renters away from the window while it lives; the commit
step never trusts it and re-validates against committed rows.

Keys:
    hold:<id>             the hold itself, expires with the hold
    holds:spot:<spot_id>  ids of holds placed on the spot
    holds:spot:<id>:lock  guards writes to the index above
    hold:idem:<user>:<k>  idempotency key -> hold id
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Iterator, List

from django.conf import settings
from django.core.cache import cache

from shared.domain.value_objects import TimeRange

logger = logging.getLogger(__name__)

HOLD_KEY_PREFIX = "hold"
SPOT_INDEX_PREFIX = "holds:spot"
IDEMPOTENCY_PREFIX = "hold:idem"

INDEX_LOCK_TIMEOUT_SECONDS = 5
INDEX_LOCK_WAIT_SECONDS = 2.0
INDEX_LOCK_POLL_SECONDS = 0.01


@dataclass(frozen=True)
class Hold:
    hold_id: str
    spot_id: int
    user_id: int
    start_at: datetime
    end_at: datetime
    expires_at: datetime
    idempotency_key: str = ""

    @property
    def window(self) -> TimeRange:
        return TimeRange(self.start_at, self.end_at)

    def is_live(self, now: datetime) -> bool:
        return now < self.expires_at


class HoldIndexBusy(Exception):
    """The spot's hold index stayed locked past the wait limit."""


def hold_ttl() -> timedelta:
    return timedelta(minutes=getattr(settings, "BOOKING_HOLD_TTL_MINUTES", 10))


def _hold_key(hold_id: str) -> str:
    return f"{HOLD_KEY_PREFIX}:{hold_id}"


def _spot_index_key(spot_id: int) -> str:
    return f"{SPOT_INDEX_PREFIX}:{spot_id}"


def _index_lock_key(spot_id: int) -> str:
    return f"{SPOT_INDEX_PREFIX}:{spot_id}:lock"


def _idempotency_key(user_id: int, key: str) -> str:
    return f"{IDEMPOTENCY_PREFIX}:{user_id}:{key}"


def _timeout_seconds(expires_at: datetime, now: datetime) -> int:
    return max(int((expires_at - now).total_seconds()), 1)


@contextmanager
def spot_index_lock(spot_id: int, wait: float = INDEX_LOCK_WAIT_SECONDS) -> Iterator[bool]:
    """
    Serialize read-modify-write cycles on one spot's hold index.

    ``cache.add`` stores the key only when it is absent, atomically on Redis
    (SET NX) and on the local-memory backend, so one caller at a time owns
    the lock. Yields whether the lock was taken: with ``wait=0`` a busy lock
    yields False, otherwise ``HoldIndexBusy`` is raised after ``wait`` seconds.
    """
    key = _index_lock_key(spot_id)
    token = uuid.uuid4().hex
    deadline = time.monotonic() + wait
    acquired = cache.add(key, token, INDEX_LOCK_TIMEOUT_SECONDS)
    while not acquired and time.monotonic() < deadline:
        time.sleep(INDEX_LOCK_POLL_SECONDS)
        acquired = cache.add(key, token, INDEX_LOCK_TIMEOUT_SECONDS)
    if not acquired and wait:
        raise HoldIndexBusy(f"Hold index of spot {spot_id} is locked")
    try:
        yield acquired
    finally:
        if acquired and cache.get(key) == token:
            cache.delete(key)


def _register_hold(spot_id: int, hold_id: str, timeout: int) -> None:
    key = _spot_index_key(spot_id)
    with spot_index_lock(spot_id):
        ids: List[str] = cache.get(key) or []
        if hold_id not in ids:
            ids.append(hold_id)
        # Every hold has the same TTL, so the newest one outlives the rest
        cache.set(key, ids, timeout)


def _prune_index(spot_id: int, now: datetime) -> None:
    key = _spot_index_key(spot_id)
    with spot_index_lock(spot_id, wait=0) as locked:
        if not locked:
            # Another request is writing the index; it can be pruned next time
            return
        ids: List[str] = cache.get(key) or []
        stored = cache.get_many([_hold_key(hold_id) for hold_id in ids])
        live = [hold for hold in (Hold(**data) for data in stored.values()) if hold.is_live(now)]
        if not live:
            cache.delete(key)
            return
        live_ids = {hold.hold_id for hold in live}
        timeout = max(_timeout_seconds(hold.expires_at, now) for hold in live)
        cache.set(key, [hold_id for hold_id in ids if hold_id in live_ids], timeout)


def get_hold(hold_id: str) -> Hold | None:
    data = cache.get(_hold_key(hold_id))
    if data is None:
        return None
    return Hold(**data)


def find_by_idempotency_key(user_id: int, key: str, now: datetime) -> Hold | None:
    hold_id = cache.get(_idempotency_key(user_id, key))
    if not hold_id:
        return None
    hold = get_hold(hold_id)
    if hold is None or not hold.is_live(now):
        return None
    return hold


def save_hold(
    spot_id: int,
    user_id: int,
    start_at: datetime,
    end_at: datetime,
    now: datetime,
    *,
    idempotency_key: str = "",
) -> Hold:
    """Store a new hold expiring after ``BOOKING_HOLD_TTL_MINUTES``."""
    hold = Hold(
        hold_id=uuid.uuid4().hex,
        spot_id=spot_id,
        user_id=user_id,
        start_at=start_at,
        end_at=end_at,
        expires_at=now + hold_ttl(),
        idempotency_key=idempotency_key,
    )
    timeout = _timeout_seconds(hold.expires_at, now)
    cache.set(_hold_key(hold.hold_id), asdict(hold), timeout)
    _register_hold(spot_id, hold.hold_id, timeout)
    if idempotency_key:
        cache.set(_idempotency_key(user_id, idempotency_key), hold.hold_id, timeout)

    logger.info(f"Hold {hold.hold_id} placed on spot {spot_id} by user {user_id} until {hold.expires_at.isoformat()}")
    return hold


def live_holds_for_spot(spot_id: int, now: datetime) -> list[Hold]:
    """Holds on the spot that have not expired yet; prunes stale index entries."""
    ids: List[str] | None = cache.get(_spot_index_key(spot_id))
    if not ids:
        return []

    stored = cache.get_many([_hold_key(hold_id) for hold_id in ids])
    holds = [Hold(**data) for data in stored.values()]
    live = [hold for hold in holds if hold.is_live(now)]

    if len(live) != len(ids):
        _prune_index(spot_id, now)
    return live


def release_hold(hold: Hold) -> None:
    cache.delete(_hold_key(hold.hold_id))
    if hold.idempotency_key:
        cache.delete(_idempotency_key(hold.user_id, hold.idempotency_key))
    logger.debug(f"Hold {hold.hold_id} released")


def release_user_holds(spot_id: int, user_id: int, window: TimeRange, now: datetime) -> int:
    """Drop the user's holds on the spot that overlap ``window``."""
    released = 0
    for hold in live_holds_for_spot(spot_id, now):
        if hold.user_id == user_id and hold.window.overlaps_with(window):
            release_hold(hold)
            released += 1
    return released


__all__ = [
    "Hold",
    "HoldIndexBusy",
    "find_by_idempotency_key",
    "get_hold",
    "live_holds_for_spot",
    "release_hold",
    "release_user_holds",
    "save_hold",
    "spot_index_lock",
]
