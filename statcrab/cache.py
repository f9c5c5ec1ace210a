"""
In-memory response cache with request coalescing.

ResponseCache stores computed results under a CacheKey with a per-call TTL
and a global byte-weight capacity. Concurrent misses for the same key share
a single in-flight computation: the first caller installs a task in the
pending registry and every caller (including the first) awaits it through
asyncio.shield, so cancelling one waiter never cancels the computation.

Usage:
    cache = ResponseCache(max_capacity_bytes=32 * 1024 * 1024)
    stats = await cache.get_or_compute(key, ttl=900, compute=fetch_stats)
"""

import asyncio
import dataclasses
import logging
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from .types import CacheKey

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    """A stored value. Replaced wholesale on refresh, never mutated."""
    value: Any
    inserted_at: float
    weight: int
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    """Cache statistics for monitoring."""
    entry_count: int = 0
    weighted_size: int = 0
    max_capacity: int = 0
    entries_by_kind: Dict[str, int] = field(default_factory=dict)
    size_by_kind: Dict[str, int] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    evictions: int = 0
    in_flight: int = 0


def estimate_weight(value: Any) -> int:
    """Rough byte size of a value, following dataclasses and containers."""
    size = sys.getsizeof(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        size += sum(estimate_weight(getattr(value, f.name)) for f in dataclasses.fields(value))
    elif isinstance(value, dict):
        size += sum(estimate_weight(k) + estimate_weight(v) for k, v in value.items())
    elif isinstance(value, (list, tuple, set, frozenset)):
        size += sum(estimate_weight(v) for v in value)
    return size


class ResponseCache:
    """
    TTL- and capacity-bounded cache with per-key single-flight computation.

    State is only touched under an internal lock that is never held across
    an await. The pending registry is bound to the event loop that created
    the in-flight tasks.
    """

    def __init__(
        self,
        max_capacity_bytes: int = 32 * 1024 * 1024,
        clock: Callable[[], float] = time.monotonic,
        weigher: Callable[[Any], int] = estimate_weight,
    ):
        """
        Initialize the cache.

        Args:
            max_capacity_bytes: Maximum total byte-weight of stored entries
            clock: Monotonic time source (seconds)
            weigher: Byte-weight estimator for stored values
        """
        if max_capacity_bytes <= 0:
            raise ValueError("max_capacity_bytes must be greater than 0")
        self._capacity = max_capacity_bytes
        self._clock = clock
        self._weigher = weigher

        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._pending: Dict[CacheKey, asyncio.Task] = {}
        self._weighted_size = 0
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._evictions = 0

    @property
    def max_capacity(self) -> int:
        return self._capacity

    @property
    def weighted_size(self) -> int:
        return self._weighted_size

    def __len__(self) -> int:
        return len(self._entries)

    # === Reads ===

    def get(self, key: CacheKey) -> Any:
        """Return the live value for key, or None. Expired entries are dropped."""
        value = self._lookup(key)
        return None if value is _MISSING else value

    def _lookup(self, key: CacheKey) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if entry.is_expired(self._clock()):
                self._remove_locked(key)
                return _MISSING
            self._hits += 1
            return entry.value

    async def get_or_compute(
        self,
        key: CacheKey,
        ttl: float,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Return the cached value for key, computing it at most once concurrently.

        Args:
            key: Cache key
            ttl: Time-to-live in seconds for a freshly computed value
            compute: Zero-argument coroutine function producing the value

        Returns:
            The cached or freshly computed value

        Raises:
            Whatever compute raises. Failures are shared by all attached
            callers and never stored.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            logger.debug(f"Cache hit: {key.kind.value} {key.username}")
            return value

        with self._lock:
            task = self._pending.get(key)
            if task is None:
                self._misses += 1
                task = asyncio.ensure_future(self._compute_and_store(key, ttl, compute))
                task.add_done_callback(_consume_outcome)
                self._pending[key] = task
                logger.debug(f"Cache miss: {key.kind.value} {key.username}, fetching")
            else:
                self._coalesced += 1
                logger.debug(f"Joining in-flight fetch: {key.kind.value} {key.username}")

        return await asyncio.shield(task)

    async def _compute_and_store(
        self,
        key: CacheKey,
        ttl: float,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        try:
            value = await compute()
            self.put(key, value, ttl)
            return value
        finally:
            # Unregister before the task resolves so that a caller arriving
            # after a failure starts a fresh computation.
            with self._lock:
                self._pending.pop(key, None)

    # === Writes ===

    def put(self, key: CacheKey, value: Any, ttl: float) -> bool:
        """
        Store value under key, evicting entries nearest expiry if needed.

        Returns:
            False if the value alone exceeds the capacity (not stored)
        """
        weight = self._weigher(value)
        with self._lock:
            now = self._clock()
            if key in self._entries:
                self._remove_locked(key)
            if weight > self._capacity:
                logger.warning(
                    f"Not caching {key.kind.value} {key.username}: "
                    f"{weight} bytes exceeds capacity {self._capacity}"
                )
                return False
            self._make_room_locked(weight, now)
            self._entries[key] = CacheEntry(
                value=value, inserted_at=now, weight=weight, expires_at=now + ttl,
            )
            self._weighted_size += weight
        return True

    def invalidate(self, key: CacheKey) -> bool:
        """Remove a cached entry."""
        with self._lock:
            if key not in self._entries:
                return False
            self._remove_locked(key)
            return True

    def clear(self) -> None:
        """Remove all entries. In-flight computations are left running."""
        with self._lock:
            self._entries.clear()
            self._weighted_size = 0

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            return self._purge_expired_locked(self._clock())

    def _purge_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            self._remove_locked(k)
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def _make_room_locked(self, weight: int, now: float) -> None:
        if self._weighted_size + weight <= self._capacity:
            return
        self._purge_expired_locked(now)
        for k, entry in sorted(self._entries.items(), key=lambda item: item[1].expires_at):
            if self._weighted_size + weight <= self._capacity:
                break
            self._remove_locked(k)
            self._evictions += 1
            logger.debug(f"Evicted {k.kind.value} {k.username} ({entry.weight} bytes)")

    def _remove_locked(self, key: CacheKey) -> None:
        entry = self._entries.pop(key)
        self._weighted_size -= entry.weight

    # === Background sweeping ===

    def start_sweeper(self, interval: float) -> None:
        """Periodically purge expired entries on the running event loop."""
        if interval <= 0 or (self._sweeper and not self._sweeper.done()):
            return
        self._sweeper = asyncio.ensure_future(self._sweep_loop(interval))

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.purge_expired()

    async def close(self) -> None:
        """Stop the sweeper, if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    # === Monitoring ===

    def stats(self) -> CacheStats:
        with self._lock:
            entries_by_kind: Dict[str, int] = {}
            size_by_kind: Dict[str, int] = {}
            for key, entry in self._entries.items():
                kind = key.kind.value
                entries_by_kind[kind] = entries_by_kind.get(kind, 0) + 1
                size_by_kind[kind] = size_by_kind.get(kind, 0) + entry.weight
            return CacheStats(
                entry_count=len(self._entries),
                weighted_size=self._weighted_size,
                max_capacity=self._capacity,
                entries_by_kind=entries_by_kind,
                size_by_kind=size_by_kind,
                hits=self._hits,
                misses=self._misses,
                coalesced=self._coalesced,
                evictions=self._evictions,
                in_flight=len(self._pending),
            )


def _consume_outcome(task: asyncio.Task) -> None:
    """Retrieve the exception of a shared task whose waiters all went away."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Shared fetch failed: {exc}")
