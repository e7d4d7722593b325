"""In-process key/value cache with absolute and sliding expiration.

``MemoryCache`` is the single-instance cache registered on
``app.state.memory_cache``. Entries expire either at an absolute deadline,
after a period without access (sliding), or whichever comes first when both
are set. Expired entries are evicted when they are next touched, and a
sweep of every entry runs on writes at most once per scan interval.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

DEFAULT_EXPIRATION_SCAN_SECONDS = 60.0


@dataclass
class CacheEntry:
    """A cached value and its expiration bookkeeping.

    Attributes:
        value: Cached value.
        absolute_expiration: Monotonic deadline, or None for no deadline.
        sliding_seconds: Idle period after which the entry expires, or None.
        last_accessed: Monotonic time of the last read or write.
    """

    value: Any
    absolute_expiration: float | None = None
    sliding_seconds: float | None = None
    last_accessed: float = 0.0

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has expired at ``now``."""
        if self.absolute_expiration is not None and now >= self.absolute_expiration:
            return True
        return (
            self.sliding_seconds is not None
            and now >= self.last_accessed + self.sliding_seconds
        )

    def remaining_seconds(self, now: float) -> float | None:
        """Seconds until expiry, or None when the entry never expires."""
        deadlines = []
        if self.absolute_expiration is not None:
            deadlines.append(self.absolute_expiration)
        if self.sliding_seconds is not None:
            deadlines.append(self.last_accessed + self.sliding_seconds)
        if not deadlines:
            return None
        return max(min(deadlines) - now, 0.0)


class MemoryCache:
    """Thread-safe in-memory cache.

    Args:
        default_ttl_seconds: Absolute expiration applied when ``set`` is
            called without one. None keeps entries until removed.
        clock: Monotonic time source, replaceable in tests.
        expiration_scan_seconds: Minimum time between sweeps for expired
            entries.
    """

    def __init__(
        self,
        default_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        expiration_scan_seconds: float = DEFAULT_EXPIRATION_SCAN_SECONDS,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._expiration_scan_seconds = expiration_scan_seconds
        self._last_scan = clock()

    def get(self, key: str, default: Any = None) -> Any:  # noqa: ANN401 - any cached value
        """Return the cached value for ``key`` or ``default`` when absent.

        Reading an entry with sliding expiration resets its idle timer.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.trace("Cache miss", cache_key=key)
                return default
            if entry.is_expired(now):
                del self._entries[key]
                logger.trace("Cache entry expired", cache_key=key)
                return default
            entry.last_accessed = now
            return entry.value

    def set(
        self,
        key: str,
        value: Any,  # noqa: ANN401 - any cached value
        *,
        ttl_seconds: float | None = None,
        sliding_seconds: float | None = None,
    ) -> None:
        """Store ``value`` under ``key``, replacing any existing entry.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl_seconds: Absolute expiration relative to now.
            sliding_seconds: Idle period after which the entry expires.

        Raises:
            ValueError: If an expiration is not positive.
        """
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds
        expirations = (("ttl_seconds", ttl), ("sliding_seconds", sliding_seconds))
        for name, seconds in expirations:
            if seconds is not None and seconds <= 0:
                msg = f"{name} must be positive, got {seconds}"
                raise ValueError(msg)

        now = self._clock()
        entry = CacheEntry(
            value=value,
            absolute_expiration=now + ttl if ttl is not None else None,
            sliding_seconds=sliding_seconds,
            last_accessed=now,
        )
        with self._lock:
            self._entries[key] = entry
            self._scan_for_expired(now)

    def _scan_for_expired(self, now: float) -> None:
        # Caller holds the lock
        if now - self._last_scan < self._expiration_scan_seconds:
            return
        self._last_scan = now
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted {} expired cache entries", len(expired))

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        *,
        ttl_seconds: float | None = None,
        sliding_seconds: float | None = None,
    ) -> Any:  # noqa: ANN401 - any cached value
        """Return the cached value, creating it with ``factory`` on a miss."""
        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = factory()
            self.set(
                key, value, ttl_seconds=ttl_seconds, sliding_seconds=sliding_seconds
            )
        return value

    def touch(self, key: str) -> bool:
        """Reset the idle timer of ``key``. Returns False if it is absent."""
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def remaining_seconds(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or None when it never expires."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.remaining_seconds(self._clock()) if entry else None

    def remove(self, key: str) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(
                1 for entry in self._entries.values() if not entry.is_expired(now)
            )
