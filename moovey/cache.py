"""In-memory TTL cache for API responses.

Entries expire `ttl` milliseconds after they were written. Reads never return
an expired entry (and drop it on the way). `sweep()` removes every expired
entry and, when the cache has grown past `max_entries`, evicts the oldest
entries until fewer than `low_watermark` remain. `set()` runs a sweep on its
own whenever `sweep_interval_ms` has passed since the last one, so long-lived
sessions stay bounded without a background thread.

The cache is created per session and passed to whatever needs it; nothing in
this package keeps a module-level instance.
"""

import logging
import re
import threading
import time
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field

from moovey.models.constants import (
    DEFAULT_CACHE_TTL_MS,
    CACHE_MAX_ENTRIES,
    CACHE_LOW_WATERMARK,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheEntry(BaseModel):
    """One cached value."""

    key: str
    data: Any = None
    timestamp: int = Field(..., description="Write time (epoch ms)")
    ttl: int = Field(..., gt=0, description="Lifetime in ms")

    def is_valid(self, now: int) -> bool:
        return now - self.timestamp < self.ttl


class TTLCache:
    """Expiring key-value store with an upper bound on size."""

    def __init__(
        self,
        default_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        max_entries: int = CACHE_MAX_ENTRIES,
        low_watermark: int = CACHE_LOW_WATERMARK,
        sweep_interval_ms: Optional[int] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        """Initialize the cache.

        Args:
            default_ttl_ms: TTL used when `set` is called without one
            max_entries: Size above which `sweep` evicts oldest entries
            low_watermark: `sweep` evicts until the size is below this
            sweep_interval_ms: Minimum gap between automatic sweeps in `set`
                (defaults to the default TTL)
            clock: Returns the current time in epoch milliseconds
        """
        if low_watermark > max_entries:
            raise ValueError("low_watermark must not exceed max_entries")
        self.default_ttl_ms = default_ttl_ms
        self.max_entries = max_entries
        self.low_watermark = low_watermark
        self.sweep_interval_ms = sweep_interval_ms if sweep_interval_ms is not None else default_ttl_ms
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        """Return cached data, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss: {key}")
                return None
            if not entry.is_valid(self._clock()):
                del self._entries[key]
                logger.debug(f"Cache expired: {key}")
                return None
            logger.debug(f"Cache hit: {key}")
            return entry.data

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if not entry.is_valid(self._clock()):
                del self._entries[key]
                return False
            return True

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """Store or overwrite an entry stamped with the current time."""
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(
                key=key,
                data=data,
                timestamp=now,
                ttl=ttl if ttl is not None else self.default_ttl_ms,
            )
            if now - self._last_sweep >= self.sweep_interval_ms or len(self._entries) > self.max_entries:
                self.sweep()

    def invalidate(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                logger.debug(f"Cache invalidated: {key}")

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every entry whose key matches a regular expression.

        Returns:
            Number of entries removed
        """
        regex = re.compile(pattern)
        with self._lock:
            doomed = [key for key in self._entries if regex.search(key)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def sweep(self) -> int:
        """Remove expired entries, then trim the oldest if over `max_entries`.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            self._last_sweep = now
            expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
            for key in expired:
                del self._entries[key]
            removed = len(expired)

            if len(self._entries) > self.max_entries:
                oldest_first = sorted(self._entries.values(), key=lambda e: e.timestamp)
                overflow = len(self._entries) - self.low_watermark + 1
                for entry in oldest_first[:overflow]:
                    del self._entries[entry.key]
                removed += overflow

            if removed:
                logger.debug(f"Cache sweep removed {removed} entries, {len(self._entries)} left")
            return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def dispose(self) -> None:
        """Release everything at session teardown."""
        self.clear()
        logger.debug("Cache disposed")
