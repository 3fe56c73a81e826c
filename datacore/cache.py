"""TTL Cache Store — per-key value + timestamp with explicit invalidation.

One instance is created at process start and injected into every reader.
Readers namespace their keys, so a global flush clears every store's entries.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import settings

logger = logging.getLogger(__name__)

_NEVER = float("-inf")


@dataclass
class CacheEntry:
    value: Any = None
    fetched_at: float = _NEVER
    has_value: bool = False


class TTLCacheStore:
    """In-memory cache with a shared TTL and optional per-key overrides."""

    def __init__(
        self,
        ttl: float = settings.CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self._clock = clock
        self._wall_clock = wall_clock
        self._entries: dict[str, CacheEntry] = {}
        self._ttl_overrides: dict[str, float] = {}
        self._lock = threading.Lock()
        self._last_write = int(wall_clock() * 1000)

    def ttl_for(self, key: str) -> float:
        return self._ttl_overrides.get(key, self.ttl)

    def set_ttl(self, key: str, ttl: Optional[float]) -> None:
        """Override the TTL of one key (None restores the shared TTL)."""
        with self._lock:
            if ttl is None:
                self._ttl_overrides.pop(key, None)
            else:
                self._ttl_overrides[key] = ttl

    def get(self, key: str) -> tuple[Any, bool]:
        """Return (value, hit). A hit means the entry is younger than its TTL."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.has_value:
                return None, False
            if self._clock() - entry.fetched_at < self.ttl_for(key):
                return entry.value, True
            return entry.value, False

    def peek(self, key: str) -> tuple[Any, bool]:
        """Return (value, present) ignoring freshness. Used for stale fallback."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.has_value:
                return None, False
            return entry.value, True

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value, fetched_at=self._clock(), has_value=True
            )

    def invalidate(self, key: Optional[str] = None) -> None:
        """Expire one key (or every key when key is None) and bump last_write.

        Values are kept so a failing refresh can still serve stale data.
        """
        with self._lock:
            if key is None:
                for entry in self._entries.values():
                    entry.fetched_at = _NEVER
                logger.debug("Cache flushed (%d keys)", len(self._entries))
            else:
                entry = self._entries.get(key)
                if entry is not None:
                    entry.fetched_at = _NEVER
                logger.debug("Cache invalidated: %s", key)
            self._last_write = int(self._wall_clock() * 1000)

    def invalidate_prefix(self, prefix: str) -> None:
        """Expire every key of one namespace."""
        with self._lock:
            for key, entry in self._entries.items():
                if key.startswith(prefix):
                    entry.fetched_at = _NEVER
            self._last_write = int(self._wall_clock() * 1000)
        logger.debug("Cache namespace invalidated: %s*", prefix)

    @property
    def last_write(self) -> int:
        """Epoch millis of the latest invalidation; polled by clients."""
        with self._lock:
            return self._last_write

    def clear(self) -> None:
        """Drop every entry. Called at shutdown."""
        with self._lock:
            self._entries.clear()
            self._ttl_overrides.clear()
