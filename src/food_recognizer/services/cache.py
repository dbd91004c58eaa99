"""Bounded, time-limited cache for recognition results."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from food_recognizer.domain.recognition import RecognitionResult

_logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(tz=UTC)


@dataclass
class _CacheEntry:
    key: str
    value: RecognitionResult
    inserted_at: datetime


class ResultCache:
    """In-memory result cache keyed by image fingerprint.

    Entries expire ``ttl_seconds`` after insertion and are purged lazily when
    read. When the cache is full the entry with the oldest insertion time is
    evicted, regardless of how often it was read. All operations run under
    one lock, so overlapping requests cannot break the capacity bound.
    """

    def __init__(
        self,
        capacity: int = 50,
        ttl_seconds: float = 3600,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.capacity = capacity
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        # Insertion-ordered: the first entry is always the oldest.
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> RecognitionResult | None:
        """Return a live cached result, or None."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.inserted_at > self.ttl:
                del self._entries[key]
                _logger.debug("Result cache entry expired: key=%s", key)
                return None
            return entry.value

    async def put(self, key: str, value: RecognitionResult) -> None:
        """Store a result, evicting the oldest entry when full."""
        async with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.capacity:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
                _logger.debug("Result cache evicted: key=%s", oldest_key)
            self._entries[key] = _CacheEntry(
                key=key, value=value, inserted_at=self._clock()
            )

    async def clear(self) -> None:
        """Drop every entry."""
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
