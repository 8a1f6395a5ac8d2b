"""In-memory TTL cache for the current location result."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from location_engine.config.constants import DEFAULT_CACHE_TTL_SECONDS
from location_engine.models.domain import CacheEntry, LocationResult
from location_engine.observability.logger import get_logger

logger = get_logger("result_cache")


class ResultCache:
    """Single-slot cache ("current location") guarded by an asyncio lock.

    A read is honored only while ``now - cached_at < ttl``. Writes are
    last-writer-wins by ``observed_at``: an older result never replaces a
    newer one, so overlapping cycles cannot roll the cache back.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entry: CacheEntry | None = None
        self.hits = 0
        self.misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def get(self) -> LocationResult | None:
        async with self._lock:
            entry = self._entry
            if entry is None:
                self.misses += 1
                return None
            age = self._clock() - entry.cached_at
            if age >= self._ttl:
                self._entry = None
                self.misses += 1
                logger.debug("cache_expired", age_seconds=round(age, 1))
                return None
            self.hits += 1
            return entry.result

    async def put(self, result: LocationResult) -> bool:
        """Store ``result``. Returns False when a newer result is already cached."""
        async with self._lock:
            current = self._entry
            if current is not None and result.observed_at < current.result.observed_at:
                logger.info(
                    "cache_put_ignored",
                    incoming=result.observed_at.isoformat(),
                    cached=current.result.observed_at.isoformat(),
                )
                return False
            self._entry = CacheEntry(result=result, cached_at=self._clock())
            return True

    async def clear(self) -> None:
        async with self._lock:
            self._entry = None
        logger.info("cache_cleared")
