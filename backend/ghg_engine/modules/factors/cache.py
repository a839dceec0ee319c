"""Process-local TTL cache for resolved emission factors.

Entries are stored with the clock reading at insertion time and are
evicted lazily: a lookup that finds an entry older than the TTL drops
it and reports a miss. The cache is bounded; inserting into a full
cache evicts the oldest entry first. Each process holds its own cache; there is no
cross-process invalidation.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from ghg_engine.core.config import get_settings
from ghg_engine.core.logging import get_logger
from ghg_engine.modules.factors.schemas import Factor

logger = get_logger(__name__)

Clock = Callable[[], float]


class FactorCache:
    """Key -> (factor, timestamp) store with lazy expiry.

    Usage::

        cache = FactorCache(ttl_seconds=3600)
        cache.set("stationary_fuel:fuel_type=natural gas:GHG_PROTOCOL", factor)
        cached = cache.get("stationary_fuel:fuel_type=natural gas:GHG_PROTOCOL")
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        *,
        max_entries: int = 1024,
        clock: Clock = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[Factor, float]] = {}

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def get(self, key: str) -> Factor | None:
        """Return the cached factor, or ``None`` when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        factor, stored_at = entry
        if self._clock() - stored_at > self._ttl_seconds:
            self._entries.pop(key, None)
            logger.debug("factor_cache_expired", key=key)
            return None
        return factor

    def set(self, key: str, factor: Factor) -> None:
        # Re-inserting moves the key to the back of the eviction order
        self._entries.pop(key, None)
        if len(self._entries) >= self._max_entries:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
        self._entries[key] = (factor, self._clock())

    def clear(self) -> int:
        """Drop every entry and return how many were held."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("factor_cache_cleared", evicted=count)
        return count

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "ttl_seconds": self._ttl_seconds,
            "max_entries": self._max_entries,
        }


# Module-level singleton shared by every resolver in the process
_cache: FactorCache | None = None


def get_factor_cache() -> FactorCache:
    """Return the process-wide factor cache, creating it on first use."""
    global _cache  # noqa: PLW0603
    if _cache is None:
        settings = get_settings()
        _cache = FactorCache(
            ttl_seconds=settings.factor_cache_ttl_seconds,
            max_entries=settings.factor_cache_max_entries,
        )
    return _cache


def reset_factor_cache() -> None:
    """Forget the process-wide cache so the next call rebuilds it from settings."""
    global _cache  # noqa: PLW0603
    _cache = None
