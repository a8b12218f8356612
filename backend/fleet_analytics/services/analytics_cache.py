"""
In-memory result cache with request coalescing.

At most one computation is in flight per key: concurrent callers for the
same key await the same task. Successful results are kept for a TTL in a
bounded TTLCache; failures are not cached.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Hashable, Optional

from cachetools import TTLCache

from fleet_analytics.config import get_settings


logger = logging.getLogger(__name__)


class AnalyticsCache:
    """Cache keyed by (imei, start, end, strategy, timezone) style tuples."""

    def __init__(
        self,
        ttl_s: float = 60.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._results: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_s, timer=clock)
        self._inflight: dict[Hashable, asyncio.Task] = {}

    def __len__(self) -> int:
        self._results.expire()
        return len(self._results)

    def get(self, key: Hashable) -> Optional[Any]:
        return self._results.get(key)

    async def get_or_compute(self, key: Hashable, compute: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return a cached value or run compute() once for all waiting callers.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Analytics cache hit: {key}")
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, compute))
            self._inflight[key] = task
        else:
            logger.debug(f"Joining in-flight computation: {key}")

        return await asyncio.shield(task)

    async def _run(self, key: Hashable, compute: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await compute()
            if self.ttl_s > 0:
                self._results[key] = value
            return value
        finally:
            self._inflight.pop(key, None)

    def clear(self) -> None:
        self._results.clear()
        logger.info("Analytics cache cleared")


_cache: Optional[AnalyticsCache] = None


def get_analytics_cache() -> AnalyticsCache:
    """Get the global analytics cache."""
    global _cache
    if _cache is None:
        settings = get_settings()
        _cache = AnalyticsCache(ttl_s=settings.cache_ttl_s, max_entries=settings.cache_max_entries)
    return _cache


def init_analytics_cache(ttl_s: float, max_entries: Optional[int] = None) -> AnalyticsCache:
    """Replace the global analytics cache."""
    global _cache
    if max_entries is None:
        max_entries = get_settings().cache_max_entries
    _cache = AnalyticsCache(ttl_s=ttl_s, max_entries=max_entries)
    return _cache
