"""
Tests for the request-coalescing analytics cache.
"""

import asyncio

import pytest

from fleet_analytics.services.analytics_cache import AnalyticsCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestAnalyticsCache:
    """Tests for caching and coalescing."""

    def test_concurrent_callers_share_one_computation(self):
        cache = AnalyticsCache(ttl_s=60.0)
        calls = []

        async def compute():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "result"

        async def main():
            return await asyncio.gather(*[cache.get_or_compute("k", compute) for _ in range(5)])

        results = asyncio.run(main())

        assert results == ["result"] * 5
        assert len(calls) == 1

    def test_result_is_cached_until_ttl(self):
        clock = FakeClock()
        cache = AnalyticsCache(ttl_s=10.0, clock=clock)
        calls = []

        async def compute():
            calls.append(1)
            return len(calls)

        assert asyncio.run(cache.get_or_compute("k", compute)) == 1
        clock.now = 5.0
        assert asyncio.run(cache.get_or_compute("k", compute)) == 1
        clock.now = 11.0
        assert asyncio.run(cache.get_or_compute("k", compute)) == 2

    def test_failures_are_not_cached(self):
        cache = AnalyticsCache(ttl_s=60.0)
        attempts = []

        async def compute():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("upstream down")
            return "ok"

        with pytest.raises(RuntimeError):
            asyncio.run(cache.get_or_compute("k", compute))

        assert asyncio.run(cache.get_or_compute("k", compute)) == "ok"
        assert len(attempts) == 2

    def test_zero_ttl_never_stores(self):
        cache = AnalyticsCache(ttl_s=0.0)

        async def compute():
            return "value"

        asyncio.run(cache.get_or_compute("k", compute))

        assert len(cache) == 0

    def test_keys_are_independent(self):
        cache = AnalyticsCache()

        async def main():
            a = await cache.get_or_compute(("a", 1), lambda: asyncio.sleep(0, result="A"))
            b = await cache.get_or_compute(("b", 1), lambda: asyncio.sleep(0, result="B"))
            return a, b

        assert asyncio.run(main()) == ("A", "B")
        assert len(cache) == 2

        cache.clear()
        assert len(cache) == 0

    def test_distinct_keys_stay_bounded(self):
        cache = AnalyticsCache(ttl_s=60.0, max_entries=16)

        async def main():
            for i in range(500):
                await cache.get_or_compute(("imei", i), lambda: asyncio.sleep(0, result="v"))

        asyncio.run(main())

        assert len(cache) == 16
        assert cache.get(("imei", 499)) == "v"
        assert cache.get(("imei", 0)) is None

    def test_expired_entries_are_dropped(self):
        clock = FakeClock()
        cache = AnalyticsCache(ttl_s=10.0, clock=clock)

        async def main():
            for key in ["a", "b", "c"]:
                await cache.get_or_compute(key, lambda: asyncio.sleep(0, result=key))

        asyncio.run(main())
        assert len(cache) == 3

        clock.now = 10.5
        assert len(cache) == 0
