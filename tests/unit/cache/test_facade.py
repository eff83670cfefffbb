"""
Stashbox — Cache Facade Tests

Tests pass-through behaviour, error logging and propagation, and the
compute-or-fetch helper on cold and warm paths, with and without single flight.
"""

import asyncio
import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest

from stashbox.cache.drivers.filesystem import FilesystemCacheDriver
from stashbox.cache.facade import Cache
from stashbox.cache.interface import CacheDriver
from stashbox.errors import CacheError, CacheTransportError, DriverInitError


@pytest.fixture
async def cache(fs_driver: FilesystemCacheDriver) -> Cache:
    cache = Cache()
    await cache.set_driver(fs_driver)
    return cache


class CountingProducer:
    """Async producer that records how often it ran."""

    def __init__(self, value: Any, delay: float = 0.0) -> None:
        self.value = value
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.value


class TestCacheFacade:
    """Pass-through operations."""

    async def test_operations_require_driver(self) -> None:
        cache = Cache()
        with pytest.raises(CacheError):
            await cache.get("key")

    async def test_set_driver_initializes_driver(self, temp_cache_dir: Any) -> None:
        cache = Cache()
        await cache.set_driver(FilesystemCacheDriver(temp_cache_dir))

        assert temp_cache_dir.is_dir()

    async def test_set_driver_failure_keeps_previous_driver(
        self, cache: Cache, fs_driver: FilesystemCacheDriver
    ) -> None:
        broken = AsyncMock(spec=CacheDriver)
        broken.backend = "broken"
        broken.init_driver.side_effect = DriverInitError("broken")

        with pytest.raises(DriverInitError):
            await cache.set_driver(broken)

        assert cache.driver is fs_driver

    async def test_round_trip(self, cache: Cache, sample_cache_data: dict[str, Any]) -> None:
        for key, value in sample_cache_data.items():
            await cache.set(key, value)

        for key, value in sample_cache_data.items():
            assert await cache.has(key) is True
            assert await cache.get(key) == value

    async def test_unset_then_has(self, cache: Cache) -> None:
        await cache.unset("never-set")
        await cache.set("key", "value")
        await cache.unset("key")

        assert await cache.has("key") is False

    async def test_expiry(self, cache: Cache) -> None:
        await cache.set("key", "value", ttl=100)
        assert await cache.has("key") is True

        await asyncio.sleep(0.15)
        assert await cache.has("key") is False

    async def test_driver_errors_logged_and_propagated(self, caplog: pytest.LogCaptureFixture) -> None:
        driver = AsyncMock(spec=CacheDriver)
        driver.backend = "mock"
        error = CacheTransportError("boom")
        driver.get.side_effect = error
        cache = Cache()
        await cache.set_driver(driver)

        with caplog.at_level(logging.ERROR, logger="stashbox.cache.facade"):
            with pytest.raises(CacheTransportError) as exc_info:
                await cache.get("key")

        assert exc_info.value is error
        assert "Cache get failed for key 'key'" in caplog.text

    async def test_close_closes_driver(self) -> None:
        driver = AsyncMock(spec=CacheDriver)
        driver.backend = "mock"
        cache = Cache()
        await cache.set_driver(driver)

        await cache.close()

        driver.close.assert_awaited_once()
        with pytest.raises(CacheError):
            await cache.has("key")


class TestComputeOrFetch:
    """Cache.call() behaviour."""

    async def test_cold_path_invokes_producer_once(self, cache: Cache) -> None:
        producer = CountingProducer({"answer": 42})

        assert await cache.call("key", producer) == {"answer": 42}
        assert producer.calls == 1

        # Subsequent reads come from the cache
        assert await cache.get("key") == {"answer": 42}
        assert await cache.call("key", producer) == {"answer": 42}
        assert producer.calls == 1

    async def test_warm_path_skips_lazy_producer(self, cache: Cache) -> None:
        await cache.set("key", "stored")
        producer = CountingProducer("fresh")

        assert await cache.call("key", producer) == "stored"
        assert producer.calls == 0

    async def test_warm_path_closes_unawaited_coroutine(self, cache: Cache) -> None:
        await cache.set("key", "stored")
        producer = CountingProducer("fresh")
        coro = producer()

        assert await cache.call("key", coro) == "stored"
        assert producer.calls == 0
        assert coro.cr_frame is None

    async def test_cold_path_awaits_started_task(self, cache: Cache) -> None:
        producer = CountingProducer("computed")
        task = asyncio.ensure_future(producer())

        assert await cache.call("key", task, ttl=60_000) == "computed"
        assert producer.calls == 1

    async def test_sync_callable_producer(self, cache: Cache) -> None:
        assert await cache.call("key", lambda: [1, 2, 3]) == [1, 2, 3]

    async def test_returns_round_tripped_value(self, cache: Cache) -> None:
        # Tuples come back as lists after JSON encoding
        assert await cache.call("key", lambda: (1, 2)) == [1, 2]

    async def test_expired_entry_recomputed(self, cache: Cache) -> None:
        producer = CountingProducer("v")

        await cache.call("key", producer, ttl=50)
        await asyncio.sleep(0.1)
        await cache.call("key", producer, ttl=50)

        assert producer.calls == 2

    async def test_producer_error_propagates_and_nothing_stored(self, cache: Cache) -> None:
        async def failing() -> Any:
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            await cache.call("key", failing)

        assert await cache.has("key") is False

    async def test_concurrent_cold_calls_race_without_single_flight(self, cache: Cache) -> None:
        producer = CountingProducer("v", delay=0.05)

        results = await asyncio.gather(*(cache.call("key", producer) for _ in range(3)))

        assert results == ["v", "v", "v"]
        assert producer.calls == 3

    async def test_single_flight_shares_one_computation(self, fs_driver: FilesystemCacheDriver) -> None:
        cache = Cache(single_flight=True)
        await cache.set_driver(fs_driver)
        producer = CountingProducer("v", delay=0.05)

        results = await asyncio.gather(*(cache.call("key", producer) for _ in range(5)))

        assert results == ["v"] * 5
        assert producer.calls == 1
        assert cache._in_flight == {}

    async def test_single_flight_shares_failure(self, fs_driver: FilesystemCacheDriver) -> None:
        cache = Cache(single_flight=True)
        await cache.set_driver(fs_driver)
        calls = 0

        async def failing() -> Any:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)
            raise RuntimeError("upstream down")

        results = await asyncio.gather(*(cache.call("key", failing) for _ in range(3)), return_exceptions=True)

        assert calls == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert cache._in_flight == {}

    async def test_single_flight_keys_independent(self, fs_driver: FilesystemCacheDriver) -> None:
        cache = Cache(single_flight=True)
        await cache.set_driver(fs_driver)
        first = CountingProducer("a", delay=0.02)
        second = CountingProducer("b", delay=0.02)

        results = await asyncio.gather(cache.call("a", first), cache.call("b", second))

        assert results == ["a", "b"]
        assert (first.calls, second.calls) == (1, 1)

    async def test_single_flight_cancelled_leader_lets_waiters_recompute(
        self, fs_driver: FilesystemCacheDriver
    ) -> None:
        cache = Cache(single_flight=True)
        await cache.set_driver(fs_driver)
        slow = CountingProducer("slow", delay=1.0)
        fallback = CountingProducer("v")

        leader = asyncio.create_task(cache.call("key", slow))
        await asyncio.sleep(0.01)
        waiter = asyncio.create_task(cache.call("key", fallback))
        await asyncio.sleep(0.01)
        leader.cancel()

        assert await waiter == "v"
        assert fallback.calls == 1
        with pytest.raises(asyncio.CancelledError):
            await leader
        assert cache._in_flight == {}

    async def test_single_flight_cancelled_waiter_leaves_leader_running(
        self, fs_driver: FilesystemCacheDriver
    ) -> None:
        cache = Cache(single_flight=True)
        await cache.set_driver(fs_driver)
        producer = CountingProducer("v", delay=0.05)

        leader = asyncio.create_task(cache.call("key", producer))
        await asyncio.sleep(0.01)
        waiter = asyncio.create_task(cache.call("key", producer))
        await asyncio.sleep(0.01)
        waiter.cancel()

        assert await leader == "v"
        assert producer.calls == 1
        with pytest.raises(asyncio.CancelledError):
            await waiter
