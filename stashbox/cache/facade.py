"""
Stashbox — Cache Facade

Single entry point for application code. A Cache holds one active driver,
forwards operations to it, and implements compute-or-fetch via call().

Usage:
    cache = Cache()
    await cache.set_driver(FilesystemCacheDriver("./storage/cache"))

    report = await cache.call("report:2024", lambda: build_report(2024), ttl=60_000)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import CacheError
from .interface import CacheDriver

logger = logging.getLogger(__name__)

#: Either a zero-argument callable (run only on a cache miss) or an
#: already-started awaitable (awaited only on a cache miss).
Producer = Callable[[], Any] | Awaitable[Any]


def _discard(producer: Producer) -> None:
    """Drop an unused producer; un-awaited coroutines are closed so they never run."""
    if inspect.iscoroutine(producer):
        producer.close()


async def _produce(producer: Producer) -> Any:
    if inspect.isawaitable(producer):
        return await producer
    result = producer()
    if inspect.isawaitable(result):
        result = await result
    return result


class Cache:
    """
    Caller-owned cache context holding one active driver.

    All operations propagate driver errors after logging them.
    Concurrent cold call() invocations for the same key each compute and
    write unless single_flight is enabled.
    """

    def __init__(self, single_flight: bool = False) -> None:
        """
        Initialize an empty cache facade.

        Args:
            single_flight: Share one producer run among concurrent cold call()s per key
        """
        self.single_flight = single_flight
        self._driver: CacheDriver | None = None
        self._in_flight: dict[str, asyncio.Future[Any]] = {}

    @property
    def driver(self) -> CacheDriver:
        if self._driver is None:
            raise CacheError("No cache driver configured; call set_driver() first")
        return self._driver

    async def set_driver(self, driver: CacheDriver) -> None:
        """
        Initialize a driver and make it the active one.

        The previous driver stays active if initialization fails.

        Raises:
            DriverInitError: If the driver cannot reach its backing resource
        """
        try:
            await driver.init_driver()
        except Exception as e:
            logger.error(
                f"Failed to initialize {driver.backend} cache driver: {e}",
                extra={"backend": driver.backend, "error": str(e)},
                exc_info=True,
            )
            raise

        self._driver = driver
        logger.info(f"Cache driver set: {driver.backend}", extra={"backend": driver.backend})

    def _log_failure(self, operation: str, key: str, error: Exception) -> None:
        logger.error(
            f"Cache {operation} failed for key '{key}': {error}",
            extra={"operation": operation, "key": key, "error": str(error)},
            exc_info=True,
        )

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value; ttl is in milliseconds (None or 0 = no expiry)."""
        driver = self.driver
        try:
            await driver.set(key, value, ttl)
        except Exception as e:
            self._log_failure("set", key, e)
            raise

    async def has(self, key: str) -> bool:
        driver = self.driver
        try:
            return await driver.has(key)
        except Exception as e:
            self._log_failure("has", key, e)
            raise

    async def get(self, key: str, default: Any = None) -> Any:
        driver = self.driver
        try:
            return await driver.get(key, default)
        except Exception as e:
            self._log_failure("get", key, e)
            raise

    async def unset(self, key: str) -> None:
        driver = self.driver
        try:
            await driver.unset(key)
        except Exception as e:
            self._log_failure("unset", key, e)
            raise

    async def call(self, key: str, producer: Producer, ttl: int | None = None) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.

        On a miss the produced value is stored and then read back, so the
        result has always passed through the driver's encoding.

        Args:
            key: Logical cache key
            producer: Zero-argument callable (sync or async) or an awaitable
            ttl: Time-to-live in milliseconds for a newly stored value

        Returns:
            The stored value
        """
        while True:
            if await self.has(key):
                _discard(producer)
                return await self.get(key)

            if not self.single_flight:
                return await self._compute(key, producer, ttl)

            pending = self._in_flight.get(key)
            if pending is None:
                return await self._lead(key, producer, ttl)

            logger.debug(f"Joining in-flight computation for key '{key}'")
            # wait() leaves the shared future alone if this caller is cancelled
            try:
                await asyncio.wait({pending})
            except asyncio.CancelledError:
                _discard(producer)
                raise
            if not pending.cancelled():
                _discard(producer)
                return pending.result()
            logger.debug(f"In-flight computation for key '{key}' was cancelled, retrying")

    async def _lead(self, key: str, producer: Producer, ttl: int | None) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            value = await self._compute(key, producer, ttl)
        except asyncio.CancelledError:
            # Waiting callers retry with their own producers
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure does not log twice
            future.exception()
            raise
        else:
            future.set_result(value)
            return value
        finally:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    async def _compute(self, key: str, producer: Producer, ttl: int | None) -> Any:
        logger.debug(f"Cache miss for key '{key}', computing value")
        value = await _produce(producer)
        await self.set(key, value, ttl)
        return await self.get(key)

    async def close(self) -> None:
        """Close the active driver, if any."""
        if self._driver is None:
            return
        try:
            await self._driver.close()
        finally:
            self._driver = None
