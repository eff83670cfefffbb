"""
Stashbox — Redis Cache Driver

Asynchronous Redis cache driver with:
- JSON serialization for values
- Native per-key expiry via PX milliseconds (Redis evicts, the driver never sweeps)
- snake_case namespace prefixing for safe multi-tenant usage

Requires: redis>=5.0 with asyncio support

Example:
    driver = RedisCacheDriver(RedisConfig(url="redis://localhost:6379/0", key_prefix="MyApp"))
    await driver.init_driver()
    await driver.set("greeting", {"msg": "hello"}, ttl=60_000)
    val = await driver.get("greeting")
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import urlparse

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from ...config import RedisConfig
from ...errors import CacheError, CacheTransportError, DriverInitError
from ..codec import normalize_ttl
from ..interface import CacheDriver, validate_key

logger = logging.getLogger(__name__)

_UPPER_RUN = re.compile(r"([A-Z])([A-Z])([a-z])")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def snake_case(value: str) -> str:
    """
    Normalize a prefix to snake_case.

    ``"MyApp"`` -> ``"my_app"``, ``"HTTPCache"`` -> ``"http_cache"``, ``"my-app"`` -> ``"my_app"``
    """
    value = _UPPER_RUN.sub(r"\1_\2\3", value.strip())
    value = _LOWER_UPPER.sub(r"\1_\2", value)
    return _SEPARATORS.sub("_", value).lower()


class RedisCacheDriver(CacheDriver):
    """
    Redis cache driver with JSON serialization and native TTL.

    Notes:
    - Keys are the snake_cased prefix concatenated with the logical key.
    - Values are stored as UTF-8 JSON strings.
    - TTL is applied via Redis PX milliseconds (None or 0 -> no expiry).
    - Transport failures after init surface as CacheTransportError.
    """

    backend = "redis"

    def __init__(self, config: RedisConfig, client: Redis | None = None) -> None:
        """
        Initialize Redis cache driver.

        Args:
            config: Connection and prefix settings
            client: Pre-built client to use instead of creating one in init_driver()
        """
        self.config = config
        self.prefix = snake_case(config.key_prefix)
        self._client: Redis | None = client
        self._owns_client = client is None
        self._initialized = False

        if config.url:
            parsed = urlparse(config.url)
            self.host = parsed.hostname or config.host
            self.port = parsed.port or config.port
        else:
            self.host = config.host
            self.port = config.port

    # ------------ Helpers ------------

    def _make_key(self, key: str) -> str:
        """Create prefixed key."""
        return f"{self.prefix}{validate_key(key)}"

    def _build_client(self) -> Redis:
        if self.config.url:
            return Redis.from_url(  # type: ignore[no-any-return]
                self.config.url,
                decode_responses=True,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_timeout,
                retry=Retry(NoBackoff(), 0),
            )
        return Redis(
            host=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.password,
            decode_responses=True,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_timeout,
            retry=Retry(NoBackoff(), 0),
        )

    @property
    def client(self) -> Redis:
        if self._client is None or not self._initialized:
            raise CacheError(
                "Redis cache driver used before init_driver()",
                details={"host": self.host, "port": self.port},
            )
        return self._client

    @staticmethod
    def _px(ttl: float | None) -> int | None:
        """PX milliseconds for a TTL, or None for no expiry."""
        return normalize_ttl(ttl)

    def _transport_error(self, operation: str, key: str, error: Exception) -> CacheTransportError:
        logger.error(
            f"Redis {operation} failed for key '{key}': {error}",
            extra={"key": key, "operation": operation, "host": self.host, "port": self.port, "error": str(error)},
            exc_info=True,
        )
        return CacheTransportError(
            f"Redis {operation} failed for key '{key}': {error}",
            details={"key": key, "operation": operation, "error": str(error)},
        )

    async def _discard_client(self) -> None:
        """Close a client this driver built and forget it."""
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing Redis client: {e}", extra={"error": str(e)})

    # ------------ Core Interface ------------

    async def init_driver(self) -> None:
        """Connect to Redis and verify the connection with PING."""
        if self._initialized:
            return

        if self._client is None:
            self._client = self._build_client()
            self._owns_client = True

        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            logger.error(
                f"Could not connect to redis server on [{self.host}:{self.port}].",
                extra={"host": self.host, "port": self.port, "error": str(e)},
                exc_info=True,
            )
            if self._owns_client:
                await self._discard_client()
            raise DriverInitError(
                self.backend,
                f"Could not connect to redis server on [{self.host}:{self.port}]: {e}",
                details={"host": self.host, "port": self.port, "error": str(e)},
            ) from e

        self._initialized = True
        logger.info(
            f"Connected to redis server on [{self.host}:{self.port}].",
            extra={"host": self.host, "port": self.port, "prefix": self.prefix},
        )

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value with optional TTL in milliseconds."""
        client = self.client
        ns_key = self._make_key(key)
        px = self._px(ttl)

        try:
            payload = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise CacheError(
                f"Failed to serialize value for key '{key}': {e}",
                details={"key": key, "value_type": type(value).__name__, "error": str(e)},
            ) from e

        try:
            await client.set(ns_key, payload, px=px)
        except RedisError as e:
            raise self._transport_error("set", key, e) from e

    async def has(self, key: str) -> bool:
        """Check if a key exists. Redis has already dropped expired keys."""
        client = self.client
        try:
            return int(await client.exists(self._make_key(key))) > 0
        except RedisError as e:
            raise self._transport_error("exists", key, e) from e

    async def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value by key."""
        client = self.client
        try:
            data = await client.get(self._make_key(key))
        except RedisError as e:
            raise self._transport_error("get", key, e) from e

        if data is None:
            return default

        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return json.loads(data)
        except ValueError as e:
            # Not written by this driver; hand back the raw string
            logger.warning(
                f"Failed to decode JSON from cache, returning raw data: {e}",
                extra={"key": key, "data_preview": data[:100], "error": str(e)},
            )
            return data

    async def unset(self, key: str) -> None:
        """Delete a single key."""
        client = self.client
        try:
            await client.delete(self._make_key(key))
        except RedisError as e:
            raise self._transport_error("delete", key, e) from e

    async def close(self) -> None:
        """Close the Redis client and release resources."""
        if self._client is None:
            return
        try:
            await self._client.aclose()
            logger.info(f"Closed Redis cache driver for [{self.host}:{self.port}]")
        except RedisError as e:
            logger.warning(f"Error closing Redis client: {e}", extra={"error": str(e)})
        finally:
            self._client = None
            self._initialized = False
