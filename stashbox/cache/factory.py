"""
Stashbox — Cache Factory

Canonical factory for creating cache drivers and facades based on configuration.

Key points:
- Driver selection happens here and only here (CACHE_DRIVER=filesystem|redis)
- Defaults to filesystem unless a Redis endpoint is configured
- All configuration is typed and validated via Pydantic models

Examples:
    from stashbox.cache.factory import create_cache

    # Uses env-configured driver
    cache = await create_cache()

    # Or explicitly supply a CacheConfig (e.g., for tests)
    from stashbox.config import CacheConfig, CacheDriverKind, FilesystemConfig
    cfg = CacheConfig(driver=CacheDriverKind.FILESYSTEM, filesystem=FilesystemConfig(base_dir="/tmp/cache"))
    cache = await create_cache(cfg)
"""

from __future__ import annotations

import logging

from ..config import CacheConfig, CacheDriverKind, get_config
from ..errors import ConfigurationError
from .drivers.filesystem import FilesystemCacheDriver
from .facade import Cache
from .interface import CacheDriver

logger = logging.getLogger(__name__)


def _create_filesystem_driver(config: CacheConfig) -> CacheDriver:
    """Internal helper to construct a filesystem cache driver."""
    return FilesystemCacheDriver(config.filesystem.base_dir)


def _create_redis_driver(config: CacheConfig) -> CacheDriver:
    """Internal helper to construct a redis cache driver with lazy import."""
    try:
        from .drivers.redis import RedisCacheDriver
    except ImportError as e:
        logger.error(
            "Redis driver selected but redis client is not installed",
            extra={"package": "redis>=5.0.0", "error": str(e)},
        )
        raise ConfigurationError(
            "Redis driver selected but redis client is unavailable. Install with: pip install 'redis>=5.0.0'",
            details={"package": "redis>=5.0.0", "error": str(e), "driver": "redis"},
        ) from e

    return RedisCacheDriver(config.redis)


def create_driver(config: CacheConfig | None = None) -> CacheDriver:
    """
    Create an uninitialized cache driver based on configuration.

    Args:
        config: Cache configuration (uses global config if not provided)

    Returns:
        Configured cache driver; await init_driver() or Cache.set_driver() before use

    Raises:
        ConfigurationError: If the driver is unknown or unavailable
    """
    if config is None:
        config = get_config().cache

    driver_kind = CacheDriverKind(config.driver)
    logger.info(f"Creating cache driver: {driver_kind.value}", extra={"driver": driver_kind.value})

    if driver_kind == CacheDriverKind.FILESYSTEM:
        return _create_filesystem_driver(config)
    if driver_kind == CacheDriverKind.REDIS:
        return _create_redis_driver(config)

    raise ConfigurationError(
        f"Unknown cache driver: {config.driver}",
        details={"driver": str(config.driver), "supported": [k.value for k in CacheDriverKind]},
    )


async def create_cache(config: CacheConfig | None = None) -> Cache:
    """
    Create a Cache facade with an initialized driver.

    Args:
        config: Cache configuration (uses global config if not provided)

    Returns:
        Ready-to-use Cache

    Raises:
        ConfigurationError: If the driver is unknown or unavailable
        DriverInitError: If the driver cannot reach its backing resource
    """
    if config is None:
        config = get_config().cache

    cache = Cache(single_flight=config.single_flight)
    await cache.set_driver(create_driver(config))
    return cache
