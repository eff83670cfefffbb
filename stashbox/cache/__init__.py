"""
Stashbox — Cache Module

Key-value caching over interchangeable drivers.

- interface.py: Abstract driver contract all drivers must implement
- codec.py: Entry encoding with absolute expiry
- drivers/: Filesystem and Redis drivers
- facade.py: Cache, the caller-owned entry point with compute-or-fetch
- factory.py: Driver selection from configuration

Usage:
    from stashbox.cache import create_cache

    cache = await create_cache()
    await cache.set("key", "value", ttl=60_000)
    value = await cache.get("key")
"""

from .codec import CacheEntry
from .drivers import FilesystemCacheDriver
from .facade import Cache, Producer
from .factory import create_cache, create_driver
from .interface import CacheDriver

__all__ = [
    "Cache",
    "CacheDriver",
    "CacheEntry",
    "FilesystemCacheDriver",
    "Producer",
    "create_cache",
    "create_driver",
]
