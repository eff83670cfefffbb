"""
Stashbox — Cache Drivers

Exports available cache driver implementations.

The Redis driver is lazy-loaded via factory.py to avoid import overhead.
"""

from .filesystem import FilesystemCacheDriver

__all__ = [
    "FilesystemCacheDriver",
]
