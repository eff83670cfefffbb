"""
Stashbox — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    CacheConfig,
    CacheDriverKind,
    Environment,
    FilesystemConfig,
    LogLevel,
    RedisConfig,
    StashConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "StashConfig",
    # Enums
    "Environment",
    "CacheDriverKind",
    "LogLevel",
    # Config sections
    "CacheConfig",
    "FilesystemConfig",
    "RedisConfig",
]
