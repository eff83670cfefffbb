"""
Stashbox — Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is read from environment variables and validated at startup.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class CacheDriverKind(str, Enum):
    """Supported cache drivers."""

    FILESYSTEM = "filesystem"
    REDIS = "redis"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FilesystemConfig(BaseModel):
    """Filesystem driver configuration."""

    base_dir: str = Field(default="./storage/cache", description="Directory holding one file per cache entry")

    @field_validator("base_dir")
    @classmethod
    def validate_base_dir(cls, v: str) -> str:
        """Reject blank directories."""
        if not v.strip():
            raise ValueError("base_dir must not be empty")
        return v


class RedisConfig(BaseModel):
    """Redis driver configuration."""

    url: str | None = Field(default=None, description="Connection URL; takes precedence over host/port")
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    username: str | None = Field(default=None, description="Redis ACL username")
    password: str | None = Field(default=None, description="Redis password")
    key_prefix: str = Field(default="", description="Namespace prefix, normalized to snake_case")
    socket_timeout: int = Field(default=5, ge=1, description="Redis socket timeout in seconds")


class CacheConfig(BaseModel):
    """Cache configuration."""

    driver: CacheDriverKind = Field(default=CacheDriverKind.FILESYSTEM, description="Cache driver to use")
    filesystem: FilesystemConfig = Field(default_factory=FilesystemConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    single_flight: bool = Field(
        default=False,
        description="Share one producer run between concurrent cold call() invocations for the same key",
    )


class StashConfig(BaseModel):
    """Root configuration for Stashbox."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("cache")
    @classmethod
    def validate_cache(cls, v: CacheConfig, info: Any) -> CacheConfig:
        """Require an explicit prefix for a shared Redis in production."""
        environment = info.data.get("environment")
        if environment == Environment.PRODUCTION and v.driver == CacheDriverKind.REDIS and not v.redis.key_prefix:
            raise ValueError("REDIS_CACHE_PREFIX must be set when using the redis driver in production")
        return v

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
