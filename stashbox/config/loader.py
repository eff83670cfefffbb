"""
Stashbox — Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import StashConfig

logger = logging.getLogger(__name__)

_config_instance: StashConfig | None = None


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer, got {raw!r}",
            details={"env": name, "value": raw},
        ) from e


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> StashConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated StashConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    if env_file:
        env_path = Path(env_file)
    else:
        env_path = Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    # Auto-detect driver: redis if a redis endpoint is configured, else filesystem
    redis_url = os.getenv("REDIS_URL")
    redis_host = os.getenv("REDIS_HOST")
    cache_driver = "redis" if (redis_url or redis_host) else "filesystem"

    config_dict = {
        "environment": os.getenv("ENVIRONMENT", "development"),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "cache": {
            "driver": os.getenv("CACHE_DRIVER", cache_driver),
            "single_flight": os.getenv("CACHE_SINGLE_FLIGHT", "false").lower() == "true",
            "filesystem": {
                "base_dir": os.getenv("CACHE_DIR", "./storage/cache"),
            },
            "redis": {
                "url": redis_url,
                "host": redis_host or "localhost",
                "port": _env_int("REDIS_PORT", "6379"),
                "username": os.getenv("REDIS_USERNAME"),
                "password": os.getenv("REDIS_PASSWORD"),
                "key_prefix": os.getenv("REDIS_CACHE_PREFIX", ""),
                "socket_timeout": _env_int("REDIS_SOCKET_TIMEOUT", "5"),
            },
        },
    }

    try:
        _config_instance = StashConfig(**config_dict)  # type: ignore[arg-type]
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment})",
            extra={"environment": _config_instance.environment, "cache_driver": _config_instance.cache.driver},
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
            exc_info=True,
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> StashConfig:
    """
    Get the current configuration instance, loading it on first access.

    Returns:
        Current StashConfig instance
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> StashConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded StashConfig instance
    """
    return load_config(env_file=env_file, reload=True)
