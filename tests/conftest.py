"""
Stashbox — Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any

import fakeredis
import pytest

from stashbox.cache.drivers.filesystem import FilesystemCacheDriver
from stashbox.cache.drivers.redis import RedisCacheDriver
from stashbox.config import RedisConfig

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"

_CONFIG_ENV_VARS = (
    "CACHE_DRIVER",
    "CACHE_DIR",
    "CACHE_SINGLE_FLIGHT",
    "REDIS_URL",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_USERNAME",
    "REDIS_PASSWORD",
    "REDIS_CACHE_PREFIX",
    "REDIS_SOCKET_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Start every test from an unset cache environment and a fresh config singleton."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")
    # Keep load_config() from picking up a developer's .env
    monkeypatch.chdir(Path(__file__).parent)

    from stashbox.config import loader

    loader._config_instance = None
    yield
    loader._config_instance = None


@pytest.fixture
def temp_cache_dir(tmp_path: Path) -> Path:
    """Directory path for filesystem cache testing (not created yet)."""
    return tmp_path / "cache"


@pytest.fixture
async def fs_driver(temp_cache_dir: Path) -> FilesystemCacheDriver:
    """Initialized filesystem driver in a temporary directory."""
    driver = FilesystemCacheDriver(temp_cache_dir)
    await driver.init_driver()
    return driver


@pytest.fixture
def fake_redis() -> fakeredis.FakeAsyncRedis:
    """In-process Redis double with real expiry semantics."""
    return fakeredis.FakeAsyncRedis(decode_responses=True)


@pytest.fixture
async def redis_driver(fake_redis: fakeredis.FakeAsyncRedis) -> AsyncGenerator[RedisCacheDriver, None]:
    """Initialized Redis driver backed by fakeredis."""
    driver = RedisCacheDriver(RedisConfig(key_prefix="TestApp"), client=fake_redis)
    await driver.init_driver()
    yield driver
    await fake_redis.flushall()
    await driver.close()


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing."""
    return {
        "simple_string": "hello",
        "simple_int": 42,
        "simple_float": 3.14,
        "simple_bool": True,
        "simple_none": None,
        "complex_dict": {
            "nested": {
                "key": "value",
                "number": 123,
                "list": [1, 2, 3],
            }
        },
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
    }
