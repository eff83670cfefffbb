"""
Stashbox — Error Hierarchy Tests
"""

import pytest

from stashbox.errors import (
    CacheError,
    CacheTransportError,
    ConfigurationError,
    DriverInitError,
    EntryDecodeError,
    StashError,
)


class TestErrors:
    def test_driver_init_error_defaults(self) -> None:
        error = DriverInitError("redis", details={"host": "localhost"})

        assert isinstance(error, CacheError)
        assert error.backend == "redis"
        assert error.message == "Failed to initialize cache driver: redis"
        assert str(error) == error.message
        assert error.details == {"host": "localhost"}

    def test_details_default_to_empty(self) -> None:
        assert CacheError("boom").details == {}

    @pytest.mark.parametrize(
        ("error", "parent"),
        [
            (DriverInitError("filesystem"), CacheError),
            (CacheTransportError("reset"), CacheError),
            (EntryDecodeError("bad json"), CacheError),
            (CacheError("generic"), StashError),
            (ConfigurationError("missing"), StashError),
        ],
    )
    def test_hierarchy(self, error: Exception, parent: type[Exception]) -> None:
        assert isinstance(error, parent)
