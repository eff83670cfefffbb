"""
Stashbox — Cache Driver Interface

Defines the abstract contract that all cache drivers must implement.
"""

from abc import ABC, abstractmethod
from typing import Any


def validate_key(key: str) -> str:
    """Reject empty or non-string logical keys."""
    if not isinstance(key, str) or not key:
        raise ValueError("cache key must be a non-empty string")
    return key


class CacheDriver(ABC):
    """
    Abstract base class for cache drivers.

    A driver owns one backing resource (a directory, a connection) and maps
    logical keys to its own physical keys. ``init_driver`` must be awaited
    before any other operation.

    TTLs are expressed in milliseconds; ``None`` or ``0`` means no expiry.
    """

    #: Short backend name used in logs and errors
    backend: str = "abstract"

    @abstractmethod
    async def init_driver(self) -> None:
        """
        Prepare the backing resource.

        Raises:
            DriverInitError: If the resource cannot be created or reached
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """
        Store a value, overwriting any existing entry.

        Args:
            key: Logical cache key
            value: JSON-serializable value
            ttl: Time-to-live in milliseconds (None or 0 = no expiry)
        """

    @abstractmethod
    async def has(self, key: str) -> bool:
        """
        Check whether a live entry exists for the key.

        Returns:
            True if the entry exists and has not expired
        """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a stored value.

        Args:
            key: Logical cache key
            default: Returned when no entry exists

        Returns:
            The stored value, or default
        """

    @abstractmethod
    async def unset(self, key: str) -> None:
        """Delete the entry for the key. Missing keys are ignored."""

    async def close(self) -> None:
        """
        Release resources held by the driver.

        Default implementation does nothing.
        """
        return None
