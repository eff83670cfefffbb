"""
Stashbox - Core Error Types

Defines the exception hierarchy for the cache runtime.
All exceptions inherit from StashError for consistent error handling.
"""

from typing import Any


class StashError(Exception):
    """Base exception for all Stashbox errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StashError):
    """Raised when configuration is invalid or missing."""

    pass


class CacheError(StashError):
    """Base exception for cache-related errors."""

    pass


class DriverInitError(CacheError):
    """Raised when a driver cannot prepare its backing resource."""

    def __init__(self, backend: str, message: str | None = None, details: dict[str, Any] | None = None):
        self.backend = backend
        super().__init__(message or f"Failed to initialize cache driver: {backend}", details)


class CacheTransportError(CacheError):
    """Raised when the remote store fails after a successful init."""

    pass


class EntryDecodeError(CacheError):
    """Raised when a stored cache entry cannot be decoded."""

    pass
