"""
Stashbox — Cache Entry Codec

Wraps a value with its absolute expiry and converts it to and from JSON text.

Expiry timestamps are epoch milliseconds. ``None`` means the entry never expires.
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from typing import Any

from ..errors import EntryDecodeError

__all__ = [
    "CacheEntry",
    "decode_entry",
    "encode_entry",
    "expires_at_for",
    "normalize_ttl",
    "now_ms",
]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def normalize_ttl(ttl: float | None) -> int | None:
    """
    Normalize a TTL to whole milliseconds.

    Fractional TTLs round up, so any positive TTL still expires.

    Args:
        ttl: Time-to-live in milliseconds (None or 0 = no expiry)

    Returns:
        Positive whole milliseconds, or None for no expiry

    Raises:
        ValueError: If ttl is negative or not a finite number
    """
    if ttl is None:
        return None
    if isinstance(ttl, bool) or not isinstance(ttl, int | float):
        raise ValueError(f"ttl must be a number of milliseconds, got {ttl!r}")
    if not math.isfinite(ttl) or ttl < 0:
        raise ValueError(f"ttl must be >= 0 milliseconds, got {ttl}")
    return math.ceil(ttl) or None


def expires_at_for(ttl: float | None, now: int | None = None) -> int | None:
    """
    Compute the absolute expiry for a TTL.

    Args:
        ttl: Time-to-live in milliseconds (None or 0 = no expiry)
        now: Reference time in epoch milliseconds (defaults to now_ms())

    Returns:
        Absolute expiry in epoch milliseconds, or None for no expiry

    Raises:
        ValueError: If ttl is not a valid TTL
    """
    ttl = normalize_ttl(ttl)
    if ttl is None:
        return None
    return (now_ms() if now is None else now) + ttl


@dataclass(frozen=True)
class CacheEntry:
    """A stored value plus its absolute expiry."""

    data: Any
    expires_at: int | None = None

    @classmethod
    def create(cls, data: Any, ttl: int | None = None) -> CacheEntry:
        return cls(data=data, expires_at=expires_at_for(ttl))

    def is_expired(self, now: int | None = None) -> bool:
        # An entry is still live at exactly its expiry instant
        if self.expires_at is None:
            return False
        return self.expires_at < (now_ms() if now is None else now)


def encode_entry(entry: CacheEntry) -> str:
    """
    Serialize an entry to JSON text.

    Raises:
        TypeError: If the value is not JSON-serializable
    """
    return json.dumps({"data": entry.data, "expires_at": entry.expires_at}, ensure_ascii=False)


def decode_entry(raw: str | bytes) -> CacheEntry:
    """
    Parse JSON text produced by encode_entry().

    Raises:
        EntryDecodeError: If the payload is not a well-formed entry
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EntryDecodeError("Cache entry is not valid UTF-8", details={"error": str(e)}) from e

    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise EntryDecodeError(
            "Cache entry is not valid JSON",
            details={"preview": raw[:100], "error": str(e)},
        ) from e

    if not isinstance(payload, dict) or "data" not in payload:
        raise EntryDecodeError("Cache entry is missing its data field", details={"preview": raw[:100]})

    expires_at = payload.get("expires_at")
    if expires_at is not None and (isinstance(expires_at, bool) or not isinstance(expires_at, int)):
        raise EntryDecodeError(
            "Cache entry has an invalid expiry",
            details={"expires_at": repr(expires_at)},
        )

    return CacheEntry(data=payload["data"], expires_at=expires_at)
