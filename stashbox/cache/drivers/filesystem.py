"""
Stashbox — Filesystem Cache Driver

Stores each entry as a JSON file under a base directory:
- File names are the SHA-256 hex digest of the logical key (bounded, filesystem-safe)
- Entries carry an absolute expiry in epoch milliseconds
- Expired entries are swept lazily by has()
- Unreadable or corrupt files are treated as missing

Example:
    driver = FilesystemCacheDriver("./storage/cache")
    await driver.init_driver()
    await driver.set("greeting", {"msg": "hello"}, ttl=60_000)
    val = await driver.get("greeting")
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiofiles
import aiofiles.os

from ...errors import CacheError, DriverInitError, EntryDecodeError
from ..codec import CacheEntry, decode_entry, encode_entry
from ..interface import CacheDriver, validate_key

logger = logging.getLogger(__name__)


class FilesystemCacheDriver(CacheDriver):
    """
    Filesystem cache driver with JSON entries and lazy expiry.

    Notes:
    - get() returns stored data without checking expiry; has() is the expiry gate.
    - Writes go to a temporary file that is then renamed over the target.
    """

    backend = "filesystem"

    def __init__(self, base_dir: str | Path) -> None:
        """
        Initialize filesystem cache driver.

        Args:
            base_dir: Directory that will hold one file per entry
        """
        self.base_dir = Path(base_dir)

    # ------------ Helpers ------------

    def _make_path(self, key: str) -> Path:
        """Map a logical key to its entry file."""
        digest = hashlib.sha256(validate_key(key).encode("utf-8")).hexdigest()
        return self.base_dir / digest

    async def _read_raw(self, path: Path) -> str | None:
        """Read an entry file. Any read failure yields None."""
        try:
            async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(
                f"Failed to read cache file {path.name}: {e}",
                extra={"path": str(path), "error": str(e)},
            )
            return None

    async def _read_entry(self, key: str) -> CacheEntry | None:
        """Load and decode the entry for a key, or None if absent or corrupt."""
        path = self._make_path(key)
        raw = await self._read_raw(path)
        if raw is None:
            return None

        try:
            return decode_entry(raw)
        except EntryDecodeError as e:
            logger.warning(
                f"Ignoring corrupt cache entry for key '{key}': {e.message}",
                extra={"key": key, "path": str(path), **e.details},
            )
            return None

    async def _remove_temp(self, tmp_path: Path) -> None:
        """Best-effort cleanup of a temporary file left by a failed write."""
        try:
            await aiofiles.os.remove(tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                f"Failed to remove temporary cache file {tmp_path.name}: {e}",
                extra={"path": str(tmp_path), "error": str(e)},
            )

    # ------------ Core Interface ------------

    async def init_driver(self) -> None:
        """Create the base directory if it does not exist."""
        try:
            await aiofiles.os.makedirs(self.base_dir, exist_ok=True)
        except OSError as e:
            logger.error(
                f"Could not create cache directory {self.base_dir}: {e}",
                extra={"path": str(self.base_dir), "error": str(e)},
                exc_info=True,
            )
            raise DriverInitError(
                self.backend,
                f"Could not create cache directory {self.base_dir}: {e}",
                details={"path": str(self.base_dir), "error": str(e)},
            ) from e

        logger.debug(f"Filesystem cache ready at {self.base_dir}")

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Write an entry, replacing any existing file."""
        path = self._make_path(key)
        entry = CacheEntry.create(value, ttl)

        try:
            payload = encode_entry(entry)
        except (TypeError, ValueError) as e:
            raise CacheError(
                f"Failed to serialize value for key '{key}': {e}",
                details={"key": key, "value_type": type(value).__name__, "error": str(e)},
            ) from e

        tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            await self._remove_temp(tmp_path)
            raise CacheError(
                f"Failed to write cache file for key '{key}': {e}",
                details={"key": key, "path": str(path), "error": str(e)},
            ) from e

    async def has(self, key: str) -> bool:
        """Check for a live entry, deleting it if it has expired."""
        entry = await self._read_entry(key)
        if entry is None:
            return False

        if entry.is_expired():
            logger.debug(f"Sweeping expired cache entry for key '{key}'")
            await self.unset(key)
            return False

        return True

    async def get(self, key: str, default: Any = None) -> Any:
        """Return stored data, or default if there is no readable entry."""
        entry = await self._read_entry(key)
        if entry is None:
            return default
        return entry.data

    async def unset(self, key: str) -> None:
        """Delete the entry file if present."""
        path = self._make_path(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise CacheError(
                f"Failed to delete cache file for key '{key}': {e}",
                details={"key": key, "path": str(path), "error": str(e)},
            ) from e
