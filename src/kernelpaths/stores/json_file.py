"""JSON file store that survives process restarts."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, TypeVar, cast

import aiofiles
import aiofiles.os

from kernelpaths.stores.base import StoredValue

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JsonFileStore:
    """Async store persisted as a single JSON object.

    The file is read once, on first access. Every change rewrites it through
    a temporary file and a rename, so readers never see a partial document.
    An unreadable or corrupt file is treated as empty.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._values: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str, default: T | None = None) -> T | None:
        """Get the value for key, or default when absent."""
        async with self._lock:
            values = await self._load()
            if key not in values:
                return default
            return cast(T, copy.deepcopy(values[key]))

    async def set(self, key: str, value: StoredValue) -> None:
        """Store a value; None removes the key."""
        async with self._lock:
            values = await self._load()
            if value is None:
                if values.pop(key, None) is None:
                    return
            else:
                values[key] = copy.deepcopy(value)
            await self._flush(values)

    async def delete(self, key: str) -> None:
        """Delete a value."""
        await self.set(key, None)

    async def clear(self) -> None:
        """Remove every value."""
        async with self._lock:
            self._values = {}
            await self._flush(self._values)

    async def close(self) -> None:
        """Forget the in-memory copy; the next access re-reads the file."""
        async with self._lock:
            self._values = None

    async def _load(self) -> dict[str, Any]:
        if self._values is not None:
            return self._values
        self._values = {}
        if not await aiofiles.os.path.exists(self._path):
            return self._values
        try:
            async with aiofiles.open(self._path, encoding="utf-8") as f:
                data = json.loads(await f.read())
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable state file %s", self._path, exc_info=True)
            return self._values
        if isinstance(data, dict):
            self._values = data
        else:
            logger.warning("Ignoring state file %s: expected a JSON object", self._path)
        return self._values

    async def _flush(self, values: dict[str, Any]) -> None:
        await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
        temp_path = self._path.with_name(f".{self._path.name}.{os.getpid()}.tmp")
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(values, indent=2, sort_keys=True))
        await aiofiles.os.replace(temp_path, self._path)
