"""In-memory store, for tests and sessions without persistence."""

import asyncio
import copy
from typing import Any, TypeVar, cast

from kernelpaths.stores.base import StoredValue

T = TypeVar("T")


class MemoryStore:
    """Async in-memory store. Values are copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, key: str, default: T | None = None) -> T | None:
        """Get the value for key, or default when absent."""
        async with self._lock:
            if key not in self._values:
                return default
            return cast(T, copy.deepcopy(self._values[key]))

    async def set(self, key: str, value: StoredValue) -> None:
        """Store a value; None removes the key."""
        async with self._lock:
            if value is None:
                self._values.pop(key, None)
            else:
                self._values[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        """Delete a value."""
        async with self._lock:
            self._values.pop(key, None)

    async def clear(self) -> None:
        """Remove every value."""
        async with self._lock:
            self._values.clear()

    async def close(self) -> None:
        """Nothing to release for memory."""
        pass
