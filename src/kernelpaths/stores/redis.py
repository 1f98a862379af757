"""Redis-backed durable store."""

from __future__ import annotations

import json
from typing import Any, TypeVar, cast

from kernelpaths.stores.base import StoredValue

T = TypeVar("T")


class RedisStore:
    """Async Redis store. Values are JSON-encoded under a key prefix."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "kernelpaths",
    ) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "kernelpaths") -> RedisStore:
        """Create a store with its own client for url."""
        import redis.asyncio

        return cls(redis.asyncio.Redis.from_url(url), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}:state:{key}"

    async def get(self, key: str, default: T | None = None) -> T | None:
        """Get the value for key, or default when absent."""
        data = await self._client.get(self._key(key))
        if data is None:
            return default
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return cast(T, json.loads(data))

    async def set(self, key: str, value: StoredValue) -> None:
        """Store a value; None removes the key."""
        if value is None:
            await self.delete(key)
            return
        await self._client.set(self._key(key), json.dumps(value))

    async def delete(self, key: str) -> None:
        """Delete a value."""
        await self._client.delete(self._key(key))

    async def clear(self) -> None:
        """Delete every value under the prefix."""
        # SCAN so large keyspaces are not blocked
        cursor: int = 0
        pattern = f"{self._prefix}:state:*"
        while True:
            cursor, keys = await self._client.scan(cursor, match=pattern, count=100)
            if keys:
                await self._client.delete(*keys)
            if cursor == 0:
                break

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
