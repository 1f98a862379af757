"""MemoizedAsyncCache - keyed cache of asynchronous computations.

Provides:
- lookup()/get(): one in-flight computation per key (request coalescing)
- optional TTL with lazy expiry, measured from settlement
- invalidate(): drop some or all keys
- evict(): drop a key only while it still holds a given computation
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

from kernelpaths.duration import parse_duration
from kernelpaths.types import CacheRecord, Duration

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class MemoizedAsyncCache(Generic[K, V]):
    """Async memoization with coalescing, optional TTL and explicit invalidation.

    Usage:
        cache = MemoizedAsyncCache[str, list[Path]](ttl="60s")
        paths = await cache.get("", compute_paths)
        cache.invalidate("")      # one key
        cache.invalidate()        # every key
    """

    def __init__(
        self,
        *,
        ttl: Duration | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> None:
        self._ttl = parse_duration(ttl) if ttl is not None else None
        self._clock = clock
        self._name = name
        self._records: dict[K, CacheRecord[V]] = {}

    @property
    def ttl(self) -> float | None:
        """Lifetime of a resolved record in seconds, None for no expiry."""
        return self._ttl

    def lookup(self, key: K, compute: Callable[[], Awaitable[V]]) -> asyncio.Future[V]:
        """Return the shared computation for key, starting one if needed.

        Must be called from a running event loop.
        """
        record = self._records.get(key)
        if record is not None and self._is_usable(record):
            return record.task

        logger.debug("%s: computing %r", self._name, key)
        task = asyncio.ensure_future(compute())
        self._records[key] = CacheRecord(task=task, created_at=self._clock())
        task.add_done_callback(lambda done: self._settle(key, done))
        return task

    async def get(self, key: K, compute: Callable[[], Awaitable[V]]) -> V:
        """Cached result of compute for key.

        A caller that is cancelled while waiting does not cancel the
        computation other callers share.
        """
        return await asyncio.shield(self.lookup(key, compute))

    def invalidate(self, *keys: K) -> None:
        """Force keys back to Empty. With no keys, clear everything."""
        if not keys:
            if self._records:
                logger.debug("%s: cleared %d record(s)", self._name, len(self._records))
            self._records.clear()
            return
        for key in keys:
            if self._records.pop(key, None) is not None:
                logger.debug("%s: invalidated %r", self._name, key)

    def evict(self, key: K, task: asyncio.Future[V]) -> bool:
        """Drop key only if its record still holds task."""
        record = self._records.get(key)
        if record is None or record.task is not task:
            return False
        del self._records[key]
        logger.debug("%s: evicted %r", self._name, key)
        return True

    def keys(self) -> list[K]:
        return [key for key, record in self._records.items() if self._is_usable(record)]

    def __contains__(self, key: object) -> bool:
        record = self._records.get(key)  # type: ignore[call-overload]
        return record is not None and self._is_usable(record)

    def __len__(self) -> int:
        return len(self.keys())

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _settle(self, key: K, task: asyncio.Future[V]) -> None:
        record = self._records.get(key)
        if record is None or record.task is not task:
            return  # invalidated while pending
        if self._failed(task):
            del self._records[key]
            logger.debug("%s: computation for %r failed, record cleared", self._name, key)
            return
        self._records[key] = dataclasses.replace(record, resolved_at=self._clock())

    def _is_usable(self, record: CacheRecord[V]) -> bool:
        """Pending, or resolved successfully and still within the TTL."""
        if not record.task.done():
            return True
        if self._failed(record.task):
            return False
        if self._ttl is None:
            return True
        resolved_at = record.resolved_at if record.resolved_at is not None else record.created_at
        return self._clock() - resolved_at <= self._ttl

    @staticmethod
    def _failed(task: asyncio.Future[V]) -> bool:
        return task.cancelled() or task.exception() is not None


__all__ = ["MemoizedAsyncCache"]
