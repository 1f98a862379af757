"""Durable stores for persisted path records."""

from contextlib import suppress

from kernelpaths.stores.base import DurableStore
from kernelpaths.stores.json_file import JsonFileStore
from kernelpaths.stores.memory import MemoryStore

# Optional stores - only available when dependencies are installed
with suppress(ImportError):
    from kernelpaths.stores.redis import RedisStore

__all__ = [
    "DurableStore",
    "JsonFileStore",
    "MemoryStore",
    "RedisStore",
]
