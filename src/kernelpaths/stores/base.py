"""Base protocol for durable key/value stores."""

from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

# str | list[str] | None in practice; anything json can encode
StoredValue = object


@runtime_checkable
class DurableStore(Protocol):
    """Async persisted key/value store.

    Storing None removes the key.
    """

    async def get(self, key: str, default: T | None = None) -> T | None:
        """Get the value for key, or default when absent."""
        ...

    async def set(self, key: str, value: StoredValue) -> None:
        """Store a value."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a value."""
        ...

    async def clear(self) -> None:
        """Remove every value."""
        ...

    async def close(self) -> None:
        """Release the storage backend."""
        ...
