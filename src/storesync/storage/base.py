"""Base protocol for durable storage backends."""

from typing import Protocol, runtime_checkable


class StorageError(RuntimeError):
    """Raised when a storage backend cannot complete an operation."""


@runtime_checkable
class AsyncStorage(Protocol):
    """Async string key/value storage used for sessions and cache snapshots."""

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    async def delete(self, *keys: str) -> None:
        """Delete the given keys in one atomic operation."""
        ...

    async def clear(self) -> None:
        """Remove every key owned by this storage."""
        ...

    async def disconnect(self) -> None:
        """Release the underlying backend."""
        ...
