"""In-memory storage adapter (async only)."""

import asyncio


class AsyncMemoryStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        async with self._lock:
            self._data[key] = value

    async def delete(self, *keys: str) -> None:
        """Delete the given keys."""
        async with self._lock:
            for key in keys:
                self._data.pop(key, None)

    async def clear(self) -> None:
        """Remove every key."""
        async with self._lock:
            self._data.clear()

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass
