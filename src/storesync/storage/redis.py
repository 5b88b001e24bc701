"""Redis storage adapter."""

from __future__ import annotations

from typing import Any


class AsyncRedisStorage:
    """Async Redis storage adapter.

    Keys are namespaced under ``prefix``. Values never expire on their own;
    cache freshness is tracked by the cache store, not by Redis TTLs.
    """

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "storesync",
    ) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "storesync") -> AsyncRedisStorage:
        """Create an adapter from a ``redis://`` URL."""
        import redis.asyncio

        return cls(redis.asyncio.Redis.from_url(url), prefix=prefix)

    def _key(self, key: str) -> str:
        """Generate the full Redis key."""
        return f"{self._prefix}:kv:{key}"

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        if isinstance(data, bytes):
            return data.decode("utf-8")
        return str(data)

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        await self._client.set(self._key(key), value)

    async def delete(self, *keys: str) -> None:
        """Delete the given keys with a single DEL (atomic in Redis)."""
        if keys:
            await self._client.delete(*(self._key(k) for k in keys))

    async def clear(self) -> None:
        """Delete every key under this adapter's prefix."""
        # Use SCAN to find and delete all keys
        cursor: int = 0
        pattern = f"{self._prefix}:kv:*"
        while True:
            result = await self._client.scan(cursor, match=pattern, count=100)
            cursor = result[0]
            keys = result[1]
            if keys:
                await self._client.delete(*keys)
            if cursor == 0:
                break

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
