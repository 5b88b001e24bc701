"""Durable key/value storage adapters (async only)."""

from contextlib import suppress

from storesync.storage.base import AsyncStorage, StorageError
from storesync.storage.file import AsyncFileStorage
from storesync.storage.memory import AsyncMemoryStorage

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from storesync.storage.redis import AsyncRedisStorage

__all__ = [
    "AsyncFileStorage",
    "AsyncMemoryStorage",
    "AsyncRedisStorage",
    "AsyncStorage",
    "StorageError",
]
