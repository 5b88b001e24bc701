"""TTL-bounded, size-bounded cache store with FIFO eviction."""

from __future__ import annotations

import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator, Mapping
from typing import Any, Generic, TypeVar

from storesync.duration import to_seconds
from storesync.types import CacheEntry, CacheHit, Duration, Lookup

logger = logging.getLogger(__name__)

V = TypeVar("V")


def make_key(params: Mapping[str, Any]) -> str:
    """Serialise query parameters into a stable cache key."""
    cleaned = {k: v for k, v in params.items() if v is not None}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


class CacheStore(Generic[V]):
    """Keyed store of ``CacheEntry`` values.

    Entries are fresh while ``now - inserted_at < ttl``. Expired entries are
    kept and reported as STALE so callers can fall back to them when a
    refetch fails. When the store grows past ``max_entries`` the
    earliest-inserted key is evicted; reads never change that order.
    """

    def __init__(
        self,
        *,
        ttl: Duration,
        max_entries: int,
        clock: Callable[[], float] = time.time,
        name: str = "cache",
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = to_seconds(ttl)
        self._max_entries = max_entries
        self._clock = clock
        self._name = name
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()

    @property
    def ttl(self) -> float:
        """TTL in seconds."""
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        """Keys in insertion order, oldest first."""
        return list(self._entries)

    def _is_fresh(self, entry: CacheEntry[V]) -> bool:
        return self._clock() - entry.inserted_at < self._ttl

    def lookup(self, key: str) -> Lookup[V]:
        entry = self._entries.get(key)
        if entry is None:
            return Lookup(CacheHit.MISS)
        if self._is_fresh(entry):
            return Lookup(CacheHit.FRESH, entry.value)
        return Lookup(CacheHit.STALE, entry.value)

    get = lookup

    def put(self, key: str, value: V) -> None:
        # Overwriting counts as a new insertion for eviction purposes.
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("%s: evicted %s", self._name, evicted)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        self._entries.clear()

    def snapshot(self, encode: Callable[[V], Any]) -> list[dict[str, Any]]:
        """Serialisable rows in insertion order."""
        return [
            {"key": key, "value": encode(entry.value), "insertedAt": entry.inserted_at}
            for key, entry in self._entries.items()
        ]

    def restore(self, rows: Any, decode: Callable[[Any], V]) -> int:
        """Load rows produced by ``snapshot``. Corrupt rows are skipped."""
        if not isinstance(rows, list):
            logger.warning("%s: discarding snapshot of type %s", self._name, type(rows))
            return 0
        restored = 0
        for row in rows:
            try:
                key = row["key"]
                inserted_at = float(row["insertedAt"])
                value = decode(row["value"])
            except Exception as exc:  # noqa: BLE001 - corrupt state is discarded
                logger.warning("%s: skipping corrupt snapshot row: %s", self._name, exc)
                continue
            if not isinstance(key, str):
                logger.warning("%s: skipping snapshot row with key %r", self._name, key)
                continue
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, inserted_at=inserted_at)
            restored += 1
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
        return restored

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
