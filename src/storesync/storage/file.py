"""JSON file storage adapter.

All keys live in one JSON document so a multi-key delete is a single
atomic rewrite of the file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path

from storesync.storage.base import StorageError

logger = logging.getLogger(__name__)


class AsyncFileStorage:
    """Async storage adapter backed by a single JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError:
            logger.warning("Discarding undecodable storage file %s", self._path)
            return {}
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt storage file %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Discarding storage file %s with non-object root", self._path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as fh:
                fh.write(json.dumps(data, indent=2, sort_keys=True))
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        finally:
            tmp_path.unlink(missing_ok=True)

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            return data.get(key)

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def delete(self, *keys: str) -> None:
        """Delete the given keys with one file rewrite."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if not any(key in data for key in keys):
                return
            for key in keys:
                data.pop(key, None)
            await asyncio.to_thread(self._write, data)

    async def clear(self) -> None:
        """Remove every key."""
        async with self._lock:
            await asyncio.to_thread(self._write, {})

    async def disconnect(self) -> None:
        """Nothing to release for a file."""
        pass
