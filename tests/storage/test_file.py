"""Tests for the JSON file storage adapter."""

import json
from pathlib import Path

import pytest

from storesync import AsyncFileStorage, AsyncStorage, SessionStore


@pytest.fixture
def path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "storesync.json"


@pytest.fixture
def file_storage(path: Path) -> AsyncFileStorage:
    return AsyncFileStorage(path)


class TestAsyncFileStorage:
    """Tests for AsyncFileStorage."""

    async def test_missing_file_is_empty(self, file_storage: AsyncFileStorage) -> None:
        """Test that a storage file that does not exist yet reads as empty."""
        assert await file_storage.get("anything") is None

    async def test_set_creates_file(
        self, file_storage: AsyncFileStorage, path: Path
    ) -> None:
        """Test that values are written to one JSON document."""
        await file_storage.set("session", '{"token": "t"}')
        assert json.loads(path.read_text()) == {"session": '{"token": "t"}'}
        assert not path.with_suffix(".json.tmp").exists()

    async def test_survives_reopen(self, path: Path) -> None:
        """Test that a new adapter on the same path sees earlier writes."""
        await AsyncFileStorage(path).set("k", "v")
        assert await AsyncFileStorage(path).get("k") == "v"

    async def test_delete_many(self, file_storage: AsyncFileStorage) -> None:
        """Test deleting several keys with one rewrite."""
        await file_storage.set("a", "1")
        await file_storage.set("b", "2")
        await file_storage.set("c", "3")
        await file_storage.delete("a", "b")
        assert await file_storage.get("a") is None
        assert await file_storage.get("b") is None
        assert await file_storage.get("c") == "3"

    async def test_delete_missing_keys_is_noop(
        self, file_storage: AsyncFileStorage, path: Path
    ) -> None:
        """Test that deleting unknown keys does not create the file."""
        await file_storage.delete("nope")
        assert not path.exists()

    async def test_corrupt_file_reads_as_empty(
        self, file_storage: AsyncFileStorage, path: Path
    ) -> None:
        """Test that a damaged document is discarded rather than raised."""
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        assert await file_storage.get("k") is None
        await file_storage.set("k", "v")
        assert await file_storage.get("k") == "v"

    async def test_undecodable_file_reads_as_empty(
        self, file_storage: AsyncFileStorage, path: Path
    ) -> None:
        """Test that bytes that are not UTF-8 do not reach the caller."""
        path.parent.mkdir(parents=True)
        path.write_bytes(b'{"storesync:session": "\xff\xfe"}')

        assert await SessionStore(file_storage).restore() is None
        await file_storage.set("k", "v")
        assert await file_storage.get("k") == "v"

    async def test_non_string_values_ignored(
        self, file_storage: AsyncFileStorage, path: Path
    ) -> None:
        """Test that only string values are exposed."""
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"good": "v", "bad": 3}))
        assert await file_storage.get("good") == "v"
        assert await file_storage.get("bad") is None

    async def test_clear(self, file_storage: AsyncFileStorage) -> None:
        """Test clearing all keys."""
        await file_storage.set("a", "1")
        await file_storage.clear()
        assert await file_storage.get("a") is None

    def test_satisfies_protocol(self, file_storage: AsyncFileStorage) -> None:
        """Test that the adapter matches the storage protocol."""
        assert isinstance(file_storage, AsyncStorage)
