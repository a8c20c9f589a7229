"""
Unit tests for key-blob stores.

Tests cover:
- The Store contract, run against every backend
- FileSystemStore layout, extensions and lookup across groups
- SqliteStore connection handling and schema
- MockStore counters and hooks
"""

import sqlite3
from pathlib import Path
from typing import Generator

import pytest

from claimstore.errors import (
    RecordNotFoundError,
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
)
from claimstore.store import FileSystemStore, MockStore, SqliteStore, Store
from claimstore.store.sqlite import SCHEMA_VERSION


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture(params=["memory", "filesystem", "sqlite"])
def store(request: pytest.FixtureRequest, temp_dir: Path) -> Generator[Store, None, None]:
    """Each backend, ready to use."""
    if request.param == "memory":
        yield MockStore()
    elif request.param == "filesystem":
        yield FileSystemStore(temp_dir / "store", {"claims": ".json"})
    else:
        db = SqliteStore(temp_dir / "claims.db")
        db.connect()
        yield db
        db.close()


@pytest.fixture
def fs_store(temp_dir: Path) -> FileSystemStore:
    """A filesystem store with a .json extension for claims."""
    return FileSystemStore(temp_dir, {"claims": ".json"})


# =============================================================================
# Store Contract
# =============================================================================


class TestStoreContract:
    """Behavior every backend shares."""

    def test_save_and_read(self, store: Store) -> None:
        """Saved data reads back unchanged."""
        store.save("claims", "mysql", "c1", b'{"id": "c1"}')
        assert store.read("claims", "c1") == b'{"id": "c1"}'

    def test_binary_data(self, store: Store) -> None:
        """Arbitrary bytes are kept exactly."""
        data = bytes(range(256))
        store.save("outputs", "r1", "r1-blob", data)
        assert store.read("outputs", "r1-blob") == data

    def test_empty_data(self, store: Store) -> None:
        """Empty items are valid, e.g. installation markers."""
        store.save("installations", "", "mysql", b"")
        assert store.read("installations", "mysql") == b""
        assert store.list("installations", "") == ["mysql"]

    def test_overwrite(self, store: Store) -> None:
        """Saving again replaces the data."""
        store.save("claims", "mysql", "c1", b"one")
        store.save("claims", "mysql", "c1", b"two")
        assert store.read("claims", "c1") == b"two"
        assert store.count("claims", "mysql") == 1

    def test_list_by_group(self, store: Store) -> None:
        """Listing is scoped to one group and sorted."""
        store.save("claims", "mysql", "c2", b"")
        store.save("claims", "mysql", "c1", b"")
        store.save("claims", "redis", "c3", b"")
        assert store.list("claims", "mysql") == ["c1", "c2"]
        assert store.list("claims", "redis") == ["c3"]
        assert store.count("claims", "mysql") == 2

    def test_list_missing_group(self, store: Store) -> None:
        """A group that was never written is empty, not an error."""
        assert store.list("claims", "nothing") == []
        assert store.count("claims", "nothing") == 0

    def test_read_missing(self, store: Store) -> None:
        """Reading a missing item raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError) as exc_info:
            store.read("claims", "missing")
        assert exc_info.value.context["name"] == "missing"

    def test_delete(self, store: Store) -> None:
        """Deleted items are gone."""
        store.save("claims", "mysql", "c1", b"")
        store.save("claims", "mysql", "c2", b"")
        store.delete("claims", "c1")
        assert store.list("claims", "mysql") == ["c2"]
        with pytest.raises(RecordNotFoundError):
            store.read("claims", "c1")

    def test_delete_last_removes_group(self, store: Store) -> None:
        """A group emptied by a delete no longer lists anything."""
        store.save("claims", "mysql", "c1", b"")
        store.delete("claims", "c1")
        assert store.list("claims", "mysql") == []

    def test_delete_missing(self, store: Store) -> None:
        """Deleting a missing item raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            store.delete("claims", "missing")

    def test_item_types_isolated(self, store: Store) -> None:
        """The same name in two item types refers to two items."""
        store.save("claims", "g", "x", b"claim")
        store.save("results", "g", "x", b"result")
        assert store.read("claims", "x") == b"claim"
        assert store.read("results", "x") == b"result"


# =============================================================================
# FileSystemStore
# =============================================================================


class TestFileSystemStore:
    """Tests for FileSystemStore specifics."""

    def test_layout(self, fs_store: FileSystemStore, temp_dir: Path) -> None:
        """Items are files named after the item, under type and group directories."""
        fs_store.save("claims", "mysql", "c1", b"{}")
        fs_store.save("outputs", "r1", "r1-port", b"3306")
        assert (temp_dir / "claims" / "mysql" / "c1.json").read_bytes() == b"{}"
        assert (temp_dir / "outputs" / "r1" / "r1-port").read_bytes() == b"3306"

    def test_ungrouped_item(self, fs_store: FileSystemStore, temp_dir: Path) -> None:
        """Items in the empty group sit directly in the item type directory."""
        fs_store.save("installations", "", "mysql", b"")
        assert (temp_dir / "installations" / "mysql").is_file()
        fs_store.delete("installations", "mysql")
        assert (temp_dir / "installations").is_dir()

    def test_list_strips_extension(self, fs_store: FileSystemStore) -> None:
        """Listing returns item names, not file names."""
        fs_store.save("claims", "mysql", "c1", b"")
        assert fs_store.list("claims", "mysql") == ["c1"]

    def test_list_ignores_other_files(self, fs_store: FileSystemStore, temp_dir: Path) -> None:
        """Files without the item type's extension are not items."""
        fs_store.save("claims", "mysql", "c1", b"")
        (temp_dir / "claims" / "mysql" / "notes.txt").write_text("x")
        assert fs_store.list("claims", "mysql") == ["c1"]

    def test_list_creates_item_type_directory(
        self, fs_store: FileSystemStore, temp_dir: Path
    ) -> None:
        """Listing prepares the item type directory but not the group."""
        fs_store.list("claims", "mysql")
        assert (temp_dir / "claims").is_dir()
        assert not (temp_dir / "claims" / "mysql").exists()

    def test_delete_removes_empty_group_directory(
        self, fs_store: FileSystemStore, temp_dir: Path
    ) -> None:
        """The group directory goes away with its last item."""
        fs_store.save("claims", "mysql", "c1", b"")
        fs_store.save("claims", "mysql", "c2", b"")
        fs_store.delete("claims", "c1")
        assert (temp_dir / "claims" / "mysql").is_dir()
        fs_store.delete("claims", "c2")
        assert not (temp_dir / "claims" / "mysql").exists()

    def test_ambiguous_name(self, fs_store: FileSystemStore) -> None:
        """A name present in two groups cannot be resolved."""
        fs_store.save("claims", "mysql", "c1", b"")
        fs_store.save("claims", "redis", "c1", b"")
        with pytest.raises(StorageReadError, match="more than one"):
            fs_store.read("claims", "c1")

    def test_glob_characters_in_name(self, fs_store: FileSystemStore) -> None:
        """Names are matched literally."""
        fs_store.save("outputs", "r1", "r1-[abc]", b"x")
        fs_store.save("outputs", "r1", "r1-a", b"y")
        assert fs_store.read("outputs", "r1-[abc]") == b"x"

    def test_item_type_is_a_file(self, fs_store: FileSystemStore, temp_dir: Path) -> None:
        """A file where a directory should be is reported."""
        (temp_dir / "claims").write_text("oops")
        with pytest.raises(StorageWriteError, match="not a directory"):
            fs_store.list("claims", "mysql")


# =============================================================================
# SqliteStore
# =============================================================================


class TestSqliteStore:
    """Tests for SqliteStore specifics."""

    def test_requires_connection(self, temp_dir: Path) -> None:
        """Operations fail until connect() is called."""
        db = SqliteStore(temp_dir / "claims.db")
        assert not db.connected
        with pytest.raises(StorageConnectionError, match="not connected"):
            db.list("claims", "mysql")

    def test_schema_created(self, temp_dir: Path) -> None:
        """Connecting creates the tables and records the schema version."""
        path = temp_dir / "claims.db"
        db = SqliteStore(path)
        db.connect()
        db.close()

        conn = sqlite3.connect(path)
        try:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            tables = {row[0] for row in rows}
            version = conn.execute("SELECT version FROM schema_version").fetchone()[0]
        finally:
            conn.close()
        assert {"items", "schema_version"} <= tables
        assert version == SCHEMA_VERSION

    def test_data_survives_reconnect(self, temp_dir: Path) -> None:
        """Items persist across connections."""
        path = temp_dir / "claims.db"
        db = SqliteStore(path)
        db.connect()
        db.save("claims", "mysql", "c1", b"data")
        db.close()

        db.connect()
        try:
            assert db.read("claims", "c1") == b"data"
        finally:
            db.close()

    def test_reconnect_keeps_single_schema_version(self, temp_dir: Path) -> None:
        """Connecting twice does not duplicate the schema version row."""
        path = temp_dir / "claims.db"
        db = SqliteStore(path)
        for _ in range(2):
            db.connect()
            db.close()

        conn = sqlite3.connect(path)
        try:
            count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
        finally:
            conn.close()
        assert count == 1

    def test_connect_is_idempotent(self, temp_dir: Path) -> None:
        """A second connect() keeps the open connection."""
        db = SqliteStore(temp_dir / "claims.db")
        db.connect()
        db.save("claims", "mysql", "c1", b"data")
        db.connect()
        try:
            assert db.read("claims", "c1") == b"data"
        finally:
            db.close()
        assert not db.connected

    def test_save_moves_item_between_groups(self, temp_dir: Path) -> None:
        """Saving a name under a new group moves it."""
        db = SqliteStore(temp_dir / "claims.db")
        db.connect()
        try:
            db.save("claims", "a", "c1", b"")
            db.save("claims", "b", "c1", b"")
            assert db.list("claims", "a") == []
            assert db.list("claims", "b") == ["c1"]
        finally:
            db.close()

    def test_bad_location(self, temp_dir: Path) -> None:
        """A database path in a missing directory cannot be opened."""
        db = SqliteStore(temp_dir / "missing" / "claims.db")
        with pytest.raises(StorageConnectionError):
            db.connect()


# =============================================================================
# MockStore
# =============================================================================


class TestMockStore:
    """Tests for MockStore helpers."""

    def test_counts(self) -> None:
        """connect() and close() calls are counted."""
        store = MockStore()
        store.connect()
        store.connect()
        store.close()
        assert (store.connect_count, store.close_count) == (2, 1)
        store.reset_counts()
        assert (store.connect_count, store.close_count) == (0, 0)

    def test_read_hook(self) -> None:
        """A hook replaces the operation."""
        store = MockStore()

        def fail(item_type: str, name: str) -> bytes:
            raise StorageReadError(operation="read", underlying_error="boom")

        store.read_hook = fail
        with pytest.raises(StorageReadError, match="boom"):
            store.read("claims", "c1")

    def test_list_hook(self) -> None:
        """list() can be faked."""
        store = MockStore()
        store.list_hook = lambda item_type, group: ["x", "y"]
        assert store.list("claims", "mysql") == ["x", "y"]
        assert store.count("claims", "mysql") == 2

    def test_save_moves_item_between_groups(self) -> None:
        """Saving a name under a new group moves it."""
        store = MockStore()
        store.save("claims", "a", "c1", b"")
        store.save("claims", "b", "c1", b"")
        assert store.list("claims", "a") == []
        assert store.list("claims", "b") == ["c1"]
