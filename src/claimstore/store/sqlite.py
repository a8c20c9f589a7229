"""
SQLite key-blob store.

This is the database-backed Store. Unlike the filesystem store it holds a
connection, so it must be connected before use and closed afterwards; wrap it
in a BackingStore to have that handled automatically.

Tables:
    - schema_version: Applied schema version
    - items: One row per item, keyed by (item_type, name) with its group

Names are unique per item type regardless of group, which is what lets
read() and delete() work without knowing the group.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from claimstore.errors import (
    RecordNotFoundError,
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
)
from claimstore.store.base import Store

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Items table: one blob per item
CREATE TABLE IF NOT EXISTS items (
    item_type TEXT NOT NULL,
    grp TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    data BLOB NOT NULL,
    PRIMARY KEY (item_type, name)
);

CREATE INDEX IF NOT EXISTS idx_items_group ON items(item_type, grp);
"""


class SqliteStore(Store):
    """
    Store backed by a SQLite database file.

    Usage:
        store = SqliteStore("claims.db")
        store.connect()
        store.save("claims", "mysql", claim_id, data)
        store.close()

    Args:
        db_path: Path to the database file, or ":memory:". In-memory databases
            lose their contents on close().
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None

    def __repr__(self) -> str:
        return f"SqliteStore({self.db_path!r})"

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        """Open the database and create the schema if needed."""
        if self._conn is not None:
            return
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageConnectionError(
                location=self.db_path,
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e
        logger.debug("Connected to %s", self.db_path)
        self._init_schema()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Closed %s", self.db_path)

    def _init_schema(self) -> None:
        conn = self._connection("init_schema")
        try:
            conn.executescript(CREATE_TABLES_SQL).close()

            row = conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            ).fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    def _connection(self, operation: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageConnectionError(
                location=self.db_path,
                operation=operation,
                message=f"Store is not connected: {self.db_path}",
                suggestion="Call connect() first, or wrap the store in a BackingStore",
            )
        return self._conn

    # =========================================================================
    # Store Operations
    # =========================================================================

    def count(self, item_type: str, group: str = "") -> int:
        conn = self._connection("count")
        try:
            row = conn.execute(
                "SELECT COUNT(*) FROM items WHERE item_type = ? AND grp = ?",
                (item_type, group),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="count", item_type=item_type, underlying_error=str(e)
            ) from e
        return int(row[0])

    def list(self, item_type: str, group: str = "") -> list[str]:
        conn = self._connection("list")
        try:
            cursor = conn.execute(
                "SELECT name FROM items WHERE item_type = ? AND grp = ? ORDER BY name",
                (item_type, group),
            )
            return [row[0] for row in cursor]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="list", item_type=item_type, underlying_error=str(e)
            ) from e

    def save(self, item_type: str, group: str, name: str, data: bytes) -> None:
        conn = self._connection("save")
        try:
            conn.execute(
                """
                INSERT INTO items (item_type, grp, name, data) VALUES (?, ?, ?, ?)
                ON CONFLICT (item_type, name) DO UPDATE SET grp = excluded.grp, data = excluded.data
                """,
                (item_type, group, name, sqlite3.Binary(data)),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="save", item_type=item_type, underlying_error=str(e)
            ) from e

    def read(self, item_type: str, name: str) -> bytes:
        conn = self._connection("read")
        try:
            row = conn.execute(
                "SELECT data FROM items WHERE item_type = ? AND name = ?",
                (item_type, name),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="read", item_type=item_type, underlying_error=str(e)
            ) from e
        if row is None:
            raise RecordNotFoundError(operation="read", item_type=item_type, name=name)
        return bytes(row[0])

    def delete(self, item_type: str, name: str) -> None:
        conn = self._connection("delete")
        try:
            cursor = conn.execute(
                "DELETE FROM items WHERE item_type = ? AND name = ?",
                (item_type, name),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="delete", item_type=item_type, underlying_error=str(e)
            ) from e
        if cursor.rowcount == 0:
            raise RecordNotFoundError(operation="delete", item_type=item_type, name=name)
