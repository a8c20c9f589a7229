"""
Key-blob storage for claimstore.

Claim data is persisted through a minimal CRUD interface so the same claim
logic works against any backend.

Backends:
    - FileSystemStore: one file per item, one directory per group
    - SqliteStore: a database file; requires connect()/close()
    - MockStore: in-memory, for unit tests

BackingStore wraps a backend and manages its connection, so callers never
have to connect and close around each operation.
"""

from claimstore.store.backing import BackingStore
from claimstore.store.base import HasClose, HasConnect, Store
from claimstore.store.filesystem import FileSystemStore
from claimstore.store.memory import MockStore
from claimstore.store.sqlite import SqliteStore

__all__ = [
    "BackingStore",
    "FileSystemStore",
    "HasClose",
    "HasConnect",
    "MockStore",
    "SqliteStore",
    "Store",
]
