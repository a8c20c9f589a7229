"""
Connection-managed wrapper around a key-blob store.

BackingStore wraps any Store. When the wrapped store needs a connection (it
implements connect() and/or close()), each operation called on its own:

    - connects first, if no connection is open
    - closes afterwards, when auto_close is enabled (the default)

Callers that want several operations to share one connection open it
themselves, either with connect()/close() or with the wrapper as a context
manager. While a caller holds the connection, operations never close it.

    with backing_store:
        backing_store.save(...)
        backing_store.read(...)

Stores without connect()/close() are passed through unchanged.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generator

from claimstore.store.base import HasClose, HasConnect, Store

logger = logging.getLogger(__name__)


class BackingStore(Store):
    """
    Store wrapper that manages the wrapped store's connection lifecycle.

    Attributes:
        auto_close: Close the connection after each stand-alone operation
    """

    def __init__(self, store: Store, auto_close: bool = True) -> None:
        self.auto_close = auto_close
        self._datastore = store
        self._opened = False
        self._entered: list[bool] = []

        # Capabilities are probed once, not per call
        self._connect: Callable[[], None] | None = (
            store.connect if isinstance(store, HasConnect) else None
        )
        self._close: Callable[[], None] | None = (
            store.close if isinstance(store, HasClose) else None
        )

    def __repr__(self) -> str:
        return f"BackingStore({self._datastore!r}, auto_close={self.auto_close})"

    @property
    def datastore(self) -> Store:
        """The wrapped store."""
        return self._datastore

    @property
    def opened(self) -> bool:
        """Whether a connection is currently open."""
        return self._opened

    # =========================================================================
    # Connection Management
    # =========================================================================

    def connect(self) -> None:
        """Open a connection. Does nothing when one is already open."""
        if self._opened or self._connect is None:
            return
        self._connect()
        self._opened = True
        logger.debug("Connected %r", self._datastore)

    def close(self) -> None:
        """Close the connection."""
        if self._close is None:
            return
        self._opened = False
        self._close()
        logger.debug("Closed %r", self._datastore)

    def __enter__(self) -> "BackingStore":
        # Only the with block that opened the connection closes it
        opens = self._should_auto_connect()
        self.connect()
        self._entered.append(opens)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._entered.pop() and self._opened:
            self.close()

    def _should_auto_connect(self) -> bool:
        # An open connection belongs to whoever opened it
        return not self._opened and self._connect is not None

    @contextmanager
    def session(self) -> Generator[None, None, None]:
        """
        Run a group of operations on one connection.

        Connects when needed and, with auto_close, closes once the block
        exits. Nested sessions and operations reuse the open connection.
        """
        if not self._should_auto_connect():
            yield
            return

        self.connect()
        try:
            yield
        finally:
            if self._opened and self.auto_close:
                self.close()

    # =========================================================================
    # Store Operations
    # =========================================================================

    def count(self, item_type: str, group: str = "") -> int:
        with self.session():
            return self._datastore.count(item_type, group)

    def list(self, item_type: str, group: str = "") -> list[str]:
        with self.session():
            return self._datastore.list(item_type, group)

    def save(self, item_type: str, group: str, name: str, data: bytes) -> None:
        with self.session():
            self._datastore.save(item_type, group, name, data)

    def read(self, item_type: str, name: str) -> bytes:
        with self.session():
            return self._datastore.read(item_type, name)

    def read_all(self, item_type: str, group: str = "") -> list[bytes]:
        """Read every item in a group using a single connection."""
        with self.session():
            return [self.read(item_type, name) for name in self.list(item_type, group)]

    def delete(self, item_type: str, name: str) -> None:
        with self.session():
            self._datastore.delete(item_type, name)
