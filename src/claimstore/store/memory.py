"""
In-memory key-blob store for unit testing.

MockStore keeps items in dictionaries, counts connect() and close() calls so
tests can assert on connection handling, and lets tests replace any operation
with a hook to simulate backend failures.
"""

from __future__ import annotations

from typing import Callable

from claimstore.errors import RecordNotFoundError
from claimstore.store.base import Store


class MockStore(Store):
    """
    In-memory Store with connection counters and failure hooks.

    Attributes:
        connect_count: Number of times connect() was called
        close_count: Number of times close() was called
        list_hook: Replaces list() when set
        read_hook: Replaces read() when set
        save_hook: Replaces save() when set
        delete_hook: Replaces delete() when set
    """

    def __init__(self) -> None:
        # (item_type, name) -> (group, data)
        self._data: dict[tuple[str, str], tuple[str, bytes]] = {}
        # (item_type, group) -> names
        self._groups: dict[tuple[str, str], set[str]] = {}

        self.connect_count = 0
        self.close_count = 0

        self.list_hook: Callable[[str, str], list[str]] | None = None
        self.read_hook: Callable[[str, str], bytes] | None = None
        self.save_hook: Callable[[str, str, str, bytes], None] | None = None
        self.delete_hook: Callable[[str, str], None] | None = None

    def connect(self) -> None:
        """Record a connect call."""
        self.connect_count += 1

    def close(self) -> None:
        """Record a close call."""
        self.close_count += 1

    def reset_counts(self) -> None:
        """Reset the connect and close counters."""
        self.connect_count = 0
        self.close_count = 0

    def count(self, item_type: str, group: str = "") -> int:
        return len(self.list(item_type, group))

    def list(self, item_type: str, group: str = "") -> list[str]:
        if self.list_hook is not None:
            return self.list_hook(item_type, group)

        return sorted(self._groups.get((item_type, group), set()))

    def save(self, item_type: str, group: str, name: str, data: bytes) -> None:
        if self.save_hook is not None:
            self.save_hook(item_type, group, name, data)
            return

        existing = self._data.get((item_type, name))
        if existing is not None and existing[0] != group:
            self._remove_from_group(item_type, existing[0], name)

        self._groups.setdefault((item_type, group), set()).add(name)
        self._data[(item_type, name)] = (group, bytes(data))

    def read(self, item_type: str, name: str) -> bytes:
        if self.read_hook is not None:
            return self.read_hook(item_type, name)

        item = self._data.get((item_type, name))
        if item is None:
            raise RecordNotFoundError(operation="read", item_type=item_type, name=name)
        return item[1]

    def delete(self, item_type: str, name: str) -> None:
        if self.delete_hook is not None:
            self.delete_hook(item_type, name)
            return

        item = self._data.pop((item_type, name), None)
        if item is None:
            raise RecordNotFoundError(operation="delete", item_type=item_type, name=name)
        self._remove_from_group(item_type, item[0], name)

    def _remove_from_group(self, item_type: str, group: str, name: str) -> None:
        names = self._groups.get((item_type, group))
        if names is None:
            return
        names.discard(name)
        if not names:
            del self._groups[(item_type, group)]
