"""
Base classes for key-blob stores.

A Store is the minimal CRUD primitive claim data is persisted through. Items
are addressed by an item type (e.g. "claims") and a name, and are grouped by
an optional group (e.g. the installation a claim belongs to). Reads and
deletes only need the item type and name; each backend finds the group itself.

Some stores, such as network databases, must be connected before use and
closed afterwards. They signal this by implementing connect() and/or close();
see HasConnect and HasClose. BackingStore detects these capabilities once and
manages the connection for callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable


class Store(ABC):
    """
    Abstract base class for key-blob stores.

    Subclasses must implement all five operations. Missing records are
    reported by raising RecordNotFoundError from read() and delete().
    """

    @abstractmethod
    def count(self, item_type: str, group: str = "") -> int:
        """Count the items of a type in a group. Equals len(list(...))."""

    @abstractmethod
    def list(self, item_type: str, group: str = "") -> list[str]:
        """
        List the names of the items of a type in a group.

        Missing groups are not an error; they have no items.
        """

    @abstractmethod
    def save(self, item_type: str, group: str, name: str, data: bytes) -> None:
        """Save an item, overwriting any existing item with the same name."""

    @abstractmethod
    def read(self, item_type: str, name: str) -> bytes:
        """
        Read an item's data.

        Raises:
            RecordNotFoundError: If the item does not exist
        """

    @abstractmethod
    def delete(self, item_type: str, name: str) -> None:
        """
        Delete an item, removing its group when the group becomes empty.

        Raises:
            RecordNotFoundError: If the item does not exist
        """


@runtime_checkable
class HasConnect(Protocol):
    """A store that must be connected before its methods are called."""

    def connect(self) -> None: ...


@runtime_checkable
class HasClose(Protocol):
    """A store that must be closed when callers are done with it."""

    def close(self) -> None: ...
