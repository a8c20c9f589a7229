"""
Filesystem key-blob store.

Each item is one file. Item types are top-level directories under the base
directory and groups are subdirectories of their item type:

    <base>/claims/<installation>/<claim id>.json
    <base>/results/<claim id>/<result id>.json
    <base>/outputs/<result id>/<result id>-<output name>
    <base>/installations/<installation>

Directories are created on demand and a group directory is removed once its
last item is deleted. Reads and deletes locate the item's group by globbing
<item type>/*/<name>, so callers never need to know the group.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path

from claimstore.errors import RecordNotFoundError, StorageReadError, StorageWriteError
from claimstore.store.base import Store

logger = logging.getLogger(__name__)


class FileSystemStore(Store):
    """
    Store backed by a directory tree.

    Args:
        base_directory: Directory under which item type directories are created
        file_extensions: Map of item type to file extension, e.g.
            {"claims": ".json"}. Item types not listed have no extension.
    """

    def __init__(
        self,
        base_directory: str | Path,
        file_extensions: dict[str, str] | None = None,
    ) -> None:
        self.base_directory = Path(base_directory)
        self.file_extensions = dict(file_extensions or {})

    def __repr__(self) -> str:
        return f"FileSystemStore({str(self.base_directory)!r})"

    def count(self, item_type: str, group: str = "") -> int:
        return len(self.list(item_type, group))

    def list(self, item_type: str, group: str = "") -> list[str]:
        self._ensure(self.base_directory / item_type)

        directory = self.base_directory / item_type / group
        if not directory.is_dir():
            return []

        ext = self._ext(item_type)
        names = []
        try:
            for entry in directory.iterdir():
                if entry.is_dir() or not ext:
                    names.append(entry.name)
                elif entry.name.endswith(ext):
                    names.append(entry.name[: -len(ext)])
        except OSError as e:
            raise StorageReadError(
                operation="list", item_type=item_type, underlying_error=str(e)
            ) from e
        return sorted(names)

    def save(self, item_type: str, group: str, name: str, data: bytes) -> None:
        directory = self.base_directory / item_type / group
        self._ensure(directory)

        path = directory / f"{name}{self._ext(item_type)}"
        try:
            path.write_bytes(data)
        except OSError as e:
            raise StorageWriteError(
                operation="save", item_type=item_type, underlying_error=str(e)
            ) from e
        logger.debug("Saved %s", path)

    def read(self, item_type: str, name: str) -> bytes:
        path = self._resolve(item_type, name, "read")
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise RecordNotFoundError(
                operation="read", item_type=item_type, name=name
            ) from e
        except OSError as e:
            raise StorageReadError(
                operation="read", item_type=item_type, underlying_error=str(e)
            ) from e

    def delete(self, item_type: str, name: str) -> None:
        path = self._resolve(item_type, name, "delete")
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise RecordNotFoundError(
                operation="delete", item_type=item_type, name=name
            ) from e
        except OSError as e:
            raise StorageWriteError(
                operation="delete", item_type=item_type, underlying_error=str(e)
            ) from e
        logger.debug("Deleted %s", path)

        self._remove_group_dir(item_type, path.parent)

    def _ext(self, item_type: str) -> str:
        return self.file_extensions.get(item_type, "")

    def _resolve(self, item_type: str, name: str, operation: str) -> Path:
        """Find the file for an item, looking in every group of its item type."""
        item_dir = self.base_directory / item_type
        filename = f"{name}{self._ext(item_type)}"

        exact = item_dir / filename
        if exact.is_file():
            return exact

        matches = [p for p in item_dir.glob(f"*/{glob.escape(filename)}") if p.is_file()]
        if not matches:
            raise RecordNotFoundError(
                operation=operation,
                item_type=item_type,
                name=name,
                message=f"no file found for {item_type} {name}",
            )
        if len(matches) > 1:
            raise StorageReadError(
                operation=operation,
                item_type=item_type,
                underlying_error=f"more than one file matched for {item_type} {name}",
            )
        return matches[0]

    def _remove_group_dir(self, item_type: str, directory: Path) -> None:
        if directory == self.base_directory / item_type:
            return
        try:
            empty = not any(directory.iterdir())
        except FileNotFoundError:
            return
        if empty:
            directory.rmdir()
            logger.debug("Removed empty group %s", directory)

    def _ensure(self, directory: Path) -> None:
        if directory.exists() and not directory.is_dir():
            raise StorageWriteError(
                operation="ensure",
                underlying_error=f"storage path {directory} exists, but is not a directory",
            )
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageWriteError(operation="ensure", underlying_error=str(e)) from e
