"""
Unit tests for store configuration.

Tests cover:
- Loading from YAML strings and files
- Validation
- Building stores from configuration
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from claimstore.config import (
    StoreBackend,
    StoreConfig,
    load_config,
    load_config_from_string,
    open_claim_store,
    open_store,
)
from claimstore.provider import ClaimStore, claim_store_file_extensions
from claimstore.store import FileSystemStore, MockStore, SqliteStore


class TestLoadConfig:
    """Tests for loading configuration."""

    def test_defaults(self) -> None:
        """Only the path is required for the default backend."""
        config = load_config_from_string("path: /var/lib/claims")
        assert config.backend == StoreBackend.FILESYSTEM
        assert config.auto_close is True
        assert config.file_extensions is None

    def test_full(self) -> None:
        """Every field can be set."""
        config = load_config_from_string(
            """
backend: sqlite
path: claims.db
auto_close: false
"""
        )
        assert config.backend == StoreBackend.SQLITE
        assert config.path == "claims.db"
        assert config.auto_close is False

    def test_memory_needs_no_path(self) -> None:
        """The memory backend has nothing to locate."""
        assert load_config_from_string("backend: memory").path is None

    def test_path_required(self) -> None:
        """Filesystem and sqlite backends need a path."""
        with pytest.raises(ValidationError, match="path is required"):
            load_config_from_string("backend: sqlite")

    def test_unknown_backend(self) -> None:
        """Unknown backends are rejected."""
        with pytest.raises(ValidationError):
            load_config_from_string("backend: mongodb\npath: x")

    def test_unknown_key(self) -> None:
        """Typos are not silently ignored."""
        with pytest.raises(ValidationError):
            load_config_from_string("backend: memory\nautoclose: true")

    def test_frozen(self) -> None:
        """Configuration cannot change after loading."""
        config = load_config_from_string("backend: memory")
        with pytest.raises(ValidationError):
            config.auto_close = False  # type: ignore[misc]

    def test_load_file(self, temp_dir: Path) -> None:
        """Configuration loads from a file."""
        path = temp_dir / "store.yaml"
        path.write_text("backend: filesystem\npath: /tmp/claims\n")
        assert load_config(path).path == "/tmp/claims"

    def test_load_missing_file(self, temp_dir: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "missing.yaml")

    def test_resolved_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables and ~ are expanded."""
        monkeypatch.setenv("CLAIMSTORE_HOME", "/srv")
        config = StoreConfig(path="$CLAIMSTORE_HOME/claims")
        assert config.resolved_path() == Path("/srv/claims")


class TestOpenStore:
    """Tests for building stores from configuration."""

    def test_filesystem(self, temp_dir: Path) -> None:
        """The filesystem backend uses claim store extensions by default."""
        backing = open_store(StoreConfig(path=str(temp_dir)))
        store = backing.datastore
        assert isinstance(store, FileSystemStore)
        assert store.base_directory == temp_dir
        assert store.file_extensions == claim_store_file_extensions()

    def test_filesystem_extensions_override(self, temp_dir: Path) -> None:
        """File extensions can be overridden."""
        config = StoreConfig(path=str(temp_dir), file_extensions={"claims": ".claim"})
        store = open_store(config).datastore
        assert isinstance(store, FileSystemStore)
        assert store.file_extensions == {"claims": ".claim"}

    def test_sqlite(self, temp_dir: Path) -> None:
        """The sqlite backend honors auto_close."""
        config = StoreConfig(
            backend=StoreBackend.SQLITE, path=str(temp_dir / "c.db"), auto_close=False
        )
        backing = open_store(config)
        assert isinstance(backing.datastore, SqliteStore)
        assert backing.auto_close is False

    def test_memory(self) -> None:
        """The memory backend needs nothing else."""
        assert isinstance(open_store(StoreConfig(backend="memory")).datastore, MockStore)

    def test_open_claim_store(self, encrypt, decrypt) -> None:
        """Encryption handlers are passed through."""
        store = open_claim_store(StoreConfig(backend="memory"), encrypt=encrypt, decrypt=decrypt)
        assert isinstance(store, ClaimStore)
        assert store.encrypt is encrypt
        assert store.decrypt is decrypt
