"""
Store configuration.

A store is described by a small YAML document:

    backend: filesystem
    path: ~/.cnab/claims
    auto_close: true

open_store() turns a StoreConfig into a ready-to-use BackingStore, and
open_claim_store() wraps that in a ClaimStore.
"""

import os
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from claimstore.provider.store import (
    ClaimStore,
    EncryptionHandler,
    claim_store_file_extensions,
)
from claimstore.store.backing import BackingStore
from claimstore.store.base import Store
from claimstore.store.filesystem import FileSystemStore
from claimstore.store.memory import MockStore
from claimstore.store.sqlite import SqliteStore


class StoreBackend(str, Enum):
    """Key-blob store backends."""

    FILESYSTEM = "filesystem"
    SQLITE = "sqlite"
    MEMORY = "memory"


class StoreConfig(BaseModel):
    """
    Configuration for the key-blob store behind a ClaimStore.

    Attributes:
        backend: Which store implementation to use
        path: Base directory (filesystem) or database file (sqlite)
        auto_close: Close the connection after each stand-alone operation
        file_extensions: Per item type file extensions (filesystem only);
            defaults to claim_store_file_extensions()
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: StoreBackend = Field(
        default=StoreBackend.FILESYSTEM,
        description="Store implementation",
    )
    path: str | None = Field(
        default=None,
        description="Base directory or database file",
    )
    auto_close: bool = Field(
        default=True,
        description="Close the connection after each stand-alone operation",
    )
    file_extensions: dict[str, str] | None = Field(
        default=None,
        description="File extension per item type",
    )

    @model_validator(mode="after")
    def validate_path(self) -> "StoreConfig":
        """Filesystem and sqlite backends need somewhere to put the data."""
        if self.backend != StoreBackend.MEMORY and not self.path:
            msg = f"path is required for the {self.backend.value} backend"
            raise ValueError(msg)
        return self

    def resolved_path(self) -> Path:
        """The configured path with ~ and environment variables expanded."""
        return Path(os.path.expandvars(self.path or "")).expanduser()


def load_config(path: Path | str) -> StoreConfig:
    """
    Load a store configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return StoreConfig.model_validate(data or {})


def load_config_from_string(content: str) -> StoreConfig:
    """Load a store configuration from a YAML string."""
    data = yaml.safe_load(content)
    return StoreConfig.model_validate(data or {})


def _create_store(config: StoreConfig) -> Store:
    if config.backend == StoreBackend.MEMORY:
        return MockStore()
    if config.backend == StoreBackend.SQLITE:
        return SqliteStore(config.resolved_path())
    extensions = config.file_extensions
    if extensions is None:
        extensions = claim_store_file_extensions()
    return FileSystemStore(config.resolved_path(), extensions)


def open_store(config: StoreConfig) -> BackingStore:
    """Create the configured store, wrapped in a BackingStore."""
    return BackingStore(_create_store(config), auto_close=config.auto_close)


def open_claim_store(
    config: StoreConfig,
    encrypt: EncryptionHandler | None = None,
    decrypt: EncryptionHandler | None = None,
) -> ClaimStore:
    """Create a ClaimStore over the configured store."""
    return ClaimStore(open_store(config), encrypt=encrypt, decrypt=decrypt)
