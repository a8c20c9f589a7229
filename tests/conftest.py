"""
Pytest configuration and fixtures for claimstore tests.

This module provides shared fixtures used across unit and integration tests.
"""

import base64
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from claimstore.ids import IdGenerator
from claimstore.provider import ClaimStore
from claimstore.schema import Bundle, load_bundle_from_string
from claimstore.store import MockStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ids() -> IdGenerator:
    """A fresh identifier generator."""
    return IdGenerator()


@pytest.fixture
def sample_bundle_yaml() -> str:
    """Return a bundle with one sensitive and two plain outputs."""
    return """
schemaVersion: v1.0.0
name: mysql
version: 0.1.0
actions:
  logs:
    modifies: false
  migrate:
    modifies: true
definitions:
  password:
    type: string
    writeOnly: true
  port:
    type: integer
  string:
    type: string
outputs:
  password:
    definition: password
  port:
    definition: port
  connstr:
    definition: string
    applyTo:
      - install
      - upgrade
"""


@pytest.fixture
def sample_bundle(sample_bundle_yaml: str) -> Bundle:
    """The sample bundle as a model."""
    return load_bundle_from_string(sample_bundle_yaml)


def _encrypt(data: bytes) -> bytes:
    return base64.b64encode(data)


def _decrypt(data: bytes) -> bytes:
    return base64.b64decode(data, validate=True)


@pytest.fixture
def encrypt() -> Callable[[bytes], bytes]:
    """A reversible stand-in for encryption."""
    return _encrypt


@pytest.fixture
def decrypt() -> Callable[[bytes], bytes]:
    """Reverses the encrypt fixture."""
    return _decrypt


@pytest.fixture
def mock_store() -> MockStore:
    """An empty in-memory store."""
    return MockStore()


@pytest.fixture
def claim_store(mock_store: MockStore) -> ClaimStore:
    """A ClaimStore over the in-memory store, without encryption."""
    return ClaimStore(mock_store)


@pytest.fixture
def encrypted_claim_store(mock_store: MockStore) -> ClaimStore:
    """A ClaimStore over the in-memory store with base64 encryption."""
    return ClaimStore(mock_store, encrypt=_encrypt, decrypt=_decrypt)
