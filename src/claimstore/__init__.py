"""
claimstore - Record keeping for cloud-native bundle installations.

Every action run against an installation (install, upgrade, uninstall or a
custom action) is recorded as a claim. Each execution attempt of that action
is recorded as a result, and the named outputs it produced are kept alongside.
claimstore persists that history in a pluggable key-blob store and answers
questions about it:
- What is the current status of each installation?
- What is the latest value of each output?
- What did the invocation image log?

Example usage:
    >>> from claimstore import Claim, ClaimStore, FileSystemStore, IdGenerator
    >>> from claimstore import claim_store_file_extensions
    >>> ids = IdGenerator()
    >>> store = ClaimStore(FileSystemStore("claims", claim_store_file_extensions()))
    >>> claim = Claim.new("mysql", "install", bundle, ids=ids)
    >>> store.save_claim(claim)
    >>> store.save_result(claim.new_result("succeeded", ids=ids))
    >>> store.read_installation_status("mysql").get_last_status()
    'succeeded'
"""

from claimstore.errors import ClaimStoreError
from claimstore.ids import IdGenerator
from claimstore.installation import Installation
from claimstore.provider import ClaimStore, Provider, claim_store_file_extensions
from claimstore.schema import Bundle, Claim, Output, Outputs, Result, Status
from claimstore.store import (
    BackingStore,
    FileSystemStore,
    MockStore,
    SqliteStore,
    Store,
)

__version__ = "0.1.0"
__author__ = "claimstore Contributors"

__all__ = [
    "BackingStore",
    "Bundle",
    "Claim",
    "ClaimStore",
    "ClaimStoreError",
    "FileSystemStore",
    "IdGenerator",
    "Installation",
    "MockStore",
    "Output",
    "Outputs",
    "Provider",
    "Result",
    "SqliteStore",
    "Status",
    "Store",
    "__author__",
    "__version__",
    "claim_store_file_extensions",
]
