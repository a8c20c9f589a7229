"""
Claim data providers.

Key Components:
    - Provider: The interface for reading and writing claims, results and outputs
    - ClaimStore: Provider backed by a key-blob store
"""

from claimstore.provider.base import Provider
from claimstore.provider.store import (
    ITEM_TYPE_CLAIMS,
    ITEM_TYPE_INSTALLATIONS,
    ITEM_TYPE_OUTPUTS,
    ITEM_TYPE_RESULTS,
    ClaimStore,
    EncryptionHandler,
    claim_store_file_extensions,
    no_op_encryption,
)

__all__ = [
    "ITEM_TYPE_CLAIMS",
    "ITEM_TYPE_INSTALLATIONS",
    "ITEM_TYPE_OUTPUTS",
    "ITEM_TYPE_RESULTS",
    "ClaimStore",
    "EncryptionHandler",
    "Provider",
    "claim_store_file_extensions",
    "no_op_encryption",
]
