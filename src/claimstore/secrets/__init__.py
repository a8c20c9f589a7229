"""
Secret resolution for claim parameters and credentials.

Key Components:
    - SecretStore: Abstract interface
    - HostSecretStore: Environment variables, files, commands and literal values
"""

from claimstore.secrets.base import SecretStore
from claimstore.secrets.host import (
    SOURCE_COMMAND,
    SOURCE_ENV,
    SOURCE_PATH,
    SOURCE_PRECEDENCE,
    SOURCE_VALUE,
    HostSecretStore,
)

__all__ = [
    "SOURCE_COMMAND",
    "SOURCE_ENV",
    "SOURCE_PATH",
    "SOURCE_PRECEDENCE",
    "SOURCE_VALUE",
    "HostSecretStore",
    "SecretStore",
]
