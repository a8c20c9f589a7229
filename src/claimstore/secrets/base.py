"""
Secret store interface.

Claim parameters and credentials are often given as a pointer to a secret
rather than the secret itself. A SecretStore turns such a (source, value)
pair into the secret.
"""

from abc import ABC, abstractmethod


class SecretStore(ABC):
    """Abstract base class for secret resolution."""

    @abstractmethod
    def resolve(self, source: str, value: str) -> str:
        """
        Resolve a secret.

        Args:
            source: Kind of source, e.g. "env" or "path"
            value: Where to find the secret within that source

        Raises:
            SecretResolutionError: If the source is unknown or cannot be read
        """
