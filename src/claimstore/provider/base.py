"""
The claim data contract.

Provider is the interface callers program against. ClaimStore is the
implementation over a key-blob store; other implementations (for example a
read-only view, or a remote API client) can be swapped in without callers
noticing.

All list methods return names or ids in ascending order, which for ids is
chronological order.
"""

from abc import ABC, abstractmethod

from claimstore.installation import Installation
from claimstore.schema import Claim, Output, Outputs, Result


class Provider(ABC):
    """Abstract interface for reading and writing claim data."""

    # =========================================================================
    # Listing
    # =========================================================================

    @abstractmethod
    def list_installations(self) -> list[str]:
        """Return installation names, sorted."""

    @abstractmethod
    def list_claims(self, installation: str) -> list[str]:
        """Return the claim ids of an installation, sorted."""

    @abstractmethod
    def list_results(self, claim_id: str) -> list[str]:
        """Return the result ids of a claim, sorted."""

    @abstractmethod
    def list_outputs(self, result_id: str) -> list[str]:
        """
        Return the names of the outputs persisted for a result, sorted.

        A result may have produced outputs that were not persisted.
        """

    # =========================================================================
    # Installations
    # =========================================================================

    @abstractmethod
    def read_installation(self, installation: str) -> Installation:
        """Return the installation with every claim and every result loaded."""

    @abstractmethod
    def read_installation_status(self, installation: str) -> Installation:
        """Return the installation with only its last claim and that claim's last result."""

    @abstractmethod
    def read_all_installation_status(self) -> list[Installation]:
        """Return read_installation_status() for every installation."""

    # =========================================================================
    # Claims
    # =========================================================================

    @abstractmethod
    def read_claim(self, claim_id: str) -> Claim:
        """Return a claim."""

    @abstractmethod
    def read_all_claims(self, installation: str) -> list[Claim]:
        """Return every claim of an installation, oldest first."""

    @abstractmethod
    def read_last_claim(self, installation: str) -> Claim:
        """Return the most recent claim of an installation."""

    # =========================================================================
    # Results
    # =========================================================================

    @abstractmethod
    def read_result(self, result_id: str) -> Result:
        """Return a result."""

    @abstractmethod
    def read_all_results(self, claim_id: str) -> list[Result]:
        """Return every result of a claim, oldest first."""

    @abstractmethod
    def read_last_result(self, claim_id: str) -> Result:
        """Return the most recent result of a claim."""

    # =========================================================================
    # Outputs
    # =========================================================================

    @abstractmethod
    def read_last_outputs(self, installation: str) -> Outputs:
        """Return the most recent value of each output of an installation."""

    @abstractmethod
    def read_last_output(self, installation: str, name: str) -> Output:
        """Return the most recent value of one output of an installation."""

    @abstractmethod
    def read_output(self, claim: Claim, result: Result, output_name: str) -> Output:
        """Return an output persisted for a result."""

    # =========================================================================
    # Writes
    # =========================================================================

    @abstractmethod
    def save_claim(self, claim: Claim) -> None:
        """Persist a claim. Its results are saved separately with save_result()."""

    @abstractmethod
    def save_result(self, result: Result) -> None:
        """Persist a result."""

    @abstractmethod
    def save_output(self, output: Output) -> None:
        """Persist an output, encrypting it when the bundle marks it sensitive."""

    @abstractmethod
    def delete_installation(self, installation: str) -> None:
        """Remove an installation and all of its claims, results and outputs."""

    @abstractmethod
    def delete_claim(self, claim_id: str) -> None:
        """Remove a claim and all of its results and outputs."""

    @abstractmethod
    def delete_result(self, result_id: str) -> None:
        """Remove a result and all of its outputs."""

    @abstractmethod
    def delete_output(self, result_id: str, output_name: str) -> None:
        """Remove one output of a result."""
