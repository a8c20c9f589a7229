"""
The Installation aggregate.

An Installation is never stored. It is assembled in memory from the claims of
one installation name (and, when loaded, each claim's results) so callers can
ask "what happened last" without walking the hierarchy themselves.
"""

from datetime import datetime

from claimstore.errors import InstallationStateError
from claimstore.schema import ACTION_INSTALL, Claim, Result, Status, sort_claims


class Installation:
    """
    A named installation with its claims in chronological order.

    Claims are sorted by id on construction, and results attached to each
    claim are sorted by id as well. Claims whose results were not loaded keep
    that state.

    Attributes:
        name: The installation name
        claims: Claims sorted oldest first
    """

    def __init__(self, name: str, claims: list[Claim] | None = None) -> None:
        self.name = name
        self.claims: list[Claim] = [
            c if c.results is None else c.with_results(c.results)
            for c in sort_claims(list(claims or []))
        ]

    def __repr__(self) -> str:
        return f"Installation(name={self.name!r}, claims={len(self.claims)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Installation):
            return NotImplemented
        return self.name == other.name and self.claims == other.claims

    def get_installation_timestamp(self) -> datetime:
        """
        Return when the installation was first installed.

        Raises:
            InstallationStateError: If there are no claims or none is an install
        """
        if not self.claims:
            raise InstallationStateError(
                installation=self.name,
                message=f"the installation {self.name} has no claims",
            )

        for claim in self.claims:
            if claim.action == ACTION_INSTALL:
                return claim.created

        raise InstallationStateError(
            installation=self.name,
            message=f"the installation {self.name} has never been installed",
        )

    def get_last_claim(self) -> Claim:
        """
        Return the most recent claim.

        Raises:
            InstallationStateError: If there are no claims
        """
        if not self.claims:
            raise InstallationStateError(
                installation=self.name,
                message=f"the installation {self.name} has no claims",
            )
        return self.claims[-1]

    def get_last_result(self) -> Result:
        """
        Return the most recent result of the most recent claim.

        Raises:
            InstallationStateError: If there are no claims, the last claim's
                results are not loaded, or it has no results
        """
        last_claim = self.get_last_claim()
        results = last_claim.results
        if results is None:
            raise InstallationStateError(
                installation=self.name,
                message="the last claim does not have any results loaded",
            )
        if not results:
            raise InstallationStateError(
                installation=self.name,
                message="the last claim has no results",
            )
        return results[-1]

    def get_last_status(self) -> str:
        """Return the status of the most recent result, or "unknown"."""
        try:
            return self.get_last_result().status
        except InstallationStateError:
            return Status.UNKNOWN.value


def sort_by_name(installations: list[Installation]) -> list[Installation]:
    """Return installations ordered by name."""
    return sorted(installations, key=lambda i: i.name)


def sort_by_modified(installations: list[Installation]) -> list[Installation]:
    """
    Return installations ordered by their most recent claim, oldest first.

    Installations without claims sort before all others.
    """
    return sorted(
        installations,
        key=lambda i: i.claims[-1].id if i.claims else "",
    )
