"""
Unit tests for invocation image log lookup.

Tests cover:
- Logs found on the newest result that captured them
- Results that never captured logs
- Logs flagged in metadata but never persisted
- Logs of the most recent claim
"""

import pytest

from claimstore.errors import ClaimNotFoundError, InstallationNotFoundError
from claimstore.ids import IdGenerator
from claimstore.logs import get_last_logs, get_logs
from claimstore.provider import ClaimStore
from claimstore.schema import (
    ACTION_INSTALL,
    ACTION_UPGRADE,
    OUTPUT_INVOCATION_IMAGE_LOGS,
    Bundle,
    Claim,
    Output,
    Result,
    Status,
)


def save_result_with_logs(
    store: ClaimStore, ids: IdGenerator, claim: Claim, logs: bytes | None
) -> Result:
    result = claim.new_result(Status.SUCCEEDED, ids=ids)
    result.output_metadata.set_generated_by_bundle(OUTPUT_INVOCATION_IMAGE_LOGS, True)
    store.save_result(result)
    if logs is not None:
        store.save_output(
            Output(claim=claim, result=result, name=OUTPUT_INVOCATION_IMAGE_LOGS, value=logs)
        )
    return result


@pytest.fixture
def install(claim_store: ClaimStore, ids: IdGenerator, sample_bundle: Bundle) -> Claim:
    """A saved install claim."""
    claim = Claim.new("mysql", ACTION_INSTALL, sample_bundle, ids=ids)
    claim_store.save_claim(claim)
    return claim


class TestGetLogs:
    """Tests for get_logs."""

    def test_logs_found(self, claim_store: ClaimStore, ids: IdGenerator, install: Claim) -> None:
        """Logs are returned as text."""
        save_result_with_logs(claim_store, ids, install, b"installing mysql\n")
        assert get_logs(claim_store, install.id) == ("installing mysql\n", True)

    def test_newest_result_wins(
        self, claim_store: ClaimStore, ids: IdGenerator, install: Claim
    ) -> None:
        """The newest result that captured logs is used."""
        save_result_with_logs(claim_store, ids, install, b"first attempt")
        save_result_with_logs(claim_store, ids, install, b"second attempt")
        claim_store.save_result(install.new_result(Status.RUNNING, ids=ids))

        assert get_logs(claim_store, install.id) == ("second attempt", True)

    def test_no_logs_captured(
        self, claim_store: ClaimStore, ids: IdGenerator, install: Claim
    ) -> None:
        """Results without the logs flag have no logs."""
        claim_store.save_result(install.new_result(Status.SUCCEEDED, ids=ids))
        assert get_logs(claim_store, install.id) == ("", False)

    def test_no_results(self, claim_store: ClaimStore, install: Claim) -> None:
        """A claim without results has no logs."""
        assert get_logs(claim_store, install.id) == ("", False)

    def test_flagged_but_not_persisted(
        self, claim_store: ClaimStore, ids: IdGenerator, install: Claim
    ) -> None:
        """Logs flagged in metadata but never saved are reported as missing."""
        save_result_with_logs(claim_store, ids, install, None)
        assert get_logs(claim_store, install.id) == ("", False)

    def test_unknown_claim(self, claim_store: ClaimStore) -> None:
        """An unknown claim is an error."""
        with pytest.raises(ClaimNotFoundError):
            get_logs(claim_store, "missing")


class TestGetLastLogs:
    """Tests for get_last_logs."""

    def test_last_claim(
        self,
        claim_store: ClaimStore,
        ids: IdGenerator,
        install: Claim,
        sample_bundle: Bundle,
    ) -> None:
        """Logs come from the most recent claim only."""
        save_result_with_logs(claim_store, ids, install, b"install logs")
        upgrade = install.new_claim(ACTION_UPGRADE, sample_bundle, ids=ids)
        claim_store.save_claim(upgrade)
        save_result_with_logs(claim_store, ids, upgrade, b"upgrade logs")

        assert get_last_logs(claim_store, "mysql") == ("upgrade logs", True)

    def test_unknown_installation(self, claim_store: ClaimStore) -> None:
        """An unknown installation is an error."""
        with pytest.raises(InstallationNotFoundError):
            get_last_logs(claim_store, "mysql")
