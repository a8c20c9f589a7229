"""
Invocation image logs.

A runtime that captures the logs of an action persists them as the output
named io.cnab.outputs.invocationImageLogs and marks it generatedByBundle in
the result's output metadata. These helpers find and read that output.
"""

import logging

from claimstore.errors import OutputNotFoundError
from claimstore.provider.base import Provider
from claimstore.schema import OUTPUT_INVOCATION_IMAGE_LOGS

logger = logging.getLogger(__name__)


def get_logs(provider: Provider, claim_id: str) -> tuple[str, bool]:
    """
    Return the logs of a claim's action.

    The results of the claim are searched newest first; the first one that
    captured logs is used.

    Returns:
        (logs, True) when logs were found, ("", False) otherwise. A result
        whose metadata says logs were captured but whose output was never
        persisted counts as not found.

    Raises:
        ClaimStoreError: If the claim or its results cannot be read
    """
    claim = provider.read_claim(claim_id)
    results = provider.read_all_results(claim_id)

    for result in reversed(results):
        if not result.has_logs():
            continue
        try:
            output = provider.read_output(claim, result, OUTPUT_INVOCATION_IMAGE_LOGS)
        except OutputNotFoundError:
            logger.debug("Result %s captured logs but none were persisted", result.id)
            return "", False
        return output.value.decode("utf-8", errors="replace"), True

    return "", False


def get_last_logs(provider: Provider, installation: str) -> tuple[str, bool]:
    """Return the logs of the most recent claim of an installation."""
    claim = provider.read_last_claim(installation)
    return get_logs(provider, claim.id)
