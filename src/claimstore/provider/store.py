"""
ClaimStore: claim data persisted in a key-blob store.

Claim data forms a hierarchy, and each level is grouped by its parent so that
stores able to query by group can do so:

    installations/  INSTALLATION                  (empty marker record)
    claims/         INSTALLATION/CLAIM_ID
    results/        CLAIM_ID/RESULT_ID
    outputs/        RESULT_ID/RESULT_ID-OUTPUT_NAME

Output names repeat across executions, so an output's key is prefixed with its
result id to make it unique.

Encryption:
    Claims are passed through the encrypt handler before they are written and
    the decrypt handler after they are read; they may hold sensitive parameter
    values. Outputs are encrypted only when the claim's bundle declares the
    output write-only. When that lookup fails (e.g. the bundle does not
    declare the output) the output is stored in clear. Results hold no
    values and are never encrypted. Both handlers default to the identity.

Errors:
    Backends report a missing record with RecordNotFoundError. ClaimStore
    never lets that escape: it is re-raised as InstallationNotFoundError,
    ClaimNotFoundError, ResultNotFoundError or OutputNotFoundError.
"""

import logging
from typing import Callable, TypeVar

from pydantic import ValidationError as PydanticValidationError

from claimstore.errors import (
    BundleDefinitionError,
    ClaimNotFoundError,
    EncryptionError,
    InstallationNotFoundError,
    NotFoundError,
    OutputNotFoundError,
    RecordNotFoundError,
    ResultNotFoundError,
    SerializationError,
    StorageError,
)
from claimstore.installation import Installation
from claimstore.provider.base import Provider
from claimstore.schema import Claim, Output, Outputs, Result
from claimstore.store.backing import BackingStore
from claimstore.store.base import Store

logger = logging.getLogger(__name__)

ITEM_TYPE_INSTALLATIONS = "installations"
ITEM_TYPE_CLAIMS = "claims"
ITEM_TYPE_RESULTS = "results"
ITEM_TYPE_OUTPUTS = "outputs"

EncryptionHandler = Callable[[bytes], bytes]

ModelT = TypeVar("ModelT", Claim, Result)


def no_op_encryption(data: bytes) -> bytes:
    """The default encryption handler: returns the data unchanged."""
    return data


def claim_store_file_extensions() -> dict[str, str]:
    """File extensions FileSystemStore should use for claim data."""
    return {
        ITEM_TYPE_CLAIMS: ".json",
        ITEM_TYPE_RESULTS: ".json",
        ITEM_TYPE_OUTPUTS: "",
        ITEM_TYPE_INSTALLATIONS: "",
    }


class ClaimStore(Provider):
    """
    Provider implementation over a key-blob store.

    Usage:
        store = ClaimStore(FileSystemStore(path, claim_store_file_extensions()))
        store.save_claim(claim)
        installation = store.read_installation("mysql")

    Args:
        store: The store to persist to. Stores that are not already wrapped
            in a BackingStore are wrapped automatically.
        encrypt: Applied to claims and sensitive outputs before they are saved
        decrypt: Applied to claims and sensitive outputs after they are read
    """

    def __init__(
        self,
        store: Store,
        encrypt: EncryptionHandler | None = None,
        decrypt: EncryptionHandler | None = None,
    ) -> None:
        self.backing_store = store if isinstance(store, BackingStore) else BackingStore(store)
        self.encrypt = encrypt or no_op_encryption
        self.decrypt = decrypt or no_op_encryption

    def __repr__(self) -> str:
        return f"ClaimStore({self.backing_store!r})"

    @staticmethod
    def output_key(result_id: str, output_name: str) -> str:
        """Storage key of an output, unique across results."""
        return f"{result_id}-{output_name}"

    # =========================================================================
    # Listing
    # =========================================================================

    def list_installations(self) -> list[str]:
        return sorted(self.backing_store.list(ITEM_TYPE_INSTALLATIONS, ""))

    def list_claims(self, installation: str) -> list[str]:
        return sorted(self.backing_store.list(ITEM_TYPE_CLAIMS, installation))

    def list_results(self, claim_id: str) -> list[str]:
        return sorted(self.backing_store.list(ITEM_TYPE_RESULTS, claim_id))

    def list_outputs(self, result_id: str) -> list[str]:
        prefix = self.output_key(result_id, "")
        keys = self.backing_store.list(ITEM_TYPE_OUTPUTS, result_id)
        return sorted(key[len(prefix):] if key.startswith(prefix) else key for key in keys)

    # =========================================================================
    # Installations
    # =========================================================================

    def read_installation(self, installation: str) -> Installation:
        with self.backing_store.session():
            claims = [
                claim.with_results(self.read_all_results(claim.id))
                for claim in self.read_all_claims(installation)
            ]
        return Installation(installation, claims)

    def read_installation_status(self, installation: str) -> Installation:
        with self.backing_store.session():
            claim = self.read_last_claim(installation)
            try:
                results = [self.read_last_result(claim.id)]
            except ResultNotFoundError:
                results = []
        return Installation(installation, [claim.with_results(results)])

    def read_all_installation_status(self) -> list[Installation]:
        # The first failing installation fails the whole call
        with self.backing_store.session():
            return [
                self.read_installation_status(name)
                for name in self.list_installations()
            ]

    # =========================================================================
    # Claims
    # =========================================================================

    def read_claim(self, claim_id: str) -> Claim:
        data = self._read(ITEM_TYPE_CLAIMS, claim_id, ClaimNotFoundError)
        data = self._transform(self.decrypt, data, "read_claim", "claim", claim_id)
        return self._decode(Claim, data, "claim", claim_id)

    def read_all_claims(self, installation: str) -> list[Claim]:
        with self.backing_store.session():
            claims = [self.read_claim(claim_id) for claim_id in self.list_claims(installation)]
        if not claims:
            raise InstallationNotFoundError(key=installation)
        return sorted(claims, key=lambda c: c.id)

    def read_last_claim(self, installation: str) -> Claim:
        with self.backing_store.session():
            claim_ids = self.list_claims(installation)
            if not claim_ids:
                raise InstallationNotFoundError(key=installation)
            return self.read_claim(claim_ids[-1])

    # =========================================================================
    # Results
    # =========================================================================

    def read_result(self, result_id: str) -> Result:
        data = self._read(ITEM_TYPE_RESULTS, result_id, ResultNotFoundError)
        return self._decode(Result, data, "result", result_id)

    def read_all_results(self, claim_id: str) -> list[Result]:
        with self.backing_store.session():
            results = [self.read_result(result_id) for result_id in self.list_results(claim_id)]
        return sorted(results, key=lambda r: r.id)

    def read_last_result(self, claim_id: str) -> Result:
        with self.backing_store.session():
            result_ids = self.list_results(claim_id)
            if not result_ids:
                raise ResultNotFoundError(
                    key=claim_id,
                    message=f"Claim {claim_id} has no results",
                )
            return self.read_result(result_ids[-1])

    # =========================================================================
    # Outputs
    # =========================================================================

    def read_last_outputs(self, installation: str) -> Outputs:
        return self._read_last_outputs(installation)

    def read_last_output(self, installation: str, name: str) -> Output:
        output = self._read_last_outputs(installation, name).get_by_name(name)
        if output is None:
            raise OutputNotFoundError(
                key=name,
                message=f"Output {name} does not exist for installation {installation}",
            )
        return output

    def read_output(self, claim: Claim, result: Result, output_name: str) -> Output:
        key = self.output_key(result.id, output_name)
        data = self._read(ITEM_TYPE_OUTPUTS, key, OutputNotFoundError)
        if self._is_sensitive(claim, output_name):
            data = self._transform(self.decrypt, data, "read_output", "output", key)
        return Output(claim=claim, result=result, name=output_name, value=data)

    def _read_last_outputs(self, installation: str, output_name: str | None = None) -> Outputs:
        """
        Find the most recent value of each output across every claim.

        Results from all claims are ordered together so "most recent" is
        global to the installation, and a later result replaces an earlier
        one for any output name both produced.
        """
        with self.backing_store.session():
            results: list[tuple[Result, Claim]] = []
            for claim in self.read_all_claims(installation):
                for result in self.read_all_results(claim.id):
                    results.append((result, claim))
            results.sort(key=lambda pair: pair[0].id)

            last: dict[str, tuple[Claim, Result]] = {}
            for result, claim in results:
                for name in self.list_outputs(result.id):
                    if output_name is not None and name != output_name:
                        continue
                    last[name] = (claim, result)

            return Outputs([
                self.read_output(claim, result, name)
                for name, (claim, result) in last.items()
            ])

    # =========================================================================
    # Writes
    # =========================================================================

    def save_claim(self, claim: Claim) -> None:
        data = self._encode(claim, "claim", claim.id)
        data = self._transform(self.encrypt, data, "save_claim", "claim", claim.id)
        with self.backing_store.session():
            self.backing_store.save(ITEM_TYPE_CLAIMS, claim.installation, claim.id, data)
            self.backing_store.save(ITEM_TYPE_INSTALLATIONS, "", claim.installation, b"")
        logger.debug("Saved claim %s for installation %s", claim.id, claim.installation)

    def save_result(self, result: Result) -> None:
        data = self._encode(result, "result", result.id)
        self.backing_store.save(ITEM_TYPE_RESULTS, result.claim_id, result.id, data)
        logger.debug("Saved result %s for claim %s", result.id, result.claim_id)

    def save_output(self, output: Output) -> None:
        key = self.output_key(output.result.id, output.name)
        data = output.value
        if self._is_sensitive(output.claim, output.name):
            data = self._transform(self.encrypt, data, "save_output", "output", key)
        self.backing_store.save(ITEM_TYPE_OUTPUTS, output.result.id, key, data)
        logger.debug("Saved output %s for result %s", output.name, output.result.id)

    def delete_installation(self, installation: str) -> None:
        with self.backing_store.session():
            claim_ids = self.list_claims(installation)
            for claim_id in claim_ids:
                self.delete_claim(claim_id)
            try:
                self.backing_store.delete(ITEM_TYPE_INSTALLATIONS, installation)
            except RecordNotFoundError as e:
                # Claims saved without a marker record still count
                if not claim_ids:
                    raise InstallationNotFoundError(key=installation) from e
        logger.debug("Deleted installation %s", installation)

    def delete_claim(self, claim_id: str) -> None:
        with self.backing_store.session():
            for result_id in self.list_results(claim_id):
                self.delete_result(result_id)
            self._delete(ITEM_TYPE_CLAIMS, claim_id, ClaimNotFoundError)
        logger.debug("Deleted claim %s", claim_id)

    def delete_result(self, result_id: str) -> None:
        with self.backing_store.session():
            for output_name in self.list_outputs(result_id):
                self.delete_output(result_id, output_name)
            self._delete(ITEM_TYPE_RESULTS, result_id, ResultNotFoundError)
        logger.debug("Deleted result %s", result_id)

    def delete_output(self, result_id: str, output_name: str) -> None:
        self._delete(
            ITEM_TYPE_OUTPUTS, self.output_key(result_id, output_name), OutputNotFoundError
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _read(self, item_type: str, name: str, not_found: type[NotFoundError]) -> bytes:
        try:
            return self.backing_store.read(item_type, name)
        except RecordNotFoundError as e:
            raise not_found(key=name) from e
        except StorageError as e:
            e.context.setdefault("key", name)
            raise

    def _delete(self, item_type: str, name: str, not_found: type[NotFoundError]) -> None:
        try:
            self.backing_store.delete(item_type, name)
        except RecordNotFoundError as e:
            raise not_found(key=name) from e
        except StorageError as e:
            e.context.setdefault("key", name)
            raise

    def _is_sensitive(self, claim: Claim, output_name: str) -> bool:
        try:
            return claim.bundle.is_output_sensitive(output_name)
        except BundleDefinitionError as e:
            # Stored in clear; see the module docstring
            logger.debug(
                "Treating output %s of claim %s as not sensitive: %s",
                output_name,
                claim.id,
                e.message,
            )
            return False

    @staticmethod
    def _transform(
        handler: EncryptionHandler,
        data: bytes,
        operation: str,
        entity: str,
        key: str,
    ) -> bytes:
        try:
            return handler(data)
        except Exception as e:
            raise EncryptionError(
                operation=operation,
                entity=entity,
                key=key,
                underlying_error=str(e),
            ) from e

    @staticmethod
    def _encode(model: Claim | Result, entity: str, key: str) -> bytes:
        try:
            return model.model_dump_json(
                by_alias=True, exclude_unset=True, indent=2
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(entity=entity, key=key, underlying_error=str(e)) from e

    @staticmethod
    def _decode(model: type[ModelT], data: bytes, entity: str, key: str) -> ModelT:
        try:
            return model.model_validate_json(data)
        except PydanticValidationError as e:
            raise SerializationError(entity=entity, key=key, underlying_error=str(e)) from e
