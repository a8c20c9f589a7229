"""
Schema definitions for claimstore.

This module defines the Pydantic models for claim data:
- Bundle: the package definition snapshot a claim was made with
- Claim: one action taken against an installation
- Result: one execution attempt of a claim's action
- Output: a named byte payload produced by a result
- OutputMetadata: side-channel facts about outputs, kept on the result

Claims, results and outputs form a hierarchy. Claims are grouped by
installation name, results by claim id, and outputs by result id. Results are
never embedded in the persisted claim document; they are attached in memory
with Claim.with_results() when a caller loads them, and Claim.results
distinguishes "not loaded" (None) from "loaded, none exist" ([]).

Design Decisions:
    - Persisted models are frozen; a changed action produces a new Claim and
      a retry produces a new Result
    - JSON documents use camelCase aliases (schemaVersion, claimID, ...)
    - The bundle is an opaque value: unknown keys are kept, not rejected
"""

import copy
import re
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, RootModel, model_validator

from claimstore.errors import (
    BundleDefinitionError,
    ClaimValidationError,
    InstallationStateError,
    InvalidNameError,
    OutputMetadataError,
    ResultValidationError,
    SchemaVersionError,
)

if TYPE_CHECKING:
    from claimstore.ids import IdGenerator


# =============================================================================
# Constants
# =============================================================================

# The claim schema version written by this package. The "cnab-claim-" prefix means the
# value itself is not a valid semver; get_semver() strips it.
CLAIM_SPEC_VERSION = "cnab-claim-1.0.0-DRAFT+b5ed2f3"

ACTION_INSTALL = "install"
ACTION_UPGRADE = "upgrade"
ACTION_UNINSTALL = "uninstall"
ACTION_UNKNOWN = "unknown"

BUILTIN_ACTIONS = frozenset({ACTION_INSTALL, ACTION_UPGRADE, ACTION_UNINSTALL})

# Output metadata keys
OUTPUT_CONTENT_DIGEST = "contentDigest"
OUTPUT_GENERATED_BY_BUNDLE = "generatedByBundle"

# Well-known output holding the logs of the invocation image
OUTPUT_INVOCATION_IMAGE_LOGS = "io.cnab.outputs.invocationImageLogs"

# Fields left out of saved documents unless set
CLAIM_OPTIONAL_FIELDS = frozenset({"bundle_reference", "custom"})
RESULT_OPTIONAL_FIELDS = frozenset({"message"})

VALID_NAME = re.compile(r"^[a-zA-Z0-9._-]+$")

SPEC_VERSION_PREFIX = re.compile(r"^cnab-[a-z]+-(.*)")

SEMVER = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


# =============================================================================
# Enums
# =============================================================================


class Status(str, Enum):
    """Status of a claim result."""

    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    FAILED = "failed"
    RUNNING = "running"
    PENDING = "pending"
    UNKNOWN = "unknown"


VALID_STATUSES = frozenset(s.value for s in Status)


def _status_value(status: Status | str) -> str:
    return status.value if isinstance(status, Status) else status


# =============================================================================
# Schema Versions
# =============================================================================


def validate_schema_version(version: str) -> None:
    """
    Check that a schema version is a semantic version.

    Raises:
        SchemaVersionError: If the version is empty or not semver
    """
    if not SEMVER.match(version or ""):
        raise SchemaVersionError(
            version=version,
            message=f"invalid schema version {version!r}: not a semantic version",
        )


def get_semver(spec_version: str) -> str:
    """
    Return the semver part of a prefixed schema version.

    Example:
        get_semver("cnab-claim-1.0.0-DRAFT+b5ed2f3") == "1.0.0-DRAFT+b5ed2f3"

    Raises:
        SchemaVersionError: If there is no prefix or the remainder is not semver
    """
    match = SPEC_VERSION_PREFIX.match(spec_version)
    if match is None:
        raise SchemaVersionError(
            version=spec_version,
            message=(
                f"no semver submatch for schemaVersion {spec_version!r} "
                f"using regex {SPEC_VERSION_PREFIX.pattern!r}"
            ),
        )
    version = match.group(1)
    validate_schema_version(version)
    return version


def default_schema_version() -> str:
    """Return the claim schema version written on new claims."""
    return get_semver(CLAIM_SPEC_VERSION)


# =============================================================================
# Bundle Models
# =============================================================================


class Definition(BaseModel):
    """
    A JSON schema definition referenced by bundle parameters and outputs.

    Only the keys claimstore reads are typed; everything else is preserved.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    type: Any = None
    default: Any = None
    write_only: bool | None = Field(default=None, alias="writeOnly")


class BundleAction(BaseModel):
    """A custom action declared by a bundle."""

    model_config = ConfigDict(frozen=True, extra="allow")

    modifies: bool = Field(
        default=False,
        description="Whether the action changes installation state",
    )
    stateless: bool = False
    description: str | None = None


class BundleOutput(BaseModel):
    """An output declared by a bundle."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    definition: str = Field(..., description="Name of the output's definition")
    apply_to: list[str] | None = Field(default=None, alias="applyTo")
    description: str | None = None
    path: str | None = None

    def applies_to(self, action: str) -> bool:
        """Whether the output is produced by the given action."""
        if not self.apply_to:
            return True
        return action in self.apply_to


class Bundle(BaseModel):
    """
    Snapshot of the package definition used for an action.

    Claims store the bundle by value, so changes to the "current" bundle never
    alter a stored claim.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    schema_version: str | None = Field(default=None, alias="schemaVersion")
    name: str = ""
    version: str = ""
    description: str | None = None
    actions: dict[str, BundleAction] = Field(default_factory=dict)
    parameters: dict[str, Any] = Field(default_factory=dict)
    credentials: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, BundleOutput] = Field(default_factory=dict)
    definitions: dict[str, Definition] = Field(default_factory=dict)
    custom: dict[str, Any] | None = None

    def is_output_sensitive(self, output_name: str) -> bool:
        """
        Determine if an output's value is sensitive (write-only).

        Raises:
            BundleDefinitionError: If the output or its definition is not defined
        """
        output = self.outputs.get(output_name)
        if output is None:
            raise BundleDefinitionError(output_name=output_name)

        definition = self.definitions.get(output.definition)
        if definition is None:
            raise BundleDefinitionError(
                output_name=output_name,
                message=f"output definition {output.definition!r} not found",
            )
        return bool(definition.write_only)


def load_bundle(path: Path | str) -> Bundle:
    """
    Load a bundle from a JSON or YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        pydantic.ValidationError: If the document doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return Bundle.model_validate(data)


def load_bundle_from_string(content: str) -> Bundle:
    """Load a bundle from a JSON or YAML string."""
    data = yaml.safe_load(content)
    return Bundle.model_validate(data)


# =============================================================================
# Result Models
# =============================================================================


class OutputMetadata(RootModel[dict[str, Any]]):
    """
    Facts about each output of a result, keyed by output name.

    Each entry is a map of metadata key to string value, for example
    {"password": {"contentDigest": "sha256:...", "generatedByBundle": "true"}}.
    The output's value itself is never stored here.
    """

    root: dict[str, Any] = Field(default_factory=dict)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __getitem__(self, output_name: str) -> Any:
        return self.root[output_name]

    def __setitem__(self, output_name: str, value: Any) -> None:
        self.root[output_name] = value

    def __contains__(self, output_name: object) -> bool:
        return output_name in self.root

    def __len__(self) -> int:
        return len(self.root)

    def set_metadata(self, output_name: str, key: str, value: str) -> None:
        """
        Set a metadata value for an output.

        Raises:
            OutputMetadataError: If the existing entry for the output is not a map
        """
        entry = self.root.get(output_name)
        if entry is None:
            self.root[output_name] = {key: value}
            return
        if not isinstance(entry, dict):
            raise OutputMetadataError(
                output_name=output_name,
                key=key,
                message=(
                    f"cannot set the result's outputMetadata[{output_name}][{key}] "
                    f"because it is not a map but {type(entry).__name__}"
                ),
            )
        entry[key] = value

    def get_metadata(self, output_name: str, key: str) -> str | None:
        """Return a metadata value for an output, or None when it is not set."""
        entry = self.root.get(output_name)
        if not isinstance(entry, dict):
            return None
        value = entry.get(key)
        if not isinstance(value, str):
            return None
        return value

    def set_content_digest(self, output_name: str, digest: str) -> None:
        """Record the content digest of an output."""
        self.set_metadata(output_name, OUTPUT_CONTENT_DIGEST, digest)

    def get_content_digest(self, output_name: str) -> str | None:
        """Return the content digest of an output, if recorded."""
        return self.get_metadata(output_name, OUTPUT_CONTENT_DIGEST)

    def set_generated_by_bundle(self, output_name: str, generated: bool) -> None:
        """Record whether the output was produced by the invocation image."""
        self.set_metadata(output_name, OUTPUT_GENERATED_BY_BUNDLE, str(generated).lower())

    def get_generated_by_bundle(self, output_name: str) -> bool | None:
        """
        Return whether the output was produced by the invocation image.

        Returns None when the flag is missing or is not "true"/"false".
        """
        value = self.get_metadata(output_name, OUTPUT_GENERATED_BY_BUNDLE)
        if value == "true":
            return True
        if value == "false":
            return False
        return None


class Result(BaseModel):
    """
    The outcome of one execution attempt of a claim's action.

    Attributes:
        id: Unique, time-sortable identifier
        claim_id: ID of the owning claim
        status: One of the Status values
        message: Optional human-readable detail
        output_metadata: Facts about the outputs this attempt produced
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default="", description="Unique identifier for this result")
    claim_id: str = Field(default="", alias="claimID", description="Owning claim id")
    status: str = Field(default="", description="Status of the execution attempt")
    message: str | None = Field(default=None, description="Human-readable detail")
    output_metadata: OutputMetadata = Field(
        default_factory=lambda: OutputMetadata({}),
        alias="outputMetadata",
        description="Metadata about the outputs of this result",
    )

    @model_validator(mode="after")
    def _mark_persisted_fields(self) -> "Result":
        # Saved documents omit unset fields; only message is optional
        self.model_fields_set.update(
            name for name in type(self).model_fields if name not in RESULT_OPTIONAL_FIELDS
        )
        return self

    def validate_result(self) -> None:
        """
        Validate the result.

        Raises:
            ResultValidationError: If the id or claim id is missing, or the
                status is not one of the Status values
        """
        if not self.id:
            raise ResultValidationError(
                message="the result id must be set", field_name="id"
            )
        if not self.claim_id:
            raise ResultValidationError(
                result_id=self.id,
                message="the claimID must be set",
                field_name="claimID",
            )
        if self.status not in VALID_STATUSES:
            raise ResultValidationError(
                result_id=self.id,
                message=f"invalid status: {self.status}",
                field_name="status",
            )

    def has_logs(self) -> bool:
        """Whether the invocation image logs were captured for this result."""
        generated = self.output_metadata.get_generated_by_bundle(
            OUTPUT_INVOCATION_IMAGE_LOGS
        )
        return generated is not None


# =============================================================================
# Claim Model
# =============================================================================


class Claim(BaseModel):
    """
    A record of one action taken against an installation.

    A claim is never modified after it is saved. Use new_claim() for a
    follow-up action and new_result() to record an execution attempt.

    Attributes:
        schema_version: Semver of the claim schema
        id: Unique, time-sortable identifier
        installation: Name of the installation
        revision: Changes only when an action modifies the installation
        created: When the claim was created
        action: The action executed against the installation
        bundle: Snapshot of the bundle definition
        bundle_reference: Canonical reference to the bundle, if known
        parameters: Parameters passed to the action
        custom: Runtime-specific extension data
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: str = Field(default="", alias="schemaVersion")
    id: str = Field(default="", description="Unique identifier for this claim")
    installation: str = Field(default="", description="Installation name")
    revision: str = Field(default="", description="Installation revision")
    created: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the claim was created",
    )
    action: str = Field(default="", description="Action executed")
    bundle: Bundle = Field(default_factory=Bundle, description="Bundle definition")
    bundle_reference: str | None = Field(default=None, alias="bundleReference")
    parameters: dict[str, Any] = Field(default_factory=dict)
    custom: Any = None

    _results: list[Result] | None = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _mark_persisted_fields(self) -> "Claim":
        self.model_fields_set.update(
            name for name in type(self).model_fields if name not in CLAIM_OPTIONAL_FIELDS
        )
        return self

    @classmethod
    def new(
        cls,
        installation: str,
        action: str,
        bundle: Bundle,
        parameters: dict[str, Any] | None = None,
        *,
        ids: "IdGenerator",
    ) -> "Claim":
        """
        Create a claim for the first action against an installation.

        Raises:
            InvalidNameError: If the installation name has disallowed characters
            IdGenerationError: If an id cannot be generated
        """
        if not VALID_NAME.match(installation):
            raise InvalidNameError(name=installation)

        return cls(
            schema_version=default_schema_version(),
            id=ids.new_id(),
            installation=installation,
            revision=ids.new_id(),
            created=datetime.now(UTC),
            action=action,
            bundle=bundle.model_copy(deep=True),
            parameters=copy.deepcopy(parameters or {}),
        )

    def new_claim(
        self,
        action: str,
        bundle: Bundle,
        parameters: dict[str, Any] | None = None,
        *,
        ids: "IdGenerator",
    ) -> "Claim":
        """
        Create the claim for a follow-up action on the same installation.

        The new claim always gets a new id. It gets a new revision only when the
        action modifies the installation.

        Raises:
            ClaimValidationError: If the action is a custom action the bundle
                does not define
        """
        updated = self.model_copy(
            update={
                "id": ids.new_id(),
                "action": action,
                "bundle": bundle.model_copy(deep=True),
                "parameters": copy.deepcopy(parameters or {}),
                "created": datetime.now(UTC),
            }
        )
        updated._results = None

        if updated.is_modifying_action():
            updated = updated.model_copy(update={"revision": ids.new_id()})
        return updated

    def is_modifying_action(self) -> bool:
        """
        Whether the claim's action changes the installation.

        Raises:
            ClaimValidationError: If a custom action is not defined in the bundle
        """
        if self.action in BUILTIN_ACTIONS:
            return True

        action = self.bundle.actions.get(self.action)
        if action is None:
            raise ClaimValidationError(
                claim_id=self.id,
                message=f"custom action not defined {self.action!r}",
                field_name="action",
            )
        return action.modifies

    def new_result(
        self,
        status: Status | str,
        *,
        ids: "IdGenerator",
        message: str | None = None,
    ) -> Result:
        """Create a result for an execution attempt of this claim's action."""
        fields: dict[str, Any] = {
            "id": ids.new_id(),
            "claim_id": self.id,
            "status": _status_value(status),
        }
        if message is not None:
            fields["message"] = message
        return Result(**fields)

    def validate_claim(self) -> None:
        """
        Validate the claim.

        Raises:
            SchemaVersionError: If the schema version is not semver
            ClaimValidationError: If a required field is missing or the action
                is neither built in nor defined by the bundle
        """
        validate_schema_version(self.schema_version)

        required = (
            ("id", self.id, "the claim id must be set"),
            ("revision", self.revision, "the revision must be set"),
            ("installation", self.installation, "the installation must be set"),
            ("action", self.action, "the action must be set"),
        )
        for field_name, value, message in required:
            if not value:
                raise ClaimValidationError(
                    claim_id=self.id, message=message, field_name=field_name
                )

        if self.action not in BUILTIN_ACTIONS and self.action not in self.bundle.actions:
            raise ClaimValidationError(
                claim_id=self.id,
                message=f"action {self.action!r} is not defined in the bundle",
                field_name="action",
            )

    # -------------------------------------------------------------------------
    # In-memory results
    # -------------------------------------------------------------------------

    @property
    def results(self) -> list[Result] | None:
        """Loaded results sorted by id, or None when results were not loaded."""
        if self._results is None:
            return None
        return list(self._results)

    def with_results(self, results: list[Result] | None) -> "Claim":
        """Return a copy of the claim with the given results attached, sorted by id."""
        claim = self.model_copy()
        claim._results = None if results is None else sort_results(results)
        return claim

    def get_last_result(self) -> Result:
        """
        Return the most recent result of the claim.

        Raises:
            InstallationStateError: If results are not loaded or there are none
        """
        if self._results is None:
            raise InstallationStateError(
                installation=self.installation,
                message="the claim does not have results loaded",
            )
        if not self._results:
            raise InstallationStateError(
                installation=self.installation,
                message="the claim has no results",
            )
        return sort_results(self._results)[-1]

    def get_status(self) -> str:
        """Return the status of the last result, or "unknown"."""
        try:
            return self.get_last_result().status
        except InstallationStateError:
            return Status.UNKNOWN.value

    def has_logs(self) -> bool | None:
        """
        Whether logs were persisted for the claim's action.

        Returns None when it cannot be determined because results are not loaded.
        """
        if self._results is None:
            return None
        return any(r.has_logs() for r in self._results)


def sort_claims(claims: list[Claim]) -> list[Claim]:
    """Return claims in chronological (id) order."""
    return sorted(claims, key=lambda c: c.id)


def sort_results(results: list[Result]) -> list[Result]:
    """Return results in chronological (id) order."""
    return sorted(results, key=lambda r: r.id)


# =============================================================================
# Output Models
# =============================================================================


class Output(BaseModel):
    """
    The value of a named output produced by a result.

    The owning claim travels with the output because its bundle decides
    whether the value is sensitive and must be encrypted at rest.
    """

    model_config = ConfigDict(frozen=True)

    claim: Claim
    result: Result
    name: str = Field(..., min_length=1)
    value: bytes = b""

    def get_definition(self) -> BundleOutput | None:
        """Return the bundle's declaration of this output, if any."""
        return self.claim.bundle.outputs.get(self.name)

    def get_schema(self) -> Definition | None:
        """Return the schema definition of this output, if any."""
        output = self.get_definition()
        if output is None:
            return None
        return self.claim.bundle.definitions.get(output.definition)


class Outputs:
    """An ordered collection of outputs, sorted by output name."""

    def __init__(self, outputs: list[Output] | None = None) -> None:
        self._outputs = sorted(outputs or [], key=lambda o: o.name)

    def __len__(self) -> int:
        return len(self._outputs)

    def __iter__(self) -> Iterator[Output]:
        return iter(self._outputs)

    def __repr__(self) -> str:
        return f"Outputs({[o.name for o in self._outputs]!r})"

    def append(self, output: Output) -> None:
        """Add an output, keeping the collection sorted by name."""
        self._outputs.append(output)
        self._outputs.sort(key=lambda o: o.name)

    def names(self) -> list[str]:
        """Output names in sorted order."""
        return [o.name for o in self._outputs]

    def get_by_name(self, name: str) -> Output | None:
        """Return the output with the given name, if present."""
        for output in self._outputs:
            if output.name == name:
                return output
        return None

    def get_by_index(self, index: int) -> Output | None:
        """Return the output at a position, or None when out of range."""
        if 0 <= index < len(self._outputs):
            return self._outputs[index]
        return None
