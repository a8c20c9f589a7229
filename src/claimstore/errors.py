"""
Exception hierarchy for claimstore.

All claimstore exceptions inherit from ClaimStoreError, allowing callers to
catch every library-specific exception with a single except clause.

Exception Categories:
    - ValidationError: A claim, result, name or schema version is malformed
    - NotFoundError: An installation, claim, result or output does not exist
    - StorageError: The backing key-blob store failed
    - EncryptionError / SerializationError: A stored document could not be
      transformed or decoded
    - IdGenerationError: The identifier generator could not produce an id
    - SecretResolutionError: A secret source could not be resolved
    - InstallationStateError: The in-memory aggregate cannot answer a query

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (entity kind and id where applicable)
    - Backend "record does not exist" signals never leak past ClaimStore;
      they are re-raised as the entity-scoped NotFoundError subclass
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Validation errors: 1xxx
ERROR_VALIDATION = 1001
ERROR_INVALID_NAME = 1002
ERROR_CLAIM_INVALID = 1003
ERROR_RESULT_INVALID = 1004
ERROR_SCHEMA_VERSION = 1005
ERROR_OUTPUT_METADATA = 1006
ERROR_BUNDLE_DEFINITION = 1007

# Not found errors: 2xxx
ERROR_NOT_FOUND = 2000
ERROR_INSTALLATION_NOT_FOUND = 2001
ERROR_CLAIM_NOT_FOUND = 2002
ERROR_RESULT_NOT_FOUND = 2003
ERROR_OUTPUT_NOT_FOUND = 2004

# Storage errors: 3xxx
ERROR_STORAGE_CONNECTION = 3001
ERROR_STORAGE_WRITE = 3002
ERROR_STORAGE_READ = 3003
ERROR_RECORD_NOT_FOUND = 3004

# Data handling errors: 4xxx
ERROR_ENCRYPTION = 4001
ERROR_SERIALIZATION = 4002

# Identifier and secret errors: 5xxx
ERROR_ID_GENERATION = 5001
ERROR_SECRET_RESOLUTION = 5002

# Aggregate state errors: 6xxx
ERROR_INSTALLATION_STATE = 6001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ClaimStoreError(Exception):
    """
    Base exception for all claimstore errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass
class ValidationError(ClaimStoreError):
    """
    Base class for validation failures.

    Attributes:
        field_name: The field that failed validation (if applicable)
    """

    field_name: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_VALIDATION
        self.context["field"] = self.field_name


@dataclass
class InvalidNameError(ValidationError):
    """Raised when an installation name contains disallowed characters."""

    name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"invalid installation name {self.name!r}. "
                "Names must be [a-zA-Z0-9._-]+"
            )
        if self.code == 0:
            self.code = ERROR_INVALID_NAME
        if self.field_name is None:
            self.field_name = "installation"
        super().__post_init__()
        self.context["name"] = self.name


@dataclass
class ClaimValidationError(ValidationError):
    """Raised when Claim.validate() rejects a claim."""

    claim_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "claim validation failed"
        if self.code == 0:
            self.code = ERROR_CLAIM_INVALID
        super().__post_init__()
        self.context["claim_id"] = self.claim_id


@dataclass
class ResultValidationError(ValidationError):
    """Raised when Result.validate() rejects a result."""

    result_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "result validation failed"
        if self.code == 0:
            self.code = ERROR_RESULT_INVALID
        super().__post_init__()
        self.context["result_id"] = self.result_id


@dataclass
class SchemaVersionError(ValidationError):
    """Raised when a schema version is not a semantic version."""

    version: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"invalid schema version {self.version!r}"
        if self.code == 0:
            self.code = ERROR_SCHEMA_VERSION
        if self.field_name is None:
            self.field_name = "schemaVersion"
        super().__post_init__()
        self.context["version"] = self.version


@dataclass
class OutputMetadataError(ValidationError):
    """Raised when output metadata has an unexpected structure."""

    output_name: str = ""
    key: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"cannot set the result's outputMetadata[{self.output_name}][{self.key}]"
            )
        if self.code == 0:
            self.code = ERROR_OUTPUT_METADATA
        super().__post_init__()
        self.context.update({
            "output_name": self.output_name,
            "key": self.key,
        })


@dataclass
class BundleDefinitionError(ValidationError):
    """Raised when the bundle does not define an output or its definition."""

    output_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"output {self.output_name!r} not defined"
        if self.code == 0:
            self.code = ERROR_BUNDLE_DEFINITION
        super().__post_init__()
        self.context["output_name"] = self.output_name


# =============================================================================
# Not Found Errors
# =============================================================================


@dataclass
class NotFoundError(ClaimStoreError):
    """
    Base class for entity-scoped not found errors.

    Attributes:
        entity: Kind of entity that was looked up
        key: Identifier that was looked up
    """

    entity: str = ""
    key: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.entity or 'record'} does not exist: {self.key}"
        if self.code == 0:
            self.code = ERROR_NOT_FOUND
        self.context.update({
            "entity": self.entity,
            "key": self.key,
        })


@dataclass
class InstallationNotFoundError(NotFoundError):
    """Raised when an installation has no claims or no record."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.entity = "installation"
        if not self.message:
            self.message = f"Installation does not exist: {self.key}"
        if self.code == 0:
            self.code = ERROR_INSTALLATION_NOT_FOUND
        super().__post_init__()


@dataclass
class ClaimNotFoundError(NotFoundError):
    """Raised when a claim is not in the store."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.entity = "claim"
        if not self.message:
            self.message = f"Claim does not exist: {self.key}"
        if self.code == 0:
            self.code = ERROR_CLAIM_NOT_FOUND
        super().__post_init__()


@dataclass
class ResultNotFoundError(NotFoundError):
    """Raised when a result is not in the store."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.entity = "result"
        if not self.message:
            self.message = f"Result does not exist: {self.key}"
        if self.code == 0:
            self.code = ERROR_RESULT_NOT_FOUND
        super().__post_init__()


@dataclass
class OutputNotFoundError(NotFoundError):
    """Raised when an output is not in the store."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.entity = "output"
        if not self.message:
            self.message = f"Output does not exist: {self.key}"
        if self.code == 0:
            self.code = ERROR_OUTPUT_NOT_FOUND
        super().__post_init__()


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(ClaimStoreError):
    """
    Base class for backing store errors.

    Attributes:
        operation: The operation that failed (e.g., "save", "read")
        item_type: The item type being accessed
    """

    operation: str = ""
    item_type: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "operation": self.operation,
            "item_type": self.item_type,
        })


@dataclass
class RecordNotFoundError(StorageError):
    """Raised by a backing store when the named record does not exist."""

    name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Record does not exist: {self.item_type}/{self.name}"
        if self.code == 0:
            self.code = ERROR_RECORD_NOT_FOUND
        super().__post_init__()
        self.context["name"] = self.name


@dataclass
class StorageConnectionError(StorageError):
    """Raised when the backing store cannot connect or is not connected."""

    location: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to store: {self.location}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the store location is valid and writable"
        super().__post_init__()
        self.context["location"] = self.location


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Store write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Store read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Data Handling Errors
# =============================================================================


@dataclass
class EncryptionError(ClaimStoreError):
    """
    Raised when the encrypt or decrypt transform fails.

    Attributes:
        operation: The store operation being performed
        entity: Kind of entity being transformed
        key: Identifier of the entity
    """

    operation: str = ""
    entity: str = ""
    key: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"{self.operation} failed to transform {self.entity} {self.key}: "
                f"{self.underlying_error}"
            )
        if self.code == 0:
            self.code = ERROR_ENCRYPTION
        self.context.update({
            "operation": self.operation,
            "entity": self.entity,
            "key": self.key,
            "underlying_error": self.underlying_error,
        })


@dataclass
class SerializationError(ClaimStoreError):
    """Raised when a stored document cannot be encoded or decoded."""

    entity: str = ""
    key: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"malformed {self.entity} document {self.key}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SERIALIZATION
        self.context.update({
            "entity": self.entity,
            "key": self.key,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Identifier and Secret Errors
# =============================================================================


@dataclass
class IdGenerationError(ClaimStoreError):
    """Raised when a new identifier cannot be generated."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"could not generate a new ULID: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_ID_GENERATION
        self.context["underlying_error"] = self.underlying_error


@dataclass
class SecretResolutionError(ClaimStoreError):
    """Raised when a secret source cannot be resolved."""

    source: str = ""
    value: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"could not resolve secret from {self.source}"
        if self.code == 0:
            self.code = ERROR_SECRET_RESOLUTION
        # value is never copied into context
        self.context["source"] = self.source


# =============================================================================
# Aggregate State Errors
# =============================================================================


@dataclass
class InstallationStateError(ClaimStoreError):
    """Raised when an Installation or Claim cannot answer a "last" query."""

    installation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_INSTALLATION_STATE
        self.context["installation"] = self.installation
