"""
Unified error hierarchy for migration runs.

All migrator exceptions inherit from MigrationError, which carries a
message plus a details dict for structured logging. How the orchestrator
treats each class:

- ConfigError: raised before any work is performed
- NotFoundError: no candidates for the run (fatal) or an object missing
  at the source (always tolerated, record skipped)
- ProviderError: a storage backend failed; tolerated only with skip_errors
- SkippableError: a ProviderError that was tolerated and recorded
- CatalogError / FatalError: abort the run
"""

from typing import Any


class MigrationError(Exception):
    """Base exception for all migration errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        details = {k: v for k, v in self.details.items() if v is not None}
        if details:
            return f"{self.message} ({details})"
        return self.message


class ConfigError(MigrationError):
    """
    Invalid run configuration.

    Raised when:
    - The store category is not recognized
    - A provider role required by the operating mode is missing
    - MAX_CONCURRENCY is not a positive integer
    - The resumption offset cannot be parsed
    """

    def __init__(self, message: str = "Invalid configuration", field: str | None = None, **details):
        super().__init__(message, details={"field": field, **details})
        self.field = field


class NotFoundError(MigrationError):
    """
    Requested item not found.

    Raised when:
    - No catalog record matches the candidate query
    - An object is absent at the source backend
    - The instance namespace setting is missing
    """

    def __init__(
        self,
        message: str = "Item not found",
        item_type: str | None = None,
        item_id: str | None = None,
        **details,
    ):
        super().__init__(
            message,
            details={"item_type": item_type, "item_id": item_id, **details},
        )
        self.item_type = item_type
        self.item_id = item_id


class ProviderError(MigrationError):
    """A storage backend operation failed for a reason other than not-found."""

    def __init__(
        self,
        message: str = "Storage provider operation failed",
        backend: str | None = None,
        operation: str | None = None,  # "fetch", "push" or "delete"
        **details,
    ):
        super().__init__(
            message,
            details={"backend": backend, "operation": operation, **details},
        )
        self.backend = backend
        self.operation = operation


class StagingError(MigrationError):
    """Writing a file into the local staging area failed."""

    def __init__(self, message: str = "Staging write failed", path: str | None = None, **details):
        super().__init__(message, details={"path": path, **details})
        self.path = path


class SkippableError(MigrationError):
    """A provider failure tolerated because the run was started with skip_errors."""

    def __init__(self, record_id: str, stage: str, cause: BaseException):
        super().__init__(
            f"Skipped {record_id} after {stage} failure: {cause}",
            details={"record_id": record_id, "stage": stage},
        )
        self.record_id = record_id
        self.stage = stage
        self.cause = cause


class CatalogError(MigrationError):
    """
    Catalog query or update failed.

    Raised when:
    - The candidate query errors
    - A record update errors or matches no document
    """

    def __init__(
        self,
        message: str = "Catalog operation failed",
        collection: str | None = None,
        operation: str | None = None,
        **details,
    ):
        super().__init__(
            message,
            details={"collection": collection, "operation": operation, **details},
        )
        self.collection = collection
        self.operation = operation


class FatalError(MigrationError):
    """
    A record failed in a way that aborts the whole run.

    Attributes:
        record_id: Record whose worker failed
        stage: Pipeline stage ("fetch", "stage", "push", "update")
        cause: The original exception
    """

    def __init__(self, record_id: str, stage: str, cause: BaseException):
        super().__init__(
            f"Migration aborted at {stage} of {record_id}: {cause}",
            details={"record_id": record_id, "stage": stage},
        )
        self.record_id = record_id
        self.stage = stage
        self.cause = cause


class MissingDependencyError(MigrationError):
    """
    Raised when an optional dependency is not installed.

    Provides the install command so users can quickly resolve it.
    """

    INSTALL_COMMANDS = {
        "aioboto3": "pip install aioboto3",
        "pymongo": "pip install pymongo",
        "prometheus_client": "pip install prometheus-client",
    }

    def __init__(self, package: str, feature: str | None = None):
        self.package = package
        self.feature = feature

        install_cmd = self.INSTALL_COMMANDS.get(package, f"pip install {package}")

        if feature:
            message = f"Missing dependency '{package}' required for {feature}. Install with: {install_cmd}"
        else:
            message = f"Missing dependency '{package}'. Install with: {install_cmd}"

        super().__init__(message, details={"package": package})
