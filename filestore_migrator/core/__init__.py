"""
Core types, configuration, errors and logging shared by every component.
"""

from .config import (
    CONCURRENCY_ENV_VAR,
    MigratorSettings,
    ProviderSettings,
    RunConfig,
    parse_concurrency,
    parse_offset,
)
from .exceptions import (
    CatalogError,
    ConfigError,
    FatalError,
    MigrationError,
    MissingDependencyError,
    NotFoundError,
    ProviderError,
    SkippableError,
    StagingError,
)
from .logger import configure_logging, get_logger, set_logger
from .types import (
    LOCATION_SUBFIELDS,
    UNDEFINED,
    FileRecord,
    Location,
    OperatingMode,
    RecordMutation,
    StoreCategory,
    StoreKind,
    TransferOutcome,
)

__all__ = [
    "CONCURRENCY_ENV_VAR",
    "LOCATION_SUBFIELDS",
    "UNDEFINED",
    "CatalogError",
    "ConfigError",
    "FatalError",
    "FileRecord",
    "Location",
    "MigrationError",
    "MigratorSettings",
    "MissingDependencyError",
    "NotFoundError",
    "OperatingMode",
    "ProviderError",
    "ProviderSettings",
    "RecordMutation",
    "RunConfig",
    "SkippableError",
    "StagingError",
    "StoreCategory",
    "StoreKind",
    "TransferOutcome",
    "configure_logging",
    "get_logger",
    "parse_concurrency",
    "parse_offset",
    "set_logger",
]
