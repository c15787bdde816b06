"""
filestore-migrator - Move Rocket.Chat uploads and avatars between storage backends.

Quick Start:
    >>> from filestore_migrator import Migrator, RunConfig, create_provider
    >>> from filestore_migrator.catalog import MongoCatalog
    >>>
    >>> config = RunConfig(
    ...     store="Uploads",
    ...     source=create_provider("GridFS", database_url="mongodb://localhost:27017"),
    ...     destination=create_provider("AmazonS3", bucket="rocketchat-uploads"),
    ... )
    >>> async with MongoCatalog("mongodb://localhost:27017", "rocketchat") as catalog:
    ...     summary = await Migrator(config, catalog).run()
"""

from filestore_migrator.core.config import MigratorSettings, RunConfig
from filestore_migrator.core.exceptions import (
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
from filestore_migrator.core.types import FileRecord, Location, OperatingMode, StoreCategory, StoreKind
from filestore_migrator.migration import BoundedPipeline, Migrator, RunSummary, migrate
from filestore_migrator.storage import StorageProvider, create_provider

__version__ = "1.0.0"

__all__ = [
    "BoundedPipeline",
    "CatalogError",
    "ConfigError",
    "FatalError",
    "FileRecord",
    "Location",
    "MigrationError",
    "MigratorSettings",
    "Migrator",
    "MissingDependencyError",
    "NotFoundError",
    "OperatingMode",
    "ProviderError",
    "RunConfig",
    "RunSummary",
    "SkippableError",
    "StagingError",
    "StorageProvider",
    "StoreCategory",
    "StoreKind",
    "create_provider",
    "migrate",
    "__version__",
]
