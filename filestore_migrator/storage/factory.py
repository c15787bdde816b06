"""
Provider Factory - create storage providers by backend kind.

Usage:
    >>> from filestore_migrator.storage import create_provider, get_available_providers
    >>>
    >>> print(get_available_providers())
    ['FileSystem', 'AmazonS3', 'GoogleCloudStorage', 'GridFS']
    >>>
    >>> provider = create_provider("AmazonS3", bucket="rocketchat", region="eu-west-1")
"""

import re
from typing import Any

from filestore_migrator.core.env import parse_bool
from filestore_migrator.core.exceptions import ConfigError, MissingDependencyError
from filestore_migrator.core.types import StoreKind
from filestore_migrator.storage.interface import StorageProvider

# Config file spellings -> constructor arguments
_OPTION_ALIASES = {
    "region": "region_name",
    "endpoint": "endpoint_url",
    "access_key": "access_key_id",
    "secret_key": "secret_access_key",
    "path": "location",
}

# Options that arrive as strings from -s/-d flags, YAML or the environment
_BOOL_OPTIONS = frozenset({"force_path_style"})


def _normalize_options(options: dict[str, Any]) -> dict[str, Any]:
    """Turn camelCase config keys into constructor keyword arguments."""
    normalized = {}
    for key, value in options.items():
        name = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
        name = _OPTION_ALIASES.get(name, name)
        if name in _BOOL_OPTIONS:
            value = _coerce_bool(name, value)
        normalized[name] = value
    return normalized


def _coerce_bool(name: str, value: Any) -> bool:
    parsed = parse_bool(value)
    if parsed is None:
        msg = f"Option '{name}' must be true or false, got {value!r}"
        raise ConfigError(msg, field=name)
    return parsed


def _check_availability(module_path: str, available_attr: str) -> bool:
    try:
        module = __import__(module_path, fromlist=[available_attr])
        return getattr(module, available_attr, False)
    except ImportError:
        return False


def get_available_providers() -> list[str]:
    """
    Get list of provider kinds whose dependencies are installed.

    Returns:
        List of StoreKind values that can be used
    """
    available = [StoreKind.FILESYSTEM.value]

    checks = [
        ("filestore_migrator.storage.s3", "AIOBOTO3_AVAILABLE", StoreKind.AMAZON_S3),
        ("filestore_migrator.storage.s3", "AIOBOTO3_AVAILABLE", StoreKind.GOOGLE_CLOUD_STORAGE),
        ("filestore_migrator.storage.gridfs", "PYMONGO_AVAILABLE", StoreKind.GRIDFS),
    ]
    for module_path, attr, kind in checks:
        if _check_availability(module_path, attr):
            available.append(kind.value)

    return available


def _create_filesystem_provider(options: dict[str, Any]) -> StorageProvider:
    from filestore_migrator.storage.filesystem import FileSystemProvider

    if not options.get("location"):
        msg = "FileSystem provider requires a 'location' directory"
        raise ConfigError(msg, field="location")
    return FileSystemProvider(location=options["location"], staging_dir=options.get("staging_dir"))


def _create_s3_provider(options: dict[str, Any]) -> StorageProvider:
    from filestore_migrator.storage.s3 import AmazonS3Provider

    if not options.get("bucket"):
        raise ConfigError("AmazonS3 provider requires a 'bucket'", field="bucket")
    return AmazonS3Provider(**options)


def _create_google_provider(options: dict[str, Any]) -> StorageProvider:
    from filestore_migrator.storage.google import GoogleStorageProvider

    if not options.get("bucket"):
        raise ConfigError("GoogleCloudStorage provider requires a 'bucket'", field="bucket")
    return GoogleStorageProvider(**options)


def _create_gridfs_provider(options: dict[str, Any]) -> StorageProvider:
    from filestore_migrator.storage.gridfs import GridFSProvider

    return GridFSProvider(**options)


# Provider registry: kind -> (factory_function, dependency_name, accepts_database)
_PROVIDER_REGISTRY = {
    StoreKind.FILESYSTEM: (_create_filesystem_provider, None, False),
    StoreKind.AMAZON_S3: (_create_s3_provider, "aioboto3", False),
    StoreKind.GOOGLE_CLOUD_STORAGE: (_create_google_provider, "aioboto3", False),
    StoreKind.GRIDFS: (_create_gridfs_provider, "pymongo", True),
}


def create_provider(
    kind: str | StoreKind,
    *,
    database_url: str | None = None,
    database_name: str | None = None,
    **options: Any,
) -> StorageProvider:
    """
    Create a storage provider.

    Args:
        kind: Backend kind ('AmazonS3', 'GoogleCloudStorage', 'FileSystem',
            'GridFS' or an alias such as 's3', 'gcs', 'fs')
        database_url: Catalog connection string, reused by GridFS
        database_name: Catalog database name, reused by GridFS
        **options: Provider-specific settings; camelCase keys are accepted

    Returns:
        Configured provider instance

    Raises:
        ConfigError: If the kind is unknown or the options are invalid
        MissingDependencyError: If the provider's package is not installed

    Examples:
        >>> create_provider("FileSystem", location="/var/lib/uploads")
        >>> create_provider("GridFS", database_url="mongodb://db:27017", database_name="rocketchat")
    """
    try:
        store_kind = StoreKind.parse(kind)
    except ValueError:
        msg = f"Unknown store type: '{kind}'\nAvailable stores: {', '.join(get_available_providers())}"
        raise ConfigError(msg, field="type") from None

    factory, dependency, accepts_database = _PROVIDER_REGISTRY[store_kind]
    normalized = _normalize_options(options)
    if accepts_database:
        if database_url:
            normalized.setdefault("database_url", database_url)
        if database_name:
            normalized.setdefault("database_name", database_name)

    try:
        return factory(normalized)
    except TypeError as e:
        msg = f"Invalid options for {store_kind} provider: {e}"
        raise ConfigError(msg, field="options") from e
    except ImportError:
        if dependency:
            raise MissingDependencyError(dependency, f"{store_kind} storage provider") from None
        raise  # pragma: no cover
