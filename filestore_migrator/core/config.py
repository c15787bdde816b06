"""
Run configuration for the migrator.

Two layers:

- ``MigratorSettings``: plain data read from a YAML file, the environment
  and CLI flags (connection strings, provider options, flags)
- ``RunConfig``: the immutable value a single run executes against, with
  the source/destination providers already bound

Example:
    >>> settings = MigratorSettings.from_file("migrate.yaml")
    >>> config = settings.build_run_config()
    >>> summary = await Migrator(config, catalog).run()

In migrate.yaml:
    store: Uploads
    database:
      connectionString: ${MONGO_URL:-mongodb://localhost:27017}
      name: rocketchat
    source:
      type: GridFS
    destination:
      type: AmazonS3
      bucket: rocketchat-uploads
      region: us-east-1
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from filestore_migrator.core.exceptions import ConfigError
from filestore_migrator.core.types import OperatingMode, StoreCategory, StoreKind

if TYPE_CHECKING:
    from filestore_migrator.storage.interface import StorageProvider

logger = logging.getLogger(__name__)

CONCURRENCY_ENV_VAR = "MAX_CONCURRENCY"
DEFAULT_STAGING_DIR = "/tmp/filestore-migrator"


def parse_concurrency(value: str | int | None, default: int = 1) -> int:
    """
    Parse a concurrency limit.

    Raises:
        ConfigError: If the value is not an integer >= 1
    """
    if value is None or value == "":
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        msg = f"{CONCURRENCY_ENV_VAR} must be an integer, got {value!r}"
        raise ConfigError(msg, field="max_concurrency") from None
    if limit < 1:
        msg = f"{CONCURRENCY_ENV_VAR} must be at least 1, got {limit}"
        raise ConfigError(msg, field="max_concurrency")
    return limit


def parse_offset(value: str | datetime | None) -> datetime | None:
    """
    Parse a resumption offset.

    Accepts ISO 8601 timestamps or dates; naive values are taken as UTC.

    Raises:
        ConfigError: If the value is present but not a valid timestamp
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            raise ConfigError("Invalid file offset: empty date", field="file_offset")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            msg = f"Invalid file offset: {value!r} (expected ISO 8601, e.g. 2020-01-31T00:00:00Z)"
            raise ConfigError(msg, field="file_offset") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable configuration for one migration run.

    Attributes:
        store: Category of objects to move
        source: Provider objects are fetched from (None for upload-all)
        destination: Provider objects are pushed to (None for download-all)
        staging_dir: Root of the local staging area; files are staged
            under ``{staging_dir}/{category}/{record id}``
        file_offset: Inclusive lower bound on ``uploadedAt``
        file_delay: Seconds to pause after each successful record
        max_concurrency: Transfer limit; None reads MAX_CONCURRENCY at run start
        skip_errors: Tolerate provider failures other than not-found
        source_kind: Kind the records currently live on, used to select
            candidates when no source provider is bound
        progress_callback: Called as (migrated, skipped, total) after each record
    """

    store: StoreCategory
    source: StorageProvider | None = None
    destination: StorageProvider | None = None
    staging_dir: str = DEFAULT_STAGING_DIR
    file_offset: datetime | None = None
    file_delay: float = 0.0
    max_concurrency: int | None = None
    skip_errors: bool = False
    source_kind: str | None = None
    progress_callback: Callable[[int, int, int], None] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "store", StoreCategory.parse(self.store))
        except ValueError as e:
            raise ConfigError(str(e), field="store") from None
        object.__setattr__(self, "file_offset", parse_offset(self.file_offset))

    @property
    def mode(self) -> OperatingMode:
        """Operating mode implied by the bound provider roles."""
        if self.source is not None and self.destination is not None:
            return OperatingMode.TRANSFER
        if self.source is not None:
            return OperatingMode.DOWNLOAD_ALL
        if self.destination is not None:
            return OperatingMode.UPLOAD_ALL
        msg = "At least one of source or destination store must be provided"
        raise ConfigError(msg, field="source")

    @property
    def staging_path(self) -> Path:
        return Path(self.staging_dir) / self.store.slug

    def validate(self, mode: OperatingMode | None = None) -> OperatingMode:
        """
        Check the configuration for the requested mode.

        Args:
            mode: Mode the caller wants to run; defaults to the implied mode

        Returns:
            The validated operating mode

        Raises:
            ConfigError: If a required provider role is missing or a value is invalid
        """
        implied = self.mode
        mode = mode or implied

        if mode == OperatingMode.TRANSFER and (self.source is None or self.destination is None):
            msg = "For a store migration both a source and destination store must be provided"
            raise ConfigError(msg, field="destination" if self.source else "source")
        if mode == OperatingMode.DOWNLOAD_ALL and self.source is None:
            raise ConfigError("Download all requires a source store", field="source")
        if mode == OperatingMode.UPLOAD_ALL and self.destination is None:
            raise ConfigError("Upload all requires a destination store", field="destination")

        if self.file_delay < 0:
            raise ConfigError("File delay cannot be negative", field="file_delay")
        if self.max_concurrency is not None:
            parse_concurrency(self.max_concurrency)

        return mode

    def concurrency_limit(self) -> int:
        """Resolve the concurrency limit, reading MAX_CONCURRENCY when unset."""
        if self.max_concurrency is not None:
            return parse_concurrency(self.max_concurrency)

        from filestore_migrator.core.env import get_env

        return parse_concurrency(get_env().get(CONCURRENCY_ENV_VAR))

    def with_providers(
        self,
        source: StorageProvider | None = None,
        destination: StorageProvider | None = None,
    ) -> RunConfig:
        """Create a new config with different provider bindings (immutable update)."""
        return dataclasses.replace(self, source=source, destination=destination)

    def with_offset(self, offset: str | datetime | None) -> RunConfig:
        return dataclasses.replace(self, file_offset=parse_offset(offset))


@dataclass
class ProviderSettings:
    """Backend kind plus its constructor options."""

    kind: StoreKind
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderSettings:
        options = dict(data)
        raw_kind = options.pop("type", None)
        if not raw_kind:
            raise ConfigError("Provider section requires a 'type'", field="type")
        try:
            kind = StoreKind.parse(raw_kind)
        except ValueError as e:
            raise ConfigError(str(e), field="type") from None
        return cls(kind=kind, options=options)


@dataclass
class MigratorSettings:
    """
    Everything needed to assemble a run: database, providers and run flags.

    Values come from (highest precedence first) CLI flags, the environment,
    a YAML file, then these defaults.
    """

    store: str = StoreCategory.UPLOADS.value
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "rocketchat"
    source: ProviderSettings | None = None
    destination: ProviderSettings | None = None
    staging_dir: str = DEFAULT_STAGING_DIR
    file_delay: float = 0.0
    file_offset: str | None = None
    skip_errors: bool = False
    debug: bool = False
    max_concurrency: int | None = None
    source_kind: str | None = None

    def merge(self, **overrides: Any) -> MigratorSettings:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **values)

    @classmethod
    def from_env(cls, base: MigratorSettings | None = None, load_dotenv: bool = True) -> MigratorSettings:
        """
        Overlay environment variables on ``base``.

        Environment variables:
            FILESTORE_CONNECTION_STRING / FILESTORE_DATABASE: catalog location
            FILESTORE_STORE: Uploads or Avatars
            FILESTORE_STAGING_DIR: local staging root
            FILESTORE_FILE_DELAY: seconds between records
            FILESTORE_FILE_OFFSET: resumption offset
            FILESTORE_SKIP_ERRORS / FILESTORE_DEBUG: flags
            MAX_CONCURRENCY: transfer limit (validated when the run starts)
        """
        from filestore_migrator.core.env import get_env

        env = get_env()
        if load_dotenv:
            env.load()

        settings = base or cls()
        overrides: dict[str, Any] = {
            "database_url": env.get("FILESTORE_CONNECTION_STRING"),
            "database_name": env.get("FILESTORE_DATABASE"),
            "store": env.get("FILESTORE_STORE"),
            "staging_dir": env.get("FILESTORE_STAGING_DIR"),
            "file_offset": env.get("FILESTORE_FILE_OFFSET"),
        }
        if env.get("FILESTORE_FILE_DELAY") is not None:
            overrides["file_delay"] = env.get_float("FILESTORE_FILE_DELAY", settings.file_delay)
        if env.get("FILESTORE_SKIP_ERRORS") is not None:
            overrides["skip_errors"] = env.get_bool("FILESTORE_SKIP_ERRORS")
        if env.get("FILESTORE_DEBUG") is not None:
            overrides["debug"] = env.get_bool("FILESTORE_DEBUG")
        return settings.merge(**overrides)

    @classmethod
    def from_file(cls, file_path: str | Path, substitute_env: bool = True) -> MigratorSettings:
        """
        Load settings from a YAML file.

        Supports environment variable substitution using ${VAR} syntax.

        Raises:
            ConfigError: If the file is missing or malformed
        """
        import yaml

        from filestore_migrator.core.env import get_env

        path = Path(file_path)
        if not path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise ConfigError(msg, field="config")

        try:
            with path.open() as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Invalid configuration file {file_path}: {e}"
            raise ConfigError(msg, field="config") from e

        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {file_path} must contain a mapping", field="config")

        if substitute_env:
            env = get_env()
            env.load()
            try:
                data = env.substitute_dict(data)
            except ValueError as e:
                raise ConfigError(str(e), field="config") from e

        database = data.get("database", {}) or {}
        source = _role_section(data, "source")
        destination = _role_section(data, "destination")

        defaults = cls()
        return cls(
            store=data.get("store", defaults.store),
            database_url=database.get("connectionString", defaults.database_url),
            database_name=database.get("name", defaults.database_name),
            source=ProviderSettings.from_dict(source) if source else None,
            destination=ProviderSettings.from_dict(destination) if destination else None,
            staging_dir=data.get("tempFileLocation", defaults.staging_dir),
            file_delay=float(data.get("fileDelay", defaults.file_delay)),
            file_offset=data.get("fileOffset"),
            skip_errors=bool(data.get("skipErrors", False)),
            debug=bool(data.get("debug", False)),
            max_concurrency=data.get("maxConcurrency"),
            source_kind=data.get("sourceKind"),
        )

    def build_run_config(
        self,
        progress_callback: Callable[[int, int, int], None] | None = None,
    ) -> RunConfig:
        """Create providers for the configured roles and bind them into a RunConfig."""
        from filestore_migrator.storage.factory import create_provider

        def build(role: ProviderSettings | None) -> StorageProvider | None:
            if role is None:
                return None
            return create_provider(
                role.kind,
                database_url=self.database_url,
                database_name=self.database_name,
                **role.options,
            )

        source = build(self.source)
        destination = build(self.destination)
        logger.debug(
            "Run configured: store=%s source=%s destination=%s",
            self.store,
            source.kind if source else None,
            destination.kind if destination else None,
        )

        return RunConfig(
            store=self.store,
            source=source,
            destination=destination,
            staging_dir=self.staging_dir,
            file_offset=self.file_offset,
            file_delay=self.file_delay,
            max_concurrency=self.max_concurrency,
            skip_errors=self.skip_errors,
            source_kind=self.source_kind,
            progress_callback=progress_callback,
        )


def _role_section(data: dict[str, Any], role: str) -> dict[str, Any] | None:
    """
    Provider section for ``role``.

    Either a nested ``source:``/``destination:`` mapping, or a flat
    ``sourceType: AmazonS3`` whose options sit under a top-level ``AmazonS3:`` key.
    """
    section = data.get(role)
    if section:
        return section
    kind = data.get(f"{role}Type")
    if not kind:
        return None
    return {"type": kind, **(data.get(kind) or {})}
