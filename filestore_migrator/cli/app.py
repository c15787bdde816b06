"""
filestore-migrator CLI Application - Built with Click.

Commands:
    migrate     Move files from a source store to a destination store
    download    Download every file of a store into the staging directory
    upload      Upload staged files to a destination store
"""

import asyncio
import dataclasses
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from filestore_migrator import __version__
from filestore_migrator.core.config import MigratorSettings, ProviderSettings
from filestore_migrator.core.exceptions import ConfigError, MigrationError, NotFoundError
from filestore_migrator.core.logger import configure_logging, get_logger
from filestore_migrator.core.types import OperatingMode, StoreKind
from filestore_migrator.migration.orchestrator import Migrator
from filestore_migrator.migration.progress import RunSummary
from filestore_migrator.monitoring.metrics import MigrationMetrics, start_metrics_server

console = Console()
logger = get_logger(__name__)

STORE_KINDS = [kind.value for kind in StoreKind]


# ============================================================================
# CLI Group
# ============================================================================


class OrderedGroup(click.Group):
    """Click Group that lists commands in the order they were added."""

    def list_commands(self, ctx):
        return list(self.commands.keys())


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="filestore-migrator")
def cli():
    """
    filestore-migrator - Move Rocket.Chat files between storage backends.

    \b
    Commands:
      migrate    Source store -> destination store, records updated
      download   Source store -> staging directory
      upload     Staging directory -> destination store, records updated
    \b
    Configuration precedence: flags > environment (.env) > --config file.
    MAX_CONCURRENCY sets how many files are transferred at once (default 1).
    """


# ============================================================================
# Shared options
# ============================================================================


def run_options(func):
    """Options every command accepts."""
    options = [
        click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False), help="YAML config file"),
        click.option("--store", type=click.Choice(["Uploads", "Avatars"]), help="Category of files to move"),
        click.option("--connection-string", help="MongoDB connection string"),
        click.option("--database", help="MongoDB database name"),
        click.option("--staging-dir", type=click.Path(file_okay=False), help="Local staging directory"),
        click.option("--file-offset", help="Only files uploaded at or after this ISO 8601 timestamp"),
        click.option("--file-delay", type=float, help="Seconds to wait after each file"),
        click.option("--skip-errors", is_flag=True, help="Skip files whose transfer fails"),
        click.option("--debug", is_flag=True, help="Log every pipeline step"),
        click.option(
            "--log-format",
            type=click.Choice(["text", "json"]),
            default="text",
            show_default=True,
            help="Log output format",
        ),
        click.option("--metrics-port", type=int, help="Serve Prometheus metrics on this port during the run"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _parse_options(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse key=value provider options."""
    options = {}
    for pair in pairs:
        if "=" not in pair:
            msg = f"Invalid option format: {pair}. Use key=value"
            raise click.BadParameter(msg)
        key, value = pair.split("=", 1)
        options[key.strip()] = value
    return options


def _provider_settings(
    current: ProviderSettings | None,
    kind: str | None,
    options: tuple[str, ...],
) -> ProviderSettings | None:
    """Apply --*-type / --*-option flags on top of the configured provider."""
    extra = _parse_options(options)
    if kind is None:
        if current is None:
            if extra:
                raise ConfigError("Provider options given without a store type", field="type")
            return None
        return ProviderSettings(kind=current.kind, options={**current.options, **extra})

    parsed = ProviderSettings.from_dict({"type": kind})
    base = current.options if current is not None and current.kind == parsed.kind else {}
    return ProviderSettings(kind=parsed.kind, options={**base, **extra})


def _load_settings(config_file: str | None, **flags: Any) -> MigratorSettings:
    settings = MigratorSettings.from_file(config_file) if config_file else MigratorSettings()
    settings = MigratorSettings.from_env(settings)
    return settings.merge(
        store=flags.get("store"),
        database_url=flags.get("connection_string"),
        database_name=flags.get("database"),
        staging_dir=flags.get("staging_dir"),
        file_offset=flags.get("file_offset"),
        file_delay=flags.get("file_delay"),
        skip_errors=flags.get("skip_errors") or None,
        debug=flags.get("debug") or None,
        source_kind=flags.get("source_kind"),
    )


def _open_catalog(settings: MigratorSettings):
    from filestore_migrator.catalog.mongo import MongoCatalog

    return MongoCatalog(settings.database_url, settings.database_name)


# ============================================================================
# Run + display
# ============================================================================


async def _run(
    settings: MigratorSettings,
    mode: OperatingMode,
    metrics: MigrationMetrics | None = None,
) -> RunSummary:
    config = settings.build_run_config()
    try:
        async with _open_catalog(settings) as catalog:
            migrator = Migrator(config, catalog, metrics=metrics)
            if mode == OperatingMode.TRANSFER:
                return await migrator.migrate_store()
            if mode == OperatingMode.DOWNLOAD_ALL:
                return await migrator.download_all()
            return await migrator.upload_all()
    finally:
        for provider in (config.source, config.destination):
            if provider is not None:
                await provider.close()


def _display_config(settings: MigratorSettings, mode: OperatingMode) -> None:
    source = settings.source.kind if settings.source else "-"
    destination = settings.destination.kind if settings.destination else "-"
    console.print(
        Panel(
            f"[bold]{mode.value.replace('_', ' ').title()}[/bold]\n\n"
            f"Store: {settings.store}\n"
            f"Source: {source}\n"
            f"Destination: {destination}\n"
            f"Staging: {settings.staging_dir}\n"
            f"Offset: {settings.file_offset or '-'}\n"
            f"Skip errors: {settings.skip_errors}",
            title="filestore-migrator",
            border_style="blue",
        )
    )


def _display_summary(summary: RunSummary) -> None:
    table = Table(title="Run Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    for key, value in summary.to_dict().items():
        if key == "skipped_errors":
            continue
        table.add_row(key.replace("_", " ").title(), str(value))

    console.print(table)
    for message in summary.skipped_errors:
        console.print(f"[yellow]⚠ {message}[/yellow]")
    console.print("[green]✓ Finished![/green]")


def _execute(
    mode: OperatingMode,
    settings: MigratorSettings,
    log_format: str,
    metrics_port: int | None = None,
) -> None:
    configure_logging(debug=settings.debug, json_format=log_format == "json")
    _display_config(settings, mode)

    metrics = None
    if metrics_port:
        try:
            start_metrics_server(port=metrics_port)
        except OSError as e:
            console.print(f"[red]✗ Cannot serve metrics on port {metrics_port}: {e}[/red]")
            raise SystemExit(1) from e
        metrics = MigrationMetrics()

    try:
        summary = asyncio.run(_run(settings, mode, metrics))
    except NotFoundError as e:
        if e.item_type == "record":
            console.print(f"[yellow]⚠ {e.message}[/yellow]")
            return
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1) from e
    except MigrationError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1) from e

    _display_summary(summary)


def _settings_or_exit(**kwargs: Any) -> MigratorSettings:
    try:
        return _load_settings(**kwargs)
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1) from e


# ============================================================================
# Commands
# ============================================================================


@cli.command()
@click.option("--source-type", type=click.Choice(STORE_KINDS, case_sensitive=False), help="Source store kind")
@click.option("--source-option", "-s", multiple=True, help="Source provider option (key=value)")
@click.option("--destination-type", type=click.Choice(STORE_KINDS, case_sensitive=False), help="Destination store kind")
@click.option("--destination-option", "-d", multiple=True, help="Destination provider option (key=value)")
@run_options
def migrate(source_type, source_option, destination_type, destination_option, log_format, metrics_port, **flags):
    """Move files from the source store to the destination store."""
    settings = _settings_or_exit(**flags)
    try:
        settings = dataclasses.replace(
            settings,
            source=_provider_settings(settings.source, source_type, source_option),
            destination=_provider_settings(settings.destination, destination_type, destination_option),
        )
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1) from e

    if settings.source is None or settings.destination is None:
        console.print("[red]✗ migrate requires both a source and a destination store[/red]")
        raise SystemExit(1)

    _execute(OperatingMode.TRANSFER, settings, log_format, metrics_port)


@cli.command()
@click.option("--source-type", type=click.Choice(STORE_KINDS, case_sensitive=False), help="Source store kind")
@click.option("--source-option", "-s", multiple=True, help="Source provider option (key=value)")
@run_options
def download(source_type, source_option, log_format, metrics_port, **flags):
    """Download every file of the store into the staging directory."""
    settings = _settings_or_exit(**flags)
    try:
        settings = dataclasses.replace(
            settings,
            source=_provider_settings(settings.source, source_type, source_option),
            destination=None,
        )
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1) from e

    if settings.source is None:
        console.print("[red]✗ download requires a source store[/red]")
        raise SystemExit(1)

    _execute(OperatingMode.DOWNLOAD_ALL, settings, log_format, metrics_port)


@cli.command()
@click.option("--destination-type", type=click.Choice(STORE_KINDS, case_sensitive=False), help="Destination store kind")
@click.option("--destination-option", "-d", multiple=True, help="Destination provider option (key=value)")
@click.option("--source-kind", type=click.Choice(STORE_KINDS), help="Store kind the records currently point at")
@run_options
def upload(destination_type, destination_option, log_format, metrics_port, **flags):
    """Upload staged files to the destination store and update their records."""
    settings = _settings_or_exit(**flags)
    try:
        settings = dataclasses.replace(
            settings,
            source=None,
            destination=_provider_settings(settings.destination, destination_type, destination_option),
        )
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1) from e

    if settings.destination is None:
        console.print("[red]✗ upload requires a destination store[/red]")
        raise SystemExit(1)

    _execute(OperatingMode.UPLOAD_ALL, settings, log_format, metrics_port)
