# ============================================
# FILE: filestore_migrator/migration/orchestrator.py
# ============================================

"""
Migration Orchestrator

Discovers the records a run should move, pushes each one through
fetch -> stage -> push -> catalog update under a concurrency limit, and
decides which failures abort the run and which only skip a record.

Operating modes, selected by which provider roles are bound:

- transfer (source + destination): full pipeline
- download-all (source only): fetch into the staging area, no catalog change
- upload-all (destination only): push files already in the staging area

Usage:
    >>> config = RunConfig(store="Uploads", source=gridfs, destination=s3)
    >>> async with MongoCatalog(url, "rocketchat") as catalog:
    ...     summary = await Migrator(config, catalog).run()
    >>> print(summary.migrated, summary.skipped)
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiofiles.os

from filestore_migrator import policy
from filestore_migrator.catalog.interface import CandidateQuery, CatalogAccessor
from filestore_migrator.core.config import RunConfig
from filestore_migrator.core.exceptions import (
    FatalError,
    NotFoundError,
    SkippableError,
    StagingError,
)
from filestore_migrator.core.logger import get_logger
from filestore_migrator.core.types import FileRecord, OperatingMode, StoreCategory, TransferOutcome
from filestore_migrator.migration.pipeline import BoundedPipeline
from filestore_migrator.migration.progress import MigrationProgress, RunSummary
from filestore_migrator.monitoring.logging import set_migration_context
from filestore_migrator.monitoring.metrics import MigrationMetrics
from filestore_migrator.storage.interface import StorageProvider

logger = get_logger(__name__)


@dataclass
class RunContext:
    """
    Values resolved once at the start of a run and shared by its workers.

    Attributes:
        run_id: Identifier stamped on every log line of the run
        mode: Pipeline being executed
        category: Category of records being moved
        namespace: Installation-unique path prefix (None for download-all)
        staging_dir: Directory files are staged in for this category
        total: Number of candidate records
        seen: Record ids already admitted, to process duplicates once
        skipped_errors: Messages of tolerated failures
    """

    run_id: str
    mode: OperatingMode
    category: StoreCategory
    namespace: str | None
    staging_dir: Path
    source: StorageProvider | None = None
    destination: StorageProvider | None = None
    total: int = 0
    seen: set[str] = field(default_factory=set)
    skipped_errors: list[str] = field(default_factory=list)

    @property
    def collection(self) -> str:
        return self.category.collection


class Migrator:
    """
    Runs a migration for one category of files.

    The configuration is immutable and the per-run state lives in a
    ``RunContext``, so one Migrator can run several times.
    """

    def __init__(
        self,
        config: RunConfig,
        catalog: CatalogAccessor,
        metrics: MigrationMetrics | None = None,
    ):
        self.config = config
        self.catalog = catalog
        self.metrics = metrics
        self._pipeline: BoundedPipeline | None = None

    @property
    def peak_in_flight(self) -> int:
        """Highest number of concurrent transfers seen in the last run."""
        return self._pipeline.peak_in_flight if self._pipeline else 0

    async def run(self) -> RunSummary:
        """
        Run the pipeline implied by the bound provider roles.

        Raises:
            ConfigError: Invalid configuration; nothing was done
            NotFoundError: No candidate records matched
            CatalogError: Namespace or candidate lookup failed
            FatalError: A record failed in a way that aborts the run
        """
        mode = self.config.validate()
        return await self._execute(mode)

    async def migrate_store(self) -> RunSummary:
        """Move every candidate from the source to the destination store."""
        return await self._execute(self.config.validate(OperatingMode.TRANSFER))

    async def download_all(self) -> RunSummary:
        """Fetch every candidate from the source store into the staging area."""
        return await self._execute(self.config.validate(OperatingMode.DOWNLOAD_ALL))

    async def upload_all(self) -> RunSummary:
        """Push staged files to the destination store and update their records."""
        return await self._execute(self.config.validate(OperatingMode.UPLOAD_ALL))

    # =========================================================================
    # Run setup
    # =========================================================================

    async def _execute(self, mode: OperatingMode) -> RunSummary:
        limit = self.config.concurrency_limit()
        context = await self._prepare(mode)

        records = await self.catalog.find_candidates(self._candidate_query(mode))
        if not records:
            msg = f"No files found in {context.collection}"
            raise NotFoundError(msg, item_type="record", collection=context.collection)

        context.total = len(records)
        progress = MigrationProgress(total=context.total)
        self._pipeline = BoundedPipeline(limit)

        logger.info(
            "Starting %s of %d %s files (max concurrency %d)",
            mode.value,
            context.total,
            context.category.value,
            limit,
        )

        async def worker(position: int, record: FileRecord) -> TransferOutcome:
            return await self._run_worker(context, progress, position, record)

        try:
            await self._pipeline.run(records, worker)
        except FatalError as e:
            logger.error("Migration aborted: %s", e)
            raise

        summary = RunSummary.from_progress(
            progress,
            mode=mode,
            store=context.category.value,
            skipped_errors=list(context.skipped_errors),
            source=context.source.kind if context.source else None,
            destination=context.destination.kind if context.destination else None,
            peak_in_flight=self._pipeline.peak_in_flight,
        )
        logger.info(
            "Finished! migrated=%d skipped=%d in %.2fs",
            summary.migrated,
            summary.skipped,
            summary.duration_seconds,
        )
        return summary

    async def _prepare(self, mode: OperatingMode) -> RunContext:
        config = self.config
        source = config.source if mode != OperatingMode.UPLOAD_ALL else None
        destination = config.destination if mode != OperatingMode.DOWNLOAD_ALL else None

        namespace = None
        if destination is not None:
            namespace = await self.catalog.read_namespace()

        staging_dir = config.staging_path
        if source is not None:
            await source.prepare_staging_area(staging_dir)
        if destination is not None:
            await destination.prepare_staging_area(staging_dir)

        return RunContext(
            run_id=uuid.uuid4().hex[:12],
            mode=mode,
            category=config.store,
            namespace=namespace,
            staging_dir=staging_dir,
            source=source,
            destination=destination,
        )

    def _candidate_query(self, mode: OperatingMode) -> CandidateQuery:
        config = self.config
        if mode == OperatingMode.UPLOAD_ALL:
            return CandidateQuery(
                category=config.store,
                source_kind=config.source_kind,
                exclude_kind=config.destination.kind,
                offset=config.file_offset,
            )
        return CandidateQuery(
            category=config.store,
            source_kind=config.source.kind,
            offset=config.file_offset,
        )

    # =========================================================================
    # Per-record work
    # =========================================================================

    async def _run_worker(
        self,
        context: RunContext,
        progress: MigrationProgress,
        position: int,
        record: FileRecord,
    ) -> TransferOutcome:
        set_migration_context(
            run_id=context.run_id,
            record_id=record.id,
            position=f"{position}/{context.total}",
            category=context.category.value,
        )
        category = context.category.value
        started = time.monotonic()
        outcome = TransferOutcome.FATAL

        if self.metrics:
            self.metrics.transfer_started(category)
        try:
            outcome = await self._process(context, position, record)
        finally:
            if self.metrics:
                self.metrics.transfer_finished(category, outcome, time.monotonic() - started)

        progress.record(outcome)
        self._notify_progress(progress)

        if outcome == TransferOutcome.MIGRATED and self.config.file_delay > 0:
            await asyncio.sleep(self.config.file_delay)

        return outcome

    async def _process(self, context: RunContext, position: int, record: FileRecord) -> TransferOutcome:
        prefix = f"[{position}/{context.total}]"

        if record.id in context.seen:
            logger.debug("%s Duplicate record %s, already processed in this run", prefix, record.id)
            return TransferOutcome.SKIPPED
        context.seen.add(record.id)

        if not record.complete:
            logger.info("%s File wasn't completed uploading for %s Skipping", prefix, record.name)
            return TransferOutcome.SKIPPED

        if context.mode == OperatingMode.UPLOAD_ALL:
            local_path = context.staging_dir / record.id
            if not await aiofiles.os.path.isfile(local_path):
                logger.warning("%s Failed to locate staged file for %s Skipping", prefix, record.name)
                return TransferOutcome.SKIPPED
        else:
            local_path = await self._fetch(context, prefix, record)
            if local_path is None:
                return TransferOutcome.SKIPPED

        if context.mode == OperatingMode.DOWNLOAD_ALL:
            return TransferOutcome.MIGRATED

        dest_path = await self._push(context, prefix, record, local_path)
        if dest_path is None:
            return TransferOutcome.SKIPPED

        await self._update(context, prefix, record, dest_path)
        return TransferOutcome.MIGRATED

    async def _fetch(self, context: RunContext, prefix: str, record: FileRecord) -> Path | None:
        source = context.source
        logger.debug("%s Downloading %s from: %s", prefix, record.name, source.kind)

        try:
            local_path = await source.fetch(context.collection, record)
        except NotFoundError as e:
            logger.warning("%s No corresponding file for %s Skipping", prefix, record.name)
            logger.debug("%s %s", prefix, e)
            return None
        except StagingError as e:
            raise FatalError(record.id, "stage", e) from e
        except Exception as e:
            self._tolerate(context, prefix, record, "fetch", e, source.kind)
            return None

        logger.debug("%s Downloaded %s from: %s", prefix, record.name, source.kind)
        return Path(local_path)

    async def _push(self, context: RunContext, prefix: str, record: FileRecord, local_path: Path) -> str | None:
        destination = context.destination
        dest_path = policy.object_path(record, context.category, destination.kind, context.namespace)
        logger.debug("%s Uploading to %s to: %s", prefix, destination.kind, dest_path)

        try:
            await destination.push(dest_path, local_path, record.content_type)
        except Exception as e:
            self._tolerate(context, prefix, record, "push", e, destination.kind)
            return None

        return dest_path

    async def _update(self, context: RunContext, prefix: str, record: FileRecord, dest_path: str) -> None:
        mutation = policy.build_mutation(record, context.category, context.destination.kind, dest_path)
        try:
            await self.catalog.apply_mutation(
                context.category,
                mutation.record_id,
                mutation.set_fields,
                mutation.unset_fields,
            )
        except Exception as e:
            raise FatalError(record.id, "update", e) from e

        logger.debug("%s Completed Uploading %s", prefix, record.name)

    def _tolerate(
        self,
        context: RunContext,
        prefix: str,
        record: FileRecord,
        stage: str,
        error: Exception,
        backend: str,
    ) -> None:
        """Skip a record after a fetch or push failure, or abort when skipping is off."""
        if not self.config.skip_errors:
            raise FatalError(record.id, stage, error) from error

        skipped = SkippableError(record.id, stage, error)
        context.skipped_errors.append(str(skipped))
        backend = getattr(error, "backend", None) or backend
        logger.warning("%s %s", prefix, skipped, extra={"stage": stage, "backend": backend})

    def _notify_progress(self, progress: MigrationProgress) -> None:
        callback = self.config.progress_callback
        if callback is None:
            return
        try:
            callback(progress.migrated, progress.skipped, progress.total)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")


async def migrate(
    store: str,
    catalog: CatalogAccessor,
    source: StorageProvider | None = None,
    destination: StorageProvider | None = None,
    **options: Any,
) -> RunSummary:
    """
    Convenience wrapper: build a RunConfig and run the implied pipeline.

    Example:
        >>> summary = await migrate("Avatars", catalog, source=gridfs, destination=s3)
    """
    config = RunConfig(store=store, source=source, destination=destination, **options)
    return await Migrator(config, catalog).run()
