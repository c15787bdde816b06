"""
Tests for MigrationProgress and RunSummary.
"""

from datetime import UTC, datetime, timedelta

from filestore_migrator.core.types import OperatingMode, TransferOutcome
from filestore_migrator.migration.progress import MigrationProgress, RunSummary


class TestMigrationProgress:
    def test_record_outcomes(self):
        progress = MigrationProgress(total=4)

        progress.record(TransferOutcome.MIGRATED)
        progress.record(TransferOutcome.SKIPPED)
        progress.record(TransferOutcome.MIGRATED)

        assert (progress.migrated, progress.skipped, progress.processed) == (2, 1, 3)
        assert not progress.is_complete

    def test_fatal_outcome_not_counted(self):
        progress = MigrationProgress(total=1)

        progress.record(TransferOutcome.FATAL)

        assert progress.processed == 0

    def test_rates(self):
        progress = MigrationProgress(total=10, started_at=datetime.now(UTC) - timedelta(seconds=10))
        for _ in range(5):
            progress.record(TransferOutcome.MIGRATED)

        assert 0.4 < progress.records_per_second <= 0.5
        assert 9 < progress.estimated_remaining_seconds < 11

    def test_no_progress_has_no_estimate(self):
        assert MigrationProgress(total=3).estimated_remaining_seconds == 0.0

    def test_to_dict(self):
        progress = MigrationProgress(total=2, migrated=2)

        data = progress.to_dict()

        assert data["processed"] == 2
        assert data["is_complete"] is True
        assert set(data) >= {"elapsed_seconds", "records_per_second", "estimated_remaining_seconds"}


class TestRunSummary:
    def test_from_progress(self):
        progress = MigrationProgress(total=3, migrated=2, skipped=1)

        summary = RunSummary.from_progress(
            progress,
            mode=OperatingMode.TRANSFER,
            store="Uploads",
            source="GridFS",
            destination="AmazonS3",
        )

        assert (summary.total, summary.migrated, summary.skipped) == (3, 2, 1)
        assert summary.duration_seconds >= 0

    def test_to_dict_truncates_errors(self):
        summary = RunSummary(
            mode=OperatingMode.DOWNLOAD_ALL,
            store="Avatars",
            skipped_errors=[f"error {i}" for i in range(25)],
        )

        data = summary.to_dict()

        assert data["mode"] == "download_all"
        assert data["destination"] is None
        assert len(data["skipped_errors"]) == 10
