"""
Progress tracking and run summaries.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from filestore_migrator.core.types import OperatingMode, TransferOutcome


@dataclass
class MigrationProgress:
    """
    Live counters for a run in progress.

    Workers update these from the event loop thread only, so plain
    integer increments are safe.

    Attributes:
        total: Candidate records enumerated
        migrated: Records whose transfer finished
        skipped: Records skipped (incomplete, absent, tolerated failure, duplicate)
        started_at: Run start time
    """

    total: int = 0
    migrated: int = 0
    skipped: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def record(self, outcome: TransferOutcome) -> None:
        if outcome == TransferOutcome.MIGRATED:
            self.migrated += 1
        elif outcome == TransferOutcome.SKIPPED:
            self.skipped += 1

    @property
    def processed(self) -> int:
        return self.migrated + self.skipped

    @property
    def is_complete(self) -> bool:
        return self.processed >= self.total

    @property
    def elapsed_seconds(self) -> float:
        return (datetime.now(UTC) - self.started_at).total_seconds()

    @property
    def records_per_second(self) -> float:
        elapsed = self.elapsed_seconds
        if elapsed == 0:
            return 0.0  # pragma: no cover
        return self.processed / elapsed

    @property
    def estimated_remaining_seconds(self) -> float:
        rate = self.records_per_second
        if rate == 0:
            return 0.0
        return (self.total - self.processed) / rate

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "processed": self.processed,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "records_per_second": round(self.records_per_second, 2),
            "estimated_remaining_seconds": round(self.estimated_remaining_seconds, 2),
            "is_complete": self.is_complete,
        }


@dataclass
class RunSummary:
    """
    Result of a run that finished without a fatal error.

    Attributes:
        mode: Pipeline that ran
        store: Category literal
        total: Candidate records enumerated
        migrated: Records transferred (or staged, for download-all)
        skipped: Records skipped
        skipped_errors: Messages of the tolerated failures
        duration_seconds: Wall-clock run time
        source: Source kind, if bound
        destination: Destination kind, if bound
        peak_in_flight: Highest number of concurrent transfers observed
    """

    mode: OperatingMode
    store: str
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    skipped_errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    source: str | None = None
    destination: str | None = None
    peak_in_flight: int = 0

    @classmethod
    def from_progress(cls, progress: MigrationProgress, **kwargs: Any) -> "RunSummary":
        return cls(
            total=progress.total,
            migrated=progress.migrated,
            skipped=progress.skipped,
            duration_seconds=progress.elapsed_seconds,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "mode": self.mode.value,
            "store": self.store,
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration_seconds, 2),
            "source": self.source,
            "destination": self.destination,
            "peak_in_flight": self.peak_in_flight,
            "skipped_errors": self.skipped_errors[:10],  # First 10 only
        }
