"""
Prometheus metrics for migration runs.

Exposes:
    - filestore_migrator_records_total: Counter of finished records by category and outcome
    - filestore_migrator_in_flight: Gauge of transfers currently holding a permit
    - filestore_migrator_transfer_duration_seconds: Histogram of per-record durations

Requirements:
    pip install prometheus-client
"""

import logging
from typing import Any

try:
    from prometheus_client import REGISTRY, Counter, Gauge, Histogram, start_http_server

    PROMETHEUS_AVAILABLE = True
except ImportError:  # pragma: no cover
    PROMETHEUS_AVAILABLE = False
    REGISTRY: Any = None  # type: ignore[no-redef]
    Counter: Any = None  # type: ignore[no-redef]
    Gauge: Any = None  # type: ignore[no-redef]
    Histogram: Any = None  # type: ignore[no-redef]
    start_http_server: Any = None  # type: ignore[no-redef]

from filestore_migrator.core.types import TransferOutcome

logger = logging.getLogger(__name__)


class MigrationMetrics:
    """
    Prometheus-compatible metrics collector.

    When prometheus-client is missing every method is a no-op.

    Example:
        >>> metrics = MigrationMetrics()
        >>> migrator = Migrator(config, catalog, metrics=metrics)
    """

    def __init__(self, prefix: str = "filestore_migrator", registry: Any = None):
        if not PROMETHEUS_AVAILABLE:
            logger.warning(
                "prometheus-client not installed. Metrics will not be collected. "
                "Install with: pip install prometheus-client"
            )
            self._enabled = False
            return

        self._enabled = True
        registry = registry if registry is not None else REGISTRY

        self._records_total = Counter(
            f"{prefix}_records_total",
            "Records processed by outcome",
            ["category", "outcome"],
            registry=registry,
        )
        self._in_flight = Gauge(
            f"{prefix}_in_flight",
            "Transfers currently in flight",
            ["category"],
            registry=registry,
        )
        self._duration = Histogram(
            f"{prefix}_transfer_duration_seconds",
            "Per-record transfer duration in seconds",
            ["category"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0],
            registry=registry,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def transfer_started(self, category: str) -> None:
        if not self._enabled:
            return
        self._in_flight.labels(category=category).inc()

    def transfer_finished(self, category: str, outcome: TransferOutcome, duration: float) -> None:
        if not self._enabled:
            return
        self._in_flight.labels(category=category).dec()
        self._records_total.labels(category=category, outcome=outcome.value).inc()
        self._duration.labels(category=category).observe(duration)


def start_metrics_server(port: int = 8000, addr: str = "0.0.0.0") -> None:
    """Start a Prometheus HTTP metrics server."""
    if not PROMETHEUS_AVAILABLE:
        logger.error(
            "Cannot start metrics server: prometheus-client not installed. "
            "Install with: pip install prometheus-client"
        )
        return

    start_http_server(port, addr)
    logger.info(f"Prometheus metrics server started on port {port}")
