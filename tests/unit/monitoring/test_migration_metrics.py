"""
Tests for the Prometheus metrics collector.
"""

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from filestore_migrator.core.types import TransferOutcome
from filestore_migrator.monitoring.metrics import MigrationMetrics, start_metrics_server


@pytest.fixture
def registry():
    return CollectorRegistry()


def test_transfer_lifecycle(registry):
    metrics = MigrationMetrics(prefix="unit", registry=registry)

    metrics.transfer_started("Uploads")
    metrics.transfer_started("Uploads")
    assert registry.get_sample_value("unit_in_flight", {"category": "Uploads"}) == 2

    metrics.transfer_finished("Uploads", TransferOutcome.MIGRATED, 0.3)
    metrics.transfer_finished("Uploads", TransferOutcome.SKIPPED, 0.01)

    assert registry.get_sample_value("unit_in_flight", {"category": "Uploads"}) == 0
    assert registry.get_sample_value("unit_records_total", {"category": "Uploads", "outcome": "migrated"}) == 1
    assert registry.get_sample_value("unit_records_total", {"category": "Uploads", "outcome": "skipped"}) == 1
    assert registry.get_sample_value("unit_transfer_duration_seconds_sum", {"category": "Uploads"}) == pytest.approx(
        0.31
    )


def test_disabled_without_prometheus():
    with patch("filestore_migrator.monitoring.metrics.PROMETHEUS_AVAILABLE", False):
        metrics = MigrationMetrics()

    assert metrics.enabled is False
    metrics.transfer_started("Uploads")
    metrics.transfer_finished("Uploads", TransferOutcome.MIGRATED, 1.0)


def test_metrics_server():
    with patch("filestore_migrator.monitoring.metrics.start_http_server") as server:
        start_metrics_server(port=9100)

    server.assert_called_once_with(9100, "0.0.0.0")


def test_metrics_server_without_prometheus():
    with (
        patch("filestore_migrator.monitoring.metrics.PROMETHEUS_AVAILABLE", False),
        patch("filestore_migrator.monitoring.metrics.start_http_server") as server,
    ):
        start_metrics_server()

    server.assert_not_called()
