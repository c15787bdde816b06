"""
Observability helpers: structured logging context and Prometheus metrics.
"""

from .logging import (
    MigrationContextFilter,
    MigrationJsonFormatter,
    clear_migration_context,
    migration_context,
    set_migration_context,
)
from .metrics import MigrationMetrics, start_metrics_server

__all__ = [
    "MigrationContextFilter",
    "MigrationJsonFormatter",
    "MigrationMetrics",
    "clear_migration_context",
    "migration_context",
    "set_migration_context",
    "start_metrics_server",
]
