"""
The migration engine: candidate discovery, the bounded pipeline and
per-record error policy.
"""

from .orchestrator import Migrator, RunContext, migrate
from .pipeline import BoundedPipeline
from .progress import MigrationProgress, RunSummary

__all__ = [
    "BoundedPipeline",
    "MigrationProgress",
    "Migrator",
    "RunContext",
    "RunSummary",
    "migrate",
]
