"""
Pytest configuration and shared fixtures for migrator tests
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from filestore_migrator.catalog.memory import InMemoryCatalog
from filestore_migrator.core.exceptions import NotFoundError, ProviderError
from filestore_migrator.core.logger import NAMESPACE, set_logger
from filestore_migrator.core.types import FileRecord, Location, StoreCategory, StoreKind
from filestore_migrator.storage.interface import StorageProvider

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


# ============================================
# AUTO-USE FIXTURES
# ============================================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for name in (
        "MAX_CONCURRENCY",
        "FILESTORE_CONNECTION_STRING",
        "FILESTORE_DATABASE",
        "FILESTORE_STORE",
        "FILESTORE_STAGING_DIR",
        "FILESTORE_FILE_DELAY",
        "FILESTORE_FILE_OFFSET",
        "FILESTORE_SKIP_ERRORS",
        "FILESTORE_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    set_logger(None)
    namespace_logger = logging.getLogger(NAMESPACE)
    for handler in list(namespace_logger.handlers):
        namespace_logger.removeHandler(handler)
    namespace_logger.setLevel(logging.NOTSET)


# ============================================
# TEST DOUBLES
# ============================================


class FakeProvider(StorageProvider):
    """
    Storage provider that keeps objects in memory and records what it did.

    Records listed in ``missing`` fail fetch with NotFoundError, those in
    ``failing`` fail fetch with ProviderError and those in ``push_failing``
    fail push with ProviderError.
    """

    def __init__(
        self,
        kind: str = StoreKind.GRIDFS,
        missing=(),
        failing=(),
        push_failing=(),
        delay: float = 0.0,
    ):
        super().__init__()
        self._kind = kind
        self.missing = set(missing)
        self.failing = set(failing)
        self.push_failing = set(push_failing)
        self.delay = delay
        self.fetched: list[str] = []
        self.pushed: dict[str, tuple[bytes, str]] = {}
        self.active = 0
        self.peak = 0
        self.closed = False

    @property
    def kind(self) -> str:
        return self._kind

    async def _enter(self):
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(self.delay)

    async def fetch(self, collection_hint: str, record: FileRecord) -> Path:
        await self._enter()
        try:
            self.fetched.append(record.id)
            if record.id in self.missing:
                raise NotFoundError(f"{record.id} missing", item_type="object", item_id=record.id)
            if record.id in self.failing:
                raise ProviderError(f"fetch of {record.id} failed", backend=self.kind, operation="fetch")
            target = self.staged_path(record)
            target.write_bytes(f"content-{record.id}".encode())
            return target
        finally:
            self.active -= 1

    async def push(self, dest_path: str, local_path, content_type: str) -> None:
        await self._enter()
        try:
            if Path(dest_path).name in self.push_failing:
                raise ProviderError(f"push of {dest_path} failed", backend=self.kind, operation="push")
            self.pushed[dest_path] = (Path(local_path).read_bytes(), content_type)
        finally:
            self.active -= 1

    async def close(self) -> None:
        self.closed = True


# ============================================
# FIXTURES
# ============================================


@pytest.fixture
def make_record():
    """Factory for complete upload records stored on GridFS."""

    def _make(record_id: str, index: int = 0, **overrides) -> FileRecord:
        values = {
            "id": record_id,
            "name": f"{record_id}.png",
            "content_type": "image/png",
            "user_id": "user1",
            "room_id": "room1",
            "complete": True,
            "uploaded_at": BASE_TIME + timedelta(days=index),
            "location": Location(kind=StoreKind.GRIDFS.value, category=StoreCategory.UPLOADS.value),
        }
        values.update(overrides)
        return FileRecord(**values)

    return _make


@pytest.fixture
def catalog():
    return InMemoryCatalog(namespace="ns1")


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "staging"
