"""
In-memory catalog for development, dry runs and tests.
"""

import copy
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from filestore_migrator.catalog.interface import CandidateQuery, CatalogAccessor
from filestore_migrator.core.exceptions import CatalogError, NotFoundError
from filestore_migrator.core.types import FileRecord, StoreCategory

_OLDEST = datetime.min.replace(tzinfo=UTC)


def _upload_order(doc: dict[str, Any]) -> tuple[bool, datetime]:
    """Sort key matching Mongo's ascending uploadedAt order. Naive timestamps are UTC."""
    uploaded_at = doc.get("uploadedAt")
    if uploaded_at is None:
        return True, _OLDEST
    if uploaded_at.tzinfo is None:
        uploaded_at = uploaded_at.replace(tzinfo=UTC)
    return False, uploaded_at


class InMemoryCatalog(CatalogAccessor):
    """
    Catalog kept in plain dicts, one per category.

    Example:
        >>> catalog = InMemoryCatalog(namespace="abc123")
        >>> catalog.add(FileRecord(id="f1", ...), StoreCategory.UPLOADS)
    """

    def __init__(self, namespace: str | None = None):
        self.namespace = namespace
        self._collections: dict[StoreCategory, dict[str, dict[str, Any]]] = {
            category: {} for category in StoreCategory
        }
        self.mutations: list[tuple[str, dict[str, Any], tuple[str, ...]]] = []

    def add(self, record: FileRecord | dict[str, Any], category: StoreCategory = StoreCategory.UPLOADS) -> None:
        doc = record.to_document() if isinstance(record, FileRecord) else dict(record)
        self._collections[category][str(doc["_id"])] = doc

    def get(self, record_id: str, category: StoreCategory = StoreCategory.UPLOADS) -> dict[str, Any] | None:
        doc = self._collections[category].get(record_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def read_namespace(self) -> str:
        if not self.namespace:
            raise NotFoundError("Setting uniqueID not found", item_type="setting", item_id="uniqueID")
        return self.namespace

    async def find_candidates(self, query: CandidateQuery) -> list[FileRecord]:
        docs = [doc for doc in self._collections[query.category].values() if query.matches(doc)]
        docs.sort(key=_upload_order)
        return [FileRecord.from_document(copy.deepcopy(doc)) for doc in docs]

    async def apply_mutation(
        self,
        category: StoreCategory,
        record_id: str,
        set_fields: dict[str, Any],
        unset_fields: Iterable[str] = (),
    ) -> None:
        doc = self._collections[category].get(record_id)
        if doc is None:
            msg = f"No record with id {record_id}"
            raise CatalogError(msg, collection=category.collection, operation="update_one")

        unset = tuple(unset_fields)
        doc.update(copy.deepcopy(set_fields))
        for name in unset:
            doc.pop(name, None)
        self.mutations.append((record_id, copy.deepcopy(set_fields), unset))
