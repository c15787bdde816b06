# ============================================
# FILE: filestore_migrator/catalog/interface.py
# ============================================

"""
Catalog Accessor Interface

Defines the contract the migrator uses to read candidate file records,
read the instance namespace, and rewrite a record's location.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from filestore_migrator.core.types import FileRecord, StoreCategory

SETTINGS_COLLECTION = "rocketchat_settings"
NAMESPACE_SETTING_ID = "uniqueID"


@dataclass(frozen=True)
class CandidateQuery:
    """
    Which records a run considers.

    Attributes:
        category: Category (and therefore collection) to read
        source_kind: Only records whose descriptor is ``{source_kind}:{category}``
        exclude_kind: When no source kind is known, skip records already on
            this kind (used by upload-all to stay idempotent)
        offset: Inclusive lower bound on ``uploadedAt``
    """

    category: StoreCategory
    source_kind: str | None = None
    exclude_kind: str | None = None
    offset: datetime | None = None

    def to_filter(self) -> dict[str, Any]:
        """Render the query as a MongoDB filter document."""
        store: Any
        if self.source_kind:
            store = f"{self.source_kind}:{self.category.value}"
        else:
            store = {"$regex": f"^[^:]+:{re.escape(self.category.value)}$"}
            if self.exclude_kind:
                store["$ne"] = f"{self.exclude_kind}:{self.category.value}"

        query: dict[str, Any] = {"store": store}
        if self.offset is not None:
            query["uploadedAt"] = {"$gte": self.offset}
        return query

    def matches(self, doc: dict[str, Any]) -> bool:
        """Evaluate the query against a raw document (in-memory catalogs)."""
        descriptor = doc.get("store") or ""
        kind, _, category = descriptor.partition(":")

        if category != self.category.value:
            return False
        if self.source_kind and kind != self.source_kind:
            return False
        if not self.source_kind and self.exclude_kind and kind == self.exclude_kind:
            return False

        if self.offset is not None:
            uploaded_at = doc.get("uploadedAt")
            if uploaded_at is None:
                return False
            if uploaded_at.tzinfo is None:
                uploaded_at = uploaded_at.replace(tzinfo=UTC)
            if uploaded_at < self.offset:
                return False

        return True


class CatalogAccessor(ABC):
    """Abstract interface for the file metadata catalog"""

    @abstractmethod
    async def read_namespace(self) -> str:
        """
        Read the installation-unique identifier used as a path prefix.

        Raises:
            NotFoundError: If the setting does not exist
            CatalogError: If the query fails
        """

    @abstractmethod
    async def find_candidates(self, query: CandidateQuery) -> list[FileRecord]:
        """
        Fetch the records a run should consider, oldest upload first.

        Returns:
            Matching records; an empty list when nothing matches

        Raises:
            CatalogError: If the query fails
        """

    @abstractmethod
    async def apply_mutation(
        self,
        category: StoreCategory,
        record_id: str,
        set_fields: dict[str, Any],
        unset_fields: Iterable[str] = (),
    ) -> None:
        """
        Atomically update one record, keyed by id.

        Raises:
            CatalogError: If the update fails or no record has this id
        """

    async def close(self) -> None:  # noqa: B027
        """Release connections. Default implementation does nothing."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
