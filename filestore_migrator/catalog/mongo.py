"""
MongoDB Catalog

Reads and rewrites file records in the application's MongoDB database
using pymongo's asyncio client.

Example:
    >>> catalog = MongoCatalog("mongodb://localhost:27017", "rocketchat")
    >>> async with catalog:
    ...     namespace = await catalog.read_namespace()
"""

from collections.abc import Iterable
from typing import Any

from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import PyMongoError

from filestore_migrator.catalog.interface import (
    NAMESPACE_SETTING_ID,
    SETTINGS_COLLECTION,
    CandidateQuery,
    CatalogAccessor,
)
from filestore_migrator.core.exceptions import CatalogError, NotFoundError
from filestore_migrator.core.logger import get_logger
from filestore_migrator.core.types import FileRecord, StoreCategory

logger = get_logger(__name__)


class MongoCatalog(CatalogAccessor):
    """
    MongoDB implementation of the catalog accessor.

    The client is shared by all workers of a run; pymongo clients are safe
    for concurrent use.
    """

    def __init__(
        self,
        connection_string: str = "mongodb://localhost:27017",
        database_name: str = "rocketchat",
        client: Any = None,
        **client_kwargs,
    ):
        self.connection_string = connection_string
        self.database_name = database_name
        self._owns_client = client is None
        self._client = client or AsyncMongoClient(connection_string, **client_kwargs)

    @property
    def database(self):
        return self._client[self.database_name]

    async def read_namespace(self) -> str:
        settings = self.database[SETTINGS_COLLECTION]
        try:
            doc = await settings.find_one({"_id": NAMESPACE_SETTING_ID})
        except PyMongoError as e:
            msg = f"Failed to read {NAMESPACE_SETTING_ID} setting: {e}"
            raise CatalogError(msg, collection=SETTINGS_COLLECTION, operation="find_one") from e

        value = (doc or {}).get("value")
        if not value:
            msg = f"Setting {NAMESPACE_SETTING_ID} not found"
            raise NotFoundError(msg, item_type="setting", item_id=NAMESPACE_SETTING_ID)

        logger.debug("uniqueId %s", value)
        return str(value)

    async def find_candidates(self, query: CandidateQuery) -> list[FileRecord]:
        collection_name = query.category.collection
        mongo_filter = query.to_filter()
        logger.debug("Querying %s with %s", collection_name, mongo_filter)

        try:
            cursor = self.database[collection_name].find(mongo_filter).sort("uploadedAt", ASCENDING)
            docs = await cursor.to_list()
        except PyMongoError as e:
            msg = f"Failed to query {collection_name}: {e}"
            raise CatalogError(msg, collection=collection_name, operation="find") from e

        return [FileRecord.from_document(doc) for doc in docs]

    async def apply_mutation(
        self,
        category: StoreCategory,
        record_id: str,
        set_fields: dict[str, Any],
        unset_fields: Iterable[str] = (),
    ) -> None:
        collection_name = category.collection
        update: dict[str, Any] = {"$set": set_fields}
        unset = {name: "" for name in unset_fields}
        if unset:
            update["$unset"] = unset

        try:
            result = await self.database[collection_name].update_one({"_id": record_id}, update)
        except PyMongoError as e:
            msg = f"Failed to update {record_id}: {e}"
            raise CatalogError(msg, collection=collection_name, operation="update_one") from e

        if result.matched_count == 0:
            msg = f"No record with id {record_id}"
            raise CatalogError(msg, collection=collection_name, operation="update_one")

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
