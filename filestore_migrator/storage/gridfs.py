"""
GridFS Storage Provider

Objects stored in MongoDB GridFS buckets of the application database.
The source bucket is named after the record's catalog collection and the
GridFS file id is the record id.

Requires: pip install pymongo
"""

from pathlib import Path
from typing import Any

from filestore_migrator.core.exceptions import MissingDependencyError, NotFoundError, ProviderError
from filestore_migrator.core.logger import get_logger
from filestore_migrator.core.types import FileRecord, StoreKind
from filestore_migrator.storage.interface import CHUNK_SIZE, StorageProvider, read_chunks, write_staged_file

try:
    from gridfs import AsyncGridFSBucket
    from gridfs.errors import NoFile
    from pymongo import AsyncMongoClient
    from pymongo.errors import PyMongoError

    PYMONGO_AVAILABLE = True
except ImportError:  # pragma: no cover
    PYMONGO_AVAILABLE = False
    AsyncGridFSBucket = None  # pragma: no cover
    AsyncMongoClient = None  # pragma: no cover
    NoFile = PyMongoError = None  # pragma: no cover

logger = get_logger(__name__)

DEFAULT_BUCKET = "rocketchat_uploads"


class GridFSProvider(StorageProvider):
    """
    MongoDB GridFS implementation of a storage provider.

    Args:
        database_url: MongoDB connection string
        database_name: Database holding the buckets
        bucket_name: Bucket objects are pushed into
        client: Existing AsyncMongoClient to reuse (not closed by the provider)
    """

    def __init__(
        self,
        database_url: str = "mongodb://localhost:27017",
        database_name: str = "rocketchat",
        bucket_name: str = DEFAULT_BUCKET,
        client: Any = None,
        staging_dir: str | Path | None = None,
    ):
        if not PYMONGO_AVAILABLE:
            msg = "pymongo"
            raise MissingDependencyError(msg, "GridFS storage provider")

        super().__init__(staging_dir)
        self.database_url = database_url
        self.database_name = database_name
        self.bucket_name = bucket_name
        self._owns_client = client is None
        self._client = client or AsyncMongoClient(database_url)
        self._buckets: dict[str, Any] = {}

    @property
    def kind(self) -> str:
        return StoreKind.GRIDFS

    def _bucket(self, name: str):
        if name not in self._buckets:
            self._buckets[name] = AsyncGridFSBucket(self._client[self.database_name], bucket_name=name)
        return self._buckets[name]

    async def fetch(self, collection_hint: str, record: FileRecord) -> Path:
        bucket = self._bucket(collection_hint)
        target = self.staged_path(record)

        logger.debug("Downloading GridFS %s/%s to %s", collection_hint, record.id, target)

        try:
            stream = await bucket.open_download_stream(record.id)
        except NoFile as e:
            msg = f"File {record.id} not found in GridFS bucket {collection_hint}"
            raise NotFoundError(msg, item_type="object", item_id=record.id, backend=self.kind) from e
        except PyMongoError as e:
            msg = f"Failed to open {record.id}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="fetch") from e

        async def chunks():
            while chunk := await stream.read(CHUNK_SIZE):
                yield chunk

        try:
            return await write_staged_file(target, chunks())
        except PyMongoError as e:
            msg = f"Download of {record.id} interrupted: {e}"
            raise ProviderError(msg, backend=self.kind, operation="fetch") from e
        finally:
            await stream.close()

    async def push(self, dest_path: str, local_path: str | Path, content_type: str) -> None:
        """Stream a staged file into the destination bucket, one chunk at a time."""
        bucket = self._bucket(self.bucket_name)

        logger.debug("Uploading %s to GridFS %s/%s", local_path, self.bucket_name, dest_path)

        grid_in = bucket.open_upload_stream_with_id(
            dest_path,
            Path(dest_path).name,
            metadata={"contentType": content_type},
        )
        try:
            async for chunk in read_chunks(local_path):
                await grid_in.write(chunk)
            await grid_in.close()
        except PyMongoError as e:
            await grid_in.abort()
            msg = f"Failed to upload {dest_path}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="push") from e
        except BaseException:
            # abort() deletes the chunks already written
            await grid_in.abort()
            raise

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None
        self._buckets.clear()
