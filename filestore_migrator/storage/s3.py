# ============================================
# FILE: filestore_migrator/storage/s3.py
# ============================================

"""
S3 Storage Provider

Amazon S3 (or any S3-compatible service such as MinIO) as a source or
destination backend. Objects are streamed into the staging area and
uploaded with aioboto3's managed transfer.

Requires: pip install aioboto3
"""

import asyncio
from pathlib import Path
from typing import Any

from filestore_migrator.core.exceptions import MissingDependencyError, NotFoundError, ProviderError
from filestore_migrator.core.logger import get_logger
from filestore_migrator.core.types import FileRecord, StoreKind
from filestore_migrator.storage.interface import CHUNK_SIZE, StorageProvider, write_staged_file

try:
    import aioboto3
    import aiohttp
    from aiobotocore.config import AioConfig
    from botocore.exceptions import BotoCoreError, ClientError

    # Body streams surface raw transport errors that botocore does not wrap
    _TRANSFER_ERRORS = (BotoCoreError, ClientError, aiohttp.ClientError, asyncio.TimeoutError, OSError)
    AIOBOTO3_AVAILABLE = True
except ImportError:  # pragma: no cover
    AIOBOTO3_AVAILABLE = False
    aioboto3 = None  # pragma: no cover
    AioConfig = None  # pragma: no cover
    BotoCoreError = ClientError = None  # pragma: no cover
    _TRANSFER_ERRORS = ()  # pragma: no cover

logger = get_logger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def _is_not_found(error: Exception) -> bool:
    code = str(getattr(error, "response", {}).get("Error", {}).get("Code", ""))
    return code in _NOT_FOUND_CODES


class AmazonS3Provider(StorageProvider):
    """
    AWS S3 implementation of a storage provider.

    The record's current object key is read from its ``AmazonS3.path``
    sub-document; pushed objects are written under the path computed by
    the path policy.

    Example:
        >>> provider = AmazonS3Provider(bucket="rocketchat", region_name="eu-west-1")
        >>> async with provider:
        ...     await provider.push("ns/uploads/room/user/f1", "/tmp/f1", "image/png")
    """

    def __init__(
        self,
        bucket: str,
        region_name: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        force_path_style: bool = False,
        server_side_encryption: str | None = None,
        staging_dir: str | Path | None = None,
        **client_kwargs,
    ):
        if not AIOBOTO3_AVAILABLE:
            msg = "aioboto3"
            raise MissingDependencyError(msg, f"{self.kind} storage provider")

        super().__init__(staging_dir)
        self.bucket = bucket
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.force_path_style = force_path_style
        self.server_side_encryption = server_side_encryption
        self.client_kwargs = client_kwargs
        self._session = None
        self._s3_client = None
        self._lock = asyncio.Lock()

    @property
    def kind(self) -> str:
        return StoreKind.AMAZON_S3

    async def _get_s3_client(self):
        """Get S3 client, creating it on first use"""
        async with self._lock:
            if self._s3_client is None:
                self._session = aioboto3.Session(
                    aws_access_key_id=self.access_key_id,
                    aws_secret_access_key=self.secret_access_key,
                    region_name=self.region_name,
                )
                config = AioConfig(s3={"addressing_style": "path"}) if self.force_path_style else None
                try:
                    self._s3_client = await self._session.client(
                        "s3",
                        endpoint_url=self.endpoint_url,
                        config=config,
                        **self.client_kwargs,
                    ).__aenter__()
                except (BotoCoreError, ClientError) as e:
                    msg = f"Failed to create S3 client: {e}"
                    raise ProviderError(msg, backend=self.kind, operation="connect") from e

        return self._s3_client

    def _source_key(self, record: FileRecord) -> str:
        """Object key of a record currently stored on this backend"""
        if record.location.kind == self.kind and record.location.path:
            return record.location.path
        msg = f"Record {record.id} has no {self.kind} path"
        raise NotFoundError(msg, item_type="object", item_id=record.id, backend=self.kind)

    async def fetch(self, collection_hint: str, record: FileRecord) -> Path:
        key = self._source_key(record)
        s3 = await self._get_s3_client()
        target = self.staged_path(record)

        logger.debug("Downloading s3://%s/%s to %s", self.bucket, key, target)

        try:
            response = await s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                msg = f"Object {key} not found in bucket {self.bucket}"
                raise NotFoundError(msg, item_type="object", item_id=record.id, backend=self.kind) from e
            msg = f"Failed to download {key}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="fetch") from e
        except _TRANSFER_ERRORS as e:
            msg = f"Failed to download {key}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="fetch") from e

        async def body_chunks():
            async with response["Body"] as stream:
                while chunk := await stream.read(CHUNK_SIZE):
                    yield chunk

        try:
            return await write_staged_file(target, body_chunks())
        except _TRANSFER_ERRORS as e:
            msg = f"Download of {key} interrupted: {e}"
            raise ProviderError(msg, backend=self.kind, operation="fetch") from e

    async def push(self, dest_path: str, local_path: str | Path, content_type: str) -> None:
        s3 = await self._get_s3_client()

        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type
        if self.server_side_encryption:
            extra_args["ServerSideEncryption"] = self.server_side_encryption

        logger.debug("Uploading %s to s3://%s/%s", local_path, self.bucket, dest_path)

        try:
            await s3.upload_file(str(local_path), self.bucket, dest_path, ExtraArgs=extra_args or None)
        except _TRANSFER_ERRORS as e:
            msg = f"Failed to upload {dest_path}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="push") from e

    async def delete(self, record: FileRecord, permanent: bool = False) -> None:
        """Delete the record's object. Buckets without versioning always delete permanently."""
        key = self._source_key(record)
        s3 = await self._get_s3_client()
        try:
            await s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            msg = f"Failed to delete {key}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="delete") from e

    async def close(self) -> None:
        """Close S3 client"""
        if self._s3_client:
            await self._s3_client.__aexit__(None, None, None)
            self._s3_client = None
            self._session = None
