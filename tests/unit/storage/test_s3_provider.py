"""
Unit tests for the S3 and Google Cloud Storage providers with a mocked aioboto3.

These don't require AWS, GCS or MinIO.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from botocore.exceptions import ClientError

from filestore_migrator.core.exceptions import MissingDependencyError, NotFoundError, ProviderError
from filestore_migrator.core.types import Location


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _body(*chunks: bytes):
    stream = MagicMock()
    stream.read = AsyncMock(side_effect=[*chunks, b""])
    body = MagicMock()
    body.__aenter__ = AsyncMock(return_value=stream)
    body.__aexit__ = AsyncMock(return_value=False)
    return body


@pytest.fixture
def mock_s3():
    """Patch aioboto3 and yield the client every provider will get."""
    with patch("filestore_migrator.storage.s3.aioboto3") as mock_aioboto3:
        mock_client = AsyncMock()
        mock_client_cm = MagicMock()
        mock_client_cm.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client_cm.__aexit__ = AsyncMock(return_value=False)

        mock_session = MagicMock()
        mock_session.client = MagicMock(return_value=mock_client_cm)
        mock_aioboto3.Session = MagicMock(return_value=mock_session)

        mock_client.session = mock_session
        mock_client.context_manager = mock_client_cm
        yield mock_client


@pytest.fixture
def s3_record(make_record):
    return make_record("f1", location=Location(kind="AmazonS3", category="Uploads", path="ns1/uploads/r/u/f1"))


class TestS3ProviderImportError:
    def test_aioboto3_not_available(self):
        with patch("filestore_migrator.storage.s3.AIOBOTO3_AVAILABLE", False):
            from filestore_migrator.storage.s3 import AmazonS3Provider

            with pytest.raises(MissingDependencyError, match="aioboto3"):
                AmazonS3Provider(bucket="test-bucket")


class TestS3Provider:
    @pytest.mark.asyncio
    async def test_client_created_once(self, mock_s3):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        provider = AmazonS3Provider(bucket="b", region_name="eu-west-1", access_key_id="k", secret_access_key="s")

        first = await provider._get_s3_client()
        second = await provider._get_s3_client()

        assert first is second is mock_s3
        mock_s3.session.client.assert_called_once()

    @pytest.mark.asyncio
    async def test_force_path_style(self, mock_s3):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        provider = AmazonS3Provider(bucket="b", endpoint_url="http://minio:9000", force_path_style=True)
        await provider._get_s3_client()

        kwargs = mock_s3.session.client.call_args.kwargs
        assert kwargs["endpoint_url"] == "http://minio:9000"
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    @pytest.mark.asyncio
    async def test_fetch_streams_object(self, mock_s3, s3_record, staging_dir):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        mock_s3.get_object = AsyncMock(return_value={"Body": _body(b"abc", b"def")})
        provider = AmazonS3Provider(bucket="uploads")
        await provider.prepare_staging_area(staging_dir)

        staged = await provider.fetch("rocketchat_uploads", s3_record)

        mock_s3.get_object.assert_awaited_once_with(Bucket="uploads", Key="ns1/uploads/r/u/f1")
        assert staged.read_bytes() == b"abcdef"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["NoSuchKey", "404"])
    async def test_fetch_missing_object(self, mock_s3, s3_record, staging_dir, code):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        mock_s3.get_object = AsyncMock(side_effect=_client_error(code))
        provider = AmazonS3Provider(bucket="uploads")
        await provider.prepare_staging_area(staging_dir)

        with pytest.raises(NotFoundError):
            await provider.fetch("rocketchat_uploads", s3_record)

    @pytest.mark.asyncio
    async def test_fetch_other_error(self, mock_s3, s3_record, staging_dir):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        mock_s3.get_object = AsyncMock(side_effect=_client_error("AccessDenied"))
        provider = AmazonS3Provider(bucket="uploads")
        await provider.prepare_staging_area(staging_dir)

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch("rocketchat_uploads", s3_record)
        assert exc_info.value.operation == "fetch"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [asyncio.TimeoutError(), aiohttp.ClientPayloadError("truncated"), ConnectionResetError(104, "reset")],
    )
    async def test_body_transport_error(self, mock_s3, s3_record, staging_dir, error):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        body = _body(b"abc")
        body.__aenter__.return_value.read = AsyncMock(side_effect=[b"abc", error])
        mock_s3.get_object = AsyncMock(return_value={"Body": body})
        provider = AmazonS3Provider(bucket="uploads")
        await provider.prepare_staging_area(staging_dir)

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch("rocketchat_uploads", s3_record)

        assert exc_info.value.operation == "fetch"
        assert exc_info.value.backend == "AmazonS3"
        assert list(staging_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_fetch_record_without_path(self, mock_s3, make_record, staging_dir):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        provider = AmazonS3Provider(bucket="uploads")
        await provider.prepare_staging_area(staging_dir)

        with pytest.raises(NotFoundError, match="no AmazonS3 path"):
            await provider.fetch("rocketchat_uploads", make_record("f1"))
        mock_s3.get_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_push_uploads_with_content_type(self, mock_s3, tmp_path):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        local = tmp_path / "f1"
        local.write_bytes(b"x")
        mock_s3.upload_file = AsyncMock()
        provider = AmazonS3Provider(bucket="uploads", server_side_encryption="AES256")

        await provider.push("ns1/uploads/r/u/f1", local, "image/png")

        mock_s3.upload_file.assert_awaited_once_with(
            str(local),
            "uploads",
            "ns1/uploads/r/u/f1",
            ExtraArgs={"ContentType": "image/png", "ServerSideEncryption": "AES256"},
        )

    @pytest.mark.asyncio
    async def test_push_failure(self, mock_s3, tmp_path):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        mock_s3.upload_file = AsyncMock(side_effect=_client_error("SlowDown", "PutObject"))
        provider = AmazonS3Provider(bucket="uploads")

        with pytest.raises(ProviderError) as exc_info:
            await provider.push("key", tmp_path / "f1", "image/png")
        assert exc_info.value.operation == "push"

    @pytest.mark.asyncio
    async def test_delete(self, mock_s3, s3_record):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        mock_s3.delete_object = AsyncMock()
        provider = AmazonS3Provider(bucket="uploads")

        await provider.delete(s3_record)

        mock_s3.delete_object.assert_awaited_once_with(Bucket="uploads", Key="ns1/uploads/r/u/f1")

    @pytest.mark.asyncio
    async def test_close(self, mock_s3):
        from filestore_migrator.storage.s3 import AmazonS3Provider

        async with AmazonS3Provider(bucket="uploads") as provider:
            await provider._get_s3_client()

        mock_s3.__aexit__.assert_awaited_once()
        assert provider._s3_client is None


class TestGoogleStorageProvider:
    @pytest.mark.asyncio
    async def test_uses_interoperability_endpoint(self, mock_s3):
        from filestore_migrator.storage.google import GCS_ENDPOINT, GoogleStorageProvider

        provider = GoogleStorageProvider(bucket="files", access_key_id="GOOG1E", secret_access_key="s")
        await provider._get_s3_client()

        assert provider.kind == "GoogleCloudStorage"
        kwargs = mock_s3.session.client.call_args.kwargs
        assert kwargs["endpoint_url"] == GCS_ENDPOINT
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    @pytest.mark.asyncio
    async def test_fetch_reads_google_storage_path(self, mock_s3, make_record, staging_dir):
        from filestore_migrator.storage.google import GoogleStorageProvider

        mock_s3.get_object = AsyncMock(return_value={"Body": _body(b"gcs")})
        record = make_record(
            "f1",
            location=Location(kind="GoogleCloudStorage", category="Uploads", path="ns1/uploads/r/u/f1"),
        )
        provider = GoogleStorageProvider(bucket="files")
        await provider.prepare_staging_area(staging_dir)

        staged = await provider.fetch("rocketchat_uploads", record)

        assert staged.read_bytes() == b"gcs"
        mock_s3.get_object.assert_awaited_once_with(Bucket="files", Key="ns1/uploads/r/u/f1")
