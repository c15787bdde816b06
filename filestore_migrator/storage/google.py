"""
Google Cloud Storage Provider

Talks to GCS through its S3-compatible XML API using HMAC keys, so it
shares the aioboto3 client code with the S3 provider. The record's object
key lives in the ``GoogleStorage.path`` sub-document.
"""

from pathlib import Path

from filestore_migrator.core.types import StoreKind
from filestore_migrator.storage.s3 import AmazonS3Provider

GCS_ENDPOINT = "https://storage.googleapis.com"


class GoogleStorageProvider(AmazonS3Provider):
    """
    Google Cloud Storage implementation of a storage provider.

    Example:
        >>> provider = GoogleStorageProvider(
        ...     bucket="rocketchat-files",
        ...     access_key_id="GOOG1E...",  # HMAC access id
        ...     secret_access_key="...",
        ... )
    """

    def __init__(
        self,
        bucket: str,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str = GCS_ENDPOINT,
        region_name: str = "auto",
        staging_dir: str | Path | None = None,
        **client_kwargs,
    ):
        super().__init__(
            bucket=bucket,
            region_name=region_name,
            endpoint_url=endpoint_url,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            force_path_style=True,
            staging_dir=staging_dir,
            **client_kwargs,
        )

    @property
    def kind(self) -> str:
        return StoreKind.GOOGLE_CLOUD_STORAGE
