"""
Storage providers: the object stores files are moved between.

Usage:
    >>> from filestore_migrator.storage import create_provider
    >>> source = create_provider("GridFS", database_url="mongodb://localhost:27017")
    >>> destination = create_provider("AmazonS3", bucket="rocketchat-uploads")
"""

from .factory import create_provider, get_available_providers
from .filesystem import FileSystemProvider
from .interface import CHUNK_SIZE, StorageProvider

_LAZY = {
    "AmazonS3Provider": ".s3",
    "GoogleStorageProvider": ".google",
    "GridFSProvider": ".gridfs",
}


def __getattr__(name: str):
    # Cloud providers pull in their SDKs; import them on first use
    if name in _LAZY:
        import importlib

        module = importlib.import_module(_LAZY[name], __name__)
        return getattr(module, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "CHUNK_SIZE",
    "AmazonS3Provider",
    "FileSystemProvider",
    "GoogleStorageProvider",
    "GridFSProvider",
    "StorageProvider",
    "create_provider",
    "get_available_providers",
]
