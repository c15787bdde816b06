# ============================================
# FILE: filestore_migrator/storage/interface.py
# ============================================

"""
Storage Provider Interface

Defines the contract for object stores the migrator reads from (source
role) and writes to (destination role). One instance is shared by every
worker of a run, so implementations must be safe for concurrent use.
"""

from abc import ABC, abstractmethod
from pathlib import Path

import aiofiles
import aiofiles.os

from filestore_migrator.core.exceptions import StagingError
from filestore_migrator.core.types import FileRecord

CHUNK_SIZE = 1024 * 1024


class StorageProvider(ABC):
    """Abstract interface for a storage backend"""

    def __init__(self, staging_dir: str | Path | None = None):
        self._staging_dir = Path(staging_dir) if staging_dir else None

    @property
    @abstractmethod
    def kind(self) -> str:
        """Backend kind used for routing decisions (a ``StoreKind`` value)."""

    @property
    def staging_dir(self) -> Path | None:
        return self._staging_dir

    async def prepare_staging_area(self, path: str | Path) -> Path:
        """
        Point the provider at a local staging directory, creating it.

        Args:
            path: Directory downloaded objects are written to

        Returns:
            The staging directory
        """
        staging = Path(path)
        await aiofiles.os.makedirs(staging, exist_ok=True)
        self._staging_dir = staging
        return staging

    def staged_path(self, record: FileRecord) -> Path:
        """Local file a record is staged to. Each record owns a distinct file."""
        if self._staging_dir is None:
            msg = f"{type(self).__name__}: staging area not prepared"
            raise RuntimeError(msg)
        return self._staging_dir / record.id

    @abstractmethod
    async def fetch(self, collection_hint: str, record: FileRecord) -> Path:
        """
        Download a record's object into the staging area.

        Args:
            collection_hint: Catalog collection the record belongs to
            record: Record whose object to fetch

        Returns:
            Path of the staged file

        Raises:
            NotFoundError: If the object does not exist at this backend
            ProviderError: If the backend fails
        """

    @abstractmethod
    async def push(self, dest_path: str, local_path: str | Path, content_type: str) -> None:
        """
        Upload a staged file.

        Args:
            dest_path: Object path on this backend
            local_path: Staged file to upload
            content_type: MIME type stored with the object

        Raises:
            ProviderError: If the backend fails
        """

    async def delete(self, record: FileRecord, permanent: bool = False) -> None:
        """
        Remove a record's object from this backend.

        Raises:
            NotImplementedError: If the backend does not support deletion
        """
        msg = f"Delete is not implemented for {self.kind}"
        raise NotImplementedError(msg)

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. Default implementation does nothing."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


async def write_staged_file(target: Path, chunks) -> Path:
    """
    Write an async iterable of byte chunks to ``target``.

    Writes go to a ``.part`` sibling that is renamed into place once
    complete, so a staged file either is whole or does not exist.

    Raises:
        StagingError: If the local file cannot be opened, written or
            renamed. Errors raised by ``chunks`` propagate unchanged.
    """
    partial = target.with_name(f"{target.name}.part")
    try:
        try:
            f = await aiofiles.open(partial, "wb")
        except OSError as e:
            msg = f"Cannot open {partial} for writing: {e}"
            raise StagingError(msg, path=str(partial)) from e
        async with f:
            async for chunk in chunks:
                try:
                    await f.write(chunk)
                except OSError as e:
                    msg = f"Failed writing {partial}: {e}"
                    raise StagingError(msg, path=str(partial)) from e
        try:
            await aiofiles.os.replace(partial, target)
        except OSError as e:
            msg = f"Failed moving {partial} into place: {e}"
            raise StagingError(msg, path=str(target)) from e
    except BaseException:
        if await aiofiles.os.path.exists(partial):
            await aiofiles.os.remove(partial)
        raise
    return target


async def read_chunks(path: str | Path, chunk_size: int = CHUNK_SIZE):
    """Yield a local file's content in chunks."""
    async with aiofiles.open(path, "rb") as f:
        while chunk := await f.read(chunk_size):
            yield chunk
