"""
Filesystem Storage Provider

Objects are plain files under a root directory, named by record id.
This is the layout the application's FileSystem store uses, which is why
the path policy collapses destination paths to the record id for it.

Example:
    >>> provider = FileSystemProvider(location="/var/lib/uploads")
    >>> await provider.prepare_staging_area("/tmp/migrate/uploads")
    >>> staged = await provider.fetch("rocketchat_uploads", record)
"""

from pathlib import Path

import aiofiles.os

from filestore_migrator.core.exceptions import NotFoundError, ProviderError, StagingError
from filestore_migrator.core.logger import get_logger
from filestore_migrator.core.types import FileRecord, StoreKind
from filestore_migrator.storage.interface import StorageProvider, read_chunks, write_staged_file

logger = get_logger(__name__)


class FileSystemProvider(StorageProvider):
    """
    Local (or mounted) directory acting as an object store.

    Directory structure:
        location/
        ├── {record id}
        └── ...
    """

    def __init__(self, location: str | Path, staging_dir: str | Path | None = None):
        super().__init__(staging_dir)
        self.location = Path(location)

    @property
    def kind(self) -> str:
        return StoreKind.FILESYSTEM

    def _object_path(self, name: str) -> Path:
        target = (self.location / name).resolve()
        if not target.is_relative_to(self.location.resolve()):
            msg = f"Object path escapes storage root: {name}"
            raise ProviderError(msg, backend=self.kind, operation="resolve")
        return target

    async def fetch(self, collection_hint: str, record: FileRecord) -> Path:
        source = self._object_path(record.id)
        if not await aiofiles.os.path.isfile(source):
            msg = f"No file for {record.id} in {self.location}"
            raise NotFoundError(msg, item_type="object", item_id=record.id, backend=self.kind)

        target = self.staged_path(record)
        logger.debug("Copying %s to %s", source, target)
        try:
            return await write_staged_file(target, read_chunks(source))
        except OSError as e:
            msg = f"Failed reading {source}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="fetch") from e

    async def push(self, dest_path: str, local_path: str | Path, content_type: str) -> None:
        target = self._object_path(dest_path)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            await write_staged_file(target, read_chunks(local_path))
        except (OSError, StagingError) as e:
            msg = f"Failed to write {target}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="push") from e

    async def delete(self, record: FileRecord, permanent: bool = False) -> None:
        target = self._object_path(record.id)
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError as e:
            msg = f"No file for {record.id} in {self.location}"
            raise NotFoundError(msg, item_type="object", item_id=record.id, backend=self.kind) from e
        except OSError as e:
            msg = f"Failed to delete {target}: {e}"
            raise ProviderError(msg, backend=self.kind, operation="delete") from e
