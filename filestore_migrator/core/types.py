# ============================================
# FILE: filestore_migrator/core/types.py
# ============================================

"""
All type definitions, enums, and dataclasses

The catalog stores a file's backend location as mutually exclusive
sub-documents (``AmazonS3``, ``GoogleStorage``) next to a ``store``
descriptor. Inside the migrator a location is a single tagged value,
``Location(kind, category, path)``; the exclusive-field representation
only exists at the catalog boundary (see ``filestore_migrator.policy``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any

UNDEFINED = "undefined"


class StoreCategory(StrEnum):
    """Kind of object being migrated. Exactly one per run."""

    UPLOADS = "Uploads"
    AVATARS = "Avatars"

    @property
    def collection(self) -> str:
        """Catalog collection holding records of this category."""
        return f"rocketchat_{self.value.lower()}"

    @property
    def slug(self) -> str:
        return self.value.lower()

    @classmethod
    def parse(cls, value: str | StoreCategory) -> StoreCategory:
        """Parse a category literal, raising ValueError for anything else."""
        if isinstance(value, StoreCategory):
            return value
        for category in cls:
            if category.value == value:
                return category
        msg = f"Invalid store name: {value!r} (expected one of: Uploads, Avatars)"
        raise ValueError(msg)


class StoreKind(StrEnum):
    """Storage backend kinds the catalog knows about."""

    AMAZON_S3 = "AmazonS3"
    GOOGLE_CLOUD_STORAGE = "GoogleCloudStorage"
    FILESYSTEM = "FileSystem"
    GRIDFS = "GridFS"

    @property
    def subfield(self) -> str | None:
        """Name of the kind-specific sub-document, if the kind has one."""
        return _SUBFIELDS.get(self)

    @classmethod
    def parse(cls, value: str | StoreKind) -> StoreKind:
        if isinstance(value, StoreKind):
            return value
        normalized = value.strip().lower()
        for kind in cls:
            if kind.value.lower() == normalized:
                return kind
        alias = _ALIASES.get(normalized)
        if alias is not None:
            return alias
        msg = f"Unknown store kind: {value!r}"
        raise ValueError(msg)


_SUBFIELDS = {
    StoreKind.AMAZON_S3: "AmazonS3",
    StoreKind.GOOGLE_CLOUD_STORAGE: "GoogleStorage",
}

_ALIASES = {
    "s3": StoreKind.AMAZON_S3,
    "gcs": StoreKind.GOOGLE_CLOUD_STORAGE,
    "googlestorage": StoreKind.GOOGLE_CLOUD_STORAGE,
    "filesystem": StoreKind.FILESYSTEM,
    "fs": StoreKind.FILESYSTEM,
    "gridfs": StoreKind.GRIDFS,
}

# Every sub-document name any backend may leave on a record
LOCATION_SUBFIELDS: tuple[str, ...] = tuple(_SUBFIELDS.values())


class OperatingMode(Enum):
    """Which pipeline a run executes, derived from the bound provider roles."""

    TRANSFER = "transfer"
    DOWNLOAD_ALL = "download_all"
    UPLOAD_ALL = "upload_all"


class TransferOutcome(Enum):
    """Per-record result of a worker."""

    MIGRATED = "migrated"
    SKIPPED = "skipped"
    FATAL = "fatal"


@dataclass(frozen=True)
class Location:
    """
    Where a record's bytes currently live.

    Attributes:
        kind: Backend kind (a ``StoreKind`` value, or a raw kind string for
            backends this tool does not drive)
        category: Category literal ("Uploads" or "Avatars")
        path: Backend-specific object path, when the backend keeps one
    """

    kind: str
    category: str
    path: str | None = None

    @property
    def descriptor(self) -> str:
        """The ``store`` value written to the catalog."""
        return f"{self.kind}:{self.category}"

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Location:
        descriptor = doc.get("store") or ""
        kind, _, category = descriptor.partition(":")
        path = None
        subfield = _SUBFIELDS.get(_kind_or_none(kind))
        if subfield:
            sub = doc.get(subfield) or {}
            path = sub.get("path") or None
        return cls(kind=kind, category=category, path=path)


def _kind_or_none(kind: str) -> StoreKind | None:
    try:
        return StoreKind(kind)
    except ValueError:
        return None


@dataclass
class FileRecord:
    """
    One catalog entry describing an uploaded object.

    Only the attributes the migrator reads are modelled; the rest of the
    catalog document is never rewritten.
    """

    id: str
    name: str = ""
    content_type: str = ""
    user_id: str = ""
    room_id: str = ""
    complete: bool = False
    uploaded_at: datetime | None = None
    location: Location = field(default_factory=lambda: Location(kind="", category=""))
    url: str = ""

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> FileRecord:
        """Build a record from a raw catalog document."""
        return cls(
            id=str(doc["_id"]),
            name=doc.get("name") or "",
            content_type=doc.get("type") or "",
            user_id=doc.get("userId") or "",
            room_id=doc.get("rid") or "",
            complete=bool(doc.get("complete", False)),
            uploaded_at=doc.get("uploadedAt"),
            location=Location.from_document(doc),
            url=doc.get("url") or "",
        )

    def to_document(self) -> dict[str, Any]:
        """Inverse of ``from_document`` (used by the in-memory catalog)."""
        doc: dict[str, Any] = {
            "_id": self.id,
            "name": self.name,
            "type": self.content_type,
            "userId": self.user_id,
            "rid": self.room_id,
            "complete": self.complete,
            "uploadedAt": self.uploaded_at,
            "store": self.location.descriptor,
            "url": self.url,
            "path": self.url,
        }
        subfield = _SUBFIELDS.get(_kind_or_none(self.location.kind))
        if subfield and self.location.path:
            doc[subfield] = {"path": self.location.path}
        return doc


@dataclass(frozen=True)
class RecordMutation:
    """Field-level update for a single catalog record."""

    record_id: str
    set_fields: dict[str, Any]
    unset_fields: tuple[str, ...] = ()
