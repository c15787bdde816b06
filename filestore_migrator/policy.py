"""
Destination path and catalog mutation policy.

Pure functions; nothing here performs I/O. The orchestrator calls
``object_path`` after a successful fetch and ``build_mutation`` after a
successful push.

Layout of destination objects:
    Uploads:    {namespace}/uploads/{roomId}/{userId}/{recordId}
    Avatars:    {namespace}/avatars/{userId}
    FileSystem: {recordId}   (that backend organizes purely by id)
"""

from filestore_migrator.core.types import (
    LOCATION_SUBFIELDS,
    UNDEFINED,
    FileRecord,
    Location,
    RecordMutation,
    StoreCategory,
    StoreKind,
)


def object_path(
    record: FileRecord,
    category: StoreCategory,
    destination_kind: str,
    namespace: str,
) -> str:
    """
    Compute where a record's object lands on the destination backend.

    Empty room ids (uploads only) and empty user ids are replaced by the
    literal "undefined".
    """
    if destination_kind == StoreKind.FILESYSTEM:
        return record.id

    user_id = record.user_id or UNDEFINED

    if category == StoreCategory.UPLOADS:
        room_id = record.room_id or UNDEFINED
        return f"{namespace}/{category.slug}/{room_id}/{user_id}/{record.id}"

    return f"{namespace}/{category.slug}/{user_id}"


def served_path(kind: str, category: StoreCategory, record: FileRecord) -> str:
    """Synthetic reference the application serves the object from."""
    return f"/ufs/{kind}:{category.value}/{record.id}/{record.name}"


def location_fields(location: Location) -> tuple[dict, tuple[str, ...]]:
    """
    Serialize a location into catalog fields.

    Returns:
        (fields to set, sub-document names to remove). The sub-document of
        the location's own kind is set (when it has one); every other
        backend's sub-document is listed for removal.
    """
    own = _subfield_for(location.kind)

    set_fields: dict = {"store": location.descriptor}
    if own is not None:
        set_fields[own] = {"path": location.path}

    unset = tuple(name for name in LOCATION_SUBFIELDS if name != own)
    return set_fields, unset


def build_mutation(
    record: FileRecord,
    category: StoreCategory,
    destination_kind: str,
    path: str,
) -> RecordMutation:
    """Catalog update that points a record at its new location."""
    location = Location(kind=str(destination_kind), category=category.value, path=path)
    set_fields, unset = location_fields(location)

    reference = served_path(location.kind, category, record)
    set_fields["url"] = reference
    set_fields["path"] = reference

    return RecordMutation(record_id=record.id, set_fields=set_fields, unset_fields=unset)


def _subfield_for(kind: str) -> str | None:
    try:
        return StoreKind(kind).subfield
    except ValueError:
        return None
