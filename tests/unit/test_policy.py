"""
Tests for destination path and catalog mutation policy.
"""

import pytest

from filestore_migrator import policy
from filestore_migrator.core.types import LOCATION_SUBFIELDS, Location, StoreCategory, StoreKind


class TestObjectPath:
    def test_uploads_path_includes_room_and_user(self, make_record):
        record = make_record("f1", room_id="r1", user_id="u1")

        path = policy.object_path(record, StoreCategory.UPLOADS, StoreKind.AMAZON_S3, "ns1")

        assert path == "ns1/uploads/r1/u1/f1"

    def test_uploads_empty_room_and_user_use_sentinel(self, make_record):
        record = make_record("f1", room_id="", user_id="")

        path = policy.object_path(record, StoreCategory.UPLOADS, StoreKind.GOOGLE_CLOUD_STORAGE, "ns1")

        assert path == "ns1/uploads/undefined/undefined/f1"

    def test_avatars_with_empty_user(self, make_record):
        record = make_record("a1", user_id="")

        path = policy.object_path(record, StoreCategory.AVATARS, StoreKind.AMAZON_S3, "ns1")

        assert path == "ns1/avatars/undefined"

    def test_avatars_ignore_room(self, make_record):
        record = make_record("a1", user_id="u9", room_id="r1")

        path = policy.object_path(record, StoreCategory.AVATARS, StoreKind.GRIDFS, "ns1")

        assert path == "ns1/avatars/u9"

    @pytest.mark.parametrize("category", list(StoreCategory))
    def test_filesystem_destination_collapses_to_id(self, make_record, category):
        record = make_record("f1", room_id="r1", user_id="u1")

        path = policy.object_path(record, category, StoreKind.FILESYSTEM, "ns1")

        assert path == "f1"


class TestLocationFields:
    def test_s3_sets_own_subfield_and_unsets_google(self):
        set_fields, unset = policy.location_fields(
            Location(kind="AmazonS3", category="Uploads", path="ns1/uploads/r/u/f1")
        )

        assert set_fields == {"store": "AmazonS3:Uploads", "AmazonS3": {"path": "ns1/uploads/r/u/f1"}}
        assert unset == ("GoogleStorage",)

    def test_google_sets_google_storage_subfield(self):
        set_fields, unset = policy.location_fields(
            Location(kind="GoogleCloudStorage", category="Avatars", path="ns1/avatars/u1")
        )

        assert set_fields["GoogleStorage"] == {"path": "ns1/avatars/u1"}
        assert set_fields["store"] == "GoogleCloudStorage:Avatars"
        assert unset == ("AmazonS3",)

    @pytest.mark.parametrize("kind", ["FileSystem", "GridFS"])
    def test_kinds_without_subfield_unset_every_subfield(self, kind):
        set_fields, unset = policy.location_fields(Location(kind=kind, category="Uploads", path="f1"))

        assert set_fields == {"store": f"{kind}:Uploads"}
        assert set(unset) == set(LOCATION_SUBFIELDS)


class TestBuildMutation:
    def test_mutation_rewrites_served_path(self, make_record):
        record = make_record("f1", name="photo.png")

        mutation = policy.build_mutation(record, StoreCategory.UPLOADS, StoreKind.AMAZON_S3, "ns1/uploads/r/u/f1")

        assert mutation.record_id == "f1"
        assert mutation.set_fields["url"] == "/ufs/AmazonS3:Uploads/f1/photo.png"
        assert mutation.set_fields["path"] == "/ufs/AmazonS3:Uploads/f1/photo.png"
        assert mutation.set_fields["store"] == "AmazonS3:Uploads"

    @pytest.mark.parametrize("kind", list(StoreKind))
    def test_exactly_one_subfield_remains(self, make_record, kind):
        record = make_record("f1")
        doc = record.to_document()
        doc["AmazonS3"] = {"path": "old"}
        doc["GoogleStorage"] = {"path": "old"}

        mutation = policy.build_mutation(record, StoreCategory.UPLOADS, kind, "dest")
        doc.update(mutation.set_fields)
        for name in mutation.unset_fields:
            doc.pop(name, None)

        remaining = [name for name in LOCATION_SUBFIELDS if name in doc]
        expected = [kind.subfield] if kind.subfield else []
        assert remaining == expected

    def test_sentinels_are_not_persisted(self, make_record):
        record = make_record("f1", room_id="", user_id="")

        mutation = policy.build_mutation(record, StoreCategory.UPLOADS, StoreKind.AMAZON_S3, "p")

        assert "rid" not in mutation.set_fields
        assert "userId" not in mutation.set_fields
