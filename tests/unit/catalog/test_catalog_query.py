"""
Tests for CandidateQuery and the in-memory catalog.
"""

from datetime import UTC, datetime

import pytest

from filestore_migrator.catalog import CandidateQuery, InMemoryCatalog
from filestore_migrator.core.exceptions import CatalogError, NotFoundError
from filestore_migrator.core.types import Location, StoreCategory


class TestCandidateQuery:
    def test_filter_by_source_kind(self):
        query = CandidateQuery(category=StoreCategory.UPLOADS, source_kind="GridFS")

        assert query.to_filter() == {"store": "GridFS:Uploads"}

    def test_filter_with_offset(self):
        offset = datetime(2024, 1, 1, tzinfo=UTC)
        query = CandidateQuery(category=StoreCategory.AVATARS, source_kind="AmazonS3", offset=offset)

        assert query.to_filter() == {"store": "AmazonS3:Avatars", "uploadedAt": {"$gte": offset}}

    def test_filter_excluding_destination(self):
        query = CandidateQuery(category=StoreCategory.UPLOADS, exclude_kind="AmazonS3")

        assert query.to_filter() == {
            "store": {"$regex": "^[^:]+:Uploads$", "$ne": "AmazonS3:Uploads"},
        }

    @pytest.mark.parametrize(
        ("doc", "expected"),
        [
            ({"store": "GridFS:Uploads"}, True),
            ({"store": "GridFS:Avatars"}, False),
            ({"store": "AmazonS3:Uploads"}, False),
            ({}, False),
        ],
    )
    def test_matches_source_kind(self, doc, expected):
        query = CandidateQuery(category=StoreCategory.UPLOADS, source_kind="GridFS")

        assert query.matches(doc) is expected

    def test_offset_is_inclusive(self):
        offset = datetime(2024, 1, 2, tzinfo=UTC)
        query = CandidateQuery(category=StoreCategory.UPLOADS, source_kind="GridFS", offset=offset)

        assert query.matches({"store": "GridFS:Uploads", "uploadedAt": offset})
        assert query.matches({"store": "GridFS:Uploads", "uploadedAt": datetime(2024, 1, 2)})
        assert not query.matches({"store": "GridFS:Uploads", "uploadedAt": datetime(2024, 1, 1, tzinfo=UTC)})
        assert not query.matches({"store": "GridFS:Uploads"})


class TestInMemoryCatalog:
    @pytest.mark.asyncio
    async def test_read_namespace(self, catalog):
        assert await catalog.read_namespace() == "ns1"

    @pytest.mark.asyncio
    async def test_missing_namespace(self):
        with pytest.raises(NotFoundError, match="uniqueID"):
            await InMemoryCatalog().read_namespace()

    @pytest.mark.asyncio
    async def test_candidates_sorted_by_upload_time(self, catalog, make_record):
        catalog.add(make_record("late", index=5))
        catalog.add(make_record("early", index=1))
        catalog.add(make_record("s3", index=0, location=Location(kind="AmazonS3", category="Uploads")))

        records = await catalog.find_candidates(
            CandidateQuery(category=StoreCategory.UPLOADS, source_kind="GridFS")
        )

        assert [r.id for r in records] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_mixed_naive_and_aware_upload_times(self, catalog, make_record):
        for record_id, uploaded_at in [
            ("aware-late", datetime(2024, 3, 1, tzinfo=UTC)),
            ("naive-middle", datetime(2024, 2, 1)),
            ("no-time", None),
            ("aware-early", datetime(2024, 1, 1, tzinfo=UTC)),
        ]:
            doc = make_record(record_id).to_document()
            doc["uploadedAt"] = uploaded_at
            catalog.add(doc)

        records = await catalog.find_candidates(
            CandidateQuery(category=StoreCategory.UPLOADS, source_kind="GridFS")
        )

        assert [r.id for r in records] == ["aware-early", "naive-middle", "aware-late", "no-time"]

    @pytest.mark.asyncio
    async def test_apply_mutation(self, catalog, make_record):
        record = make_record("f1")
        doc = record.to_document()
        doc["GoogleStorage"] = {"path": "old"}
        catalog.add(doc)

        await catalog.apply_mutation(
            StoreCategory.UPLOADS,
            "f1",
            {"store": "AmazonS3:Uploads", "AmazonS3": {"path": "new"}},
            ("GoogleStorage",),
        )

        stored = catalog.get("f1")
        assert stored["store"] == "AmazonS3:Uploads"
        assert stored["AmazonS3"] == {"path": "new"}
        assert "GoogleStorage" not in stored
        assert catalog.mutations == [
            ("f1", {"store": "AmazonS3:Uploads", "AmazonS3": {"path": "new"}}, ("GoogleStorage",))
        ]

    @pytest.mark.asyncio
    async def test_apply_mutation_unknown_record(self, catalog):
        with pytest.raises(CatalogError, match="No record"):
            await catalog.apply_mutation(StoreCategory.UPLOADS, "ghost", {"store": "x"})
