"""
EventHub Backend — Resource Service Unit Tests
===============================================

What:  Tests for ResourceService against a real (in-memory SQLite) store.
How:   Services are called directly with a session and a FakeClock; store
       failures use the mock session fixture.

What we test:
    ✅ Listing order (createdAt desc, updatedAt desc) and limit
    ✅ Soft-deleted records never listed
    ✅ Lifecycle fields projected out, reserved payload keys ignored
    ✅ Merge-update keeps other fields and createdAt, bumps updatedAt
    ✅ Upsert creates a record under the requested id
    ✅ Second soft-delete reports NotFound
    ✅ Malformed ids and store failures map to the right exceptions
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from eventhub.exceptions import (
    DatabaseError,
    EmptyResultError,
    NotFoundError,
    ValidationError,
)
from eventhub.resources import Resource
from eventhub.services.resource_service import (
    ResourceService,
    parse_record_id,
    strip_reserved_fields,
)
from tests.conftest import FakeClock, fetch_record, naive, seed_record

EVENTS = Resource(collection="events", label="Event")


@pytest.fixture
def service(clock):
    return ResourceService(EVENTS, clock=clock)


async def create(service, database, payload):
    async with database.session_factory() as session:
        result = await service.create_record(session, payload)
    return uuid.UUID(result.inserted_id)


class TestHelpers:
    """Tests for the module-level payload and id helpers."""

    def test_strip_reserved_fields(self):
        payload = {
            "title": "Gala",
            "id": "x",
            "_id": "y",
            "isDeleted": True,
            "createdAt": "2020-01-01",
            "updatedAt": "2020-01-01",
            "deletedAt": "2020-01-01",
        }
        assert strip_reserved_fields(payload) == {"title": "Gala"}

    def test_strip_reserved_fields_leaves_input_untouched(self):
        payload = {"title": "Gala", "isDeleted": True}
        strip_reserved_fields(payload)
        assert payload == {"title": "Gala", "isDeleted": True}

    def test_parse_record_id_valid(self):
        value = uuid.uuid4()
        assert parse_record_id(str(value)) == value

    def test_parse_record_id_malformed(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_record_id("64f1c0ffee")
        assert exc_info.value.field == "id"


class TestListRecords:
    """Tests for list_records (filter, sort, limit, projection)."""

    @pytest.mark.asyncio
    async def test_empty_collection_raises_empty_result(self, service, database):
        async with database.session_factory() as session:
            with pytest.raises(EmptyResultError) as exc_info:
                await service.list_records(session, limit=10)
        assert exc_info.value.message == "No events found"

    @pytest.mark.asyncio
    async def test_newest_first(self, service, database):
        for title in ("first", "second", "third"):
            await create(service, database, {"title": title})

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=10)

        assert [doc["title"] for doc in documents] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_respects_limit(self, service, database):
        for i in range(5):
            await create(service, database, {"n": i})

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=2)

        assert [doc["n"] for doc in documents] == [4, 3]

    @pytest.mark.asyncio
    async def test_ties_broken_by_updated_at(self, service, database):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await seed_record(database, "events", {"title": "never updated"}, created_at=created)
        await seed_record(
            database, "events", {"title": "updated early"},
            created_at=created, updated_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
        )
        await seed_record(
            database, "events", {"title": "updated late"},
            created_at=created, updated_at=datetime(2024, 1, 3, tzinfo=timezone.utc),
        )

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=10)

        assert [doc["title"] for doc in documents] == [
            "updated late",
            "updated early",
            "never updated",
        ]

    @pytest.mark.asyncio
    async def test_projection_strips_lifecycle_fields(self, service, database):
        record_id = await create(service, database, {"title": "Gala", "city": "Paris"})

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=10)

        assert documents == [{"title": "Gala", "city": "Paris", "id": str(record_id)}]

    @pytest.mark.asyncio
    async def test_soft_deleted_never_listed(self, service, database):
        keep = await create(service, database, {"title": "keep"})
        drop = await create(service, database, {"title": "drop"})

        async with database.session_factory() as session:
            await service.soft_delete_record(session, str(drop))

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=10)

        assert [doc["id"] for doc in documents] == [str(keep)]

    @pytest.mark.asyncio
    async def test_other_collections_not_listed(self, service, database, clock):
        services = ResourceService(Resource(collection="services", label="Service"), clock=clock)
        await create(services, database, {"title": "catering"})

        async with database.session_factory() as session:
            with pytest.raises(EmptyResultError):
                await service.list_records(session, limit=10)

    @pytest.mark.asyncio
    async def test_store_failure_raises_database_error(self, service, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(DatabaseError, match="Could not retrieve events"):
            await service.list_records(mock_db_session, limit=6)


class TestListAll:
    """Tests for the read-only listing."""

    @pytest.mark.asyncio
    async def test_returns_everything_unfiltered(self, database):
        pricing = ResourceService(Resource(collection="pricing", label="Pricing plan", read_only=True))
        await seed_record(database, "pricing", {"plan": "basic", "price": 100})
        await seed_record(database, "pricing", {"plan": "hidden"}, is_deleted=True)

        async with database.session_factory() as session:
            documents = await pricing.list_all(session)

        assert sorted(doc["plan"] for doc in documents) == ["basic", "hidden"]
        assert all(set(doc) <= {"plan", "price", "id"} for doc in documents)

    @pytest.mark.asyncio
    async def test_empty_raises_empty_result(self, database):
        reviews = ResourceService(Resource(collection="reviews", label="Review", read_only=True))
        async with database.session_factory() as session:
            with pytest.raises(EmptyResultError, match="No reviews found"):
                await reviews.list_all(session)

    @pytest.mark.asyncio
    async def test_store_failure_raises_database_error(self, mock_db_session):
        featured = ResourceService(Resource(collection="featured", label="Featured item", read_only=True))
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(DatabaseError):
            await featured.list_all(mock_db_session)


class TestCreateRecord:
    """Tests for create_record stamping and acknowledgement."""

    @pytest.mark.asyncio
    async def test_stamps_lifecycle_fields(self, service, database, clock):
        record_id = await create(service, database, {"title": "Gala"})

        record = await fetch_record(database, "events", record_id)
        assert record.payload == {"title": "Gala"}
        assert record.is_deleted is False
        assert naive(record.created_at) == naive(clock.current)
        assert record.updated_at is None
        assert record.deleted_at is None

    @pytest.mark.asyncio
    async def test_acknowledges_insert(self, service, database):
        async with database.session_factory() as session:
            result = await service.create_record(session, {"title": "Gala"})
        assert result.acknowledged is True
        assert uuid.UUID(result.inserted_id)

    @pytest.mark.asyncio
    async def test_reserved_fields_ignored(self, service, database):
        record_id = await create(
            service, database, {"title": "Gala", "isDeleted": True, "id": "forged"}
        )

        record = await fetch_record(database, "events", record_id)
        assert record.is_deleted is False
        assert record.payload == {"title": "Gala"}

    @pytest.mark.asyncio
    async def test_store_failure_raises_database_error(self, service, mock_db_session):
        mock_db_session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))

        with pytest.raises(DatabaseError):
            await service.create_record(mock_db_session, {"title": "Gala"})
        mock_db_session.rollback.assert_awaited_once()


class TestUpdateRecord:
    """Tests for merge-update and upsert."""

    @pytest.mark.asyncio
    async def test_merge_changes_only_supplied_fields(self, service, database, clock):
        record_id = await create(service, database, {"title": "Gala", "city": "Paris"})
        before = await fetch_record(database, "events", record_id)

        async with database.session_factory() as session:
            result = await service.update_record(session, str(record_id), {"city": "Rome"})

        after = await fetch_record(database, "events", record_id)
        assert result.matched_count == 1
        assert result.modified_count == 1
        assert result.upserted_count == 0
        assert after.payload == {"title": "Gala", "city": "Rome"}
        assert naive(after.created_at) == naive(before.created_at)
        assert naive(after.updated_at) == naive(clock.current)

    @pytest.mark.asyncio
    async def test_second_update_bumps_updated_at(self, service, database):
        record_id = await create(service, database, {"title": "Gala"})

        async with database.session_factory() as session:
            await service.update_record(session, str(record_id), {"seats": 10})
        first = await fetch_record(database, "events", record_id)

        async with database.session_factory() as session:
            await service.update_record(session, str(record_id), {"seats": 12})
        second = await fetch_record(database, "events", record_id)

        assert naive(second.updated_at) > naive(first.updated_at)
        assert second.payload == {"title": "Gala", "seats": 12}

    @pytest.mark.asyncio
    async def test_upsert_creates_record_with_requested_id(self, service, database):
        record_id = uuid.uuid4()

        async with database.session_factory() as session:
            result = await service.update_record(session, str(record_id), {"title": "Launch"})

        assert result.upserted_count == 1
        assert result.upserted_id == str(record_id)
        assert result.matched_count == 0

        record = await fetch_record(database, "events", record_id)
        assert record.payload == {"title": "Launch"}
        assert record.is_deleted is False
        assert record.created_at is not None

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=10)
        assert documents == [{"title": "Launch", "id": str(record_id)}]

    @pytest.mark.asyncio
    async def test_upsert_with_two_new_ids_creates_two_records(self, service, database):
        for _ in range(2):
            async with database.session_factory() as session:
                await service.update_record(session, str(uuid.uuid4()), {"title": "Launch"})

        async with database.session_factory() as session:
            documents = await service.list_records(session, limit=10)
        assert len(documents) == 2

    @pytest.mark.asyncio
    async def test_lost_insert_race_merges_into_existing_row(self, service, database):
        record_id = await create(service, database, {"title": "Gala"})

        async with database.session_factory() as session:
            real_get = session.get
            lookups = []

            async def get_missing_first(*args, **kwargs):
                # First lookup runs before the competing insert commits
                lookups.append(kwargs)
                if len(lookups) == 1:
                    return None
                return await real_get(*args, **kwargs)

            session.get = get_missing_first
            result = await service.update_record(session, str(record_id), {"city": "Rome"})

        assert len(lookups) == 2
        assert result.matched_count == 1
        assert result.upserted_count == 0
        record = await fetch_record(database, "events", record_id)
        assert record.payload == {"title": "Gala", "city": "Rome"}

    @pytest.mark.asyncio
    async def test_update_cannot_undelete(self, service, database):
        record_id = await create(service, database, {"title": "Gala"})
        async with database.session_factory() as session:
            await service.soft_delete_record(session, str(record_id))

        async with database.session_factory() as session:
            await service.update_record(session, str(record_id), {"isDeleted": False, "title": "Gala 2"})

        record = await fetch_record(database, "events", record_id)
        assert record.is_deleted is True
        assert record.payload == {"title": "Gala 2"}

    @pytest.mark.asyncio
    async def test_malformed_id(self, service, mock_db_session):
        with pytest.raises(ValidationError):
            await service.update_record(mock_db_session, "not-an-id", {"title": "x"})
        mock_db_session.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_raises_database_error(self, service, mock_db_session):
        mock_db_session.get.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(DatabaseError):
            await service.update_record(mock_db_session, str(uuid.uuid4()), {"title": "x"})
        mock_db_session.rollback.assert_awaited_once()


class TestSoftDeleteRecord:
    """Tests for soft_delete_record."""

    @pytest.mark.asyncio
    async def test_flags_and_stamps(self, service, database, clock):
        record_id = await create(service, database, {"title": "Gala"})

        async with database.session_factory() as session:
            result = await service.soft_delete_record(session, str(record_id))

        record = await fetch_record(database, "events", record_id)
        assert result.matched_count == 1
        assert result.modified_count == 1
        assert record.is_deleted is True
        assert naive(record.deleted_at) == naive(clock.current)
        assert record.payload == {"title": "Gala"}

    @pytest.mark.asyncio
    async def test_second_delete_reports_not_found(self, service, database):
        record_id = await create(service, database, {"title": "Gala"})
        async with database.session_factory() as session:
            await service.soft_delete_record(session, str(record_id))

        async with database.session_factory() as session:
            with pytest.raises(NotFoundError, match="Event not found"):
                await service.soft_delete_record(session, str(record_id))

    @pytest.mark.asyncio
    async def test_missing_record_not_upserted(self, service, database):
        record_id = uuid.uuid4()
        async with database.session_factory() as session:
            with pytest.raises(NotFoundError):
                await service.soft_delete_record(session, str(record_id))

        assert await fetch_record(database, "events", record_id) is None

    @pytest.mark.asyncio
    async def test_uses_clock(self, database):
        clock = FakeClock(start=datetime(2030, 6, 1, tzinfo=timezone.utc))
        service = ResourceService(EVENTS, clock=clock)
        record_id = await create(service, database, {"title": "Gala"})

        async with database.session_factory() as session:
            await service.soft_delete_record(session, str(record_id))

        record = await fetch_record(database, "events", record_id)
        assert naive(record.deleted_at) == datetime(2030, 6, 1, 0, 0, 2)

    @pytest.mark.asyncio
    async def test_store_failure_raises_database_error(self, service, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("UPDATE", {}, Exception("gone"))

        with pytest.raises(DatabaseError, match="Failed to delete event"):
            await service.soft_delete_record(mock_db_session, str(uuid.uuid4()))
        mock_db_session.rollback.assert_awaited_once()
