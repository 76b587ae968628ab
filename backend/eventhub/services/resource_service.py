"""
EventHub Backend — Resource Service (Query Layer + Lifecycle Stamper)
======================================================================

What:  The four operations every mutable collection supports (list, create,
       upsert-update, soft-delete) plus the plain listing of read-only
       collections.
How:   One `ResourceService` per collection, built by the router factory.
       Each call receives the request's AsyncSession, touches exactly one
       document (or runs one listing query), and commits its own transaction.
Who:   Called by the route handlers in `eventhub.routes.resources`.

Operation summary:
    list_records      WHERE is_deleted = false ORDER BY created_at DESC,
                      updated_at DESC LIMIT n; lifecycle fields projected out
    list_all          every document of the collection, unfiltered
    create_record     stamps created_at, is_deleted = false; inserts
    update_record     merges payload keys, stamps updated_at; upserts
    soft_delete       flips is_deleted, stamps deleted_at; no upsert

Error Handling:
    SQLAlchemy errors are rolled back and re-raised as DatabaseError (500).
    Malformed ids raise ValidationError (400). Empty listings raise
    EmptyResultError and unmatched writes raise NotFoundError (both 404).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.exceptions import (
    DatabaseError,
    EmptyResultError,
    NotFoundError,
    ValidationError,
)
from eventhub.models.record import Record
from eventhub.resources import Resource
from eventhub.schemas.record import Document, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Keys owned by the server; never taken from a request body
RESERVED_FIELDS = frozenset({"id", "_id", "isDeleted", "createdAt", "updatedAt", "deletedAt"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def strip_reserved_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of `payload` without the server-owned keys."""
    dropped = RESERVED_FIELDS.intersection(payload)
    if dropped:
        logger.debug("Ignoring reserved fields in payload: %s", sorted(dropped))
    return {key: value for key, value in payload.items() if key not in RESERVED_FIELDS}


def parse_record_id(raw_id: str) -> uuid.UUID:
    """
    Parse a path identifier into a record id.

    Raises:
        ValidationError: `raw_id` is not a UUID (→ 400)
    """
    try:
        return uuid.UUID(raw_id)
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(message=f"'{raw_id}' is not a valid id", field="id")


class ResourceService:
    """
    CRUD operations for one collection.

    Attributes:
        resource:  The collection this service serves
        clock:     Source of lifecycle timestamps (UTC); tests pass a fake one

    Stateless apart from those two; safe to share across requests.
    """

    def __init__(self, resource: Resource, clock: Clock = utcnow):
        self.resource = resource
        self.clock = clock

    @property
    def collection(self) -> str:
        return self.resource.collection

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_records(self, db: AsyncSession, limit: int) -> List[Document]:
        """
        Live records, newest first.

        Query plan:
            SELECT * FROM records
            WHERE collection = :c AND is_deleted = false
            ORDER BY created_at DESC, updated_at DESC NULLS LAST
            LIMIT :limit
            → idx_records_listing

        Raises:
            EmptyResultError: nothing matched (→ 404 "No <collection> found")
            DatabaseError: query failed
        """
        query = (
            select(Record)
            .where(Record.collection == self.collection)
            .where(Record.is_deleted.is_(False))
            .order_by(Record.created_at.desc(), Record.updated_at.desc().nulls_last())
            .limit(limit)
        )
        records = await self._fetch(db, query)
        if not records:
            raise EmptyResultError(self.collection)
        return [record.to_document() for record in records]

    async def list_all(self, db: AsyncSession) -> List[Document]:
        """Every stored document of the collection: no filter, sort or limit."""
        query = select(Record).where(Record.collection == self.collection)
        records = await self._fetch(db, query)
        if not records:
            raise EmptyResultError(self.collection)
        return [record.to_document() for record in records]

    async def _fetch(self, db: AsyncSession, query) -> List[Record]:
        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Error fetching %s: %s", self.collection, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Could not retrieve {self.collection}.",
                context={"collection": self.collection, "error_type": type(e).__name__},
            )

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_record(self, db: AsyncSession, payload: Mapping[str, Any]) -> InsertResult:
        """
        Insert a new record.

        The payload is stored as-is (minus reserved keys); the store assigns
        the id and the record gets created_at = now, is_deleted = False.
        """
        record = Record(
            collection=self.collection,
            id=uuid.uuid4(),
            payload=strip_reserved_fields(payload),
            is_deleted=False,
            created_at=self.clock(),
        )
        try:
            db.add(record)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Error creating %s: %s", self.resource.label.lower(), str(e), exc_info=True)
            raise DatabaseError(
                message=f"Failed to create {self.resource.label.lower()}",
                context={"collection": self.collection, "error_type": type(e).__name__},
            )

        logger.info("Created %s record %s", self.collection, record.id)
        return InsertResult(acknowledged=True, inserted_id=str(record.id))

    async def update_record(
        self,
        db: AsyncSession,
        record_id: str,
        payload: Mapping[str, Any],
    ) -> UpdateResult:
        """
        Merge `payload` into the record, creating it if it does not exist.

        Existing record:
            payload keys replace the stored ones, other keys are kept,
            updated_at = now, created_at untouched. Soft-deleted records are
            updated too but stay deleted.
        Missing record (upsert):
            inserted under `record_id` with the supplied fields,
            created_at = updated_at = now, is_deleted = False.

        The insert is `ON CONFLICT DO NOTHING`: when a concurrent request
        creates the same id first, this call merges into that row instead.

        Raises:
            ValidationError: malformed id
            NotFoundError: neither a modification nor an upsert happened
            DatabaseError: store failure
        """
        key = parse_record_id(record_id)
        fields = strip_reserved_fields(payload)
        now = self.clock()

        try:
            record = await db.get(Record, (self.collection, key), with_for_update=True)
            if record is None and await self._insert_if_absent(db, key, fields, now):
                result = UpdateResult(upserted_count=1, upserted_id=str(key))
            else:
                if record is None:
                    # Lost the insert race; the row exists now
                    record = await db.get(
                        Record,
                        (self.collection, key),
                        with_for_update=True,
                        populate_existing=True,
                    )
                if record is None:
                    result = UpdateResult()
                else:
                    # New dict so the JSON column registers the change
                    record.payload = {**(record.payload or {}), **fields}
                    record.updated_at = now
                    result = UpdateResult(matched_count=1, modified_count=1)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Error updating %s %s: %s", self.collection, key, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Failed to update {self.resource.label.lower()}",
                context={"collection": self.collection, "record_id": str(key)},
            )

        if result.modified_count == 0 and result.upserted_count == 0:
            raise NotFoundError(resource=self.resource.label, resource_id=str(key))

        if result.upserted_count:
            logger.info("Upserted %s record %s", self.collection, key)
        else:
            logger.info("Updated %s record %s (%d fields)", self.collection, key, len(fields))
        return result

    async def _insert_if_absent(
        self,
        db: AsyncSession,
        key: uuid.UUID,
        fields: Dict[str, Any],
        now: datetime,
    ) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING; True when this call created the row."""
        if db.get_bind().dialect.name == "postgresql":
            insert = postgresql.insert
        else:
            insert = sqlite.insert

        statement = (
            insert(Record)
            .values(
                collection=self.collection,
                id=key,
                payload=fields,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["collection", "id"])
            .returning(Record.id)
        )
        outcome = await db.execute(statement)
        return outcome.scalar_one_or_none() is not None

    async def soft_delete_record(self, db: AsyncSession, record_id: str) -> UpdateResult:
        """
        Flag a live record as deleted. The row is never removed.

        Raises:
            ValidationError: malformed id
            NotFoundError: no live record with that id (already deleted or
                           never existed)
            DatabaseError: store failure
        """
        key = parse_record_id(record_id)
        statement = (
            update(Record)
            .where(Record.collection == self.collection)
            .where(Record.id == key)
            .where(Record.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=self.clock())
            .execution_options(synchronize_session=False)
        )

        try:
            outcome = await db.execute(statement)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Error deleting %s %s: %s", self.collection, key, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Failed to delete {self.resource.label.lower()}",
                context={"collection": self.collection, "record_id": str(key)},
            )

        if outcome.rowcount == 0:
            raise NotFoundError(resource=self.resource.label, resource_id=str(key))

        logger.info("Soft-deleted %s record %s", self.collection, key)
        return UpdateResult(matched_count=outcome.rowcount, modified_count=outcome.rowcount)
