"""
EventHub Backend — Record SQLAlchemy Model
===========================================

What:  ORM model for the `records` table, which stores the documents of
       every collection.
How:   One row per document. The caller's JSON object lives in `payload`;
       the lifecycle fields are typed columns next to it and are never
       written into the payload.

Table Design:
    - (collection, id) primary key: ids are unique per collection, the same
      way separate document collections behave
    - payload: JSON (JSONB on PostgreSQL), schema-less
    - is_deleted / created_at / updated_at / deleted_at: lifecycle columns,
      nullable timestamps because read-only collections carry none

    Index on (collection, is_deleted, created_at DESC) serves the listing
    query: WHERE collection = :c AND is_deleted = false ORDER BY created_at DESC
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Uuid, false
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from eventhub.database import Base


class Record(Base):
    """
    One document in a named collection.

    Lifecycle:
        1. Inserted by create (created_at stamped, is_deleted = False)
           or by an upserting update
        2. Merged by update (payload keys replaced, updated_at stamped)
        3. Soft-deleted (is_deleted = True, deleted_at stamped); the row stays
    """

    __tablename__ = "records"

    collection: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Collection name, e.g. events",
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Opaque identifier, unique within the collection",
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
        comment="Caller-supplied fields",
    )

    # ── Lifecycle ─────────────────────────────────────────────────────────
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set once on insert, never modified",
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set when is_deleted flips to true",
    )

    __table_args__ = (
        Index("idx_records_listing", "collection", "is_deleted", created_at.desc()),
    )

    def to_document(self) -> Dict[str, Any]:
        """
        Outgoing JSON document: the payload plus `id`.

        Lifecycle columns are never part of the result.
        """
        document = dict(self.payload or {})
        document["id"] = str(self.id)
        return document

    def __repr__(self) -> str:
        return (
            f"<Record(collection='{self.collection}', id={self.id}, "
            f"is_deleted={self.is_deleted})>"
        )
