"""Create records table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `records` table holding the documents of every collection.
How:   Composite primary key (collection, id), JSONB payload, typed lifecycle
       columns, and the listing index.

Rollback: downgrade() drops the table entirely (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the records table and the index behind GET /<collection>."""
    op.create_table(
        "records",
        sa.Column(
            "collection",
            sa.String(64),
            nullable=False,
            comment="Collection name, e.g. events",
        ),
        sa.Column(
            "id",
            sa.Uuid(),
            nullable=False,
            comment="Opaque identifier, unique within the collection",
        ),
        sa.Column(
            "payload",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
            comment="Caller-supplied fields",
        ),
        sa.Column(
            "is_deleted",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Set once on insert, never modified",
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "deleted_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Set when is_deleted flips to true",
        ),
        sa.PrimaryKeyConstraint("collection", "id"),
    )

    # WHERE collection = :c AND is_deleted = false ORDER BY created_at DESC
    op.create_index(
        "idx_records_listing",
        "records",
        ["collection", "is_deleted", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """Drop the records table. Destructive: all documents are lost."""
    op.drop_index("idx_records_listing", table_name="records")
    op.drop_table("records")
