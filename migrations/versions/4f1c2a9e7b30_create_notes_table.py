"""create notes table

Revision ID: 4f1c2a9e7b30
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects.postgresql import ARRAY

# revision identifiers, used by Alembic.
revision: str = "4f1c2a9e7b30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the notes table with a dimensionless vector column."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "notes",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "tags",
            ARRAY(sa.String()),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column(
            "source",
            sa.Enum(
                "human",
                "ai",
                "import",
                name="note_source",
                native_enum=False,
            ),
            nullable=False,
            server_default="human",
        ),
        sa.Column("source_ref", sa.String(), nullable=True),
        # No fixed dimension: providers of different sizes may coexist
        sa.Column("embedding", Vector(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_updated_at", "notes", ["updated_at"])
    # Tag overlap filter (&&)
    op.execute("CREATE INDEX ix_notes_tags_gin ON notes USING gin (tags)")


def downgrade() -> None:
    """Drop the notes table."""
    op.execute("DROP INDEX IF EXISTS ix_notes_tags_gin")
    op.drop_index("ix_notes_updated_at", table_name="notes")
    op.drop_table("notes")
