"""
Note Model

Core entity for storing markdown notes with vector embeddings for semantic search.
Uses pgvector extension for efficient similarity queries.
"""

import enum
import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import Enum, String, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from neuralmd.models.base import Base, TimestampMixin

TITLE_MAX_LENGTH = 500


class NoteSource(enum.StrEnum):
    """Who wrote the note."""

    HUMAN = "human"
    AI = "ai"
    IMPORT = "import"


def _new_note_id() -> str:
    return uuid.uuid4().hex


class Note(Base, TimestampMixin):
    """
    Note entity with vector embedding support.

    Attributes:
        id: Opaque text primary key (UUID4 hex), compared lexically for edge ordering.
        title: Note title (max 500 chars).
        content: Markdown body, no length limit.
        tags: Free-form labels; duplicates are not rejected here.
        source: human, ai or import.
        source_ref: Optional pointer to where the note came from.
        embedding: Vector of the active provider's dimensionality, NULL when
            the provider was disabled or failed at write time.
    """

    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_note_id)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH))
    content: Mapped[str] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String), default=list, server_default="{}"
    )
    source: Mapped[NoteSource] = mapped_column(
        Enum(
            NoteSource,
            name="note_source",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=NoteSource.HUMAN,
    )
    source_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    # No fixed dimension: vectors from different providers may coexist,
    # queries filter on vector_dims() to compare like with like
    embedding: Mapped[list[float] | None] = mapped_column(Vector(), nullable=True)

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, title='{self.title[:20]}...')>"
