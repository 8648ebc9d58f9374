"""
Note Repository

Data access layer for Note entities with semantic search capabilities.
Extends BaseRepository with pgvector-specific query methods.

All similarity values are ``1 - cosine_distance`` computed inside PostgreSQL.
Distances are only evaluated between non-zero vectors of equal
dimensionality, so embeddings left behind by a previous provider never
break a query; they are simply invisible until re-embedded.
"""

from collections.abc import Sequence

from sqlalchemy import ColumnElement, and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from neuralmd.models import Note
from neuralmd.repositories.base import BaseRepository

LIKE_ESCAPE = "\\"


def like_pattern(query: str) -> str:
    """Build a substring ILIKE pattern with LIKE wildcards in ``query`` escaped."""
    escaped = (
        query.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _query_similarity(embedding: list[float]) -> ColumnElement[float]:
    # CASE guards <=> against rows of another dimensionality (pgvector raises
    # otherwise) and zero vectors (distance NaN)
    distance = case(
        (
            and_(
                func.vector_dims(Note.embedding) == len(embedding),
                func.vector_norm(Note.embedding) > 0,
            ),
            Note.embedding.cosine_distance(embedding),
        ),
        else_=None,
    )
    return 1 - distance


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note entities with vector search support.

    Inherits standard CRUD from BaseRepository and adds:
        - search_similar: Semantic search via pgvector cosine distance
        - text_search: Case-insensitive substring match on title/content
        - list_recent: Most-recently-updated notes (graph candidates)
        - similarity_pairs: Pairwise similarity over a set of notes
        - list_stale: Notes needing (re-)embedding
        - update_embedding: Targeted embedding updates for the write path
    """

    def __init__(self) -> None:
        super().__init__(Note)

    async def search_similar(
        self,
        session: AsyncSession,
        embedding: list[float],
        *,
        threshold: float,
        limit: int,
        tags: Sequence[str] | None = None,
    ) -> list[tuple[Note, float]]:
        """
        Search notes by vector similarity using cosine distance (pgvector).

        Args:
            session: Database session.
            embedding: Query vector. Only notes embedded with the same
                dimensionality are compared.
            threshold: Exclusive lower bound on similarity.
            limit: Maximum number of results.
            tags: If given, notes must share at least one of these tags.

        Returns:
            (note, similarity) pairs, highest similarity first, ties broken
            by most recent update.
        """
        similarity = _query_similarity(embedding)

        stmt = (
            select(Note, similarity.label("similarity"))
            .where(Note.embedding.isnot(None))  # Exclude notes pending embedding
            .where(similarity > threshold)
            .order_by(similarity.desc(), Note.updated_at.desc(), Note.id)
            .limit(limit)
        )
        if tags:
            stmt = stmt.where(Note.tags.overlap(list(tags)))

        result = await session.execute(stmt)
        return [(row[0], float(row[1])) for row in result.all()]

    async def text_search(
        self,
        session: AsyncSession,
        query: str,
        *,
        limit: int,
        tags: Sequence[str] | None = None,
    ) -> Sequence[Note]:
        """
        Lexical search: case-insensitive substring match on title OR content.

        Returns:
            Matching notes, most recently updated first.
        """
        pattern = like_pattern(query)
        stmt = (
            select(Note)
            .where(
                or_(
                    Note.title.ilike(pattern, escape=LIKE_ESCAPE),
                    Note.content.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
            .order_by(Note.updated_at.desc(), Note.id)
            .limit(limit)
        )
        if tags:
            stmt = stmt.where(Note.tags.overlap(list(tags)))

        result = await session.execute(stmt)
        return result.scalars().all()

    async def list_recent(self, session: AsyncSession, limit: int) -> Sequence[Note]:
        """Get the most recently updated notes, newest first."""
        stmt = select(Note).order_by(Note.updated_at.desc(), Note.id).limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def similarity_pairs(
        self,
        session: AsyncSession,
        note_ids: Sequence[str],
        *,
        threshold: float,
        limit: int,
    ) -> list[tuple[str, str, float]]:
        """
        Compute similarity for every unordered pair within ``note_ids``.

        Single self-join round trip. Each pair appears once with the
        lexically smaller id first; pairs whose embeddings are NULL, zero or of
        different dimensionality are skipped.

        Args:
            session: Database session.
            note_ids: Candidate note ids.
            threshold: Exclusive lower bound on similarity.
            limit: Maximum number of pairs returned.

        Returns:
            (id_a, id_b, similarity) tuples, highest similarity first.
        """
        if len(note_ids) < 2:
            return []

        left = aliased(Note, name="n1")
        right = aliased(Note, name="n2")
        distance = case(
            (
                and_(
                    func.vector_dims(left.embedding)
                    == func.vector_dims(right.embedding),
                    func.vector_norm(left.embedding) > 0,
                    func.vector_norm(right.embedding) > 0,
                ),
                left.embedding.cosine_distance(right.embedding),
            ),
            else_=None,
        )
        similarity = 1 - distance

        stmt = (
            select(left.id, right.id, similarity.label("similarity"))
            .select_from(left)
            .join(right, left.id < right.id)
            .where(
                left.id.in_(note_ids),
                right.id.in_(note_ids),
                left.embedding.isnot(None),
                right.embedding.isnot(None),
                similarity > threshold,
            )
            .order_by(similarity.desc(), left.id, right.id)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [(row[0], row[1], float(row[2])) for row in result.all()]

    async def list_stale(
        self,
        session: AsyncSession,
        dimensions: int,
        limit: int = 100,
    ) -> Sequence[Note]:
        """
        Get notes that have no embedding or one of a different dimensionality.

        Oldest updates first so a batch loop makes steady progress.
        """
        stmt = (
            select(Note)
            .where(
                or_(
                    Note.embedding.is_(None),
                    func.vector_dims(Note.embedding) != dimensions,
                )
            )
            .order_by(Note.updated_at, Note.id)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def update_embedding(
        self,
        session: AsyncSession,
        note_id: str,
        embedding: list[float],
    ) -> None:
        """
        Update only the embedding field of a note.

        Keeps ``updated_at`` unchanged: re-embedding is not an edit and
        must not reorder recency-sorted results.

        Args:
            session: Database session.
            note_id: Note ID to update.
            embedding: New embedding vector.
        """
        stmt = (
            update(Note)
            .where(Note.id == note_id)
            .values(embedding=embedding, updated_at=Note.updated_at)
        )
        await session.execute(stmt)
        await session.commit()


# Module-level instance for function-based API
note_repository = NoteRepository()
