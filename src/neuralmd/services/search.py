"""
Search Service

Semantic note search with lexical fallback.

Flow:
    query → EmbeddingService → NoteRepository.search_similar → ranked hits

Graceful degradation: when embeddings are disabled, or the query cannot be
embedded (provider down, timeout), the same call runs a case-insensitive
substring search instead. Callers never see an embedding failure.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from neuralmd.models import Note
from neuralmd.repositories.notes import NoteRepository, note_repository
from neuralmd.services.embeddings import EmbeddingService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_THRESHOLD = 0.3

SearchType = Literal["semantic", "text"]


@dataclass
class SearchHit:
    """
    One search result.

    Attributes:
        note: The matching note.
        similarity: ``1 - cosine_distance`` to the query, None for text matches.
    """

    note: Note
    similarity: float | None = None


@dataclass
class SearchResults:
    """Ranked hits plus which strategy produced them."""

    query: str
    search_type: SearchType
    hits: list[SearchHit] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.hits)


class SearchService:
    """
    Similarity search engine over the note store.

    Usage::

        service = SearchService(embedding_service)
        results = await service.search(session, "deep learning", limit=5)
        for hit in results.hits:
            print(hit.note.title, hit.similarity)
    """

    def __init__(
        self,
        embeddings: EmbeddingService,
        repository: NoteRepository | None = None,
    ) -> None:
        self._embeddings = embeddings
        self._repository = repository or note_repository

    async def search(
        self,
        session: AsyncSession,
        query: str,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
        tags: Sequence[str] | None = None,
    ) -> SearchResults:
        """
        Rank notes by semantic similarity to ``query``.

        Args:
            session: Active async database session.
            query: Non-empty search text (validated upstream).
            limit: Maximum number of hits, 1..100.
            threshold: Hits must have similarity strictly above this, 0..1.
            tags: Optional tag filter (any-of).

        Returns:
            SearchResults ordered by similarity (desc), then most recent
            update. Falls back to text search when no query vector is
            available.
        """
        _check_bounds(limit, threshold)

        if not self._embeddings.enabled:
            return await self.text_search(session, query, limit=limit, tags=tags)

        query_vector = await self._embeddings.embed(query)
        if query_vector is None:
            logger.warning(
                "Query embedding unavailable, falling back to text search: '%s'",
                query[:50],
            )
            return await self.text_search(session, query, limit=limit, tags=tags)

        rows = await self._repository.search_similar(
            session,
            query_vector,
            threshold=threshold,
            limit=limit,
            tags=tags,
        )

        # Store order is final; NaN scores from degenerate rows fail the comparison
        hits = [
            SearchHit(note=note, similarity=score)
            for note, score in rows
            if score > threshold
        ]

        logger.info(
            "Semantic search '%s': %d hits (threshold=%.2f)",
            query[:50],
            len(hits[:limit]),
            threshold,
        )
        return SearchResults(query=query, search_type="semantic", hits=hits[:limit])

    async def text_search(
        self,
        session: AsyncSession,
        query: str,
        limit: int = DEFAULT_LIMIT,
        tags: Sequence[str] | None = None,
    ) -> SearchResults:
        """
        Case-insensitive substring search over title OR content.

        Returns:
            SearchResults ordered by most recent update, every similarity None.
        """
        notes = await self._repository.text_search(
            session, query, limit=limit, tags=tags
        )
        hits = [SearchHit(note=note) for note in notes[:limit]]
        return SearchResults(query=query, search_type="text", hits=hits)


def _check_bounds(limit: int, threshold: float) -> None:
    if not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
