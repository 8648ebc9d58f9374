"""
Note Indexing

Write-path glue between the CRUD layer and the embedding service.

A note is embedded from ``"{title}\\n\\n{content}"`` when created and again
whenever its title or content changes; tag-only edits keep the stored
vector. A None embedding is not an error: the note is stored without one
and stays out of semantic results until a later successful re-embed.
"""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from neuralmd.models import Note
from neuralmd.repositories.notes import NoteRepository, note_repository
from neuralmd.services.embeddings import EmbeddingService

logger = logging.getLogger(__name__)

EMBEDDED_FIELDS = frozenset({"title", "content"})
REINDEX_BATCH_SIZE = 32


def embedding_text(title: str, content: str) -> str:
    """Text submitted to the provider for a note."""
    return f"{title}\n\n{content}"


def needs_reindex(changed_fields: Iterable[str]) -> bool:
    """True if an update touching ``changed_fields`` invalidates the embedding."""
    return not EMBEDDED_FIELDS.isdisjoint(changed_fields)


class NoteIndexer:
    """Computes note embeddings and writes them back to the store."""

    def __init__(
        self,
        embeddings: EmbeddingService,
        repository: NoteRepository | None = None,
    ) -> None:
        self._embeddings = embeddings
        self._repository = repository or note_repository

    async def index_note(self, session: AsyncSession, note: Note) -> bool:
        """
        Embed a note and store the vector.

        Returns:
            True if an embedding was stored, False if generation yielded None.
        """
        vector = await self._embeddings.embed(embedding_text(note.title, note.content))
        if vector is None:
            logger.warning("Note %s stored without embedding", note.id)
            return False

        await self._repository.update_embedding(session, note.id, vector)
        note.embedding = vector
        logger.info("Embedding generated for note %s", note.id)
        return True

    async def index_note_by_id(self, session: AsyncSession, note_id: str) -> bool:
        """
        Background-task form of ``index_note``.

        Returns:
            False if the note no longer exists or could not be embedded.
        """
        note = await self._repository.get_by_id(session, note_id)
        if note is None:
            logger.warning("Note %s not found for embedding", note_id)
            return False
        return await self.index_note(session, note)

    async def reindex_stale(
        self,
        session: AsyncSession,
        batch_size: int = REINDEX_BATCH_SIZE,
    ) -> int:
        """
        Re-embed notes with no embedding or one of another dimensionality.

        Loops in batches until a batch makes no progress.

        Returns:
            Number of notes that received a fresh embedding.
        """
        if self._embeddings.dimensions is None:
            logger.warning("Embeddings disabled, nothing to reindex")
            return 0

        total = 0
        while True:
            # Re-read: a provider may only learn its size from the first response
            dimensions = self._embeddings.dimensions
            notes = list(
                await self._repository.list_stale(session, dimensions, limit=batch_size)
            )
            if not notes:
                break

            vectors = await self._embeddings.embed_many(
                [embedding_text(n.title, n.content) for n in notes]
            )
            stored = 0
            for note, vector in zip(notes, vectors, strict=True):
                if vector is None:
                    continue
                await self._repository.update_embedding(session, note.id, vector)
                stored += 1

            total += stored
            logger.info("Re-embedded %d/%d notes in batch", stored, len(notes))
            if stored < len(notes):
                # Failures would be selected again forever
                break

        return total
