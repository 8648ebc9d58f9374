"""
Embedding Service

Wraps the active embedding provider with the policy every caller relies on:

    - Input-size guard: text longer than EMBEDDING_MAX_CHARS is cut to its
      first EMBEDDING_MAX_CHARS characters.
    - Bounded wait: a provider call is abandoned after EMBEDDING_TIMEOUT seconds.
    - Failure absorption: provider errors, timeouts, unusable vectors and the
      disabled mode all yield None. Nothing is raised to callers, so a note
      write never fails because the embedding backend is down.

The provider is resolved lazily on first use, once per service instance,
under a lock. A disabled outcome is final for the life of the instance.
"""

import asyncio
import logging
import math
import threading
from collections.abc import Callable, Sequence

from neuralmd.core.config import Settings
from neuralmd.services.providers import EmbeddingProvider, create_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings], EmbeddingProvider | None]


class EmbeddingService:
    """
    Null-on-failure embedding generation over a single provider.

    Constructed once at application startup and injected into the search
    and indexing services.

    Usage::

        service = EmbeddingService(settings)
        vector = await service.embed("Deep learning intro")
        if vector is None:
            ...  # store the note without an embedding
    """

    def __init__(
        self,
        settings: Settings,
        provider_factory: ProviderFactory = create_provider,
    ) -> None:
        self._settings = settings
        self._provider_factory = provider_factory
        self._max_chars = settings.EMBEDDING_MAX_CHARS
        self._timeout = settings.EMBEDDING_TIMEOUT

        self._lock = threading.Lock()
        self._resolved = False
        self._provider: EmbeddingProvider | None = None

    @property
    def provider(self) -> EmbeddingProvider | None:
        """The active provider, built on first access; None when disabled."""
        if not self._resolved:
            with self._lock:
                if not self._resolved:
                    self._provider = self._build_provider()
                    self._resolved = True
        return self._provider

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    @property
    def dimensions(self) -> int | None:
        provider = self.provider
        return provider.dimensions if provider is not None else None

    def truncate(self, text: str) -> str:
        """Keep the first EMBEDDING_MAX_CHARS characters."""
        return text[: self._max_chars]

    async def embed(self, text: str) -> list[float] | None:
        """
        Generate an embedding for one text.

        Returns:
            The vector, or None if embeddings are disabled or the call failed.
        """
        provider = self.provider
        if provider is None:
            return None

        try:
            vector = await asyncio.wait_for(
                provider.embed(self.truncate(text)), timeout=self._timeout
            )
        except TimeoutError:
            logger.warning(
                "Embedding timed out after %.1fs (%s)", self._timeout, provider.name
            )
            return None
        except Exception as e:
            logger.error("Failed to generate embedding (%s): %s", provider.name, e)
            return None

        return self._checked(provider, vector)

    async def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        """
        Generate embeddings for several texts in one provider call.

        The wait is bounded by EMBEDDING_TIMEOUT per text. A failed batch
        yields None at every position; results keep input order.
        """
        if not texts:
            return []

        provider = self.provider
        if provider is None:
            return [None] * len(texts)

        timeout = self._timeout * len(texts)
        try:
            vectors = await asyncio.wait_for(
                provider.embed_batch([self.truncate(t) for t in texts]),
                timeout=timeout,
            )
        except TimeoutError:
            logger.warning(
                "Batch embedding of %d texts timed out after %.1fs (%s)",
                len(texts),
                timeout,
                provider.name,
            )
            return [None] * len(texts)
        except Exception as e:
            logger.error(
                "Failed to generate %d embeddings (%s): %s",
                len(texts),
                provider.name,
                e,
            )
            return [None] * len(texts)

        if len(vectors) != len(texts):
            logger.error(
                "Provider %s returned %d vectors for %d texts",
                provider.name,
                len(vectors),
                len(texts),
            )
            return [None] * len(texts)

        return [self._checked(provider, v) for v in vectors]

    def _build_provider(self) -> EmbeddingProvider | None:
        try:
            return self._provider_factory(self._settings)
        except Exception:
            logger.exception(
                "Embedding provider construction failed, embeddings disabled"
            )
            return None

    @staticmethod
    def _checked(
        provider: EmbeddingProvider, vector: list[float]
    ) -> list[float] | None:
        # A vector of the wrong length would poison distance queries
        if len(vector) != provider.dimensions:
            logger.error(
                "Provider %s returned %d dimensions, expected %d",
                provider.name,
                len(vector),
                provider.dimensions,
            )
            return None
        # Zero or non-finite vectors make cosine distance NaN in pgvector
        if not all(math.isfinite(x) for x in vector) or not any(vector):
            logger.error("Provider %s returned a degenerate vector", provider.name)
            return None
        return list(vector)
