"""
Embedding Providers

Interchangeable backends that turn text into embedding vectors:

    - ``ollama``: local model served by Ollama over HTTP (httpx).
    - ``openai``: OpenAI embeddings API (official async SDK).

``create_provider`` resolves the configured backend through ``PROVIDERS``.
It returns None (embeddings disabled) for ``none``, an unknown identifier,
or a cloud backend without its credential.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

import httpx
from openai import AsyncOpenAI

from neuralmd.core.config import Settings

logger = logging.getLogger(__name__)

# Output sizes of common embedding models
OLLAMA_MODEL_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "snowflake-arctic-embed": 1024,
}
OPENAI_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}
DEFAULT_OLLAMA_DIMENSIONS = 768
DEFAULT_OPENAI_DIMENSIONS = 1536


class ProviderError(Exception):
    """Raised when a backend answers with an unusable payload."""


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Contract shared by every embedding backend."""

    name: str

    @property
    def dimensions(self) -> int:
        """Length of every vector this provider produces."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Embed one text."""
        ...

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts, preserving input order."""
        ...


class OllamaProvider:
    """
    Local embeddings served by Ollama (``POST /api/embeddings``).

    Ollama embeds one prompt per request, so batches run sequentially.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        dimensions: int | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Ollama server URL, e.g. ``http://localhost:11434``.
            model: Embedding model name.
            dimensions: Overrides the known-model table. Without it, a model
                missing from the table reports the length of its first
                returned vector.
            timeout: HTTP timeout in seconds.
            transport: Custom httpx transport (tests).
        """
        self._base_url = base_url.rstrip("/")
        self._model = model
        # Tags such as ":latest" do not change the output size
        known = dimensions or OLLAMA_MODEL_DIMENSIONS.get(model.split(":", 1)[0])
        self._dimensions = known or DEFAULT_OLLAMA_DIMENSIONS
        self._learn_dimensions = known is None
        self._timeout = timeout
        self._transport = transport

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        """
        Raises:
            httpx.HTTPError: Connection failure, timeout or error status.
            ProviderError: Response without an embedding.
        """
        payload = {"model": self._model, "prompt": text}

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.post(
                f"{self._base_url}/api/embeddings", json=payload
            )
            response.raise_for_status()
            embedding = response.json().get("embedding")

        if not embedding:
            raise ProviderError(f"Ollama returned no embedding (model={self._model})")
        if self._learn_dimensions:
            self._dimensions = len(embedding)
            self._learn_dimensions = False
            logger.info(
                "Ollama model %s produces %d dimensions", self._model, self._dimensions
            )
        return embedding

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [await self.embed(text) for text in texts]


class OpenAIProvider:
    """OpenAI embeddings API with native batching."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        dimensions: int | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        self._model = model
        self._dimensions = dimensions or OPENAI_MODEL_DIMENSIONS.get(
            model, DEFAULT_OPENAI_DIMENSIONS
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        response = await self._client.embeddings.create(
            input=list(texts), model=self._model
        )
        # The API echoes an index per input; do not rely on response order
        items = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in items]


def _build_ollama(settings: Settings) -> EmbeddingProvider | None:
    return OllamaProvider(
        base_url=settings.OLLAMA_URL,
        model=settings.OLLAMA_EMBEDDING_MODEL,
        dimensions=settings.EMBEDDING_DIMENSIONS,
        timeout=settings.EMBEDDING_TIMEOUT,
    )


def _build_openai(settings: Settings) -> EmbeddingProvider | None:
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set, embeddings disabled")
        return None
    return OpenAIProvider(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_EMBEDDING_MODEL,
        dimensions=settings.EMBEDDING_DIMENSIONS,
        timeout=settings.EMBEDDING_TIMEOUT,
    )


PROVIDERS: dict[str, Callable[[Settings], EmbeddingProvider | None]] = {
    "ollama": _build_ollama,
    "openai": _build_openai,
}


def create_provider(settings: Settings) -> EmbeddingProvider | None:
    """
    Build the provider named by ``EMBEDDING_PROVIDER``.

    Returns:
        The provider, or None when embeddings are disabled.
    """
    provider_id = settings.EMBEDDING_PROVIDER.strip().lower()

    if provider_id == "none":
        logger.info("Embeddings disabled by configuration")
        return None

    factory = PROVIDERS.get(provider_id)
    if factory is None:
        logger.warning(
            "Unknown embedding provider '%s', embeddings disabled", provider_id
        )
        return None

    provider = factory(settings)
    if provider is not None:
        logger.info(
            "Using %s embeddings (dim=%d)", provider.name, provider.dimensions
        )
    return provider
