"""
Embedding provider contract and shared similarity helpers.

The long-term memory tier only depends on the EmbeddingProvider protocol:
any object with a ``name``, an async ``embed`` and a ``similarity`` method can
be plugged in. A provider may also offer ``embed_query`` for search queries;
the store calls it for queries and falls back to ``embed`` when it is
missing. Two implementations ship with the package:

- CohereEmbeddingsService (cohere_embeddings.py): real dense embeddings.
- DeterministicFallbackEmbedder: hash-seeded pseudo-vectors. LOWER QUALITY:
  vectors carry no semantic meaning beyond exact-text identity. Useful for
  tests and offline development only.

Vectors produced by different providers are never compared with each other;
the VectorStore tags every vector with ``provider.name`` and checks it.
"""

from __future__ import annotations

import hashlib
import math
from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

import structlog

from orbit_core.config.settings import Settings
from orbit_core.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Anything that turns text into vectors and compares them."""

    name: str

    async def embed(self, text: str) -> list[float]:
        ...

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        ValueError: If the vectors have different dimensions.
    """
    if len(a) != len(b):
        raise ValueError(
            f"Embeddings must have the same dimensions ({len(a)} != {len(b)})"
        )

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def find_most_similar(
    query_vector: Sequence[float],
    candidates: Iterable[tuple[Sequence[float], Any]],
    limit: int = 10,
) -> list[tuple[float, Any]]:
    """
    Rank ``(vector, payload)`` candidates by cosine similarity to a query.

    Returns:
        ``(similarity, payload)`` pairs, most similar first, at most ``limit``.
    """
    scored = [
        (cosine_similarity(query_vector, vector), payload)
        for vector, payload in candidates
    ]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return scored[: max(limit, 0)]


def preprocess_text(text: str, max_chars: int = 8000) -> str:
    """Collapse whitespace and cap length before sending text to a model."""
    return " ".join(text.split())[:max_chars]


class DeterministicFallbackEmbedder:
    """
    Hash-seeded pseudo-embeddings. LOWER QUALITY than a real provider.

    Identical text always yields the identical unit vector, so exact repeats
    score 1.0, but unrelated texts score arbitrarily. Never mix these vectors
    with vectors from a real model.
    """

    name = "deterministic-fallback"

    def __init__(self, dimensions: int = 384) -> None:
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    def _seed(self, text: str) -> int:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "big")

    def embed_sync(self, text: str) -> list[float]:
        seed = self._seed(preprocess_text(text))
        vector = [(math.sin(seed + i) + 1) / 2 - 0.5 for i in range(self.dimensions)]
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]

    async def embed(self, text: str) -> list[float]:
        return self.embed_sync(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_sync(text) for text in texts]

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)


def create_embedding_provider(settings: Settings) -> Optional[EmbeddingProvider]:
    """
    Build the embedding provider selected by ``settings.embedding_backend``.

    Returns:
        The provider, or None for the "lexical" backend (no embeddings at all).

    Raises:
        ConfigurationError: If "cohere" is selected without an API key.
    """
    backend = settings.embedding_backend

    if backend == "lexical":
        logger.info("embedding_backend_selected", backend=backend)
        return None

    if backend == "hash":
        logger.warning(
            "embedding_backend_selected",
            backend=backend,
            quality="low",
            note="deterministic fallback embeddings carry no semantic meaning",
        )
        return DeterministicFallbackEmbedder(dimensions=settings.vector_dimensions)

    if settings.cohere_api_key is None:
        raise ConfigurationError(
            "COHERE_API_KEY is required when EMBEDDING_BACKEND=cohere",
            config_key="cohere_api_key",
        )

    from orbit_core.knowledge.cohere_embeddings import CohereEmbeddingsService

    logger.info("embedding_backend_selected", backend=backend)
    return CohereEmbeddingsService(
        api_key=settings.cohere_api_key.get_secret_value(),
        model=settings.cohere_embedding_model,
    )
