"""
Embedding providers for the long-term memory tier.

- EmbeddingProvider: the protocol the VectorStore depends on
- CohereEmbeddingsService: real embeddings via Cohere
- DeterministicFallbackEmbedder: hash-seeded, lower-quality stand-in
"""

from orbit_core.knowledge.embeddings import (
    DeterministicFallbackEmbedder,
    EmbeddingProvider,
    cosine_similarity,
    create_embedding_provider,
    find_most_similar,
    preprocess_text,
)

__all__ = [
    "DeterministicFallbackEmbedder",
    "EmbeddingProvider",
    "cosine_similarity",
    "create_embedding_provider",
    "find_most_similar",
    "preprocess_text",
]
