"""
Long-term memory: an unbounded key -> entry store with pluggable similarity search.

When an EmbeddingProvider is configured, entries are embedded on write and
searched by cosine similarity. Entries stored while the provider was failing
(or under a different provider) are re-embedded on the next search the
breaker allows. Whenever semantic search is still not possible (no provider,
breaker open, provider failing, or vectors that could not be refreshed) the
store scores candidates lexically instead. Search never fails because of the
embedding backend.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import structlog

from orbit_core.core.circuit_breaker import CircuitBreaker
from orbit_core.core.exceptions import CircuitBreakerOpenError
from orbit_core.knowledge.embeddings import EmbeddingProvider, preprocess_text
from orbit_core.models.memory import MemoryEntry, utcnow
from orbit_core.monitoring.metrics import record_search_fallback, track_memory_operation

logger = structlog.get_logger(__name__)

LEXICAL_TERM_WEIGHT = 0.2


@dataclass
class VectorRecord:
    """A stored entry plus the vector (if any) and the provider that made it."""

    entry: MemoryEntry
    vector: Optional[list[float]] = None
    provider: Optional[str] = None


def lexical_score(query: str, content: str) -> float:
    """
    Weighted count of query terms found in the content.

    Only entries containing the whole query (case-insensitive) are candidates;
    each query word present then adds LEXICAL_TERM_WEIGHT. Returns 0.0 for
    non-candidates.
    """
    query_lower = query.lower()
    content_lower = content.lower()
    if query_lower not in content_lower:
        return 0.0
    words = query_lower.split(" ")
    return sum(LEXICAL_TERM_WEIGHT for word in words if word in content_lower)


class VectorStore:
    """
    Long-term knowledge tier.

    Args:
        embedder: Optional embedding provider. None means lexical-only search.
        breaker: Circuit breaker guarding the provider. A default one is
            created when an embedder is given.
        similarity_threshold: Minimum cosine similarity for a semantic hit.
        clock: Source of aware UTC timestamps.
    """

    TIER = "long_term"

    def __init__(
        self,
        embedder: Optional[EmbeddingProvider] = None,
        breaker: Optional[CircuitBreaker] = None,
        similarity_threshold: float = 0.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.embedder = embedder
        if breaker is None and embedder is not None:
            breaker = CircuitBreaker(name=f"{embedder.name}_embeddings")
        self.breaker = breaker
        self.similarity_threshold = similarity_threshold
        self._clock = clock
        self._records: dict[str, VectorRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    @property
    def size(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        self._records.clear()

    def get(self, memory_id: str) -> Optional[MemoryEntry]:
        record = self._records.get(memory_id)
        return record.entry if record is not None else None

    def get_all(self) -> list[MemoryEntry]:
        return [record.entry for record in self._records.values()]

    async def _embed(self, text: str, query: bool = False) -> Optional[list[float]]:
        """
        Embed text through the breaker. Returns None instead of raising.

        Blank text is never sent to the provider and does not count as a
        provider failure. Queries use the provider's ``embed_query`` when it
        has one.
        """
        if self.embedder is None or not preprocess_text(text):
            return None

        embed = self.embedder.embed
        if query:
            embed = getattr(self.embedder, "embed_query", embed)
        if self.breaker is not None:
            embed = self.breaker(embed)

        try:
            return await embed(text)
        except CircuitBreakerOpenError as e:
            logger.debug("embedding_skipped", provider=self.embedder.name, recovery_time=e.recovery_time)
            return None
        except Exception as e:
            logger.warning(
                "embedding_failed",
                provider=self.embedder.name,
                error=str(e),
            )
            return None

    async def store(self, content: str, metadata: Optional[dict[str, Any]] = None) -> str:
        """
        Store content and return its id.

        ``metadata["id"]`` is used as the id when present. Storing an existing
        id replaces that entry.
        """
        metadata = dict(metadata or {})
        memory_id = str(metadata.get("id") or f"vec_{uuid.uuid4().hex}")

        with track_memory_operation(self.TIER, "store"):
            vector = await self._embed(content)
            entry = MemoryEntry(
                id=memory_id,
                content=content,
                score=1.0,
                metadata=metadata,
                timestamp=self._clock(),
            )
            self._records[memory_id] = VectorRecord(
                entry=entry,
                vector=vector,
                provider=self.embedder.name if vector is not None and self.embedder else None,
            )

        logger.debug("long_term_memory_stored", memory_id=memory_id, embedded=vector is not None)
        return memory_id

    def _is_stale(self, record: VectorRecord) -> bool:
        """True when a record with embeddable content lacks a current-provider vector."""
        if not preprocess_text(record.entry.content):
            return False
        return record.vector is None or record.provider != self.embedder.name

    async def _refresh_stale_vectors(self) -> int:
        """
        Re-embed records stored while the provider was failing or under another provider.

        Stops at the first failure so a provider that is still down costs one
        call per search. Returns the number of records refreshed.
        """
        refreshed = 0
        for record in list(self._records.values()):
            if not self._is_stale(record):
                continue
            vector = await self._embed(record.entry.content)
            if vector is None:
                break
            record.vector = vector
            record.provider = self.embedder.name
            refreshed += 1

        if refreshed:
            logger.info("long_term_vectors_refreshed", count=refreshed, provider=self.embedder.name)
        return refreshed

    async def _fallback_reason(self) -> Optional[str]:
        """Why semantic search cannot run right now, or None if it can."""
        if self.embedder is None:
            return "no_provider"
        if self.breaker is not None and self.breaker.is_open:
            return "circuit_open"
        await self._refresh_stale_vectors()
        if any(self._is_stale(record) for record in self._records.values()):
            return "mixed_vectors"
        return None

    async def search(self, query: str, limit: int = 10) -> list[MemoryEntry]:
        """
        Return up to ``limit`` entries ranked by relevance to ``query``.

        Returned entries are copies carrying the search score; stored entries
        are not modified.
        """
        if limit <= 0 or not self._records:
            return []

        with track_memory_operation(self.TIER, "search"):
            reason = await self._fallback_reason()
            if reason is None:
                query_vector = await self._embed(query, query=True)
                if query_vector is not None:
                    return self._semantic_search(query_vector, limit)
                reason = "embedding_unavailable"

            if reason != "no_provider":
                logger.warning("long_term_search_fallback", reason=reason, query_length=len(query))
                record_search_fallback(reason)
            return self._lexical_search(query, limit)

    def _semantic_search(self, query_vector: list[float], limit: int) -> list[MemoryEntry]:
        embedder = self.embedder
        scored: list[MemoryEntry] = []
        for record in self._records.values():
            # blank entries have no vector
            if record.vector is None:
                continue
            similarity = embedder.similarity(query_vector, record.vector)
            if similarity >= self.similarity_threshold:
                scored.append(record.entry.model_copy(update={"score": similarity}))
        scored.sort(key=lambda entry: entry.score, reverse=True)
        return scored[:limit]

    def _lexical_search(self, query: str, limit: int) -> list[MemoryEntry]:
        scored: list[MemoryEntry] = []
        for record in self._records.values():
            score = lexical_score(query, record.entry.content)
            if score > 0:
                scored.append(record.entry.model_copy(update={"score": score}))
        scored.sort(key=lambda entry: entry.score, reverse=True)
        return scored[:limit]

    async def update(self, memory_id: str, content: str) -> None:
        """Replace the content of an entry. Unknown ids are ignored."""
        record = self._records.get(memory_id)
        if record is None:
            return

        with track_memory_operation(self.TIER, "update"):
            vector = await self._embed(content)
            record.entry = record.entry.model_copy(
                update={"content": content, "timestamp": self._clock()}
            )
            record.vector = vector
            record.provider = self.embedder.name if vector is not None and self.embedder else None

    async def delete(self, memory_id: str) -> None:
        """Remove an entry. Unknown ids are ignored."""
        self._records.pop(memory_id, None)
