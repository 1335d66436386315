"""
Memory Coordinator.

Owns the four memory tiers and is the only interface the agent and the
analysis engine use:

- short-term: per-session conversation buckets
- working: bounded LRU cache of hot entries
- long-term: VectorStore with pluggable similarity search
- episodic: append-only event log

``store()`` routes content into exactly one tier by its category (insights
are additionally mirrored into the working cache). ``recall()`` fans out
across the tiers in a fixed precedence and merges everything into one ranked
list.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import structlog

from orbit_core.config.settings import Settings, get_settings
from orbit_core.core.circuit_breaker import CircuitBreaker
from orbit_core.core.exceptions import InvalidMemoryRequestError, MemoryStoreError
from orbit_core.knowledge.embeddings import EmbeddingProvider, create_embedding_provider
from orbit_core.memory.episodic import EpisodicStore
from orbit_core.memory.persistence import RedisWorkingMemoryStore
from orbit_core.memory.short_term import ShortTermMemory
from orbit_core.memory.vector_store import VectorStore
from orbit_core.memory.working import WorkingCache
from orbit_core.models.memory import (
    AgentContext,
    AgentEvent,
    ConversationContent,
    EventContent,
    EventFilter,
    EventPattern,
    EventType,
    GeneralContent,
    InsightContent,
    MemoryEntry,
    ShortTermItem,
    classify_content,
    utcnow,
)

logger = structlog.get_logger(__name__)

SHORT_TERM_SCORE = 1.0
INSIGHT_MIRROR_SCORE = 0.9
GENERAL_SCORE = 0.8
WORKING_RECALL_LIMIT = 3
EPISODIC_RECALL_LIMIT = 2
IMPACT_SCORES = {"high": 1.0, "medium": 0.7, "low": 0.4}


def new_memory_id() -> str:
    return f"memory_{uuid.uuid4().hex}"


class MemoryCoordinator:
    """
    Routes, merges and lifecycles the memory tiers.

    Tiers are injected so each instance owns its own data; the defaults are
    built from Settings.

    Usage:
        memory = MemoryCoordinator.from_settings()
        await memory.initialize()

        memory_id = await memory.store(
            "Friday lunch promos convert best",
            {"type": "insight"},
        )
        entries = await memory.recall("lunch", context, limit=5)

        await memory.close()
    """

    def __init__(
        self,
        short_term: Optional[ShortTermMemory] = None,
        working_memory: Optional[WorkingCache] = None,
        long_term: Optional[VectorStore] = None,
        episodic: Optional[EpisodicStore] = None,
        backing_store: Optional[RedisWorkingMemoryStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._clock = clock
        self.short_term = short_term if short_term is not None else ShortTermMemory()
        self.working_memory = working_memory if working_memory is not None else WorkingCache()
        self.long_term = long_term if long_term is not None else VectorStore(clock=clock)
        self.episodic = episodic if episodic is not None else EpisodicStore(clock=clock)
        self.backing_store = backing_store
        self._initialized = False

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        embedder: Optional[EmbeddingProvider] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "MemoryCoordinator":
        """Build a coordinator with every tier sized from configuration."""
        settings = settings or get_settings()
        if embedder is None:
            embedder = create_embedding_provider(settings)

        breaker = None
        if embedder is not None:
            breaker = CircuitBreaker(
                name=f"{embedder.name}_embeddings",
                failure_threshold=settings.embedding_failure_threshold,
                recovery_timeout=settings.embedding_recovery_timeout,
            )

        backing_store = None
        if settings.redis_url:
            backing_store = RedisWorkingMemoryStore(
                redis_url=settings.redis_url,
                key_prefix=settings.working_memory_key_prefix,
                ttl_seconds=settings.working_memory_ttl_seconds,
            )

        return cls(
            short_term=ShortTermMemory(max_items=settings.short_term_size),
            working_memory=WorkingCache(capacity=settings.working_memory_size),
            long_term=VectorStore(
                embedder=embedder,
                breaker=breaker,
                similarity_threshold=settings.similarity_threshold,
                clock=clock,
            ),
            episodic=EpisodicStore(
                max_events=settings.episodic_max_events,
                retained_events=settings.episodic_retained_events,
                clock=clock,
            ),
            backing_store=backing_store,
            clock=clock,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Restore the working cache from the backing store, if any."""
        if self._initialized:
            return

        restored = 0
        if self.backing_store is not None:
            for entry in await self.backing_store.load():
                self.working_memory.set(entry.id, entry)
                restored += 1

        self._initialized = True
        logger.info(
            "memory_system_initialized",
            restored=restored,
            persistent=self.backing_store is not None,
        )

    async def close(self) -> None:
        """Persist the working cache to the backing store, if any."""
        if not self._initialized:
            return

        if self.backing_store is not None:
            await self.backing_store.save(self.working_memory.get_all())
            await self.backing_store.close()

        self._initialized = False
        logger.info("memory_system_closed")

    # =========================================================================
    # Core Operations
    # =========================================================================

    async def recall(
        self,
        query: str,
        context: AgentContext,
        limit: int = 10,
    ) -> list[MemoryEntry]:
        """
        Retrieve the most relevant memories for a query.

        Stages, in precedence order:
            1. The current session's conversation, as one entry scored 1.0
            2. Up to 3 working-memory matches
            3. Up to ``limit`` minus the entries collected so far from long-term
            4. Up to 2 matching episodic events

        The results are merged, sorted by descending score (ties keep the
        stage order above) and truncated to ``limit``.

        Raises:
            InvalidMemoryRequestError: If ``limit`` is negative.
        """
        if limit < 0:
            raise InvalidMemoryRequestError("limit must not be negative", {"limit": limit})
        if limit == 0:
            return []

        memories: list[MemoryEntry] = []

        session_key = context.session_key
        if self.short_term.has(session_key):
            memories.append(
                MemoryEntry(
                    id=f"short_term_{session_key}",
                    content=self.short_term.serialize(session_key),
                    score=SHORT_TERM_SCORE,
                    metadata={"type": "short_term", "session": context.session_id},
                    timestamp=self._clock(),
                )
            )

        memories.extend(
            self._absorb(
                self.working_memory.TIER,
                lambda: self.working_memory.search_relevant(query, WORKING_RECALL_LIMIT),
            )
        )

        long_term_limit = max(limit - len(memories), 0)
        if long_term_limit:
            try:
                memories.extend(await self.long_term.search(query, long_term_limit))
            except MemoryStoreError as e:
                logger.warning("memory_tier_failed", tier=self.long_term.TIER, error=str(e))

        memories.extend(
            self._absorb(
                self.episodic.TIER,
                lambda: self.episodic.search_relevant(query, context, EPISODIC_RECALL_LIMIT),
            )
        )

        memories.sort(key=lambda entry: entry.score, reverse=True)
        results = memories[:limit]

        logger.debug(
            "memory_recall_completed",
            business_id=context.business_id,
            session_id=context.session_id,
            candidates=len(memories),
            results=len(results),
        )
        return results

    @staticmethod
    def _absorb(tier: str, search: Callable[[], list[MemoryEntry]]) -> list[MemoryEntry]:
        """Run a synchronous tier search, logging and absorbing tier failures."""
        try:
            return search()
        except MemoryStoreError as e:
            logger.warning("memory_tier_failed", tier=tier, error=str(e))
            return []

    async def store(
        self,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
        context: Optional[AgentContext] = None,
    ) -> str:
        """
        Store content in the tier matching ``metadata["type"]``.

        - session / conversation: the context's short-term bucket
        - insight / pattern / learning: long-term, mirrored to working (0.9)
        - event / action_result: the episodic log
        - anything else: working memory (0.8)

        Returns:
            The new memory id.

        Raises:
            InvalidMemoryRequestError: Conversation content without a context,
                or an unknown event impact.
        """
        metadata = dict(metadata or {})
        routed = classify_content(content, metadata, context)
        memory_id = new_memory_id()
        now = self._clock()

        if isinstance(routed, ConversationContent):
            self.short_term.append(
                ShortTermMemory.session_key(routed.business_id, routed.session_id),
                ShortTermItem(
                    id=memory_id,
                    content=routed.content,
                    metadata=routed.metadata,
                    timestamp=now,
                ),
            )

        elif isinstance(routed, InsightContent):
            await self.long_term.store(routed.content, {**routed.metadata, "id": memory_id})
            self.working_memory.set(
                memory_id,
                MemoryEntry(
                    id=memory_id,
                    content=routed.content,
                    score=INSIGHT_MIRROR_SCORE,
                    metadata=routed.metadata,
                    timestamp=now,
                ),
            )

        elif isinstance(routed, EventContent):
            self.episodic.log(
                AgentEvent(
                    id=memory_id,
                    type=routed.event_type,
                    data={"content": routed.content, **routed.metadata},
                    timestamp=now,
                    business_id=routed.business_id,
                    success=routed.success,
                    impact=routed.impact,
                )
            )

        elif isinstance(routed, GeneralContent):
            self.working_memory.set(
                memory_id,
                MemoryEntry(
                    id=memory_id,
                    content=routed.content,
                    score=GENERAL_SCORE,
                    metadata=routed.metadata,
                    timestamp=now,
                ),
            )

        else:
            raise TypeError(f"Unhandled memory content: {type(routed).__name__}")

        logger.debug(
            "memory_stored",
            memory_id=memory_id,
            category=type(routed).__name__,
            business_id=context.business_id if context else None,
        )
        return memory_id

    async def update(
        self,
        memory_id: str,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Update a memory wherever it lives.

        The working-memory copy gets the new content and merged metadata; the
        long-term copy gets the new content. Ids present in neither tier are
        ignored.
        """
        existing = self.working_memory.get(memory_id)
        if existing is not None:
            merged = {**existing.metadata, **(metadata or {})}
            self.working_memory.set(
                memory_id,
                existing.model_copy(update={"content": content, "metadata": merged}),
            )

        try:
            await self.long_term.update(memory_id, content)
        except MemoryStoreError as e:
            logger.warning("memory_update_failed", tier=self.long_term.TIER, memory_id=memory_id, error=str(e))

    async def forget(self, memory_id: str) -> None:
        """
        Remove a memory from the short-term, working and long-term tiers.

        Episodic events are history and are never removed. Forgetting an
        unknown id is a no-op.
        """
        removed_short_term = self.short_term.remove(memory_id)
        removed_working = self.working_memory.delete(memory_id)

        try:
            await self.long_term.delete(memory_id)
        except MemoryStoreError as e:
            logger.warning("memory_forget_failed", tier=self.long_term.TIER, memory_id=memory_id, error=str(e))

        logger.debug(
            "memory_forgotten",
            memory_id=memory_id,
            short_term=removed_short_term,
            working=removed_working,
        )

    # =========================================================================
    # Specialized Operations
    # =========================================================================

    def find_patterns(
        self,
        business_id: str,
        event_type: Optional[str] = None,
    ) -> list[EventPattern]:
        """
        Event patterns for one business.

        With ``event_type`` set, returns the single pattern for events whose
        type contains it. Without, returns one pattern per distinct event type.
        """
        if event_type is not None:
            return [self.episodic.get_pattern(event_type, business_id=business_id)]

        return [
            self.episodic.get_pattern(seen_type, business_id=business_id)
            for seen_type in self.episodic.event_types(business_id)
        ]

    async def get_customer_history(self, customer_id: str, limit: int = 50) -> list[MemoryEntry]:
        """Recall everything mentioning ``customer:<id>``."""
        context = AgentContext(
            business_id="any",
            session_id="history",
            user_id=customer_id,
            timestamp=self._clock(),
        )
        return await self.recall(f"customer:{customer_id}", context, limit)

    def get_content_insights(self, business_id: str, days: int = 7) -> list[MemoryEntry]:
        """Successful content_generated events of the last ``days``, scored by impact."""
        events = self.episodic.query(
            EventFilter(
                type=EventType.CONTENT_GENERATED.value,
                business_id=business_id,
                date_from=self._clock() - timedelta(days=days),
                success=True,
            )
        )
        return [
            MemoryEntry(
                id=event.id,
                content=json.dumps(event.data, default=str),
                score=IMPACT_SCORES.get(event.impact.value if event.impact else "low", 0.4),
                metadata={"type": "content_insight", "event": event.type},
                timestamp=event.timestamp,
            )
            for event in events
        ]
