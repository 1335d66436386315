"""
Tiered memory for Orbit Core.

- ShortTermMemory: per-session conversation buckets
- WorkingCache: bounded LRU cache
- VectorStore: long-term knowledge with similarity search
- EpisodicStore: append-only event log
- MemoryCoordinator: routes stores and merges recalls across the tiers
- RedisWorkingMemoryStore: optional snapshot of the working cache
"""

from orbit_core.memory.coordinator import MemoryCoordinator
from orbit_core.memory.episodic import EpisodicStore
from orbit_core.memory.persistence import RedisWorkingMemoryStore
from orbit_core.memory.short_term import ShortTermMemory
from orbit_core.memory.vector_store import VectorStore, lexical_score
from orbit_core.memory.working import WorkingCache

__all__ = [
    "EpisodicStore",
    "MemoryCoordinator",
    "RedisWorkingMemoryStore",
    "ShortTermMemory",
    "VectorStore",
    "WorkingCache",
    "lexical_score",
]
