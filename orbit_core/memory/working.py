"""
Working memory: a bounded, least-recently-used cache of MemoryEntry objects.

All operations are synchronous and in-memory. Capacity is never exceeded:
inserting a new key into a full cache evicts exactly one entry, the least
recently touched, before the insert completes.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Optional

import structlog

from orbit_core.models.memory import MemoryEntry, serialize_metadata
from orbit_core.monitoring.metrics import track_memory_operation

logger = structlog.get_logger(__name__)


class WorkingCache:
    """
    Fixed-capacity key -> MemoryEntry store with LRU eviction.

    Usage:
        cache = WorkingCache(capacity=2)
        cache.set("a", entry_a)
        cache.set("b", entry_b)
        cache.get("a")            # touches a
        cache.set("c", entry_c)   # evicts b
    """

    TIER = "working"

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, MemoryEntry] = OrderedDict()

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[MemoryEntry]:
        """Return the entry for ``key`` (marking it most recently used) or None."""
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def set(self, key: str, entry: MemoryEntry) -> None:
        if key in self._entries:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            return

        if len(self._entries) >= self.capacity:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug("working_memory_evicted", key=evicted_key, capacity=self.capacity)

        self._entries[key] = entry

    def has(self, key: str) -> bool:
        """Membership test. Does not touch recency."""
        return key in self._entries

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def get_all(self) -> list[MemoryEntry]:
        """All entries from least to most recently used."""
        return list(self._entries.values())

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def search_relevant(self, query: str, limit: int) -> list[MemoryEntry]:
        """
        Case-insensitive substring search over content and serialized metadata.

        Matches keep their stored score and are returned highest score first;
        ties keep scan order (least to most recently used). Searching does not
        touch recency.
        """
        if limit <= 0:
            return []

        with track_memory_operation(self.TIER, "search"):
            needle = query.lower()
            matches = [
                entry
                for entry in self._entries.values()
                if needle in entry.content.lower()
                or needle in serialize_metadata(entry.metadata).lower()
            ]
            matches.sort(key=lambda entry: entry.score, reverse=True)
            return matches[:limit]
