"""
Short-term memory: per-session conversation buckets.

Each ``(business_id, session_id)`` pair owns a list of recent messages capped
at ``max_items``; appending past the cap drops the oldest messages.
"""

from __future__ import annotations

import json
from typing import Optional

import structlog

from orbit_core.models.memory import ShortTermItem

logger = structlog.get_logger(__name__)


class ShortTermMemory:
    """Bounded conversation history keyed by session."""

    TIER = "short_term"

    def __init__(self, max_items: int = 20) -> None:
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.max_items = max_items
        self._sessions: dict[str, list[ShortTermItem]] = {}

    @staticmethod
    def session_key(business_id: str, session_id: str) -> str:
        return f"{business_id}:{session_id}"

    def __len__(self) -> int:
        return len(self._sessions)

    def has(self, key: str) -> bool:
        return key in self._sessions

    def get(self, key: str) -> Optional[list[ShortTermItem]]:
        items = self._sessions.get(key)
        return list(items) if items is not None else None

    def append(self, key: str, item: ShortTermItem) -> None:
        items = self._sessions.setdefault(key, [])
        items.append(item)
        if len(items) > self.max_items:
            del items[: len(items) - self.max_items]

    def remove(self, item_id: str) -> int:
        """Remove an item from every session. Returns how many were removed."""
        removed = 0
        for key, items in self._sessions.items():
            kept = [
                item
                for item in items
                if item.id != item_id and item.metadata.get("id") != item_id
            ]
            if len(kept) != len(items):
                removed += len(items) - len(kept)
                self._sessions[key] = kept
        return removed

    def clear(self) -> None:
        self._sessions.clear()

    def serialize(self, key: str) -> str:
        """JSON rendering of one session, oldest message first."""
        items = self._sessions.get(key, [])
        return json.dumps(
            [item.model_dump(mode="json", exclude={"id"}) for item in items],
            default=str,
        )
