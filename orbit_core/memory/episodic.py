"""
Episodic memory: append-only, bounded log of AgentEvents.

Once the log grows past ``max_events`` it is truncated in one step to the most
recent ``retained_events``, oldest discarded, relative order kept. Events are
never edited or individually removed.
"""

from __future__ import annotations

import json
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Optional

import structlog

from orbit_core.models.memory import (
    AgentContext,
    AgentEvent,
    EventFilter,
    EventPattern,
    MemoryEntry,
    utcnow,
)
from orbit_core.monitoring.metrics import track_memory_operation

logger = structlog.get_logger(__name__)

ALL_EVENTS = "all"
SUCCESS_SCORE = 0.8
FAILURE_SCORE = 0.4


def _event_data_json(event: AgentEvent) -> str:
    return json.dumps(event.data, default=str)


class EpisodicStore:
    """
    Event log tier.

    Args:
        max_events: Hard cap; exceeding it triggers truncation.
        retained_events: Number of most recent events kept after truncation.
        clock: Source of aware UTC timestamps (used for pattern best times).
    """

    TIER = "episodic"

    def __init__(
        self,
        max_events: int = 10_000,
        retained_events: int = 5_000,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not 0 < retained_events < max_events:
            raise ValueError("retained_events must be positive and below max_events")
        self.max_events = max_events
        self.retained_events = retained_events
        self._clock = clock
        self._events: list[AgentEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    @property
    def size(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        self._events.clear()

    def log(self, event: AgentEvent) -> None:
        self._events.append(event)
        if len(self._events) > self.max_events:
            dropped = len(self._events) - self.retained_events
            self._events = self._events[-self.retained_events :]
            logger.info(
                "episodic_log_truncated",
                dropped=dropped,
                retained=self.retained_events,
            )

    def get(self, event_id: str) -> Optional[AgentEvent]:
        for event in reversed(self._events):
            if event.id == event_id:
                return event
        return None

    def all_events(self) -> list[AgentEvent]:
        """Events in log (insertion) order."""
        return list(self._events)

    def query(self, event_filter: Optional[EventFilter] = None) -> list[AgentEvent]:
        """Events matching every set filter field, most recent first."""
        event_filter = event_filter or EventFilter()
        with track_memory_operation(self.TIER, "query"):
            matches = [event for event in self._events if event_filter.matches(event)]
            matches.sort(key=lambda event: event.timestamp, reverse=True)
            return matches

    def get_pattern(self, event_type: str, business_id: Optional[str] = None) -> EventPattern:
        """
        Derive an EventPattern from events whose type contains ``event_type``.

        ``"all"`` selects every event. ``business_id`` optionally narrows the
        slice to one business. An empty slice yields a zero-valued pattern.
        """
        events = [
            event
            for event in self._events
            if (business_id is None or event.business_id == business_id)
            and (event_type == ALL_EVENTS or event_type in event.type)
        ]
        if not events:
            return EventPattern(type=event_type)

        successful = [event for event in events if event.success]
        hour_counts = Counter(event.timestamp.hour for event in successful)
        today = self._clock().replace(minute=0, second=0, microsecond=0)
        best_times = [today.replace(hour=hour) for hour, _ in hour_counts.most_common(3)]

        return EventPattern(
            type=event_type,
            frequency=len(events),
            success_rate=len(successful) / len(events),
            best_times=best_times,
            common_context=self._common_context(successful),
        )

    @staticmethod
    def _common_context(events: list[AgentEvent]) -> dict[str, Any]:
        """Scalar data values shared by at least half of the given events."""
        if not events:
            return {}
        counts: Counter[tuple[str, Any]] = Counter()
        for event in events:
            for key, value in event.data.items():
                if isinstance(value, (str, int, float, bool)):
                    counts[(key, value)] += 1

        common: dict[str, Any] = {}
        for (key, value), count in counts.most_common():
            if count * 2 < len(events):
                break
            common.setdefault(key, value)
        return common

    def event_types(self, business_id: Optional[str] = None) -> list[str]:
        """Distinct event types in first-seen order."""
        seen: dict[str, None] = {}
        for event in self._events:
            if business_id is None or event.business_id == business_id:
                seen.setdefault(event.type, None)
        return list(seen)

    def search_relevant(
        self,
        query: str,
        context: AgentContext,
        limit: int,
    ) -> list[MemoryEntry]:
        """
        Events of ``context.business_id`` whose data or type contains ``query``.

        Returned in log order, at most ``limit``, scored 0.8 when the event
        succeeded and 0.4 when it failed.
        """
        if limit <= 0:
            return []

        with track_memory_operation(self.TIER, "search"):
            needle = query.lower()
            entries: list[MemoryEntry] = []
            for event in self._events:
                if event.business_id != context.business_id:
                    continue
                data_json = _event_data_json(event)
                if needle not in data_json.lower() and needle not in event.type.lower():
                    continue
                entries.append(
                    MemoryEntry(
                        id=event.id,
                        content=f"Event: {event.type} - {data_json}",
                        score=SUCCESS_SCORE if event.success else FAILURE_SCORE,
                        metadata={
                            "type": "episodic_event",
                            "event_type": event.type,
                            "success": event.success,
                        },
                        timestamp=event.timestamp,
                    )
                )
                if len(entries) >= limit:
                    break
            return entries
