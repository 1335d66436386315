"""Data models for the tiered memory system.

MemoryEntry is the unit every tier returns from a search; AgentEvent is the
append-only record kept by the episodic log. The content variants at the
bottom are the closed set of categories the coordinator routes on.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orbit_core.core.exceptions import InvalidMemoryRequestError


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC so all comparisons are aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_metadata(metadata: dict[str, Any]) -> str:
    """Serialize metadata for substring matching (non-JSON values via str)."""
    return json.dumps(metadata, default=str, sort_keys=False)


# =============================================================================
# Enums
# =============================================================================


class EventType(str, Enum):
    """Known episodic event types. Events may also carry free-form types."""

    MESSAGE_RECEIVED = "message_received"
    CONTENT_GENERATED = "content_generated"
    SALE_DETECTED = "sale_detected"
    PROMOTION_CREATED = "promotion_created"
    CUSTOMER_INTERACTION = "customer_interaction"
    LEARNING_EVENT = "learning_event"
    ERROR_OCCURRED = "error_occurred"
    PERFORMANCE_METRIC = "performance_metric"
    GENERAL = "general"


class Impact(str, Enum):
    """Business impact of an episodic event."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Core Memory Models
# =============================================================================


class MemoryEntry(BaseModel):
    """A single remembered fact as returned by recall and tier searches.

    ``score`` is tier-local: it ranks entries within one recall pass and is
    not comparable across separate calls.
    """

    id: str = Field(..., description="Identifier, unique within the owning tier")
    content: str = Field(..., description="Remembered text")
    score: float = Field(0.0, description="Tier-local relevance score")
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class AgentContext(BaseModel):
    """Who the agent is talking to and in which session."""

    business_id: str
    session_id: str
    user_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_key(self) -> str:
        """Key of the short-term conversation bucket for this context."""
        return f"{self.business_id}:{self.session_id}"


class AgentEvent(BaseModel):
    """Immutable record in the episodic log."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = Field(..., description="Event type, usually an EventType value")
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)
    business_id: str
    success: bool = True
    impact: Optional[Impact] = None

    @field_validator("type", mode="before")
    @classmethod
    def _type_value(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class EventPattern(BaseModel):
    """Statistics derived from a slice of the episodic log. Never stored."""

    type: str
    frequency: int = 0
    success_rate: float = Field(0.0, ge=0.0, le=1.0)
    best_times: list[datetime] = Field(default_factory=list)
    common_context: dict[str, Any] = Field(default_factory=dict)


class ShortTermItem(BaseModel):
    """One message in a per-session conversation bucket."""

    id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


# =============================================================================
# Event Filter
# =============================================================================


@dataclass(frozen=True)
class EventFilter:
    """Conjunctive filter over the episodic log. Unset fields match anything.

    Raises:
        InvalidMemoryRequestError: If date_from is later than date_to.
    """

    type: Optional[str] = None
    business_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    success: Optional[bool] = None

    def __post_init__(self) -> None:
        if isinstance(self.type, Enum):
            object.__setattr__(self, "type", self.type.value)
        if self.date_from is not None:
            object.__setattr__(self, "date_from", ensure_utc(self.date_from))
        if self.date_to is not None:
            object.__setattr__(self, "date_to", ensure_utc(self.date_to))
        if (
            self.date_from is not None
            and self.date_to is not None
            and self.date_from > self.date_to
        ):
            raise InvalidMemoryRequestError(
                "date_from must not be later than date_to",
                {"date_from": self.date_from.isoformat(), "date_to": self.date_to.isoformat()},
            )

    def matches(self, event: AgentEvent) -> bool:
        """Check every set predicate against an event."""
        if self.type is not None and event.type != self.type:
            return False
        if self.business_id is not None and event.business_id != self.business_id:
            return False
        if self.date_from is not None and event.timestamp < self.date_from:
            return False
        if self.date_to is not None and event.timestamp > self.date_to:
            return False
        if self.success is not None and event.success != self.success:
            return False
        return True


# =============================================================================
# Content Variants
# =============================================================================

CONVERSATION_TYPES = frozenset({"session", "conversation"})
INSIGHT_TYPES = frozenset({"insight", "pattern", "learning"})
EVENT_TYPES = frozenset({"event", "action_result"})


@dataclass(frozen=True)
class ConversationContent:
    """Session dialogue, kept in the short-term bucket of one session."""

    content: str
    metadata: dict[str, Any]
    business_id: str
    session_id: str


@dataclass(frozen=True)
class InsightContent:
    """Durable knowledge: long-term store plus a hot working-memory mirror."""

    content: str
    metadata: dict[str, Any]


@dataclass(frozen=True)
class EventContent:
    """Something that happened, logged to the episodic store."""

    content: str
    metadata: dict[str, Any]
    event_type: str
    business_id: str
    success: bool
    impact: Impact


@dataclass(frozen=True)
class GeneralContent:
    """Anything else, cached in working memory."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


MemoryContent = Union[ConversationContent, InsightContent, EventContent, GeneralContent]


def classify_content(
    content: str,
    metadata: dict[str, Any],
    context: Optional[AgentContext] = None,
) -> MemoryContent:
    """Turn a ``store()`` call into exactly one content variant.

    The category comes from ``metadata["type"]``. Events assume success unless
    ``metadata["success"]`` is explicitly False, and medium impact unless told
    otherwise.

    Raises:
        InvalidMemoryRequestError: Conversation content without a context, or
            an event impact outside low, medium and high.
    """
    memory_type = metadata.get("type") or "general"

    if memory_type in CONVERSATION_TYPES:
        if context is None:
            raise InvalidMemoryRequestError(
                "Conversation memory requires an agent context",
                {"type": memory_type},
            )
        return ConversationContent(
            content=content,
            metadata=metadata,
            business_id=context.business_id,
            session_id=context.session_id,
        )

    if memory_type in INSIGHT_TYPES:
        return InsightContent(content=content, metadata=metadata)

    if memory_type in EVENT_TYPES:
        if context is not None:
            business_id = context.business_id
        else:
            business_id = metadata.get("business_id") or "unknown"
        impact = metadata.get("impact") or Impact.MEDIUM.value
        try:
            impact = Impact(impact)
        except ValueError:
            raise InvalidMemoryRequestError(
                "Unknown event impact",
                {"impact": impact, "allowed": [level.value for level in Impact]},
            ) from None
        return EventContent(
            content=content,
            metadata=metadata,
            event_type=metadata.get("event_type") or EventType.GENERAL.value,
            business_id=business_id,
            success=metadata.get("success") is not False,
            impact=impact,
        )

    return GeneralContent(content=content, metadata=metadata)
