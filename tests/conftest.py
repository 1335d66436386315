"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- frozen_clock: Controllable clock returning aware UTC datetimes
- settings: Settings built from defaults only (no .env)
- context: Sample agent context
- memory: MemoryCoordinator wired to the frozen clock
- make_event: Factory for AgentEvents relative to the frozen clock
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

from orbit_core.config.settings import Settings
from orbit_core.memory.coordinator import MemoryCoordinator
from orbit_core.models.memory import AgentContext, AgentEvent

# Wednesday, outside the lunch and Friday-evening windows
FROZEN_NOW = datetime(2026, 3, 4, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FROZEN_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def frozen_clock() -> FrozenClock:
    """Return a clock frozen at a Wednesday 09:00 UTC."""
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    """Return default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def context() -> AgentContext:
    """Return a sample agent context."""
    return AgentContext(
        business_id="biz_123",
        session_id="session_abc",
        user_id="customer_42",
        timestamp=FROZEN_NOW,
    )


@pytest.fixture
def memory(frozen_clock: FrozenClock) -> MemoryCoordinator:
    """Return an in-memory coordinator using the frozen clock."""
    return MemoryCoordinator(clock=frozen_clock)


@pytest.fixture
def make_event(frozen_clock: FrozenClock) -> Callable[..., AgentEvent]:
    """Return a factory building events ``ago`` before the frozen now."""
    counter = {"n": 0}

    def _make(
        event_type: str = "customer_interaction",
        business_id: str = "biz_123",
        ago: Optional[timedelta] = None,
        success: bool = True,
        impact: Optional[str] = None,
        **data: Any,
    ) -> AgentEvent:
        counter["n"] += 1
        return AgentEvent(
            id=f"evt_{counter['n']}",
            type=event_type,
            data=data,
            timestamp=frozen_clock() - (ago or timedelta()),
            business_id=business_id,
            success=success,
            impact=impact,
        )

    return _make
