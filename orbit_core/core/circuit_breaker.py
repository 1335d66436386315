"""
Circuit Breaker for the embedding backend.

Stops calling a failing embedding provider for a while so long-term memory
searches go straight to lexical scoring instead of waiting on a dead service.

States:
- CLOSED: Normal operation, embedding calls pass through
- OPEN: Provider failing, calls blocked until the recovery timeout elapses
- HALF_OPEN: Testing if the provider recovered

Usage:
    breaker = CircuitBreaker("cohere_embeddings", failure_threshold=3, recovery_timeout=60)

    guarded = breaker(provider.embed)
    try:
        vector = await guarded(text)
    except CircuitBreakerOpenError:
        vector = None
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import structlog

from orbit_core.core.exceptions import CircuitBreakerOpenError
from orbit_core.monitoring.metrics import (
    record_circuit_breaker_failure,
    update_circuit_breaker_state,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Blocking requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for protecting calls to an external collaborator.

    Args:
        name: Identifier for this circuit (e.g., "cohere_embeddings")
        failure_threshold: Number of consecutive failures before opening
        recovery_timeout: Seconds to wait before testing recovery
        success_threshold: Successes needed in half-open to close circuit
        clock: Monotonic time source, injectable for tests
    """

    name: str
    failure_threshold: int = 3
    recovery_timeout: float = 60.0
    success_threshold: int = 1
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _success_count: int = field(default=0, init=False)
    _last_failure_time: Optional[float] = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, moving OPEN to HALF_OPEN after the timeout."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self.clock() - self._last_failure_time >= self.recovery_timeout:
                self._transition(CircuitState.HALF_OPEN)
                self._success_count = 0
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (blocking requests)."""
        return self.state == CircuitState.OPEN

    def can_execute(self) -> bool:
        """Check if a request can be executed."""
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def time_until_recovery(self) -> float:
        """Get seconds until circuit may recover."""
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return 0.0
        elapsed = self.clock() - self._last_failure_time
        return max(0.0, self.recovery_timeout - elapsed)

    def _transition(self, new_state: CircuitState) -> None:
        self._state = new_state
        update_circuit_breaker_state(self.name, new_state.value)
        logger.info("circuit_breaker_transition", name=self.name, state=new_state.value)

    async def record_success(self) -> None:
        """Record a successful call."""
        async with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    self._failure_count = 0
                    self._success_count = 0
                    self._transition(CircuitState.CLOSED)
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    async def record_failure(self) -> None:
        """Record a failed call."""
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = self.clock()
            record_circuit_breaker_failure(self.name)

            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                logger.warning(
                    "circuit_breaker_opened",
                    name=self.name,
                    failure_count=self._failure_count,
                    recovery_timeout=self.recovery_timeout,
                )
                self._transition(CircuitState.OPEN)

    def reset(self) -> None:
        """Reset circuit breaker to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = None
        update_circuit_breaker_state(self.name, CircuitState.CLOSED.value)

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        """Use as decorator for async functions."""

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            if not self.can_execute():
                raise CircuitBreakerOpenError(self.name, self.time_until_recovery())

            try:
                result = await func(*args, **kwargs)
            except Exception:
                await self.record_failure()
                raise
            await self.record_success()
            return result

        return wrapper
