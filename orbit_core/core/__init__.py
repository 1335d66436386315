"""
Core infrastructure modules for Orbit Core.

Provides common utilities used across the package:
- exceptions: Standardized exception hierarchy
- circuit_breaker: Resilience pattern for the embedding backend
"""

from orbit_core.core.exceptions import (
    OrbitError,
    RetryableError,
    PermanentError,
    ConfigurationError,
    InvalidMemoryRequestError,
    MemoryStoreError,
    MemoryBackendUnavailableError,
    EmbeddingUnavailableError,
    MetricsProviderError,
    CircuitBreakerOpenError,
)

from orbit_core.core.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
)

__all__ = [
    # Exceptions
    "OrbitError",
    "RetryableError",
    "PermanentError",
    "ConfigurationError",
    "InvalidMemoryRequestError",
    "MemoryStoreError",
    "MemoryBackendUnavailableError",
    "EmbeddingUnavailableError",
    "MetricsProviderError",
    "CircuitBreakerOpenError",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitState",
]
