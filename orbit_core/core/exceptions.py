"""
Core exception hierarchy for Orbit Core.

Provides standardized exception types with categorization for retry logic.
Memory tiers treat not-found and capacity conditions as normal operation;
these exceptions cover the remaining failure classes.
"""

from typing import Any, Optional


# =============================================================================
# Base Exceptions
# =============================================================================


class OrbitError(Exception):
    """Base exception for all Orbit Core errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(OrbitError):
    """
    Transient errors that should be retried.

    Examples: Embedding backend down, Redis unreachable, metrics provider timeout.
    """

    pass


class PermanentError(OrbitError):
    """
    Errors that won't be fixed by retrying.

    Examples: Invalid input, missing configuration.
    """

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


# =============================================================================
# Memory Errors
# =============================================================================


class InvalidMemoryRequestError(PermanentError, ValueError):
    """Raised synchronously when a caller violates a memory contract.

    Examples: negative limits, date_from later than date_to, conversation
    content stored without a session context.
    """

    pass


class MemoryStoreError(OrbitError):
    """Base exception for memory tier errors."""

    def __init__(
        self,
        tier: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.tier = tier
        super().__init__(f"[{tier}] {message}", details)


class MemoryBackendUnavailableError(MemoryStoreError, RetryableError):
    """Raised when a tier's backing store cannot be reached."""

    pass


class EmbeddingUnavailableError(RetryableError):
    """Raised when the embedding provider cannot produce a vector."""

    def __init__(self, provider: str, message: str, details: Optional[dict[str, Any]] = None):
        self.provider = provider
        super().__init__(f"[{provider}] {message}", details)


# =============================================================================
# Analysis Errors
# =============================================================================


class MetricsProviderError(RetryableError):
    """Raised when the live metrics provider fails.

    This is the only failure the analysis engine surfaces to its caller.
    """

    def __init__(self, business_id: str, message: str, details: Optional[dict[str, Any]] = None):
        self.business_id = business_id
        super().__init__(message, {"business_id": business_id, **(details or {})})


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitBreakerOpenError(RetryableError):
    """Raised when circuit breaker is open and blocking requests."""

    def __init__(self, service: str, recovery_time: float):
        self.service = service
        self.recovery_time = recovery_time
        super().__init__(
            f"Circuit breaker open for {service}. Recovery in {recovery_time:.1f}s",
            {"service": service, "recovery_time": recovery_time},
        )
