"""
Prometheus metrics for Orbit Core observability.

Provides standardized metrics for the memory tiers and the analysis engine.
Exposition (an HTTP /metrics endpoint) is left to the host application.

Usage:
    from orbit_core.monitoring.metrics import track_memory_operation

    with track_memory_operation("long_term", "search"):
        results = await store.search(query, limit=5)

    # Or manually
    ANALYSIS_CACHE_TOTAL.labels(result="hit").inc()
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Gauge, Histogram


# =============================================================================
# Metric Definitions
# =============================================================================

# Memory tier metrics
MEMORY_OPERATIONS = Counter(
    "orbit_memory_operations_total",
    "Total memory tier operations",
    ["tier", "operation", "status"],
)

MEMORY_OPERATION_LATENCY = Histogram(
    "orbit_memory_operation_latency_seconds",
    "Latency of memory tier operations",
    ["tier", "operation"],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

MEMORY_SEARCH_FALLBACKS = Counter(
    "orbit_memory_search_fallbacks_total",
    "Long-term searches that fell back to lexical scoring",
    ["reason"],
)

# Analysis metrics
ANALYSIS_DURATION = Histogram(
    "orbit_analysis_duration_seconds",
    "Duration of business analyses in seconds",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ANALYSIS_TOTAL = Counter(
    "orbit_analysis_total",
    "Total number of business analyses",
    ["status"],
)

ANALYSIS_CACHE_TOTAL = Counter(
    "orbit_analysis_cache_total",
    "Analysis cache lookups",
    ["result"],
)

# Circuit breaker metrics
CIRCUIT_BREAKER_STATE = Gauge(
    "orbit_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["service"],
)

CIRCUIT_BREAKER_FAILURES = Counter(
    "orbit_circuit_breaker_failures_total",
    "Total failures recorded by circuit breakers",
    ["service"],
)


# =============================================================================
# Tracking Context Managers
# =============================================================================


@contextmanager
def track_memory_operation(
    tier: str,
    operation: str,
) -> Generator[None, None, None]:
    """
    Context manager to track memory tier operations.

    Usage:
        with track_memory_operation("working", "search"):
            entries = cache.search_relevant(query, 3)
    """
    start_time = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time
        MEMORY_OPERATIONS.labels(
            tier=tier,
            operation=operation,
            status=status,
        ).inc()
        MEMORY_OPERATION_LATENCY.labels(
            tier=tier,
            operation=operation,
        ).observe(duration)


@contextmanager
def track_analysis() -> Generator[None, None, None]:
    """
    Context manager to track business analysis duration and status.

    Usage:
        with track_analysis():
            analysis = await engine.run_sub_analyses(...)
    """
    start_time = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        ANALYSIS_DURATION.observe(time.perf_counter() - start_time)
        ANALYSIS_TOTAL.labels(status=status).inc()


def record_search_fallback(reason: str) -> None:
    """Record a long-term search that fell back to lexical scoring."""
    MEMORY_SEARCH_FALLBACKS.labels(reason=reason).inc()


def record_analysis_cache(hit: bool) -> None:
    """Record an analysis cache hit or miss."""
    ANALYSIS_CACHE_TOTAL.labels(result="hit" if hit else "miss").inc()


def update_circuit_breaker_state(service: str, state: str) -> None:
    """
    Update circuit breaker state gauge.

    Args:
        service: Service name
        state: Circuit state ("closed", "half_open", "open")
    """
    state_map = {"closed": 0, "half_open": 1, "open": 2}
    CIRCUIT_BREAKER_STATE.labels(service=service).set(state_map.get(state, 0))


def record_circuit_breaker_failure(service: str) -> None:
    """Record a circuit breaker failure."""
    CIRCUIT_BREAKER_FAILURES.labels(service=service).inc()
