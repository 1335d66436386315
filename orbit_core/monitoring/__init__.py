"""
Monitoring and observability for Orbit Core.

Provides Prometheus metrics for tracking memory tier operations,
search fallbacks and business analysis performance.

Usage:
    from orbit_core.monitoring import track_memory_operation

    with track_memory_operation("episodic", "query"):
        events = store.query(event_filter)
"""

from orbit_core.monitoring.metrics import (
    ANALYSIS_CACHE_TOTAL,
    ANALYSIS_DURATION,
    ANALYSIS_TOTAL,
    CIRCUIT_BREAKER_FAILURES,
    CIRCUIT_BREAKER_STATE,
    MEMORY_OPERATION_LATENCY,
    MEMORY_OPERATIONS,
    MEMORY_SEARCH_FALLBACKS,
    record_analysis_cache,
    record_circuit_breaker_failure,
    record_search_fallback,
    track_analysis,
    track_memory_operation,
    update_circuit_breaker_state,
)

__all__ = [
    # Prometheus metrics
    "ANALYSIS_CACHE_TOTAL",
    "ANALYSIS_DURATION",
    "ANALYSIS_TOTAL",
    "CIRCUIT_BREAKER_FAILURES",
    "CIRCUIT_BREAKER_STATE",
    "MEMORY_OPERATION_LATENCY",
    "MEMORY_OPERATIONS",
    "MEMORY_SEARCH_FALLBACKS",
    # Context managers
    "track_analysis",
    "track_memory_operation",
    # Helper functions
    "record_analysis_cache",
    "record_circuit_breaker_failure",
    "record_search_fallback",
    "update_circuit_breaker_state",
]
