"""Unit tests for Prometheus metrics helpers and logging setup."""

import logging

import pytest
import structlog
from prometheus_client import REGISTRY

from orbit_core.logging_config import configure_logging
from orbit_core.memory.vector_store import VectorStore
from orbit_core.monitoring.metrics import (
    record_analysis_cache,
    track_memory_operation,
    update_circuit_breaker_state,
)


def sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetrics:
    """Tests for the tracking helpers."""

    def test_track_memory_operation_counts_errors(self):
        labels = {"tier": "test_tier", "operation": "search", "status": "error"}
        before = sample("orbit_memory_operations_total", labels)

        with pytest.raises(RuntimeError):
            with track_memory_operation("test_tier", "search"):
                raise RuntimeError("boom")

        assert sample("orbit_memory_operations_total", labels) == before + 1

    def test_analysis_cache_results(self):
        before = sample("orbit_analysis_cache_total", {"result": "hit"})

        record_analysis_cache(hit=True)

        assert sample("orbit_analysis_cache_total", {"result": "hit"}) == before + 1

    def test_circuit_breaker_state_gauge(self):
        update_circuit_breaker_state("gauge_test", "open")

        assert sample("orbit_circuit_breaker_state", {"service": "gauge_test"}) == 2

    @pytest.mark.asyncio
    async def test_search_fallback_recorded(self):
        """An unavailable provider shows up as a fallback reason."""

        class DownEmbedder:
            name = "down"

            async def embed(self, text):
                raise ConnectionError("unreachable")

            def similarity(self, a, b):
                return 0.0

        store = VectorStore(embedder=DownEmbedder())
        await store.store("promo")
        before = sample("orbit_memory_search_fallbacks_total", {"reason": "mixed_vectors"})

        await store.search("promo")

        assert sample("orbit_memory_search_fallbacks_total", {"reason": "mixed_vectors"}) == before + 1


class TestConfigureLogging:
    """Tests for structlog configuration."""

    @pytest.fixture(autouse=True)
    def restore_structlog(self):
        yield
        structlog.reset_defaults()

    def test_sets_level_and_configures_structlog(self, settings):
        tuned = settings.model_copy(update={"log_level": "WARNING", "log_json": False})

        configure_logging(tuned)

        assert logging.getLogger().level == logging.WARNING
        assert structlog.is_configured()
