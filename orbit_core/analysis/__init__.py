"""
Business analysis for Orbit Core.

- AnalysisEngine: cached, multi-stage analysis over the memory system
- MetricsProvider / CompetitorResearch: collaborator contracts
- trends: OLS slope and period parsing helpers
"""

from orbit_core.analysis.engine import AnalysisEngine
from orbit_core.analysis.providers import (
    CompetitorResearch,
    InMemoryMetricsProvider,
    MetricsProvider,
    StaticCompetitorResearch,
)
from orbit_core.analysis.trends import classify_slope, linear_trend, parse_days

__all__ = [
    "AnalysisEngine",
    "CompetitorResearch",
    "InMemoryMetricsProvider",
    "MetricsProvider",
    "StaticCompetitorResearch",
    "classify_slope",
    "linear_trend",
    "parse_days",
]
