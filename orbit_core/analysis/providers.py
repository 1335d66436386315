"""
Collaborator contracts consumed by the analysis engine.

- MetricsProvider: live business metrics (required)
- CompetitorResearch: competitor discovery and figures (optional)

In-memory implementations are provided for local runs and tests.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

import structlog

from orbit_core.models.analysis import BusinessProfile, CompetitorSnapshot, LiveMetrics

logger = structlog.get_logger(__name__)

RawMetrics = Union[LiveMetrics, Mapping[str, Any], None]

DEFAULT_COMPETITOR_CONTENT_TYPES = ["reels", "stories", "carousels", "videos", "tutorials"]


@runtime_checkable
class MetricsProvider(Protocol):
    """Source of current metrics for a business."""

    async def get_current_metrics(self, business_id: str) -> RawMetrics:
        ...


@runtime_checkable
class CompetitorResearch(Protocol):
    """Market research collaborator keyed by the business profile."""

    async def get_competitors(self, profile: BusinessProfile) -> list[CompetitorSnapshot]:
        ...


class InMemoryMetricsProvider:
    """Metrics held in a dict, keyed by business id. Unknown businesses get None."""

    def __init__(self, metrics: Optional[dict[str, RawMetrics]] = None) -> None:
        self._metrics: dict[str, RawMetrics] = dict(metrics or {})

    def set_metrics(self, business_id: str, metrics: RawMetrics) -> None:
        self._metrics[business_id] = metrics

    async def get_current_metrics(self, business_id: str) -> RawMetrics:
        return self._metrics.get(business_id)


class StaticCompetitorResearch:
    """
    Competitor figures looked up by industry.

    Industries without an entry yield no competitors, which the engine reports
    as an "unknown" market position.
    """

    def __init__(self, by_industry: Optional[dict[str, list[CompetitorSnapshot]]] = None) -> None:
        self._by_industry = {
            industry.lower(): list(snapshots)
            for industry, snapshots in (by_industry or {}).items()
        }

    async def get_competitors(self, profile: BusinessProfile) -> list[CompetitorSnapshot]:
        competitors = self._by_industry.get(profile.industry.lower(), [])
        logger.debug(
            "competitors_identified",
            business_id=profile.id,
            industry=profile.industry,
            count=len(competitors),
        )
        return competitors
