"""
Business Analysis Engine.

Turns recalled memory and live metrics into a BusinessAnalysis:

- performance: sales trend, conversion funnel, engagement, content performance
- competitive: market position, pricing recommendation, content gaps
- opportunities: pattern, content-cadence, timing and retention opportunities
- risks: customer churn and sales decline
- sentiment: overall, per platform, daily trend, negative-spike alerts

Results are cached per (business_id, timeframe, include_comparative) for a
short TTL. Live metrics are the only required input: if the metrics provider
fails the whole call fails with MetricsProviderError. Every other gap in the
data produces a low-confidence default instead of an error.

Usage:
    engine = AnalysisEngine(memory, metrics_provider)
    analysis = await engine.analyze_business_state("biz_1", timeframe="7d")
"""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import structlog

from orbit_core.analysis.providers import (
    DEFAULT_COMPETITOR_CONTENT_TYPES,
    CompetitorResearch,
    MetricsProvider,
)
from orbit_core.analysis.trends import classify_slope, linear_trend, mean, parse_days
from orbit_core.config.settings import Settings, get_settings
from orbit_core.core.exceptions import MetricsProviderError
from orbit_core.memory.coordinator import MemoryCoordinator
from orbit_core.models.analysis import (
    PRIORITY_RANK,
    Action,
    AnalysisRequest,
    BusinessAnalysis,
    BusinessProfile,
    CompetitiveAnalysis,
    CompetitorSnapshot,
    ContentMetrics,
    ConversionData,
    Forecast,
    LiveMetrics,
    MetricForecast,
    Opportunity,
    PerformanceMetrics,
    PricingData,
    Risk,
    SentimentAlert,
    SentimentAnalysis,
    SentimentTrend,
    TrendAnalysis,
)
from orbit_core.models.memory import AgentContext, AgentEvent, EventFilter, EventType, utcnow
from orbit_core.monitoring.metrics import record_analysis_cache, track_analysis

logger = structlog.get_logger(__name__)

NEGATIVE_SENTIMENT = 0.3
NEUTRAL_SENTIMENT = 0.7
SENTIMENT_ALERT_DROP = 0.3
SENTIMENT_ALERT_MIN_SAMPLES = 5
PATTERN_MIN_SUCCESS_RATE = 0.7
PATTERN_MIN_FREQUENCY = 5
RETENTION_MIN_INACTIVE = 10
FORECAST_MIN_POINTS = 7
INSIGHT_CONFIDENCE = 0.8


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _number(value: Any) -> float:
    """Numeric value of a metric field; anything non-numeric counts as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _sentiment(event: AgentEvent) -> Optional[float]:
    """Sentiment score carried by an interaction event, if any."""
    value = event.data.get("sentiment")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _severity(value: float, medium: float, high: float, critical: float) -> str:
    if value > critical:
        return "critical"
    if value > high:
        return "high"
    if value > medium:
        return "medium"
    return "low"


class AnalysisEngine:
    """
    Multi-stage business analysis over the memory system.

    Args:
        memory: Memory coordinator to read events from and write insights to.
        metrics_provider: Source of live metrics.
        competitor_research: Optional competitor lookup. Without it the
            competitive position is reported as "unknown".
        settings: Provides the cache TTL. Defaults to get_settings().
        cache_ttl_seconds: Overrides the configured cache TTL.
        clock: Returns the current aware datetime. Timing opportunities use
            the hour and weekday of this clock's timezone.
    """

    def __init__(
        self,
        memory: MemoryCoordinator,
        metrics_provider: MetricsProvider,
        competitor_research: Optional[CompetitorResearch] = None,
        settings: Optional[Settings] = None,
        cache_ttl_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.memory = memory
        self.metrics_provider = metrics_provider
        self.competitor_research = competitor_research
        if cache_ttl_seconds is None:
            cache_ttl_seconds = (settings or get_settings()).analysis_cache_ttl_seconds
        self.cache_ttl = timedelta(seconds=cache_ttl_seconds)
        self._clock = clock
        self._cache: dict[tuple[str, str, bool], tuple[BusinessAnalysis, datetime]] = {}

    # =========================================================================
    # Entry Point
    # =========================================================================

    async def analyze_business_state(
        self,
        business_id: str,
        timeframe: str = "7d",
        include_comparative: bool = False,
        business_profile: Optional[BusinessProfile] = None,
        context: Optional[AgentContext] = None,
    ) -> BusinessAnalysis:
        """
        Analyze the current state of a business.

        A cached result younger than the TTL is returned as-is without
        running any sub-analysis.

        Raises:
            MetricsProviderError: If live metrics could not be fetched.
        """
        request = AnalysisRequest(
            business_id=business_id,
            timeframe=timeframe,
            include_comparative=include_comparative,
            business_profile=business_profile,
            context=context,
        )

        cached = self._cache.get(request.cache_key)
        if cached is not None and self._clock() - cached[1] < self.cache_ttl:
            record_analysis_cache(hit=True)
            logger.debug("analysis_cache_hit", business_id=business_id, timeframe=timeframe)
            return cached[0]
        record_analysis_cache(hit=False)

        logger.info("business_analysis_started", business_id=business_id, timeframe=timeframe)
        now = self._clock()

        try:
            with track_analysis():
                live = await self._fetch_live_metrics(business_id)
                metrics, competitive, opportunities, risks, sentiment = await asyncio.gather(
                    self._analyze_performance(request, live, now),
                    self._analyze_competitive_position(request, live, now),
                    self._identify_opportunities(request, now),
                    self._assess_risks(request, now),
                    self._analyze_sentiment(request, now),
                )
                analysis = BusinessAnalysis(
                    metrics=metrics,
                    competitive=competitive,
                    opportunities=opportunities,
                    risks=risks,
                    sentiment=sentiment,
                )
                await self._store_insights(analysis, request, now)
        except Exception as e:
            logger.error(
                "business_analysis_failed",
                business_id=business_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self._cache[request.cache_key] = (analysis, now)

        logger.info(
            "business_analysis_completed",
            business_id=business_id,
            opportunities=len(opportunities),
            risks=len(risks),
        )
        return analysis

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _fetch_live_metrics(self, business_id: str) -> LiveMetrics:
        try:
            raw = await self.metrics_provider.get_current_metrics(business_id)
            return LiveMetrics.from_raw(raw)
        except MetricsProviderError:
            raise
        except Exception as e:
            raise MetricsProviderError(
                business_id,
                f"Failed to fetch live metrics: {e}",
                {"error_type": type(e).__name__},
            ) from e

    # =========================================================================
    # Event Helpers
    # =========================================================================

    def _events(
        self,
        business_id: str,
        event_type: EventType,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[AgentEvent]:
        """Events of one type for a business, most recent first."""
        return self.memory.episodic.query(
            EventFilter(
                type=event_type.value,
                business_id=business_id,
                date_from=date_from,
                date_to=date_to,
            )
        )

    def _historical_metrics(self, business_id: str, since: datetime) -> list[dict[str, Any]]:
        """performance_metric event payloads since ``since``, oldest first."""
        events = self._events(business_id, EventType.PERFORMANCE_METRIC, date_from=since)
        return [event.data for event in reversed(events)]

    # =========================================================================
    # Performance
    # =========================================================================

    async def _analyze_performance(
        self,
        request: AnalysisRequest,
        live: LiveMetrics,
        now: datetime,
    ) -> PerformanceMetrics:
        since = now - timedelta(days=parse_days(request.timeframe))
        history = self._historical_metrics(request.business_id, since)

        return PerformanceMetrics(
            sales_trend=self.sales_trend([_number(h.get("sales")) for h in history], request.timeframe),
            engagement_rate=self.engagement_rate(live),
            conversion_funnel=self.conversion_funnel(live),
            customer_satisfaction=live.customer_satisfaction,
            response_time=live.avg_response_time,
            content_performance=self._content_performance(request.business_id, since),
        )

    @staticmethod
    def sales_trend(sales: list[float], timeframe: str = "7d") -> TrendAnalysis:
        """
        Classify the sales direction from chronological sales figures.

        The OLS slope of the last 7 points decides the direction; confidence
        grows with history depth and is capped at 0.9.
        """
        if len(sales) < 2:
            return TrendAnalysis(direction="stable", percentage=0.0, timeframe=timeframe, confidence=0.5)

        slope = linear_trend(sales[-7:])
        return TrendAnalysis(
            direction=classify_slope(slope),
            percentage=abs(slope * 100),
            timeframe=timeframe,
            confidence=min(0.9, len(sales) / 14),
        )

    @staticmethod
    def conversion_funnel(live: LiveMetrics) -> ConversionData:
        visitors = max(live.visitors, 1)
        purchases = max(live.conversions, 1)
        return ConversionData(
            awareness=1.0,
            consideration=live.social_engagement / visitors,
            purchase=live.conversions / visitors,
            retention=live.retention / purchases,
            advocacy=live.referrals / purchases,
        )

    @staticmethod
    def engagement_rate(live: LiveMetrics) -> float:
        """(likes + comments + shares) over reach, falling back to visitors."""
        interactions = live.likes + live.comments + live.shares
        audience = live.reach or live.visitors or 1
        return interactions / audience

    def _content_performance(self, business_id: str, since: datetime) -> ContentMetrics:
        events = self._events(business_id, EventType.CONTENT_GENERATED, date_from=since)
        if not events:
            return ContentMetrics()

        by_type: dict[str, dict[str, float]] = defaultdict(
            lambda: {"reach": 0.0, "engagement": 0.0, "count": 0}
        )
        for event in events:
            stats = by_type[event.data.get("content_type") or "post"]
            stats["reach"] += _number(event.data.get("reach"))
            stats["engagement"] += _number(event.data.get("engagement"))
            stats["count"] += 1

        best_type = "post"
        best_average = 0.0
        for content_type, stats in by_type.items():
            average = stats["engagement"] / stats["count"]
            if average > best_average:
                best_average = average
                best_type = content_type

        total_reach = sum(stats["reach"] for stats in by_type.values())
        total_engagement = sum(stats["engagement"] for stats in by_type.values())

        # clicks/shares/saves are estimated from engagement
        return ContentMetrics(
            reach=total_reach,
            engagement=total_engagement,
            clicks=total_engagement * 0.3,
            shares=total_engagement * 0.1,
            saves=total_engagement * 0.05,
            best_performing_type=best_type,
        )

    # =========================================================================
    # Competitive Position
    # =========================================================================

    async def _analyze_competitive_position(
        self,
        request: AnalysisRequest,
        live: LiveMetrics,
        now: datetime,
    ) -> CompetitiveAnalysis:
        profile = request.business_profile
        if profile is None or self.competitor_research is None:
            return CompetitiveAnalysis()

        try:
            competitors = await self.competitor_research.get_competitors(profile)
        except Exception as e:
            logger.warning(
                "competitor_research_failed",
                business_id=request.business_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CompetitiveAnalysis()

        our_prices = {product.name: product.price for product in profile.products}
        if not competitors:
            return CompetitiveAnalysis(pricing_comparison=PricingData(our_prices=our_prices))

        position = self.market_position(live.social_engagement, competitors)
        pricing = self.pricing_comparison(profile, competitors)

        since = now - timedelta(days=parse_days(request.timeframe))
        our_types = {
            event.data.get("content_type") or "post"
            for event in self._events(request.business_id, EventType.CONTENT_GENERATED, date_from=since)
        }
        competitor_types: list[str] = []
        for competitor in competitors:
            for content_type in competitor.content_types:
                if content_type not in competitor_types:
                    competitor_types.append(content_type)
        if not competitor_types:
            competitor_types = list(DEFAULT_COMPETITOR_CONTENT_TYPES)
        content_gaps = [content_type for content_type in competitor_types if content_type not in our_types]

        opportunities: list[str] = []
        if pricing.recommendation == "increase":
            opportunities.append("Room to raise prices toward the market average")
        elif pricing.recommendation == "decrease":
            opportunities.append("Compete with more aggressive pricing")
        opportunities.extend(f"Create {gap} content" for gap in content_gaps)
        if position == "challenger":
            opportunities.append("Exploit weaknesses of the market leaders")
            opportunities.append("Focus on a specific niche")
        elif position == "leader":
            opportunities.append("Expand into new markets")
            opportunities.append("Grow market share")

        return CompetitiveAnalysis(
            market_position=position,
            pricing_comparison=pricing,
            content_gaps=content_gaps,
            opportunities=opportunities,
        )

    @staticmethod
    def market_position(own_engagement: float, competitors: list[CompetitorSnapshot]) -> str:
        """leader above 120% of the competitor average, challenger at or below 80%."""
        if not competitors:
            return "unknown"
        average = mean([competitor.engagement for competitor in competitors])
        if own_engagement > average * 1.2:
            return "leader"
        if own_engagement > average * 0.8:
            return "competitive"
        return "challenger"

    @staticmethod
    def pricing_comparison(
        profile: BusinessProfile,
        competitors: list[CompetitorSnapshot],
    ) -> PricingData:
        market_average = mean([competitor.pricing for competitor in competitors])
        our_prices = {product.name: product.price for product in profile.products}

        recommendation = "maintain"
        if profile.products and competitors:
            our_average = mean([product.price for product in profile.products])
            if our_average < market_average * 0.8:
                recommendation = "increase"
            elif our_average > market_average * 1.2:
                recommendation = "decrease"

        return PricingData(
            our_prices=our_prices,
            competitor_prices={competitor.name: competitor.pricing for competitor in competitors},
            market_average=market_average,
            recommendation=recommendation,
        )

    # =========================================================================
    # Opportunities
    # =========================================================================

    async def _identify_opportunities(self, request: AnalysisRequest, now: datetime) -> list[Opportunity]:
        business_id = request.business_id
        opportunities: list[Opportunity] = []
        opportunities.extend(self._pattern_opportunities(business_id))
        opportunities.extend(self._content_opportunities(business_id, now))
        opportunities.extend(self._timing_opportunities(now))
        opportunities.extend(self._retention_opportunities(business_id, now))

        opportunities.sort(key=lambda opportunity: PRIORITY_RANK[opportunity.priority], reverse=True)
        return opportunities

    def _pattern_opportunities(self, business_id: str) -> list[Opportunity]:
        opportunities = []
        for pattern in self.memory.find_patterns(business_id):
            if pattern.success_rate > PATTERN_MIN_SUCCESS_RATE and pattern.frequency > PATTERN_MIN_FREQUENCY:
                opportunities.append(
                    Opportunity(
                        id=_new_id("pattern"),
                        type="content_creation",
                        title="Repeat a successful pattern",
                        description=f'"{pattern.type}" succeeds {pattern.success_rate * 100:.1f}% of the time',
                        priority="high",
                        estimated_impact=pattern.success_rate * 100,
                        effort="low",
                        actions=[
                            Action(
                                id=_new_id("action"),
                                type="create_content",
                                title="Create content based on the successful pattern",
                                description=f"Apply pattern {pattern.type}",
                                parameters={"pattern": pattern.type},
                                priority="high",
                                estimated_duration=30,
                            )
                        ],
                    )
                )
        return opportunities

    def _content_opportunities(self, business_id: str, now: datetime) -> list[Opportunity]:
        recent = self._events(business_id, EventType.CONTENT_GENERATED, date_from=now - timedelta(hours=48))
        if recent:
            return []
        return [
            Opportunity(
                id=_new_id("content"),
                type="content_creation",
                title="Good time to publish",
                description="Nothing has been published in the last 48 hours.",
                priority="medium",
                estimated_impact=60,
                effort="medium",
                actions=[
                    Action(
                        id=_new_id("action"),
                        type="create_content",
                        title="Create new content",
                        description="Generate and publish relevant content",
                        parameters={"urgency": "medium"},
                        priority="medium",
                        estimated_duration=45,
                    )
                ],
            )
        ]

    def _timing_opportunities(self, now: datetime) -> list[Opportunity]:
        opportunities = []

        if 11 <= now.hour <= 13:
            opportunities.append(
                Opportunity(
                    id=_new_id("timing"),
                    type="promotion",
                    title="Lunch promotion",
                    description="Lunch hours are the best window to promote lunch offers",
                    priority="high",
                    estimated_impact=80,
                    effort="low",
                    deadline=now + timedelta(hours=2),
                    actions=[
                        Action(
                            id=_new_id("action"),
                            type="create_promotion",
                            title="Create lunch promotion",
                            description="Special offer for the lunch window",
                            parameters={"type": "lunch_special", "urgency": "high"},
                            priority="high",
                            estimated_duration=15,
                        )
                    ],
                )
            )

        if now.weekday() == 4 and now.hour >= 17:
            opportunities.append(
                Opportunity(
                    id=_new_id("weekend"),
                    type="promotion",
                    title="Weekend promotion",
                    description="Friday evening is the moment to launch weekend promotions",
                    priority="medium",
                    estimated_impact=70,
                    effort="medium",
                    deadline=now.replace(hour=23, minute=59, second=59, microsecond=0),
                    actions=[
                        Action(
                            id=_new_id("action"),
                            type="create_promotion",
                            title="Create weekend promotion",
                            description="Special offer for the weekend",
                            parameters={"type": "weekend_special"},
                            priority="medium",
                            estimated_duration=30,
                        )
                    ],
                )
            )

        return opportunities

    def _retention_opportunities(self, business_id: str, now: datetime) -> list[Opportunity]:
        cutoff = now - timedelta(days=30)
        last_seen: dict[str, datetime] = {}
        for event in self._events(business_id, EventType.CUSTOMER_INTERACTION):
            customer = str(event.data.get("customer_id") or event.id)
            if customer not in last_seen or event.timestamp > last_seen[customer]:
                last_seen[customer] = event.timestamp

        inactive = sum(1 for seen in last_seen.values() if seen <= cutoff)
        if inactive <= RETENTION_MIN_INACTIVE:
            return []

        return [
            Opportunity(
                id=_new_id("retention"),
                type="customer_retention",
                title="Reactivate inactive customers",
                description=f"{inactive} customers without activity in the last 30 days",
                priority="medium",
                estimated_impact=65,
                effort="medium",
                actions=[
                    Action(
                        id=_new_id("action"),
                        type="send_message",
                        title="Reactivation campaign",
                        description="Send personalized messages to inactive customers",
                        parameters={"type": "reactivation_campaign", "customer_count": inactive},
                        priority="medium",
                        estimated_duration=60,
                    )
                ],
            )
        ]

    # =========================================================================
    # Risks
    # =========================================================================

    async def _assess_risks(self, request: AnalysisRequest, now: datetime) -> list[Risk]:
        risks = [
            self._churn_risk(request.business_id, now),
            self._sales_decline_risk(request.business_id, now),
        ]
        risks = [risk for risk in risks if risk.severity != "low"]
        risks.sort(key=lambda risk: PRIORITY_RANK[risk.severity], reverse=True)
        return risks

    def _churn_risk(self, business_id: str, now: datetime) -> Risk:
        interactions = self._events(
            business_id,
            EventType.CUSTOMER_INTERACTION,
            date_from=now - timedelta(days=14),
        )
        scores = [_sentiment(event) for event in interactions]
        negative = [score for score in scores if score is not None and score < NEGATIVE_SENTIMENT]
        probability = len(negative) / max(len(interactions), 1)

        return Risk(
            id=_new_id("churn_risk"),
            type="customer_churn",
            severity=_severity(probability, medium=0.1, high=0.3, critical=0.5),
            probability=probability,
            description=f"{probability * 100:.1f}% of recent interactions were negative",
            impact="Potential loss of customers and lower sales",
            mitigation=[
                Action(
                    id=_new_id("mitigation"),
                    type="send_message",
                    title="Retention campaign",
                    description="Contact at-risk customers with personalized offers",
                    parameters={"type": "retention", "urgency": "high"},
                    priority="high",
                    estimated_duration=90,
                )
            ],
        )

    def _sales_decline_risk(self, business_id: str, now: datetime) -> Risk:
        sales = self._events(business_id, EventType.SALE_DETECTED, date_from=now - timedelta(days=30))
        two_weeks_ago = now - timedelta(days=14)
        four_weeks_ago = now - timedelta(days=28)

        recent = sum(1 for event in sales if event.timestamp > two_weeks_ago)
        previous = sum(1 for event in sales if four_weeks_ago < event.timestamp <= two_weeks_ago)
        decline = (previous - recent) / previous * 100 if previous > 0 else 0.0

        return Risk(
            id=_new_id("sales_decline"),
            type="sales_decline",
            severity=_severity(decline, medium=15, high=30, critical=50),
            probability=min(max(decline / 100, 0.0), 1.0),
            description=f"Sales dropped {decline:.1f}% over the last 2 weeks",
            impact="Lower revenue and slower business growth",
            mitigation=[
                Action(
                    id=_new_id("mitigation"),
                    type="create_promotion",
                    title="Recovery promotion",
                    description="Launch an urgent promotion to win back sales",
                    parameters={"type": "recovery", "discount": 20},
                    priority="critical",
                    estimated_duration=30,
                )
            ],
        )

    # =========================================================================
    # Sentiment
    # =========================================================================

    async def _analyze_sentiment(self, request: AnalysisRequest, now: datetime) -> SentimentAnalysis:
        interactions = self._events(
            request.business_id,
            EventType.CUSTOMER_INTERACTION,
            date_from=now - timedelta(days=7),
        )
        if not interactions:
            return SentimentAnalysis(overall=NEUTRAL_SENTIMENT)

        scored: list[tuple[AgentEvent, float]] = []
        for event in interactions:
            score = _sentiment(event)
            if score is not None:
                scored.append((event, score))

        overall = mean([score for _, score in scored], default=NEUTRAL_SENTIMENT)

        by_platform: dict[str, list[float]] = defaultdict(list)
        by_day: dict[str, list[float]] = defaultdict(list)
        for event, score in scored:
            by_platform[str(event.data.get("platform") or "unknown")].append(score)
            by_day[event.timestamp.date().isoformat()].append(score)

        trends = [
            SentimentTrend(period=day, score=mean(scores), volume=len(scores))
            for day, scores in sorted(by_day.items())
        ]

        alerts = []
        recent = [score for event, score in scored if event.timestamp > now - timedelta(hours=24)]
        if len(recent) > SENTIMENT_ALERT_MIN_SAMPLES:
            recent_average = mean(recent)
            if recent_average < overall - SENTIMENT_ALERT_DROP:
                alerts.append(
                    SentimentAlert(
                        type="negative_spike",
                        score=recent_average,
                        source="recent_interactions",
                        timestamp=now,
                    )
                )
                logger.warning(
                    "sentiment_negative_spike",
                    business_id=request.business_id,
                    recent=recent_average,
                    overall=overall,
                )

        return SentimentAnalysis(
            overall=overall,
            by_source={platform: mean(scores) for platform, scores in by_platform.items()},
            trends=trends,
            alerts=alerts,
        )

    # =========================================================================
    # Insights and Forecasting
    # =========================================================================

    async def _store_insights(
        self,
        analysis: BusinessAnalysis,
        request: AnalysisRequest,
        now: datetime,
    ) -> list[str]:
        """Write textual conclusions back into memory as analysis_insight entries."""
        insights: list[str] = []

        trend = analysis.metrics.sales_trend
        if trend.direction == "up":
            insights.append(f"Sales trending up (+{trend.percentage:.1f}%)")
        if analysis.opportunities:
            insights.append(f"{len(analysis.opportunities)} opportunities identified")
        if any(risk.severity in ("high", "critical") for risk in analysis.risks):
            insights.append("Significant risks detected that need attention")

        for insight in insights:
            await self.memory.store(
                insight,
                {
                    "type": "analysis_insight",
                    "business_id": request.business_id,
                    "timestamp": now.isoformat(),
                    "confidence": INSIGHT_CONFIDENCE,
                },
                context=request.context,
            )
        return insights

    async def forecast_metrics(self, business_id: str, period: str = "7d") -> Forecast:
        """
        Extrapolate sales and social engagement ``period`` days ahead.

        Uses the linear trend of the last 30 days of performance_metric events.
        Fewer than 7 data points yields an insufficient-data forecast with
        confidence 0.1.
        """
        days = parse_days(period)
        history = self._historical_metrics(business_id, self._clock() - timedelta(days=30))

        if len(history) < FORECAST_MIN_POINTS:
            return Forecast(
                period_days=days,
                sufficient_data=False,
                confidence=0.1,
                message="Insufficient data",
            )

        sales = [_number(h.get("sales")) for h in history]
        engagement = [_number(h.get("social_engagement")) for h in history]

        sales_forecast = MetricForecast(
            predicted=max(0.0, sales[-1] + linear_trend(sales) * days),
            confidence=min(0.8, len(history) / 30),
        )
        engagement_forecast = MetricForecast(
            predicted=max(0.0, engagement[-1] + linear_trend(engagement) * days),
            confidence=min(0.7, len(history) / 30),
        )

        return Forecast(
            period_days=days,
            sufficient_data=True,
            confidence=min(sales_forecast.confidence, engagement_forecast.confidence),
            sales=sales_forecast,
            engagement=engagement_forecast,
        )
