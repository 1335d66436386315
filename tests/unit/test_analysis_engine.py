"""
Unit tests for the AnalysisEngine.

Tests cover:
- Result caching and TTL expiry
- Live metrics failures
- Performance, competitive, opportunity, risk and sentiment stages
- Forecasting and insight write-back
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from orbit_core.analysis.engine import AnalysisEngine
from orbit_core.analysis.providers import InMemoryMetricsProvider, StaticCompetitorResearch
from orbit_core.core.exceptions import MetricsProviderError
from orbit_core.models.analysis import BusinessProfile, CompetitorSnapshot, LiveMetrics, Product


def make_provider(metrics=None):
    provider = MagicMock()
    provider.get_current_metrics = AsyncMock(return_value=metrics)
    return provider


@pytest.fixture
def provider():
    return make_provider({"sales": 1200, "visitors": 400, "social_engagement": 90})


@pytest.fixture
def engine(memory, provider, settings, frozen_clock):
    return AnalysisEngine(memory, provider, settings=settings, clock=frozen_clock)


class TestCaching:
    """Tests for the per-request result cache."""

    @pytest.mark.asyncio
    async def test_second_call_returns_cached_object(self, engine, provider):
        """Within the TTL the identical result is returned without recomputing."""
        first = await engine.analyze_business_state("biz_123")
        second = await engine.analyze_business_state("biz_123")

        assert second is first
        assert provider.get_current_metrics.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self, engine, provider, frozen_clock):
        """A result older than the TTL is recomputed."""
        first = await engine.analyze_business_state("biz_123")
        frozen_clock.advance(seconds=301)

        second = await engine.analyze_business_state("biz_123")

        assert second is not first
        assert provider.get_current_metrics.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_key_includes_request_shape(self, engine, provider):
        """Different timeframes and comparative flags are cached separately."""
        await engine.analyze_business_state("biz_123", timeframe="7d")
        await engine.analyze_business_state("biz_123", timeframe="30d")
        await engine.analyze_business_state("biz_123", timeframe="7d", include_comparative=True)

        assert provider.get_current_metrics.await_count == 3

    @pytest.mark.asyncio
    async def test_clear_cache(self, engine, provider):
        await engine.analyze_business_state("biz_123")
        engine.clear_cache()
        await engine.analyze_business_state("biz_123")

        assert provider.get_current_metrics.await_count == 2


class TestLiveMetrics:
    """Tests for the one required input."""

    @pytest.mark.asyncio
    async def test_provider_failure_surfaces_and_is_not_cached(self, memory, settings, frozen_clock):
        """Provider errors become MetricsProviderError; nothing is cached."""
        provider = make_provider()
        provider.get_current_metrics.side_effect = TimeoutError("metrics API timed out")
        engine = AnalysisEngine(memory, provider, settings=settings, clock=frozen_clock)

        with pytest.raises(MetricsProviderError) as exc_info:
            await engine.analyze_business_state("biz_123")
        with pytest.raises(MetricsProviderError):
            await engine.analyze_business_state("biz_123")

        assert exc_info.value.business_id == "biz_123"
        assert provider.get_current_metrics.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_metrics_use_defaults(self, memory, settings, frozen_clock):
        """No metrics and no history yield neutral, low-confidence defaults."""
        engine = AnalysisEngine(memory, InMemoryMetricsProvider(), settings=settings, clock=frozen_clock)

        analysis = await engine.analyze_business_state("biz_new")

        assert analysis.metrics.customer_satisfaction == 0.8
        assert analysis.metrics.response_time == 120
        assert analysis.metrics.sales_trend.direction == "stable"
        assert analysis.metrics.sales_trend.confidence == 0.5
        assert analysis.metrics.content_performance.best_performing_type == "post"
        assert analysis.competitive.market_position == "unknown"
        assert analysis.sentiment.overall == 0.7
        assert analysis.risks == []
        assert [o.title for o in analysis.opportunities] == ["Good time to publish"]


class TestPerformance:
    """Tests for the performance stage."""

    def test_sales_trend_needs_two_points(self):
        trend = AnalysisEngine.sales_trend([5.0])

        assert trend.direction == "stable"
        assert trend.confidence == 0.5

    def test_sales_trend_late_jump(self):
        """Six flat days then a doubling reads as up."""
        trend = AnalysisEngine.sales_trend([100.0] * 6 + [200.0], "7d")

        assert trend.direction == "up"
        assert trend.confidence == pytest.approx(0.5)
        assert trend.percentage > 0

    def test_conversion_funnel_and_engagement(self):
        live = LiveMetrics(
            visitors=200,
            social_engagement=50,
            conversions=10,
            retention=5,
            referrals=2,
            likes=30,
            comments=10,
            shares=10,
            reach=500,
        )

        funnel = AnalysisEngine.conversion_funnel(live)

        assert funnel.consideration == pytest.approx(0.25)
        assert funnel.purchase == pytest.approx(0.05)
        assert funnel.retention == pytest.approx(0.5)
        assert funnel.advocacy == pytest.approx(0.2)
        assert AnalysisEngine.engagement_rate(live) == pytest.approx(0.1)

    def test_empty_metrics_do_not_divide_by_zero(self):
        live = LiveMetrics()

        assert AnalysisEngine.conversion_funnel(live).purchase == 0.0
        assert AnalysisEngine.engagement_rate(live) == 0.0

    @pytest.mark.asyncio
    async def test_history_and_content_performance(self, engine, memory, make_event):
        """Sales history drives the trend; content events drive content metrics."""
        for day, sales in enumerate([100, 110, 120, 130, 140, 150]):
            memory.episodic.log(make_event("performance_metric", ago=timedelta(days=6 - day), sales=sales))
        memory.episodic.log(make_event("content_generated", content_type="reel", reach=1000, engagement=100))
        memory.episodic.log(make_event("content_generated", content_type="post", reach=300, engagement=20))

        analysis = await engine.analyze_business_state("biz_123")

        assert analysis.metrics.sales_trend.direction == "up"
        content = analysis.metrics.content_performance
        assert content.best_performing_type == "reel"
        assert content.reach == 1300
        assert content.clicks == pytest.approx(36.0)


class TestCompetitivePosition:
    """Tests for the competitive stage."""

    @pytest.fixture
    def profile(self):
        return BusinessProfile(
            id="biz_123",
            name="Taqueria Sol",
            industry="Restaurant",
            products=[Product(name="Taco", price=10), Product(name="Burrito", price=12)],
        )

    @pytest.mark.asyncio
    async def test_leader_with_pricing_headroom(self, memory, settings, frozen_clock, profile, make_event):
        """Strong engagement and cheap prices: leader, increase prices, fill gaps."""
        research = StaticCompetitorResearch(
            {
                "restaurant": [
                    CompetitorSnapshot(name="A", pricing=20, engagement=100, content_types=["reels", "stories"]),
                    CompetitorSnapshot(name="B", pricing=20, engagement=100, content_types=["reels"]),
                ]
            }
        )
        memory.episodic.log(make_event("content_generated", content_type="reels"))
        engine = AnalysisEngine(
            memory,
            make_provider({"social_engagement": 150}),
            competitor_research=research,
            settings=settings,
            clock=frozen_clock,
        )

        analysis = await engine.analyze_business_state("biz_123", business_profile=profile)
        competitive = analysis.competitive

        assert competitive.market_position == "leader"
        assert competitive.pricing_comparison.market_average == 20
        assert competitive.pricing_comparison.recommendation == "increase"
        assert competitive.pricing_comparison.our_prices == {"Taco": 10, "Burrito": 12}
        assert competitive.content_gaps == ["stories"]
        assert "Create stories content" in competitive.opportunities
        assert "Expand into new markets" in competitive.opportunities

    @pytest.mark.asyncio
    async def test_no_competitors_is_unknown(self, memory, settings, frozen_clock, profile):
        engine = AnalysisEngine(
            memory,
            make_provider(),
            competitor_research=StaticCompetitorResearch(),
            settings=settings,
            clock=frozen_clock,
        )

        analysis = await engine.analyze_business_state("biz_123", business_profile=profile)

        assert analysis.competitive.market_position == "unknown"
        assert analysis.competitive.pricing_comparison.our_prices == {"Taco": 10, "Burrito": 12}

    @pytest.mark.asyncio
    async def test_research_failure_degrades_to_unknown(self, memory, settings, frozen_clock, profile):
        """A failing research backend leaves the rest of the analysis intact."""
        research = MagicMock()
        research.get_competitors = AsyncMock(side_effect=RuntimeError("market api down"))
        engine = AnalysisEngine(
            memory,
            make_provider({"sales": 900}),
            competitor_research=research,
            settings=settings,
            clock=frozen_clock,
        )

        analysis = await engine.analyze_business_state("biz_123", business_profile=profile)

        research.get_competitors.assert_awaited_once_with(profile)
        assert analysis.competitive.market_position == "unknown"
        assert analysis.competitive.pricing_comparison.our_prices == {}
        assert analysis.metrics.customer_satisfaction == 0.8

    @pytest.mark.parametrize(
        "own, expected",
        [(121, "leader"), (120, "competitive"), (81, "competitive"), (80, "challenger")],
    )
    def test_market_position_thresholds(self, own, expected):
        competitors = [CompetitorSnapshot(name="A", engagement=100)]

        assert AnalysisEngine.market_position(own, competitors) == expected

    def test_pricing_without_products_is_maintain(self):
        profile = BusinessProfile(id="b", name="n", industry="retail")

        pricing = AnalysisEngine.pricing_comparison(profile, [CompetitorSnapshot(name="A", pricing=50)])

        assert pricing.recommendation == "maintain"


class TestOpportunities:
    """Tests for opportunity detection."""

    @pytest.mark.asyncio
    async def test_lunch_window(self, engine, frozen_clock):
        """Wednesday noon offers a high-priority lunch promotion due in 2 hours."""
        now = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
        frozen_clock.now = now

        analysis = await engine.analyze_business_state("biz_123")

        first = analysis.opportunities[0]
        assert first.title == "Lunch promotion"
        assert first.priority == "high"
        assert first.deadline == now + timedelta(hours=2)
        assert [o.priority for o in analysis.opportunities] == ["high", "medium"]

    @pytest.mark.asyncio
    async def test_friday_evening(self, engine, frozen_clock):
        """Friday after 17:00 offers a weekend promotion due at end of day."""
        now = datetime(2026, 3, 6, 18, 30, tzinfo=timezone.utc)
        frozen_clock.now = now

        analysis = await engine.analyze_business_state("biz_123")

        weekend = [o for o in analysis.opportunities if o.title == "Weekend promotion"]
        assert len(weekend) == 1
        assert weekend[0].deadline == datetime(2026, 3, 6, 23, 59, 59, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_no_timing_outside_windows(self, engine):
        analysis = await engine.analyze_business_state("biz_123")

        assert all(o.type != "promotion" for o in analysis.opportunities)

    @pytest.mark.asyncio
    async def test_successful_pattern(self, engine, memory, make_event):
        """A frequent, reliable event type becomes a high-priority opportunity."""
        for _ in range(6):
            memory.episodic.log(make_event("promotion_created", ago=timedelta(days=3)))

        analysis = await engine.analyze_business_state("biz_123")

        pattern = [o for o in analysis.opportunities if o.title == "Repeat a successful pattern"]
        assert len(pattern) == 1
        assert pattern[0].priority == "high"
        assert pattern[0].estimated_impact == 100

    @pytest.mark.asyncio
    async def test_recent_content_suppresses_publish_nudge(self, engine, memory, make_event):
        memory.episodic.log(make_event("content_generated", ago=timedelta(hours=5)))

        analysis = await engine.analyze_business_state("biz_123")

        assert all(o.title != "Good time to publish" for o in analysis.opportunities)

    @pytest.mark.asyncio
    async def test_retention_counts_inactive_customers(self, engine, memory, make_event):
        """More than 10 customers silent for 30 days trigger reactivation."""
        for i in range(11):
            memory.episodic.log(make_event(ago=timedelta(days=40), customer_id=f"c{i}"))
        # c0 came back recently and is no longer inactive
        memory.episodic.log(make_event(ago=timedelta(days=1), customer_id="c0"))
        for i in range(11, 13):
            memory.episodic.log(make_event(ago=timedelta(days=35), customer_id=f"c{i}"))

        analysis = await engine.analyze_business_state("biz_123")

        retention = [o for o in analysis.opportunities if o.type == "customer_retention"]
        assert len(retention) == 1
        assert retention[0].actions[0].parameters["customer_count"] == 12

    @pytest.mark.asyncio
    async def test_ten_inactive_customers_are_not_enough(self, engine, memory, make_event):
        for i in range(10):
            memory.episodic.log(make_event(ago=timedelta(days=40), customer_id=f"c{i}"))

        analysis = await engine.analyze_business_state("biz_123")

        assert all(o.type != "customer_retention" for o in analysis.opportunities)


class TestRisks:
    """Tests for churn and sales-decline risks."""

    @pytest.mark.asyncio
    async def test_churn_critical(self, engine, memory, make_event):
        """6 of 10 recent interactions negative is a critical churn risk."""
        for i in range(10):
            memory.episodic.log(
                make_event(ago=timedelta(days=3), sentiment=0.1 if i < 6 else 0.9)
            )

        analysis = await engine.analyze_business_state("biz_123")

        churn = [r for r in analysis.risks if r.type == "customer_churn"]
        assert churn[0].severity == "critical"
        assert churn[0].probability == pytest.approx(0.6)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recent, severity", [(4, "critical"), (6, "high"), (8, "medium")])
    async def test_sales_decline(self, engine, memory, make_event, recent, severity):
        """Fewer sales than the previous fortnight is a graded risk."""
        for _ in range(10):
            memory.episodic.log(make_event("sale_detected", ago=timedelta(days=20)))
        for _ in range(recent):
            memory.episodic.log(make_event("sale_detected", ago=timedelta(days=2)))

        analysis = await engine.analyze_business_state("biz_123")

        decline = [r for r in analysis.risks if r.type == "sales_decline"]
        assert decline[0].severity == severity

    @pytest.mark.asyncio
    async def test_growth_is_not_a_risk(self, engine, memory, make_event):
        for _ in range(5):
            memory.episodic.log(make_event("sale_detected", ago=timedelta(days=20)))
        for _ in range(10):
            memory.episodic.log(make_event("sale_detected", ago=timedelta(days=2)))

        analysis = await engine.analyze_business_state("biz_123")

        assert analysis.risks == []

    @pytest.mark.asyncio
    async def test_risks_sorted_by_severity(self, engine, memory, make_event):
        for i in range(10):
            memory.episodic.log(make_event(ago=timedelta(days=3), sentiment=0.1 if i < 2 else 0.9))
        for _ in range(10):
            memory.episodic.log(make_event("sale_detected", ago=timedelta(days=20)))

        analysis = await engine.analyze_business_state("biz_123")

        assert [r.severity for r in analysis.risks] == ["critical", "medium"]


class TestSentiment:
    """Tests for sentiment aggregation."""

    @pytest.mark.asyncio
    async def test_aggregates_by_platform_and_day(self, engine, memory, make_event):
        memory.episodic.log(make_event(ago=timedelta(days=2), sentiment=0.8, platform="instagram"))
        memory.episodic.log(make_event(ago=timedelta(days=1), sentiment=0.6, platform="instagram"))
        memory.episodic.log(make_event(ago=timedelta(days=1), sentiment=0.4))

        sentiment = (await engine.analyze_business_state("biz_123")).sentiment

        assert sentiment.overall == pytest.approx(0.6)
        assert sentiment.by_source == pytest.approx({"instagram": 0.7, "unknown": 0.4})
        assert [t.period for t in sentiment.trends] == ["2026-03-02", "2026-03-03"]
        assert [t.volume for t in sentiment.trends] == [1, 2]
        assert sentiment.alerts == []

    @pytest.mark.asyncio
    async def test_negative_spike_alert(self, engine, memory, make_event, frozen_clock):
        """A sharp drop over the last 24 hours raises an alert."""
        for _ in range(20):
            memory.episodic.log(make_event(ago=timedelta(days=3), sentiment=0.9))
        for _ in range(6):
            memory.episodic.log(make_event(ago=timedelta(hours=2), sentiment=0.1))

        sentiment = (await engine.analyze_business_state("biz_123")).sentiment

        assert len(sentiment.alerts) == 1
        assert sentiment.alerts[0].type == "negative_spike"
        assert sentiment.alerts[0].score == pytest.approx(0.1)
        assert sentiment.alerts[0].timestamp == frozen_clock()

    @pytest.mark.asyncio
    async def test_five_recent_points_are_not_a_spike(self, engine, memory, make_event):
        for _ in range(20):
            memory.episodic.log(make_event(ago=timedelta(days=3), sentiment=0.9))
        for _ in range(5):
            memory.episodic.log(make_event(ago=timedelta(hours=2), sentiment=0.1))

        sentiment = (await engine.analyze_business_state("biz_123")).sentiment

        assert sentiment.alerts == []


class TestForecast:
    """Tests for metric forecasting."""

    @pytest.mark.asyncio
    async def test_insufficient_data(self, engine, memory, make_event):
        for i in range(6):
            memory.episodic.log(make_event("performance_metric", ago=timedelta(days=i), sales=100))

        forecast = await engine.forecast_metrics("biz_123")

        assert forecast.sufficient_data is False
        assert forecast.confidence == 0.1
        assert forecast.message == "Insufficient data"
        assert forecast.sales is None

    @pytest.mark.asyncio
    async def test_linear_extrapolation(self, engine, memory, make_event):
        """Sales growing 10/day are projected forward by the period."""
        for i in range(10):
            memory.episodic.log(
                make_event(
                    "performance_metric",
                    ago=timedelta(days=10 - i),
                    sales=100 + 10 * i,
                    social_engagement=50,
                )
            )

        forecast = await engine.forecast_metrics("biz_123", period="7d")

        assert forecast.sufficient_data is True
        assert forecast.period_days == 7
        assert forecast.sales.predicted == pytest.approx(260)
        assert forecast.engagement.predicted == pytest.approx(50)
        assert forecast.sales.confidence == pytest.approx(10 / 30)
        assert forecast.confidence == pytest.approx(10 / 30)


class TestInsights:
    """Tests for writing conclusions back into memory."""

    @pytest.mark.asyncio
    async def test_insights_are_stored(self, engine, memory, make_event, context):
        for day, sales in enumerate([100, 110, 120, 130, 140, 150]):
            memory.episodic.log(make_event("performance_metric", ago=timedelta(days=6 - day), sales=sales))

        await engine.analyze_business_state("biz_123", context=context)

        stored = {entry.content: entry.metadata for entry in memory.working_memory.get_all()}
        trend_insight = [content for content in stored if content.startswith("Sales trending up")]
        assert len(trend_insight) == 1
        assert "1 opportunities identified" in stored
        assert stored[trend_insight[0]]["type"] == "analysis_insight"
        assert stored[trend_insight[0]]["confidence"] == 0.8
