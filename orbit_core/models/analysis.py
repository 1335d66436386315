"""
Pydantic models for business analysis.

Covers the live metrics contract, the competitive inputs, and every piece of
the BusinessAnalysis aggregate produced by the AnalysisEngine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from orbit_core.models.memory import AgentContext

TrendDirection = Literal["up", "down", "stable"]
Priority = Literal["low", "medium", "high", "critical"]
Effort = Literal["low", "medium", "high"]
MarketPosition = Literal["leader", "competitive", "challenger", "unknown"]
PricingRecommendation = Literal["increase", "decrease", "maintain"]

PRIORITY_RANK: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}


# =============================================================================
# Inputs
# =============================================================================


class LiveMetrics(BaseModel):
    """Current metrics reported by the live metrics provider.

    Absent or null fields fall back to zero, except ``customer_satisfaction``
    (0.8) and ``avg_response_time`` (120 seconds).
    """

    model_config = ConfigDict(extra="ignore")

    sales: float = 0.0
    orders: float = 0
    visitors: float = 0
    page_views: float = 0
    social_engagement: float = 0.0
    customer_satisfaction: float = 0.8
    avg_response_time: float = 120.0
    conversions: float = 0

    # Optional funnel and social detail
    likes: float = 0
    comments: float = 0
    shares: float = 0
    reach: float = 0
    inquiries: float = 0
    retention: float = 0
    referrals: float = 0

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "LiveMetrics":
        """Build from a provider payload, dropping null values so defaults apply."""
        if raw is None:
            return cls()
        if isinstance(raw, LiveMetrics):
            return raw
        return cls(**{key: value for key, value in raw.items() if value is not None})


class Product(BaseModel):
    """A product or service the business sells."""

    name: str
    price: float = Field(0.0, ge=0)
    category: Optional[str] = None


class BusinessProfile(BaseModel):
    """Static description of a business."""

    id: str
    name: str
    industry: str
    location: Optional[str] = None
    target_audience: Optional[str] = None
    products: list[Product] = Field(default_factory=list)


class CompetitorSnapshot(BaseModel):
    """Observed figures for one competitor."""

    name: str
    pricing: float = 0.0
    engagement: float = 0.0
    content_frequency: int = 0
    main_platforms: list[str] = Field(default_factory=list)
    content_types: list[str] = Field(default_factory=list)


class AnalysisRequest(BaseModel):
    """Parameters of one analyze_business_state call."""

    business_id: str
    timeframe: str = "7d"
    include_comparative: bool = False
    business_profile: Optional[BusinessProfile] = None
    context: Optional[AgentContext] = None

    @property
    def cache_key(self) -> tuple[str, str, bool]:
        return (self.business_id, self.timeframe, self.include_comparative)


# =============================================================================
# Performance
# =============================================================================


class TrendAnalysis(BaseModel):
    direction: TrendDirection = "stable"
    percentage: float = 0.0
    timeframe: str = "7d"
    confidence: float = Field(0.5, ge=0.0, le=1.0)


class ConversionData(BaseModel):
    """Funnel stages as ratios of visitors (retention/advocacy of purchases)."""

    awareness: float = 1.0
    consideration: float = 0.0
    purchase: float = 0.0
    retention: float = 0.0
    advocacy: float = 0.0


class ContentMetrics(BaseModel):
    reach: float = 0.0
    engagement: float = 0.0
    clicks: float = 0.0
    shares: float = 0.0
    saves: float = 0.0
    best_performing_type: str = "post"


class PerformanceMetrics(BaseModel):
    sales_trend: TrendAnalysis
    engagement_rate: float
    conversion_funnel: ConversionData
    customer_satisfaction: float
    response_time: float
    content_performance: ContentMetrics


# =============================================================================
# Competitive
# =============================================================================


class PricingData(BaseModel):
    our_prices: dict[str, float] = Field(default_factory=dict)
    competitor_prices: dict[str, float] = Field(default_factory=dict)
    market_average: float = 0.0
    recommendation: PricingRecommendation = "maintain"


class CompetitiveAnalysis(BaseModel):
    market_position: MarketPosition = "unknown"
    pricing_comparison: PricingData = Field(default_factory=PricingData)
    content_gaps: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)


# =============================================================================
# Opportunities and Risks
# =============================================================================


class Action(BaseModel):
    """A concrete step the agent can take."""

    id: str
    type: str
    title: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    priority: Priority = "medium"
    estimated_duration: int = Field(30, description="Minutes")
    deadline: Optional[datetime] = None
    status: Literal["pending", "in_progress", "completed", "failed"] = "pending"


class Opportunity(BaseModel):
    id: str
    type: str
    title: str
    description: str
    priority: Priority
    estimated_impact: float = Field(..., ge=0, le=100)
    effort: Effort = "medium"
    deadline: Optional[datetime] = None
    actions: list[Action] = Field(default_factory=list)


class Risk(BaseModel):
    id: str
    type: str
    severity: Priority
    probability: float = Field(..., ge=0.0, le=1.0)
    description: str
    impact: str
    mitigation: list[Action] = Field(default_factory=list)


# =============================================================================
# Sentiment
# =============================================================================


class SentimentTrend(BaseModel):
    period: str = Field(..., description="ISO date of the day bucket")
    score: float
    volume: int


class SentimentAlert(BaseModel):
    type: str
    score: float
    source: str
    timestamp: datetime


class SentimentAnalysis(BaseModel):
    overall: float = 0.7
    by_source: dict[str, float] = Field(default_factory=dict)
    trends: list[SentimentTrend] = Field(default_factory=list)
    alerts: list[SentimentAlert] = Field(default_factory=list)


# =============================================================================
# Aggregate
# =============================================================================


class BusinessAnalysis(BaseModel):
    """Complete output of one analysis pass."""

    metrics: PerformanceMetrics
    competitive: CompetitiveAnalysis
    opportunities: list[Opportunity] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    sentiment: SentimentAnalysis


class MetricForecast(BaseModel):
    predicted: float
    confidence: float = Field(..., ge=0.0, le=1.0)


class Forecast(BaseModel):
    """Linear extrapolation of sales and engagement over a period."""

    period_days: int
    sufficient_data: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    sales: Optional[MetricForecast] = None
    engagement: Optional[MetricForecast] = None
    message: Optional[str] = None
