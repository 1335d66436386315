"""
Data models for Orbit Core.

- memory: entries, events, filters and the content variants the coordinator routes on
- analysis: live metrics, competitive inputs and the BusinessAnalysis aggregate
"""

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
    Product,
    Risk,
    SentimentAlert,
    SentimentAnalysis,
    SentimentTrend,
    TrendAnalysis,
)
from orbit_core.models.memory import (
    AgentContext,
    AgentEvent,
    ConversationContent,
    EventContent,
    EventFilter,
    EventPattern,
    EventType,
    GeneralContent,
    Impact,
    InsightContent,
    MemoryContent,
    MemoryEntry,
    ShortTermItem,
    classify_content,
    ensure_utc,
    utcnow,
)

__all__ = [
    # Memory
    "AgentContext",
    "AgentEvent",
    "ConversationContent",
    "EventContent",
    "EventFilter",
    "EventPattern",
    "EventType",
    "GeneralContent",
    "Impact",
    "InsightContent",
    "MemoryContent",
    "MemoryEntry",
    "ShortTermItem",
    "classify_content",
    "ensure_utc",
    "utcnow",
    # Analysis
    "PRIORITY_RANK",
    "Action",
    "AnalysisRequest",
    "BusinessAnalysis",
    "BusinessProfile",
    "CompetitiveAnalysis",
    "CompetitorSnapshot",
    "ContentMetrics",
    "ConversionData",
    "Forecast",
    "LiveMetrics",
    "MetricForecast",
    "Opportunity",
    "PerformanceMetrics",
    "PricingData",
    "Product",
    "Risk",
    "SentimentAlert",
    "SentimentAnalysis",
    "SentimentTrend",
    "TrendAnalysis",
]
