"""
Orbit Core - contextual memory and business analysis for the Orbit marketing agent.

This package contains the memory and analysis core of the agent:
- config: Pydantic settings and configuration
- core: Exception hierarchy and resilience primitives
- models: Data models for memory entries, events and analysis results
- knowledge: Embedding providers and vector similarity
- memory: Tiered memory system (short-term, working, long-term, episodic)
- analysis: Business analysis engine (metrics, competition, opportunities, risks, sentiment)
- monitoring: Prometheus metrics for memory and analysis operations
"""

__version__ = "0.1.0"
