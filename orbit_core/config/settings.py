"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.
Every value has a default so the memory core can run purely in memory; the
external collaborators (Redis, Cohere) are switched on by configuration.

Production Mode:
    When app_env="production", additional validations apply:
    - embedding_backend="cohere" requires cohere_api_key
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False uses the console renderer)",
    )

    # -------------------------------------------------------------------------
    # Memory Tiers
    # -------------------------------------------------------------------------
    short_term_size: int = Field(
        default=20,
        ge=1,
        description="Messages kept per (business, session) conversation bucket",
    )
    working_memory_size: int = Field(
        default=100,
        ge=1,
        description="Capacity of the LRU working memory cache",
    )
    episodic_max_events: int = Field(
        default=10_000,
        ge=2,
        description="Hard cap of the episodic event log",
    )
    episodic_retained_events: int = Field(
        default=5_000,
        ge=1,
        description="Events kept after the episodic log is truncated",
    )

    # -------------------------------------------------------------------------
    # Embeddings (Long-term Memory)
    # -------------------------------------------------------------------------
    embedding_backend: Literal["cohere", "hash", "lexical"] = Field(
        default="lexical",
        description=(
            "Similarity strategy for long-term memory: 'cohere' (real embeddings), "
            "'hash' (deterministic fallback embedder, lower quality) or "
            "'lexical' (term matching only)"
        ),
    )
    vector_dimensions: int = Field(
        default=384,
        ge=8,
        description="Dimension of the deterministic fallback embedder",
    )
    similarity_threshold: float = Field(
        default=0.0,
        ge=-1.0,
        le=1.0,
        description="Minimum cosine similarity for a semantic search hit",
    )
    cohere_api_key: SecretStr | None = Field(
        default=None,
        description="Cohere API key for embeddings",
    )
    cohere_embedding_model: str = Field(
        default="embed-english-v3.0",
        description="Cohere embedding model (e.g., embed-english-v3.0, embed-multilingual-v3.0)",
    )
    embedding_failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Embedding failures before the circuit breaker opens",
    )
    embedding_recovery_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds before an open embedding circuit is tested again",
    )

    # -------------------------------------------------------------------------
    # Redis (Working Memory Persistence)
    # -------------------------------------------------------------------------
    redis_url: str | None = Field(default=None, description="Redis connection URL")
    working_memory_key_prefix: str = Field(
        default="orbit:memory:",
        description="Key prefix for persisted working memory entries",
    )
    working_memory_ttl_seconds: int = Field(
        default=7 * 24 * 3600,
        ge=1,
        description="TTL applied to persisted working memory entries (default 7 days)",
    )

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------
    analysis_cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0,
        description="TTL of cached business analyses (default 5 minutes)",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @model_validator(mode="after")
    def validate_memory_settings(self) -> "Settings":
        """Validate that memory and embedding settings are consistent."""
        errors = []

        if self.episodic_retained_events >= self.episodic_max_events:
            errors.append(
                "episodic_retained_events must be smaller than episodic_max_events"
            )

        if (
            self.is_production
            and self.embedding_backend == "cohere"
            and not self.cohere_api_key
        ):
            errors.append("cohere_api_key must be set when embedding_backend is 'cohere'")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()
