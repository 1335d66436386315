"""
Redis backing store for working memory.

Rehydrates the working cache on startup and persists it on shutdown, one key
per entry (``<prefix><id>``) with a TTL. Every Redis failure is logged and
degrades to "nothing restored / nothing saved"; the memory core keeps working
purely in memory.
"""

from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError

from orbit_core.models.memory import MemoryEntry

logger = structlog.get_logger(__name__)


class RedisWorkingMemoryStore:
    """
    Key-value snapshot of the working cache.

    Args:
        redis_url: Redis connection URL. None disables persistence.
        key_prefix: Prefix of every entry key.
        ttl_seconds: Expiry applied to every persisted entry.
        client: Pre-built redis.asyncio client (overrides redis_url).
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: str = "orbit:memory:",
        ttl_seconds: int = 7 * 24 * 3600,
        client: Any = None,
    ) -> None:
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds
        self._redis: Any = client
        self._use_redis = client is not None or bool(redis_url)

    @property
    def enabled(self) -> bool:
        return self._use_redis

    @property
    def _redis_url_masked(self) -> str:
        """Return masked Redis URL for logging (hide password)."""
        if not self.redis_url:
            return "None"
        if "@" in self.redis_url:
            parts = self.redis_url.split("@")
            return f"{parts[0].rsplit(':', 1)[0]}:****@{parts[-1]}"
        return self.redis_url

    async def _get_redis(self) -> Any:
        """Get or create Redis connection."""
        if not self._use_redis:
            return None

        if self._redis is None:
            try:
                self._redis = aioredis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
                logger.info(
                    "working_memory_store_connected",
                    redis_url=self._redis_url_masked,
                )
            except Exception as e:
                logger.warning(
                    "working_memory_redis_unavailable",
                    error=str(e),
                    fallback="in-memory",
                )
                self._use_redis = False
                self._redis = None
                return None

        return self._redis

    async def load(self) -> list[MemoryEntry]:
        """Read every persisted entry. Returns [] when Redis is unavailable."""
        redis = await self._get_redis()
        if redis is None:
            return []

        entries: list[MemoryEntry] = []
        try:
            cursor = 0
            while True:
                cursor, keys = await redis.scan(cursor, match=f"{self.key_prefix}*", count=100)
                for key in keys:
                    raw = await redis.get(key)
                    if not raw:
                        continue
                    try:
                        entries.append(MemoryEntry.model_validate_json(raw))
                    except ValidationError as e:
                        logger.warning("working_memory_entry_invalid", key=key, error=str(e))
                if cursor == 0:
                    break
        except Exception as e:
            logger.warning("working_memory_restore_failed", error=str(e))
            return entries

        logger.info("working_memory_restored", count=len(entries))
        return entries

    async def save(self, entries: list[MemoryEntry]) -> int:
        """Persist entries with the configured TTL. Returns how many were written."""
        redis = await self._get_redis()
        if redis is None or not entries:
            return 0

        try:
            pipe = redis.pipeline()
            for entry in entries:
                pipe.setex(
                    f"{self.key_prefix}{entry.id}",
                    self.ttl_seconds,
                    entry.model_dump_json(),
                )
            await pipe.execute()
        except Exception as e:
            logger.warning("working_memory_persist_failed", error=str(e), count=len(entries))
            return 0

        logger.info("working_memory_persisted", count=len(entries), ttl_seconds=self.ttl_seconds)
        return len(entries)

    async def close(self) -> None:
        """Close Redis connection if open."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("working_memory_store_disconnected")
