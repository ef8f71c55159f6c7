"""Summary store — keeps the last completed news summary.

On start the client asks the store for the previous summary and renders it
without re-running the stream; after every completed news run the new text
is saved.  Empty text is never stored.

Provides an abstract interface with in-memory and Redis implementations.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


# ── Abstract Interface ───────────────────────────────────────


class SummaryStore(ABC):
    """Abstract summary store — implement for different backends."""

    @abstractmethod
    async def load_last(self) -> str | None:
        """Return the last saved summary, or None if there is none."""
        ...

    @abstractmethod
    async def save_last(self, text: str) -> bool:
        """Persist *text* as the last summary.  Returns False if skipped."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Forget the stored summary."""
        ...

    async def close(self) -> None:
        """Release backend resources."""


# ── In-Memory Implementation ────────────────────────────────


class InMemorySummaryStore(SummaryStore):
    """Process-local store; lost on restart."""

    def __init__(self) -> None:
        self._text: str | None = None

    async def load_last(self) -> str | None:
        return self._text

    async def save_last(self, text: str) -> bool:
        if not text:
            return False
        self._text = text
        return True

    async def clear(self) -> None:
        self._text = None


# ── Redis Implementation ─────────────────────────────────────


class RedisSummaryStore(SummaryStore):
    """Redis-backed store, shared between workers.

    ``ttl_seconds == 0`` keeps the summary until it is overwritten.
    """

    def __init__(self, redis_url: str, key: str, ttl_seconds: int = 0):
        import redis.asyncio as aioredis

        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=10,
            socket_timeout=10,
        )
        self._key = key
        self._ttl = ttl_seconds

    async def load_last(self) -> str | None:
        text = await self._redis.get(self._key)
        return text or None

    async def save_last(self, text: str) -> bool:
        if not text:
            return False
        await self._redis.set(self._key, text, ex=self._ttl or None)
        return True

    async def clear(self) -> None:
        await self._redis.delete(self._key)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return await self._redis.ping()
        except Exception:
            return False


# ── Module-level Singleton ───────────────────────────────────

_store: SummaryStore | None = None


def get_summary_store() -> SummaryStore:
    """Get the singleton summary store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()

        if settings.summary_store_type == "redis" and settings.redis_url:
            _store = RedisSummaryStore(
                redis_url=settings.redis_url,
                key=settings.summary_key,
                ttl_seconds=settings.summary_ttl,
            )
            logger.info("Initialized RedisSummaryStore (key=%s)", settings.summary_key)
        else:
            _store = InMemorySummaryStore()
            logger.info("Initialized InMemorySummaryStore")
    return _store


def reset_summary_store() -> None:
    """Drop the singleton (tests, settings reload)."""
    global _store
    _store = None
