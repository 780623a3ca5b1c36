"""
Dedup store for processed clinic report messages.

Keeps "already seen" keys with a TTL behind a small interface so the
ingestion service gets an explicitly scoped store instead of module-level
state. Redis is used in production; the in-memory store serves tests and
single-process setups and must be swept explicitly.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import redis.asyncio as redis

from core.config import settings

logger = logging.getLogger(__name__)


class DedupStore(ABC):
    """Remember keys for a limited time."""

    @abstractmethod
    async def mark_if_new(self, key: str, ttl_seconds: int) -> bool:
        """
        Remember key unless it is already remembered.

        Returns:
            True if key was new, False if it was seen within its TTL
        """

    @abstractmethod
    async def forget(self, key: str) -> None:
        """Drop key so it can be processed again."""


class InMemoryDedupStore(DedupStore):
    """Process-local store; call sweep() periodically to drop expired keys."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at: Dict[str, float] = {}

    async def mark_if_new(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at > now:
            return False
        self._expires_at[key] = now + ttl_seconds
        return True

    async def forget(self, key: str) -> None:
        self._expires_at.pop(key, None)

    def sweep(self) -> int:
        """Remove expired keys. Returns number removed."""
        now = self._clock()
        expired = [k for k, exp in self._expires_at.items() if exp <= now]
        for key in expired:
            del self._expires_at[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired dedup key(s)")
        return len(expired)

    def __len__(self) -> int:
        return len(self._expires_at)


class RedisDedupStore(DedupStore):
    """Redis-backed store using SET NX EX; expiry is handled by Redis."""

    PREFIX = "dedup:report:"

    def __init__(self, client: Optional[redis.Redis] = None, url: Optional[str] = None):
        if client is None:
            client = redis.from_url(url or settings.redis_url)
        self.redis = client

    async def mark_if_new(self, key: str, ttl_seconds: int) -> bool:
        created = await self.redis.set(f"{self.PREFIX}{key}", "1", nx=True, ex=ttl_seconds)
        return bool(created)

    async def forget(self, key: str) -> None:
        await self.redis.delete(f"{self.PREFIX}{key}")
