"""
Per-recipient message cache and recently viewed bottles.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Entries expire after a fixed TTL; a miss
simply means the caller refetches from the database.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

from backend.db import MessageRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_RECENT_LIMIT = 5


class MessageCache(Protocol):
    """Cache of the messages in a bottle, keyed by normalized recipient."""

    def get(self, recipient: str) -> Optional[list[MessageRecord]]:
        ...

    def set(self, recipient: str, messages: list[MessageRecord]) -> None:
        ...

    def invalidate(self, recipient: str) -> None:
        ...

    def touch_recent(self, viewer: str, recipient: str) -> None:
        ...

    def recent(self, viewer: str) -> list[str]:
        ...


@dataclass
class _CacheEntry:
    messages: list[MessageRecord]
    timestamp: float


@dataclass
class InMemoryMessageCache:
    """Dict-backed cache with TTL eviction."""

    ttl_seconds: float = DEFAULT_TTL_SECONDS
    recent_limit: int = DEFAULT_RECENT_LIMIT
    clock: Callable[[], float] = time.time
    entries: dict = field(default_factory=dict)
    recently_viewed: dict = field(default_factory=dict)

    def reset(self) -> None:
        self.entries.clear()
        self.recently_viewed.clear()

    def _is_fresh(self, entry: _CacheEntry, now: float) -> bool:
        return now - entry.timestamp < self.ttl_seconds

    def get(self, recipient: str) -> Optional[list[MessageRecord]]:
        entry = self.entries.get(recipient)
        if entry is None:
            return None
        if not self._is_fresh(entry, self.clock()):
            del self.entries[recipient]
            return None
        return list(entry.messages)

    def set(self, recipient: str, messages: list[MessageRecord]) -> None:
        self.entries[recipient] = _CacheEntry(list(messages), self.clock())

    def invalidate(self, recipient: str) -> None:
        self.entries.pop(recipient, None)

    def evict_expired(self) -> int:
        now = self.clock()
        expired = [
            key for key, entry in self.entries.items() if not self._is_fresh(entry, now)
        ]
        for key in expired:
            del self.entries[key]
        return len(expired)

    def touch_recent(self, viewer: str, recipient: str) -> None:
        current = self.recently_viewed.get(viewer, [])
        updated = [recipient] + [r for r in current if r != recipient]
        self.recently_viewed[viewer] = updated[: self.recent_limit]

    def recent(self, viewer: str) -> list[str]:
        return list(self.recently_viewed.get(viewer, []))


@dataclass
class RedisMessageCache:
    """Redis-backed cache. Expiry is delegated to Redis key TTLs."""

    url: str
    prefix: str = "bottle:cache"
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    recent_limit: int = DEFAULT_RECENT_LIMIT

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _messages_key(self, recipient: str) -> str:
        return f"{self.prefix}:messages:{recipient}"

    def _recent_key(self, viewer: str) -> str:
        return f"{self.prefix}:recent:{viewer}"

    def get(self, recipient: str) -> Optional[list[MessageRecord]]:
        try:
            raw = self.client.get(self._messages_key(recipient))
        except redis_exceptions.RedisError:
            logger.warning("Message cache read failed for %s", recipient, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return [MessageRecord.from_dict(item) for item in json.loads(raw)]
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding corrupt cache entry for %s", recipient)
            self.invalidate(recipient)
            return None

    def set(self, recipient: str, messages: list[MessageRecord]) -> None:
        payload = json.dumps([m.as_dict() for m in messages])
        try:
            self.client.setex(self._messages_key(recipient), self.ttl_seconds, payload)
        except redis_exceptions.RedisError:
            logger.warning(
                "Message cache write failed for %s", recipient, exc_info=True
            )

    def invalidate(self, recipient: str) -> None:
        try:
            self.client.delete(self._messages_key(recipient))
        except redis_exceptions.RedisError:
            logger.warning(
                "Message cache invalidation failed for %s", recipient, exc_info=True
            )

    def touch_recent(self, viewer: str, recipient: str) -> None:
        key = self._recent_key(viewer)
        try:
            pipe = self.client.pipeline()
            pipe.lrem(key, 0, recipient)
            pipe.lpush(key, recipient)
            pipe.ltrim(key, 0, self.recent_limit - 1)
            pipe.expire(key, self.ttl_seconds)
            pipe.execute()
        except redis_exceptions.RedisError:
            logger.warning(
                "Recently viewed update failed for %s", viewer, exc_info=True
            )

    def recent(self, viewer: str) -> list[str]:
        try:
            items = self.client.lrange(
                self._recent_key(viewer), 0, self.recent_limit - 1
            )
        except redis_exceptions.RedisError:
            logger.warning("Recently viewed read failed for %s", viewer, exc_info=True)
            return []
        return [item.decode("utf-8") for item in items]
