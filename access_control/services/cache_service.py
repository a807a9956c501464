"""Redis cache for role access contexts."""

import json
import logging
from typing import Optional, Any, Iterable

import redis

from access_control.core.config import settings

logger = logging.getLogger("access_control.cache")

CONTEXT_KEY = "access:role:{role_id}:context"


def context_key(role_id: int) -> str:
    return CONTEXT_KEY.format(role_id=role_id)


class CacheService:
    """Redis-backed caching service. Failures degrade to cache misses."""

    def __init__(self, url: Optional[str] = None):
        self._url = url or settings.REDIS_URL
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._url,
                decode_responses=True,
                max_connections=50,
                socket_connect_timeout=1,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        """Get a cached value by key."""
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.debug("Cache get failed for %s: %s", key, e)
            return None

    def set(self, key: str, value: str, ttl_seconds: int = 300) -> None:
        """Set a cached value with TTL."""
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.RedisError as e:
            logger.debug("Cache set failed for %s: %s", key, e)

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        raw = self.get(key)
        if raw:
            return json.loads(raw)
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: int = 300) -> None:
        """Serialize and cache a JSON value."""
        self.set(key, json.dumps(value, default=str), ttl_seconds)

    def delete(self, *keys: str) -> None:
        """Delete cached keys."""
        if not keys:
            return
        try:
            self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Cache delete failed for %s: %s", keys, e)

    def invalidate_roles(self, role_ids: Iterable[int]) -> None:
        """Drop cached contexts so the next guard evaluation refetches."""
        self.delete(*(context_key(r) for r in sorted(set(role_ids))))

    def invalidate_all_roles(self) -> None:
        """Drop every cached role context."""
        try:
            keys = self.client.keys(CONTEXT_KEY.format(role_id="*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Cache pattern invalidation failed: %s", e)

    def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


cache_service = CacheService()
