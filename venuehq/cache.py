"""
Redis caching for frequently read, rarely written data (opening hours, service status)
Every failure degrades to a cache miss
"""

import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

from .config import CACHE_ENABLED
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with JSON serialization"""

    def __init__(self):
        self.redis_client = None
        self.enabled = CACHE_ENABLED

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None
        try:
            value = client.get(key)
            return json.loads(value) if value else None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            client.delete(key)
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'hours:*')"""
        client = self._get_client()
        if not client:
            return 0
        try:
            keys = list(client.scan_iter(match=pattern))
            return client.delete(*keys) if keys else 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


# Global cache instance
cache = Cache()


def cached(key_prefix: str, ttl: int = 3600, key_builder: Optional[Callable] = None):
    """
    Decorator to cache JSON-serialisable function results

    Example:
        @cached(key_prefix="hours", ttl=300, key_builder=lambda db, day: f"hours:{day.isoformat()}")
        def get_hours_payload(db, day): ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if key_builder:
                cache_key = key_builder(*args, **kwargs)
            else:
                arg_str = str(args[0]) if args else "default"
                cache_key = f"{key_prefix}:{arg_str}"

            cached_value = cache.get(cache_key)
            if cached_value is not None:
                return cached_value

            result = func(*args, **kwargs)
            if result is not None:
                cache.set(cache_key, result, ttl)
            return result

        return wrapper

    return decorator


def invalidate_hours_cache() -> int:
    """Drop every cached opening-hours and service-status payload"""
    return cache.delete_pattern("hours:*") + cache.delete_pattern("service_status:*")
