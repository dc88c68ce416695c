"""
Cache Service Singleton - Evaluator Scoring Engine
evaluator/services/cache.py

Provides a singleton Redis cache for ranking results with key helpers.
Result keys carry the ledger write version they were computed at, so a
result stored after a concurrent write is never served for the newer state.
Gracefully handles Redis unavailability. The scoring core never caches;
only the service layer uses this, and it invalidates on every ledger write.
"""
import logging
from typing import Optional

import redis

from evaluator.config import settings
from evaluator.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)

# TTL for derived results (in seconds)
TTL_RESULTS = settings.CACHE_TTL_RESULTS

# Singleton instance
_cache: Optional[RedisCache] = None


def rankings_key(evaluation_id: str, write_version: int) -> str:
    return f"evaluation:{evaluation_id}:v{write_version}:rankings"


def comparison_key(evaluation_id: str, vendor_ids, write_version: int) -> str:
    vendors = ",".join(sorted(vendor_ids))
    return f"evaluation:{evaluation_id}:v{write_version}:comparison:{vendors}"


def evaluation_pattern(evaluation_id: str) -> str:
    """Matches every cached result of one evaluation."""
    return f"evaluation:{evaluation_id}:*"


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if caching is enabled and Redis is available,
        None otherwise.

    Note:
        Returns None if Redis is unavailable, allowing scoring to continue
        without caching (graceful degradation).
    """
    global _cache
    if not settings.CACHE_ENABLED:
        return None
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError) as exc:
            logger.warning("Redis unavailable, result caching disabled: %s", exc)
            _cache = None
    return _cache


def reset_cache() -> None:
    """
    Reset the cache singleton.

    Useful for testing or when Redis connection needs to be re-established.
    """
    global _cache
    _cache = None
