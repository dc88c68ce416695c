import redis
from typing import Optional, TypeVar, Type
from pydantic import BaseModel
from evaluator.config import settings
from functools import lru_cache

T = TypeVar("T", bound=BaseModel)


class RedisCache:
    """
    Redis store for derived scoring results (rankings, comparison matrices).

    Keys are namespaced so several engines can share one Redis database.
    Values are pydantic models serialised as JSON.
    """

    def __init__(self, url: Optional[str] = None, namespace: str = "scoring"):
        self.namespace = namespace
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Load a cached result, or None on a miss."""
        data = self.client.get(self._key(key))
        if data is None:
            return None
        return model.model_validate_json(data)

    def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        self.client.setex(self._key(key), ttl_seconds, value.model_dump_json())

    def delete(self, key: str) -> int:
        return self.client.delete(self._key(key))

    def delete_pattern(self, pattern: str) -> int:
        """Drop every key matching `pattern`; returns how many were removed."""
        removed = 0
        for key in self.client.scan_iter(match=self._key(pattern)):
            removed += self.client.delete(key)
        return removed


@lru_cache
def get_redis_cache() -> RedisCache:
    return RedisCache()
