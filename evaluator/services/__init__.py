"""
Services module for the Evaluator Scoring Engine.
"""

from evaluator.services.cache import get_cache, reset_cache
from evaluator.services.redis_cache import RedisCache, get_redis_cache
from evaluator.services.scoring_service import EvaluationScoringService

__all__ = [
    "EvaluationScoringService",
    "RedisCache",
    "get_cache",
    "get_redis_cache",
    "reset_cache",
]
