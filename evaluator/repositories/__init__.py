"""
Repositories Package - Evaluator Scoring Engine
evaluator/repositories/__init__.py

Persistence contract and in-memory implementation for the score ledger.
"""

from evaluator.repositories.base import BaseScoreRepository, LedgerSnapshot, current_versions
from evaluator.repositories.memory_repository import InMemoryScoreRepository

__all__ = [
    "BaseScoreRepository",
    "InMemoryScoreRepository",
    "LedgerSnapshot",
    "current_versions",
]
