"""
Evaluation Scoring Service
evaluator/services/scoring_service.py

Caller-facing facade for one evaluation. Wires the scoring core together:

  1. Check the caller's role against the permission matrix
  2. Delegate writes to the ScoreLedger / ConsensusWorkflow
  3. Invalidate cached results of the evaluation after every write; keys
     also carry the ledger write version, so a result computed before a
     concurrent write is never served after it
  4. Serve aggregation, rankings and comparisons, from Redis when enabled

The scoring core itself never caches; cached rankings here are always
derived from the ledger and dropped as soon as it changes.
"""

from typing import Iterable, List, Optional

import redis
import structlog

from evaluator.core.permissions import Caller, require_permission
from evaluator.logging_config import configure_logging
from evaluator.models.enumerations import ScoreStatus
from evaluator.models.evaluation import Evaluation
from evaluator.models.results import (
    AggregatedResult,
    ComparisonMatrix,
    RankingResult,
    ScoreComparison,
    ScoringProgress,
    ValidationResult,
)
from evaluator.models.score import ConsensusEntry, ConsensusSession, ScoreEntry
from evaluator.repositories.base import BaseScoreRepository
from evaluator.repositories.memory_repository import InMemoryScoreRepository
from evaluator.scoring.aggregation import AggregationEngine
from evaluator.scoring.config_validator import ConfigurationValidator
from evaluator.scoring.consensus import ConsensusWorkflow
from evaluator.scoring.ranking import ComparisonBuilder
from evaluator.scoring.reconciliation import ScoreReconciler
from evaluator.scoring.score_ledger import ScoreLedger
from evaluator.services.cache import (
    TTL_RESULTS,
    comparison_key,
    evaluation_pattern,
    get_cache,
    rankings_key,
)
from evaluator.services.redis_cache import RedisCache

logger = structlog.get_logger(__name__)


class EvaluationScoringService:
    """Permission-checked scoring operations for a single evaluation."""

    def __init__(
        self,
        evaluation: Evaluation,
        repository: Optional[BaseScoreRepository] = None,
        cache: Optional[RedisCache] = None,
        validator: Optional[ConfigurationValidator] = None,
    ):
        configure_logging()
        self.evaluation = evaluation
        self.repository = repository or InMemoryScoreRepository(evaluation.id)
        self.cache = cache if cache is not None else get_cache()
        self.validator = validator or ConfigurationValidator()

        self.ledger = ScoreLedger(evaluation, self.repository)
        self.consensus = ConsensusWorkflow(evaluation, self.repository)
        self.engine = AggregationEngine(self.repository, self.validator)
        self.comparisons = ComparisonBuilder(self.engine)
        self.reconciler = ScoreReconciler(evaluation, self.repository)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def validate_configuration(self) -> ValidationResult:
        return self.validator.validate(self.evaluation)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def submit_score(
        self,
        caller: Caller,
        vendor_id: str,
        requirement_id: str,
        score,
        evidence: Optional[str] = None,
        stakeholder_area_id: Optional[str] = None,
        confidence=None,
        status: ScoreStatus = ScoreStatus.DRAFT,
        evidence_ids: Optional[Iterable[str]] = None,
    ) -> ScoreEntry:
        """Record the caller's own score for a (vendor, requirement)."""
        require_permission(caller, "can_score")
        entry = self.ledger.submit(
            caller.user_id,
            vendor_id,
            requirement_id,
            score,
            evidence=evidence,
            stakeholder_area_id=stakeholder_area_id,
            confidence=confidence,
            status=status,
            evidence_ids=evidence_ids,
        )
        self._invalidate()
        return entry

    def submit_all_scores(self, caller: Caller, vendor_id: str) -> int:
        """Hand in every draft the caller holds for a vendor."""
        require_permission(caller, "can_score")
        submitted = self.ledger.submit_all(vendor_id, caller.user_id)
        if submitted:
            self._invalidate()
        return submitted

    def link_evidence(
        self,
        caller: Caller,
        vendor_id: str,
        requirement_id: str,
        evidence_id: str,
        stakeholder_area_id: Optional[str] = None,
    ) -> ScoreEntry:
        require_permission(caller, "can_score")
        entry = self.ledger.link_evidence(
            caller.user_id, vendor_id, requirement_id, evidence_id, stakeholder_area_id
        )
        self._invalidate()
        return entry

    def unlink_evidence(
        self,
        caller: Caller,
        vendor_id: str,
        requirement_id: str,
        evidence_id: str,
        stakeholder_area_id: Optional[str] = None,
    ) -> ScoreEntry:
        require_permission(caller, "can_score")
        entry = self.ledger.unlink_evidence(
            caller.user_id, vendor_id, requirement_id, evidence_id, stakeholder_area_id
        )
        self._invalidate()
        return entry

    def open_consensus(self, caller: Caller, vendor_id: str, requirement_id: str) -> ConsensusSession:
        require_permission(caller, "can_manage_consensus")
        session = self.consensus.open_consensus(vendor_id, requirement_id, caller.user_id)
        self._invalidate()
        return session

    def record_consensus(
        self,
        caller: Caller,
        vendor_id: str,
        requirement_id: str,
        score,
        evidence: str,
    ) -> ConsensusEntry:
        require_permission(caller, "can_manage_consensus")
        entry = self.consensus.record_consensus(
            vendor_id, requirement_id, score, evidence, caller.user_id
        )
        self._invalidate()
        return entry

    def reopen_consensus(self, caller: Caller, vendor_id: str, requirement_id: str) -> ConsensusSession:
        require_permission(caller, "can_manage_consensus")
        session = self.consensus.reopen(vendor_id, requirement_id, caller.user_id)
        self._invalidate()
        return session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def aggregate(self, caller: Caller, vendor_id: str) -> AggregatedResult:
        require_permission(caller, "can_view_results")
        return self.engine.aggregate(self.evaluation, vendor_id)

    def get_rankings(self, caller: Caller) -> RankingResult:
        """Every active vendor, ranked. Served from cache when available."""
        require_permission(caller, "can_view_results")
        key = rankings_key(self.evaluation.id, self.repository.write_version())

        cached = self._cache_get(key, RankingResult)
        if cached is not None:
            logger.info("rankings_cache_hit", evaluation_id=self.evaluation.id)
            return cached

        result = RankingResult(
            evaluation_id=self.evaluation.id,
            method=self.evaluation.method.scoring_method,
            results=self.engine.aggregate_all(self.evaluation),
        )
        self._cache_set(key, result)
        return result

    def compare(self, caller: Caller, vendor_ids: Iterable[str]) -> ComparisonMatrix:
        require_permission(caller, "can_view_results")
        vendor_ids = list(vendor_ids)
        key = comparison_key(self.evaluation.id, vendor_ids, self.repository.write_version())

        cached = self._cache_get(key, ComparisonMatrix)
        if cached is not None:
            return cached

        matrix = self.comparisons.compare(self.evaluation, vendor_ids)
        self._cache_set(key, matrix)
        return matrix

    def progress(
        self, caller: Caller, vendor_id: str, evaluator_id: Optional[str] = None
    ) -> ScoringProgress:
        require_permission(caller, "can_view_results")
        return self.ledger.progress(vendor_id, evaluator_id)

    def compare_scores(self, caller: Caller, vendor_id: str, requirement_id: str) -> ScoreComparison:
        require_permission(caller, "can_view_results")
        return self.reconciler.compare_scores(vendor_id, requirement_id)

    def pairs_needing_consensus(
        self, caller: Caller, vendor_id: Optional[str] = None
    ) -> List[ScoreComparison]:
        require_permission(caller, "can_manage_consensus")
        return self.reconciler.pairs_needing_consensus(vendor_id)

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    def _cache_get(self, key, model):
        if self.cache is None:
            return None
        try:
            return self.cache.get(key, model)
        except redis.RedisError as exc:
            logger.warning("results_cache_unavailable", key=key, error=str(exc))
            return None

    def _cache_set(self, key, value) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, value, TTL_RESULTS)
        except redis.RedisError as exc:
            logger.warning("results_cache_unavailable", key=key, error=str(exc))

    def _invalidate(self) -> None:
        if self.cache is None:
            return
        try:
            removed = self.cache.delete_pattern(evaluation_pattern(self.evaluation.id))
        except (redis.RedisError, ConnectionError) as exc:
            # Entries may be stale now; stop reading them from this service
            logger.warning(
                "rankings_cache_invalidation_failed",
                evaluation_id=self.evaluation.id,
                error=str(exc),
            )
            self.cache = None
            return
        logger.info(
            "rankings_cache_invalidated",
            evaluation_id=self.evaluation.id,
            keys_removed=removed,
        )
