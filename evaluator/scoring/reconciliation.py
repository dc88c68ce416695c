"""
Score Reconciliation
evaluator/scoring/reconciliation.py

Compares the current individual scores of a (vendor, requirement) pair so a
facilitator can decide where a consensus session is needed.

    variance level:  HIGH   variance > VARIANCE_HIGH_THRESHOLD   (2.0)
                     MEDIUM variance > VARIANCE_MEDIUM_THRESHOLD (0.5)
                     LOW    otherwise
    needs_reconciliation:  max − min > SPREAD_RECONCILE_THRESHOLD (1.0)
"""

from decimal import Decimal
from typing import List, Optional

from evaluator.config import settings
from evaluator.models.enumerations import VarianceLevel
from evaluator.models.evaluation import Evaluation
from evaluator.models.results import ScoreComparison
from evaluator.repositories.base import BaseScoreRepository, LedgerSnapshot
from evaluator.scoring.utils import mean, population_variance, quantize


class ScoreReconciler:
    """Spread statistics over current individual scores."""

    def __init__(
        self,
        evaluation: Evaluation,
        repository: BaseScoreRepository,
        high_threshold: Optional[float] = None,
        medium_threshold: Optional[float] = None,
        spread_threshold: Optional[float] = None,
    ):
        self.evaluation = evaluation
        self.repository = repository
        self.high = Decimal(str(
            settings.VARIANCE_HIGH_THRESHOLD if high_threshold is None else high_threshold
        ))
        self.medium = Decimal(str(
            settings.VARIANCE_MEDIUM_THRESHOLD if medium_threshold is None else medium_threshold
        ))
        self.spread = Decimal(str(
            settings.SPREAD_RECONCILE_THRESHOLD if spread_threshold is None else spread_threshold
        ))

    def variance_level(self, variance: Decimal) -> VarianceLevel:
        if variance > self.high:
            return VarianceLevel.HIGH
        if variance > self.medium:
            return VarianceLevel.MEDIUM
        return VarianceLevel.LOW

    def compare_scores(
        self,
        vendor_id: str,
        requirement_id: str,
        snapshot: Optional[LedgerSnapshot] = None,
    ) -> ScoreComparison:
        snapshot = snapshot or self.repository.snapshot()
        values = [e.score for e in snapshot.current_scores(vendor_id, requirement_id)]
        consensed = snapshot.current_consensus(vendor_id, requirement_id) is not None

        if not values:
            return ScoreComparison(
                vendor_id=vendor_id, requirement_id=requirement_id, consensed=consensed
            )

        variance = population_variance(values)
        return ScoreComparison(
            vendor_id=vendor_id,
            requirement_id=requirement_id,
            count=len(values),
            minimum=min(values),
            maximum=max(values),
            mean=quantize(mean(values)),
            variance=quantize(variance),
            variance_level=self.variance_level(variance),
            needs_reconciliation=len(values) > 1 and (max(values) - min(values)) > self.spread,
            consensed=consensed,
        )

    def pairs_needing_consensus(self, vendor_id: Optional[str] = None) -> List[ScoreComparison]:
        """Flagged, not yet consensed pairs of active vendors, highest variance first."""
        snapshot = self.repository.snapshot()
        vendor_ids = [
            v.id for v in self.evaluation.active_vendors
            if vendor_id is None or v.id == vendor_id
        ]
        flagged = []
        for vid in vendor_ids:
            for requirement in self.evaluation.in_scope_requirements():
                comparison = self.compare_scores(vid, requirement.id, snapshot)
                if comparison.needs_reconciliation and not comparison.consensed:
                    flagged.append(comparison)
        return sorted(
            flagged,
            key=lambda c: (-c.variance, c.vendor_id, c.requirement_id),
        )
