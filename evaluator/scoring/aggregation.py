"""
Aggregation Engine
evaluator/scoring/aggregation.py

Turns the score ledger into per-vendor category, stakeholder and overall
scores under the evaluation's scoring method.

Per-requirement source (every method):
    ConsensusEntry if present, else mean of the current individual entries
    (under multi-stakeholder: mean within each stakeholder area).

Method          | Category roll-up                     | Overall roll-up
----------------|--------------------------------------|----------------------------------
simple_average  | mean                                 | mean of category scores
category_wtd    | mean                                 | Σ(cat × cat_weight) / Σ cat_weight
requirement_wtd | Σ(req × req_weight) / Σ req_weight   | Σ(cat × cat_weight) / Σ cat_weight
moscow_wtd      | as requirement_wtd, Must=4 Should=2  | Σ(cat × cat_weight) / Σ cat_weight
                | Could=1 Won't=0                      |
multi_stakehldr | per area: mean (or category-weighted)| Σ(area × area_weight) / Σ area_weight

Missing data never raises:
    - a requirement with no usable score is left out of the roll-up and
      lowers `completeness` instead of counting as zero
    - a category (or area) with no contributing requirements is left out and
      the remaining weights are renormalised; the result is flagged `partial`

Aggregation is read-only: it works on one repository snapshot and keeps no
cache, so two calls without intervening writes return identical results.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import structlog

from evaluator.core.exceptions import EntityNotFoundException
from evaluator.models.enumerations import MoSCoWPriority, ScoreSource
from evaluator.models.evaluation import Category, Evaluation, MultiStakeholderMethod
from evaluator.models.results import (
    AggregatedResult,
    CategoryScore,
    RequirementScore,
    StakeholderScore,
)
from evaluator.repositories.base import BaseScoreRepository, LedgerSnapshot
from evaluator.scoring.config_validator import ConfigurationValidator
from evaluator.scoring.ranking import rank_results
from evaluator.scoring.utils import mean, quantize, to_percentage, weighted_mean

logger = structlog.get_logger(__name__)


class AggregationEngine:
    """Pull-based, cache-free score aggregation."""

    def __init__(
        self,
        repository: BaseScoreRepository,
        validator: Optional[ConfigurationValidator] = None,
    ):
        self.repository = repository
        self.validator = validator or ConfigurationValidator()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def aggregate(self, evaluation: Evaluation, vendor_id: str) -> AggregatedResult:
        """
        Aggregate one vendor.

        Raises:
            ConfigurationInvalid: configuration does not validate.
            EntityNotFoundException: vendor is not part of the evaluation.
        """
        self.validator.ensure_valid(evaluation)
        if evaluation.vendor(vendor_id) is None:
            raise EntityNotFoundException("Vendor", vendor_id)

        result = self._aggregate_vendor(evaluation, vendor_id, self.repository.snapshot())
        logger.info(
            "vendor_aggregated",
            evaluation_id=evaluation.id,
            vendor_id=vendor_id,
            method=result.method.value,
            overall_score=float(result.overall_score) if result.overall_score is not None else None,
            completeness=float(result.completeness),
            partial=result.partial,
        )
        return result

    def aggregate_many(
        self, evaluation: Evaluation, vendor_ids: Iterable[str]
    ) -> List[AggregatedResult]:
        """
        Aggregate the given vendors from one snapshot and rank them.

        Excluded vendors are omitted; unknown ids raise EntityNotFoundException.
        """
        self.validator.ensure_valid(evaluation)

        selected: List[str] = []
        for vendor_id in vendor_ids:
            vendor = evaluation.vendor(vendor_id)
            if vendor is None:
                raise EntityNotFoundException("Vendor", vendor_id)
            if not vendor.excluded and vendor_id not in selected:
                selected.append(vendor_id)

        snapshot = self.repository.snapshot()
        ranked = rank_results(
            self._aggregate_vendor(evaluation, vendor_id, snapshot) for vendor_id in selected
        )
        logger.info(
            "vendors_ranked",
            evaluation_id=evaluation.id,
            vendor_count=len(ranked),
            write_version=snapshot.write_version,
            ranking=[r.vendor_id for r in ranked],
        )
        return ranked

    def aggregate_all(self, evaluation: Evaluation) -> List[AggregatedResult]:
        """Every active vendor, sorted by overall score with tie-breaks, ranked from 1."""
        return self.aggregate_many(evaluation, [v.id for v in evaluation.active_vendors])

    # ------------------------------------------------------------------
    # Per-vendor computation
    # ------------------------------------------------------------------

    def _aggregate_vendor(
        self,
        evaluation: Evaluation,
        vendor_id: str,
        snapshot: LedgerSnapshot,
    ) -> AggregatedResult:
        method = evaluation.method
        scale_max = evaluation.scale.maximum

        # Raw (unrounded) requirement scores keep roll-ups exact
        requirement_scores: List[RequirementScore] = []
        raw_scores: Dict[str, Decimal] = {}
        raw_area_scores: Dict[str, Dict[str, Decimal]] = {}
        for requirement in evaluation.in_scope_requirements():
            rs, raw, area_raw = self._score_requirement(evaluation, vendor_id, requirement, snapshot)
            requirement_scores.append(rs)
            if raw is not None:
                raw_scores[requirement.id] = raw
            raw_area_scores[requirement.id] = area_raw

        # Category roll-up
        partial = False
        category_scores: List[CategoryScore] = []
        raw_category: Dict[str, Decimal] = {}
        for category in evaluation.active_categories:
            members = [rs for rs in requirement_scores if rs.category_id == category.id]
            score = self._category_score(members, raw_scores)
            contributing = sum(1 for rs in members if rs.requirement_id in raw_scores)
            if score is not None:
                raw_category[category.id] = score
            elif members:
                partial = True
            category_scores.append(CategoryScore(
                category_id=category.id,
                name=category.name,
                weight=category.weight,
                score=quantize(score),
                percentage=to_percentage(score, scale_max),
                contributing_requirements=contributing,
                total_requirements=len(members),
            ))

        # Overall roll-up
        stakeholder_scores: List[StakeholderScore] = []
        if isinstance(method, MultiStakeholderMethod):
            overall, stakeholder_scores, areas_partial = self._stakeholder_rollup(
                evaluation, requirement_scores, raw_area_scores
            )
            partial = partial or areas_partial
        elif method.weights_categories:
            overall = self._weighted_categories(evaluation.active_categories, raw_category)
        else:
            overall = mean(raw_category.values())

        scored = len(raw_scores)
        total = len(requirement_scores)
        completeness = Decimal(scored) / Decimal(total) if total else Decimal("0")
        must_have = mean(
            raw_scores[rs.requirement_id] for rs in requirement_scores
            if rs.priority == MoSCoWPriority.MUST_HAVE and rs.requirement_id in raw_scores
        )

        return AggregatedResult(
            evaluation_id=evaluation.id,
            vendor_id=vendor_id,
            method=method.scoring_method,
            overall_score=quantize(overall),
            overall_percentage=to_percentage(overall, scale_max),
            per_category_scores=category_scores,
            per_stakeholder_scores=stakeholder_scores,
            requirement_scores=requirement_scores,
            completeness=quantize(completeness),
            scored_requirements=scored,
            total_requirements=total,
            partial=partial,
            must_have_score=quantize(must_have),
        )

    def _score_requirement(self, evaluation, vendor_id, requirement, snapshot):
        """
        Return (RequirementScore, raw score, raw per-area scores).

        Outside multi-stakeholder scoring there is one current entry per
        evaluator, so the mean and `evaluator_count` cover the same entries.
        Under multi-stakeholder scoring the requirement-level mean is taken
        across area entries (an evaluator scoring two areas counts twice),
        while `evaluator_count` stays the number of distinct evaluators.
        """
        consensus = snapshot.current_consensus(vendor_id, requirement.id)
        entries = snapshot.current_scores(vendor_id, requirement.id)

        area_raw: Dict[str, Decimal] = {}
        if isinstance(evaluation.method, MultiStakeholderMethod):
            for area in evaluation.stakeholder_areas:
                if consensus is not None:
                    area_raw[area.id] = consensus.score
                    continue
                area_mean = mean(e.score for e in entries if e.stakeholder_area_id == area.id)
                if area_mean is not None:
                    area_raw[area.id] = area_mean

        if consensus is not None:
            raw, source = consensus.score, ScoreSource.CONSENSUS
        else:
            raw = mean(e.score for e in entries)
            source = ScoreSource.INDIVIDUAL_MEAN if raw is not None else None

        rs = RequirementScore(
            requirement_id=requirement.id,
            category_id=requirement.category_id,
            priority=requirement.priority,
            effective_weight=evaluation.method.requirement_weight(requirement),
            score=quantize(raw),
            source=source,
            evaluator_count=len({e.evaluator_id for e in entries}),
            area_scores={area_id: quantize(v) for area_id, v in area_raw.items()},
        )
        return rs, raw, area_raw

    @staticmethod
    def _category_score(
        members: List[RequirementScore], raw_scores: Dict[str, Decimal]
    ) -> Optional[Decimal]:
        values, weights = [], []
        for rs in members:
            if rs.requirement_id in raw_scores and rs.effective_weight > 0:
                values.append(raw_scores[rs.requirement_id])
                weights.append(rs.effective_weight)
        return weighted_mean(values, weights)

    @staticmethod
    def _weighted_categories(
        categories: List[Category], raw_category: Dict[str, Decimal]
    ) -> Optional[Decimal]:
        """Σ(category_score × weight) renormalised over the categories present."""
        present = [c for c in categories if c.id in raw_category]
        return weighted_mean(
            [raw_category[c.id] for c in present],
            [c.weight for c in present],
        )

    def _stakeholder_rollup(self, evaluation, requirement_scores, raw_area_scores):
        """Return (overall, stakeholder scores, partial flag) for multi-stakeholder."""
        method = evaluation.method
        scale_max = evaluation.scale.maximum
        partial = False
        stakeholder_scores: List[StakeholderScore] = []
        raw_area_totals: Dict[str, Decimal] = {}

        for area in evaluation.stakeholder_areas:
            lane = [
                (rs, raw_area_scores[rs.requirement_id][area.id])
                for rs in requirement_scores
                if area.id in raw_area_scores[rs.requirement_id]
            ]
            if method.category_weighting:
                per_category: Dict[str, Decimal] = {}
                for category in evaluation.active_categories:
                    category_mean = mean(v for rs, v in lane if rs.category_id == category.id)
                    if category_mean is not None:
                        per_category[category.id] = category_mean
                score = self._weighted_categories(evaluation.active_categories, per_category)
            else:
                score = mean(v for _, v in lane)

            if score is not None:
                raw_area_totals[area.id] = score
            elif area.weight > 0:
                partial = True
            stakeholder_scores.append(StakeholderScore(
                stakeholder_area_id=area.id,
                name=area.name,
                weight=area.weight,
                score=quantize(score),
                percentage=to_percentage(score, scale_max),
                contributing_requirements=len(lane),
            ))

        present = [a for a in evaluation.stakeholder_areas if a.id in raw_area_totals]
        overall = weighted_mean(
            [raw_area_totals[a.id] for a in present],
            [a.weight for a in present],
        )
        return overall, stakeholder_scores, partial
