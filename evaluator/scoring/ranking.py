"""
Ranking & Comparison Builder
evaluator/scoring/ranking.py

Ranking order:
    1. overall_score, descending (vendors with no score last)
    2. completeness, descending
    3. mean score on MustHave requirements, descending (none last)
    4. vendor_id, ascending, for determinism

The comparison matrix is a pure function over AggregatedResults: overall,
per-category and per-requirement scores of each requested vendor plus the gap
to the top-scoring requested vendor in every category.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import structlog

from evaluator.models.evaluation import Evaluation
from evaluator.models.results import AggregatedResult, ComparisonMatrix, VendorComparison

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")


def ranking_key(result: AggregatedResult) -> tuple:
    overall = result.overall_score
    must_have = result.must_have_score
    return (
        overall is None,
        -(overall if overall is not None else _ZERO),
        -result.completeness,
        must_have is None,
        -(must_have if must_have is not None else _ZERO),
        result.vendor_id,
    )


def rank_results(results: Iterable[AggregatedResult]) -> List[AggregatedResult]:
    """Sort by ranking_key and assign 1-based ranks."""
    ordered = sorted(results, key=ranking_key)
    return [r.model_copy(update={"rank": position}) for position, r in enumerate(ordered, start=1)]


def build_comparison(
    evaluation: Evaluation, results: List[AggregatedResult]
) -> ComparisonMatrix:
    """
    Build the comparison matrix for already aggregated vendors.

    Args:
        evaluation: Configuration the results were computed under.
        results: AggregatedResults of the vendors to compare.

    Returns:
        ComparisonMatrix in ranking order. A vendor without a score in a
        category has a None score and a None gap for it.
    """
    ranked = rank_results(results)
    category_ids = [c.id for c in evaluation.active_categories]
    requirement_ids = [r.id for r in evaluation.in_scope_requirements()]

    top_score: Dict[str, Optional[Decimal]] = {}
    top_vendor: Dict[str, Optional[str]] = {}
    for category_id in category_ids:
        top_score[category_id] = None
        top_vendor[category_id] = None
        for result in ranked:
            cs = result.category_score(category_id)
            if cs is None or cs.score is None:
                continue
            if top_score[category_id] is None or cs.score > top_score[category_id]:
                top_score[category_id] = cs.score
                top_vendor[category_id] = result.vendor_id

    vendors: List[VendorComparison] = []
    for result in ranked:
        category_scores: Dict[str, Optional[Decimal]] = {}
        category_gaps: Dict[str, Optional[Decimal]] = {}
        for category_id in category_ids:
            cs = result.category_score(category_id)
            score = cs.score if cs is not None else None
            category_scores[category_id] = score
            category_gaps[category_id] = (
                top_score[category_id] - score if score is not None else None
            )

        requirement_scores = {}
        for requirement_id in requirement_ids:
            rs = result.requirement_score(requirement_id)
            requirement_scores[requirement_id] = rs.score if rs is not None else None

        vendors.append(VendorComparison(
            vendor_id=result.vendor_id,
            rank=result.rank,
            overall_score=result.overall_score,
            overall_percentage=result.overall_percentage,
            completeness=result.completeness,
            category_scores=category_scores,
            category_gaps=category_gaps,
            requirement_scores=requirement_scores,
        ))

    return ComparisonMatrix(
        evaluation_id=evaluation.id,
        method=evaluation.method.scoring_method,
        category_ids=category_ids,
        requirement_ids=requirement_ids,
        vendors=vendors,
        top_vendor_by_category=top_vendor,
    )


class ComparisonBuilder:
    """Compare selected vendors using an AggregationEngine."""

    def __init__(self, engine):
        self.engine = engine

    def compare(self, evaluation: Evaluation, vendor_ids: Iterable[str]) -> ComparisonMatrix:
        results = self.engine.aggregate_many(evaluation, vendor_ids)
        matrix = build_comparison(evaluation, results)
        logger.info(
            "comparison_built",
            evaluation_id=evaluation.id,
            vendors=[v.vendor_id for v in matrix.vendors],
            top_vendor_by_category=matrix.top_vendor_by_category,
        )
        return matrix
