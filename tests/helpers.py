# tests/helpers.py

"""
Shared builders for test evaluations.

FIXTURE ID REFERENCE:
- Categories:   cat-func (Functional, 60), cat-tech (Technical, 40)
- Requirements: req-f1 (MustHave), req-f2 (CouldHave) in Functional,
                req-t1 (ShouldHave) in Technical
- Vendors:      vendor-a, vendor-b, vendor-c
- Areas:        area-it (IT, 60), area-biz (Business, 40)
"""

from decimal import Decimal
from types import SimpleNamespace

from evaluator.models.enumerations import MoSCoWPriority
from evaluator.models.evaluation import (
    Category,
    CategoryWeightedMethod,
    Evaluation,
    MoSCoWWeightedMethod,
    MultiStakeholderMethod,
    Requirement,
    RequirementWeightedMethod,
    ScaleBounds,
    SimpleAverageMethod,
    StakeholderArea,
    Vendor,
)
from evaluator.repositories.memory_repository import InMemoryScoreRepository
from evaluator.scoring.aggregation import AggregationEngine
from evaluator.scoring.consensus import ConsensusWorkflow
from evaluator.scoring.reconciliation import ScoreReconciler
from evaluator.scoring.score_ledger import ScoreLedger


EVIDENCE = "Verified during vendor demo"

ALL_METHODS = [
    SimpleAverageMethod(),
    CategoryWeightedMethod(),
    RequirementWeightedMethod(),
    MoSCoWWeightedMethod(),
    MultiStakeholderMethod(),
]


def make_evaluation(method=None, **overrides) -> Evaluation:
    data = dict(
        id="eval-test",
        name="CRM Selection",
        method=method or SimpleAverageMethod(),
        scale=ScaleBounds(),
        categories=[
            Category(id="cat-func", name="Functional", weight=Decimal("60")),
            Category(id="cat-tech", name="Technical", weight=Decimal("40")),
        ],
        stakeholder_areas=[
            StakeholderArea(id="area-it", name="IT", weight=Decimal("60")),
            StakeholderArea(id="area-biz", name="Business", weight=Decimal("40")),
        ],
        requirements=[
            Requirement(id="req-f1", category_id="cat-func", name="Contact import",
                        priority=MoSCoWPriority.MUST_HAVE),
            Requirement(id="req-f2", category_id="cat-func", name="Reporting",
                        priority=MoSCoWPriority.COULD_HAVE),
            Requirement(id="req-t1", category_id="cat-tech", name="SSO",
                        priority=MoSCoWPriority.SHOULD_HAVE),
        ],
        vendors=[
            Vendor(id="vendor-a", name="Acme"),
            Vendor(id="vendor-b", name="Globex"),
            Vendor(id="vendor-c", name="Initech"),
        ],
    )
    data.update(overrides)
    return Evaluation(**data)


def build_components(evaluation: Evaluation) -> SimpleNamespace:
    """Ledger, workflow, engine and reconciler sharing one in-memory repository."""
    repository = InMemoryScoreRepository(evaluation.id)
    return SimpleNamespace(
        evaluation=evaluation,
        repository=repository,
        ledger=ScoreLedger(evaluation, repository),
        workflow=ConsensusWorkflow(evaluation, repository),
        engine=AggregationEngine(repository),
        reconciler=ScoreReconciler(evaluation, repository),
    )
