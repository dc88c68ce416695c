"""
Models Package - Evaluator Scoring Engine
evaluator/models/__init__.py

Configuration entities, score ledger entries and derived result objects.
"""

from evaluator.models.enumerations import (
    ConsensusState,
    EvaluatorRole,
    MoSCoWPriority,
    ScalePreset,
    ScoreConfidence,
    ScoreSource,
    ScoreStatus,
    ScoringMethod,
    VarianceLevel,
)
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
from evaluator.models.results import (
    AggregatedResult,
    CategoryScore,
    ComparisonMatrix,
    RankingResult,
    RequirementScore,
    ScoreComparison,
    ScoringProgress,
    StakeholderScore,
    ValidationResult,
    VendorComparison,
    Violation,
)
from evaluator.models.score import ConsensusEntry, ConsensusSession, ScoreEntry

__all__ = [
    # Enumerations
    "ConsensusState",
    "EvaluatorRole",
    "MoSCoWPriority",
    "ScalePreset",
    "ScoreConfidence",
    "ScoreSource",
    "ScoreStatus",
    "ScoringMethod",
    "VarianceLevel",
    # Configuration
    "Category",
    "CategoryWeightedMethod",
    "Evaluation",
    "MoSCoWWeightedMethod",
    "MultiStakeholderMethod",
    "Requirement",
    "RequirementWeightedMethod",
    "ScaleBounds",
    "SimpleAverageMethod",
    "StakeholderArea",
    "Vendor",
    # Ledger
    "ConsensusEntry",
    "ConsensusSession",
    "ScoreEntry",
    # Results
    "AggregatedResult",
    "CategoryScore",
    "ComparisonMatrix",
    "RankingResult",
    "RequirementScore",
    "ScoreComparison",
    "ScoringProgress",
    "StakeholderScore",
    "ValidationResult",
    "VendorComparison",
    "Violation",
]
