# evaluator/models/results.py
"""
Result models returned by the scoring core.

All of these are derived and always recomputable; none is a source of truth.
They are pydantic models so callers can serialise or cache them as JSON.
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from evaluator.core.exceptions import ConfigurationInvalid
from evaluator.models.enumerations import (
    MoSCoWPriority,
    ScoreSource,
    ScoringMethod,
    VarianceLevel,
)


# ---------------------------------------------------------------------------
# Configuration validation
# ---------------------------------------------------------------------------

class Violation(BaseModel):
    """A single configuration problem."""
    code: str = Field(..., description="Machine-readable violation code")
    message: str = Field(..., description="Human-readable explanation")
    entity_id: Optional[str] = None


class ValidationResult(BaseModel):
    evaluation_id: str
    violations: List[Violation] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def raise_if_invalid(self) -> None:
        if self.violations:
            raise ConfigurationInvalid(self.evaluation_id, self.violations)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

class RequirementScore(BaseModel):
    """Usable score of one requirement for one vendor."""
    requirement_id: str
    category_id: str
    priority: MoSCoWPriority
    effective_weight: Decimal
    score: Optional[Decimal] = None          # None when no usable score
    source: Optional[ScoreSource] = None
    evaluator_count: int = 0
    area_scores: Dict[str, Decimal] = Field(default_factory=dict)


class CategoryScore(BaseModel):
    category_id: str
    name: str
    weight: Decimal
    score: Optional[Decimal] = None          # None when the category is absent
    percentage: Optional[Decimal] = None
    contributing_requirements: int = 0
    total_requirements: int = 0


class StakeholderScore(BaseModel):
    stakeholder_area_id: str
    name: str
    weight: Decimal
    score: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    contributing_requirements: int = 0


class AggregatedResult(BaseModel):
    """Scores of one vendor under the evaluation's scoring method."""
    evaluation_id: str
    vendor_id: str
    method: ScoringMethod
    overall_score: Optional[Decimal] = None   # None when nothing is scored
    overall_percentage: Optional[Decimal] = None
    per_category_scores: List[CategoryScore] = Field(default_factory=list)
    per_stakeholder_scores: List[StakeholderScore] = Field(default_factory=list)
    requirement_scores: List[RequirementScore] = Field(default_factory=list)
    completeness: Decimal = Decimal("0")
    scored_requirements: int = 0
    total_requirements: int = 0
    partial: bool = False
    must_have_score: Optional[Decimal] = None
    rank: Optional[int] = None

    def category_score(self, category_id: str) -> Optional[CategoryScore]:
        return next((c for c in self.per_category_scores if c.category_id == category_id), None)

    def requirement_score(self, requirement_id: str) -> Optional[RequirementScore]:
        return next((r for r in self.requirement_scores if r.requirement_id == requirement_id), None)

    def stakeholder_score(self, area_id: str) -> Optional[StakeholderScore]:
        return next(
            (s for s in self.per_stakeholder_scores if s.stakeholder_area_id == area_id), None
        )


class RankingResult(BaseModel):
    """Ranked results of every active vendor in an evaluation."""
    evaluation_id: str
    method: ScoringMethod
    results: List[AggregatedResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

class VendorComparison(BaseModel):
    vendor_id: str
    rank: Optional[int] = None
    overall_score: Optional[Decimal] = None
    overall_percentage: Optional[Decimal] = None
    completeness: Decimal = Decimal("0")
    category_scores: Dict[str, Optional[Decimal]] = Field(default_factory=dict)
    category_gaps: Dict[str, Optional[Decimal]] = Field(
        default_factory=dict,
        description="Difference from the top-scoring requested vendor per category"
    )
    requirement_scores: Dict[str, Optional[Decimal]] = Field(default_factory=dict)


class ComparisonMatrix(BaseModel):
    evaluation_id: str
    method: ScoringMethod
    category_ids: List[str] = Field(default_factory=list)
    requirement_ids: List[str] = Field(default_factory=list)
    vendors: List[VendorComparison] = Field(default_factory=list)
    top_vendor_by_category: Dict[str, Optional[str]] = Field(default_factory=dict)

    def vendor(self, vendor_id: str) -> Optional[VendorComparison]:
        return next((v for v in self.vendors if v.vendor_id == vendor_id), None)


# ---------------------------------------------------------------------------
# Reconciliation / progress
# ---------------------------------------------------------------------------

class ScoreComparison(BaseModel):
    """Spread of current individual scores for one (vendor, requirement)."""
    vendor_id: str
    requirement_id: str
    count: int = 0
    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None
    mean: Optional[Decimal] = None
    variance: Decimal = Decimal("0")
    variance_level: VarianceLevel = VarianceLevel.LOW
    needs_reconciliation: bool = False
    consensed: bool = False


class ScoringProgress(BaseModel):
    vendor_id: str
    evaluator_id: Optional[str] = None
    total_requirements: int = 0
    scored: int = 0
    percent_complete: int = 0
