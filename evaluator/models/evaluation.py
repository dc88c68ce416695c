# evaluator/models/evaluation.py
"""
Evaluation configuration models.

The configuration service owns these records; the scoring core reads them and
never mutates them. The scoring method is a closed tagged union over the five
supported variants, each carrying only the fields it needs.
"""
from decimal import Decimal
from typing import Annotated, ClassVar, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from evaluator.models.enumerations import MoSCoWPriority, ScalePreset, ScoringMethod


_SCALE_PRESETS: Dict[ScalePreset, tuple] = {
    ScalePreset.ZERO_TO_FIVE: (Decimal("0"), Decimal("5")),
    ScalePreset.ONE_TO_FIVE: (Decimal("1"), Decimal("5")),
    ScalePreset.ZERO_TO_TEN: (Decimal("0"), Decimal("10")),
    ScalePreset.ONE_TO_TEN: (Decimal("1"), Decimal("10")),
}


def _new_id() -> str:
    return str(uuid4())


# ---------------------------------------------------------------------------
# Scale
# ---------------------------------------------------------------------------

class ScaleBounds(BaseModel):
    """Scoring scale. Bounds are checked by the ConfigurationValidator."""

    model_config = ConfigDict(frozen=True)

    minimum: Decimal = Field(default=Decimal("0"), description="Lowest allowed score")
    maximum: Decimal = Field(default=Decimal("5"), description="Highest allowed score")
    half_points: bool = Field(default=False, description="Allow 0.5 increments")

    @classmethod
    def from_preset(cls, preset: ScalePreset, half_points: bool = False) -> "ScaleBounds":
        minimum, maximum = _SCALE_PRESETS[ScalePreset(preset)]
        return cls(minimum=minimum, maximum=maximum, half_points=half_points)

    def is_extreme(self, score: Decimal) -> bool:
        return score == self.minimum or score == self.maximum


# ---------------------------------------------------------------------------
# Scoring method variants
# ---------------------------------------------------------------------------

class _MethodBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Overall roll-up weights categories by Category.weight
    weights_categories: ClassVar[bool] = True

    @property
    def scoring_method(self) -> ScoringMethod:
        return ScoringMethod(self.method)

    @property
    def requires_category_weights(self) -> bool:
        return self.weights_categories

    @property
    def requires_stakeholder_weights(self) -> bool:
        return False

    def requirement_weight(self, requirement: "Requirement") -> Decimal:
        """Roll-up weight of a requirement inside its category."""
        if requirement.priority == MoSCoWPriority.WONT_HAVE:
            return Decimal("0")
        return Decimal("1")


class SimpleAverageMethod(_MethodBase):
    """Mean of requirement scores per category, mean of categories overall."""

    method: Literal["simple_average"] = "simple_average"
    weights_categories: ClassVar[bool] = False


class CategoryWeightedMethod(_MethodBase):
    """Mean per category, Σ(category_mean × category_weight / 100) overall."""

    method: Literal["category_weighted"] = "category_weighted"


class RequirementWeightedMethod(_MethodBase):
    """Requirement.weight weighted mean per category, category weights overall."""

    method: Literal["requirement_weighted"] = "requirement_weighted"

    def requirement_weight(self, requirement: "Requirement") -> Decimal:
        if requirement.priority == MoSCoWPriority.WONT_HAVE:
            return Decimal("0")
        return requirement.weight


class MoSCoWWeightedMethod(_MethodBase):
    """Priority multipliers replace requirement weights; not user-editable."""

    method: Literal["moscow_weighted"] = "moscow_weighted"

    multipliers: ClassVar[Dict[MoSCoWPriority, Decimal]] = {
        MoSCoWPriority.MUST_HAVE: Decimal("4"),
        MoSCoWPriority.SHOULD_HAVE: Decimal("2"),
        MoSCoWPriority.COULD_HAVE: Decimal("1"),
        MoSCoWPriority.WONT_HAVE: Decimal("0"),
    }

    def requirement_weight(self, requirement: "Requirement") -> Decimal:
        return self.multipliers[requirement.priority]


class MultiStakeholderMethod(_MethodBase):
    """
    Independent scoring lane per stakeholder area, Σ(area_score × area_weight / 100).

    With `category_weighting` an area score is the category-weighted blend of
    its category means instead of the plain mean of its requirement scores.
    """

    method: Literal["multi_stakeholder"] = "multi_stakeholder"
    category_weighting: bool = False

    @property
    def requires_category_weights(self) -> bool:
        return self.category_weighting

    @property
    def requires_stakeholder_weights(self) -> bool:
        return True


ScoringMethodConfig = Annotated[
    Union[
        SimpleAverageMethod,
        CategoryWeightedMethod,
        RequirementWeightedMethod,
        MoSCoWWeightedMethod,
        MultiStakeholderMethod,
    ],
    Field(discriminator="method"),
]

SUPPORTED_METHODS = (
    SimpleAverageMethod,
    CategoryWeightedMethod,
    RequirementWeightedMethod,
    MoSCoWWeightedMethod,
    MultiStakeholderMethod,
)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class Category(BaseModel):
    """Weighted grouping of requirements."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=255)
    weight: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    archived: bool = False


class StakeholderArea(BaseModel):
    """Evaluator perspective with its own weighted scoring lane."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=255)
    weight: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class Requirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    category_id: str
    name: str = ""
    priority: MoSCoWPriority = MoSCoWPriority.SHOULD_HAVE
    weight: Decimal = Field(default=Decimal("1"), gt=0)
    finalized: bool = Field(default=True, description="Unfinalized requirements are not aggregated")


class Vendor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = ""
    excluded: bool = Field(default=False, description="Excluded from evaluation")


class Evaluation(BaseModel):
    """
    Scoring configuration of one evaluation.

    Owns categories, stakeholder areas, requirements and vendors.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = ""
    method: ScoringMethodConfig = Field(default_factory=SimpleAverageMethod)
    scale: ScaleBounds = Field(default_factory=ScaleBounds)
    categories: List[Category] = Field(default_factory=list)
    stakeholder_areas: List[StakeholderArea] = Field(default_factory=list)
    requirements: List[Requirement] = Field(default_factory=list)
    vendors: List[Vendor] = Field(default_factory=list)

    def category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def requirement(self, requirement_id: str) -> Optional[Requirement]:
        return next((r for r in self.requirements if r.id == requirement_id), None)

    def vendor(self, vendor_id: str) -> Optional[Vendor]:
        return next((v for v in self.vendors if v.id == vendor_id), None)

    def stakeholder_area(self, area_id: str) -> Optional[StakeholderArea]:
        return next((a for a in self.stakeholder_areas if a.id == area_id), None)

    @property
    def active_categories(self) -> List[Category]:
        return [c for c in self.categories if not c.archived]

    @property
    def active_vendors(self) -> List[Vendor]:
        return [v for v in self.vendors if not v.excluded]

    def in_scope_requirements(self) -> List[Requirement]:
        """Finalized, non-WontHave requirements of active categories."""
        active_ids = {c.id for c in self.active_categories}
        return [
            r for r in self.requirements
            if r.finalized
            and r.category_id in active_ids
            and r.priority != MoSCoWPriority.WONT_HAVE
        ]
