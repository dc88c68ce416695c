"""
Configuration Validator
evaluator/scoring/config_validator.py

Validates an evaluation's scoring configuration before it may be aggregated.

Checks:
    1. Scoring method is one of the five supported variants
    2. Scale bounds are well-formed (minimum < maximum)
    3. Category weights of non-archived categories sum to 100 ± tolerance
       when the method weights categories
    4. Stakeholder area weights sum to 100 ± tolerance under multi-stakeholder
    5. Every requirement references an existing category

All violations are collected so a configuration editor can show every
problem at once.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from evaluator.config import settings
from evaluator.models.evaluation import SUPPORTED_METHODS, Evaluation
from evaluator.models.results import ValidationResult, Violation

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


def distribute_weights_evenly(count: int) -> List[Decimal]:
    """
    Split 100 into `count` weights rounded to 0.01, remainder on the last one.

    Examples:
        >>> distribute_weights_evenly(3)
        [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]
    """
    if count < 1:
        return []
    share = (HUNDRED / Decimal(count)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    weights = [share] * count
    weights[-1] = HUNDRED - share * (count - 1)
    return weights


class ConfigurationValidator:
    """Validate evaluation scoring configuration."""

    def __init__(self, tolerance: Optional[float] = None):
        self.tolerance = Decimal(str(
            settings.WEIGHT_SUM_TOLERANCE if tolerance is None else tolerance
        ))

    def validate(self, evaluation: Evaluation) -> ValidationResult:
        """
        Args:
            evaluation: Parsed evaluation configuration.

        Returns:
            ValidationResult listing every violation (empty when valid).
        """
        violations: List[Violation] = []
        method = evaluation.method

        # Parsed evaluations cannot reach this; instances built with
        # model_construct or model_copy skip the discriminated union
        if not isinstance(method, SUPPORTED_METHODS):
            violations.append(Violation(
                code="unsupported_method",
                message=f"Scoring method {getattr(method, 'method', method)!r} is not supported",
            ))
            method = None

        scale = evaluation.scale
        if not scale.minimum.is_finite() or not scale.maximum.is_finite():
            violations.append(Violation(
                code="invalid_scale",
                message="Scale bounds must be finite numbers",
            ))
        elif scale.minimum >= scale.maximum:
            violations.append(Violation(
                code="invalid_scale",
                message=(
                    f"Scale minimum {scale.minimum} must be lower than "
                    f"maximum {scale.maximum}"
                ),
            ))
        elif scale.maximum <= 0:
            violations.append(Violation(
                code="invalid_scale",
                message=f"Scale maximum {scale.maximum} must be positive for normalisation",
            ))

        if method is not None and method.requires_category_weights:
            violations.extend(self._check_weight_sum(
                "category",
                [(c.id, c.weight) for c in evaluation.active_categories],
            ))

        if method is not None and method.requires_stakeholder_weights:
            if not evaluation.stakeholder_areas:
                violations.append(Violation(
                    code="missing_stakeholder_areas",
                    message="Multi-stakeholder scoring needs at least one stakeholder area",
                ))
            else:
                violations.extend(self._check_weight_sum(
                    "stakeholder_area",
                    [(a.id, a.weight) for a in evaluation.stakeholder_areas],
                ))

        violations.extend(self._check_duplicates(evaluation))

        category_ids = {c.id for c in evaluation.categories}
        for requirement in evaluation.requirements:
            if requirement.category_id not in category_ids:
                violations.append(Violation(
                    code="dangling_category_reference",
                    message=(
                        f"Requirement {requirement.id} references unknown "
                        f"category {requirement.category_id}"
                    ),
                    entity_id=requirement.id,
                ))

        result = ValidationResult(evaluation_id=evaluation.id, violations=violations)
        logger.info(
            "configuration_validated",
            evaluation_id=evaluation.id,
            valid=result.is_valid,
            violation_codes=[v.code for v in violations],
        )
        return result

    def validate_payload(self, payload: Dict[str, Any]) -> ValidationResult:
        """
        Validate a raw configuration payload.

        Schema errors (unknown scoring method, weights outside 0-100, missing
        fields) are reported as violations alongside the semantic checks.
        """
        try:
            evaluation = Evaluation.model_validate(payload)
        except ValidationError as exc:
            violations = [
                Violation(
                    code="schema_error",
                    message=f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}",
                )
                for err in exc.errors()
            ]
            return ValidationResult(
                evaluation_id=str(payload.get("id", "")),
                violations=violations,
            )
        return self.validate(evaluation)

    def ensure_valid(self, evaluation: Evaluation) -> None:
        """Fail closed: raise ConfigurationInvalid unless the configuration validates."""
        self.validate(evaluation).raise_if_invalid()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_weight_sum(self, kind: str, weights: List[tuple]) -> List[Violation]:
        total = sum((w for _, w in weights), Decimal("0"))
        if abs(total - HUNDRED) > self.tolerance:
            return [Violation(
                code=f"{kind}_weights_sum",
                message=(
                    f"{kind.replace('_', ' ').capitalize()} weights must sum to 100%, "
                    f"got {total.normalize():f}%"
                ),
            )]
        return []

    @staticmethod
    def _check_duplicates(evaluation: Evaluation) -> List[Violation]:
        violations = []
        for kind, items in (
            ("category", evaluation.categories),
            ("stakeholder_area", evaluation.stakeholder_areas),
            ("requirement", evaluation.requirements),
            ("vendor", evaluation.vendors),
        ):
            seen = set()
            for item in items:
                if item.id in seen:
                    violations.append(Violation(
                        code=f"duplicate_{kind}_id",
                        message=f"Duplicate {kind.replace('_', ' ')} id {item.id}",
                        entity_id=item.id,
                    ))
                seen.add(item.id)
        return violations
