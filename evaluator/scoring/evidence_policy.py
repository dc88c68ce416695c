"""
Evidence Policy
evaluator/scoring/evidence_policy.py

Scores at either extreme of the scale must carry a written justification.
Applied at entry time, independent of the scoring method. Consensus scores
always require evidence.
"""

from decimal import Decimal
from typing import Optional

from evaluator.core.exceptions import EvidenceRequired
from evaluator.models.evaluation import ScaleBounds


def has_evidence(evidence: Optional[str]) -> bool:
    """Whitespace-only text does not count as evidence."""
    return bool(evidence and evidence.strip())


class EvidencePolicy:
    """Enforce evidence-for-extremes on a scoring scale."""

    def __init__(self, scale: ScaleBounds):
        self.scale = scale

    def requires_evidence(self, score: Decimal) -> bool:
        return self.scale.is_extreme(score)

    def check(self, score: Decimal, evidence: Optional[str]) -> None:
        """Raise EvidenceRequired for an extreme score without evidence."""
        if self.requires_evidence(score) and not has_evidence(evidence):
            bound = "minimum" if score == self.scale.minimum else "maximum"
            raise EvidenceRequired(score, f"score equals the scale {bound}")

    def check_consensus(self, score: Decimal, evidence: Optional[str]) -> None:
        """Consensus scores are always audited, so evidence is mandatory."""
        if not has_evidence(evidence):
            raise EvidenceRequired(score, "consensus scores always require evidence")
