# evaluator/models/score.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from evaluator.models.enumerations import ConsensusState, ScoreConfidence, ScoreStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScoreEntry(BaseModel):
    """
    One version of an evaluator's score for a (vendor, requirement).

    The stakeholder area is stored only under multi-stakeholder scoring,
    where each area is a separate lane with its own versions.

    Entries are never edited in place: a re-submission appends a new version
    pointing at the previous one.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    evaluator_id: str
    vendor_id: str
    requirement_id: str
    stakeholder_area_id: Optional[str] = Field(
        default=None,
        description="Required only under multi-stakeholder scoring"
    )
    score: Decimal
    evidence: Optional[str] = Field(
        default=None,
        description="Justification; mandatory at either extreme of the scale"
    )
    confidence: Optional[ScoreConfidence] = None
    status: ScoreStatus = ScoreStatus.DRAFT
    submitted_at: Optional[datetime] = None
    evidence_ids: Tuple[str, ...] = Field(
        default=(),
        description="Linked evidence records, in link order"
    )
    version: int = Field(default=1, ge=1)
    previous_version_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    superseded_by: Optional[str] = Field(
        default=None,
        description="ConsensusEntry that superseded this entry"
    )

    @property
    def key(self) -> Tuple[str, str, str, Optional[str]]:
        """Versioning key; the area part is None outside multi-stakeholder scoring."""
        return (self.evaluator_id, self.vendor_id, self.requirement_id, self.stakeholder_area_id)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.vendor_id, self.requirement_id)


class ConsensusEntry(BaseModel):
    """Team-agreed score that supersedes individual scores for the pair."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    vendor_id: str
    requirement_id: str
    score: Decimal
    evidence: str = Field(..., min_length=1)
    facilitator_id: str
    derived_from: List[str] = Field(
        default_factory=list,
        description="ScoreEntry ids considered when reaching consensus"
    )
    supersedes: Optional[str] = Field(
        default=None,
        description="Previous ConsensusEntry for the same pair, if reopened"
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.vendor_id, self.requirement_id)


class ConsensusSession(BaseModel):
    """Workflow state of a (vendor, requirement) pair."""

    model_config = ConfigDict(frozen=True)

    vendor_id: str
    requirement_id: str
    state: ConsensusState = ConsensusState.INDIVIDUAL
    facilitator_id: Optional[str] = None
    opened_at: Optional[datetime] = None
    current_consensus_id: Optional[str] = None
