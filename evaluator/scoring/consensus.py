"""
Consensus Workflow
evaluator/scoring/consensus.py

State machine per (vendor, requirement) pair:

    INDIVIDUAL ──open_consensus──► UNDER_CONSENSUS ──record_consensus──► CONSENSED
                                        ▲                                   │
                                        └──────────────reopen───────────────┘

record_consensus is the only way to create a ConsensusEntry. Reopening keeps
every prior ConsensusEntry; the next recorded entry supersedes it. Aggregation
only looks at the presence of a current ConsensusEntry, never at the state.

Transitions for a pair are serialised through the repository's pair lock. A
second open_consensus on an open pair fails immediately with
ConsensusAlreadyOpen instead of waiting.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog

from evaluator.core.exceptions import (
    ConsensusAlreadyOpen,
    EntityNotFoundException,
    InvalidConsensusTransition,
    PermissionDenied,
)
from evaluator.models.enumerations import ConsensusState
from evaluator.models.evaluation import Evaluation
from evaluator.models.score import ConsensusEntry, ConsensusSession
from evaluator.repositories.base import BaseScoreRepository, current_versions
from evaluator.scoring.evidence_policy import EvidencePolicy
from evaluator.scoring.score_ledger import coerce_score

logger = structlog.get_logger(__name__)


class ConsensusWorkflow:
    """Open, record and reopen consensus for (vendor, requirement) pairs."""

    def __init__(self, evaluation: Evaluation, repository: BaseScoreRepository):
        self.evaluation = evaluation
        self.repository = repository
        self.evidence_policy = EvidencePolicy(evaluation.scale)

    def _check_pair(self, vendor_id: str, requirement_id: str) -> None:
        if self.evaluation.vendor(vendor_id) is None:
            raise EntityNotFoundException("Vendor", vendor_id)
        if self.evaluation.requirement(requirement_id) is None:
            raise EntityNotFoundException("Requirement", requirement_id)

    def state(self, vendor_id: str, requirement_id: str) -> ConsensusState:
        return self.repository.consensus_state(vendor_id, requirement_id)

    def session(self, vendor_id: str, requirement_id: str) -> Optional[ConsensusSession]:
        return self.repository.get_session(vendor_id, requirement_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def open_consensus(
        self, vendor_id: str, requirement_id: str, facilitator_id: str
    ) -> ConsensusSession:
        """INDIVIDUAL → UNDER_CONSENSUS."""
        self._check_pair(vendor_id, requirement_id)
        with self.repository.pair_lock(vendor_id, requirement_id):
            current = self.repository.get_session(vendor_id, requirement_id)
            state = current.state if current else ConsensusState.INDIVIDUAL

            if state == ConsensusState.UNDER_CONSENSUS:
                raise ConsensusAlreadyOpen(vendor_id, requirement_id, current.facilitator_id)
            if state == ConsensusState.CONSENSED:
                raise InvalidConsensusTransition(vendor_id, requirement_id, state.value, "open")

            session = self.repository.save_session(ConsensusSession(
                vendor_id=vendor_id,
                requirement_id=requirement_id,
                state=ConsensusState.UNDER_CONSENSUS,
                facilitator_id=facilitator_id,
                opened_at=datetime.now(timezone.utc),
            ))

        logger.info(
            "consensus_opened",
            evaluation_id=self.evaluation.id,
            vendor_id=vendor_id,
            requirement_id=requirement_id,
            facilitator_id=facilitator_id,
        )
        return session

    def record_consensus(
        self,
        vendor_id: str,
        requirement_id: str,
        score,
        evidence: str,
        facilitator_id: str,
    ) -> ConsensusEntry:
        """
        UNDER_CONSENSUS → CONSENSED.

        The entry references every current individual score of the pair.
        Evidence is mandatory. Only the facilitator who holds the open session
        may record it.
        """
        self._check_pair(vendor_id, requirement_id)
        value = coerce_score(score, self.evaluation.scale)
        self.evidence_policy.check_consensus(value, evidence)

        with self.repository.pair_lock(vendor_id, requirement_id):
            current = self.repository.get_session(vendor_id, requirement_id)
            state = current.state if current else ConsensusState.INDIVIDUAL
            if state != ConsensusState.UNDER_CONSENSUS:
                raise InvalidConsensusTransition(vendor_id, requirement_id, state.value, "record")
            if current.facilitator_id != facilitator_id:
                raise PermissionDenied(
                    facilitator_id, "facilitator", "record consensus for a session they do not facilitate"
                )

            scores, history = self.repository.query_by_vendor_requirement(vendor_id, requirement_id)
            entry = self.repository.append_consensus(ConsensusEntry(
                vendor_id=vendor_id,
                requirement_id=requirement_id,
                score=value,
                evidence=evidence,
                facilitator_id=facilitator_id,
                derived_from=[s.id for s in current_versions(scores)],
                supersedes=history[-1].id if history else None,
            ))
            self.repository.save_session(current.model_copy(update={
                "state": ConsensusState.CONSENSED,
                "current_consensus_id": entry.id,
            }))

        logger.info(
            "consensus_recorded",
            evaluation_id=self.evaluation.id,
            vendor_id=vendor_id,
            requirement_id=requirement_id,
            facilitator_id=facilitator_id,
            score=float(value),
            derived_from=len(entry.derived_from),
            supersedes=entry.supersedes,
        )
        return entry

    def reopen(
        self,
        vendor_id: str,
        requirement_id: str,
        facilitator_id: Optional[str] = None,
    ) -> ConsensusSession:
        """
        CONSENSED → UNDER_CONSENSUS.

        The recorded ConsensusEntry stays current until a new one is recorded.
        """
        self._check_pair(vendor_id, requirement_id)
        with self.repository.pair_lock(vendor_id, requirement_id):
            current = self.repository.get_session(vendor_id, requirement_id)
            state = current.state if current else ConsensusState.INDIVIDUAL
            if state == ConsensusState.UNDER_CONSENSUS:
                raise ConsensusAlreadyOpen(vendor_id, requirement_id, current.facilitator_id)
            if state != ConsensusState.CONSENSED:
                raise InvalidConsensusTransition(vendor_id, requirement_id, state.value, "reopen")

            session = self.repository.save_session(current.model_copy(update={
                "state": ConsensusState.UNDER_CONSENSUS,
                "facilitator_id": facilitator_id or current.facilitator_id,
                "opened_at": datetime.now(timezone.utc),
            }))

        logger.info(
            "consensus_reopened",
            evaluation_id=self.evaluation.id,
            vendor_id=vendor_id,
            requirement_id=requirement_id,
            facilitator_id=session.facilitator_id,
        )
        return session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_consensus(self, vendor_id: str, requirement_id: str) -> Optional[ConsensusEntry]:
        _, history = self.repository.query_by_vendor_requirement(vendor_id, requirement_id)
        return history[-1] if history else None

    def history(self, vendor_id: str, requirement_id: str) -> List[ConsensusEntry]:
        """Every ConsensusEntry of the pair, oldest first."""
        _, history = self.repository.query_by_vendor_requirement(vendor_id, requirement_id)
        return history
