"""
Score Ledger
evaluator/scoring/score_ledger.py

Append-oriented store of individual evaluator scores.

One logical entry per (evaluator, vendor, requirement); under
multi-stakeholder scoring each stakeholder area is a separate lane of the
key. Re-submitting the same key appends a new version that points at the
previous one; aggregation reads the current version only. Entries of
different evaluators never overwrite each other.

Entry-time checks, in order:
    1. vendor and requirement belong to the evaluation
    2. score is a finite number inside [scale.minimum, scale.maximum]
       on the configured granularity (whole or half points)
    3. stakeholder area is supplied under multi-stakeholder scoring and,
       when supplied, is one of the configured areas
    4. evidence policy (extreme scores need evidence)
    5. the pair is not locked by a consensus session

Nothing is appended unless every check passes. No recalculation is
triggered; aggregation is pull-based.

Scores start as drafts. `submit_all` hands an evaluator's drafts for a
vendor in, and `link_evidence` / `unlink_evidence` change the evidence
records attached to a score. Each of these appends a new version carrying
the same score; the draft/submitted status does not affect aggregation.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, List, Optional

import structlog

from evaluator.core.exceptions import (
    EntityNotFoundException,
    InvalidScore,
    MissingStakeholderArea,
    ScoreLocked,
    ScoringException,
)
from evaluator.models.enumerations import ConsensusState, ScoreConfidence, ScoreStatus
from evaluator.models.evaluation import Evaluation, ScaleBounds
from evaluator.models.results import ScoringProgress
from evaluator.models.score import ScoreEntry
from evaluator.repositories.base import BaseScoreRepository, current_versions
from evaluator.scoring.evidence_policy import EvidencePolicy
from evaluator.scoring.utils import on_granularity, to_decimal

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _mark_submitted(latest: ScoreEntry) -> Optional[Dict]:
    if latest.status == ScoreStatus.SUBMITTED:
        return None
    return {"status": ScoreStatus.SUBMITTED, "submitted_at": _utcnow()}


def coerce_score(value, scale: ScaleBounds) -> Decimal:
    """Convert `value` to Decimal and check it against the scale; raise InvalidScore."""
    try:
        score = to_decimal(value)
    except (TypeError, ValueError):
        raise InvalidScore(value, "score must be a number")

    if not score.is_finite():
        raise InvalidScore(value, "score must be a finite number")
    if score < scale.minimum or score > scale.maximum:
        raise InvalidScore(
            value, f"score must be between {scale.minimum} and {scale.maximum}"
        )
    if not on_granularity(score, scale.half_points):
        granularity = "half points" if scale.half_points else "whole points"
        raise InvalidScore(value, f"score must be in {granularity}")
    return score


class ScoreLedger:
    """Versioned individual score entries for one evaluation."""

    def __init__(self, evaluation: Evaluation, repository: BaseScoreRepository):
        self.evaluation = evaluation
        self.repository = repository
        self.evidence_policy = EvidencePolicy(evaluation.scale)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def submit(
        self,
        evaluator_id: str,
        vendor_id: str,
        requirement_id: str,
        score,
        evidence: Optional[str] = None,
        stakeholder_area_id: Optional[str] = None,
        confidence: Optional[ScoreConfidence] = None,
        status: ScoreStatus = ScoreStatus.DRAFT,
        evidence_ids: Optional[Iterable[str]] = None,
    ) -> ScoreEntry:
        """
        Record an evaluator's score, replacing their working value for the key.

        Outside multi-stakeholder scoring a supplied area is checked against
        the configuration and then dropped, so it never splits the key.
        `evidence_ids=None` keeps the links of the previous version.

        Returns:
            The appended ScoreEntry version.

        Raises:
            EntityNotFoundException, InvalidScore, MissingStakeholderArea,
            EvidenceRequired, ScoreLocked
        """
        try:
            value = self._check_entry(
                vendor_id, requirement_id, score, evidence, stakeholder_area_id
            )
            area_id = self._lane(stakeholder_area_id)
            with self.repository.pair_lock(vendor_id, requirement_id):
                self._ensure_unlocked(vendor_id, requirement_id)

                previous = self.history(evaluator_id, vendor_id, requirement_id, area_id)
                prior = previous[-1] if previous else None
                if evidence_ids is None:
                    links = prior.evidence_ids if prior else ()
                else:
                    links = tuple(dict.fromkeys(evidence_ids))
                entry = ScoreEntry(
                    evaluator_id=evaluator_id,
                    vendor_id=vendor_id,
                    requirement_id=requirement_id,
                    stakeholder_area_id=area_id,
                    score=value,
                    evidence=evidence,
                    confidence=confidence,
                    status=status,
                    submitted_at=_utcnow() if status == ScoreStatus.SUBMITTED else None,
                    evidence_ids=links,
                    version=prior.version + 1 if prior else 1,
                    previous_version_id=prior.id if prior else None,
                )
                self.repository.append_score(entry)
        except ScoringException as exc:
            logger.warning(
                "score_rejected",
                evaluation_id=self.evaluation.id,
                evaluator_id=evaluator_id,
                vendor_id=vendor_id,
                requirement_id=requirement_id,
                error_code=exc.error_code,
                reason=str(exc),
            )
            raise

        logger.info(
            "score_submitted",
            evaluation_id=self.evaluation.id,
            evaluator_id=evaluator_id,
            vendor_id=vendor_id,
            requirement_id=requirement_id,
            stakeholder_area_id=area_id,
            score=float(value),
            status=status.value,
            version=entry.version,
        )
        return entry

    def submit_all(self, vendor_id: str, evaluator_id: str) -> int:
        """
        Mark every current draft of `evaluator_id` for `vendor_id` as submitted.

        Pairs already under consensus are left as they are.

        Returns:
            Number of scores submitted.
        """
        drafts = [
            entry
            for entry in current_versions(
                self.repository.list_scores(vendor_id=vendor_id, evaluator_id=evaluator_id)
            )
            if entry.status == ScoreStatus.DRAFT
        ]

        submitted = 0
        for draft in drafts:
            try:
                self._revise(draft, _mark_submitted)
            except ScoreLocked as exc:
                logger.info(
                    "draft_left_locked",
                    evaluation_id=self.evaluation.id,
                    evaluator_id=evaluator_id,
                    vendor_id=vendor_id,
                    requirement_id=draft.requirement_id,
                    state=exc.state,
                )
                continue
            submitted += 1

        logger.info(
            "scores_submitted",
            evaluation_id=self.evaluation.id,
            evaluator_id=evaluator_id,
            vendor_id=vendor_id,
            submitted=submitted,
        )
        return submitted

    def link_evidence(
        self,
        evaluator_id: str,
        vendor_id: str,
        requirement_id: str,
        evidence_id: str,
        stakeholder_area_id: Optional[str] = None,
    ) -> ScoreEntry:
        """Attach an evidence record to the evaluator's current score."""
        def add(latest: ScoreEntry) -> Optional[Dict]:
            if evidence_id in latest.evidence_ids:
                return None
            return {"evidence_ids": latest.evidence_ids + (evidence_id,)}

        current = self._current(evaluator_id, vendor_id, requirement_id, stakeholder_area_id)
        return self._revise(current, add)

    def unlink_evidence(
        self,
        evaluator_id: str,
        vendor_id: str,
        requirement_id: str,
        evidence_id: str,
        stakeholder_area_id: Optional[str] = None,
    ) -> ScoreEntry:
        """Detach an evidence record; a record that is not linked is ignored."""
        def remove(latest: ScoreEntry) -> Optional[Dict]:
            if evidence_id not in latest.evidence_ids:
                return None
            return {"evidence_ids": tuple(e for e in latest.evidence_ids if e != evidence_id)}

        current = self._current(evaluator_id, vendor_id, requirement_id, stakeholder_area_id)
        return self._revise(current, remove)

    def _revise(
        self, entry: ScoreEntry, changes_for: Callable[[ScoreEntry], Optional[Dict]]
    ) -> ScoreEntry:
        """
        Append a new version of `entry`'s key.

        `changes_for` receives the latest version, read under the pair lock,
        and returns the fields to change, or None to keep it as it is.
        """
        with self.repository.pair_lock(entry.vendor_id, entry.requirement_id):
            self._ensure_unlocked(entry.vendor_id, entry.requirement_id)
            latest = self.history(
                entry.evaluator_id, entry.vendor_id, entry.requirement_id,
                entry.stakeholder_area_id,
            )[-1]
            changes = changes_for(latest)
            if changes is None:
                return latest
            data = latest.model_dump(
                exclude={"id", "created_at", "superseded_by", "version", "previous_version_id"}
            )
            data.update(changes)
            revised = ScoreEntry(
                **data,
                version=latest.version + 1,
                previous_version_id=latest.id,
            )
            self.repository.append_score(revised)

        logger.info(
            "score_revised",
            evaluation_id=self.evaluation.id,
            evaluator_id=revised.evaluator_id,
            vendor_id=revised.vendor_id,
            requirement_id=revised.requirement_id,
            changed=sorted(changes),
            version=revised.version,
        )
        return revised

    def _ensure_unlocked(self, vendor_id: str, requirement_id: str) -> None:
        state = self.repository.consensus_state(vendor_id, requirement_id)
        if state != ConsensusState.INDIVIDUAL:
            raise ScoreLocked(vendor_id, requirement_id, state.value)

    def _lane(self, stakeholder_area_id: Optional[str]) -> Optional[str]:
        """Area part of the versioning key."""
        if self.evaluation.method.requires_stakeholder_weights:
            return stakeholder_area_id
        return None

    def _check_entry(
        self,
        vendor_id: str,
        requirement_id: str,
        score,
        evidence: Optional[str],
        stakeholder_area_id: Optional[str],
    ) -> Decimal:
        if self.evaluation.vendor(vendor_id) is None:
            raise EntityNotFoundException("Vendor", vendor_id)
        if self.evaluation.requirement(requirement_id) is None:
            raise EntityNotFoundException("Requirement", requirement_id)

        value = coerce_score(score, self.evaluation.scale)

        if self.evaluation.method.requires_stakeholder_weights and stakeholder_area_id is None:
            raise MissingStakeholderArea()
        if (
            stakeholder_area_id is not None
            and self.evaluation.stakeholder_area(stakeholder_area_id) is None
        ):
            raise MissingStakeholderArea(stakeholder_area_id)

        self.evidence_policy.check(value, evidence)
        return value

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def history(
        self,
        evaluator_id: str,
        vendor_id: str,
        requirement_id: str,
        stakeholder_area_id: Optional[str] = None,
    ) -> List[ScoreEntry]:
        """Every version of one key, oldest first."""
        scores, _ = self.repository.query_by_vendor_requirement(vendor_id, requirement_id)
        key = (evaluator_id, vendor_id, requirement_id, self._lane(stakeholder_area_id))
        return sorted((s for s in scores if s.key == key), key=lambda s: s.version)

    def _current(
        self,
        evaluator_id: str,
        vendor_id: str,
        requirement_id: str,
        stakeholder_area_id: Optional[str],
    ) -> ScoreEntry:
        versions = self.history(evaluator_id, vendor_id, requirement_id, stakeholder_area_id)
        if not versions:
            raise EntityNotFoundException(
                "ScoreEntry", f"{evaluator_id}/{vendor_id}/{requirement_id}"
            )
        return versions[-1]

    def current_entries(self, vendor_id: str, requirement_id: str) -> List[ScoreEntry]:
        """Current version per evaluator (and area) for the pair."""
        scores, _ = self.repository.query_by_vendor_requirement(vendor_id, requirement_id)
        return current_versions(scores)

    def progress(self, vendor_id: str, evaluator_id: Optional[str] = None) -> ScoringProgress:
        """How many in-scope requirements have at least one current score."""
        in_scope = {r.id for r in self.evaluation.in_scope_requirements()}
        scored = {
            s.requirement_id
            for s in self.repository.list_scores(vendor_id=vendor_id, evaluator_id=evaluator_id)
            if s.requirement_id in in_scope
        }
        total = len(in_scope)
        percent = 0
        if total:
            percent = int(
                (Decimal(len(scored)) / Decimal(total) * 100).quantize(
                    Decimal("1"), rounding=ROUND_HALF_UP
                )
            )
        return ScoringProgress(
            vendor_id=vendor_id,
            evaluator_id=evaluator_id,
            total_requirements=total,
            scored=len(scored),
            percent_complete=percent,
        )
