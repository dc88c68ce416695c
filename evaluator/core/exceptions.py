"""
Custom Exceptions - Evaluator Scoring Engine
evaluator/core/exceptions.py

Typed errors for configuration, score entry, consensus and lookup failures.
Every class carries a machine-readable `error_code`.
"""
from typing import Iterable, Optional


class ScoringException(Exception):
    """Base exception for scoring operations."""

    error_code = "SCORING_ERROR"


class ConfigurationInvalid(ScoringException):
    """Evaluation configuration failed validation; aggregation is closed."""

    error_code = "CONFIGURATION_INVALID"

    def __init__(self, evaluation_id: str, violations: Iterable):
        self.evaluation_id = evaluation_id
        self.violations = list(violations)
        details = "; ".join(v.message for v in self.violations) or "unknown violation"
        super().__init__(f"Evaluation {evaluation_id} configuration is invalid: {details}")


class InvalidScore(ScoringException):
    """Score outside the scale bounds or off the configured granularity."""

    error_code = "INVALID_SCORE"

    def __init__(self, score, reason: str):
        self.score = score
        self.reason = reason
        super().__init__(f"Invalid score {score}: {reason}")


class MissingStakeholderArea(ScoringException):
    """Multi-stakeholder scoring needs a configured stakeholder area."""

    error_code = "MISSING_STAKEHOLDER_AREA"

    def __init__(self, stakeholder_area_id: Optional[str] = None):
        self.stakeholder_area_id = stakeholder_area_id
        if stakeholder_area_id is None:
            message = "stakeholder_area_id is required for multi-stakeholder scoring"
        else:
            message = f"Stakeholder area {stakeholder_area_id} is not configured for this evaluation"
        super().__init__(message)


class EvidenceRequired(ScoringException):
    """Extreme or consensus scores must carry evidence."""

    error_code = "EVIDENCE_REQUIRED"

    def __init__(self, score, reason: str = "score is at the limit of the scale"):
        self.score = score
        self.reason = reason
        super().__init__(f"Evidence is required for score {score}: {reason}")


class ConsensusAlreadyOpen(ScoringException):
    """A consensus session is already open for the (vendor, requirement) pair."""

    error_code = "CONSENSUS_ALREADY_OPEN"

    def __init__(self, vendor_id: str, requirement_id: str, facilitator_id: str):
        self.vendor_id = vendor_id
        self.requirement_id = requirement_id
        self.facilitator_id = facilitator_id
        super().__init__(
            f"Consensus for vendor {vendor_id} / requirement {requirement_id} "
            f"is already open (facilitator {facilitator_id})"
        )


class InvalidConsensusTransition(ScoringException):
    """Requested consensus transition is not allowed from the current state."""

    error_code = "INVALID_CONSENSUS_TRANSITION"

    def __init__(self, vendor_id: str, requirement_id: str, state: str, action: str):
        self.vendor_id = vendor_id
        self.requirement_id = requirement_id
        self.state = state
        self.action = action
        super().__init__(
            f"Cannot {action} consensus for vendor {vendor_id} / requirement "
            f"{requirement_id} in state '{state}'"
        )


class ScoreLocked(ScoringException):
    """Individual scores are read-only once consensus has started for the pair."""

    error_code = "SCORE_LOCKED"

    def __init__(self, vendor_id: str, requirement_id: str, state: str):
        self.vendor_id = vendor_id
        self.requirement_id = requirement_id
        self.state = state
        super().__init__(
            f"Scores for vendor {vendor_id} / requirement {requirement_id} "
            f"are locked (consensus state '{state}')"
        )


class EntityNotFoundException(ScoringException):
    """Entity not part of the evaluation."""

    error_code = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class PermissionDenied(ScoringException):
    """Caller role may not invoke the operation."""

    error_code = "PERMISSION_DENIED"

    def __init__(self, user_id: str, role: str, action: str):
        self.user_id = user_id
        self.role = role
        self.action = action
        super().__init__(f"User {user_id} with role '{role}' may not {action}")
