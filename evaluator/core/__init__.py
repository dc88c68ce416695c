"""
Core Package - Evaluator Scoring Engine
evaluator/core/__init__.py

Core infrastructure: exceptions, role permissions.
"""

from evaluator.core.exceptions import (
    ConfigurationInvalid,
    ConsensusAlreadyOpen,
    EntityNotFoundException,
    EvidenceRequired,
    InvalidConsensusTransition,
    InvalidScore,
    MissingStakeholderArea,
    PermissionDenied,
    ScoreLocked,
    ScoringException,
)

__all__ = [
    "ConfigurationInvalid",
    "ConsensusAlreadyOpen",
    "EntityNotFoundException",
    "EvidenceRequired",
    "InvalidConsensusTransition",
    "InvalidScore",
    "MissingStakeholderArea",
    "PermissionDenied",
    "ScoreLocked",
    "ScoringException",
]
