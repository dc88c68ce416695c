"""
Role Permissions - Evaluator Scoring Engine
evaluator/core/permissions.py

Maps the role supplied by the identity collaborator to the scoring operations
it may invoke. Authentication itself happens outside this package.
"""
from typing import Dict

from pydantic import BaseModel, Field

from evaluator.core.exceptions import PermissionDenied
from evaluator.models.enumerations import EvaluatorRole


class Caller(BaseModel):
    """Authenticated user as supplied by the identity collaborator."""
    user_id: str = Field(..., min_length=1)
    role: EvaluatorRole


# role -> capability -> allowed
ROLE_PERMISSIONS: Dict[EvaluatorRole, Dict[str, bool]] = {
    EvaluatorRole.ADMIN: {
        "can_score": True,
        "can_manage_consensus": True,
        "can_view_results": True,
    },
    EvaluatorRole.EVALUATOR: {
        "can_score": True,
        "can_manage_consensus": False,
        "can_view_results": True,
    },
    EvaluatorRole.REVIEWER: {
        "can_score": False,
        "can_manage_consensus": False,
        "can_view_results": True,
    },
    EvaluatorRole.OBSERVER: {
        "can_score": False,
        "can_manage_consensus": False,
        "can_view_results": True,
    },
}


def has_permission(role: EvaluatorRole, capability: str) -> bool:
    return ROLE_PERMISSIONS.get(EvaluatorRole(role), {}).get(capability, False)


def require_permission(caller: Caller, capability: str) -> None:
    """Raise PermissionDenied unless the caller's role grants `capability`."""
    if not has_permission(caller.role, capability):
        raise PermissionDenied(caller.user_id, caller.role.value, capability.replace("can_", ""))
