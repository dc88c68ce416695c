# tests/conftest.py

"""
Pytest Fixtures - Shared evaluations, scoring components and callers
"""

import pytest

from evaluator.core.permissions import Caller
from evaluator.models.enumerations import EvaluatorRole
from evaluator.models.evaluation import (
    CategoryWeightedMethod,
    MoSCoWWeightedMethod,
    MultiStakeholderMethod,
)
from tests.helpers import build_components, make_evaluation


# =============================================================================
# EVALUATION FIXTURES
# =============================================================================

@pytest.fixture
def evaluation():
    """Simple-average evaluation on a 0-5 whole-point scale."""
    return make_evaluation()


@pytest.fixture
def weighted_evaluation():
    """Category-weighted evaluation, Functional 60 / Technical 40."""
    return make_evaluation(CategoryWeightedMethod())


@pytest.fixture
def moscow_evaluation():
    return make_evaluation(MoSCoWWeightedMethod())


@pytest.fixture
def multi_evaluation():
    """Multi-stakeholder evaluation, IT 60 / Business 40."""
    return make_evaluation(MultiStakeholderMethod())


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def scoring(evaluation):
    return build_components(evaluation)


@pytest.fixture
def weighted_scoring(weighted_evaluation):
    return build_components(weighted_evaluation)


@pytest.fixture
def moscow_scoring(moscow_evaluation):
    return build_components(moscow_evaluation)


@pytest.fixture
def multi_scoring(multi_evaluation):
    return build_components(multi_evaluation)


# =============================================================================
# CALLER FIXTURES
# =============================================================================

@pytest.fixture
def admin():
    return Caller(user_id="admin-1", role=EvaluatorRole.ADMIN)


@pytest.fixture
def evaluator_caller():
    return Caller(user_id="eval-1", role=EvaluatorRole.EVALUATOR)


@pytest.fixture
def observer():
    return Caller(user_id="observer-1", role=EvaluatorRole.OBSERVER)
