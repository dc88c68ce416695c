from enum import Enum

class ScoringMethod(str, Enum):
    SIMPLE_AVERAGE = "simple_average"
    CATEGORY_WEIGHTED = "category_weighted"
    REQUIREMENT_WEIGHTED = "requirement_weighted"
    MOSCOW_WEIGHTED = "moscow_weighted"
    MULTI_STAKEHOLDER = "multi_stakeholder"

class MoSCoWPriority(str, Enum):
    MUST_HAVE = "must_have"
    SHOULD_HAVE = "should_have"
    COULD_HAVE = "could_have"
    WONT_HAVE = "wont_have"      # Documented scope, never aggregated

class ScoreConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class ScoreStatus(str, Enum):
    DRAFT = "draft"              # Working value, still being edited
    SUBMITTED = "submitted"      # Handed in for reconciliation

class ScoreSource(str, Enum):
    CONSENSUS = "consensus"              # Authoritative ConsensusEntry
    INDIVIDUAL_MEAN = "individual_mean"  # Mean of current individual entries

class ConsensusState(str, Enum):
    INDIVIDUAL = "individual"
    UNDER_CONSENSUS = "under_consensus"
    CONSENSED = "consensed"

class EvaluatorRole(str, Enum):
    ADMIN = "admin"
    EVALUATOR = "evaluator"
    REVIEWER = "reviewer"
    OBSERVER = "observer"

class VarianceLevel(str, Enum):
    LOW = "low"          # Good alignment
    MEDIUM = "medium"    # Some variance
    HIGH = "high"        # High variance, needs discussion

class ScalePreset(str, Enum):
    ZERO_TO_FIVE = "0-5"
    ONE_TO_FIVE = "1-5"
    ZERO_TO_TEN = "0-10"
    ONE_TO_TEN = "1-10"
