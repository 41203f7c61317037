"""Rubric definitions for compliance scoring.

This package provides:
- **Models**: Immutable rubric, section and criterion definitions
- **Validation**: Structural and semantic checks reporting every violation
- **Library**: File-backed rubric catalog
"""

from .library import RubricLibrary, RubricSummary, is_safe_rubric_filename
from .models import (
    CriterionType,
    EvidenceRules,
    GradingBounds,
    JudgeSettings,
    NotObservedPolicy,
    RubricCriterion,
    RubricSection,
    RubricTemplate,
    ScoringPolicy,
    Thresholds,
    TimingSpec,
)
from .validation import (
    load_rubric,
    validate_rubric,
    validate_scorecard_request,
    validate_scoring_request,
)

__all__ = [
    "CriterionType",
    "EvidenceRules",
    "GradingBounds",
    "JudgeSettings",
    "NotObservedPolicy",
    "RubricCriterion",
    "RubricLibrary",
    "RubricSection",
    "RubricSummary",
    "RubricTemplate",
    "ScoringPolicy",
    "Thresholds",
    "TimingSpec",
    "is_safe_rubric_filename",
    "load_rubric",
    "validate_rubric",
    "validate_scorecard_request",
    "validate_scoring_request",
]
