"""Scoring of transcripts against rubrics.

This package provides:
- **Models**: Verdicts, criterion and section results, scorecards
- **Aggregation**: Pure reduction of verdicts to scores and status bands
- **Orchestration**: ``rtass.scoring.orchestrator`` and ``rtass.scoring.service``
  drive the judge for one section; ``rtass.scoring.scorecard`` scores a
  whole rubric
"""

from .aggregate import (
    compute_overall_score,
    compute_section_score,
    status_from_score,
    verdict_to_score,
)
from .models import (
    CriterionResult,
    Evidence,
    ModelInfo,
    ObservedEvent,
    OverallResult,
    Scorecard,
    SectionResult,
    SectionScore,
    SectionScoringResult,
    SectionStatus,
    Verdict,
)

__all__ = [
    "CriterionResult",
    "Evidence",
    "ModelInfo",
    "ObservedEvent",
    "OverallResult",
    "Scorecard",
    "SectionResult",
    "SectionScore",
    "SectionScoringResult",
    "SectionStatus",
    "Verdict",
    "compute_overall_score",
    "compute_section_score",
    "status_from_score",
    "verdict_to_score",
]
