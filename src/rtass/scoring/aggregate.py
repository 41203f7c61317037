"""Reduction of criterion verdicts into section and scorecard scores.

All functions here are pure: no judge calls, no I/O, no shared state. They are
safe to run concurrently for different sections.

Verdict to score:

=================  ==============================================
``met``            1.0
``missed``         0.0
``partial``        judge score clamped to [0, 1], else 0.5
``not_observed``   no score; penalized or excluded by policy
``not_applicable`` no score; always excluded
=================  ==============================================
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from rtass.rubrics.models import NotObservedPolicy, RubricSection, RubricTemplate, Thresholds

from .models import CriterionResult, SectionResult, SectionScore, SectionStatus, Verdict

PARTIAL_DEFAULT_SCORE = 0.5


def clamp01(value: float) -> float:
    """Clamp ``value`` to [0.0, 1.0]."""
    return max(0.0, min(1.0, value))


def verdict_to_score(verdict: Verdict, judge_score: float | None = None) -> float | None:
    """Map a verdict to its numeric score, or None for unscored verdicts.

    Args:
        verdict: The judge's verdict.
        judge_score: The judge's own score. Only consulted for ``partial``.
    """
    if verdict == Verdict.MET:
        return 1.0
    if verdict == Verdict.MISSED:
        return 0.0
    if verdict == Verdict.PARTIAL:
        if judge_score is None:
            return PARTIAL_DEFAULT_SCORE
        return clamp01(judge_score)
    return None


def status_from_score(score: float, thresholds: Thresholds) -> SectionStatus:
    """Band a score. Both thresholds are inclusive lower bounds."""
    if score >= thresholds.pass_threshold:
        return SectionStatus.PASS
    if score >= thresholds.needs_improvement:
        return SectionStatus.NEEDS_IMPROVEMENT
    return SectionStatus.FAIL


def compute_section_score(
    rubric: RubricTemplate,
    section: RubricSection,
    results: Iterable[CriterionResult],
) -> SectionScore:
    """Reduce criterion results to a section score, status and warnings.

    Weighted average over the criteria that contribute. ``not_applicable``
    never contributes. ``not_observed`` contributes ``weight x 0`` only when
    the criterion is required and the rubric treats it as missed; otherwise it
    is excluded. Either way a not-observed criterion produces a warning.

    Results for criteria that are not in ``section`` are ignored. When nothing
    contributes the score is 0 with a "No scorable criteria" warning; this
    signals a degenerate evaluation, not a pass.

    The result does not depend on the order of ``results``.
    """
    policy = rubric.scoring.required_not_observed_behavior
    warnings: list[str] = []
    numerator = 0.0
    denominator = 0.0

    for result in results:
        criterion = section.get_criterion(result.criterion_id)
        if criterion is None:
            continue

        weight = section.criterion_weight(criterion)

        if result.verdict == Verdict.NOT_APPLICABLE:
            continue

        if result.verdict == Verdict.NOT_OBSERVED:
            if criterion.required and policy == NotObservedPolicy.TREAT_AS_MISSED:
                denominator += weight
                warnings.append(f"Required criterion not observed: {section.id}/{criterion.id}")
            else:
                warnings.append(f"Criterion not observed: {section.id}/{criterion.id}")
            continue

        score = verdict_to_score(result.verdict, result.score)
        if score is None:
            continue

        numerator += weight * score
        denominator += weight

    if denominator == 0:
        warnings.append(f"No scorable criteria in section: {section.id}")
        score = 0.0
    else:
        score = clamp01(numerator / denominator)

    return SectionScore(
        score=score,
        status=status_from_score(score, rubric.scoring.thresholds),
        warnings=tuple(warnings),
    )


def compute_overall_score(sections: Sequence[SectionResult]) -> float:
    """Section-weight-weighted mean of section scores.

    Falls back to the plain mean when every section weight is zero, and to
    0.0 when there are no sections.
    """
    if not sections:
        return 0.0

    total_weight = sum(s.weight for s in sections)
    if total_weight == 0:
        return clamp01(sum(s.score for s in sections) / len(sections))

    return clamp01(sum(s.weight * s.score for s in sections) / total_weight)
