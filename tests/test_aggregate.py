"""Tests for verdict scoring and section aggregation."""

from __future__ import annotations

import dataclasses

import pytest

from rtass.rubrics.models import NotObservedPolicy, Thresholds
from rtass.scoring.aggregate import (
    compute_overall_score,
    compute_section_score,
    status_from_score,
    verdict_to_score,
)
from rtass.scoring.models import CriterionResult, SectionResult, SectionStatus, Verdict


def _result(criterion_id: str, verdict: Verdict, score: float | None = None) -> CriterionResult:
    return CriterionResult(
        criterion_id=criterion_id,
        title=criterion_id,
        verdict=verdict,
        confidence=0.8,
        rationale="r",
        score=score if score is not None else verdict_to_score(verdict),
    )


def _with_policy(rubric, policy: NotObservedPolicy):
    scoring = dataclasses.replace(rubric.scoring, required_not_observed_behavior=policy)
    return dataclasses.replace(rubric, scoring=scoring)


class TestVerdictToScore:
    def test_met_and_missed(self) -> None:
        assert verdict_to_score(Verdict.MET) == 1.0
        assert verdict_to_score(Verdict.MISSED) == 0.0

    def test_partial_without_judge_score_defaults_to_half(self) -> None:
        assert verdict_to_score(Verdict.PARTIAL) == 0.5

    def test_partial_uses_judge_score(self) -> None:
        assert verdict_to_score(Verdict.PARTIAL, 0.73) == pytest.approx(0.73)

    def test_partial_judge_score_is_clamped(self) -> None:
        assert verdict_to_score(Verdict.PARTIAL, 1.7) == 1.0
        assert verdict_to_score(Verdict.PARTIAL, -0.2) == 0.0

    def test_met_ignores_judge_score(self) -> None:
        assert verdict_to_score(Verdict.MET, 0.2) == 1.0

    @pytest.mark.parametrize("verdict", [Verdict.NOT_OBSERVED, Verdict.NOT_APPLICABLE])
    def test_unscored_verdicts(self, verdict: Verdict) -> None:
        assert verdict_to_score(verdict) is None


class TestStatusFromScore:
    def test_bands(self) -> None:
        thresholds = Thresholds(pass_threshold=0.8, needs_improvement=0.5)
        assert status_from_score(0.9, thresholds) == SectionStatus.PASS
        assert status_from_score(0.6, thresholds) == SectionStatus.NEEDS_IMPROVEMENT
        assert status_from_score(0.2, thresholds) == SectionStatus.FAIL

    def test_thresholds_are_inclusive(self) -> None:
        thresholds = Thresholds(pass_threshold=0.8, needs_improvement=0.5)
        assert status_from_score(0.8, thresholds) == SectionStatus.PASS
        assert status_from_score(0.5, thresholds) == SectionStatus.NEEDS_IMPROVEMENT


class TestComputeSectionScore:
    def test_weighted_met_missed(self, rubric) -> None:
        section = rubric.get_section("arrival")
        result = compute_section_score(rubric, section, [
            _result("size_up", Verdict.MET),
            _result("command", Verdict.MISSED),
        ])

        assert result.score == pytest.approx(0.6)
        assert result.status == SectionStatus.PASS
        assert result.warnings == ()

    def test_equal_share_when_weight_absent(self, rubric) -> None:
        section = rubric.get_section("mayday")
        result = compute_section_score(rubric, section, [
            _result("lunar", Verdict.PARTIAL, 0.4),
            _result("par", Verdict.MET),
        ])

        # (0.5 * 0.4 + 0.5 * 1.0) / 1.0
        assert result.score == pytest.approx(0.7)

    def test_all_not_applicable_scores_zero_with_warning(self, rubric) -> None:
        section = rubric.get_section("arrival")
        result = compute_section_score(rubric, section, [
            _result("size_up", Verdict.NOT_APPLICABLE),
            _result("command", Verdict.NOT_APPLICABLE),
        ])

        assert result.score == 0.0
        assert result.status == SectionStatus.FAIL
        assert result.warnings == ("No scorable criteria in section: arrival",)

    def test_empty_results_score_zero(self, rubric) -> None:
        result = compute_section_score(rubric, rubric.get_section("arrival"), [])
        assert result.score == 0.0
        assert "No scorable criteria in section: arrival" in result.warnings

    def test_required_not_observed_counts_as_missed(self, rubric) -> None:
        section = rubric.get_section("arrival")
        result = compute_section_score(rubric, section, [
            _result("size_up", Verdict.MET),
            _result("command", Verdict.NOT_OBSERVED),
        ])

        assert result.score == pytest.approx(0.6)
        assert result.warnings == ("Required criterion not observed: arrival/command",)

    def test_required_not_observed_scores_below_not_applicable(self, rubric) -> None:
        section = rubric.get_section("arrival")
        not_observed = compute_section_score(rubric, section, [
            _result("size_up", Verdict.MET),
            _result("command", Verdict.NOT_OBSERVED),
        ])
        not_applicable = compute_section_score(rubric, section, [
            _result("size_up", Verdict.MET),
            _result("command", Verdict.NOT_APPLICABLE),
        ])

        assert not_observed.score < not_applicable.score
        assert not_applicable.score == pytest.approx(1.0)

    def test_exclude_with_warning_policy(self, rubric) -> None:
        rubric = _with_policy(rubric, NotObservedPolicy.EXCLUDE_WITH_WARNING)
        section = rubric.get_section("arrival")
        result = compute_section_score(rubric, section, [
            _result("size_up", Verdict.MET),
            _result("command", Verdict.NOT_OBSERVED),
        ])

        assert result.score == pytest.approx(1.0)
        assert result.warnings == ("Criterion not observed: arrival/command",)

    def test_optional_not_observed_is_excluded(self, rubric) -> None:
        section = rubric.get_section("mayday")
        result = compute_section_score(rubric, section, [
            _result("lunar", Verdict.NOT_OBSERVED),
            _result("par", Verdict.MET),
        ])

        assert result.score == pytest.approx(1.0)
        assert result.warnings == ("Criterion not observed: mayday/lunar",)

    def test_unknown_criterion_is_ignored(self, rubric) -> None:
        section = rubric.get_section("arrival")
        result = compute_section_score(rubric, section, [
            _result("size_up", Verdict.MET),
            _result("command", Verdict.MET),
            _result("hazmat", Verdict.MISSED),
        ])
        assert result.score == pytest.approx(1.0)

    def test_order_does_not_change_score(self, rubric) -> None:
        section = rubric.get_section("mayday")
        results = [
            _result("lunar", Verdict.PARTIAL, 0.33),
            _result("par", Verdict.MISSED),
        ]
        forward = compute_section_score(rubric, section, results)
        backward = compute_section_score(rubric, section, list(reversed(results)))
        assert forward.score == pytest.approx(backward.score)

    @pytest.mark.parametrize("verdicts", [
        (Verdict.MET, Verdict.MET),
        (Verdict.MISSED, Verdict.MISSED),
        (Verdict.PARTIAL, Verdict.NOT_OBSERVED),
        (Verdict.NOT_APPLICABLE, Verdict.MISSED),
    ])
    def test_score_in_unit_interval(self, rubric, verdicts) -> None:
        section = rubric.get_section("arrival")
        result = compute_section_score(rubric, section, [
            _result("size_up", verdicts[0]),
            _result("command", verdicts[1]),
        ])
        assert 0.0 <= result.score <= 1.0


class TestComputeOverallScore:
    def _section(self, weight: float, score: float) -> SectionResult:
        return SectionResult(
            section_id=f"s{weight}-{score}",
            title="s",
            weight=weight,
            score=score,
            status=SectionStatus.PASS,
        )

    def test_section_weighted_mean(self) -> None:
        overall = compute_overall_score([self._section(0.6, 1.0), self._section(0.4, 0.5)])
        assert overall == pytest.approx(0.8)

    def test_zero_weights_fall_back_to_plain_mean(self) -> None:
        overall = compute_overall_score([self._section(0.0, 1.0), self._section(0.0, 0.5)])
        assert overall == pytest.approx(0.75)

    def test_no_sections(self) -> None:
        assert compute_overall_score([]) == 0.0
