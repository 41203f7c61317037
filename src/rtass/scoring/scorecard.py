"""Scorecard assembly across every section of a rubric.

Sections are independent units of work, so they are scored concurrently.
``rubric.llm.concurrency`` caps how many judge calls are in flight at once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from rtass.exceptions import RubricValidationError, ScorecardAssemblyError
from rtass.judge.base import AsyncJudgeProvider
from rtass.retry import RetryConfig
from rtass.rubrics.models import RubricTemplate
from rtass.rubrics.validation import validate_scorecard_request
from rtass.transcript import Transcript

from .aggregate import compute_overall_score, status_from_score
from .models import OverallResult, Scorecard, SectionScoringResult
from .orchestrator import SectionEvaluator
from .service import ScoringRequest, score_section

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScorecardRequest:
    """A request to score every section of a rubric for one transcript."""

    transcript_id: str
    transcript: Transcript
    rubric: RubricTemplate
    supplemental_material: str | None = None
    incident_id: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ScorecardRequest:
        """Validate and build a request from its JSON body.

        Raises:
            RubricValidationError: With every violation in the request.
        """
        violations = validate_scorecard_request(data)
        if violations:
            raise RubricValidationError(violations, subject="scorecard request")
        return cls(
            transcript_id=data["transcriptId"],
            transcript=Transcript.from_dict(data["transcript"]),
            rubric=RubricTemplate.from_dict(data["rubric"]),
            supplemental_material=data.get("supplementalMaterial"),
            incident_id=data.get("incidentId"),
        )


async def assemble_scorecard(
    rubric: RubricTemplate,
    transcript_id: str,
    transcript: Transcript,
    judge: AsyncJudgeProvider,
    retry_config: RetryConfig | None = None,
    supplemental_material: str | None = None,
    incident_id: str | None = None,
) -> Scorecard:
    """Score every section of ``rubric`` and combine the results.

    Sections appear in rubric order regardless of completion order. The
    overall score is the section-weight-weighted mean of section scores.

    Raises:
        ScorecardAssemblyError: If any section could not be scored. Every
            section is attempted before this is raised.
    """
    evaluator = SectionEvaluator(judge, retry_config)
    semaphore = asyncio.Semaphore(rubric.llm.concurrency)

    async def score_one(section_id: str) -> SectionScoringResult:
        async with semaphore:
            request = ScoringRequest(
                transcript_id=transcript_id,
                transcript=transcript,
                rubric=rubric,
                section_id=section_id,
                supplemental_material=supplemental_material,
            )
            return await score_section(request, judge, evaluator=evaluator)

    logger.info(
        "Assembling scorecard: transcript=%s rubric=%s sections=%d concurrency=%d",
        transcript_id, rubric.id, len(rubric.sections), rubric.llm.concurrency,
    )

    outcomes = await asyncio.gather(
        *(score_one(s.id) for s in rubric.sections),
        return_exceptions=True,
    )

    failures: dict[str, BaseException] = {}
    results: list[SectionScoringResult] = []
    for section, outcome in zip(rubric.sections, outcomes):
        if isinstance(outcome, BaseException):
            failures[section.id] = outcome
        else:
            results.append(outcome)

    if failures:
        for section_id, error in failures.items():
            logger.warning("Section '%s' failed: %s", section_id, error)
        raise ScorecardAssemblyError(failures)

    sections = tuple(r.section for r in results)
    overall_score = compute_overall_score(sections)
    warnings = tuple(w for r in results for w in r.warnings)

    scorecard = Scorecard(
        transcript_id=transcript_id,
        rubric_template_id=rubric.id,
        model_info=results[0].model_info,
        overall=OverallResult(
            score=overall_score,
            status=status_from_score(overall_score, rubric.scoring.thresholds),
        ),
        sections=sections,
        warnings=warnings,
        incident_id=incident_id,
    )
    logger.info(
        "Scorecard %s assembled: overall=%.3f status=%s",
        scorecard.id, overall_score, scorecard.overall.status.value,
    )
    return scorecard
