"""One-section scoring requests.

``score_section`` is the unit of work behind the section scoring endpoint:
validated request in, ``SectionScoringResult`` out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from rtass.exceptions import JudgeCallError, RubricValidationError, SectionScoringError
from rtass.judge.base import AsyncJudgeProvider
from rtass.retry import RetryConfig
from rtass.rubrics.models import RubricTemplate
from rtass.rubrics.validation import validate_scoring_request
from rtass.transcript import Transcript, estimate_tokens

from .aggregate import compute_section_score
from .models import SectionResult, SectionScoringResult
from .orchestrator import SectionEvaluator, attempt_limit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringRequest:
    """A request to score one rubric section of one transcript."""

    transcript_id: str
    transcript: Transcript
    rubric: RubricTemplate
    section_id: str
    supplemental_material: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ScoringRequest:
        """Validate and build a request from its JSON body.

        Raises:
            RubricValidationError: With every violation in the request,
                including those inside the embedded rubric.
        """
        violations = validate_scoring_request(data)
        if violations:
            raise RubricValidationError(violations, subject="scoring request")
        return cls(
            transcript_id=data["transcriptId"],
            transcript=Transcript.from_dict(data["transcript"]),
            rubric=RubricTemplate.from_dict(data["rubric"]),
            section_id=data["sectionId"],
            supplemental_material=data.get("supplementalMaterial"),
        )


async def score_section(
    request: ScoringRequest,
    judge: AsyncJudgeProvider,
    retry_config: RetryConfig | None = None,
    evaluator: SectionEvaluator | None = None,
) -> SectionScoringResult:
    """Score one section of a transcript.

    Warnings in the result are ordered: judge warnings, then normalization
    warnings, then aggregation warnings.

    Raises:
        SectionNotFoundError: If the rubric has no such section.
        SectionScoringError: If every judge attempt failed. The final judge
            error is ``last_error`` and ``__cause__``.
        JudgeConfigurationError: If the judge cannot be used at all.
    """
    rubric = request.rubric
    section = rubric.get_section(request.section_id)
    evaluator = evaluator or SectionEvaluator(judge, retry_config)
    deployment = judge.select_deployment(estimate_tokens(request.transcript.text))

    logger.info(
        "Scoring rubric section: transcript=%s rubric=%s v%s section=%s "
        "deployment=%s max_retries=%d",
        request.transcript_id, rubric.id, rubric.version, section.id,
        deployment, attempt_limit(rubric) - 1,
    )

    try:
        evaluation = await evaluator.evaluate(
            rubric,
            section,
            request.transcript,
            request.supplemental_material,
            deployment=deployment,
        )
    except JudgeCallError as e:
        attempts = e.attempts if e.attempts is not None else attempt_limit(rubric)
        raise SectionScoringError(section.id, attempts, e) from e

    section_score = compute_section_score(rubric, section, evaluation.criteria)

    logger.info(
        "Scored section '%s': score=%.3f status=%s attempts=%d",
        section.id, section_score.score, section_score.status.value, evaluation.attempts,
    )

    return SectionScoringResult(
        section=SectionResult(
            section_id=section.id,
            title=section.title,
            weight=section.weight,
            score=section_score.score,
            status=section_score.status,
            criteria=evaluation.criteria,
        ),
        model_info=evaluation.model_info,
        warnings=(*evaluation.warnings, *section_score.warnings),
        section_notes=evaluation.section_notes,
    )
