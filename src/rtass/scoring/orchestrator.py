"""Judge orchestration for one rubric section.

Per section the orchestrator renders the prompt, calls the judge under the
retry policy, validates the reply and normalizes it into criterion results:

1. ``build_section_prompt`` with the time-stamped transcript
2. ``judge.complete`` (one attempt = one call)
3. ``parse_section_response``; an empty, non-JSON or schema-violating reply
   is a retryable failure
4. ``normalize_section_response``: rubric order, rubric titles, derived
   scores, truncated quotes, warnings for anything dropped

Each attempt is independent. A successful attempt fully replaces whatever a
failed one produced, and the error from the final attempt propagates
unchanged when every attempt fails.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from rtass.exceptions import JudgeCallError, JudgeEmptyResponseError
from rtass.judge.base import AsyncJudgeProvider, JudgeMessage
from rtass.retry import RetryConfig, RetryExecutor
from rtass.rubrics.models import RubricSection, RubricTemplate
from rtass.transcript import Transcript, estimate_tokens, format_transcript_with_timestamps

from .aggregate import verdict_to_score
from .models import CriterionResult, Evidence, ModelInfo
from .prompts import DEFAULT_EVALUATOR_ROLE, build_section_prompt, build_system_message
from .schema import SectionResponse, parse_section_response

logger = logging.getLogger(__name__)

MAX_RETRIES_LIMIT = 5


@dataclass(frozen=True)
class SectionEvaluation:
    """Normalized judge output for one section.

    Attributes:
        criteria: One result per rubric criterion the judge answered, in rubric order.
        warnings: Judge-supplied warnings followed by normalization warnings.
        model_info: Judge and deployment used.
        attempts: Judge calls made, including the successful one.
        section_notes: Free-text notes from the judge.
    """

    criteria: tuple[CriterionResult, ...]
    warnings: tuple[str, ...]
    model_info: ModelInfo
    attempts: int
    section_notes: str | None = None


def attempt_limit(rubric: RubricTemplate) -> int:
    """Total judge attempts allowed per section: ``maxRetries`` (clamped to 0..5) + 1."""
    return max(0, min(MAX_RETRIES_LIMIT, rubric.llm.max_retries)) + 1


def _truncate(quote: str, max_chars: int) -> str:
    if len(quote) <= max_chars:
        return quote
    return quote[:max_chars]


def normalize_section_response(
    section: RubricSection,
    response: SectionResponse,
    quote_max_chars: int,
) -> tuple[tuple[CriterionResult, ...], list[str]]:
    """Turn a validated judge reply into criterion results.

    Results come back in rubric order with rubric titles and derived scores.
    Entries for unknown criteria are dropped, a repeated criterion keeps its
    first entry, and criteria the judge skipped are left out; each of these
    adds a warning.

    Returns:
        The criterion results and the normalization warnings.
    """
    warnings: list[str] = []

    if response.section_id != section.id:
        warnings.append(
            f"Judge returned sectionId '{response.section_id}' for section '{section.id}'"
        )

    judged = {}
    for entry in response.criteria:
        if section.get_criterion(entry.criterion_id) is None:
            warnings.append(
                f"Unknown criterion in judge response: {section.id}/{entry.criterion_id}"
            )
            continue
        if entry.criterion_id in judged:
            warnings.append(
                f"Duplicate criterion in judge response: {section.id}/{entry.criterion_id}"
            )
            continue
        judged[entry.criterion_id] = entry

    results: list[CriterionResult] = []
    for criterion in section.criteria:
        entry = judged.get(criterion.id)
        if entry is None:
            warnings.append(f"Criterion missing from judge response: {section.id}/{criterion.id}")
            continue
        results.append(CriterionResult(
            criterion_id=criterion.id,
            title=criterion.title,
            verdict=entry.verdict,
            confidence=entry.confidence,
            rationale=entry.rationale,
            evidence=tuple(
                Evidence(
                    quote=_truncate(e.quote, quote_max_chars),
                    start=e.start,
                    end=e.end,
                    speaker=e.speaker,
                )
                for e in entry.evidence
            ),
            score=verdict_to_score(entry.verdict, entry.score),
            observed_events=entry.observed_events,
        ))

    return tuple(results), warnings


class SectionEvaluator:
    """Runs the judge for one section at a time.

    Args:
        judge: Judge provider.
        retry_config: Base retry policy. Its ``max_attempts`` and exception
            filter are overridden per rubric; timeout, backoff and sleep are kept.
        evaluator_role: Who the judge is asked to be.
    """

    def __init__(
        self,
        judge: AsyncJudgeProvider,
        retry_config: RetryConfig | None = None,
        evaluator_role: str = DEFAULT_EVALUATOR_ROLE,
    ) -> None:
        self.judge = judge
        self.retry_config = retry_config or RetryConfig()
        self.evaluator_role = evaluator_role

    def _retry_config_for(self, rubric: RubricTemplate, section_id: str) -> RetryConfig:
        max_attempts = attempt_limit(rubric)

        def on_retry(attempt: int, error: Exception) -> None:
            logger.warning(
                "Judge attempt %d/%d failed for section '%s': %s",
                attempt, max_attempts, section_id, error,
            )

        def on_failure(error: Exception) -> None:
            logger.warning(
                "All %d judge attempt(s) failed for section '%s': %s",
                max_attempts, section_id, error,
            )

        return dataclasses.replace(
            self.retry_config,
            max_attempts=max_attempts,
            retry_on_exceptions=(JudgeCallError,),
            on_retry=on_retry,
            on_failure=on_failure,
        )

    async def evaluate(
        self,
        rubric: RubricTemplate,
        section: RubricSection,
        transcript: Transcript,
        supplemental_material: str | None = None,
        deployment: str | None = None,
    ) -> SectionEvaluation:
        """Evaluate one section of ``rubric`` against ``transcript``.

        ``deployment`` defaults to the judge's choice for the transcript size.

        Raises:
            JudgeCallError: The error from the final attempt when every attempt failed,
                with ``attempts`` set to the number of judge calls made.
            JudgeConfigurationError: Immediately, without retrying.
        """
        if deployment is None:
            deployment = self.judge.select_deployment(estimate_tokens(transcript.text))
        prompt = build_section_prompt(
            rubric,
            section,
            format_transcript_with_timestamps(transcript.segments),
            supplemental_material=supplemental_material,
            evaluator_role=self.evaluator_role,
        )
        messages = [
            JudgeMessage(role="system", content=build_system_message(self.evaluator_role)),
            JudgeMessage(role="user", content=prompt),
        ]

        attempts = 0

        async def run_attempt() -> SectionResponse:
            nonlocal attempts
            attempts += 1
            response = await self.judge.complete(messages, deployment=deployment)
            if not response.content or not response.content.strip():
                raise JudgeEmptyResponseError(
                    "Empty response from model",
                    context={"section_id": section.id, "attempt": attempts},
                )
            return parse_section_response(response.content)

        executor = RetryExecutor(self._retry_config_for(rubric, section.id))
        try:
            response = await executor.execute(run_attempt)
        except JudgeCallError as e:
            e.attempts = attempts
            raise

        criteria, normalization_warnings = normalize_section_response(
            section, response, rubric.llm.evidence_quote_max_chars
        )
        return SectionEvaluation(
            criteria=criteria,
            warnings=(*response.warnings, *normalization_warnings),
            model_info=self.judge.model_info(deployment),
            attempts=attempts,
            section_notes=response.section_notes,
        )
