"""Validation of the judge's section response.

Judge output is untrusted. The raw reply must be a single JSON object that
matches ``SECTION_RESPONSE_SCHEMA``; verdicts outside the five-value enum are
rejected here so nothing downstream has to match verdict strings. Any parse
or schema failure raises ``JudgeResponseError``, which the orchestrator
retries like a transport failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rtass.exceptions import JudgeResponseError
from rtass.rubrics.validation import loads_strict, schema_violations

from .models import Evidence, ObservedEvent, Verdict

_UNIT_INTERVAL = {"type": "number", "minimum": 0, "maximum": 1}
_NON_NEGATIVE = {"type": "number", "minimum": 0}
_NON_EMPTY_STRING = {"type": "string", "minLength": 1}

SECTION_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["sectionId", "criteria"],
    "properties": {
        "sectionId": _NON_EMPTY_STRING,
        "criteria": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["criterionId", "verdict", "confidence", "rationale", "evidence"],
                "properties": {
                    "criterionId": _NON_EMPTY_STRING,
                    "verdict": {"enum": [v.value for v in Verdict]},
                    "score": _UNIT_INTERVAL,
                    "confidence": _UNIT_INTERVAL,
                    "rationale": _NON_EMPTY_STRING,
                    "evidence": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["quote", "start"],
                            "properties": {
                                "quote": _NON_EMPTY_STRING,
                                "start": _NON_NEGATIVE,
                                "end": _NON_NEGATIVE,
                                "speaker": _NON_EMPTY_STRING,
                            },
                        },
                    },
                    "observedEvents": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["name", "at"],
                            "properties": {
                                "name": _NON_EMPTY_STRING,
                                "at": _NON_NEGATIVE,
                            },
                        },
                    },
                },
            },
        },
        "sectionNotes": {"type": "string"},
        "warnings": {"type": "array", "items": {"type": "string"}},
    },
}


@dataclass(frozen=True)
class JudgedCriterion:
    """One criterion entry exactly as the judge reported it, after validation."""

    criterion_id: str
    verdict: Verdict
    confidence: float
    rationale: str
    evidence: tuple[Evidence, ...]
    score: float | None = None
    observed_events: tuple[ObservedEvent, ...] | None = None


@dataclass(frozen=True)
class SectionResponse:
    """A schema-valid judge reply for one section."""

    section_id: str
    criteria: tuple[JudgedCriterion, ...]
    section_notes: str | None = None
    warnings: tuple[str, ...] = ()


def _build_criterion(data: dict[str, Any]) -> JudgedCriterion:
    events = data.get("observedEvents")
    return JudgedCriterion(
        criterion_id=data["criterionId"],
        verdict=Verdict(data["verdict"]),
        confidence=float(data["confidence"]),
        rationale=data["rationale"],
        evidence=tuple(Evidence.from_dict(e) for e in data["evidence"]),
        score=float(data["score"]) if data.get("score") is not None else None,
        observed_events=(
            tuple(ObservedEvent.from_dict(e) for e in events) if events is not None else None
        ),
    )


def parse_section_response(raw: str) -> SectionResponse:
    """Parse and validate a raw judge reply.

    Args:
        raw: The judge's reply text.

    Returns:
        The validated response.

    Raises:
        JudgeResponseError: If ``raw`` is not JSON or violates the schema.
            Schema failures carry every violation.
    """
    try:
        data = loads_strict(raw)
    except (ValueError, TypeError) as e:
        raise JudgeResponseError(f"Judge reply is not valid JSON: {e}", raw=raw) from e

    violations = schema_violations(data, SECTION_RESPONSE_SCHEMA)
    if violations:
        summary = "; ".join(str(v) for v in violations[:3])
        raise JudgeResponseError(
            f"Judge reply failed schema validation: {summary}",
            violations=violations,
            raw=raw,
        )

    return SectionResponse(
        section_id=data["sectionId"],
        criteria=tuple(_build_criterion(c) for c in data["criteria"]),
        section_notes=data.get("sectionNotes"),
        warnings=tuple(data.get("warnings", ())),
    )
