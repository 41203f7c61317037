"""Scoring result models.

This module provides the data structures produced by scoring:
- Verdict: the closed set of outcomes the judge may assign a criterion
- CriterionResult: one validated, normalized judge verdict
- SectionResult: a section's aggregate score, status and criterion results
- Scorecard: every section of a rubric plus an overall score

All results are immutable once created. A retried judge call replaces the
whole set of criterion results; nothing is patched in place.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Verdict(str, Enum):
    """The judge's categorical outcome for one criterion."""

    MET = "met"
    MISSED = "missed"
    PARTIAL = "partial"
    NOT_OBSERVED = "not_observed"
    NOT_APPLICABLE = "not_applicable"


class SectionStatus(str, Enum):
    """Status band derived from a score and the rubric thresholds."""

    PASS = "pass"
    NEEDS_IMPROVEMENT = "needs_improvement"
    FAIL = "fail"


def _generate_id(prefix: str) -> str:
    """Generate a unique ID with the given prefix."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _now_iso() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Evidence:
    """A quote from the transcript supporting a verdict.

    Attributes:
        quote: Verbatim (or near-verbatim) transcript text.
        start: Time in seconds where the quote begins.
        end: Time in seconds where the quote ends, if known.
        speaker: Speaker label, if known.
    """

    quote: str
    start: float
    end: float | None = None
    speaker: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {"quote": self.quote, "start": self.start}
        if self.end is not None:
            result["end"] = self.end
        if self.speaker is not None:
            result["speaker"] = self.speaker
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Evidence:
        """Deserialize from a dictionary."""
        return cls(
            quote=data["quote"],
            start=data["start"],
            end=data.get("end"),
            speaker=data.get("speaker"),
        )


@dataclass(frozen=True)
class ObservedEvent:
    """A named event the judge located in time (used by timing criteria)."""

    name: str
    at: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {"name": self.name, "at": self.at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObservedEvent:
        """Deserialize from a dictionary."""
        return cls(name=data["name"], at=data["at"])


@dataclass(frozen=True)
class CriterionResult:
    """The judge's validated verdict on one criterion.

    Attributes:
        criterion_id: ID of the criterion evaluated.
        title: Criterion title, taken from the rubric.
        verdict: The judge's outcome.
        confidence: Judge confidence (0.0 to 1.0).
        rationale: Short explanation from the judge.
        evidence: Supporting quotes.
        score: Numeric score (0.0 to 1.0) for met/missed/partial; None otherwise.
        observed_events: Events the judge located in time, if any.
    """

    criterion_id: str
    title: str
    verdict: Verdict
    confidence: float
    rationale: str
    evidence: tuple[Evidence, ...] = ()
    score: float | None = None
    observed_events: tuple[ObservedEvent, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {
            "criterionId": self.criterion_id,
            "title": self.title,
            "verdict": self.verdict.value,
            "confidence": self.confidence,
            "rationale": self.rationale,
            "evidence": [e.to_dict() for e in self.evidence],
        }
        if self.score is not None:
            result["score"] = self.score
        if self.observed_events is not None:
            result["observedEvents"] = [e.to_dict() for e in self.observed_events]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CriterionResult:
        """Deserialize from a dictionary."""
        events = data.get("observedEvents")
        return cls(
            criterion_id=data["criterionId"],
            title=data.get("title", data["criterionId"]),
            verdict=Verdict(data["verdict"]),
            confidence=data["confidence"],
            rationale=data["rationale"],
            evidence=tuple(Evidence.from_dict(e) for e in data.get("evidence", [])),
            score=data.get("score"),
            observed_events=(
                tuple(ObservedEvent.from_dict(e) for e in events) if events is not None else None
            ),
        )


@dataclass(frozen=True)
class SectionScore:
    """Aggregator output for one section."""

    score: float
    status: SectionStatus
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class SectionResult:
    """Scored rubric section.

    Attributes:
        section_id: ID of the rubric section.
        title: Section title.
        weight: Section weight from the rubric.
        score: Aggregate score (0.0 to 1.0).
        status: Status band for the score.
        criteria: Criterion results in rubric order.
    """

    section_id: str
    title: str
    weight: float
    score: float
    status: SectionStatus
    criteria: tuple[CriterionResult, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {
            "sectionId": self.section_id,
            "title": self.title,
            "weight": self.weight,
            "score": self.score,
            "status": self.status.value,
            "criteria": [c.to_dict() for c in self.criteria],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SectionResult:
        """Deserialize from a dictionary."""
        return cls(
            section_id=data["sectionId"],
            title=data["title"],
            weight=data["weight"],
            score=data["score"],
            status=SectionStatus(data["status"]),
            criteria=tuple(CriterionResult.from_dict(c) for c in data.get("criteria", [])),
        )


@dataclass(frozen=True)
class ModelInfo:
    """Which judge produced a result."""

    provider: str
    model: str
    deployment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {"provider": self.provider, "model": self.model, "deployment": self.deployment}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModelInfo:
        """Deserialize from a dictionary."""
        return cls(
            provider=data["provider"],
            model=data["model"],
            deployment=data.get("deployment"),
        )


@dataclass(frozen=True)
class SectionScoringResult:
    """Response to a one-section scoring request."""

    section: SectionResult
    model_info: ModelInfo
    warnings: tuple[str, ...] = ()
    section_notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary. ``warnings`` is omitted when empty."""
        result: dict[str, Any] = {
            "section": self.section.to_dict(),
            "modelInfo": self.model_info.to_dict(),
        }
        if self.warnings:
            result["warnings"] = list(self.warnings)
        if self.section_notes:
            result["sectionNotes"] = self.section_notes
        return result


@dataclass(frozen=True)
class OverallResult:
    """Scorecard-level score and status."""

    score: float
    status: SectionStatus
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {"score": self.score, "status": self.status.value}
        if self.notes is not None:
            result["notes"] = self.notes
        return result


@dataclass(frozen=True)
class Scorecard:
    """Every scored section of a rubric for one transcript.

    Attributes:
        transcript_id: Transcript that was scored.
        rubric_template_id: Rubric used.
        model_info: Judge that produced the section results.
        overall: Section-weighted overall score and status.
        sections: Section results in rubric order.
        warnings: Warnings from every section.
        incident_id: Incident the transcript belongs to, if known.
        id: Unique scorecard identifier.
        created_at: ISO 8601 creation timestamp.
    """

    transcript_id: str
    rubric_template_id: str
    model_info: ModelInfo
    overall: OverallResult
    sections: tuple[SectionResult, ...] = ()
    warnings: tuple[str, ...] = ()
    incident_id: str | None = None
    id: str = field(default_factory=lambda: _generate_id("scorecard"))
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {
            "id": self.id,
            "transcriptId": self.transcript_id,
            "rubricTemplateId": self.rubric_template_id,
            "createdAt": self.created_at,
            "modelInfo": self.model_info.to_dict(),
            "overall": self.overall.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
        }
        if self.incident_id is not None:
            result["incidentId"] = self.incident_id
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result
