"""Rubric data models for compliance scoring of radio traffic.

This module provides the immutable definition of an evaluation rubric:
- RubricTemplate: the whole instrument, with its scoring policy and judge settings
- RubricSection: a weighted group of criteria evaluated in one judge call
- RubricCriterion: one observable behavior with its evaluation type

The wire format (``to_dict``/``from_dict``) uses the camelCase keys that the
rubric JSON files and the HTTP API use. ``from_dict`` assumes the data has
already passed ``rtass.rubrics.validation``; use ``load_rubric`` to do both.

Example:
    >>> rubric = RubricTemplate.from_dict(json.load(open("afd-baseline.json")))
    >>> section = rubric.get_section("arrival")
    >>> [c.id for c in section.criteria]
    ['size_up', 'command_established']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rtass.exceptions import SectionNotFoundError


class CriterionType(str, Enum):
    """How the judge is asked to evaluate a criterion."""

    BOOLEAN = "boolean"
    GRADED = "graded"
    ENUM = "enum"
    TIMING = "timing"


class NotObservedPolicy(str, Enum):
    """What a ``not_observed`` verdict on a required criterion does to the score."""

    TREAT_AS_MISSED = "treat_as_missed"
    EXCLUDE_WITH_WARNING = "exclude_with_warning"


@dataclass(frozen=True)
class GradingBounds:
    """Optional bounds for a graded criterion."""

    min_score: float | None = None
    max_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {}
        if self.min_score is not None:
            result["minScore"] = self.min_score
        if self.max_score is not None:
            result["maxScore"] = self.max_score
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GradingBounds:
        """Deserialize from a dictionary."""
        return cls(min_score=data.get("minScore"), max_score=data.get("maxScore"))


@dataclass(frozen=True)
class TimingSpec:
    """Timing requirement between two observed events.

    Attributes:
        start_event: Name of the event that starts the clock.
        end_event: Name of the event that stops it.
        target_seconds: Desired elapsed time.
        max_seconds: Longest acceptable elapsed time.
    """

    start_event: str
    end_event: str
    target_seconds: float | None = None
    max_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {"startEvent": self.start_event, "endEvent": self.end_event}
        if self.target_seconds is not None:
            result["targetSeconds"] = self.target_seconds
        if self.max_seconds is not None:
            result["maxSeconds"] = self.max_seconds
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimingSpec:
        """Deserialize from a dictionary."""
        return cls(
            start_event=data["startEvent"],
            end_event=data["endEvent"],
            target_seconds=data.get("targetSeconds"),
            max_seconds=data.get("maxSeconds"),
        )


@dataclass(frozen=True)
class EvidenceRules:
    """How much evidence a verdict on this criterion should cite."""

    min_evidence: int
    require_verbatim_quote: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {"minEvidence": self.min_evidence}
        if self.require_verbatim_quote is not None:
            result["requireVerbatimQuote"] = self.require_verbatim_quote
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EvidenceRules:
        """Deserialize from a dictionary."""
        return cls(
            min_evidence=int(data["minEvidence"]),
            require_verbatim_quote=data.get("requireVerbatimQuote"),
        )


@dataclass(frozen=True)
class RubricCriterion:
    """A single observable behavior within a rubric section.

    Attributes:
        id: Identifier, unique within its section.
        title: Human-readable name.
        description: What the judge should look for.
        required: Whether the behavior is mandatory. Drives the not-observed policy.
        type: Evaluation type.
        weight: Relative importance (0.0 to 1.0). When absent the criterion
            weighs ``1 / len(section.criteria)``.
        grading: Optional bounds for graded criteria.
        enum_options: Allowed values for enum criteria.
        timing: Timing requirement for timing criteria.
        evidence_rules: Evidence expectations.
        notes: Extra guidance passed to the judge.
    """

    id: str
    title: str
    description: str
    required: bool
    type: CriterionType
    weight: float | None = None
    grading: GradingBounds | None = None
    enum_options: tuple[str, ...] | None = None
    timing: TimingSpec | None = None
    evidence_rules: EvidenceRules | None = None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "required": self.required,
            "type": self.type.value,
        }
        if self.weight is not None:
            result["weight"] = self.weight
        if self.grading is not None:
            result["grading"] = self.grading.to_dict()
        if self.enum_options is not None:
            result["enumOptions"] = list(self.enum_options)
        if self.timing is not None:
            result["timing"] = self.timing.to_dict()
        if self.evidence_rules is not None:
            result["evidenceRules"] = self.evidence_rules.to_dict()
        if self.notes is not None:
            result["notes"] = self.notes
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RubricCriterion:
        """Deserialize from a dictionary."""
        enum_options = data.get("enumOptions")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            required=data["required"],
            type=CriterionType(data["type"]),
            weight=data.get("weight"),
            grading=GradingBounds.from_dict(data["grading"]) if "grading" in data else None,
            enum_options=tuple(enum_options) if enum_options is not None else None,
            timing=TimingSpec.from_dict(data["timing"]) if "timing" in data else None,
            evidence_rules=(
                EvidenceRules.from_dict(data["evidenceRules"])
                if "evidenceRules" in data
                else None
            ),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class RubricSection:
    """A group of criteria scored together in one judge call.

    Attributes:
        id: Section identifier, unique within the rubric.
        title: Human-readable name.
        description: What this section covers.
        weight: Share of the overall scorecard (0.0 to 1.0). The section score
            itself is driven by its criteria weights.
        criteria: Criteria in declared order.
    """

    id: str
    title: str
    description: str
    weight: float
    criteria: tuple[RubricCriterion, ...]

    def criterion_weight(self, criterion: RubricCriterion) -> float:
        """Return the declared weight, or an equal share of the section."""
        if criterion.weight is not None:
            return criterion.weight
        return 1.0 / max(1, len(self.criteria))

    def get_criterion(self, criterion_id: str) -> RubricCriterion | None:
        """Look up a criterion by id."""
        for criterion in self.criteria:
            if criterion.id == criterion_id:
                return criterion
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "weight": self.weight,
            "criteria": [c.to_dict() for c in self.criteria],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RubricSection:
        """Deserialize from a dictionary."""
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            weight=data["weight"],
            criteria=tuple(RubricCriterion.from_dict(c) for c in data["criteria"]),
        )


@dataclass(frozen=True)
class Thresholds:
    """Score cut-offs for section and scorecard status (inclusive)."""

    pass_threshold: float
    needs_improvement: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {"pass": self.pass_threshold, "needsImprovement": self.needs_improvement}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Thresholds:
        """Deserialize from a dictionary."""
        return cls(pass_threshold=data["pass"], needs_improvement=data["needsImprovement"])


@dataclass(frozen=True)
class ScoringPolicy:
    """How criterion verdicts reduce to section scores."""

    thresholds: Thresholds
    required_not_observed_behavior: NotObservedPolicy = NotObservedPolicy.TREAT_AS_MISSED
    method: str = "weighted_average"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {
            "method": self.method,
            "thresholds": self.thresholds.to_dict(),
            "requiredNotObservedBehavior": self.required_not_observed_behavior.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoringPolicy:
        """Deserialize from a dictionary."""
        return cls(
            thresholds=Thresholds.from_dict(data["thresholds"]),
            required_not_observed_behavior=NotObservedPolicy(
                data["requiredNotObservedBehavior"]
            ),
            method=data.get("method", "weighted_average"),
        )


@dataclass(frozen=True)
class JudgeSettings:
    """Per-rubric parameters for invoking the judge.

    Attributes:
        concurrency: Maximum sections scored at once (1 to 10).
        max_retries: Additional attempts after the first (0 to 5).
        evidence_quote_max_chars: Longest evidence quote kept (40 to 600).
    """

    concurrency: int = 3
    max_retries: int = 2
    evidence_quote_max_chars: int = 200

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {
            "concurrency": self.concurrency,
            "maxRetries": self.max_retries,
            "evidenceQuoteMaxChars": self.evidence_quote_max_chars,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JudgeSettings:
        """Deserialize from a dictionary."""
        return cls(
            concurrency=int(data["concurrency"]),
            max_retries=int(data["maxRetries"]),
            evidence_quote_max_chars=int(data["evidenceQuoteMaxChars"]),
        )


@dataclass(frozen=True)
class RubricTemplate:
    """A complete evaluation rubric.

    Loaded once per request and never mutated.

    Attributes:
        id: Rubric identifier.
        name: Human-readable name.
        description: What this rubric evaluates.
        version: Version string.
        sections: Sections in declared order.
        scoring: Aggregation policy and thresholds.
        llm: Judge invocation parameters.
        jurisdiction: Agency or jurisdiction the rubric applies to.
        tags: Free-form labels.
        created_at: Creation timestamp as written in the source document.
        updated_at: Last update timestamp as written in the source document.
    """

    id: str
    name: str
    description: str
    version: str
    sections: tuple[RubricSection, ...]
    scoring: ScoringPolicy
    llm: JudgeSettings = field(default_factory=JudgeSettings)
    jurisdiction: str | None = None
    tags: tuple[str, ...] = ()
    created_at: str | None = None
    updated_at: str | None = None

    def get_section(self, section_id: str) -> RubricSection:
        """Return the section with ``section_id``.

        Raises:
            SectionNotFoundError: If the rubric has no such section.
        """
        for section in self.sections:
            if section.id == section_id:
                return section
        raise SectionNotFoundError(section_id, rubric_id=self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "sections": [s.to_dict() for s in self.sections],
            "scoring": self.scoring.to_dict(),
            "llm": self.llm.to_dict(),
        }
        if self.jurisdiction is not None:
            result["jurisdiction"] = self.jurisdiction
        if self.tags:
            result["tags"] = list(self.tags)
        if self.created_at is not None:
            result["createdAt"] = self.created_at
        if self.updated_at is not None:
            result["updatedAt"] = self.updated_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RubricTemplate:
        """Deserialize from a dictionary."""
        created_at = data.get("createdAt")
        updated_at = data.get("updatedAt")
        return cls(
            id=data["id"],
            name=data["name"],
            description=data["description"],
            version=data["version"],
            sections=tuple(RubricSection.from_dict(s) for s in data["sections"]),
            scoring=ScoringPolicy.from_dict(data["scoring"]),
            llm=JudgeSettings.from_dict(data["llm"]),
            jurisdiction=data.get("jurisdiction"),
            tags=tuple(data.get("tags", ())),
            created_at=str(created_at) if created_at is not None else None,
            updated_at=str(updated_at) if updated_at is not None else None,
        )
