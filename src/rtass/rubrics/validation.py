"""Structural and semantic validation of rubrics and scoring requests.

Validation reports every violation it finds instead of stopping at the first,
so a rubric author gets complete feedback in one pass. Structure (presence,
types, ranges, enum membership) is checked with JSON Schema; cross-field
rules that JSON Schema cannot express (finite numbers, threshold ordering,
duplicate ids, grading bounds) are checked afterwards on the same document.

Example:
    ```python
    from rtass.rubrics.validation import load_rubric, validate_rubric

    violations = validate_rubric(data)
    for v in violations:
        print(f"{v.path}: {v.message}")

    rubric = load_rubric(data)  # raises RubricValidationError on any violation
    ```
"""

from __future__ import annotations

import json
import math
from collections import Counter
from collections.abc import Iterable
from typing import Any

import jsonschema

from rtass.exceptions import RubricValidationError, Violation

from .models import RubricTemplate

ROOT_PATH = "<root>"

_NON_EMPTY_STRING = {"type": "string", "minLength": 1}
_UNIT_INTERVAL = {"type": "number", "minimum": 0, "maximum": 1}
_NON_NEGATIVE = {"type": "number", "minimum": 0}

CRITERION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "title", "description", "required", "type"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "title": _NON_EMPTY_STRING,
        "description": _NON_EMPTY_STRING,
        "required": {"type": "boolean"},
        "weight": _UNIT_INTERVAL,
        "type": {"enum": ["boolean", "graded", "enum", "timing"]},
        "grading": {
            "type": "object",
            "properties": {
                "minScore": {"type": "number"},
                "maxScore": {"type": "number"},
            },
        },
        "enumOptions": {"type": "array", "items": _NON_EMPTY_STRING},
        "timing": {
            "type": "object",
            "required": ["startEvent", "endEvent"],
            "properties": {
                "startEvent": _NON_EMPTY_STRING,
                "endEvent": _NON_EMPTY_STRING,
                "targetSeconds": _NON_NEGATIVE,
                "maxSeconds": _NON_NEGATIVE,
            },
        },
        "evidenceRules": {
            "type": "object",
            "required": ["minEvidence"],
            "properties": {
                "minEvidence": {"type": "integer", "minimum": 0, "maximum": 10},
                "requireVerbatimQuote": {"type": "boolean"},
            },
        },
        "notes": {"type": "string"},
    },
}

SECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "title", "description", "weight", "criteria"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "title": _NON_EMPTY_STRING,
        "description": _NON_EMPTY_STRING,
        "weight": _UNIT_INTERVAL,
        "criteria": {"type": "array", "minItems": 1, "items": CRITERION_SCHEMA},
    },
}

RUBRIC_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "name", "description", "version", "sections", "scoring", "llm"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "name": _NON_EMPTY_STRING,
        "description": _NON_EMPTY_STRING,
        "version": _NON_EMPTY_STRING,
        "jurisdiction": _NON_EMPTY_STRING,
        "tags": {"type": "array", "items": _NON_EMPTY_STRING},
        "createdAt": _NON_EMPTY_STRING,
        "updatedAt": _NON_EMPTY_STRING,
        "sections": {"type": "array", "minItems": 1, "items": SECTION_SCHEMA},
        "scoring": {
            "type": "object",
            "required": ["method", "thresholds", "requiredNotObservedBehavior"],
            "properties": {
                "method": {"const": "weighted_average"},
                "thresholds": {
                    "type": "object",
                    "required": ["pass", "needsImprovement"],
                    "properties": {
                        "pass": _UNIT_INTERVAL,
                        "needsImprovement": _UNIT_INTERVAL,
                    },
                },
                "requiredNotObservedBehavior": {
                    "enum": ["treat_as_missed", "exclude_with_warning"],
                },
            },
        },
        "llm": {
            "type": "object",
            "required": ["concurrency", "maxRetries", "evidenceQuoteMaxChars"],
            "properties": {
                "concurrency": {"type": "integer", "minimum": 1, "maximum": 10},
                "maxRetries": {"type": "integer", "minimum": 0, "maximum": 5},
                "evidenceQuoteMaxChars": {"type": "integer", "minimum": 40, "maximum": 600},
            },
        },
    },
}

TRANSCRIPT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["text", "segments"],
    "properties": {
        "text": _NON_EMPTY_STRING,
        "segments": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["start", "end", "text"],
                "properties": {
                    "index": {"type": "integer"},
                    "start": {"type": "number"},
                    "end": {"type": "number"},
                    "text": {"type": "string"},
                    "speaker": {"type": "string"},
                },
            },
        },
    },
}

SCORING_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["transcriptId", "transcript", "rubric", "sectionId"],
    "properties": {
        "transcriptId": _NON_EMPTY_STRING,
        "transcript": TRANSCRIPT_SCHEMA,
        "rubric": RUBRIC_SCHEMA,
        "sectionId": _NON_EMPTY_STRING,
        "supplementalMaterial": {"type": "string"},
    },
}


SCORECARD_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["transcriptId", "transcript", "rubric"],
    "properties": {
        "transcriptId": _NON_EMPTY_STRING,
        "incidentId": _NON_EMPTY_STRING,
        "transcript": TRANSCRIPT_SCHEMA,
        "rubric": RUBRIC_SCHEMA,
        "supplementalMaterial": {"type": "string"},
    },
}


def format_path(parts: Iterable[Any], prefix: str = "") -> str:
    """Render a JSON path as ``sections[0].criteria[1].weight``."""
    path = prefix
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or ROOT_PATH


def _reject_non_finite(token: str) -> Any:
    raise ValueError(f"'{token}' is not valid JSON; numbers must be finite")


def loads_strict(text: str | bytes) -> Any:
    """Parse JSON text, rejecting the non-standard ``NaN`` and ``Infinity`` tokens.

    Raises:
        ValueError: If ``text`` is not valid JSON (``json.JSONDecodeError`` is a
            subclass), cannot be decoded, or contains a non-finite number.
    """
    return json.loads(text, parse_constant=_reject_non_finite)


def _path_sort_key(error: jsonschema.ValidationError) -> tuple[Any, ...]:
    return tuple((0, p) if isinstance(p, int) else (1, str(p)) for p in error.absolute_path)


def schema_violations(data: Any, schema: dict[str, Any], prefix: str = "") -> list[Violation]:
    """Collect every JSON Schema violation in ``data``, in document order.

    A missing required property is reported at the property's own path with
    the message ``is required``.
    """
    validator = jsonschema.Draft7Validator(schema)
    violations: list[Violation] = []
    seen_missing: set[str] = set()

    for error in sorted(validator.iter_errors(data), key=_path_sort_key):
        parent = list(error.absolute_path)
        if error.validator == "required" and isinstance(error.instance, dict):
            for name in error.validator_value:
                if name in error.instance:
                    continue
                path = format_path([*parent, name], prefix)
                if path not in seen_missing:
                    seen_missing.add(path)
                    violations.append(Violation(path, "is required"))
            continue
        violations.append(Violation(format_path(parent, prefix), error.message))

    return violations


def _semantic_violations(data: dict[str, Any], prefix: str = "") -> list[Violation]:
    """Cross-field rubric rules. Tolerates structurally broken input."""
    violations: list[Violation] = []

    scoring = data.get("scoring")
    thresholds = scoring.get("thresholds") if isinstance(scoring, dict) else None
    if isinstance(thresholds, dict):
        pass_value = thresholds.get("pass")
        ni_value = thresholds.get("needsImprovement")
        if _is_number(pass_value) and _is_number(ni_value) and pass_value < ni_value:
            violations.append(Violation(
                format_path(["scoring", "thresholds"], prefix),
                f"pass threshold ({pass_value}) must be >= needsImprovement ({ni_value})",
            ))

    sections = data.get("sections")
    if not isinstance(sections, list):
        return violations

    section_ids = Counter(
        s.get("id") for s in sections if isinstance(s, dict) and isinstance(s.get("id"), str)
    )
    for section_id, count in section_ids.items():
        if count > 1:
            violations.append(Violation(
                format_path(["sections"], prefix),
                f"duplicate section id '{section_id}' ({count} occurrences)",
            ))

    for s_index, section in enumerate(sections):
        if not isinstance(section, dict) or not isinstance(section.get("criteria"), list):
            continue
        criteria = section["criteria"]
        criterion_ids = Counter(
            c.get("id") for c in criteria if isinstance(c, dict) and isinstance(c.get("id"), str)
        )
        for criterion_id, count in criterion_ids.items():
            if count > 1:
                violations.append(Violation(
                    format_path(["sections", s_index, "criteria"], prefix),
                    f"duplicate criterion id '{criterion_id}' ({count} occurrences)",
                ))
        for c_index, criterion in enumerate(criteria):
            grading = criterion.get("grading") if isinstance(criterion, dict) else None
            if not isinstance(grading, dict):
                continue
            low, high = grading.get("minScore"), grading.get("maxScore")
            if _is_number(low) and _is_number(high) and high < low:
                violations.append(Violation(
                    format_path(["sections", s_index, "criteria", c_index, "grading"], prefix),
                    f"maxScore ({high}) must be >= minScore ({low})",
                ))

    return violations


def _non_finite_violations(data: Any, prefix: str = "") -> list[Violation]:
    """NaN and infinite numbers anywhere in ``data``. JSON Schema range checks let NaN through."""
    violations: list[Violation] = []

    def walk(value: Any, parts: list[Any]) -> None:
        if isinstance(value, float) and not math.isfinite(value):
            violations.append(Violation(format_path(parts, prefix), "must be a finite number"))
        elif isinstance(value, dict):
            for key, item in value.items():
                walk(item, [*parts, key])
        elif isinstance(value, list):
            for index, item in enumerate(value):
                walk(item, [*parts, index])

    walk(data, [])
    return violations


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_rubric(data: Any, prefix: str = "") -> list[Violation]:
    """Return every violation in a raw rubric document (empty when valid).

    Args:
        data: The rubric as parsed JSON.
        prefix: Path prefix for reported violations, e.g. ``"rubric"`` when
            the rubric is nested inside a request.
    """
    violations = schema_violations(data, RUBRIC_SCHEMA, prefix)
    violations.extend(_non_finite_violations(data, prefix))
    if isinstance(data, dict):
        violations.extend(_semantic_violations(data, prefix))
    return violations


def validate_scoring_request(data: Any) -> list[Violation]:
    """Return every violation in a raw one-section scoring request."""
    violations = schema_violations(data, SCORING_REQUEST_SCHEMA)
    violations.extend(_non_finite_violations(data))
    if isinstance(data, dict) and isinstance(data.get("rubric"), dict):
        violations.extend(_semantic_violations(data["rubric"], prefix="rubric"))
    return violations


def load_rubric(data: Any) -> RubricTemplate:
    """Validate a raw rubric document and build the immutable model.

    Raises:
        RubricValidationError: With every violation, if the rubric is invalid.
    """
    violations = validate_rubric(data)
    if violations:
        raise RubricValidationError(violations, subject="rubric")
    return RubricTemplate.from_dict(data)


def validate_scorecard_request(data: Any) -> list[Violation]:
    """Return every violation in a raw whole-rubric scoring request."""
    violations = schema_violations(data, SCORECARD_REQUEST_SCHEMA)
    violations.extend(_non_finite_violations(data))
    if isinstance(data, dict) and isinstance(data.get("rubric"), dict):
        violations.extend(_semantic_violations(data["rubric"], prefix="rubric"))
    return violations
