"""Exception hierarchy for RTASS scoring.

Errors fall into three groups that callers are expected to handle
differently:

- **Request problems** (``RubricValidationError``, ``SectionNotFoundError``):
  the rubric or request is malformed. Fix and resubmit; never retried.
- **Judge problems** (``JudgeConfigurationError``, ``JudgeCallError`` and
  its subclasses): the external judge is unusable or misbehaved. Configuration
  errors fail fast; call errors are retried up to the rubric's limit.
- **Scoring failures** (``SectionScoringError``, ``ScorecardAssemblyError``):
  the retry budget ran out for one or more sections.

Aggregation never raises. A section with nothing to score comes back with a
zero score and a warning instead.

Example:
    ```python
    from rtass.exceptions import RtassError, RubricValidationError

    try:
        rubric = load_rubric(data)
    except RubricValidationError as e:
        for violation in e.violations:
            print(f"{violation.path}: {violation.message}")
    except RtassError as e:
        print(e, e.context)
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class RtassError(Exception):
    """Base exception for all RTASS scoring errors.

    Attributes:
        context: Dictionary with contextual information about the error.
        details: Alias for ``context``.

    Args:
        message: Human-readable error message.
        context: Optional dictionary with error context (ids, field names, etc.).
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.details = self.context


@dataclass(frozen=True)
class Violation:
    """A single field-level validation failure.

    Attributes:
        path: Location of the offending value, e.g. ``sections[0].criteria[1].weight``.
            ``<root>`` refers to the document itself.
        message: What is wrong with the value.
    """

    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        """Serialize to a dictionary."""
        return {"path": self.path, "message": self.message}

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class RubricValidationError(RtassError):
    """Raised when a rubric or scoring request fails validation.

    Carries every violation found, not just the first, so an author can fix
    the whole document in one pass.
    """

    def __init__(self, violations: list[Violation], subject: str = "rubric"):
        self.violations = list(violations)
        self.subject = subject
        count = len(self.violations)
        summary = "; ".join(str(v) for v in self.violations[:3])
        if count > 3:
            summary += f"; ... ({count - 3} more)"
        super().__init__(
            f"Invalid {subject}: {count} violation(s): {summary}",
            context={"violations": [v.to_dict() for v in self.violations]},
        )


class SectionNotFoundError(RtassError):
    """Raised when the requested section id is absent from the rubric."""

    def __init__(self, section_id: str, rubric_id: str = ""):
        self.section_id = section_id
        self.rubric_id = rubric_id
        super().__init__(
            f"Section '{section_id}' not found in rubric '{rubric_id}'",
            context={"section_id": section_id, "rubric_id": rubric_id},
        )


class JudgeConfigurationError(RtassError):
    """Raised when the judge endpoint or its credentials are not usable at all.

    Never retried: a missing API key will still be missing on the next attempt.
    """


class JudgeCallError(RtassError):
    """A single judge attempt failed in a way worth retrying.

    Attributes:
        attempts: Judge calls made for the section when this error ended the
            retry loop, or None while retries are still possible.
    """

    attempts: int | None = None


class JudgeTransportError(JudgeCallError):
    """The request to the judge did not complete (network, rate limit, 5xx)."""


class JudgeEmptyResponseError(JudgeCallError):
    """The judge replied with no content."""


class JudgeResponseError(JudgeCallError):
    """The judge reply was not valid JSON or did not match the response schema."""

    def __init__(
        self,
        message: str,
        violations: list[Violation] | None = None,
        raw: str | None = None,
    ):
        self.violations = list(violations or [])
        self.raw = raw
        context: dict[str, Any] = {"violations": [v.to_dict() for v in self.violations]}
        if raw is not None:
            context["raw_excerpt"] = raw[:200]
        super().__init__(message, context=context)


class JudgeTimeoutError(JudgeCallError):
    """A judge attempt exceeded its per-attempt timeout."""


class SectionScoringError(RtassError):
    """Raised when every judge attempt for a section failed.

    Attributes:
        section_id: The section that could not be scored.
        attempts: Number of judge calls made for the section.
        last_error: The exception from the final attempt, unchanged.
    """

    def __init__(self, section_id: str, attempts: int, last_error: BaseException):
        self.section_id = section_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Scoring failed for section '{section_id}' after {attempts} attempt(s): "
            f"{last_error}",
            context={
                "section_id": section_id,
                "attempts": attempts,
                "error_type": type(last_error).__name__,
                "error": str(last_error),
            },
        )


class ScorecardAssemblyError(RtassError):
    """Raised when one or more sections failed while assembling a scorecard."""

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = dict(failures)
        failed = ", ".join(sorted(self.failures))
        super().__init__(
            f"Scorecard could not be assembled; failed section(s): {failed}",
            context={
                "failed_sections": {
                    section_id: str(error) for section_id, error in self.failures.items()
                },
            },
        )


__all__ = [
    "JudgeCallError",
    "JudgeConfigurationError",
    "JudgeEmptyResponseError",
    "JudgeResponseError",
    "JudgeTimeoutError",
    "JudgeTransportError",
    "RtassError",
    "RubricValidationError",
    "ScorecardAssemblyError",
    "SectionNotFoundError",
    "SectionScoringError",
    "Violation",
]
