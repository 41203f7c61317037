"""Rendering of the per-section evaluation prompt.

One prompt is built per rubric section. It carries the evaluator framing, the
section's criteria as JSON, an example of the exact reply shape, optional
background material, and the time-stamped transcript.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import jinja2

from rtass.rubrics.models import RubricCriterion, RubricSection, RubricTemplate

logger = logging.getLogger(__name__)

DEFAULT_EVALUATOR_ROLE = "an expert fireground radio traffic evaluator"

SYSTEM_MESSAGE_TEMPLATE = (
    "You are {{ evaluator_role }}. "
    "Do not speculate. Always respond with valid JSON only."
)

SECTION_PROMPT_TEMPLATE = """\
You are {{ evaluator_role }}.

Your job is to score radio communications against a rubric section.

Hard rules:
- Do NOT speculate. If a criterion cannot be supported by radio traffic, return verdict "not_observed".
- If a criterion is conditional and does not apply, return verdict "not_applicable".
- Provide short verbatim evidence quotes with timestamps whenever possible. \
Keep each quote under {{ quote_max_chars }} characters.
- The transcript uses [MM:SS] markers at the start of each line. \
Convert them to total seconds for evidence.start.
- Respond with JSON only.

Rubric: {{ rubric.name }} (v{{ rubric.version }})
Section: {{ section.title }} ({{ section.id }})

Criteria (evaluate each one):
{{ criteria_json }}

Output JSON schema (respond exactly in this shape):
```json
{
  "sectionId": "{{ section.id }}",
  "criteria": [
    {
      "criterionId": "criterion-id",
      "verdict": "met|missed|partial|not_observed|not_applicable",
      "score": 0,
      "confidence": 0.0,
      "rationale": "1-3 sentences.",
      "evidence": [
        { "quote": "short verbatim quote", "start": 123, "end": 130, "speaker": "optional" }
      ],
      "observedEvents": [
        { "name": "optional_event_name", "at": 123 }
      ]
    }
  ],
  "sectionNotes": "optional",
  "warnings": ["optional"]
}
```

{% if supplemental_material %}\
Supplemental material (policy excerpts / notes). \
Use as background only; do not cite it as evidence:

{{ supplemental_material }}

{% endif %}\
Transcript:

{{ transcript }}
"""

_environment = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
)


def _criterion_for_prompt(criterion: RubricCriterion) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": criterion.id,
        "title": criterion.title,
        "description": criterion.description,
        "required": criterion.required,
        "type": criterion.type.value,
    }
    if criterion.enum_options is not None:
        entry["enumOptions"] = list(criterion.enum_options)
    if criterion.timing is not None:
        entry["timing"] = criterion.timing.to_dict()
    if criterion.notes is not None:
        entry["notes"] = criterion.notes
    return entry


def build_system_message(evaluator_role: str = DEFAULT_EVALUATOR_ROLE) -> str:
    """Render the system message sent with every section prompt."""
    return _environment.from_string(SYSTEM_MESSAGE_TEMPLATE).render(
        evaluator_role=evaluator_role
    )


def build_section_prompt(
    rubric: RubricTemplate,
    section: RubricSection,
    transcript_text: str,
    supplemental_material: str | None = None,
    evaluator_role: str = DEFAULT_EVALUATOR_ROLE,
) -> str:
    """Render the evaluation prompt for one section.

    Args:
        rubric: Rubric the section belongs to.
        section: Section to evaluate. Every one of its criteria is listed.
        transcript_text: Transcript already rendered with ``[M:SS]`` markers.
        supplemental_material: Optional background text. Rendered with an
            instruction not to cite it as evidence.
        evaluator_role: Who the judge is asked to be.

    Returns:
        The prompt text.
    """
    criteria_json = json.dumps(
        [_criterion_for_prompt(c) for c in section.criteria], indent=2
    )
    prompt = _environment.from_string(SECTION_PROMPT_TEMPLATE).render(
        evaluator_role=evaluator_role,
        rubric=rubric,
        section=section,
        criteria_json=criteria_json,
        quote_max_chars=rubric.llm.evidence_quote_max_chars,
        supplemental_material=supplemental_material or "",
        transcript=transcript_text,
    )
    logger.debug(
        "Built prompt for section '%s' (%d chars, %d criteria)",
        section.id, len(prompt), len(section.criteria),
    )
    return prompt
