"""Shared fixtures for rubric scoring tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from rtass.judge.providers.echo import EchoJudge
from rtass.retry import RetryConfig
from rtass.rubrics.validation import load_rubric
from rtass.transcript import Transcript


def make_rubric_data() -> dict[str, Any]:
    return {
        "id": "afd-radio-baseline",
        "name": "AFD Radio Baseline",
        "description": "Baseline radio communications expectations for first-due companies",
        "version": "1.0.0",
        "createdAt": "2025-01-01T00:00:00Z",
        "tags": ["radio", "baseline"],
        "sections": [
            {
                "id": "arrival",
                "title": "Arrival Report",
                "description": "Initial radio report on arrival",
                "weight": 0.6,
                "criteria": [
                    {
                        "id": "size_up",
                        "title": "Size-up given",
                        "description": "Building, conditions and actions stated on arrival",
                        "required": True,
                        "type": "boolean",
                        "weight": 0.6,
                    },
                    {
                        "id": "command",
                        "title": "Command established",
                        "description": "Command named and location given",
                        "required": True,
                        "type": "boolean",
                        "weight": 0.4,
                    },
                ],
            },
            {
                "id": "mayday",
                "title": "Mayday Procedures",
                "description": "Handling of a firefighter emergency",
                "weight": 0.4,
                "criteria": [
                    {
                        "id": "lunar",
                        "title": "LUNAR report",
                        "description": "Location, unit, name, assignment, resources needed",
                        "required": False,
                        "type": "graded",
                        "notes": "Partial credit for incomplete reports",
                    },
                    {
                        "id": "par",
                        "title": "PAR requested",
                        "description": "Personnel accountability report requested after mayday",
                        "required": True,
                        "type": "timing",
                        "timing": {"startEvent": "mayday", "endEvent": "par", "targetSeconds": 60},
                    },
                ],
            },
        ],
        "scoring": {
            "method": "weighted_average",
            "thresholds": {"pass": 0.6, "needsImprovement": 0.3},
            "requiredNotObservedBehavior": "treat_as_missed",
        },
        "llm": {"concurrency": 2, "maxRetries": 2, "evidenceQuoteMaxChars": 80},
    }


def make_transcript_data() -> dict[str, Any]:
    segments = [
        {"index": 0, "start": 0.0, "end": 5.0, "speaker": "E1",
         "text": "Engine 1 on scene, two-story residential, smoke showing"},
        {"index": 1, "start": 5.0, "end": 10.0, "speaker": "E1",
         "text": "Engine 1 assuming Main Street command"},
        {"index": 2, "start": 12.0, "end": 20.0, "speaker": "L3",
         "text": "Mayday mayday mayday, Ladder 3, second floor, trapped"},
    ]
    return {"text": " ".join(s["text"] for s in segments), "segments": segments}


def make_entry(criterion_id: str, verdict: str, score: float | None = None,
               start: float = 1.0) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "criterionId": criterion_id,
        "verdict": verdict,
        "confidence": 0.9,
        "rationale": "Stated on the radio.",
        "evidence": [{"quote": f"evidence for {criterion_id}", "start": start}],
    }
    if score is not None:
        entry["score"] = score
    return entry


def make_reply(section_id: str, entries: list[tuple],
               warnings: list[str] | None = None) -> str:
    data: dict[str, Any] = {
        "sectionId": section_id,
        "criteria": [make_entry(*e) for e in entries],
    }
    if warnings is not None:
        data["warnings"] = warnings
    return json.dumps(data)


@pytest.fixture
def rubric_data() -> dict[str, Any]:
    return make_rubric_data()


@pytest.fixture
def rubric(rubric_data):
    return load_rubric(rubric_data)


@pytest.fixture
def transcript_data() -> dict[str, Any]:
    return make_transcript_data()


@pytest.fixture
def transcript(transcript_data) -> Transcript:
    return Transcript.from_dict(transcript_data)


@pytest.fixture
def judge_reply() -> Callable[..., str]:
    """Build a judge reply: ``judge_reply("arrival", [("size_up", "met")])``."""
    return make_reply


@pytest.fixture
def echo_judge() -> EchoJudge:
    return EchoJudge()


@pytest.fixture
def no_sleep() -> list[float]:
    """Recorded delays; use with ``fast_retry``."""
    return []


@pytest.fixture
def fast_retry(no_sleep) -> RetryConfig:
    async def fake_sleep(delay: float) -> None:
        no_sleep.append(delay)

    return RetryConfig(sleep=fake_sleep)
