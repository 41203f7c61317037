"""Tests for scorecard assembly."""

from __future__ import annotations

import asyncio
import re

import pytest

from rtass.exceptions import (
    JudgeTransportError,
    RubricValidationError,
    ScorecardAssemblyError,
    SectionScoringError,
)
from rtass.judge import EchoJudge, JudgeMessage, JudgeResponse
from rtass.rubrics.validation import load_rubric
from rtass.scoring.models import SectionStatus
from rtass.scoring.scorecard import ScorecardRequest, assemble_scorecard

from conftest import make_reply

_SECTION_LINE = re.compile(r"^Section: .* \((?P<id>[^()]+)\)$", re.MULTILINE)


class SectionAwareJudge(EchoJudge):
    """Answers by section id and records how many calls overlap."""

    def __init__(self, replies: dict[str, str | BaseException]) -> None:
        super().__init__()
        self.replies = replies
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(
        self, messages: list[JudgeMessage], deployment: str | None = None
    ) -> JudgeResponse:
        self.calls.append(list(messages))
        section_id = _SECTION_LINE.search(messages[-1].content).group("id")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            reply = self.replies[section_id]
            if isinstance(reply, BaseException):
                raise reply
            return JudgeResponse(content=reply, model=deployment or self.default_deployment)
        finally:
            self.in_flight -= 1


def _replies() -> dict[str, str | BaseException]:
    return {
        "arrival": make_reply("arrival", [("size_up", "met"), ("command", "missed")]),
        "mayday": make_reply("mayday", [("lunar", "partial"), ("par", "met")],
                             warnings=["PAR timing approximate"]),
    }


class TestAssembleScorecard:
    async def test_assembles_every_section(self, rubric, transcript) -> None:
        judge = SectionAwareJudge(_replies())

        scorecard = await assemble_scorecard(
            rubric, "tx-42", transcript, judge, incident_id="inc-7"
        )

        assert [s.section_id for s in scorecard.sections] == ["arrival", "mayday"]
        assert scorecard.sections[0].score == pytest.approx(0.6)
        assert scorecard.sections[1].score == pytest.approx(0.75)
        assert scorecard.overall.score == pytest.approx(0.6 * 0.6 + 0.75 * 0.4)
        assert scorecard.overall.status == SectionStatus.PASS
        assert scorecard.warnings == ("PAR timing approximate",)
        assert scorecard.rubric_template_id == "afd-radio-baseline"
        assert scorecard.model_info.provider == "echo"

    async def test_wire_format(self, rubric, transcript) -> None:
        scorecard = await assemble_scorecard(
            rubric, "tx-42", transcript, SectionAwareJudge(_replies()), incident_id="inc-7"
        )

        data = scorecard.to_dict()

        assert data["id"].startswith("scorecard_")
        assert data["transcriptId"] == "tx-42"
        assert data["incidentId"] == "inc-7"
        assert data["overall"]["status"] == "pass"
        assert [s["sectionId"] for s in data["sections"]] == ["arrival", "mayday"]

    async def test_rubric_order_not_completion_order(self, rubric, transcript) -> None:
        class SlowArrival(SectionAwareJudge):
            async def complete(self, messages, deployment=None):
                if "(arrival)" in messages[-1].content:
                    await asyncio.sleep(0.05)
                return await super().complete(messages, deployment)

        scorecard = await assemble_scorecard(rubric, "tx-42", transcript, SlowArrival(_replies()))
        assert [s.section_id for s in scorecard.sections] == ["arrival", "mayday"]

    @pytest.mark.parametrize("concurrency", [1, 2])
    async def test_concurrency_cap(self, rubric_data, transcript, concurrency: int) -> None:
        rubric_data["llm"]["concurrency"] = concurrency
        judge = SectionAwareJudge(_replies())

        await assemble_scorecard(load_rubric(rubric_data), "tx-42", transcript, judge)

        assert judge.max_in_flight == concurrency

    async def test_failed_section(self, rubric, transcript) -> None:
        replies = _replies()
        replies["mayday"] = JudgeTransportError("gateway timeout")
        judge = SectionAwareJudge(replies)

        with pytest.raises(ScorecardAssemblyError) as exc_info:
            await assemble_scorecard(rubric, "tx-42", transcript, judge)

        failures = exc_info.value.failures
        assert list(failures) == ["mayday"]
        assert isinstance(failures["mayday"], SectionScoringError)
        # arrival once, mayday maxRetries + 1 times
        assert judge.call_count == 1 + 3


class TestScorecardRequest:
    def test_from_dict(self, rubric_data, transcript_data) -> None:
        request = ScorecardRequest.from_dict({
            "transcriptId": "tx-42",
            "incidentId": "inc-7",
            "transcript": transcript_data,
            "rubric": rubric_data,
        })
        assert request.incident_id == "inc-7"
        assert request.supplemental_material is None

    def test_invalid(self, rubric_data) -> None:
        with pytest.raises(RubricValidationError) as exc_info:
            ScorecardRequest.from_dict({"transcriptId": "tx-42", "rubric": rubric_data})
        assert [v.path for v in exc_info.value.violations] == ["transcript"]
