"""Scripted judge for tests and local runs."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from ..base import AsyncJudgeProvider, JudgeConfig, JudgeMessage, JudgeResponse


class EchoJudge(AsyncJudgeProvider):
    """Judge that replays queued replies instead of calling a model.

    Each ``complete`` call takes the next queued item: a string is returned as
    the reply content, an exception instance is raised. When the queue is
    empty the last user message is echoed back, which is not valid judge
    JSON and fails schema validation.

    Example:
        ```python
        judge = EchoJudge(JudgeConfig(provider="echo", model="echo"))
        judge.set_responses([JudgeTransportError("boom"), '{"sectionId": ...}'])
        ```
    """

    def __init__(self, config: JudgeConfig | None = None) -> None:
        super().__init__(config or JudgeConfig(provider="echo", model="echo"))
        self._responses: deque[str | BaseException] = deque()
        self.calls: list[list[JudgeMessage]] = []
        self.deployments: list[str | None] = []

    def set_responses(self, responses: Iterable[str | BaseException]) -> None:
        """Replace the queue of scripted replies."""
        self._responses = deque(responses)

    def add_response(self, response: str | BaseException) -> None:
        """Append one scripted reply."""
        self._responses.append(response)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def pending_responses(self) -> int:
        return len(self._responses)

    async def complete(
        self,
        messages: list[JudgeMessage],
        deployment: str | None = None,
    ) -> JudgeResponse:
        if not self._is_initialized:
            await self.initialize()

        self.calls.append(list(messages))
        self.deployments.append(deployment)
        chosen = deployment or self.default_deployment

        if self._responses:
            item = self._responses.popleft()
            if isinstance(item, BaseException):
                raise item
            return JudgeResponse(content=item, model=chosen, finish_reason="stop")

        user_messages = [m for m in messages if m.role == "user"]
        content = user_messages[-1].content if user_messages else ""
        return JudgeResponse(content=content, model=chosen, finish_reason="stop")
