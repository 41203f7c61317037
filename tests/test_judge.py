"""Tests for judge providers and the provider factory."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import httpx
import openai
import pytest

from rtass.exceptions import JudgeConfigurationError, JudgeTransportError
from rtass.judge import (
    EchoJudge,
    JudgeConfig,
    JudgeMessage,
    JudgeProviderFactory,
    OpenAIJudge,
    create_judge,
)


class FakeCompletions:
    """Stands in for ``client.chat.completions``."""

    def __init__(self, result: object) -> None:
        self.result = result
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def _openai_judge(result: object, **config) -> tuple[OpenAIJudge, FakeCompletions]:
    judge = OpenAIJudge(JudgeConfig(provider="openai", api_key="sk-test", **config))
    completions = FakeCompletions(result)
    judge._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    judge._is_initialized = True
    return judge, completions


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        model="gpt-4o-2024",
        choices=[SimpleNamespace(
            message=SimpleNamespace(content=content), finish_reason="stop",
        )],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


_MESSAGES = [JudgeMessage("system", "be strict"), JudgeMessage("user", "score this")]


class TestJudgeConfig:
    def test_from_dict_ignores_unknown_keys(self) -> None:
        config = JudgeConfig.from_dict({"provider": "echo", "model": "m", "colour": "red"})
        assert config.provider == "echo"
        assert config.model == "m"

    def test_to_dict_omits_api_key(self) -> None:
        data = JudgeConfig(api_key="secret").to_dict()
        assert "api_key" not in data
        assert data["extended_context_threshold"] == 256_000


class TestJudgeProviderFactory:
    def test_creates_each_provider(self) -> None:
        assert isinstance(create_judge({"provider": "echo"}), EchoJudge)
        assert isinstance(create_judge(JudgeConfig(provider="openai")), OpenAIJudge)
        azure = create_judge({"provider": "Azure-OpenAI"})
        assert isinstance(azure, OpenAIJudge)

    def test_unknown_provider(self) -> None:
        with pytest.raises(JudgeConfigurationError, match="Unknown judge provider"):
            create_judge({"provider": "oracle"})

    def test_register_provider(self, monkeypatch) -> None:
        monkeypatch.setitem(JudgeProviderFactory._providers, "scripted", EchoJudge)
        assert isinstance(JudgeProviderFactory().create({"provider": "scripted"}), EchoJudge)


class TestSelectDeployment:
    def test_below_threshold(self) -> None:
        judge = EchoJudge(JudgeConfig(
            provider="echo", model="m", deployment="std", extended_deployment="long",
            extended_context_threshold=1000,
        ))
        assert judge.select_deployment(999) == "std"

    def test_at_threshold_uses_extended(self) -> None:
        judge = EchoJudge(JudgeConfig(
            provider="echo", model="m", deployment="std", extended_deployment="long",
            extended_context_threshold=1000,
        ))
        assert judge.select_deployment(1000) == "long"

    def test_missing_extended_falls_back_with_warning(self, caplog) -> None:
        judge = EchoJudge(JudgeConfig(
            provider="echo", model="m", deployment="std", extended_context_threshold=1000,
        ))
        with caplog.at_level(logging.WARNING, logger="rtass.judge.base"):
            assert judge.select_deployment(5000) == "std"
        assert "none is configured" in caplog.text

    def test_model_info(self) -> None:
        judge = EchoJudge(JudgeConfig(provider="echo", model="m"))
        info = judge.model_info()
        assert (info.provider, info.model, info.deployment) == ("echo", "m", "m")
        assert judge.model_info("long").deployment == "long"


class TestEchoJudge:
    async def test_replays_queue_then_echoes(self) -> None:
        judge = EchoJudge()
        judge.set_responses(["first", JudgeTransportError("down")])
        judge.add_response("third")

        assert (await judge.complete(_MESSAGES)).content == "first"
        with pytest.raises(JudgeTransportError):
            await judge.complete(_MESSAGES)
        assert (await judge.complete(_MESSAGES, deployment="long")).content == "third"
        assert (await judge.complete(_MESSAGES)).content == "score this"

        assert judge.call_count == 4
        assert judge.pending_responses == 0
        assert judge.deployments == [None, None, "long", None]

    async def test_context_manager(self) -> None:
        judge = EchoJudge()
        async with judge:
            assert judge.is_initialized
        assert not judge.is_initialized


class TestOpenAIJudge:
    async def test_missing_key(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(JudgeConfigurationError):
            await OpenAIJudge(JudgeConfig(provider="openai")).initialize()

    async def test_azure_needs_endpoint(self, monkeypatch) -> None:
        monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "k")
        with pytest.raises(JudgeConfigurationError, match="endpoint"):
            await OpenAIJudge(JudgeConfig(provider="azure-openai")).initialize()

    async def test_initialize_with_env_key(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        judge = OpenAIJudge(JudgeConfig(provider="openai"))
        await judge.initialize()
        assert judge.is_initialized
        await judge.close()
        assert not judge.is_initialized

    async def test_complete_requests_json_object(self) -> None:
        judge, completions = _openai_judge(
            _completion('{"sectionId": "arrival"}'),
            deployment="gpt-4.1", max_completion_tokens=2000,
        )

        reply = await judge.complete(_MESSAGES)

        assert reply.content == '{"sectionId": "arrival"}'
        assert reply.usage["total_tokens"] == 15
        request = completions.requests[0]
        assert request["model"] == "gpt-4.1"
        assert request["response_format"] == {"type": "json_object"}
        assert request["max_completion_tokens"] == 2000
        assert request["messages"][0] == {"role": "system", "content": "be strict"}

    async def test_null_content_becomes_empty(self) -> None:
        judge, _ = _openai_judge(_completion(None))
        assert (await judge.complete(_MESSAGES)).content == ""

    async def test_transport_error(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        judge, _ = _openai_judge(openai.APIConnectionError(request=request))
        with pytest.raises(JudgeTransportError):
            await judge.complete(_MESSAGES)

    async def test_authentication_error_is_configuration(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(401, request=request)
        error = openai.AuthenticationError("bad key", response=response, body=None)
        judge, _ = _openai_judge(error)
        with pytest.raises(JudgeConfigurationError):
            await judge.complete(_MESSAGES)
