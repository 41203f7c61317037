"""OpenAI and Azure OpenAI judge provider."""

from __future__ import annotations

import logging
import os
from typing import Any

import openai

from rtass.exceptions import JudgeConfigurationError, JudgeTransportError

from ..base import AsyncJudgeProvider, JudgeConfig, JudgeMessage, JudgeResponse

logger = logging.getLogger(__name__)

AZURE_PROVIDER = "azure-openai"
DEFAULT_AZURE_API_VERSION = "2024-10-21"


class OpenAIJudge(AsyncJudgeProvider):
    """Judge backed by the OpenAI chat completions API.

    With ``provider='azure-openai'`` the Azure client is used and
    ``api_base`` is the Azure endpoint. Requests always ask for a JSON object
    reply.
    """

    def __init__(self, config: JudgeConfig) -> None:
        super().__init__(config)
        self._client: openai.AsyncOpenAI | None = None

    @property
    def is_azure(self) -> bool:
        return self.config.provider.lower() == AZURE_PROVIDER

    async def initialize(self) -> None:
        """Create the async client.

        Raises:
            JudgeConfigurationError: If the API key (or the Azure endpoint) is missing.
        """
        if self.is_azure:
            api_key = self.config.api_key or os.environ.get("AZURE_OPENAI_API_KEY")
            endpoint = self.config.api_base or os.environ.get("AZURE_OPENAI_ENDPOINT")
            if not api_key or not endpoint:
                raise JudgeConfigurationError(
                    "Azure OpenAI judge requires an API key and endpoint",
                    context={"provider": self.config.provider},
                )
            self._client = openai.AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=endpoint,
                api_version=self.config.api_version or DEFAULT_AZURE_API_VERSION,
                timeout=self.config.timeout,
            )
        else:
            api_key = self.config.api_key or os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise JudgeConfigurationError(
                    "OpenAI API key not provided",
                    context={"provider": self.config.provider},
                )
            self._client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=self.config.api_base,
                timeout=self.config.timeout,
            )
        self._is_initialized = True

    async def close(self) -> None:
        """Close the client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
        self._is_initialized = False

    def _request_params(self, deployment: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": deployment,
            "response_format": {"type": "json_object"},
            "max_completion_tokens": self.config.max_completion_tokens,
        }
        params.update(self.config.options.get("request_params", {}))
        return params

    async def complete(
        self,
        messages: list[JudgeMessage],
        deployment: str | None = None,
    ) -> JudgeResponse:
        """Send one chat completion request."""
        if not self._is_initialized:
            await self.initialize()
        assert self._client is not None

        chosen = deployment or self.default_deployment
        try:
            response = await self._client.chat.completions.create(
                messages=[{"role": m.role, "content": m.content} for m in messages],
                **self._request_params(chosen),
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise JudgeConfigurationError(
                f"Judge rejected credentials: {e}",
                context={"provider": self.config.provider, "deployment": chosen},
            ) from e
        except openai.OpenAIError as e:
            raise JudgeTransportError(
                f"Judge request failed: {e}",
                context={"provider": self.config.provider, "deployment": chosen},
            ) from e

        if not response.choices:
            return JudgeResponse(content="", model=response.model or chosen)

        choice = response.choices[0]
        return JudgeResponse(
            content=choice.message.content or "",
            model=response.model or chosen,
            finish_reason=choice.finish_reason,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            } if response.usage else None,
        )
