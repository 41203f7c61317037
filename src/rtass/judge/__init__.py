"""Judge providers and the factory that builds them from configuration.

Example:
    ```python
    from rtass.judge import JudgeConfig, create_judge

    judge = create_judge(JudgeConfig(provider="azure-openai", deployment="gpt-4.1"))
    async with judge:
        reply = await judge.complete(messages)
    ```
"""

from __future__ import annotations

from typing import Any

from rtass.exceptions import JudgeConfigurationError

from .base import AsyncJudgeProvider, JudgeConfig, JudgeMessage, JudgeResponse
from .providers import EchoJudge, OpenAIJudge


class JudgeProviderFactory:
    """Creates judge providers by provider name."""

    _providers: dict[str, type[AsyncJudgeProvider]] = {
        "openai": OpenAIJudge,
        "azure-openai": OpenAIJudge,
        "echo": EchoJudge,
    }

    def create(self, config: JudgeConfig | dict[str, Any]) -> AsyncJudgeProvider:
        """Create a judge from configuration.

        Raises:
            JudgeConfigurationError: If the provider name is unknown.
        """
        if isinstance(config, dict):
            config = JudgeConfig.from_dict(config)

        provider_class = self._providers.get(config.provider.lower())
        if provider_class is None:
            raise JudgeConfigurationError(
                f"Unknown judge provider: {config.provider}. "
                f"Available providers: {sorted(self._providers)}",
                context={"provider": config.provider},
            )
        return provider_class(config)

    @classmethod
    def register_provider(cls, name: str, provider_class: type[AsyncJudgeProvider]) -> None:
        """Register a custom provider class under ``name``."""
        cls._providers[name.lower()] = provider_class


def create_judge(config: JudgeConfig | dict[str, Any]) -> AsyncJudgeProvider:
    """Create a judge provider from configuration."""
    return JudgeProviderFactory().create(config)


__all__ = [
    "AsyncJudgeProvider",
    "EchoJudge",
    "JudgeConfig",
    "JudgeMessage",
    "JudgeProviderFactory",
    "JudgeResponse",
    "OpenAIJudge",
    "create_judge",
]
