"""Base abstractions for the external judge.

The judge is a chat-completion endpoint asked to return one JSON object per
rubric section. Providers differ only in how they reach the endpoint; the
orchestrator talks to all of them through ``AsyncJudgeProvider``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any

from rtass.scoring.models import ModelInfo

logger = logging.getLogger(__name__)

DEFAULT_EXTENDED_CONTEXT_THRESHOLD = 256_000
DEFAULT_MAX_COMPLETION_TOKENS = 8000


@dataclass
class JudgeMessage:
    """One chat message sent to the judge.

    Attributes:
        role: 'system', 'user' or 'assistant'
        content: Message text
    """

    role: str
    content: str


@dataclass
class JudgeResponse:
    """Reply from the judge.

    Attributes:
        content: Reply text. May be empty; the caller decides what that means.
        model: Model or deployment that produced the reply.
        finish_reason: Why generation stopped ('stop', 'length', ...).
        usage: Token usage, if the provider reports it.
    """

    content: str
    model: str
    finish_reason: str | None = None
    usage: dict[str, int] | None = None


@dataclass
class JudgeConfig:
    """Connection and model settings for the judge.

    Attributes:
        provider: 'openai', 'azure-openai' or 'echo'.
        model: Model name.
        deployment: Deployment name sent as the request model. Falls back to
            ``model``.
        extended_deployment: Long-context deployment for large transcripts.
        extended_context_threshold: Estimated token count at which the
            extended deployment is selected.
        api_key: API key. Required by the network providers.
        api_base: Base URL (Azure endpoint for 'azure-openai').
        api_version: API version (Azure only).
        timeout: Client request timeout in seconds.
        max_completion_tokens: Completion token limit per request.
        options: Provider-specific extras.
    """

    provider: str = "openai"
    model: str = "gpt-4o"
    deployment: str | None = None
    extended_deployment: str | None = None
    extended_context_threshold: int = DEFAULT_EXTENDED_CONTEXT_THRESHOLD
    api_key: str | None = None
    api_base: str | None = None
    api_version: str | None = None
    timeout: float | None = 120.0
    max_completion_tokens: int = DEFAULT_MAX_COMPLETION_TOKENS
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JudgeConfig:
        """Create from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary, omitting the API key."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "api_key"}


class AsyncJudgeProvider(ABC):
    """Base class for judge providers.

    Args:
        config: Judge settings.
    """

    def __init__(self, config: JudgeConfig) -> None:
        self.config = config
        self._is_initialized = False

    @property
    def provider_name(self) -> str:
        """Provider label reported in ``modelInfo``."""
        return self.config.provider

    @property
    def default_deployment(self) -> str:
        return self.config.deployment or self.config.model

    def select_deployment(self, estimated_tokens: int) -> str:
        """Pick the deployment for a prompt of ``estimated_tokens`` tokens.

        At or above ``extended_context_threshold`` the extended deployment is
        used. If none is configured the standard deployment is used and a
        warning is logged.
        """
        if estimated_tokens < self.config.extended_context_threshold:
            return self.default_deployment
        if self.config.extended_deployment:
            logger.info(
                "Using extended deployment '%s' for ~%d tokens",
                self.config.extended_deployment, estimated_tokens,
            )
            return self.config.extended_deployment
        logger.warning(
            "Transcript needs an extended-context deployment (~%d tokens) "
            "but none is configured; using '%s'",
            estimated_tokens, self.default_deployment,
        )
        return self.default_deployment

    def model_info(self, deployment: str | None = None) -> ModelInfo:
        """Describe the judge for a result's ``modelInfo``."""
        chosen = deployment or self.default_deployment
        return ModelInfo(provider=self.provider_name, model=chosen, deployment=chosen)

    @abstractmethod
    async def complete(
        self,
        messages: list[JudgeMessage],
        deployment: str | None = None,
    ) -> JudgeResponse:
        """Send one chat request and return the reply.

        Implementations raise ``JudgeConfigurationError`` when the endpoint
        cannot be used at all and ``JudgeTransportError`` when a single
        request fails.
        """

    async def initialize(self) -> None:
        """Initialize the judge client."""
        self._is_initialized = True

    async def close(self) -> None:
        """Release the judge client."""
        self._is_initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def __aenter__(self) -> AsyncJudgeProvider:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
