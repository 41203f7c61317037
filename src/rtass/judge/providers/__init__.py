"""Judge provider implementations."""

from .echo import EchoJudge
from .openai import OpenAIJudge

__all__ = ["EchoJudge", "OpenAIJudge"]
