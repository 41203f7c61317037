"""Settings for the scoring service.

Settings come from an optional YAML file layered over built-in defaults.
String values may reference environment variables:

- ``${VAR}``: value of VAR; an error if VAR is not set
- ``${VAR:default}``: VAR if set, else ``default``
- ``${VAR:-default}``: same as above (bash-style)

A value that is exactly one reference is converted to int, float or bool
where it parses as one.

Example:
    ```yaml
    judge:
      provider: azure-openai
      deployment: ${AZURE_OPENAI_DEPLOYMENT}
      extended_deployment: ${AZURE_OPENAI_EXTENDED_DEPLOYMENT:}
      api_key: ${AZURE_OPENAI_API_KEY}
      api_base: ${AZURE_OPENAI_ENDPOINT}
    retry:
      attempt_timeout: ${RTASS_ATTEMPT_TIMEOUT:120}
    rubric_dir: data/rtass-rubrics
    log_level: INFO
    ```
"""

from __future__ import annotations

import copy
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .judge.base import JudgeConfig
from .retry import BackoffStrategy, RetryConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class VariableSubstitution:
    """Substitutes environment variable references in configuration values."""

    # ${VAR} or ${VAR:default} or ${VAR:-default}
    VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::(-)?([^}]*))?\}")

    def substitute(self, value: Any) -> Any:
        """Recursively substitute environment variables in a value.

        Raises:
            ValueError: If a referenced variable is unset and has no default.
        """
        if isinstance(value, str):
            return self._substitute_string(value)
        elif isinstance(value, dict):
            return {key: self.substitute(item) for key, item in value.items()}
        elif isinstance(value, list):
            return [self.substitute(item) for item in value]
        return value

    def _resolve(self, match: re.Match) -> str:
        var_name = match.group(1)
        has_default = match.group(2) is not None or match.group(3) is not None
        if var_name in os.environ:
            return os.environ[var_name]
        if has_default:
            return match.group(3) if match.group(3) is not None else ""
        raise ValueError(f"Environment variable '{var_name}' not found")

    def _substitute_string(self, text: str) -> Any:
        if text.startswith("${") and text.endswith("}") and text.count("${") == 1:
            match = self.VAR_PATTERN.fullmatch(text)
            if match:
                return self._convert_type(self._resolve(match))
        return self.VAR_PATTERN.sub(self._resolve, text)

    def _convert_type(self, value: str) -> Any:
        lowered = value.lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            pass
        return value


DEFAULT_SETTINGS: dict[str, Any] = {
    "judge": {
        "provider": "${RTASS_JUDGE_PROVIDER:openai}",
        "model": "${RTASS_JUDGE_MODEL:gpt-4o}",
        "deployment": "${AZURE_OPENAI_DEPLOYMENT:}",
        "extended_deployment": "${AZURE_OPENAI_EXTENDED_DEPLOYMENT:}",
        "extended_context_threshold": 256_000,
        "api_key": "${OPENAI_API_KEY:}",
        "api_base": "${OPENAI_BASE_URL:}",
        "api_version": "${AZURE_OPENAI_API_VERSION:}",
        "timeout": 120.0,
        "max_completion_tokens": 8000,
        "options": {},
    },
    "retry": {
        "attempt_timeout": 120.0,
        "backoff_strategy": "none",
        "initial_delay": 0.0,
        "max_delay": 30.0,
        "backoff_multiplier": 2.0,
    },
    "rubric_dir": "${RTASS_RUBRIC_DIR:data/rtass-rubrics}",
    "log_level": "${RTASS_LOG_LEVEL:INFO}",
    "log_file": "${RTASS_LOG_FILE:}",
}

_JUDGE_STRING_FIELDS = ("provider", "model", "deployment", "extended_deployment",
                        "api_key", "api_base", "api_version")


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass
class RetrySettings:
    """Retry policy settings. Attempt counts come from each rubric."""

    attempt_timeout: float | None = 120.0
    backoff_strategy: BackoffStrategy = BackoffStrategy.NONE
    initial_delay: float = 0.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrySettings:
        timeout = data.get("attempt_timeout")
        return cls(
            attempt_timeout=float(timeout) if timeout not in (None, "", 0) else None,
            backoff_strategy=BackoffStrategy(str(data.get("backoff_strategy", "none")).lower()),
            initial_delay=float(data.get("initial_delay", 0.0)),
            max_delay=float(data.get("max_delay", 30.0)),
            backoff_multiplier=float(data.get("backoff_multiplier", 2.0)),
        )


@dataclass
class ScoringSettings:
    """Top-level service settings."""

    judge: JudgeConfig = field(default_factory=JudgeConfig)
    retry: RetrySettings = field(default_factory=RetrySettings)
    rubric_dir: str = "data/rtass-rubrics"
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoringSettings:
        """Build settings from an already-substituted dictionary."""
        judge_data = dict(data.get("judge") or {})
        for name in _JUDGE_STRING_FIELDS:
            if name in judge_data:
                judge_data[name] = _optional_str(judge_data[name])
        judge_data["provider"] = judge_data.get("provider") or "openai"
        judge_data["model"] = judge_data.get("model") or "gpt-4o"
        judge_data["options"] = judge_data.get("options") or {}

        return cls(
            judge=JudgeConfig.from_dict(judge_data),
            retry=RetrySettings.from_dict(data.get("retry") or {}),
            rubric_dir=str(data.get("rubric_dir") or "data/rtass-rubrics"),
            log_level=str(data.get("log_level") or "INFO").upper(),
            log_file=_optional_str(data.get("log_file")),
        )


def load_settings(path: str | Path | None = None) -> ScoringSettings:
    """Load settings from a YAML file over the defaults.

    Args:
        path: YAML file. When None only the defaults (and the environment
            variables they reference) are used.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If a referenced environment variable is unset and has no
            default, or the file is not a YAML mapping.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Settings file '{path}' must contain a mapping")
        raw = loaded
        logger.debug("Loaded settings from %s", path)

    merged = _deep_merge(DEFAULT_SETTINGS, raw)
    return ScoringSettings.from_dict(VariableSubstitution().substitute(merged))


def build_retry_config(settings: ScoringSettings) -> RetryConfig:
    """Base retry policy from settings. ``max_attempts`` is set per rubric."""
    retry = settings.retry
    return RetryConfig(
        attempt_timeout=retry.attempt_timeout,
        backoff_strategy=retry.backoff_strategy,
        initial_delay=retry.initial_delay,
        max_delay=retry.max_delay,
        backoff_multiplier=retry.backoff_multiplier,
    )


def configure_logging(level: int | str = logging.INFO, log_file: str | Path | None = None) -> None:
    """Install console (and optionally file) handlers on the root logger.

    Safe to call repeatedly: existing handlers of the same kind, or for the
    same file, are not duplicated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    )
    if not has_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_file is None:
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(log_path.resolve())
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == resolved:
            return

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
