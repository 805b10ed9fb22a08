"""Configuration helpers for llm-apply."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from llm_apply.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).with_name("settings.yaml")
DEFAULT_TEMPERATURE = 0.1

OraclePolicy = Literal["fallback", "authority", "off"]

_TRUTHY = {"1", "true", "yes", "on"}


class OracleConfig(BaseModel):
    """Path oracle endpoint and sampling settings."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str | None = Field(default=None, repr=False)
    model: str = "gpt-4.1-mini"
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_tokens: int = Field(128, gt=0)
    timeout: float = Field(30.0, gt=0)
    include_directory_structure: bool = False
    cache: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


class ExtractionConfig(BaseModel):
    """How fenced blocks without explicit markers are resolved."""

    oracle_policy: OraclePolicy = "fallback"
    parallel: bool = False
    context_lines_before: int = Field(4, ge=0)
    context_code_lines: int = Field(2, ge=0)
    strip_json_comments: bool = True


class Settings(BaseModel):
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)


def resolve_api_key(raw: str | None) -> str | None:
    """Return the API key.

    ``LLM_API_KEY`` may hold the key itself or the name of another
    environment variable that holds it.
    """
    if not raw:
        return None
    indirect = os.environ.get(raw)
    return indirect or raw


def get_temperature_override() -> float | None:
    """Get LLM_TEMPERATURE if set to a number in [0, 2]."""
    env_val = os.environ.get("LLM_TEMPERATURE")
    if not env_val:
        return None
    try:
        value = float(env_val)
    except ValueError:
        value = -1.0
    if 0.0 <= value <= 2.0:
        return value
    logger.warning(
        "Invalid LLM_TEMPERATURE value %r. Must be a number between 0 and 2; ignoring it.",
        env_val,
    )
    return None


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return data


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML and apply environment overrides.

    Supports environment overrides:
        LLM_API_KEY - API key, or the name of the variable holding it
        LLM_API_BASE_URL - oracle endpoint base URL
        LLM_MODEL - oracle model name
        LLM_TEMPERATURE - sampling temperature (0-2)
        LLM_APPLY_ORACLE_POLICY - fallback, authority or off
        LLM_APPLY_PARALLEL - issue oracle calls concurrently

    Args:
        path: Optional override path. Defaults to ``llm_apply/config/settings.yaml``.

    Returns:
        Validated Settings.
    """
    config_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    data = _read_yaml(config_path)

    oracle_cfg = dict(data.get("oracle") or {})
    extraction_cfg = dict(data.get("extraction") or {})
    # YAML 1.1 reads a bare `off` as false
    if extraction_cfg.get("oracle_policy") is False:
        extraction_cfg["oracle_policy"] = "off"

    api_key = resolve_api_key(os.environ.get("LLM_API_KEY"))
    if api_key:
        oracle_cfg["api_key"] = api_key
    base_url = os.environ.get("LLM_API_BASE_URL")
    if base_url:
        oracle_cfg["base_url"] = base_url.strip().rstrip("/")
    model_override = os.environ.get("LLM_MODEL")
    if model_override:
        oracle_cfg["model"] = model_override
    temperature = get_temperature_override()
    if temperature is not None:
        oracle_cfg["temperature"] = temperature

    policy = os.environ.get("LLM_APPLY_ORACLE_POLICY")
    if policy:
        extraction_cfg["oracle_policy"] = policy.strip().lower()
    parallel = os.environ.get("LLM_APPLY_PARALLEL")
    if parallel:
        extraction_cfg["parallel"] = parallel.strip().lower() in _TRUTHY

    try:
        return Settings(
            oracle=OracleConfig(**oracle_cfg),
            extraction=ExtractionConfig(**extraction_cfg),
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {config_path}: {exc}") from exc


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "ExtractionConfig",
    "OracleConfig",
    "OraclePolicy",
    "Settings",
    "get_temperature_override",
    "load_settings",
    "resolve_api_key",
]
