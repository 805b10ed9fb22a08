"""Tests for settings loading and environment overrides."""

import logging

import pytest

from llm_apply.config import (
    DEFAULT_SETTINGS_PATH,
    ExtractionConfig,
    OracleConfig,
    Settings,
    get_temperature_override,
    load_settings,
    resolve_api_key,
)
from llm_apply.exceptions import ConfigError

ENV_VARS = [
    "LLM_API_KEY",
    "LLM_API_BASE_URL",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "LLM_APPLY_ORACLE_POLICY",
    "LLM_APPLY_PARALLEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ─────────────────────────────────────────────────────────────
# Defaults
# ─────────────────────────────────────────────────────────────


class TestDefaults:
    """Bundled settings.yaml and model defaults."""

    def test_bundled_settings_exist(self):
        assert DEFAULT_SETTINGS_PATH.exists()

    def test_load_bundled(self):
        settings = load_settings()
        assert settings.oracle.base_url == "https://api.openai.com/v1"
        assert settings.oracle.temperature == 0.1
        assert settings.oracle.api_key is None
        assert not settings.oracle.has_credentials
        assert settings.extraction.oracle_policy == "fallback"
        assert settings.extraction.parallel is False

    def test_model_defaults_match_yaml(self):
        assert Settings().extraction == load_settings().extraction

    def test_api_key_hidden_from_repr(self):
        assert "secret" not in repr(OracleConfig(api_key="secret"))


# ─────────────────────────────────────────────────────────────
# Environment overrides
# ─────────────────────────────────────────────────────────────


class TestEnvironment:
    """LLM_* variables override YAML values."""

    def test_direct_api_key(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "sk-direct")
        assert load_settings().oracle.api_key == "sk-direct"

    def test_api_key_indirection(self, monkeypatch):
        monkeypatch.setenv("MY_PROVIDER_KEY", "sk-indirect")
        monkeypatch.setenv("LLM_API_KEY", "MY_PROVIDER_KEY")
        assert load_settings().oracle.api_key == "sk-indirect"

    def test_resolve_api_key_empty(self):
        assert resolve_api_key(None) is None
        assert resolve_api_key("") is None

    def test_base_url_and_model(self, monkeypatch):
        monkeypatch.setenv("LLM_API_BASE_URL", "http://localhost:11434/v1/")
        monkeypatch.setenv("LLM_MODEL", "qwen2.5-coder:7b")
        settings = load_settings()
        assert settings.oracle.base_url == "http://localhost:11434/v1"
        assert settings.oracle.model == "qwen2.5-coder:7b"

    def test_valid_temperature(self, monkeypatch):
        monkeypatch.setenv("LLM_TEMPERATURE", "0.7")
        assert get_temperature_override() == 0.7
        assert load_settings().oracle.temperature == 0.7

    @pytest.mark.parametrize("value", ["hot", "-1", "2.5"])
    def test_invalid_temperature_ignored(self, monkeypatch, caplog, value):
        monkeypatch.setenv("LLM_TEMPERATURE", value)
        with caplog.at_level(logging.WARNING):
            assert get_temperature_override() is None
        assert "Invalid LLM_TEMPERATURE" in caplog.text

    def test_policy_and_parallel(self, monkeypatch):
        monkeypatch.setenv("LLM_APPLY_ORACLE_POLICY", "Authority")
        monkeypatch.setenv("LLM_APPLY_PARALLEL", "yes")
        settings = load_settings()
        assert settings.extraction.oracle_policy == "authority"
        assert settings.extraction.parallel is True

    def test_invalid_policy(self, monkeypatch):
        monkeypatch.setenv("LLM_APPLY_ORACLE_POLICY", "sometimes")
        with pytest.raises(ConfigError):
            load_settings()


# ─────────────────────────────────────────────────────────────
# Settings files
# ─────────────────────────────────────────────────────────────


class TestSettingsFile:
    """Custom YAML files and their failure modes."""

    def test_custom_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("oracle:\n  model: local-model\nextraction:\n  oracle_policy: off\n")
        settings = load_settings(path)
        assert settings.oracle.model == "local-model"
        assert settings.extraction == ExtractionConfig(oracle_policy="off")

    def test_quoted_policy(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text('extraction:\n  oracle_policy: "authority"\n')
        assert load_settings(path).extraction.oracle_policy == "authority"

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path) == Settings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yaml")

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("oracle: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_out_of_range_value(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("oracle:\n  max_tokens: 0\n")
        with pytest.raises(ConfigError):
            load_settings(path)
