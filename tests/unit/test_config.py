"""
Unit tests for configuration.

Tests environment variable loading and validation.
"""

import logging

import pytest
from pydantic import ValidationError

from duckquery.config import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    AIConfig,
    AISettings,
    EngineSettings,
    LoggingSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)


class TestAISettings:
    """Test completion API settings."""

    def test_defaults(self):
        settings = AISettings()

        assert settings.api_key == ""
        assert settings.api_url == DEFAULT_API_URL
        assert settings.model == DEFAULT_MODEL
        assert settings.history_limit == 10

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "sk-env")
        monkeypatch.setenv("LLM_MODEL", "llama3")
        monkeypatch.setenv("LLM_API_URL", "http://localhost:11434/v1/chat/completions")

        settings = AISettings()

        assert settings.api_key == "sk-env"
        assert settings.model == "llama3"
        assert settings.to_ai_config() == AIConfig(
            api_key="sk-env",
            api_url="http://localhost:11434/v1/chat/completions",
            model="llama3",
        )

    def test_invalid_url(self, monkeypatch):
        monkeypatch.setenv("LLM_API_URL", "localhost:8080")

        with pytest.raises(ValidationError):
            AISettings()


class TestEngineSettings:
    """Test engine settings."""

    def test_defaults(self):
        settings = EngineSettings()

        assert settings.database == ":memory:"
        assert settings.sample_rows == 5

    def test_sample_rows_capped(self, monkeypatch):
        monkeypatch.setenv("DUCKDB_SAMPLE_ROWS", "50")

        with pytest.raises(ValidationError):
            EngineSettings()


class TestAIConfig:
    """Test the explicit AI configuration object."""

    def test_immutable(self):
        config = AIConfig(api_key="sk-1")

        with pytest.raises(ValidationError):
            config.api_key = "sk-2"

    def test_masked_key(self):
        assert AIConfig(api_key="sk-abcdef1234").masked_key() == "*********1234"
        assert AIConfig().masked_key() == ""

    def test_has_api_key(self):
        assert AIConfig(api_key="sk").has_api_key
        assert not AIConfig(api_key="   ").has_api_key


class TestSettings:
    """Test top-level settings."""

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

    def test_clear_cache_reloads(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("LLM_MODEL", "changed")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.ai.model == "changed"

    def test_nested_groups(self, monkeypatch):
        monkeypatch.setenv("DUCKDB_DATABASE", "/tmp/x.duckdb")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.engine.database == "/tmp/x.duckdb"
        assert settings.logging.level == "DEBUG"

    def test_dotenv_loaded(self, tmp_path, monkeypatch):
        # Registers LLM_MODEL for removal at teardown; load_dotenv writes os.environ directly.
        monkeypatch.setenv("LLM_MODEL", "placeholder")
        monkeypatch.delenv("LLM_MODEL")
        (tmp_path / ".env").write_text("LLM_MODEL=from-dotenv\n")

        assert get_settings().ai.model == "from-dotenv"


def test_logging_configure(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    settings = LoggingSettings(level="WARNING", file=tmp_path / "logs" / "duckquery.log")

    try:
        settings.configure()

        assert root.level == logging.WARNING
        assert (tmp_path / "logs" / "duckquery.log").exists()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)
