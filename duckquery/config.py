"""
Application Configuration

Pydantic-based settings management using environment variables, plus the
explicit AI configuration object handed to the prompt orchestrator.

Usage:
    from duckquery.config import get_settings

    settings = get_settings()
    print(settings.ai.model)
    print(settings.engine.database)
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"


class CustomPrompts(BaseModel):
    """User overrides for the default system prompts."""

    generate_sql: str | None = Field(None, description="System prompt for SQL generation")
    interpret_results: str | None = Field(
        None, description="System prompt for result interpretation"
    )
    discover_data: str | None = Field(None, description="System prompt for table profiling")

    model_config = ConfigDict(frozen=True)


class AIConfig(BaseModel):
    """
    Completion API configuration.

    Immutable; changes are applied by replacing the whole object so readers
    never observe a half-updated configuration.
    """

    api_key: str = Field(default="", description="Bearer credential for the completion API")
    api_url: str = Field(default=DEFAULT_API_URL, description="Chat completions endpoint URL")
    model: str = Field(default=DEFAULT_MODEL, description="Model name sent with each request")
    custom_prompts: CustomPrompts | None = Field(
        default=None, description="Optional system prompt overrides"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    def masked_key(self) -> str:
        """Return the API key with everything but the last four characters hidden."""
        if not self.api_key:
            return ""
        return f"{'*' * max(len(self.api_key) - 4, 0)}{self.api_key[-4:]}"


class AISettings(BaseSettings):
    """Completion API defaults read from the environment."""

    api_key: str = Field(default="", description="Completion API key")
    api_url: str = Field(default=DEFAULT_API_URL, description="Completion endpoint URL")
    model: str = Field(default=DEFAULT_MODEL, description="Completion model name")
    timeout: int = Field(
        default=30,
        gt=0,
        description="Request timeout in seconds",
    )
    history_limit: int = Field(
        default=10,
        ge=0,
        le=50,
        description="Number of previous chat turns sent with each SQL request",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("LLM_API_URL must start with http:// or https://")
        return v

    def to_ai_config(self) -> AIConfig:
        return AIConfig(api_key=self.api_key, api_url=self.api_url, model=self.model)


class EngineSettings(BaseSettings):
    """Embedded DuckDB engine configuration."""

    database: str = Field(
        default=":memory:",
        description="DuckDB database file (':memory:' for an in-memory database)",
    )
    read_only: bool = Field(default=False, description="Open the database read-only")
    threads: int | None = Field(
        default=None,
        gt=0,
        description="DuckDB worker threads (None = engine default)",
    )
    sample_rows: int = Field(
        default=5,
        ge=1,
        le=5,
        description="Sample rows captured per table in the schema snapshot",
    )

    model_config = SettingsConfigDict(
        env_prefix="DUCKDB_",
        env_file=".env",
        extra="ignore",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log timestamp format",
    )
    file: Path | None = Field(
        default=None,
        description="Optional log file path (None = stderr only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    def configure(self) -> None:
        """Configure Python logging with these settings."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]

        if self.file:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.file))

        logging.basicConfig(
            level=getattr(logging, self.level),
            format=self.format,
            datefmt=self.date_format,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )


class Settings(BaseSettings):
    """
    Top-level application settings.

    Nested groups read their own env prefixes (LLM_, DUCKDB_, LOG_).
    """

    app_name: str = Field(default="DuckQuery", description="Application name")
    debug: bool = Field(default=False, description="Enable debug behaviour")

    ai: AISettings = Field(default_factory=AISettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="DUCKQUERY_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Loads `.env` once (without overriding variables already set in the
    environment) and caches the result for the life of the process.
    """
    load_dotenv(override=False)
    return Settings()


def clear_settings_cache() -> None:
    """Clear cached settings (used by tests and after config changes)."""
    get_settings.cache_clear()
