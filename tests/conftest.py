"""
Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import logging
import os

import pytest

from duckquery.models.schema import (
    ColumnDescriptor,
    ColumnStatistic,
    DatabaseSnapshot,
    TableSnapshot,
)

# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """
    Configure logging for tests.

    Sets up log capture and configures log levels.
    This fixture runs automatically for all tests.
    """
    caplog.set_level(logging.DEBUG)
    yield


# ============================================================================
# Environment and Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """
    Keep tests away from the real environment and ~/.duckquery.

    Clears LLM_/DUCKDB_/LOG_ variables and the settings cache, and points the
    config store at a temporary file.
    """
    from duckquery import settings_store
    from duckquery.config import clear_settings_cache

    for name in list(os.environ):
        if name.startswith(("LLM_", "DUCKDB_", "LOG_", "DUCKQUERY_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings_store, "CONFIG_DIR", tmp_path / ".duckquery")
    monkeypatch.setattr(settings_store, "CONFIG_PATH", tmp_path / ".duckquery" / "config.json")

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def test_api_key() -> str:
    return "sk-test-key-1234567890-abcdefghijklmnop"


# ============================================================================
# Mock LLM Provider
# ============================================================================


@pytest.fixture
def mock_llm_provider():
    """
    Mock LLM provider for testing the orchestrator.

    Usage:
        def test_agent(mock_llm_provider):
            mock_llm_provider.set_response("SELECT 1")
            orchestrator = PromptOrchestrator(config, provider=mock_llm_provider)
    """
    from unittest.mock import AsyncMock

    from duckquery.llm.models import LLMResponse, LLMUsage

    class MockLLMProvider:
        def __init__(self):
            self.generate = AsyncMock()
            self.aclose = AsyncMock()

        @staticmethod
        def _response(content: str) -> LLMResponse:
            return LLMResponse(
                content=content,
                model="mock-model",
                usage=LLMUsage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
                finish_reason="stop",
                provider="mock",
            )

        def set_response(self, response: str):
            """Set the response that generate() will return."""
            self.generate.return_value = self._response(response)
            self.generate.side_effect = None

        def set_responses(self, *responses: str | Exception):
            """Return (or raise) the given responses in order, one per call."""
            self.generate.side_effect = [
                item if isinstance(item, Exception) else self._response(item) for item in responses
            ]

        def set_error(self, error: Exception):
            self.generate.side_effect = error

        @property
        def requests(self):
            """LLMRequests passed to generate(), in call order."""
            return [call.args[0] for call in self.generate.call_args_list]

    return MockLLMProvider()


# ============================================================================
# Common Test Data
# ============================================================================


@pytest.fixture
def logs_table() -> TableSnapshot:
    """Snapshot of a log table whose column names differ from everyday words."""
    return TableSnapshot(
        columns=[
            ColumnDescriptor(name="ts", type="TIMESTAMP"),
            ColumnDescriptor(name="lvl", type="VARCHAR"),
            ColumnDescriptor(name="msg", type="VARCHAR"),
        ],
        samples=[
            {"ts": "2024-01-01T10:00:00", "lvl": "ERROR", "msg": "disk full"},
            {"ts": "2024-01-01T10:05:00", "lvl": "INFO", "msg": "retrying"},
        ],
        stats=[
            ColumnStatistic(
                column="ts",
                type="TIMESTAMP",
                min="2024-01-01 10:00:00",
                max="2024-01-01 10:05:00",
                approx_unique=2,
                count=2,
            ),
            ColumnStatistic(column="lvl", type="VARCHAR", min="ERROR", max="INFO", approx_unique=2, count=2),
            ColumnStatistic(column="msg", type="VARCHAR", min="disk full", max="retrying", approx_unique=2, count=2),
        ],
    )


@pytest.fixture
def sales_table() -> TableSnapshot:
    return TableSnapshot(
        columns=[
            ColumnDescriptor(name="id", type="INTEGER"),
            ColumnDescriptor(name="product", type="VARCHAR"),
            ColumnDescriptor(name="price", type="DECIMAL(10,2)"),
        ],
        samples=[{"id": 1, "product": "Laptop", "price": 999.99}],
        stats=[
            ColumnStatistic(column="id", type="INTEGER", min="1", max="1", approx_unique=1, count=1),
            ColumnStatistic(column="product", type="VARCHAR", min="Laptop", max="Laptop", approx_unique=1, count=1),
            ColumnStatistic(column="price", type="DECIMAL(10,2)", min="999.99", max="999.99", approx_unique=1, count=1),
        ],
    )


@pytest.fixture
def logs_snapshot(logs_table) -> DatabaseSnapshot:
    return DatabaseSnapshot({"raw_log_entries__2_": logs_table})


@pytest.fixture
def two_table_snapshot(logs_table, sales_table) -> DatabaseSnapshot:
    return DatabaseSnapshot({"raw_log_entries__2_": logs_table, "sales": sales_table})
