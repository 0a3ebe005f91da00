"""Unit tests for PromptOrchestrator."""

import pytest

from duckquery.agents.classifier import ResponseKind
from duckquery.agents.orchestrator import PromptOrchestrator, build_user_message, parse_suggestions
from duckquery.config import AIConfig, CustomPrompts
from duckquery.errors import AppError, CompletionError, UnfixableSQLError
from duckquery.models.chat import ChatMessage, QueryResult
from duckquery.models.schema import DatabaseSnapshot


@pytest.fixture
def ai_config(test_api_key) -> AIConfig:
    return AIConfig(api_key=test_api_key, model="test-model")


@pytest.fixture
def orchestrator(ai_config, mock_llm_provider) -> PromptOrchestrator:
    return PromptOrchestrator(ai_config, provider=mock_llm_provider)


def _user_content(provider) -> str:
    return provider.requests[-1].messages[-1].content


def _system_content(provider) -> str:
    return provider.requests[-1].messages[0].content


class TestBuildUserMessage:
    """Test the SQL-generation user message."""

    def test_with_schema(self, logs_snapshot):
        message = build_user_message("How many errors?", logs_snapshot)

        assert message.startswith("DATABASE SCHEMA:\n")
        assert message.endswith("\n\nQUESTION: How many errors?")
        assert 'Table "raw_log_entries__2_": ts (TIMESTAMP), lvl (VARCHAR), msg (VARCHAR)' in message

    def test_without_schema(self):
        assert build_user_message("How many errors?", DatabaseSnapshot()) == "How many errors?"


class TestGenerateSql:
    """Test generate_sql()."""

    @pytest.mark.asyncio
    async def test_sends_schema_grounded_question(self, orchestrator, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("SELECT count(*) FROM raw_log_entries__2_ WHERE lvl = 'ERROR'")

        response = await orchestrator.generate_sql("how many errors are in the table?", logs_snapshot)

        assert response.kind is ResponseKind.SQL
        assert "raw_log_entries__2_" in response.payload
        user = _user_content(mock_llm_provider)
        assert user.startswith("DATABASE SCHEMA:\n")
        assert 'Table "raw_log_entries__2_"' in user
        for column in ("ts", "lvl", "msg"):
            assert column in user
        assert user.endswith("QUESTION: how many errors are in the table?")

    @pytest.mark.asyncio
    async def test_empty_schema_sends_bare_question(self, orchestrator, mock_llm_provider):
        mock_llm_provider.set_response("CLARIFY: No data is loaded yet. Please load a table first.")

        response = await orchestrator.generate_sql("how many errors are in the table?", DatabaseSnapshot())

        assert response.kind in (ResponseKind.CLARIFY, ResponseKind.CHAT)
        assert not response.is_sql
        assert _user_content(mock_llm_provider) == "how many errors are in the table?"

    @pytest.mark.asyncio
    async def test_message_layout_and_request(self, orchestrator, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("SELECT 1")
        history = [
            ChatMessage(role="user", content="hi"),
            ChatMessage(role="assistant", content="Hello!"),
        ]

        await orchestrator.generate_sql("count rows", logs_snapshot, history)

        request = mock_llm_provider.requests[-1]
        assert [m.role for m in request.messages] == ["system", "user", "assistant", "user"]
        assert "DuckDB expert" in request.messages[0].content
        assert request.temperature == 0.0
        assert request.model == "test-model"

    @pytest.mark.asyncio
    async def test_history_limit(self, ai_config, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("SELECT 1")
        orchestrator = PromptOrchestrator(ai_config, provider=mock_llm_provider, history_limit=2)
        history = [ChatMessage(role="user", content=f"q{i}") for i in range(5)]

        await orchestrator.generate_sql("count rows", logs_snapshot, history)

        contents = [m.content for m in mock_llm_provider.requests[-1].messages[1:-1]]
        assert contents == ["q3", "q4"]

    @pytest.mark.asyncio
    async def test_custom_prompt_overrides_system_prompt(self, mock_llm_provider, test_api_key):
        config = AIConfig(
            api_key=test_api_key,
            custom_prompts=CustomPrompts(generate_sql="You write SQL for pirates."),
        )
        mock_llm_provider.set_response("SELECT 1")
        orchestrator = PromptOrchestrator(config, provider=mock_llm_provider)

        await orchestrator.generate_sql("count", DatabaseSnapshot())

        assert _system_content(mock_llm_provider) == "You write SQL for pirates."

    @pytest.mark.asyncio
    async def test_update_config_applies_to_next_call(self, orchestrator, mock_llm_provider, test_api_key):
        mock_llm_provider.set_response("SELECT 1")
        orchestrator.update_config(AIConfig(api_key=test_api_key, model="other-model"))

        await orchestrator.generate_sql("count", DatabaseSnapshot())

        assert mock_llm_provider.requests[-1].model == "other-model"

    @pytest.mark.asyncio
    async def test_completion_error_propagates(self, orchestrator, mock_llm_provider):
        mock_llm_provider.set_error(
            CompletionError(AppError(code="RATE_LIMIT", message="Too many requests.", recoverable=True))
        )

        with pytest.raises(CompletionError) as exc_info:
            await orchestrator.generate_sql("count", DatabaseSnapshot())

        assert exc_info.value.code == "RATE_LIMIT"


class TestOtherOperations:
    """Test interpretation, suggestions, discovery, exploration."""

    @pytest.mark.asyncio
    async def test_interpret_results(self, orchestrator, mock_llm_provider):
        mock_llm_provider.set_response("There are 12 rows.")
        rows = [{"n": i} for i in range(12)]
        result = QueryResult(columns=["n"], rows=rows, row_count=12)

        insight = await orchestrator.interpret_results("how many?", result)

        assert insight == "There are 12 rows."
        user = _user_content(mock_llm_provider)
        assert user.startswith("Question: how many?\nResult (first 10 rows): [")
        assert '{"n":9}' in user
        assert '{"n":10}' not in user
        assert "data analyst" in _system_content(mock_llm_provider)

    @pytest.mark.asyncio
    async def test_generate_suggestions(self, orchestrator, mock_llm_provider, two_table_snapshot):
        mock_llm_provider.set_response("1. Which level is most common?\n\n2. When did errors peak?\nTop products?")

        suggestions = await orchestrator.generate_suggestions(two_table_snapshot)

        assert suggestions == [
            "Which level is most common?",
            "When did errors peak?",
            "Top products?",
        ]
        request = mock_llm_provider.requests[-1]
        assert request.temperature == 0.7
        assert request.messages[-1].content.startswith("Schema: raw_log_entries__2_: ts (TIMESTAMP)")
        assert "Samples:" not in request.messages[-1].content

    @pytest.mark.asyncio
    async def test_discover_data(self, orchestrator, mock_llm_provider):
        mock_llm_provider.set_response("A log table.")

        await orchestrator.discover_data("logs", 2, [{"lvl": "INFO"}], "lvl: INFO (2)\n")

        assert _user_content(mock_llm_provider) == (
            'Table: logs\nTotal Rows: 2\nSample Data: [{"lvl":"INFO"}]\n\nDistinct Values:\nlvl: INFO (2)\n'
        )

    @pytest.mark.asyncio
    async def test_discover_data_without_distinct_values(self, orchestrator, mock_llm_provider):
        mock_llm_provider.set_response("A log table.")

        await orchestrator.discover_data("logs", 0, [])

        assert _user_content(mock_llm_provider) == "Table: logs\nTotal Rows: 0\nSample Data: []"

    @pytest.mark.asyncio
    async def test_explore_preliminary(self, orchestrator, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("```sql\nSELECT DISTINCT lvl FROM raw_log_entries__2_\n```")

        sql = await orchestrator.explore_preliminary("errors by level", logs_snapshot)

        assert sql == "SELECT DISTINCT lvl FROM raw_log_entries__2_"
        assert _user_content(mock_llm_provider).startswith("Schema:\nTable \"raw_log_entries__2_\"")
        assert _user_content(mock_llm_provider).endswith("\n\nQuestion: errors by level")

    @pytest.mark.asyncio
    async def test_explore_preliminary_enough(self, orchestrator, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("ENOUGH")

        assert await orchestrator.explore_preliminary("errors by level", logs_snapshot) is None


class TestFixSql:
    """Test fix_sql()."""

    @pytest.mark.asyncio
    async def test_sends_exact_sql_and_error(self, orchestrator, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("```sql\nSELECT count(*) FROM raw_log_entries__2_ WHERE lvl = 'ERROR'\n```")
        failing = "SELECT count(*) FROM raw_log_entries__2_ WHERE level = 'ERROR'"
        error = 'Binder Error: Referenced column "level" not found in FROM clause!'

        fixed = await orchestrator.fix_sql(failing, error, "how many errors?", logs_snapshot)

        assert fixed == "SELECT count(*) FROM raw_log_entries__2_ WHERE lvl = 'ERROR'"
        assert _user_content(mock_llm_provider) == (
            "Database Schema:\n"
            'Table "raw_log_entries__2_": ts (TIMESTAMP), lvl (VARCHAR), msg (VARCHAR)\n\n'
            "Original Natural Language Intent: how many errors?\n\n"
            f"Failing SQL Query:\n{failing}\n\n"
            f"DuckDB Error Message:\n{error}"
        )
        assert mock_llm_provider.requests[-1].temperature == 0.0

    @pytest.mark.asyncio
    async def test_clarify_reply_is_unfixable(self, orchestrator, mock_llm_provider, logs_snapshot):
        mock_llm_provider.set_response("CLARIFY: There is no customers table.")

        with pytest.raises(UnfixableSQLError) as exc_info:
            await orchestrator.fix_sql("SELECT * FROM customers", "Catalog Error", "customers?", logs_snapshot)

        assert exc_info.value.code == "SQL_ERROR"
        assert exc_info.value.recoverable
        assert exc_info.value.error.message == "There is no customers table."


def test_parse_suggestions_strips_ordinals():
    assert parse_suggestions("1. First\n2.Second\n10.   Tenth\n\n") == ["First", "Second", "Tenth"]


@pytest.mark.asyncio
async def test_owned_provider_closed(ai_config):
    orchestrator = PromptOrchestrator(ai_config)

    await orchestrator.aclose()

    assert orchestrator.provider.client.is_closed
