"""
Prompt Orchestrator

Builds the message lists for every model-facing operation and sends them
through a single completion primitive.

Operations:
    - generate_sql: question + schema + history -> ClassifiedResponse
    - interpret_results: question + result preview -> one-sentence insight
    - generate_suggestions: schema -> starter questions
    - discover_data: table profile -> narrative
    - fix_sql: failing SQL + engine error -> corrected SQL
    - explore_preliminary: question + schema -> optional exploratory SQL

Usage:
    orchestrator = PromptOrchestrator(AIConfig(api_key="sk-..."))
    response = await orchestrator.generate_sql("How many rows?", snapshot)
    if response.is_sql:
        print(response.payload)
"""

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from duckquery.agents.classifier import ClassifiedResponse, ResponseKind, classify, strip_code_fences
from duckquery.agents.history import DEFAULT_HISTORY_LIMIT, format_history
from duckquery.config import AIConfig
from duckquery.errors import UnfixableSQLError
from duckquery.llm.base import BaseLLMProvider
from duckquery.llm.http import HTTPCompletionProvider
from duckquery.llm.models import LLMMessage, LLMRequest
from duckquery.models.chat import ChatMessage, QueryResult
from duckquery.models.schema import TableSnapshot
from duckquery.prompts.loader import PromptLoader
from duckquery.schema.serializer import serialize, serialize_columns
from duckquery.utils.serialization import safe_json

logger = logging.getLogger(__name__)

GENERATE_SQL_PROMPT = "generate_sql.md"
INTERPRET_RESULTS_PROMPT = "interpret_results.md"
SUGGEST_QUESTIONS_PROMPT = "suggest_questions.md"
DISCOVER_DATA_PROMPT = "discover_data.md"
FIX_SQL_PROMPT = "fix_sql.md"
EXPLORE_PRELIMINARY_PROMPT = "explore_preliminary.md"

RESULT_PREVIEW_ROWS = 10
ENOUGH_MARKER = "ENOUGH"

_ORDINAL_PATTERN = re.compile(r"^\d+\.\s*")


def build_user_message(question: str, snapshot: Mapping[str, TableSnapshot]) -> str:
    """
    User turn for SQL generation.

    The full schema precedes the question whenever any table exists; with
    nothing loaded the question is sent alone.
    """
    if not snapshot:
        return question
    return f"DATABASE SCHEMA:\n{serialize(snapshot)}\n\nQUESTION: {question}"


def parse_suggestions(text: str) -> list[str]:
    """Split a newline-separated reply, dropping `1.`-style ordinals and blanks."""
    suggestions = []
    for line in text.split("\n"):
        cleaned = _ORDINAL_PATTERN.sub("", line).strip()
        if cleaned:
            suggestions.append(cleaned)
    return suggestions


class PromptOrchestrator:
    """
    Model-facing operations for DuckQuery.

    Constructed from an explicit AIConfig. Each call reads the current config,
    so `update_config` takes effect on the next request. Completion failures
    propagate as CompletionError.
    """

    def __init__(
        self,
        config: AIConfig,
        provider: BaseLLMProvider | None = None,
        prompt_loader: PromptLoader | None = None,
        dialect: str = "DuckDB",
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        timeout: int = 30,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Completion API configuration
            provider: Completion provider (an HTTPCompletionProvider for
                `config` is created and owned when omitted)
            prompt_loader: Loader for the system prompt templates
            dialect: SQL dialect named in the prompts
            history_limit: Maximum previous turns sent with generate_sql
            timeout: Request timeout for the owned provider
        """
        self.config = config
        self.prompts = prompt_loader or PromptLoader()
        self.dialect = dialect
        self.history_limit = history_limit
        self._owns_provider = provider is None
        self.provider = provider or HTTPCompletionProvider(
            api_url=config.api_url,
            api_key=config.api_key,
            model=config.model,
            timeout=timeout,
        )

    def update_config(self, config: AIConfig) -> None:
        """Swap in a new configuration (e.g. after the user edits settings)."""
        self.config = config
        if self._owns_provider and isinstance(self.provider, HTTPCompletionProvider):
            self.provider.api_url = config.api_url
            self.provider.api_key = config.api_key
            self.provider.model = config.model
        logger.info("AI configuration updated", extra={"model": config.model})

    async def aclose(self) -> None:
        if self._owns_provider:
            await self.provider.aclose()

    # ========================================================================
    # Operations
    # ========================================================================

    async def generate_sql(
        self,
        question: str,
        snapshot: Mapping[str, TableSnapshot],
        history: Sequence[ChatMessage] = (),
    ) -> ClassifiedResponse:
        """
        Turn a question into SQL, a clarifying question or a chat reply.

        Args:
            question: Natural-language question
            snapshot: Current schema snapshot (may be empty)
            history: Previous conversation turns, oldest first

        Returns:
            Classified model reply
        """
        messages = [
            self._system_message(GENERATE_SQL_PROMPT, "generate_sql"),
            *format_history(history, self.history_limit),
            LLMMessage(role="user", content=build_user_message(question, snapshot)),
        ]
        raw = await self._complete(messages, GENERATE_SQL_PROMPT)
        response = classify(raw)

        logger.info(
            f"Generated {response.kind.value} reply",
            extra={"kind": response.kind.value, "tables": len(snapshot)},
        )
        return response

    async def interpret_results(self, question: str, result: QueryResult) -> str:
        """One-sentence insight over the first rows of a result."""
        preview = safe_json(result.rows[:RESULT_PREVIEW_ROWS])
        messages = [
            self._system_message(INTERPRET_RESULTS_PROMPT, "interpret_results"),
            LLMMessage(
                role="user",
                content=f"Question: {question}\nResult (first {RESULT_PREVIEW_ROWS} rows): {preview}",
            ),
        ]
        return await self._complete(messages, INTERPRET_RESULTS_PROMPT)

    async def generate_suggestions(self, snapshot: Mapping[str, TableSnapshot]) -> list[str]:
        """Starter questions for the loaded tables."""
        messages = [
            self._system_message(SUGGEST_QUESTIONS_PROMPT),
            LLMMessage(role="user", content=f"Schema: {serialize(snapshot, include_details=False)}"),
        ]
        raw = await self._complete(messages, SUGGEST_QUESTIONS_PROMPT)
        return parse_suggestions(raw)

    async def discover_data(
        self,
        table_name: str,
        row_count: int,
        samples: Sequence[Mapping[str, Any]],
        distinct_values: str | None = None,
    ) -> str:
        """
        Narrative profile of a table.

        Args:
            table_name: Table being profiled
            row_count: Total rows in the table
            samples: Sample rows
            distinct_values: Pre-rendered categorical value counts, if any
        """
        content = (
            f"Table: {table_name}\nTotal Rows: {row_count}\nSample Data: {safe_json(list(samples))}"
        )
        if distinct_values:
            content += f"\n\nDistinct Values:\n{distinct_values}"

        messages = [
            self._system_message(DISCOVER_DATA_PROMPT, "discover_data"),
            LLMMessage(role="user", content=content),
        ]
        return await self._complete(messages, DISCOVER_DATA_PROMPT)

    async def fix_sql(
        self,
        sql: str,
        error: str,
        question: str,
        snapshot: Mapping[str, TableSnapshot],
    ) -> str:
        """
        Ask for a corrected query.

        Args:
            sql: The exact SQL that failed
            error: The raw engine error text
            question: The question the SQL was meant to answer
            snapshot: Current schema snapshot

        Returns:
            Corrected SQL

        Raises:
            UnfixableSQLError: The model answered with an explanation instead of SQL
        """
        content = (
            f"Database Schema:\n{serialize_columns(snapshot)}\n\n"
            f"Original Natural Language Intent: {question}\n\n"
            f"Failing SQL Query:\n{sql}\n\n"
            f"{self.dialect} Error Message:\n{error}"
        )
        messages = [
            self._system_message(FIX_SQL_PROMPT),
            LLMMessage(role="user", content=content),
        ]
        response = classify(await self._complete(messages, FIX_SQL_PROMPT))

        if response.kind is not ResponseKind.SQL or not response.payload:
            logger.warning(
                "Repair prompt returned no SQL",
                extra={"kind": response.kind.value},
            )
            raise UnfixableSQLError(response.payload)
        return response.payload

    async def explore_preliminary(
        self,
        question: str,
        snapshot: Mapping[str, TableSnapshot],
    ) -> str | None:
        """Exploratory query worth running before answering, or None when the schema suffices."""
        messages = [
            self._system_message(EXPLORE_PRELIMINARY_PROMPT),
            LLMMessage(
                role="user",
                content=f"Schema:\n{serialize(snapshot)}\n\nQuestion: {question}",
            ),
        ]
        sql = strip_code_fences(await self._complete(messages, EXPLORE_PRELIMINARY_PROMPT))
        if sql == ENOUGH_MARKER or len(sql) <= 5:
            return None
        return sql

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def _system_message(self, template: str, custom_key: str | None = None) -> LLMMessage:
        """System prompt: the user's custom override when set, otherwise the template."""
        custom = self.config.custom_prompts
        if custom_key and custom is not None:
            override = getattr(custom, custom_key)
            if override:
                return LLMMessage(role="system", content=override)
        return LLMMessage(role="system", content=self.prompts.render(template, dialect=self.dialect))

    async def _complete(self, messages: list[LLMMessage], template: str) -> str:
        """Send one completion request; temperature comes from the template front matter."""
        temperature = float(self.prompts.get_metadata(template).get("temperature", 0.0))
        request = LLMRequest(
            messages=messages,
            temperature=temperature,
            model=self.config.model,
        )
        response = await self.provider.generate(request)
        return response.content
