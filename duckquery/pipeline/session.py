"""
Chat Session

Owns the conversation log and drives the execute-and-repair loop:

    ask()     -> assistant message with SQL in GENERATED (never auto-run)
    run_sql() -> EXECUTING -> SUCCEEDED | FAILED
    fix_sql() -> FAILED -> GENERATED (with corrected SQL)

Running and fixing are explicit user actions. Failures never escape as
exceptions; they are recorded on the message as raw `error` text plus a
structured `error_detail`.
"""

import logging
from collections.abc import Callable

from duckquery.agents.classifier import ResponseKind
from duckquery.agents.orchestrator import PromptOrchestrator
from duckquery.engine.base import BaseEngine, EngineError
from duckquery.errors import parse_error, parse_sql_error
from duckquery.models.chat import ChatMessage
from duckquery.schema.builder import SchemaSnapshotBuilder

logger = logging.getLogger(__name__)

GENERATED_CONTENT = "Generated SQL query. Run it to see the results."
FIXED_CONTENT = "Fixed SQL query. Run it to see the results."
EXECUTING_CONTENT = "Executing query..."
FAILED_CONTENT = "Query failed"
DEFAULT_CHAT_REPLY = "I understand. How can I help you with your data?"
DEFAULT_QUESTION = "query"


class SessionStateError(ValueError):
    """A run or fix was requested for a message that cannot take it."""


def result_summary(row_count: int) -> str:
    """`Found N result(s)` text shown for a successful run."""
    return f"Found {row_count} result{'s' if row_count != 1 else ''}"


class ChatSession:
    """
    Conversation log plus the execute-and-repair loop.

    Messages are only ever appended. Results and errors are attached to the
    message they belong to by id, so interleaved runs cannot cross wires.

    Args:
        orchestrator: Model-facing operations
        builder: Schema snapshot source (its current snapshot is used for
            every prompt)
        engine: Engine that executes SQL
        on_update: Called with a message after it is appended or changed
    """

    def __init__(
        self,
        orchestrator: PromptOrchestrator,
        builder: SchemaSnapshotBuilder,
        engine: BaseEngine,
        on_update: Callable[[ChatMessage], None] | None = None,
    ):
        self.orchestrator = orchestrator
        self.builder = builder
        self.engine = engine
        self.on_update = on_update
        self._messages: list[ChatMessage] = []

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def get_message(self, message_id: str) -> ChatMessage:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise KeyError(f"Unknown message: {message_id}")

    # ========================================================================
    # Conversation
    # ========================================================================

    async def ask(self, question: str) -> ChatMessage:
        """
        Send a question and append the assistant's reply.

        SQL replies are stored in GENERATED state and are not executed.

        Raises:
            ValueError: If the question is blank
        """
        question = question.strip()
        if not question:
            raise ValueError("Question must not be empty")

        history = list(self._messages)
        self._append(ChatMessage(role="user", content=question))

        # Wait for a refresh in progress so the prompt sees the newest tables.
        snapshot = (await self.builder.refresh()) if self.builder.loading else self.builder.snapshot

        try:
            response = await self.orchestrator.generate_sql(question, snapshot, history)
        except Exception as exc:
            error = parse_error(exc)
            logger.error(f"SQL generation failed: {exc}", extra={"code": error.code})
            return self._append(
                ChatMessage(
                    role="assistant",
                    content=FAILED_CONTENT,
                    error=error.message,
                    error_detail=error,
                )
            )

        if response.kind is ResponseKind.SQL and response.payload:
            return self._append(
                ChatMessage(
                    role="assistant",
                    content=GENERATED_CONTENT,
                    sql=response.payload,
                    status="generated",
                )
            )

        return self._append(
            ChatMessage(role="assistant", content=response.payload or DEFAULT_CHAT_REPLY)
        )

    # ========================================================================
    # Execute and repair
    # ========================================================================

    async def run_sql(self, message_id: str, sql: str | None = None) -> ChatMessage:
        """
        Execute a message's SQL and attach the outcome to that message.

        Args:
            message_id: Assistant message carrying the SQL
            sql: Edited SQL to run instead of the stored text

        Returns:
            The updated message (SUCCEEDED or FAILED)

        Raises:
            KeyError: Unknown message id
            SessionStateError: No SQL to run, or the query is already running
        """
        message = self.get_message(message_id)
        sql = sql if sql is not None else message.sql
        if not sql or not sql.strip():
            raise SessionStateError("Message has no SQL to run")
        if message.status == "executing":
            raise SessionStateError("Query is already running")

        self._update(message, content=EXECUTING_CONTENT, sql=sql, status="executing")

        try:
            result = await self.engine.execute(sql)
        except EngineError as exc:
            raw = str(exc)
            logger.warning(f"Query failed: {raw}", extra={"message_id": message_id})
            self._update(
                message,
                content=FAILED_CONTENT,
                sql_executed=True,
                results=None,
                insight=None,
                error=raw,
                error_detail=parse_sql_error(raw),
                status="failed",
            )
            return message

        insight: str | None = None
        try:
            insight = await self.orchestrator.interpret_results(
                self._question_for(message), result
            )
        except Exception as exc:
            logger.warning(
                f"Result interpretation failed: {exc}",
                extra={"message_id": message_id, "code": parse_error(exc).code},
            )

        self._update(
            message,
            content=result_summary(result.row_count),
            sql_executed=True,
            results=result,
            insight=insight or None,
            error=None,
            error_detail=None,
            status="succeeded",
        )
        logger.info(
            "Query succeeded",
            extra={"message_id": message_id, "row_count": result.row_count},
        )
        return message

    async def fix_sql(self, message_id: str) -> ChatMessage:
        """
        Ask the model to repair a failed query.

        The exact failing SQL and raw engine error are sent. On success the
        message returns to GENERATED with the corrected SQL; on failure it
        stays FAILED with the new error detail.

        Raises:
            KeyError: Unknown message id
            SessionStateError: The message is not in FAILED state
        """
        message = self.get_message(message_id)
        if message.status != "failed" or not message.sql:
            raise SessionStateError("Only a failed query can be fixed")

        try:
            fixed = await self.orchestrator.fix_sql(
                message.sql,
                message.error or "",
                self._question_for(message),
                self.builder.snapshot,
            )
        except Exception as exc:
            error = parse_error(exc)
            logger.warning(f"SQL fix failed: {exc}", extra={"message_id": message_id, "code": error.code})
            self._update(message, error_detail=error)
            return message

        self._update(
            message,
            content=FIXED_CONTENT,
            sql=fixed,
            sql_executed=False,
            results=None,
            insight=None,
            error=None,
            error_detail=None,
            status="generated",
        )
        logger.info("SQL fixed", extra={"message_id": message_id})
        return message

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def _question_for(self, message: ChatMessage) -> str:
        """The user question that precedes an assistant message."""
        index = next(i for i, item in enumerate(self._messages) if item.id == message.id)
        for previous in reversed(self._messages[:index]):
            if previous.role == "user":
                return previous.content
        return DEFAULT_QUESTION

    def _append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        self._notify(message)
        return message

    def _update(self, message: ChatMessage, **changes) -> None:
        for key, value in changes.items():
            setattr(message, key, value)
        self._notify(message)

    def _notify(self, message: ChatMessage) -> None:
        if self.on_update is not None:
            self.on_update(message)
