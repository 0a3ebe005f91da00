"""
Chat and Query Models

Conversation messages and query results. Messages are append-only; an
assistant message that carries SQL moves through GENERATED -> EXECUTING ->
SUCCEEDED | FAILED, and a fix sends a FAILED message back to GENERATED.
"""

import time
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from duckquery.errors import AppError

MessageRole = Literal["user", "assistant"]
QueryStatus = Literal["generated", "executing", "succeeded", "failed"]


class QueryResult(BaseModel):
    """Result from query execution."""

    columns: list[str] = Field(..., description="Column names in result order")
    rows: list[dict[str, Any]] = Field(..., description="Result rows keyed by column")
    row_count: int = Field(..., ge=0, description="Number of rows returned")

    model_config = ConfigDict(frozen=True)


class ChatMessage(BaseModel):
    """
    Single message in the conversation log.

    `id` never changes once created. The execute-and-repair loop mutates the
    remaining fields of assistant messages in place.
    """

    id: str = Field(
        default_factory=lambda: uuid4().hex, frozen=True, description="Message identity"
    )
    role: MessageRole
    content: str = Field(default="", description="Display text")
    timestamp: float = Field(default_factory=time.time, description="Unix timestamp")
    sql: str | None = Field(None, description="Generated SQL, if any")
    sql_executed: bool = Field(default=False, description="Whether the SQL has run")
    results: QueryResult | None = Field(None, description="Results of the last run")
    insight: str | None = Field(None, description="One-sentence interpretation")
    error: str | None = Field(None, description="Raw error text of the last failure")
    error_detail: AppError | None = Field(None, description="Structured failure description")
    status: QueryStatus | None = Field(None, description="Query lifecycle state")

    model_config = ConfigDict(validate_assignment=True)

    @property
    def has_sql(self) -> bool:
        return bool(self.sql)
