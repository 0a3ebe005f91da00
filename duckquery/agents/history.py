"""Conversation history formatting for SQL generation prompts."""

from __future__ import annotations

from collections.abc import Sequence

from duckquery.llm.models import LLMMessage
from duckquery.models.chat import ChatMessage

DEFAULT_HISTORY_LIMIT = 10


def format_turn(message: ChatMessage) -> str:
    """
    Flatten one message into prompt text.

    Assistant turns that carried SQL are rebuilt as
    `Generated SQL: ...` / `Result: ...` / optional `Error: ...` lines so the
    model sees what it produced and what happened, without the schema being
    re-sent for every turn.
    """
    if message.role == "assistant" and message.sql:
        text = f"Generated SQL: {message.sql}\nResult: {message.content}"
        if message.error:
            text += f"\nError: {message.error}"
        return text
    return message.content


def format_history(
    messages: Sequence[ChatMessage],
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[LLMMessage]:
    """Most recent `limit` turns as alternating role messages; empty turns are skipped."""
    if limit <= 0:
        return []
    formatted: list[LLMMessage] = []
    for message in list(messages)[-limit:]:
        content = format_turn(message)
        if content.strip():
            formatted.append(LLMMessage(role=message.role, content=content))
    return formatted
