"""
Data Models

Pydantic models shared across DuckQuery: schema snapshots, chat messages and
query results.

Usage:
    from duckquery.models import DatabaseSnapshot, TableSnapshot, default_table
"""

from duckquery.models.chat import (
    ChatMessage,
    MessageRole,
    QueryResult,
    QueryStatus,
)
from duckquery.models.schema import (
    EMPTY_SNAPSHOT,
    MAX_SAMPLE_ROWS,
    ColumnDescriptor,
    ColumnStatistic,
    DatabaseSnapshot,
    TableSnapshot,
    default_table,
)

__all__ = [
    # Schema snapshot
    "ColumnDescriptor",
    "ColumnStatistic",
    "TableSnapshot",
    "DatabaseSnapshot",
    "EMPTY_SNAPSHOT",
    "MAX_SAMPLE_ROWS",
    "default_table",
    # Chat
    "ChatMessage",
    "MessageRole",
    "QueryResult",
    "QueryStatus",
]
