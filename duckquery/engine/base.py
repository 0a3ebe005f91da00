"""
Base Query Engine

Abstract base class for the analytical database DuckQuery queries. The core
only ever talks to the engine through this interface:

- list_tables(): table names in the active namespace, in discovery order
- describe_columns(): column name/type pairs
- sample_rows(): a few representative rows
- summarize(): per-column statistics
- execute(): run arbitrary SQL
- grouped_count(): value frequencies for one column
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from duckquery.models.chat import QueryResult
from duckquery.models.schema import ColumnDescriptor, ColumnStatistic

logger = logging.getLogger(__name__)


# ============================================================================
# Data Models
# ============================================================================


class DistinctValue(BaseModel):
    """One value of a column with its frequency."""

    value: str = Field(..., description="Value rendered as text")
    count: int = Field(..., ge=0, description="Number of rows holding the value")


class EngineError(Exception):
    """Base exception for engine errors."""

    pass


class EngineNotReadyError(EngineError):
    """Engine used before connect() or after close()."""

    pass


class QueryError(EngineError):
    """
    Error executing a query.

    The message is the engine's raw error text, unmodified, so it can be
    shown to the user and fed back into a repair prompt verbatim.
    """

    def __init__(self, message: str, sql: str | None = None):
        self.message = message
        self.sql = sql
        super().__init__(message)


# ============================================================================
# Base Engine
# ============================================================================


class BaseEngine(ABC):
    """
    Abstract base class for query engines.

    All methods are async. Implementations must raise QueryError with the
    engine's own error text when a statement fails.

    Usage:
        async with DuckDBEngine() as engine:
            tables = await engine.list_tables()
            result = await engine.execute("SELECT 42 AS answer")
    """

    dialect: str = "SQL"

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the engine. Idempotent.

        Raises:
            EngineError: If the engine cannot be opened
        """
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def close(self) -> None:
        """Release engine resources. Safe to call multiple times."""
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def list_tables(self) -> list[str]:
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def describe_columns(self, table: str) -> list[ColumnDescriptor]:
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def sample_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def summarize(self, table: str) -> list[ColumnStatistic]:
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def execute(self, sql: str) -> QueryResult:
        """
        Execute a SQL statement.

        Args:
            sql: SQL text, passed to the engine unchanged

        Returns:
            QueryResult with JSON-safe row values

        Raises:
            QueryError: With the engine's raw error message
        """
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def grouped_count(self, table: str, column: str, limit: int) -> list[DistinctValue]:
        """
        Most frequent non-null values of a column, ordered by count descending.
        """
        pass  # pragma: no cover - abstract method

    async def import_csv(self, path: str, table_name: str | None = None) -> str:
        """Load a CSV file into a table and return the table name."""
        raise NotImplementedError(f"{self.__class__.__name__} does not support CSV import")

    async def load_sample_data(self) -> str:
        """Create a small demo table and return its name."""
        raise NotImplementedError(f"{self.__class__.__name__} has no sample data")

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass  # pragma: no cover - abstract method

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
        return False


def quote_identifier(name: str) -> str:
    """Quote an identifier, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'
