"""
DuckDB Engine

Implementation of BaseEngine on the embedded DuckDB database. DuckDB calls
are blocking, so each one runs in a worker thread; a lock keeps calls on the
shared connection strictly sequential.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import duckdb

from duckquery.engine.base import (
    BaseEngine,
    DistinctValue,
    EngineError,
    EngineNotReadyError,
    QueryError,
    quote_identifier,
)
from duckquery.models.chat import QueryResult
from duckquery.models.schema import ColumnDescriptor, ColumnStatistic
from duckquery.utils.serialization import convert_rows

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Tables and views of the active database/schema, oldest first.
_LIST_TABLES_SQL = """
SELECT name FROM (
    SELECT table_name AS name, table_oid AS oid
    FROM duckdb_tables()
    WHERE database_name = current_database() AND schema_name = current_schema()
    UNION ALL
    SELECT view_name AS name, view_oid AS oid
    FROM duckdb_views()
    WHERE database_name = current_database() AND schema_name = current_schema()
      AND NOT internal
)
ORDER BY oid
"""

SAMPLE_DATA_SQL = """
CREATE OR REPLACE TABLE sales_data AS
SELECT * FROM (VALUES
    ('2024-01-01', 'Electronics', 1200, 2, 'New York'),
    ('2024-01-02', 'Clothing', 450, 5, 'Los Angeles'),
    ('2024-01-02', 'Electronics', 800, 1, 'Chicago'),
    ('2024-01-03', 'Furniture', 2100, 3, 'New York'),
    ('2024-01-04', 'Electronics', 1500, 2, 'Los Angeles'),
    ('2024-01-05', 'Clothing', 300, 10, 'Chicago'),
    ('2024-01-05', 'Furniture', 950, 1, 'New York')
) AS t(date, category, revenue, quantity, city)
"""


def table_name_from_path(path: str | Path) -> str:
    """Derive a table name from a file name: stem with non-word characters replaced."""
    return re.sub(r"[^a-zA-Z0-9_]", "_", Path(path).stem)


class DuckDBEngine(BaseEngine):
    """
    DuckDB engine implementation.

    Usage:
        engine = DuckDBEngine(database=":memory:")
        await engine.connect()
        await engine.import_csv("sales.csv")
        result = await engine.execute("SELECT count(*) AS n FROM sales")
        await engine.close()
    """

    dialect = "DuckDB"

    def __init__(
        self,
        database: str = ":memory:",
        read_only: bool = False,
        threads: int | None = None,
    ):
        """
        Initialize DuckDB engine.

        Args:
            database: Database file path or ":memory:"
            read_only: Open the database read-only
            threads: DuckDB worker threads (None = engine default)
        """
        self.database = database
        self.read_only = read_only
        self.threads = threads
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._lock = asyncio.Lock()

        logger.info(f"Initialized DuckDBEngine for {database}", extra={"database": database})

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        if self._conn is not None:
            return

        config: dict[str, Any] = {}
        if self.threads:
            config["threads"] = self.threads

        try:
            self._conn = await asyncio.to_thread(
                duckdb.connect,
                database=self.database,
                read_only=self.read_only,
                config=config,
            )
        except duckdb.Error as e:
            logger.error(f"Failed to open DuckDB database {self.database}: {e}")
            raise EngineError(f"Failed to initialize DuckDB: {e}") from e

        logger.info("DuckDB connection ready", extra={"database": self.database})

    async def close(self) -> None:
        if self._conn is None:
            return
        async with self._lock:
            conn, self._conn = self._conn, None
            await asyncio.to_thread(conn.close)
        logger.info("DuckDB connection closed", extra={"database": self.database})

    async def list_tables(self) -> list[str]:
        rows = await self._fetch(_LIST_TABLES_SQL)
        return [str(row["name"]) for row in rows]

    async def describe_columns(self, table: str) -> list[ColumnDescriptor]:
        rows = await self._fetch(f"DESCRIBE {quote_identifier(table)}")
        return [
            ColumnDescriptor(name=str(row["column_name"]), type=str(row["column_type"]))
            for row in rows
        ]

    async def sample_rows(self, table: str, limit: int) -> list[dict[str, Any]]:
        rows = await self._fetch(f"SELECT * FROM {quote_identifier(table)} LIMIT {int(limit)}")
        return convert_rows(rows)

    async def summarize(self, table: str) -> list[ColumnStatistic]:
        rows = await self._fetch(f"SUMMARIZE {quote_identifier(table)}")
        return [
            ColumnStatistic(
                column=str(row["column_name"]),
                type=str(row["column_type"]),
                min=row.get("min"),
                max=row.get("max"),
                approx_unique=int(row.get("approx_unique") or 0),
                count=int(row.get("count") or 0),
            )
            for row in rows
        ]

    async def execute(self, sql: str) -> QueryResult:
        columns, rows = await self._run(lambda conn: self._execute_sync(conn, sql), sql)
        converted = convert_rows([dict(zip(columns, row)) for row in rows])
        logger.debug(
            "Query executed",
            extra={"row_count": len(converted), "column_count": len(columns)},
        )
        return QueryResult(columns=columns, rows=converted, row_count=len(converted))

    async def grouped_count(self, table: str, column: str, limit: int) -> list[DistinctValue]:
        col = quote_identifier(column)
        sql = (
            f"SELECT {col} AS value, COUNT(*) AS count "
            f"FROM {quote_identifier(table)} "
            f"WHERE {col} IS NOT NULL "
            f"GROUP BY {col} "
            f"ORDER BY count DESC "
            f"LIMIT {int(limit)}"
        )
        rows = await self._fetch(sql)
        return [DistinctValue(value=str(row["value"]), count=int(row["count"])) for row in rows]

    async def import_csv(self, path: str | Path, table_name: str | None = None) -> str:
        """
        Create (or replace) a table from a CSV file.

        Args:
            path: CSV file path
            table_name: Target table (default: derived from the file name)

        Returns:
            Name of the created table
        """
        name = table_name or table_name_from_path(path)
        literal = str(path).replace("'", "''")
        await self.execute(
            f"CREATE OR REPLACE TABLE {quote_identifier(name)} AS "
            f"SELECT * FROM read_csv_auto('{literal}')"
        )
        logger.info(f"Imported CSV into table {name}", extra={"table": name, "path": str(path)})
        return name

    async def load_sample_data(self) -> str:
        """Create the demo `sales_data` table."""
        await self.execute(SAMPLE_DATA_SQL)
        return "sales_data"

    async def _fetch(self, sql: str) -> list[dict[str, Any]]:
        columns, rows = await self._run(lambda conn: self._execute_sync(conn, sql), sql)
        return [dict(zip(columns, row)) for row in rows]

    async def _run(self, fn: Callable[[duckdb.DuckDBPyConnection], T], sql: str) -> T:
        async with self._lock:
            if self._conn is None:
                raise EngineNotReadyError("Database not initialized")
            conn = self._conn
            try:
                return await asyncio.to_thread(fn, conn)
            except duckdb.Error as e:
                logger.debug(f"DuckDB error: {e}", extra={"sql": sql[:200]})
                raise QueryError(str(e), sql=sql) from e

    @staticmethod
    def _execute_sync(
        conn: duckdb.DuckDBPyConnection, sql: str
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        cursor = conn.execute(sql)
        if cursor.description is None:
            return [], []
        columns = [desc[0] for desc in cursor.description]
        return columns, cursor.fetchall()
