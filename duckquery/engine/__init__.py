"""
Query Engines

The query execution interface consumed by the schema builder and the
execute-and-repair loop, and its DuckDB implementation.
"""

from duckquery.engine.base import (
    BaseEngine,
    DistinctValue,
    EngineError,
    EngineNotReadyError,
    QueryError,
    quote_identifier,
)
from duckquery.engine.duckdb_engine import DuckDBEngine, table_name_from_path

__all__ = [
    "BaseEngine",
    "DistinctValue",
    "DuckDBEngine",
    "EngineError",
    "EngineNotReadyError",
    "QueryError",
    "quote_identifier",
    "table_name_from_path",
]
