"""
Schema Module

Snapshot building and prompt serialization for the loaded tables.
"""

from duckquery.schema.builder import SchemaSnapshotBuilder, SchemaState
from duckquery.schema.serializer import format_columns, serialize, serialize_columns

__all__ = [
    "SchemaSnapshotBuilder",
    "SchemaState",
    "format_columns",
    "serialize",
    "serialize_columns",
]
