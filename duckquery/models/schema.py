"""
Schema Snapshot Models

Immutable point-in-time capture of database structure, sample rows and
column statistics. A DatabaseSnapshot keeps tables in discovery order; that
order is part of the contract (the first table is the default subject for
ambiguous references) and is never re-sorted.
"""

from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from duckquery.utils.serialization import to_json_safe

MAX_SAMPLE_ROWS = 5


class ColumnDescriptor(BaseModel):
    """One column: name plus the engine-native type name."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Engine type name (opaque)")

    model_config = ConfigDict(frozen=True)


class ColumnStatistic(BaseModel):
    """Summary statistics for one column, as reported by the engine."""

    column: str = Field(..., description="Column name")
    type: str = Field(..., description="Engine type name")
    min: Any = Field(None, description="Minimum value (None for non-orderable types)")
    max: Any = Field(None, description="Maximum value (None for non-orderable types)")
    approx_unique: int = Field(..., ge=0, description="Approximate distinct count")
    count: int = Field(..., ge=0, description="Row count")

    model_config = ConfigDict(frozen=True)

    @field_validator("min", "max", mode="before")
    @classmethod
    def make_json_safe(cls, v: Any) -> Any:
        return to_json_safe(v)


class TableSnapshot(BaseModel):
    """Structure and a representative peek at one table's data."""

    columns: tuple[ColumnDescriptor, ...] = Field(..., description="Ordered columns")
    samples: tuple[dict[str, Any], ...] = Field(
        default=(),
        max_length=MAX_SAMPLE_ROWS,
        description="Up to five sample rows in engine order",
    )
    stats: tuple[ColumnStatistic, ...] = Field(default=(), description="Per-column statistics")

    model_config = ConfigDict(frozen=True)

    @field_validator("samples", mode="before")
    @classmethod
    def make_samples_json_safe(cls, v: Any) -> Any:
        return tuple(to_json_safe(dict(row)) for row in v)

    @property
    def row_count(self) -> int:
        """Row count from the first statistic (0 when no stats were captured)."""
        return self.stats[0].count if self.stats else 0

    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]


class DatabaseSnapshot(Mapping[str, TableSnapshot]):
    """
    Read-only ordered mapping of table name to TableSnapshot.

    Iteration order is discovery order. Equality compares contents, so two
    refreshes of an unchanged database compare equal.
    """

    __slots__ = ("_tables",)

    def __init__(self, tables: Mapping[str, TableSnapshot] | None = None) -> None:
        self._tables: dict[str, TableSnapshot] = dict(tables or {})

    def __getitem__(self, name: str) -> TableSnapshot:
        return self._tables[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def __repr__(self) -> str:
        return f"<DatabaseSnapshot tables={list(self._tables)}>"

    @property
    def is_empty(self) -> bool:
        return not self._tables

    def table_names(self) -> list[str]:
        return list(self._tables)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Plain-dict form (for caching or display)."""
        return {name: table.model_dump() for name, table in self._tables.items()}

EMPTY_SNAPSHOT = DatabaseSnapshot()


def default_table(snapshot: DatabaseSnapshot | Mapping[str, TableSnapshot]) -> str | None:
    """
    Return the table used for generic references such as "the table".

    This is the first table in discovery order, or None for an empty snapshot.
    """
    for name in snapshot:
        return name
    return None
