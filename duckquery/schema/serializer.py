"""
Schema serialization for prompts.

The rendered text is one-way (never parsed back) but its shape is
load-bearing: prompts tell the model to read table and column names out of
it. Table order follows the snapshot and is never re-sorted.
"""

from __future__ import annotations

from collections.abc import Mapping

from duckquery.models.schema import TableSnapshot
from duckquery.utils.serialization import safe_json


def format_columns(table: TableSnapshot) -> str:
    """`name (TYPE)` pairs joined by comma and space."""
    return ", ".join(f"{column.name} ({column.type})" for column in table.columns)


def serialize(snapshot: Mapping[str, TableSnapshot], include_details: bool = True) -> str:
    """
    Render a snapshot as prompt text.

    With details each table is rendered as:

        Table "<name>": <col> (<TYPE>), ...
        Samples: <json rows>
        Stats: <json statistics>

    Without details it is a single `<name>: <col> (<TYPE>), ...` line. Tables
    are separated by a blank line. An empty snapshot renders as "".
    """
    blocks: list[str] = []
    for name, table in snapshot.items():
        cols = format_columns(table)
        if not include_details:
            blocks.append(f"{name}: {cols}")
            continue
        samples = safe_json(list(table.samples))
        stats = safe_json([stat.model_dump() for stat in table.stats])
        blocks.append(f'Table "{name}": {cols}\nSamples: {samples}\nStats: {stats}')
    return "\n\n".join(blocks)


def serialize_columns(snapshot: Mapping[str, TableSnapshot]) -> str:
    """Column-only rendering (one `Table "<name>": ...` line per table)."""
    return "\n".join(
        f'Table "{name}": {format_columns(table)}' for name, table in snapshot.items()
    )
