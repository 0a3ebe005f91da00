"""
Data Discovery

Builds a narrative profile of a newly loaded table: low-cardinality text
columns get their most frequent values counted, then the table's row count,
samples and those counts go to the orchestrator's discover_data.
"""

import logging
from collections.abc import Mapping

from duckquery.agents.orchestrator import PromptOrchestrator
from duckquery.engine.base import BaseEngine, EngineError
from duckquery.models.schema import TableSnapshot

logger = logging.getLogger(__name__)

CATEGORICAL_MAX_UNIQUE = 20
MAX_CATEGORICAL_COLUMNS = 3
MAX_DISTINCT_VALUES = 5


def categorical_columns(table: TableSnapshot) -> list[str]:
    """Text columns with at most 20 distinct values, first three only."""
    columns = [
        stat.column
        for stat in table.stats
        if "varchar" in stat.type.lower() and stat.approx_unique <= CATEGORICAL_MAX_UNIQUE
    ]
    return columns[:MAX_CATEGORICAL_COLUMNS]


class DataDiscovery:
    """Profiles tables through the engine and the orchestrator."""

    def __init__(self, orchestrator: PromptOrchestrator, engine: BaseEngine):
        self.orchestrator = orchestrator
        self.engine = engine

    async def distinct_values(self, table_name: str, table: TableSnapshot) -> str | None:
        """
        Render value counts for the categorical columns.

        One `<column>: <value> (<count>), ...` line per column. Columns whose
        count query fails are skipped.

        Returns:
            The rendered lines, or None when there is nothing to show
        """
        lines: list[str] = []
        for column in categorical_columns(table):
            try:
                values = await self.engine.grouped_count(table_name, column, MAX_DISTINCT_VALUES)
            except EngineError as exc:
                logger.debug(f"Skipping distinct values for {table_name}.{column}: {exc}")
                continue
            formatted = ", ".join(f"{item.value} ({item.count})" for item in values)
            lines.append(f"{column}: {formatted}")
        return "\n".join(lines) + "\n" if lines else None

    async def discover(
        self,
        snapshot: Mapping[str, TableSnapshot],
        table_name: str | None = None,
    ) -> str | None:
        """
        Profile a table.

        Args:
            snapshot: Current schema snapshot
            table_name: Table to profile (default: the most recently loaded)

        Returns:
            The model's narrative, or None when no table is loaded

        Raises:
            KeyError: Unknown table name
            CompletionError: The completion call failed
        """
        if not snapshot:
            return None
        name = table_name or list(snapshot)[-1]
        table = snapshot[name]

        distinct = await self.distinct_values(name, table)
        logger.info(f"Discovering table {name}", extra={"table": name})
        return await self.orchestrator.discover_data(
            name,
            table.row_count,
            list(table.samples),
            distinct,
        )
