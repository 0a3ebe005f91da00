"""
Data Workspace

Couples an engine with its schema snapshot builder so that every change to
the loaded data (connection ready, CSV import, sample data) is followed by a
snapshot refresh.
"""

import logging
from pathlib import Path

from duckquery.config import EngineSettings
from duckquery.engine.base import BaseEngine
from duckquery.engine.duckdb_engine import DuckDBEngine
from duckquery.models.schema import MAX_SAMPLE_ROWS, DatabaseSnapshot
from duckquery.schema.builder import SchemaSnapshotBuilder

logger = logging.getLogger(__name__)


class DataWorkspace:
    """
    Engine plus live schema snapshot.

    Usage:
        async with DataWorkspace(DuckDBEngine()) as workspace:
            await workspace.import_csv("sales.csv")
            print(workspace.snapshot.table_names())
    """

    def __init__(self, engine: BaseEngine, sample_rows: int = MAX_SAMPLE_ROWS):
        self.engine = engine
        self.builder = SchemaSnapshotBuilder(engine, sample_rows=sample_rows)

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "DataWorkspace":
        engine = DuckDBEngine(
            database=settings.database,
            read_only=settings.read_only,
            threads=settings.threads,
        )
        return cls(engine, sample_rows=settings.sample_rows)

    @property
    def snapshot(self) -> DatabaseSnapshot:
        return self.builder.snapshot

    @property
    def tables(self) -> list[str]:
        return self.builder.snapshot.table_names()

    async def open(self) -> DatabaseSnapshot:
        """Connect the engine and capture the initial snapshot."""
        await self.engine.connect()
        return await self.builder.refresh()

    async def refresh(self) -> DatabaseSnapshot:
        return await self.builder.refresh()

    async def import_csv(self, path: str | Path, table_name: str | None = None) -> str:
        """
        Load a CSV file into a table and refresh the snapshot.

        Returns:
            Name of the created table

        Raises:
            QueryError: If the engine cannot read the file
        """
        name = await self.engine.import_csv(str(path), table_name)
        await self.builder.refresh()
        return name

    async def load_sample_data(self) -> str:
        """Create the demo table and refresh the snapshot."""
        name = await self.engine.load_sample_data()
        await self.builder.refresh()
        logger.info(f"Sample data loaded into {name}", extra={"table": name})
        return name

    async def close(self) -> None:
        await self.engine.close()

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
