"""Schema snapshot building."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time

from duckquery.engine.base import BaseEngine
from duckquery.models.schema import (
    EMPTY_SNAPSHOT,
    MAX_SAMPLE_ROWS,
    DatabaseSnapshot,
    TableSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaState:
    """
    Snapshot and loading flag, published together.

    Consumers read one SchemaState at a time, so `loading=False` is never seen
    next to an out-of-date snapshot.
    """

    snapshot: DatabaseSnapshot = field(default_factory=lambda: EMPTY_SNAPSHOT)
    loading: bool = False
    error: str | None = None
    refreshed_at: float | None = None


class SchemaSnapshotBuilder:
    """
    Builds and publishes DatabaseSnapshots from an engine.

    A refresh queries every table (columns, sample rows, statistics) and only
    publishes once all of them succeeded. A failed refresh is logged and the
    previously published snapshot stays current. Calling refresh() while one
    is already running joins the running refresh.

    Sample rows come from `SELECT ... LIMIT n` without ordering; engines are
    free to return a different subset between runs, so two refreshes of an
    unchanged database are equal only when the engine's scan order is stable.
    """

    def __init__(self, engine: BaseEngine, sample_rows: int = MAX_SAMPLE_ROWS) -> None:
        self._engine = engine
        self._sample_rows = min(sample_rows, MAX_SAMPLE_ROWS)
        self._state = SchemaState()
        self._listeners: list[Callable[[SchemaState], None]] = []
        self._inflight: asyncio.Task[DatabaseSnapshot] | None = None

    @property
    def state(self) -> SchemaState:
        return self._state

    @property
    def snapshot(self) -> DatabaseSnapshot:
        return self._state.snapshot

    @property
    def loading(self) -> bool:
        return self._state.loading

    def subscribe(self, listener: Callable[[SchemaState], None]) -> Callable[[], None]:
        """Register a listener for state publications; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def refresh(self) -> DatabaseSnapshot:
        """
        Rebuild the snapshot from the engine and publish it.

        Returns:
            The current snapshot after the refresh (the previous one if the
            refresh failed)
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._refresh())
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> DatabaseSnapshot:
        previous = self._state.snapshot
        self._publish(SchemaState(snapshot=previous, loading=True))

        try:
            snapshot = await self._build()
        except Exception as exc:
            logger.error(f"Schema refresh error: {exc}", exc_info=True)
            self._publish(
                SchemaState(
                    snapshot=previous,
                    loading=False,
                    error=str(exc),
                    refreshed_at=self._state.refreshed_at,
                )
            )
            return previous

        self._publish(SchemaState(snapshot=snapshot, loading=False, refreshed_at=time()))
        logger.info(
            f"Schema refreshed: {len(snapshot)} table(s)",
            extra={"tables": snapshot.table_names()},
        )
        return snapshot

    async def _build(self) -> DatabaseSnapshot:
        tables: dict[str, TableSnapshot] = {}
        for name in await self._engine.list_tables():
            columns = await self._engine.describe_columns(name)
            samples = await self._engine.sample_rows(name, self._sample_rows)
            stats = await self._engine.summarize(name)
            tables[name] = TableSnapshot(columns=columns, samples=samples, stats=stats)
        return DatabaseSnapshot(tables)

    def _publish(self, state: SchemaState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
