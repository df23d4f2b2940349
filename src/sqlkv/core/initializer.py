"""Lazy, once-only creation of a namespace table."""

import asyncio
import logging
from typing import Optional

from sqlkv.core.backend import Database

logger = logging.getLogger(__name__)


class KVError(Exception):
    """Base class for sqlkv errors."""


class InitializationError(KVError):
    """Raised when the namespace schema could not be created."""


def schema_sql(table: str) -> str:
    """Schema script for a namespace table and its expiry index.

    ``value`` has no declared type so SQLite keeps numbers numeric and JSON text
    as text.
    """
    return f"""
        CREATE TABLE IF NOT EXISTS "{table}" (
            key TEXT PRIMARY KEY NOT NULL,
            value,
            expire_at REAL
        );
        CREATE INDEX IF NOT EXISTS "{table}_expire_at" ON "{table}" (expire_at);
    """


class SchemaInitializer:
    """Creates the namespace table on first use.

    Concurrent first callers share one pending task, so the schema script runs
    once per initializer. A failed attempt leaves nothing memoized; the next
    call runs the script again.
    """

    def __init__(self, db: Database, table: str):
        self.db = db
        self.table = table
        self.ready = False
        self._pending: Optional[asyncio.Task] = None

    async def _create(self) -> None:
        try:
            await self.db.exec(schema_sql(self.table))
        except Exception as e:
            logger.error(f"Failed to initialize KV table '{self.table}': {e}")
            raise InitializationError(
                f"Failed to initialize KV table '{self.table}': {e}"
            ) from e
        self.ready = True
        logger.info(f"Initialized KV table '{self.table}'")

    def start(self) -> asyncio.Task:
        """Start initialization if it is not already running; return the task."""
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._create())
            self._pending.add_done_callback(self._on_done)
        return self._pending

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._pending is task:
                self._pending = None

    def reset(self) -> None:
        """Forget that the table was created, e.g. after the database closed."""
        self.ready = False
        self._pending = None

    async def ensure_ready(self) -> None:
        """Wait until the namespace table exists."""
        if self.ready:
            return
        # shield: a cancelled caller must not cancel the shared task
        await asyncio.shield(self.start())
