"""SQLite backing store for sqlkv, built on aiosqlite."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiosqlite

from sqlkv.core.backend import StatementResult

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class SQLiteStatement:
    """A prepared statement bound to a ``SQLiteDatabase``."""

    def __init__(self, database: "SQLiteDatabase", sql: str, params: Tuple[Any, ...] = ()):
        self.database = database
        self.sql = sql
        self.params = params

    def bind(self, *params: Any) -> "SQLiteStatement":
        """Return a copy of this statement bound to ``params``."""
        return SQLiteStatement(self.database, self.sql, params)

    async def first(self) -> Optional[Dict[str, Any]]:
        result = await self.run()
        return result.first()

    async def all(self) -> List[Dict[str, Any]]:
        result = await self.run()
        return result.rows

    async def run(self) -> StatementResult:
        return await self.database.run(self)

    def __repr__(self) -> str:
        return f"SQLiteStatement({self.sql!r}, params={self.params!r})"


class SQLiteDatabase:
    """Manages one aiosqlite connection in autocommit mode with WAL enabled.

    All statements and batches go through a single lock, so a batch is never
    interleaved with statements issued by other coroutines.
    """

    def __init__(self, path: Union[str, Path] = MEMORY):
        """Initialize database handle. The connection is opened on first use.

        Args:
            path: Path to SQLite database file, or ":memory:"
        """
        self.path = path if path == MEMORY else Path(path)
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def _connect(self) -> aiosqlite.Connection:
        """Establish the connection and configure journal mode."""
        if self._conn is not None:
            return self._conn

        if isinstance(self.path, Path):
            self.path.parent.mkdir(parents=True, exist_ok=True)

        # aiosqlite owns a single worker thread; total_changes is read from the loop thread
        conn = await aiosqlite.connect(
            str(self.path), isolation_level=None, check_same_thread=False
        )
        try:
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute("PRAGMA synchronous = NORMAL")
        except aiosqlite.OperationalError:
            await conn.close()
            raise
        conn.row_factory = aiosqlite.Row

        logger.debug(f"Opened SQLite connection to {self.path}")
        self._conn = conn
        return conn

    async def _execute(
        self, conn: aiosqlite.Connection, statement: SQLiteStatement
    ) -> StatementResult:
        before = conn.total_changes
        async with conn.execute(statement.sql, statement.params) as cursor:
            rows = [dict(row) for row in await cursor.fetchall()]
            last_row_id = cursor.lastrowid
        return StatementResult(
            rows=rows,
            changes=conn.total_changes - before,
            last_row_id=last_row_id,
        )

    def prepare(self, sql: str) -> SQLiteStatement:
        """Prepare a parameterized statement."""
        return SQLiteStatement(self, sql)

    async def run(self, statement: SQLiteStatement) -> StatementResult:
        """Execute a single statement."""
        async with self._lock:
            conn = await self._connect()
            return await self._execute(conn, statement)

    async def batch(self, statements: Sequence[SQLiteStatement]) -> List[StatementResult]:
        """Execute statements in order inside one transaction.

        Commits on success, rolls back and re-raises on any failure.
        """
        async with self._lock:
            conn = await self._connect()
            logger.debug(f"Running batch of {len(statements)} statements")
            await conn.execute("BEGIN IMMEDIATE")
            try:
                results = [await self._execute(conn, stmt) for stmt in statements]
                await conn.execute("COMMIT")
            except BaseException:
                # SQLite may already have rolled back on its own
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                raise
            return results

    async def exec(self, sql: str) -> None:
        """Execute a schema script."""
        async with self._lock:
            conn = await self._connect()
            await conn.executescript(sql)

    async def close(self) -> None:
        """Close the database connection."""
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
                logger.debug(f"Closed SQLite connection to {self.path}")

    async def __aenter__(self) -> "SQLiteDatabase":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
