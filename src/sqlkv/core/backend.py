"""Interface between the KV command layer and its backing SQL store.

Any store that can prepare parameterized statements, run an ordered batch of
them without interleaving, and execute a one-shot schema script can back a
``KVManager``. ``SQLiteDatabase`` in ``sqlkv.core.connection`` is the bundled
implementation.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field


class StatementResult(BaseModel):
    """Outcome of running one statement."""

    rows: List[Dict[str, Any]] = Field(
        default_factory=list, description="Rows returned by SELECT or RETURNING"
    )
    changes: int = Field(default=0, description="Rows inserted, updated or deleted")
    last_row_id: Optional[int] = Field(
        default=None, description="Rowid of the last inserted row"
    )

    def first(self) -> Optional[Dict[str, Any]]:
        """Return the first row, or None if the statement returned nothing."""
        return self.rows[0] if self.rows else None


class PreparedStatement(Protocol):
    """A statement template, optionally bound to parameters."""

    def bind(self, *params: Any) -> "PreparedStatement":
        ...

    async def first(self) -> Optional[Dict[str, Any]]:
        ...

    async def all(self) -> List[Dict[str, Any]]:
        ...

    async def run(self) -> StatementResult:
        ...


class Database(Protocol):
    """Backing store consumed by ``KVManager``."""

    def prepare(self, sql: str) -> PreparedStatement:
        ...

    async def batch(
        self, statements: Sequence[PreparedStatement]
    ) -> List[StatementResult]:
        """Run statements in order, atomically, with no foreign statement in between."""
        ...

    async def exec(self, sql: str) -> None:
        """Execute a schema script."""
        ...
