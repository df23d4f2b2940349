"""Convenience constructor for a SQLite-backed KV store."""

from pathlib import Path
from typing import Union

from sqlkv.config import DEFAULT_TABLE, KVOptions
from sqlkv.core.connection import MEMORY, SQLiteDatabase
from sqlkv.managers.kv import KVManager


def connect(
    path: Union[str, Path] = MEMORY,
    table: str = DEFAULT_TABLE,
    initialize: bool = False,
) -> KVManager:
    """Connect to a KV namespace stored in a SQLite database.

    Args:
        path: SQLite database file, or ":memory:" (default)
        table: Namespace table name
        initialize: Create the table as soon as an event loop is running

    Returns:
        KVManager bound to a new SQLiteDatabase

    Examples:
        >>> kv = sqlkv.connect("cache.db", table="sessions")
        >>> await kv.set("user:1", {"name": "Alice"}, ex=60)
        >>> await kv.get("user:1")
        {'name': 'Alice'}
    """
    return KVManager(SQLiteDatabase(path), KVOptions(table=table, initialize=initialize))
