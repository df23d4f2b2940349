"""Key-Value store manager for sqlkv - Redis-like commands over a single SQL table."""

import asyncio
import math
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlkv.config import KVOptions
from sqlkv.core.backend import Database, PreparedStatement
from sqlkv.core.codec import MISSING, decode, encode
from sqlkv.core.initializer import SchemaInitializer
from sqlkv.core.pattern import glob_to_like, glob_to_native

Number = Union[int, float]

# Rows that have not expired; binds ``now``
ALIVE = "(expire_at IS NULL OR expire_at > ?)"


def _element_json(alias: str) -> str:
    """JSON text of the current ``json_each`` element of ``alias``.

    json_each yields strings unquoted and booleans as 0/1, so the type column is
    needed to rebuild the exact JSON form.
    """
    return (
        f"CASE WHEN {alias}.type = 'text' THEN json_quote({alias}.value) "
        f"WHEN {alias}.type IN ('true', 'false', 'null') THEN {alias}.type "
        f"ELSE json({alias}.value) END"
    )


def _field_path(field: str) -> str:
    # SQLite JSON paths do not support escaping '"' inside quoted labels
    return f'$."{field}"'


def _as_number(value: Number) -> Number:
    return int(value) if value == int(value) else value


class KVManager:
    """Key-Value store manager for sqlkv.

    Every command is a coroutine that issues one or more parameterized
    statements against the namespace table. Expired keys are filtered out at
    read time and never swept. Absent keys, fields and elements are reported
    as ``MISSING``, which is distinct from a stored ``None``.
    """

    def __init__(
        self,
        db: Database,
        options: Optional[KVOptions] = None,
        *,
        initialize: Optional[bool] = None,
        table: Optional[str] = None,
    ):
        """Initialize KV manager.

        Args:
            db: Backing database handle
            options: KVOptions (initialize, table)
            initialize: Override options.initialize
            table: Override options.table
        """
        overrides = {}
        if initialize is not None:
            overrides["initialize"] = initialize
        if table is not None:
            overrides["table"] = table
        options = options or KVOptions()
        if overrides:
            options = KVOptions(**{**options.model_dump(), **overrides})

        self.db = db
        self.options = options
        self.table = options.table
        self._t = f'"{self.table}"'
        self._schema = SchemaInitializer(db, self.table)

        if options.initialize:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # No loop yet: the first command initializes
                pass
            else:
                self._schema.start()

    @property
    def initialized(self) -> bool:
        return self._schema.ready

    async def init(self) -> None:
        """Create the namespace table if it does not exist yet."""
        await self._schema.ensure_ready()

    async def _ready(self) -> None:
        if not self._schema.ready:
            await self._schema.ensure_ready()

    def _now(self) -> float:
        return time.time()

    def _prepare(self, sql: str, *params: Any) -> PreparedStatement:
        return self.db.prepare(sql).bind(*params)

    @property
    def _expired(self) -> str:
        """True for an existing conflicting row that has expired; binds ``now``."""
        return f"({self._t}.expire_at IS NOT NULL AND {self._t}.expire_at <= ?)"

    async def _document(self, key: str) -> Any:
        """Fetch and decode the live value at ``key``, or MISSING."""
        row = await self._prepare(
            f"SELECT value FROM {self._t} WHERE key = ? AND {ALIVE}",
            key,
            self._now(),
        ).first()
        if row is None:
            return MISSING
        return decode(row["value"])

    # Strings and counters

    async def set(
        self, key: str, value: Any, *, ex: Optional[Number] = None, nx: bool = False
    ) -> bool:
        """Set a key, replacing any value and expiry it had.

        Args:
            key: Key to set
            value: Value to store (any JSON-compatible type)
            ex: Expire after this many seconds
            nx: Only set if the key does not exist (or has expired)

        Returns:
            True if the value was written, False if ``nx`` prevented it
        """
        await self._ready()
        now = self._now()
        expire_at = now + ex if ex is not None else None
        sql = f"""
            INSERT INTO {self._t} (key, value, expire_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                expire_at = excluded.expire_at
        """
        if not nx:
            await self._prepare(sql, key, encode(value), expire_at).run()
            return True

        # Only an expired row may be overwritten
        row = await self._prepare(
            sql + f" WHERE {self._expired} RETURNING key",
            key,
            encode(value),
            expire_at,
            now,
        ).first()
        return row is not None

    async def get(self, key: str, default: Any = MISSING) -> Any:
        """Get the value of a key, or ``default`` if absent or expired."""
        await self._ready()
        value = await self._document(key)
        return default if value is MISSING else value

    async def mset(self, mapping: Mapping[str, Any]) -> None:
        """Set several keys in one statement. Expiries are cleared."""
        await self._ready()
        if not mapping:
            return
        rows = ", ".join(["(?, ?, NULL)"] * len(mapping))
        params = []
        for key, value in mapping.items():
            params.extend([key, encode(value)])
        await self._prepare(
            f"""
            INSERT INTO {self._t} (key, value, expire_at) VALUES {rows}
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                expire_at = NULL
            """,
            *params,
        ).run()

    async def mget(self, *keys: str) -> Dict[str, Any]:
        """Get several keys at once.

        Returns:
            Dictionary of the keys that exist; missing keys are omitted
        """
        await self._ready()
        if not keys:
            return {}
        placeholders = ",".join(["?"] * len(keys))
        rows = await self._prepare(
            f"SELECT key, value FROM {self._t} WHERE key IN ({placeholders}) AND {ALIVE}",
            *keys,
            self._now(),
        ).all()
        return {row["key"]: decode(row["value"]) for row in rows}

    async def delete(self, *keys: str) -> int:
        """Delete keys. Missing keys are ignored.

        Returns:
            Number of rows removed
        """
        await self._ready()
        if not keys:
            return 0
        placeholders = ",".join(["?"] * len(keys))
        result = await self._prepare(
            f"DELETE FROM {self._t} WHERE key IN ({placeholders})", *keys
        ).run()
        return result.changes

    del_ = delete

    async def exists(self, key: str) -> bool:
        """Check if a key exists and is not expired."""
        await self._ready()
        row = await self._prepare(
            f"SELECT 1 AS found FROM {self._t} WHERE key = ? AND {ALIVE}",
            key,
            self._now(),
        ).first()
        return row is not None

    async def keys(self, pattern: str = "*") -> List[str]:
        """List live keys matching a glob pattern (``*`` and ``?``).

        Returns:
            Matching keys, sorted
        """
        await self._ready()
        like = glob_to_like(pattern)
        escape = " ESCAPE '\\'" if like.escape else ""
        rows = await self._prepare(
            f"SELECT key FROM {self._t} WHERE key LIKE ?{escape} AND key GLOB ? "
            f"AND {ALIVE} ORDER BY key",
            like.pattern,
            glob_to_native(pattern),
            self._now(),
        ).all()
        return [row["key"] for row in rows]

    async def incrby(self, key: str, amount: Number) -> Number:
        """Atomically add ``amount`` to a numeric value, starting from 0.

        Returns:
            New value after increment
        """
        await self._ready()
        now = self._now()
        row = await self._prepare(
            f"""
            INSERT INTO {self._t} (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = CASE WHEN {self._expired} THEN excluded.value
                        ELSE {self._t}.value + excluded.value END,
                expire_at = CASE WHEN {self._expired} THEN NULL
                            ELSE {self._t}.expire_at END
            RETURNING value
            """,
            key,
            amount,
            now,
            now,
        ).first()
        return _as_number(row["value"])

    async def incr(self, key: str) -> Number:
        return await self.incrby(key, 1)

    async def decrby(self, key: str, amount: Number) -> Number:
        return await self.incrby(key, -amount)

    async def decr(self, key: str) -> Number:
        return await self.incrby(key, -1)

    # Expiry

    async def expire(self, key: str, seconds: Number) -> bool:
        """Set a key to expire ``seconds`` from now.

        Returns:
            True if the key exists and the expiry was set
        """
        await self._ready()
        now = self._now()
        result = await self._prepare(
            f"UPDATE {self._t} SET expire_at = ? WHERE key = ? AND {ALIVE}",
            now + seconds,
            key,
            now,
        ).run()
        return result.changes > 0

    async def persist(self, key: str) -> bool:
        """Remove the expiry from a key.

        Returns:
            True if the key exists and had an expiry
        """
        await self._ready()
        result = await self._prepare(
            f"""
            UPDATE {self._t} SET expire_at = NULL
            WHERE key = ? AND expire_at IS NOT NULL AND expire_at > ?
            """,
            key,
            self._now(),
        ).run()
        return result.changes > 0

    async def ttl(self, key: str) -> int:
        """Get the remaining time to live of a key.

        Returns:
            -2 if the key is absent or expired, -1 if it has no expiry,
            otherwise the remaining seconds rounded up
        """
        await self._ready()
        row = await self._prepare(
            f"SELECT expire_at FROM {self._t} WHERE key = ?", key
        ).first()
        if row is None:
            return -2
        if row["expire_at"] is None:
            return -1
        remaining = row["expire_at"] - self._now()
        return math.ceil(remaining) if remaining > 0 else -2

    # Lists

    async def _push(self, key: str, value: Any, head: bool) -> int:
        # Splice the new element's JSON text onto the minified document
        if head:
            spliced = (
                f"substr(excluded.value, 1, length(excluded.value) - 1) || ',' "
                f"|| substr(json({self._t}.value), 2)"
            )
        else:
            spliced = (
                f"substr(json({self._t}.value), 1, length(json({self._t}.value)) - 1) "
                f"|| ',' || substr(excluded.value, 2)"
            )
        now = self._now()
        row = await self._prepare(
            f"""
            INSERT INTO {self._t} (key, value) VALUES (?, json_array(json(?)))
            ON CONFLICT(key) DO UPDATE SET
                value = CASE
                    WHEN {self._expired} OR json_array_length({self._t}.value) = 0
                    THEN excluded.value
                    ELSE {spliced}
                END,
                expire_at = CASE WHEN {self._expired} THEN NULL
                            ELSE {self._t}.expire_at END
            RETURNING json_array_length(value) AS length
            """,
            key,
            encode(value),
            now,
            now,
        ).first()
        return row["length"]

    async def lpush(self, key: str, value: Any) -> int:
        """Prepend a value to a list, creating it if needed.

        Returns:
            Length of the list after the push
        """
        await self._ready()
        return await self._push(key, value, head=True)

    async def rpush(self, key: str, value: Any) -> int:
        """Append a value to a list, creating it if needed.

        Returns:
            Length of the list after the push
        """
        await self._ready()
        return await self._push(key, value, head=False)

    async def _pop(self, key: str, head: bool) -> Any:
        now = self._now()
        path = "$[0]" if head else "$[#-1]"
        read = self._prepare(
            f"SELECT value FROM {self._t} WHERE key = ? AND {ALIVE}", key, now
        )
        write = self._prepare(
            f"""
            UPDATE {self._t} SET value = json_remove(value, ?)
            WHERE key = ? AND {ALIVE} AND json_array_length(value) > 0
            """,
            path,
            key,
            now,
        )
        read_result, _ = await self.db.batch([read, write])
        row = read_result.first()
        if row is None:
            return MISSING
        items = decode(row["value"])
        if not isinstance(items, list) or not items:
            return MISSING
        return items[0] if head else items[-1]

    async def lpop(self, key: str) -> Any:
        """Remove and return the first element of a list, or MISSING."""
        await self._ready()
        return await self._pop(key, head=True)

    async def rpop(self, key: str) -> Any:
        """Remove and return the last element of a list, or MISSING."""
        await self._ready()
        return await self._pop(key, head=False)

    async def lrange(self, key: str, start: int, end: int) -> List[Any]:
        """Return list elements from ``start`` to ``end`` inclusive.

        Negative indices count from the end, so ``lrange(key, 0, -1)`` is the
        whole list.
        """
        await self._ready()
        items = await self._document(key)
        if not isinstance(items, list):
            return []
        length = len(items)
        if start < 0:
            start = max(length + start, 0)
        if end < 0:
            end = length + end
        end = min(end, length - 1)
        if start > end:
            return []
        return items[start : end + 1]

    async def llen(self, key: str) -> int:
        """Return the length of a list, or 0 if absent."""
        await self._ready()
        row = await self._prepare(
            f"SELECT json_array_length(value) AS length FROM {self._t} WHERE key = ? AND {ALIVE}",
            key,
            self._now(),
        ).first()
        return row["length"] if row else 0

    async def lindex(self, key: str, index: int) -> Any:
        """Return the element at ``index`` (negative from the end), or MISSING."""
        await self._ready()
        items = await self._document(key)
        if not isinstance(items, list) or not -len(items) <= index < len(items):
            return MISSING
        return items[index]

    async def lrem(self, key: str, count: int, element: Any) -> int:
        """Remove occurrences of ``element`` from a list.

        Args:
            key: List key
            count: 0 removes all occurrences, a positive count removes that many
                from the head, a negative count removes that many from the tail
            element: Value to remove

        Returns:
            Number of elements removed
        """
        await self._ready()
        now = self._now()
        # Occurrences of the element are numbered from the head (or tail when
        # count < 0) and the first |count| of them are dropped. json_group_array
        # takes rows in the order of the ordered subquery it reads from.
        rebuild = f"""
            UPDATE {self._t} SET value = (
                SELECT json_group_array(json(element)) FROM (
                    SELECT position, element FROM (
                        SELECT position, element, hit,
                            ROW_NUMBER() OVER (
                                PARTITION BY hit
                                ORDER BY CASE WHEN ? < 0 THEN -position ELSE position END
                            ) AS occurrence
                        FROM (
                            SELECT
                                item.key AS position,
                                {_element_json("item")} AS element,
                                {_element_json("item")} = (
                                    SELECT {_element_json("needle")}
                                    FROM json_each(json_array(json(?))) AS needle
                                ) AS hit
                            FROM json_each({self._t}.value) AS item
                        )
                    )
                    WHERE NOT (hit AND (? = 0 OR occurrence <= abs(?)))
                    ORDER BY position
                )
            )
            WHERE key = ? AND {ALIVE} AND json_type(value) = 'array'
            RETURNING json_array_length(value) AS length
        """
        measure = self._prepare(
            f"SELECT json_array_length(value) AS length FROM {self._t} WHERE key = ? AND {ALIVE}",
            key,
            now,
        )
        write = self._prepare(
            rebuild, count, encode(element), count, count, key, now
        )
        before, after = await self.db.batch([measure, write])
        if before.first() is None or after.first() is None:
            return 0
        return before.first()["length"] - after.first()["length"]

    # Hashes

    async def hset(self, key: str, field: str, value: Any) -> None:
        """Set a field in a hash, creating the hash if needed."""
        await self._ready()
        now = self._now()
        encoded = encode(value)
        await self._prepare(
            f"""
            INSERT INTO {self._t} (key, value) VALUES (?, json_object(?, json(?)))
            ON CONFLICT(key) DO UPDATE SET
                value = CASE
                    WHEN {self._expired} OR json_type({self._t}.value) != 'object'
                    THEN excluded.value
                    ELSE json_set({self._t}.value, ?, json(?))
                END,
                expire_at = CASE WHEN {self._expired} THEN NULL
                            ELSE {self._t}.expire_at END
            """,
            key,
            field,
            encoded,
            now,
            _field_path(field),
            encoded,
            now,
        ).run()

    async def hget(self, key: str, field: str) -> Any:
        """Get a field of a hash, or MISSING if the key or field is absent."""
        await self._ready()
        document = await self._document(key)
        if not isinstance(document, dict):
            return MISSING
        return document.get(field, MISSING)

    async def hgetall(self, key: str) -> Any:
        """Get a whole hash as a dict, or MISSING if absent."""
        await self._ready()
        document = await self._document(key)
        return document if isinstance(document, dict) else MISSING

    async def hdel(self, key: str, *fields: str) -> int:
        """Delete fields from a hash.

        Returns:
            Number of fields that existed and were removed
        """
        await self._ready()
        if not fields:
            return 0
        now = self._now()
        paths = ", ".join(["?"] * len(fields))
        read = self._prepare(
            f"SELECT value FROM {self._t} WHERE key = ? AND {ALIVE}", key, now
        )
        write = self._prepare(
            f"""
            UPDATE {self._t} SET value = json_remove(value, {paths})
            WHERE key = ? AND {ALIVE} AND json_type(value) = 'object'
            """,
            *[_field_path(field) for field in fields],
            key,
            now,
        )
        read_result, _ = await self.db.batch([read, write])
        row = read_result.first()
        if row is None:
            return 0
        document = decode(row["value"])
        if not isinstance(document, dict):
            return 0
        return len(set(fields) & document.keys())

    # Lifecycle

    async def close(self) -> None:
        """Close the backing database if it supports closing.

        The manager stays usable; the next command reopens the database and
        checks the table again.
        """
        close = getattr(self.db, "close", None)
        if close is not None:
            await close()
            self._schema.reset()

    async def __aenter__(self) -> "KVManager":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
