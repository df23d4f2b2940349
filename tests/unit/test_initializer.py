"""Tests for namespace schema initialization."""

import asyncio

import pytest

from sqlkv.core.connection import SQLiteDatabase
from sqlkv.core.initializer import InitializationError, KVError, SchemaInitializer, schema_sql

pytestmark = pytest.mark.asyncio


class RecordingDatabase:
    """Database stand-in that records schema scripts."""

    def __init__(self, fail_times: int = 0, delay: float = 0.01):
        self.scripts = []
        self.fail_times = fail_times
        self.delay = delay

    async def exec(self, sql: str) -> None:
        await asyncio.sleep(self.delay)
        self.scripts.append(sql)
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("database is locked")


class TestSchemaInitializer:
    """Test SchemaInitializer."""

    async def test_runs_once(self):
        db = RecordingDatabase()
        schema = SchemaInitializer(db, "kv_store")

        await schema.ensure_ready()
        await schema.ensure_ready()

        assert schema.ready is True
        assert len(db.scripts) == 1
        assert 'CREATE TABLE IF NOT EXISTS "kv_store"' in db.scripts[0]
        assert "expire_at" in db.scripts[0]

    async def test_reset_runs_script_again(self):
        db = RecordingDatabase()
        schema = SchemaInitializer(db, "kv_store")

        await schema.ensure_ready()
        schema.reset()
        assert schema.ready is False

        await schema.ensure_ready()
        assert schema.ready is True
        assert len(db.scripts) == 2

    async def test_concurrent_callers_share_one_run(self):
        db = RecordingDatabase()
        schema = SchemaInitializer(db, "kv_store")

        await asyncio.gather(*[schema.ensure_ready() for _ in range(10)])

        assert len(db.scripts) == 1
        assert schema.ready is True

    async def test_failure_is_wrapped(self):
        db = RecordingDatabase(fail_times=1)
        schema = SchemaInitializer(db, "kv_store")

        with pytest.raises(InitializationError, match="database is locked") as exc_info:
            await schema.ensure_ready()

        assert isinstance(exc_info.value, KVError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert schema.ready is False

    async def test_concurrent_callers_all_see_failure(self):
        db = RecordingDatabase(fail_times=1)
        schema = SchemaInitializer(db, "kv_store")

        results = await asyncio.gather(
            *[schema.ensure_ready() for _ in range(3)], return_exceptions=True
        )

        assert all(isinstance(r, InitializationError) for r in results)
        assert len(db.scripts) == 1

    async def test_next_call_after_failure_tries_again(self):
        db = RecordingDatabase(fail_times=1)
        schema = SchemaInitializer(db, "kv_store")

        with pytest.raises(InitializationError):
            await schema.ensure_ready()
        await asyncio.sleep(0)

        await schema.ensure_ready()
        assert schema.ready is True
        assert len(db.scripts) == 2

    async def test_cancelled_caller_does_not_cancel_initialization(self):
        db = RecordingDatabase(delay=0.05)
        schema = SchemaInitializer(db, "kv_store")

        waiter = asyncio.ensure_future(schema.ensure_ready())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        await schema.ensure_ready()
        assert schema.ready is True
        assert len(db.scripts) == 1

    async def test_schema_against_sqlite(self):
        async with SQLiteDatabase() as db:
            await db.exec(schema_sql("kv_store"))
            # Idempotent
            await db.exec(schema_sql("kv_store"))

            index = await db.prepare(
                "SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = ?"
            ).bind("kv_store").all()
            assert {"name": "kv_store_expire_at"} in index
