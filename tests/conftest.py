"""Pytest configuration and shared fixtures."""

import pytest_asyncio

from sqlkv.core.connection import SQLiteDatabase
from sqlkv.managers.kv import KVManager


@pytest_asyncio.fixture
async def db():
    """In-memory SQLite database, closed after each test."""
    database = SQLiteDatabase()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def kv(db):
    """KV manager on the default table."""
    return KVManager(db)
