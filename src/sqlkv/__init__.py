"""sqlkv - Redis-like key-value commands on top of a SQL table."""

from sqlkv.config import KVOptions
from sqlkv.core.codec import MISSING
from sqlkv.core.connection import SQLiteDatabase
from sqlkv.core.database import connect
from sqlkv.core.initializer import InitializationError, KVError
from sqlkv.managers.kv import KVManager

try:
    from importlib.metadata import version
    __version__ = version("sqlkv")
except Exception:
    # Package metadata is not available (running from a source checkout)
    __version__ = "0.1.0"

__all__ = [
    "connect",
    "KVManager",
    "KVOptions",
    "MISSING",
    "SQLiteDatabase",
    "InitializationError",
    "KVError",
]
