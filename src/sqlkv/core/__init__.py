"""Core functionality for sqlkv."""

from sqlkv.core.backend import Database, PreparedStatement, StatementResult
from sqlkv.core.codec import MISSING, decode, encode
from sqlkv.core.connection import SQLiteDatabase
from sqlkv.core.initializer import InitializationError, KVError, SchemaInitializer
from sqlkv.core.pattern import LikePattern, glob_to_like

__all__ = [
    "Database",
    "PreparedStatement",
    "StatementResult",
    "MISSING",
    "decode",
    "encode",
    "SQLiteDatabase",
    "InitializationError",
    "KVError",
    "SchemaInitializer",
    "LikePattern",
    "glob_to_like",
]
