"""Managers for sqlkv operations."""

from sqlkv.managers.kv import KVManager

__all__ = ["KVManager"]
