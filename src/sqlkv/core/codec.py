"""Value encoding for the shared ``value`` column.

Numbers are stored as native SQL numbers so arithmetic commands can work on
them in place. Everything else (strings, booleans, None, lists, dicts,
datetimes) is stored as JSON text and parsed back on read.
"""

import json
from datetime import date, datetime, time
from typing import Any, Union

NULL = "null"

# Range of a SQLite INTEGER; larger ints are stored as JSON text
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class _Missing:
    """Marker for an absent key, field or element. Distinct from ``None``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __reduce__(self):
        return (_Missing, ())


MISSING: Any = _Missing()


def _default(value: Any) -> Any:
    """JSON fallback for values with a native text form."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    raise TypeError(f"Value of type {type(value).__name__} is not JSON serializable")


def is_number(value: Any) -> bool:
    # bool is an int subclass but is stored as JSON true/false
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return INT64_MIN <= value <= INT64_MAX
    return isinstance(value, float)


def encode(value: Any = MISSING) -> Union[int, float, str]:
    """Encode a value for the ``value`` column.

    Args:
        value: Any JSON-compatible value, datetime, or MISSING

    Returns:
        The number unchanged if SQLite can hold it natively, or the JSON
        text of anything else

    Raises:
        TypeError: If the value cannot be serialized
    """
    if value is MISSING:
        return NULL
    if is_number(value):
        return value
    return json.dumps(value, default=_default)


def decode(stored: Any) -> Any:
    """Decode a stored column value back into a Python value."""
    if isinstance(stored, (str, bytes, bytearray)):
        return json.loads(stored)
    return stored
