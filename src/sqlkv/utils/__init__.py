"""Utility modules for sqlkv."""

from sqlkv.utils.name_validator import (
    validate_name,
    is_valid_name,
    InvalidNameError,
)

__all__ = [
    "validate_name",
    "is_valid_name",
    "InvalidNameError",
]
