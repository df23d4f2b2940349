"""Name validation utilities for sqlkv namespaces.

Table names are interpolated into SQL statements (identifiers cannot be bound
as parameters), so they are restricted to a conservative character set.
"""

import re


# Table names: no hyphens, must start with a letter
VALID_TABLE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*[a-z0-9]$|^[a-z]$")

# SQLite reserves every name with this prefix for internal tables
RESERVED_PREFIX = "sqlite_"


class InvalidNameError(ValueError):
    """Raised when a name doesn't meet validation requirements."""

    pass


def validate_name(name: str, entity_type: str = "table") -> None:
    """Validate that a namespace table name is safe to use.

    Valid names must:
    - Contain only lowercase letters (a-z), numbers (0-9), and underscore (_)
    - Start with a letter and end with a letter or number
    - Not exceed 63 characters
    - Not contain consecutive underscores
    - Not use SQLite's reserved ``sqlite_`` prefix

    Args:
        name: The name to validate
        entity_type: Type of entity for error messages

    Raises:
        InvalidNameError: If the name is invalid
    """
    if not name or not isinstance(name, str):
        raise InvalidNameError(f"{entity_type.capitalize()} name cannot be empty")

    if len(name) > 63:
        raise InvalidNameError(
            f"{entity_type.capitalize()} name cannot exceed 63 characters"
        )

    if "\x00" in name or any(ord(c) < 32 for c in name):
        raise InvalidNameError(
            f"Security violation: {entity_type} name contains invalid control characters"
        )

    if name != name.lower():
        raise InvalidNameError(
            f"{entity_type.capitalize()} name must be lowercase. "
            f"Use '{name.lower()}' instead of '{name}'"
        )

    if not VALID_TABLE_NAME_PATTERN.match(name):
        raise InvalidNameError(
            f"Invalid {entity_type} name '{name}'. "
            f"{entity_type.capitalize()} names must contain only lowercase letters (a-z), "
            f"numbers (0-9), and underscore (_). "
            f"Names must start with a letter and end with a letter or number."
        )

    if "__" in name:
        raise InvalidNameError(
            f"Invalid {entity_type} name '{name}'. "
            f"Names cannot contain consecutive underscores."
        )

    if name.startswith(RESERVED_PREFIX):
        raise InvalidNameError(
            f"'{name}' uses the reserved '{RESERVED_PREFIX}' prefix and cannot be used as a {entity_type} name"
        )


def is_valid_name(name: str) -> bool:
    """Check if a name is valid without raising an exception."""
    try:
        validate_name(name)
        return True
    except InvalidNameError:
        return False
