"""Translation of Redis-style glob patterns into SQL LIKE patterns.

``*`` matches any run of characters and ``?`` matches exactly one. LIKE uses
``%`` and ``_`` for the same purposes, so a literal ``%`` or ``_`` in the glob
has to be escaped before the glob wildcards are substituted; substituting
first would escape the freshly produced ``%`` and ``_`` tokens as well.

SQLite's LIKE ignores ASCII case, so key listing pairs it with a GLOB
check. GLOB shares the ``*`` and ``?`` wildcards; only ``[`` needs escaping.
"""

from typing import NamedTuple

ESCAPE_CHAR = "\\"
LIKE_SPECIAL = ("%", "_")


class LikePattern(NamedTuple):
    """A LIKE pattern and whether it needs an ``ESCAPE '\\'`` clause."""

    pattern: str
    escape: bool


def needs_escape(glob: str) -> bool:
    """Check whether the glob contains literal LIKE wildcards."""
    return any(char in glob for char in LIKE_SPECIAL)


def escape_like(glob: str) -> str:
    """Escape LIKE wildcards (and the escape character itself) in ``glob``."""
    escaped = glob.replace(ESCAPE_CHAR, ESCAPE_CHAR * 2)
    for char in LIKE_SPECIAL:
        escaped = escaped.replace(char, ESCAPE_CHAR + char)
    return escaped


def substitute_wildcards(pattern: str) -> str:
    """Replace glob wildcards with their LIKE equivalents."""
    return pattern.replace("*", "%").replace("?", "_")


def glob_to_like(glob: str) -> LikePattern:
    """Convert a glob pattern to a LIKE pattern.

    Args:
        glob: Pattern using ``*`` and ``?`` wildcards

    Returns:
        LikePattern with the translated pattern and the escape flag
    """
    escape = needs_escape(glob)
    pattern = escape_like(glob) if escape else glob
    return LikePattern(substitute_wildcards(pattern), escape)


def glob_to_native(glob: str) -> str:
    """Convert a glob pattern to a case-sensitive SQLite GLOB pattern.

    ``[`` starts a character class in GLOB, so it is wrapped as ``[[]`` to
    match literally.
    """
    return glob.replace("[", "[[]")
