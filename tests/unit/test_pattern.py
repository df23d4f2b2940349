"""Tests for glob to LIKE translation."""

from sqlkv.core.pattern import (
    LikePattern,
    escape_like,
    glob_to_like,
    glob_to_native,
    needs_escape,
    substitute_wildcards,
)


class TestEscapeLike:
    """Test escaping of literal LIKE wildcards."""

    def test_escapes_wildcards(self):
        assert escape_like("k_1") == r"k\_1"
        assert escape_like("100%") == r"100\%"

    def test_escapes_escape_char(self):
        assert escape_like(r"a\b_") == r"a\\b\_"

    def test_leaves_glob_wildcards(self):
        assert escape_like("k*?") == "k*?"

    def test_needs_escape(self):
        assert needs_escape("k_?") is True
        assert needs_escape("a%") is True
        assert needs_escape("k*") is False
        assert needs_escape(r"back\slash") is False


class TestSubstituteWildcards:
    """Test glob wildcard substitution."""

    def test_substitution(self):
        assert substitute_wildcards("k*") == "k%"
        assert substitute_wildcards("k?") == "k_"
        assert substitute_wildcards("*:?:*") == "%:_:%"
        assert substitute_wildcards("plain") == "plain"


class TestGlobToLike:
    """Test the combined translation."""

    def test_plain_pattern(self):
        assert glob_to_like("user:*") == LikePattern("user:%", False)
        assert glob_to_like("k?") == LikePattern("k_", False)

    def test_escapes_before_substituting(self):
        # The '_' produced from '?' must not be escaped
        assert glob_to_like("k_?") == LikePattern(r"k\__", True)
        assert glob_to_like("50%*") == LikePattern(r"50\%%", True)

    def test_backslash_only_escaped_with_escape_clause(self):
        assert glob_to_like(r"a\b*") == LikePattern(r"a\b%", False)
        assert glob_to_like(r"a\b_*") == LikePattern(r"a\\b\_%", True)

    def test_substituting_first_would_be_wrong(self):
        wrong = escape_like(substitute_wildcards("k_?"))
        assert wrong != glob_to_like("k_?").pattern


class TestGlobToNative:
    """Test the case-sensitive GLOB companion pattern."""

    def test_wildcards_unchanged(self):
        assert glob_to_native("user:*") == "user:*"
        assert glob_to_native("k?") == "k?"
        assert glob_to_native("k_%") == "k_%"

    def test_bracket_is_literal(self):
        assert glob_to_native("a[1]*") == "a[[]1]*"
