"""Tests for value encoding."""

import json
import pickle
from datetime import date, datetime, timezone

import pytest

from sqlkv.core.codec import MISSING, NULL, decode, encode


class TestEncode:
    """Test encode."""

    def test_numbers_pass_through(self):
        assert encode(0) == 0
        assert encode(42) == 42
        assert encode(-3.5) == -3.5
        assert isinstance(encode(42), int)
        assert isinstance(encode(2.5), float)

    def test_ints_beyond_sqlite_range_are_serialized(self):
        assert encode(2**63 - 1) == 2**63 - 1
        assert encode(-(2**63)) == -(2**63)
        assert encode(2**63) == "9223372036854775808"
        assert encode(2**64) == "18446744073709551616"
        assert encode(-(2**63) - 1) == "-9223372036854775809"
        assert decode(encode(2**64)) == 2**64

    def test_booleans_are_serialized(self):
        # bool is an int subclass but must not be stored as a number
        assert encode(True) == "true"
        assert encode(False) == "false"

    def test_strings_are_quoted(self):
        assert encode("val") == '"val"'
        assert encode("1") == '"1"'
        assert encode("") == '""'

    def test_structures(self):
        assert json.loads(encode([1, "a", None])) == [1, "a", None]
        assert json.loads(encode({"key": None})) == {"key": None}

    def test_none_and_missing(self):
        assert encode(None) == NULL
        assert encode(MISSING) == NULL
        assert encode() == NULL

    def test_datetimes_use_isoformat(self):
        moment = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert encode(moment) == '"2025-01-01T00:00:00+00:00"'
        assert encode(date(2025, 1, 1)) == '"2025-01-01"'
        assert encode({"at": date(2025, 1, 1)}) == '{"at": "2025-01-01"}'

    def test_unserializable(self):
        with pytest.raises(TypeError, match="not JSON serializable"):
            encode(object())


class TestDecode:
    """Test decode."""

    def test_text_is_parsed(self):
        assert decode('"val"') == "val"
        assert decode("true") is True
        assert decode("null") is None
        assert decode('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_numbers_unchanged(self):
        assert decode(7) == 7
        assert decode(7.25) == 7.25

    def test_sql_null(self):
        assert decode(None) is None

    @pytest.mark.parametrize(
        "value",
        [0, 1, -1.5, "", "text", "1", True, False, None, [], [1, [2, {"x": None}]], {}, {"k": "v"}],
    )
    def test_round_trip(self, value):
        result = decode(encode(value))
        assert result == value
        assert type(result) is type(value)

    def test_missing_round_trips_to_none(self):
        assert decode(encode(MISSING)) is None


class TestMissing:
    """Test the MISSING sentinel."""

    def test_singleton(self):
        assert type(MISSING)() is MISSING
        assert pickle.loads(pickle.dumps(MISSING)) is MISSING

    def test_distinct_from_none(self):
        assert MISSING is not None
        assert MISSING != None  # noqa: E711
        assert not MISSING
        assert repr(MISSING) == "MISSING"
