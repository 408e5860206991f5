"""
Tests for helper utilities.
"""

import pytest

from allbeads.utils.helpers import (
    truncate_string,
    deduplicate,
    format_duration,
    hash_string,
    ensure_list,
)


class TestTruncateString:
    """Tests for string truncation."""

    def test_no_truncation_needed(self):
        assert truncate_string("short", 10) == "short"

    def test_truncates_with_suffix(self):
        assert truncate_string("this is a long string", 10) == "this is..."

    def test_custom_suffix(self):
        assert truncate_string("hello world", 8, suffix="~") == "hello w~"


class TestDeduplicate:
    """Tests for deduplication."""

    def test_simple_dedupe(self):
        assert deduplicate([1, 2, 2, 3, 3, 3]) == [1, 2, 3]

    def test_preserves_order(self):
        assert deduplicate(["bead://b/2", "a1", "bead://b/2"]) == ["bead://b/2", "a1"]

    def test_with_key_function(self):
        items = [{"id": 1}, {"id": 2}, {"id": 1}]
        result = deduplicate(items, key=lambda x: x["id"])
        assert len(result) == 2

    def test_accepts_generator(self):
        assert deduplicate(x % 2 for x in range(5)) == [0, 1]


class TestFormatDuration:
    """Tests for duration formatting."""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (45, "45s"),
        (90, "1m 30s"),
        (3600, "1h"),
        (90061, "1d 1h 1m 1s"),
        (-5, "0s"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestHashString:
    """Tests for hashing."""

    def test_stable(self):
        assert hash_string("abc") == hash_string("abc")
        assert hash_string("abc") != hash_string("abd")

    def test_sha256_default(self):
        assert hash_string("abc").startswith("ba7816bf")

    def test_algorithm(self):
        assert len(hash_string("abc", algorithm="md5")) == 32


class TestEnsureList:
    """Tests for list coercion."""

    def test_none(self):
        assert ensure_list(None) == []

    def test_scalar(self):
        assert ensure_list("solo") == ["solo"]

    def test_list_passthrough(self):
        value = ["a", "b"]
        assert ensure_list(value) is value

    def test_tuple(self):
        assert ensure_list(("a", "b")) == ["a", "b"]
