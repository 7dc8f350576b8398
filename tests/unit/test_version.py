"""Tests for version parsing and comparison."""

from __future__ import annotations

import pytest

from checklistdb.models.version import (
    InvalidVersionError,
    compare_versions,
    parse_version,
    version_key,
)


class TestParseVersion:
    def test_three_fields(self) -> None:
        assert parse_version("1.10.0") == (1, 10, 0)

    def test_whitespace_is_ignored(self) -> None:
        assert parse_version(" 2.0.1 ") == (2, 0, 1)

    @pytest.mark.parametrize("bad", ["", "   ", "1..0", "1.a.0", "v1.0.0", "1.-1.0", None, 100])
    def test_rejects_malformed(self, bad: object) -> None:
        with pytest.raises(InvalidVersionError):
            parse_version(bad)

    def test_invalid_version_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_version("abc")


class TestCompareVersions:
    def test_numeric_not_lexicographic(self) -> None:
        assert compare_versions("1.2.0", "1.10.0") < 0
        assert compare_versions("1.10.0", "1.2.0") > 0

    def test_equal(self) -> None:
        assert compare_versions("1.3.0", "1.3.0") == 0

    def test_missing_fields_are_zero(self) -> None:
        assert compare_versions("1.2", "1.2.0") == 0
        assert compare_versions("1", "1.0.1") < 0

    def test_major_dominates(self) -> None:
        assert compare_versions("2.0.0", "1.99.99") > 0

    def test_zero_version_is_lowest(self) -> None:
        assert compare_versions("0.0.0", "0.0.1") < 0


class TestVersionKey:
    def test_sorting_matches_compare(self) -> None:
        versions = ["1.10.0", "1.2.0", "0.9", "1.2.1", "1.0"]
        assert sorted(versions, key=version_key) == ["0.9", "1.0", "1.2.0", "1.2.1", "1.10.0"]

    def test_trailing_zeros_collapse(self) -> None:
        assert version_key("1.0") == version_key("1.0.0")
