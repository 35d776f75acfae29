"""Tests for tolerance-based size matching."""

import pytest

from shoplist.pricing.sizes import (
    find_closest_size,
    match_within_tolerance,
    parse_size,
    size_percent_diff,
    sizes_equivalent,
)


class TestFindClosestSize:
    def test_exact_match(self):
        result = find_closest_size("2pt", ["1pt", "2 pints", "4pt"])
        assert result.best_match.index == 1
        assert result.best_match.is_exact is True
        assert result.has_exact_match is True

    def test_tolerance_match(self):
        # 227g butter against a 250g target is about 9% off
        result = find_closest_size("250g", ["500g", "227g"])
        best = result.best_match
        assert best.size == "227g"
        assert best.is_exact is False
        assert best.within_tolerance is True
        assert best.percent_diff == pytest.approx(0.092)

    def test_outside_tolerance(self):
        result = find_closest_size("1L", ["2L"])
        assert result.best_match.within_tolerance is False
        assert result.has_tolerance_match is False

    def test_other_categories_ignored(self):
        result = find_closest_size("1L", ["500g", "6pk"])
        assert result.best_match is None
        assert result.matches == []

    def test_unparseable_entries_skipped(self):
        result = find_closest_size("1L", ["big", None, "1000ml"])
        assert [m.index for m in result.matches] == [2]

    def test_unparseable_target(self):
        result = find_closest_size("huge", ["1L"])
        assert result.best_match is None

    def test_accepts_parsed_target(self):
        result = find_closest_size(parse_size("500ml"), ["0.5L"])
        assert result.best_match.is_exact is True

    def test_sorted_by_difference(self):
        result = find_closest_size("1L", ["2L", "900ml", "1.5L", "1L"])
        diffs = [m.percent_diff for m in result.matches]
        assert diffs == sorted(diffs)
        assert result.best_match.size == "1L"


class TestMatchWithinTolerance:
    def test_returns_close_size(self):
        assert match_within_tolerance("800g", ["750g", "400g"]).size == "750g"

    def test_none_when_too_far(self):
        assert match_within_tolerance("1L", ["2L"]) is None

    def test_custom_tolerance(self):
        assert match_within_tolerance("800g", ["750g"], tolerance=0.05) is None


class TestEquivalence:
    @pytest.mark.parametrize(
        "a, b",
        [("2pt", "2 pints"), ("1L", "1000ml"), ("500g", "0.5kg"), ("6 pack", "6pk")],
    )
    def test_equivalent(self, a, b):
        assert sizes_equivalent(a, b) is True

    def test_not_equivalent(self):
        assert sizes_equivalent("1L", "500ml") is False
        assert sizes_equivalent("1L", "1kg") is False
        assert sizes_equivalent(None, "1L") is False

    def test_percent_diff(self):
        assert size_percent_diff("1L", "500ml") == pytest.approx(0.5)
        assert size_percent_diff("1L", "500g") is None
