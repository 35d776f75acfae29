"""Tests for comparing a list's total across stores."""

from datetime import date

import pytest

from shoplist.pricing.compare import MatchKind, StoreComparator, match_store_record
from shoplist.pricing.db import PriceLedger
from shoplist.pricing.models import ListItem

DAY = date(2026, 3, 1)


@pytest.fixture
def ledger(tmp_path):
    led = PriceLedger(tmp_path / "test.db")
    yield led
    led.close()


@pytest.fixture
def items():
    return [
        ListItem(name="milk", quantity=2, size="2pt", estimated_price=1.50),
        ListItem(name="bread", size="800g", estimated_price=1.20),
        ListItem(name="butter", size="250g", estimated_price=2.00, price_override=True),
    ]


class TestMatchStoreRecord:
    def test_no_records(self):
        assert match_store_record("2pt", []) is None

    def test_exact_by_key(self, ledger):
        ledger.upsert("milk", "asda", 1.30, DAY, "u1", size="2 pints")
        match = match_store_record("2pt", ledger.lookup("milk", "asda"))
        assert match.kind is MatchKind.EXACT
        assert match.record.average_price == 1.30

    def test_equivalent_size_is_exact(self, ledger):
        ledger.upsert("orange juice", "asda", 1.80, DAY, "u1", size="1L")
        match = match_store_record("1000 ml", ledger.lookup("orange juice", "asda"))
        assert match.kind is MatchKind.EXACT

    def test_within_tolerance(self, ledger):
        ledger.upsert("bread", "asda", 1.00, DAY, "u1", size="750g")
        match = match_store_record("800g", ledger.lookup("bread", "asda"))
        assert match.kind is MatchKind.TOLERANCE
        assert match.record.size == "750g"

    def test_closest_size_wins(self, ledger):
        ledger.upsert("bread", "asda", 0.80, DAY, "u1", size="400g")
        ledger.upsert("bread", "asda", 1.00, DAY, "u1", size="750g")
        match = match_store_record("800g", ledger.lookup("bread", "asda"))
        assert match.record.size == "750g"

    def test_fallback_to_cheapest(self, ledger):
        ledger.upsert("milk", "aldi", 1.10, DAY, "u1", size="4pt")
        ledger.upsert("milk", "aldi", 0.60, DAY, "u1", size="1pt")
        match = match_store_record("2pt", ledger.lookup("milk", "aldi"))
        assert match.kind is MatchKind.FALLBACK
        assert match.record.size == "1pt"

    def test_close_decimal_size_is_not_exact(self, ledger):
        ledger.upsert("rice", "asda", 1.80, DAY, "u1", size="1.2kg")
        match = match_store_record("1.25kg", ledger.lookup("rice", "asda"))
        assert match.kind is MatchKind.TOLERANCE

    def test_sizeless_item_matches_sizeless_record(self, ledger):
        ledger.upsert("bananas", "lidl", 0.90, DAY, "u1", size="6pk")
        ledger.upsert("bananas", "lidl", 1.00, DAY, "u1")
        match = match_store_record(None, ledger.lookup("bananas", "lidl"))
        assert match.kind is MatchKind.EXACT
        assert match.record.size == ""

    def test_custom_tolerance(self, ledger):
        from shoplist.pricing.config import SizesConfig

        ledger.upsert("bread", "asda", 1.00, DAY, "u1", size="750g")
        match = match_store_record(
            "800g", ledger.lookup("bread", "asda"), sizes=SizesConfig(tolerance=0.05)
        )
        assert match.kind is MatchKind.FALLBACK


class TestStoreComparator:
    @pytest.fixture(autouse=True)
    def prices(self, ledger):
        ledger.upsert("milk", "asda", 1.30, DAY, "u1", size="2pt")
        ledger.upsert("bread", "asda", 1.00, DAY, "u1", size="750g")
        ledger.upsert("milk", "aldi", 0.60, DAY, "u1", size="1pt")

    def test_totals_and_issues(self, ledger, items):
        comparison = StoreComparator(ledger).compare(items, "tesco", ["asda", "aldi"])

        assert comparison.current_store_id == "tesco"
        assert comparison.current_total == pytest.approx(6.20)

        by_store = {a.store_id: a for a in comparison.alternatives}
        asda = by_store["asda"]
        assert asda.total == pytest.approx(5.60)
        assert asda.savings == pytest.approx(0.60)
        assert asda.items_compared == 2
        assert asda.items_with_issues == 1

        aldi = by_store["aldi"]
        assert aldi.total == pytest.approx(4.40)
        assert aldi.savings == pytest.approx(1.80)
        assert aldi.items_with_issues == 2

    def test_sorted_by_savings(self, ledger, items):
        comparison = StoreComparator(ledger).compare(items, "tesco", ["asda", "aldi"])
        assert [a.store_id for a in comparison.alternatives] == ["aldi", "asda"]
        assert comparison.best.store_id == "aldi"

    def test_store_without_data(self, ledger, items):
        comparison = StoreComparator(ledger).compare(items, "tesco", ["waitrose"])
        waitrose = comparison.best
        assert waitrose.items_with_issues == waitrose.items_compared == 2
        assert waitrose.total == pytest.approx(comparison.current_total)
        assert waitrose.savings == 0

    def test_current_store_and_duplicates_skipped(self, ledger, items):
        comparison = StoreComparator(ledger).compare(
            items, "Asda", ["asda", "ALDI", "aldi", " "]
        )
        assert [a.store_id for a in comparison.alternatives] == ["aldi"]

    def test_does_not_modify_items(self, ledger, items):
        before = [dict(vars(i)) for i in items]
        StoreComparator(ledger).compare(items, "tesco", ["asda"])
        assert [vars(i) for i in items] == before

    def test_no_candidates(self, ledger, items):
        comparison = StoreComparator(ledger).compare(items, "tesco", [])
        assert comparison.alternatives == []
        assert comparison.best is None


def test_sizeless_items_compare_exactly(ledger):
    ledger.upsert("bananas", "lidl", 1.00, DAY, "u1")
    items = [ListItem(name="bananas", estimated_price=1.20)]
    lidl = StoreComparator(ledger).compare(items, None, ["lidl"]).best
    assert lidl.items_with_issues == 0
    assert lidl.total == pytest.approx(1.00)
    assert lidl.savings == pytest.approx(0.20)


def test_close_decimal_size_counts_as_issue(ledger):
    ledger.upsert("cola", "asda", 1.90, DAY, "u1", size="1.8L")
    items = [ListItem(name="cola", size="1.75L", estimated_price=2.00)]
    asda = StoreComparator(ledger).compare(items, "tesco", ["asda"]).best
    assert asda.items_with_issues == 1
    assert asda.total == pytest.approx(1.90)
