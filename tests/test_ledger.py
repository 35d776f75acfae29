"""Tests for the rolling price ledger."""

import dataclasses
import sqlite3
from datetime import date
from unittest.mock import patch

import pytest

from shoplist.pricing.db.ledger import (
    LedgerConflictError,
    LedgerError,
    PriceLedger,
    UpsertStatus,
    _VersionConflict,
)


@pytest.fixture
def ledger(tmp_path):
    """Create a temporary PriceLedger."""
    ledger = PriceLedger(db_path=tmp_path / "test.db", max_retries=3)
    yield ledger
    ledger.close()


class TestInsert:
    def test_first_observation_creates_record(self, ledger):
        result = ledger.observe("Milk", "Tesco", 1.45, date(2026, 3, 1), "u1")

        assert result.status is UpsertStatus.INSERTED
        record = result.record
        assert record.id is not None
        assert record.normalized_name == "milk"
        assert record.store_id == "tesco"
        assert record.size == ""
        assert record.unit_price == 1.45
        assert record.average_price == 1.45
        assert record.min_price == record.max_price == 1.45
        assert record.report_count == 1
        assert record.confidence == 0.5
        assert record.last_seen_date == date(2026, 3, 1)
        assert record.version == 1

    def test_insert_confidence_decays_with_age(self, ledger):
        record = ledger.upsert(
            "milk", "tesco", 1.45, date(2026, 3, 1), "u1", as_of=date(2026, 3, 16)
        )
        assert record.confidence == pytest.approx(0.25)

    def test_upsert_returns_record(self, ledger):
        record = ledger.upsert("bread", "asda", 1.10, date(2026, 3, 1), "u1")
        assert record.normalized_name == "bread"

    def test_rejects_bad_input(self, ledger):
        with pytest.raises(ValueError):
            ledger.upsert("", "tesco", 1.00, date(2026, 3, 1), "u1")
        with pytest.raises(ValueError):
            ledger.upsert("milk", "  ", 1.00, date(2026, 3, 1), "u1")
        with pytest.raises(ValueError, match="negative price"):
            ledger.upsert("milk", "tesco", -1.00, date(2026, 3, 1), "u1")


class TestMerge:
    def test_newer_observation_merges(self, ledger):
        ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        result = ledger.observe("milk", "tesco", 1.65, date(2026, 3, 11), "u2")

        assert result.status is UpsertStatus.MERGED
        record = result.record
        # new weight 1.0, existing weight 1 - 10/30
        assert record.average_price == pytest.approx(1.57)
        assert record.unit_price == 1.65
        assert record.min_price == 1.45
        assert record.max_price == 1.65
        assert record.report_count == 2
        assert record.confidence == pytest.approx(0.7)
        assert record.last_seen_date == date(2026, 3, 11)
        assert record.last_reported_by == "u2"
        assert record.version == 2

    def test_merge_is_persisted(self, ledger):
        ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        ledger.observe("milk", "tesco", 1.65, date(2026, 3, 11), "u2")

        stored = ledger.get("milk", "tesco")
        assert stored.report_count == 2
        assert stored.average_price == pytest.approx(1.57)

    def test_same_day_different_price_merges(self, ledger):
        ledger.observe("milk", "tesco", 1.00, date(2026, 3, 1), "u1")
        result = ledger.observe("milk", "tesco", 2.00, date(2026, 3, 1), "u1")

        assert result.status is UpsertStatus.MERGED
        assert result.record.average_price == pytest.approx(1.5)

    def test_old_record_weight_floor(self, ledger):
        record = ledger.upsert("milk", "tesco", 1.00, date(2026, 1, 1), "u1")
        merged = ledger.merge(record, 2.00, date(2026, 3, 1), "u2")
        # existing weight floors at 0.3 once the record is 30+ days old
        assert merged.average_price == pytest.approx((2.00 + 1.00 * 0.3) / 1.3)

    def test_merge_is_pure(self, ledger):
        record = ledger.upsert("milk", "tesco", 1.00, date(2026, 3, 1), "u1")
        ledger.merge(record, 2.00, date(2026, 3, 2), "u2")
        assert ledger.get("milk", "tesco").report_count == 1


class TestOrderingAndIdempotence:
    def test_out_of_order_observation_is_stale(self, ledger):
        ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        ledger.observe("milk", "tesco", 1.65, date(2026, 3, 11), "u1")

        result = ledger.observe("milk", "tesco", 9.99, date(2026, 3, 5), "u2")

        assert result.status is UpsertStatus.STALE
        stored = ledger.get("milk", "tesco")
        assert stored.unit_price == 1.65
        assert stored.last_seen_date == date(2026, 3, 11)
        assert stored.report_count == 2
        assert stored.max_price == 1.65

    def test_exact_redelivery_not_double_counted(self, ledger):
        first = ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        again = ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")

        assert again.status is UpsertStatus.DUPLICATE
        assert again.record == first.record
        assert ledger.get("milk", "tesco").report_count == 1

    def test_redelivery_after_merge(self, ledger):
        ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        ledger.observe("milk", "tesco", 1.65, date(2026, 3, 11), "u1")
        result = ledger.observe("milk", "tesco", 1.65, date(2026, 3, 11), "u1")

        assert result.status is UpsertStatus.DUPLICATE
        assert result.record.report_count == 2

    def test_same_sequence_same_records(self, tmp_path):
        observations = [
            ("milk", "tesco", 1.45, date(2026, 3, 1), "u1"),
            ("milk", "tesco", 1.55, date(2026, 3, 8), "u2"),
            ("milk", "tesco", 1.20, date(2026, 3, 4), "u3"),
            ("milk", "tesco", 1.60, date(2026, 3, 20), "u1"),
            ("bread", "asda", 0.95, date(2026, 3, 2), "u2"),
        ]
        results = []
        for name in ("a.db", "b.db"):
            ledger = PriceLedger(tmp_path / name)
            for obs in observations:
                ledger.upsert(*obs)
            results.append(
                [dataclasses.replace(r, id=None) for r in ledger.lookup("milk")]
            )
            ledger.close()

        assert results[0] == results[1]


class TestSizeSlots:
    def test_equivalent_sizes_share_a_record(self, ledger):
        ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1", size="2 pints")
        result = ledger.observe("milk", "tesco", 1.50, date(2026, 3, 2), "u2", size="2pt")

        assert result.status is UpsertStatus.MERGED
        assert result.record.size == "2pt"

    def test_different_sizes_keep_separate_records(self, ledger):
        ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1", size="2pt")
        ledger.observe("milk", "tesco", 0.95, date(2026, 3, 1), "u1", size="1pt")
        ledger.observe("milk", "tesco", 1.30, date(2026, 3, 1), "u1")

        records = ledger.lookup("milk", "tesco")
        assert [r.size for r in records] == ["1pt", "", "2pt"]
        assert ledger.get("milk", "tesco", "2 pints").unit_price == 1.45
        assert ledger.get("milk", "tesco").unit_price == 1.30

    def test_close_decimal_sizes_keep_separate_records(self, ledger):
        ledger.observe("cola", "tesco", 2.00, date(2026, 3, 1), "u1", size="1.75L")
        result = ledger.observe("cola", "tesco", 3.00, date(2026, 3, 2), "u1", size="1.8L")

        assert result.status is UpsertStatus.INSERTED
        assert result.record.report_count == 1
        assert ledger.get("cola", "tesco", "1.75L").average_price == 2.00
        assert ledger.get("cola", "tesco", "1750ml").report_count == 1


class TestLookup:
    def test_cheapest_first_across_stores(self, ledger):
        ledger.upsert("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        ledger.upsert("milk", "asda", 1.20, date(2026, 3, 1), "u1")
        ledger.upsert("milk", "aldi", 1.20, date(2026, 3, 1), "u1")

        records = ledger.lookup("milk")
        assert [r.store_id for r in records] == ["aldi", "asda", "tesco"]

    def test_store_filter(self, ledger):
        ledger.upsert("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        ledger.upsert("milk", "asda", 1.20, date(2026, 3, 1), "u1")

        records = ledger.lookup("milk", "TESCO")
        assert [r.store_id for r in records] == ["tesco"]

    def test_lookup_normalizes_name(self, ledger):
        ledger.upsert("eggs", "tesco", 2.10, date(2026, 3, 1), "u1")
        assert len(ledger.lookup("Organic Eggs")) == 1

    def test_unknown_item(self, ledger):
        assert ledger.lookup("caviar") == []
        assert ledger.lookup("") == []
        assert ledger.get("caviar", "tesco") is None

    def test_stores_and_items(self, ledger):
        ledger.upsert("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
        ledger.upsert("milk", "asda", 1.20, date(2026, 3, 1), "u1")
        ledger.upsert("bread", "asda", 1.00, date(2026, 3, 1), "u1")

        assert ledger.stores_for("milk") == ["asda", "tesco"]
        assert ledger.known_items() == ["bread", "milk"]


class TestConcurrency:
    def test_conflict_is_retried(self, ledger):
        original = PriceLedger._apply
        calls = []

        def flaky(self, conn, obs):
            calls.append(obs)
            if len(calls) == 1:
                raise _VersionConflict
            return original(self, conn, obs)

        with patch.object(PriceLedger, "_apply", flaky):
            result = ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")

        assert len(calls) == 2
        assert result.status is UpsertStatus.INSERTED

    def test_stale_version_detected_and_retried(self, tmp_path):
        """A writer holding an outdated version loses the race and retries."""
        db_path = tmp_path / "shared.db"
        first = PriceLedger(db_path)
        second = PriceLedger(db_path)
        try:
            stale = first.upsert("milk", "tesco", 1.00, date(2026, 3, 1), "u1")
            second.upsert("milk", "tesco", 1.20, date(2026, 3, 2), "u2")

            real_fetch = PriceLedger._fetch
            stale_reads = iter([stale])

            def fetch(conn, name, store, slot):
                for record in stale_reads:
                    return record
                return real_fetch(conn, name, store, slot)

            with patch.object(PriceLedger, "_fetch", side_effect=fetch):
                result = first.observe("milk", "tesco", 1.40, date(2026, 3, 3), "u3")

            assert result.status is UpsertStatus.MERGED
            assert result.record.report_count == 3
            assert result.record.version == 3
        finally:
            first.close()
            second.close()

    def test_gives_up_with_retryable_error(self, ledger):
        with patch.object(PriceLedger, "_apply", side_effect=_VersionConflict):
            with pytest.raises(LedgerConflictError) as exc_info:
                ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")

        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value, LedgerError)

    def test_storage_errors_wrapped(self, ledger):
        with patch.object(
            PriceLedger, "_apply", side_effect=sqlite3.OperationalError("disk I/O error")
        ):
            with pytest.raises(LedgerError, match="ledger write failed"):
                ledger.observe("milk", "tesco", 1.45, date(2026, 3, 1), "u1")
