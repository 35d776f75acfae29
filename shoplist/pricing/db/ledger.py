"""Rolling per-item, per-store price ledger backed by SQLite."""

from __future__ import annotations

import dataclasses
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from ..matching import normalize_item_name
from ..models import PriceRecord
from ..sizes import size_key
from ..weighting import DEFAULT_POLICY, WeightingPolicy, days_between
from .schema import ensure_schema

if TYPE_CHECKING:
    from ..config import PricingConfig

logger = logging.getLogger(__name__)


class LedgerError(RuntimeError):
    """Reading or writing the price ledger failed."""


class LedgerConflictError(LedgerError):
    """A concurrent writer kept winning the race for the same record.

    Transient: the same upsert can be re-invoked safely.
    """

    retryable = True


class _VersionConflict(Exception):
    pass


class UpsertStatus(str, Enum):
    INSERTED = "inserted"  # first observation for the item/store/size
    MERGED = "merged"  # folded into the rolling averages
    STALE = "stale"  # older than the record; stored as history only
    DUPLICATE = "duplicate"  # exact re-delivery of a stored observation


@dataclass(frozen=True)
class UpsertResult:
    record: PriceRecord
    status: UpsertStatus


class PriceLedger:
    """Maintains the price_records table.

    Each record covers one normalized item at one store and one size slot.
    Every accepted observation is also kept in price_observations, which
    deduplicates exact re-deliveries and serves as personal price history.
    """

    def __init__(
        self,
        db_path: str | Path = "~/.config/shoplist/pricing.db",
        *,
        policy: WeightingPolicy = DEFAULT_POLICY,
        max_retries: int = 5,
    ) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._policy = policy
        self._max_retries = max(1, max_retries)

    @classmethod
    def from_config(cls, config: PricingConfig) -> PriceLedger:
        return cls(
            config.database.path,
            policy=WeightingPolicy.from_config(config.ledger),
            max_retries=config.ledger.max_retries,
        )

    @property
    def policy(self) -> WeightingPolicy:
        return self._policy

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(
        self,
        normalized_name: str,
        store_id: str,
        observed_price: float,
        observed_date: date,
        reporter_id: str,
        *,
        size: str | None = None,
        receipt_id: str | None = None,
        as_of: date | None = None,
    ) -> PriceRecord:
        """Fold one observed price into the ledger and return the record."""
        return self.observe(
            normalized_name,
            store_id,
            observed_price,
            observed_date,
            reporter_id,
            size=size,
            receipt_id=receipt_id,
            as_of=as_of,
        ).record

    def observe(
        self,
        normalized_name: str,
        store_id: str,
        observed_price: float,
        observed_date: date,
        reporter_id: str,
        *,
        size: str | None = None,
        receipt_id: str | None = None,
        as_of: date | None = None,
    ) -> UpsertResult:
        """Fold one observed price into the ledger.

        ``as_of`` is the reference date for recency decay and defaults to
        ``observed_date``; the wall clock is never consulted, so the same
        sequence of calls always produces the same records.

        Raises:
            ValueError: On an empty item/store or a negative price.
            LedgerConflictError: If optimistic retries are exhausted.
            LedgerError: On any other storage failure.
        """
        name = normalize_item_name(normalized_name)
        store = (store_id or "").strip().lower()
        if not name or not store:
            raise ValueError("item name and store id are required")
        if observed_price < 0:
            raise ValueError(f"negative price for {name!r}: {observed_price}")

        observation = _Observation(
            name=name,
            store=store,
            slot=size_key(size),
            price=float(observed_price),
            observed_date=observed_date,
            reporter=reporter_id,
            receipt_id=receipt_id,
            as_of=as_of or observed_date,
        )

        conn = self._get_conn()
        for attempt in range(1, self._max_retries + 1):
            try:
                result = self._apply(conn, observation)
            except _VersionConflict:
                conn.rollback()
                logger.debug(
                    "Version conflict on %s@%s (attempt %d/%d)",
                    name, store, attempt, self._max_retries,
                )
                continue
            except sqlite3.Error as e:
                conn.rollback()
                raise LedgerError(f"ledger write failed for {name!r}@{store}") from e

            conn.commit()
            return result

        raise LedgerConflictError(
            f"gave up on {name!r}@{store} after {self._max_retries} conflicting writes"
        )

    def _apply(self, conn: sqlite3.Connection, obs: _Observation) -> UpsertResult:
        cur = conn.execute(
            """INSERT OR IGNORE INTO price_observations
               (normalized_name, store_id, size_key, price, observed_date,
                reporter_id, receipt_id)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                obs.name,
                obs.store,
                obs.slot,
                obs.price,
                obs.observed_date.isoformat(),
                obs.reporter,
                obs.receipt_id,
            ),
        )
        is_redelivery = cur.rowcount == 0

        record = self._fetch(conn, obs.name, obs.store, obs.slot)

        if is_redelivery and record is not None:
            return UpsertResult(record, UpsertStatus.DUPLICATE)

        if record is None:
            record = self._new_record(obs)
            try:
                cur = conn.execute(
                    """INSERT INTO price_records
                       (normalized_name, store_id, size_key, unit_price,
                        average_price, min_price, max_price, report_count,
                        confidence, last_seen_date, last_reported_by, version)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    _record_params(record),
                )
            except sqlite3.IntegrityError:
                # Another writer created the record first; retry as a merge
                raise _VersionConflict from None
            return UpsertResult(
                dataclasses.replace(record, id=cur.lastrowid), UpsertStatus.INSERTED
            )

        if obs.observed_date < record.last_seen_date:
            logger.warning(
                "Out-of-order price for %s@%s: %s is older than %s; kept as history only",
                obs.name, obs.store, obs.observed_date, record.last_seen_date,
            )
            return UpsertResult(record, UpsertStatus.STALE)

        merged = self.merge(record, obs.price, obs.observed_date, obs.reporter, as_of=obs.as_of)
        cur = conn.execute(
            """UPDATE price_records
               SET unit_price = ?, average_price = ?, min_price = ?, max_price = ?,
                   report_count = ?, confidence = ?, last_seen_date = ?,
                   last_reported_by = ?, version = ?,
                   updated_at = datetime('now', 'localtime')
               WHERE id = ? AND version = ?""",
            (
                merged.unit_price,
                merged.average_price,
                merged.min_price,
                merged.max_price,
                merged.report_count,
                merged.confidence,
                merged.last_seen_date.isoformat(),
                merged.last_reported_by,
                merged.version,
                record.id,
                record.version,
            ),
        )
        if cur.rowcount != 1:
            raise _VersionConflict
        return UpsertResult(merged, UpsertStatus.MERGED)

    def _new_record(self, obs: _Observation) -> PriceRecord:
        age = days_between(obs.observed_date, obs.as_of)
        return PriceRecord(
            normalized_name=obs.name,
            store_id=obs.store,
            size=obs.slot,
            unit_price=obs.price,
            average_price=obs.price,
            min_price=obs.price,
            max_price=obs.price,
            report_count=1,
            confidence=self._policy.initial_confidence(age),
            last_seen_date=obs.observed_date,
            last_reported_by=obs.reporter,
        )

    def merge(
        self,
        record: PriceRecord,
        observed_price: float,
        observed_date: date,
        reporter_id: str,
        *,
        as_of: date | None = None,
    ) -> PriceRecord:
        """Return ``record`` with one newer observation folded in.

        Pure: computes the merged record without touching storage.
        """
        as_of = as_of or observed_date
        observation_age = days_between(observed_date, as_of)
        weights = self._policy.merge_weights(
            observation_age, days_between(record.last_seen_date, as_of)
        )
        average = (
            observed_price * weights.new + record.average_price * weights.existing
        ) / (weights.new + weights.existing)
        report_count = record.report_count + 1

        return dataclasses.replace(
            record,
            unit_price=observed_price,
            average_price=average,
            min_price=min(record.min_price, observed_price),
            max_price=max(record.max_price, observed_price),
            report_count=report_count,
            confidence=self._policy.confidence(report_count, observation_age),
            last_seen_date=observed_date,
            last_reported_by=reporter_id,
            version=record.version + 1,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, normalized_name: str, store_id: str | None = None) -> list[PriceRecord]:
        """All records for an item, optionally limited to one store.

        Ordered cheapest first by ``unit_price``.
        """
        name = normalize_item_name(normalized_name)
        if not name:
            return []

        query = "SELECT * FROM price_records WHERE normalized_name = ?"
        params: list = [name]
        if store_id is not None:
            query += " AND store_id = ?"
            params.append(store_id.strip().lower())
        query += " ORDER BY unit_price, store_id, size_key"

        rows = self._read(query, params)
        return [_row_to_record(r) for r in rows]

    def get(
        self, normalized_name: str, store_id: str, size: str | None = None
    ) -> PriceRecord | None:
        """The record for one item/store/size slot, if any."""
        conn = self._get_conn()
        try:
            return self._fetch(
                conn,
                normalize_item_name(normalized_name),
                store_id.strip().lower(),
                size_key(size),
            )
        except sqlite3.Error as e:
            raise LedgerError(f"ledger read failed for {normalized_name!r}") from e

    def stores_for(self, normalized_name: str) -> list[str]:
        """Store ids holding at least one record for the item."""
        rows = self._read(
            """SELECT DISTINCT store_id FROM price_records
               WHERE normalized_name = ? ORDER BY store_id""",
            [normalize_item_name(normalized_name)],
        )
        return [r["store_id"] for r in rows]

    def known_items(self) -> list[str]:
        """Every normalized item name in the ledger."""
        rows = self._read(
            "SELECT DISTINCT normalized_name FROM price_records ORDER BY normalized_name",
            [],
        )
        return [r["normalized_name"] for r in rows]

    def _read(self, query: str, params: list) -> list[sqlite3.Row]:
        conn = self._get_conn()
        try:
            return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise LedgerError("ledger read failed") from e

    @staticmethod
    def _fetch(
        conn: sqlite3.Connection, name: str, store: str, slot: str
    ) -> PriceRecord | None:
        row = conn.execute(
            """SELECT * FROM price_records
               WHERE normalized_name = ? AND store_id = ? AND size_key = ?""",
            (name, store, slot),
        ).fetchone()
        return _row_to_record(row) if row else None


@dataclass(frozen=True)
class _Observation:
    name: str
    store: str
    slot: str
    price: float
    observed_date: date
    reporter: str
    receipt_id: str | None
    as_of: date


def _record_params(record: PriceRecord) -> tuple:
    return (
        record.normalized_name,
        record.store_id,
        record.size,
        record.unit_price,
        record.average_price,
        record.min_price,
        record.max_price,
        record.report_count,
        record.confidence,
        record.last_seen_date.isoformat(),
        record.last_reported_by,
        record.version,
    )


def _row_to_record(row: sqlite3.Row) -> PriceRecord:
    return PriceRecord(
        id=row["id"],
        normalized_name=row["normalized_name"],
        store_id=row["store_id"],
        size=row["size_key"],
        unit_price=row["unit_price"],
        average_price=row["average_price"],
        min_price=row["min_price"],
        max_price=row["max_price"],
        report_count=row["report_count"],
        confidence=row["confidence"],
        last_seen_date=date.fromisoformat(row["last_seen_date"]),
        last_reported_by=row["last_reported_by"],
        version=row["version"],
    )
