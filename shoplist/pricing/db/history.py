"""Personal price history built from a user's own receipt observations."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path

from ..matching import normalize_item_name
from .schema import ensure_schema

# Latest price vs the mean of earlier ones
_TREND_THRESHOLD_PCT = 10.0
_TREND_WINDOW = 5

_ALERT_THRESHOLD_PCT = 15.0
_ALERT_WINDOW = 5


@dataclass(frozen=True)
class PricePoint:
    normalized_name: str
    price: float
    store_id: str
    size: str
    observed_date: date


@dataclass(frozen=True)
class PriceStats:
    average: float
    min: float
    max: float
    lowest_store: str
    data_points: int


@dataclass(frozen=True)
class PriceAlert:
    item_name: str
    kind: str  # "increase" | "decrease"
    percent_change: float  # absolute value
    old_price: float  # mean of the previous prices
    new_price: float


class PriceHistoryDB:
    """Read-side queries over the price_observations table for one user."""

    def __init__(self, db_path: str | Path = "~/.config/shoplist/pricing.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _recent(self, user_id: str, item_name: str, limit: int | None = None) -> list[PricePoint]:
        conn = self._get_conn()
        query = """SELECT * FROM price_observations
                   WHERE reporter_id = ? AND normalized_name = ?
                   ORDER BY observed_date DESC, id DESC"""
        params: list = [user_id, normalize_item_name(item_name)]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return [_row_to_point(r) for r in conn.execute(query, params).fetchall()]

    def latest_price(self, user_id: str, item_name: str) -> PricePoint | None:
        """The most recent price this user paid for the item, at any store."""
        recent = self._recent(user_id, item_name, limit=1)
        return recent[0] if recent else None

    def price_stats(
        self, user_id: str, item_name: str, *, as_of: date, days: int = 90
    ) -> PriceStats | None:
        """Average/min/max over the user's prices in the last ``days`` days."""
        since = (as_of - timedelta(days=days)).isoformat()
        points = [
            p for p in self._recent(user_id, item_name)
            if p.observed_date.isoformat() >= since
        ]
        if not points:
            return None

        prices = [p.price for p in points]
        lowest = min(points, key=lambda p: p.price)
        return PriceStats(
            average=sum(prices) / len(prices),
            min=min(prices),
            max=max(prices),
            lowest_store=lowest.store_id,
            data_points=len(points),
        )

    def price_trend(self, user_id: str, item_name: str) -> str:
        """"increasing", "decreasing" or "stable" from the last few purchases."""
        recent = self._recent(user_id, item_name, limit=_TREND_WINDOW)
        if len(recent) < 2:
            return "stable"

        latest = recent[0].price
        older = [p.price for p in recent[1:]]
        older_average = sum(older) / len(older)
        if older_average == 0:
            return "stable"

        change = (latest - older_average) / older_average * 100
        if change > _TREND_THRESHOLD_PCT:
            return "increasing"
        if change < -_TREND_THRESHOLD_PCT:
            return "decreasing"
        return "stable"

    def check_price_alerts(
        self,
        user_id: str,
        lines: list[tuple[str, float]],
        *,
        receipt_id: str | None = None,
    ) -> list[PriceAlert]:
        """Flag receipt lines whose price moved sharply against history.

        Args:
            lines: (item name, unit price) pairs from a new receipt.
            receipt_id: Observations from this receipt are not compared
                against themselves.
        """
        conn = self._get_conn()
        alerts: list[PriceAlert] = []
        for item_name, new_price in lines:
            rows = conn.execute(
                """SELECT price FROM price_observations
                   WHERE reporter_id = ? AND normalized_name = ?
                     AND (receipt_id IS NULL OR receipt_id != ?)
                   ORDER BY observed_date DESC, id DESC
                   LIMIT ?""",
                (user_id, normalize_item_name(item_name), receipt_id or "", _ALERT_WINDOW),
            ).fetchall()
            if not rows:
                continue

            previous = sum(r["price"] for r in rows) / len(rows)
            if previous == 0:
                continue

            change = (new_price - previous) / previous * 100
            if abs(change) > _ALERT_THRESHOLD_PCT:
                alerts.append(
                    PriceAlert(
                        item_name=item_name,
                        kind="increase" if change > 0 else "decrease",
                        percent_change=abs(change),
                        old_price=previous,
                        new_price=new_price,
                    )
                )
        return alerts

    def unique_items(self, user_id: str) -> list[PricePoint]:
        """Latest price point for every item the user has bought."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM price_observations
               WHERE reporter_id = ?
               ORDER BY normalized_name, observed_date DESC, id DESC""",
            (user_id,),
        ).fetchall()

        latest: dict[str, PricePoint] = {}
        for row in rows:
            latest.setdefault(row["normalized_name"], _row_to_point(row))
        return list(latest.values())


def _row_to_point(row: sqlite3.Row) -> PricePoint:
    return PricePoint(
        normalized_name=row["normalized_name"],
        price=row["price"],
        store_id=row["store_id"],
        size=row["size_key"],
        observed_date=date.fromisoformat(row["observed_date"]),
    )
