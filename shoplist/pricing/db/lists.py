"""Shopping list storage and atomic store-switch commits."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

from ..models import ListItem, PriceSource, list_total
from .schema import ensure_schema

if TYPE_CHECKING:
    from ..switch import StoreSwitchResult


class ShoppingListDB:
    """Manages the shopping_lists and list_items tables."""

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

    def create_list(self, name: str, store_id: str | None = None) -> int:
        conn = self._get_conn()
        cur = conn.execute(
            "INSERT INTO shopping_lists (name, store_id) VALUES (?, ?)",
            (name, store_id),
        )
        conn.commit()
        return cur.lastrowid

    def get_list(self, list_id: int) -> dict | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM shopping_lists WHERE id = ?", (list_id,)
        ).fetchone()
        return dict(row) if row else None

    def add_items(self, list_id: int, items: list[ListItem]) -> list[int]:
        """Insert items and refresh the list total.

        Returns:
            List of inserted row IDs.
        """
        conn = self._get_conn()
        ids: list[int] = []
        for item in items:
            cur = conn.execute(
                """INSERT INTO list_items
                   (list_id, name, quantity, size, unit, estimated_price,
                    price_source, price_confidence, price_override,
                    size_override, original_size)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (list_id, item.name, item.quantity, *_priced_fields(item)),
            )
            ids.append(cur.lastrowid)
        self._refresh_total(conn, list_id)
        conn.commit()
        return ids

    def get_items(self, list_id: int) -> list[ListItem]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM list_items WHERE list_id = ? ORDER BY id", (list_id,)
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def apply_switch(self, list_id: int, result: StoreSwitchResult) -> None:
        """Persist a computed store switch in a single transaction.

        Every item row, the list's store and its recomputed total are
        written together; any failure rolls all of them back.
        """
        conn = self._get_conn()
        try:
            for item in result.items:
                if item.id is None:
                    raise ValueError(f"item {item.name!r} has no id; save it before switching")
                conn.execute(
                    """UPDATE list_items
                       SET size = ?, unit = ?, estimated_price = ?, price_source = ?,
                           price_confidence = ?, price_override = ?,
                           size_override = ?, original_size = ?,
                           updated_at = datetime('now', 'localtime')
                       WHERE id = ? AND list_id = ?""",
                    (*_priced_fields(item), item.id, list_id),
                )
            conn.execute(
                """UPDATE shopping_lists
                   SET store_id = ?, updated_at = datetime('now', 'localtime')
                   WHERE id = ?""",
                (result.new_store, list_id),
            )
            # Total is read back after all item writes
            self._refresh_total(conn, list_id)
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    @staticmethod
    def _refresh_total(conn: sqlite3.Connection, list_id: int) -> None:
        rows = conn.execute(
            "SELECT * FROM list_items WHERE list_id = ?", (list_id,)
        ).fetchall()
        total = list_total([_row_to_item(r) for r in rows])
        conn.execute(
            "UPDATE shopping_lists SET total = ? WHERE id = ?", (total, list_id)
        )


def _priced_fields(item: ListItem) -> tuple:
    return (
        item.size,
        item.unit,
        item.estimated_price,
        item.price_source.value if item.price_source else None,
        item.price_confidence,
        int(item.price_override),
        int(item.size_override),
        item.original_size,
    )


def _row_to_item(row: sqlite3.Row) -> ListItem:
    return ListItem(
        id=row["id"],
        name=row["name"],
        quantity=row["quantity"],
        size=row["size"],
        unit=row["unit"],
        estimated_price=row["estimated_price"],
        price_source=PriceSource(row["price_source"]) if row["price_source"] else None,
        price_confidence=row["price_confidence"],
        price_override=bool(row["price_override"]),
        size_override=bool(row["size_override"]),
        original_size=row["original_size"],
    )
