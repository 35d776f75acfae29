"""Known size/packaging variants of base items."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from ..matching import normalize_item_name
from ..models import Variant
from ..sizes import parse_size
from .schema import ensure_schema


class VariantDB:
    """Manages the item_variants table."""

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

    def upsert(self, variant: Variant) -> None:
        """Insert or update a variant keyed by (base item, variant name).

        The size category is filled in from the size when not given.
        """
        conn = self._get_conn()
        category = variant.category
        if not category:
            parsed = parse_size(variant.size, variant.unit)
            category = parsed.category.value if parsed else ""

        conn.execute(
            """INSERT INTO item_variants
               (base_item, variant_name, size, unit, category, commonality,
                estimated_price, source)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(base_item, variant_name) DO UPDATE SET
                 size=excluded.size,
                 unit=excluded.unit,
                 category=excluded.category,
                 commonality=excluded.commonality,
                 estimated_price=COALESCE(excluded.estimated_price, estimated_price),
                 source=excluded.source,
                 updated_at=datetime('now', 'localtime')""",
            (
                normalize_item_name(variant.base_item),
                variant.variant_name,
                variant.size,
                variant.unit,
                category,
                variant.commonality,
                variant.estimated_price,
                variant.source,
            ),
        )
        conn.commit()

    def upsert_many(self, variants: list[Variant]) -> int:
        for variant in variants:
            self.upsert(variant)
        return len(variants)

    def get_by_base_item(self, base_item: str) -> list[Variant]:
        """Variants of an item, most common first."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM item_variants WHERE base_item = ?
               ORDER BY commonality DESC, id""",
            (normalize_item_name(base_item),),
        ).fetchall()
        return [_row_to_variant(r) for r in rows]

    def all_base_items(self) -> list[str]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT DISTINCT base_item FROM item_variants ORDER BY base_item"
        ).fetchall()
        return [r["base_item"] for r in rows]


def _row_to_variant(row: sqlite3.Row) -> Variant:
    return Variant(
        base_item=row["base_item"],
        variant_name=row["variant_name"],
        size=row["size"],
        unit=row["unit"],
        category=row["category"],
        commonality=row["commonality"],
        estimated_price=row["estimated_price"],
        source=row["source"],
    )
