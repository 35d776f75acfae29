"""Feeding parsed receipt lines into the price ledger."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from .db.ledger import LedgerError, UpsertStatus
from .matching import normalize_item_name
from .stores import normalize_store_name, store_slug

if TYPE_CHECKING:
    from .db import PriceLedger

logger = logging.getLogger(__name__)

# Receipt lines that are not groceries
_NON_GROCERY_KEYWORDS: list[str] = [
    "carrier bag", "bag for life", "bag charge", "coupon", "voucher",
    "discount", "savings", "clubcard", "nectar", "points",
    "balance due", "change due", "amount due", "cash", "card payment",
    "visa", "mastercard", "contactless", "vat", "refund", "deposit return",
]
_NON_GROCERY = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in _NON_GROCERY_KEYWORDS) + r")\b",
    re.IGNORECASE,
)
# "TOTAL", "Sub-total", "SUBTOTAL" lines
_TOTAL_LINE = re.compile(r"^\s*(?:sub-?\s?)?total\b", re.IGNORECASE)

# Trailing pack size such as "Milk 2L", "Beans 4 x 400g", "Eggs 12pk"
_TRAILING_SIZE = re.compile(
    r"\s+(\d+(?:[.,]\d+)?\s*(?:x\s*\d+(?:[.,]\d+)?\s*)?"
    r"(?:ml|cl|l|ltr|litres?|g|kg|oz|lb|pt|pints?|pk|pack))\s*$",
    re.IGNORECASE,
)


@dataclass
class ReceiptLine:
    """A single priced line from a shopping receipt."""

    product_name: str
    price: float  # line total
    quantity: float = 1
    size: str = ""
    store_name: str = ""
    purchase_date: str = ""  # ISO date
    receipt_id: str = ""
    reporter_id: str = ""


@dataclass
class IngestSummary:
    upserted: int = 0  # inserted or merged into a record
    stale: int = 0  # older than the record; history only
    duplicate: int = 0  # already ingested
    skipped: int = 0  # not a grocery line, or unusable
    failed: int = 0  # storage errors

    @property
    def total(self) -> int:
        return self.upserted + self.stale + self.duplicate + self.skipped + self.failed


class ReceiptIngestor:
    """Turns receipt lines into ledger observations."""

    def __init__(self, ledger: PriceLedger) -> None:
        self._ledger = ledger

    def ingest(self, lines: list[ReceiptLine]) -> IngestSummary:
        summary = IngestSummary()

        for line in lines:
            if self._is_non_grocery(line.product_name):
                summary.skipped += 1
                continue

            try:
                price = float(line.price)
                quantity = float(line.quantity)
            except (TypeError, ValueError):
                logger.warning("Skipping receipt line with bad price or quantity: %r", line)
                summary.skipped += 1
                continue

            name, size = self.split_size(line.product_name)
            name = normalize_item_name(name)
            size = line.size or size
            store = self.resolve_store(line.store_name)
            observed = self._parse_date(line.purchase_date)
            if not name or not store or observed is None or quantity <= 0:
                logger.debug("Skipping unusable receipt line: %r", line)
                summary.skipped += 1
                continue

            try:
                result = self._ledger.observe(
                    name,
                    store,
                    round(price / quantity, 2),
                    observed,
                    line.reporter_id,
                    size=size or None,
                    receipt_id=line.receipt_id or None,
                )
            except (LedgerError, ValueError):
                logger.exception("Failed to record %s@%s", name, store)
                summary.failed += 1
                continue

            match result.status:
                case UpsertStatus.INSERTED | UpsertStatus.MERGED:
                    summary.upserted += 1
                case UpsertStatus.STALE:
                    summary.stale += 1
                case UpsertStatus.DUPLICATE:
                    summary.duplicate += 1

        logger.info(
            "Ingested %d receipt lines: %d upserted, %d stale, %d duplicate, "
            "%d skipped, %d failed",
            summary.total, summary.upserted, summary.stale, summary.duplicate,
            summary.skipped, summary.failed,
        )
        return summary

    @staticmethod
    def split_size(product_name: str) -> tuple[str, str]:
        """Split a trailing pack size off a product name.

        "Semi Skimmed Milk 2 Pints" → ("Semi Skimmed Milk", "2 Pints")
        """
        name = product_name.strip()
        m = _TRAILING_SIZE.search(name)
        if not m:
            return name, ""
        return name[: m.start()].strip(), m.group(1).strip()

    @staticmethod
    def resolve_store(store_name: str) -> str:
        """Canonical store id, or a slug of the raw name if unknown."""
        if not store_name or not store_name.strip():
            return ""
        store = normalize_store_name(store_name)
        if store is None:
            store = store_slug(store_name)
            logger.warning("Unknown store %r; recording as %r", store_name, store)
        return store

    @staticmethod
    def _is_non_grocery(product_name: str) -> bool:
        return bool(
            _NON_GROCERY.search(product_name) or _TOTAL_LINE.match(product_name)
        )

    @staticmethod
    def _parse_date(raw: str) -> date | None:
        try:
            return date.fromisoformat(raw[:10])
        except (ValueError, TypeError):
            return None


def lines_from_receipt(data: dict, reporter_id: str = "") -> list[ReceiptLine]:
    """Build receipt lines from a receipt JSON document.

    Expected shape::

        {"store": "Tesco Express", "date": "2026-03-01", "receipt_id": "r1",
         "items": [{"name": "Milk 2 pints", "price": 1.45, "quantity": 1}]}

    Prices and quantities are passed through as written; the ingestor
    converts them and skips lines where that fails.
    """
    return [
        ReceiptLine(
            product_name=str(item.get("name") or ""),
            price=item.get("price", 0),
            quantity=item.get("quantity", 1),
            size=item.get("size", ""),
            store_name=data.get("store", ""),
            purchase_date=data.get("date", ""),
            receipt_id=data.get("receipt_id", ""),
            reporter_id=reporter_id or data.get("reporter", ""),
        )
        for item in data.get("items", [])
    ]
