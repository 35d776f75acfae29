"""Data models shared by the price engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PriceSource(str, Enum):
    """Where a list item's price came from."""

    PERSONAL = "personal"  # the user's own receipts
    CROWDSOURCED = "crowdsourced"  # the shared price ledger
    AI = "ai"  # model-estimated variant price
    MANUAL = "manual"  # typed in by the user


@dataclass(frozen=True)
class PriceRecord:
    """Rolling price record for one item at one store (per size slot)."""

    normalized_name: str
    store_id: str
    size: str  # size slot; "" when observations carried no size
    unit_price: float  # most recent observed price
    average_price: float  # recency-weighted mean
    min_price: float
    max_price: float
    report_count: int
    confidence: float  # 0..1 at the time of the last merge
    last_seen_date: date
    last_reported_by: str
    version: int = 1
    id: int | None = None

    @property
    def estimate(self) -> float:
        """Best single-figure price for this record."""
        return self.average_price


@dataclass(frozen=True)
class Variant:
    """A known size/packaging option of a base item."""

    base_item: str  # normalized item name
    variant_name: str  # e.g. "Semi-skimmed 2 pints"
    size: str
    unit: str = ""
    category: str = ""  # size category ("volume", "weight", "count")
    commonality: float = 0.0  # 0..1, how often this variant is reported
    estimated_price: float | None = None
    source: str = "receipt"  # "receipt" | "ai" | "manual"


@dataclass
class ListItem:
    """A shopping-list row as seen by the price engine.

    ``price_override`` and ``size_override`` are sticky user edits that
    stop automatic re-pricing. ``original_size`` remembers the size chosen
    before a store switch drifted it.
    """

    name: str
    quantity: float = 1.0
    size: str | None = None
    unit: str | None = None
    estimated_price: float | None = None
    price_source: PriceSource | None = None
    price_confidence: float | None = None
    price_override: bool = False
    size_override: bool = False
    original_size: str | None = None
    id: int | None = None

    @property
    def line_total(self) -> float:
        if self.estimated_price is None:
            return 0.0
        return self.estimated_price * self.quantity


def list_total(items: list[ListItem]) -> float:
    """Sum of ``estimated_price * quantity``, rounded to pennies."""
    return round(sum(item.line_total for item in items), 2)
