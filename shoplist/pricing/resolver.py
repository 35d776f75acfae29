"""Price and size resolution for newly added list items.

Tiers are tried in a fixed order:

1. store variants: known pack sizes of the item priced at the chosen store
2. personal: the most recent price this user paid
3. crowdsourced: the cheapest ledger record at any store
4. ai: a model-estimated variant price

The first tier that yields a size fixes the size; the first tier that
yields a price fixes the price and ends the cascade. Running out of
tiers is a normal outcome: the item is left unpriced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from .config import CascadeConfig
from .matching import normalize_item_name
from .models import PriceRecord, PriceSource, Variant
from .sizes import sizes_equivalent, size_key

if TYPE_CHECKING:
    from .db import PriceHistoryDB, PriceLedger, VariantDB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one item name."""

    size: str | None = None
    unit: str | None = None
    price: float | None = None
    source: PriceSource | None = None
    confidence: float | None = None
    store_id: str | None = None  # store the price was seen at, if known

    @property
    def has_price(self) -> bool:
        return self.price is not None

    def describe(self) -> str:
        match self.source:
            case PriceSource.PERSONAL:
                origin = "your last purchase"
            case PriceSource.CROWDSOURCED:
                origin = f"shared prices at {self.store_id}" if self.store_id else "shared prices"
            case PriceSource.AI:
                origin = "an AI estimate"
            case PriceSource.MANUAL:
                origin = "manual entry"
            case None:
                return f"no price yet ({self.size})" if self.size else "no price yet"

        size = f" for {self.size}" if self.size else ""
        return f"£{self.price:.2f}{size} from {origin} ({self.confidence:.0%} confidence)"


@dataclass(frozen=True)
class TierResult:
    """What a single tier found. Either field may be missing."""

    tier: str
    size: str | None = None
    unit: str | None = None
    price: float | None = None
    source: PriceSource | None = None
    confidence: float | None = None
    store_id: str | None = None


class ResolutionCascade:
    """Resolves a size and price for an item name from stored data."""

    def __init__(
        self,
        ledger: PriceLedger,
        variants: VariantDB,
        history: PriceHistoryDB,
        config: CascadeConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._variants = variants
        self._history = history
        self._config = config or CascadeConfig()

    def resolve(
        self,
        item_name: str,
        store_id: str | None = None,
        user_id: str | None = None,
    ) -> Resolution:
        name = normalize_item_name(item_name)
        if not name:
            return Resolution()
        store = store_id.strip().lower() if store_id else None

        variants = self._variants.get_by_base_item(name)
        tiers: tuple[Callable[[], TierResult | None], ...] = (
            lambda: self._store_variant_tier(name, store, variants),
            lambda: self._personal_tier(name, user_id),
            lambda: self._crowdsourced_tier(name),
            lambda: self._ai_tier(variants),
        )

        size: str | None = None
        unit: str | None = None
        for tier in tiers:
            found = tier()
            if found is None:
                continue
            if size is None and found.size:
                size, unit = found.size, found.unit
            if found.price is not None:
                logger.debug(
                    "Resolved %s via %s tier: %.2f (%s)",
                    name, found.tier, found.price, size or "no size",
                )
                return Resolution(
                    size=size,
                    unit=unit,
                    price=found.price,
                    source=found.source,
                    confidence=found.confidence,
                    store_id=found.store_id,
                )

        logger.debug("No price found for %s", name)
        return Resolution(size=size, unit=unit)

    def resolve_many(
        self,
        item_names: list[str],
        store_id: str | None = None,
        user_id: str | None = None,
    ) -> dict[str, Resolution]:
        """Resolve a batch of names, keyed by the name as given."""
        return {
            item_name: self.resolve(item_name, store_id, user_id)
            for item_name in item_names
        }

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _store_variant_tier(
        self, name: str, store_id: str | None, variants: list[Variant]
    ) -> TierResult | None:
        if store_id is None or not variants:
            return None

        records = self._ledger.lookup(name, store_id)
        priced: list[tuple[Variant, PriceRecord]] = []
        for variant in variants:
            record = _record_for_variant(variant, records)
            if record is not None:
                priced.append((variant, record))

        if priced:
            variant, record = min(
                priced, key=lambda vr: (-vr[0].commonality, vr[1].average_price)
            )
            return TierResult(
                tier="variant",
                size=variant.size,
                unit=variant.unit or None,
                price=record.average_price,
                source=PriceSource.CROWDSOURCED,
                confidence=record.confidence,
                store_id=store_id,
            )

        # Known sizes but no price here yet: the size alone is still useful
        top = variants[0]
        return TierResult(tier="variant", size=top.size, unit=top.unit or None)

    def _personal_tier(self, name: str, user_id: str | None) -> TierResult | None:
        if not user_id:
            return None
        point = self._history.latest_price(user_id, name)
        if point is None:
            return None
        return TierResult(
            tier="personal",
            size=point.size or None,
            price=point.price,
            source=PriceSource.PERSONAL,
            confidence=self._config.personal_confidence,
            store_id=point.store_id,
        )

    def _crowdsourced_tier(self, name: str) -> TierResult | None:
        records = self._ledger.lookup(name)
        if not records:
            return None
        cheapest = records[0]
        return TierResult(
            tier="crowdsourced",
            size=cheapest.size or None,
            price=cheapest.average_price,
            source=PriceSource.CROWDSOURCED,
            confidence=self._config.crowdsourced_confidence,
            store_id=cheapest.store_id,
        )

    def _ai_tier(self, variants: list[Variant]) -> TierResult | None:
        for variant in variants:
            if variant.estimated_price is not None:
                return TierResult(
                    tier="ai",
                    size=variant.size,
                    unit=variant.unit or None,
                    price=variant.estimated_price,
                    source=PriceSource.AI,
                    confidence=self._config.ai_confidence,
                )
        return None


def _record_for_variant(
    variant: Variant, records: list[PriceRecord]
) -> PriceRecord | None:
    """The store record matching a variant's size.

    A record whose size slot is empty carries no size information and
    matches any variant, but a record of the same size is preferred.
    """
    sizeless: PriceRecord | None = None
    wanted = size_key(variant.size, variant.unit)
    for record in records:
        if not record.size:
            sizeless = sizeless or record
        elif record.size == wanted or sizes_equivalent(record.size, wanted):
            return record
    return sizeless
