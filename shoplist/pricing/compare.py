"""What-if comparison of a shopping list's total across stores."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .config import SizesConfig
from .models import ListItem, PriceRecord, list_total
from .sizes import find_closest_size, parse_size, size_key

if TYPE_CHECKING:
    from .db import PriceLedger

logger = logging.getLogger(__name__)


class MatchKind(str, Enum):
    EXACT = "exact"  # same size, or both size-less
    TOLERANCE = "tolerance"  # a close size within the tolerance band
    FALLBACK = "fallback"  # no comparable size; cheapest record used


@dataclass(frozen=True)
class StoreMatch:
    record: PriceRecord
    kind: MatchKind


def match_store_record(
    size: str | None,
    records: list[PriceRecord],
    *,
    unit: str | None = None,
    sizes: SizesConfig | None = None,
) -> StoreMatch | None:
    """Pick the record at a store that best fits an item's size.

    ``records`` must be cheapest first, as returned by
    ``PriceLedger.lookup``. Returns None only when there are no records.
    """
    if not records:
        return None
    sizes = sizes or SizesConfig()

    target = parse_size(size, unit)
    if target is None:
        # No usable size: only the same slot ("" or the same raw text) is exact
        wanted = size_key(size, unit)
        for record in records:
            if record.size == wanted:
                return StoreMatch(record, MatchKind.EXACT)
    else:
        result = find_closest_size(
            target,
            [r.size for r in records],
            tolerance=sizes.tolerance,
            exact_tolerance=sizes.exact_tolerance,
        )
        best = result.best_match
        if best is not None and best.within_tolerance:
            kind = MatchKind.EXACT if best.is_exact else MatchKind.TOLERANCE
            return StoreMatch(records[best.index], kind)

    return StoreMatch(records[0], MatchKind.FALLBACK)


@dataclass(frozen=True)
class StoreAlternative:
    store_id: str
    total: float
    items_compared: int  # items without a price override
    items_with_issues: int  # no data, or not an exact size match
    savings: float  # current total minus this store's total


@dataclass
class StoreComparison:
    current_store_id: str | None
    current_total: float
    alternatives: list[StoreAlternative] = field(default_factory=list)

    @property
    def best(self) -> StoreAlternative | None:
        return self.alternatives[0] if self.alternatives else None


class StoreComparator:
    """Prices a list at other stores without changing it."""

    def __init__(self, ledger: PriceLedger, sizes: SizesConfig | None = None) -> None:
        self._ledger = ledger
        self._sizes = sizes or SizesConfig()

    def compare(
        self,
        items: list[ListItem],
        current_store_id: str | None,
        candidate_store_ids: list[str],
    ) -> StoreComparison:
        """Total the list at each candidate store.

        Items with a manual price keep it everywhere. Items a store has no
        data for keep their current price and count as an issue, so every
        item contributes to every total. Alternatives are sorted by
        savings, largest first.
        """
        current = current_store_id.strip().lower() if current_store_id else None
        comparison = StoreComparison(
            current_store_id=current, current_total=list_total(items)
        )

        seen: set[str] = set()
        for candidate in candidate_store_ids:
            store = candidate.strip().lower()
            if not store or store == current or store in seen:
                continue
            seen.add(store)
            comparison.alternatives.append(
                self._price_at(items, store, comparison.current_total)
            )

        comparison.alternatives.sort(key=lambda a: a.savings, reverse=True)
        return comparison

    def _price_at(
        self, items: list[ListItem], store_id: str, current_total: float
    ) -> StoreAlternative:
        total = 0.0
        compared = 0
        issues = 0

        for item in items:
            if item.price_override:
                total += item.line_total
                continue

            compared += 1
            match = match_store_record(
                item.size,
                self._ledger.lookup(item.name, store_id),
                unit=item.unit,
                sizes=self._sizes,
            )
            if match is None:
                issues += 1
                total += item.line_total
                continue

            if match.kind is not MatchKind.EXACT:
                issues += 1
            logger.debug(
                "%s at %s: %s match on %r", item.name, store_id, match.kind.value,
                match.record.size,
            )
            total += match.record.average_price * item.quantity

        total = round(total, 2)
        return StoreAlternative(
            store_id=store_id,
            total=total,
            items_compared=compared,
            items_with_issues=issues,
            savings=round(current_total - total, 2),
        )
