"""Re-pricing a shopping list when the user changes store."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .compare import MatchKind, match_store_record
from .config import SizesConfig
from .db.ledger import LedgerError
from .models import ListItem, PriceSource, list_total
from .sizes import parse_size, size_key, sizes_equivalent

if TYPE_CHECKING:
    from .db import PriceLedger, ShoppingListDB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SizeChange:
    item_name: str
    old_size: str | None
    new_size: str | None
    match: MatchKind
    restored: bool = False  # switched back to the size chosen before


@dataclass(frozen=True)
class PriceChange:
    item_name: str
    old_price: float | None
    new_price: float


@dataclass
class StoreSwitchResult:
    previous_store: str | None
    new_store: str
    items: list[ListItem] = field(default_factory=list)  # re-priced copies
    size_changes: list[SizeChange] = field(default_factory=list)
    price_changes: list[PriceChange] = field(default_factory=list)
    items_updated: int = 0
    manual_overrides_preserved: int = 0
    previous_total: float = 0.0
    new_total: float = 0.0
    savings: float = 0.0
    failed_items: list[str] = field(default_factory=list)


class StoreSwitchRepricer:
    """Moves list items onto another store's sizes and prices.

    ``switch`` never mutates its input and never writes: it returns new
    ``ListItem`` copies. An item whose lookup fails is kept exactly as it
    was and named in ``failed_items``; the rest of the list is still
    re-priced. ``switch_list`` persists the whole result in one
    transaction.
    """

    def __init__(self, ledger: PriceLedger, sizes: SizesConfig | None = None) -> None:
        self._ledger = ledger
        self._sizes = sizes or SizesConfig()

    def switch(
        self,
        items: list[ListItem],
        from_store_id: str | None,
        to_store_id: str,
    ) -> StoreSwitchResult:
        source = from_store_id.strip().lower() if from_store_id else None
        target = to_store_id.strip().lower()
        if not target:
            raise ValueError("target store id is required")

        result = StoreSwitchResult(
            previous_store=source,
            new_store=target,
            previous_total=list_total(items),
        )

        for item in items:
            if item.price_override:
                result.manual_overrides_preserved += 1
                result.items.append(dataclasses.replace(item))
                continue

            try:
                if item.size_override:
                    updated = self._reprice_fixed_size(item, target, result)
                else:
                    updated = self._reprice(item, source, target, result)
            except LedgerError:
                logger.warning(
                    "Could not re-price %r at %s; left unchanged", item.name, target,
                    exc_info=True,
                )
                result.failed_items.append(item.name)
                updated = dataclasses.replace(item)

            if updated != item:
                result.items_updated += 1
            result.items.append(updated)

        result.new_total = list_total(result.items)
        result.savings = round(result.previous_total - result.new_total, 2)

        logger.info(
            "Switched %d items %s -> %s: %d updated, %d overrides kept, "
            "%d failed, total %.2f -> %.2f",
            len(items), source or "(none)", target, result.items_updated,
            result.manual_overrides_preserved, len(result.failed_items),
            result.previous_total, result.new_total,
        )
        return result

    def switch_list(
        self, lists: ShoppingListDB, list_id: int, to_store_id: str
    ) -> StoreSwitchResult:
        """Re-price a stored list and commit the outcome atomically."""
        stored = lists.get_list(list_id)
        if stored is None:
            raise ValueError(f"no shopping list with id {list_id}")

        result = self.switch(lists.get_items(list_id), stored["store_id"], to_store_id)
        lists.apply_switch(list_id, result)
        return result

    def _reprice_fixed_size(
        self, item: ListItem, store_id: str, result: StoreSwitchResult
    ) -> ListItem:
        # The user pinned this size: only an exact-size price is usable
        wanted = size_key(item.size, item.unit)
        parsed = parse_size(item.size, item.unit)
        for record in self._ledger.lookup(item.name, store_id):
            if parsed is None:
                same = record.size == wanted
            else:
                same = sizes_equivalent(
                    record.size, wanted, exact_tolerance=self._sizes.exact_tolerance
                )
            if same:
                return self._with_price(item, record.average_price, record.confidence, result)
        return dataclasses.replace(item)

    def _reprice(
        self,
        item: ListItem,
        from_store: str | None,
        to_store: str,
        result: StoreSwitchResult,
    ) -> ListItem:
        # After an earlier switch drifted the size, aim for the original again
        restoring = bool(item.original_size) and to_store != from_store
        target_size = item.original_size if restoring else item.size

        match = match_store_record(
            target_size,
            self._ledger.lookup(item.name, to_store),
            unit=item.unit,
            sizes=self._sizes,
        )
        if match is None:
            logger.debug("No prices for %r at %s; left unchanged", item.name, to_store)
            return dataclasses.replace(item)

        if match.kind is MatchKind.EXACT:
            new_size = target_size
        else:
            new_size = match.record.size or item.size

        updated = dataclasses.replace(item)
        if not self._same_size(new_size, item.size):
            updated.size = new_size
            if item.original_size is None:
                updated.original_size = item.size
            result.size_changes.append(
                SizeChange(
                    item_name=item.name,
                    old_size=item.size,
                    new_size=new_size,
                    match=match.kind,
                    restored=restoring and match.kind is MatchKind.EXACT,
                )
            )

        if updated.original_size and self._same_size(updated.size, updated.original_size):
            updated.original_size = None

        return self._with_price(
            updated, match.record.average_price, match.record.confidence, result
        )

    def _with_price(
        self,
        item: ListItem,
        price: float,
        confidence: float,
        result: StoreSwitchResult,
    ) -> ListItem:
        if item.estimated_price != price:
            result.price_changes.append(
                PriceChange(item_name=item.name, old_price=item.estimated_price, new_price=price)
            )
        return dataclasses.replace(
            item,
            estimated_price=price,
            price_source=PriceSource.CROWDSOURCED,
            price_confidence=confidence,
        )

    def _same_size(self, a: str | None, b: str | None) -> bool:
        if size_key(a) == size_key(b):
            return True
        return sizes_equivalent(a, b, exact_tolerance=self._sizes.exact_tolerance)
