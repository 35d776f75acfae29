"""SQLite storage for price records, variants, history and lists."""

from .history import PriceAlert, PriceHistoryDB, PricePoint, PriceStats
from .ledger import (
    LedgerConflictError,
    LedgerError,
    PriceLedger,
    UpsertResult,
    UpsertStatus,
)
from .lists import ShoppingListDB
from .schema import ensure_schema
from .variants import VariantDB

__all__ = [
    "LedgerConflictError",
    "LedgerError",
    "PriceAlert",
    "PriceHistoryDB",
    "PriceLedger",
    "PricePoint",
    "PriceStats",
    "ShoppingListDB",
    "UpsertResult",
    "UpsertStatus",
    "VariantDB",
    "ensure_schema",
]
