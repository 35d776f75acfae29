"""Grocery price engine: name matching, pack sizes, price ledger and store re-pricing."""

from .compare import StoreAlternative, StoreComparator, StoreComparison
from .config import (
    CascadeConfig,
    DatabaseConfig,
    LedgerConfig,
    MatchingConfig,
    PricingConfig,
    SizesConfig,
    load_config,
)
from .db import (
    LedgerConflictError,
    LedgerError,
    PriceHistoryDB,
    PriceLedger,
    ShoppingListDB,
    UpsertStatus,
    VariantDB,
)
from .estimator import PriceEstimator, create_estimator
from .matching import (
    calculate_similarity,
    find_fuzzy_matches,
    is_duplicate_item_name,
    levenshtein_distance,
    normalize_item_name,
)
from .models import ListItem, PriceRecord, PriceSource, Variant
from .receipts import IngestSummary, ReceiptIngestor, ReceiptLine
from .resolver import Resolution, ResolutionCascade
from .sizes import ParsedSize, SizeCategory, find_closest_size, parse_size
from .stores import normalize_store_name
from .switch import PriceChange, SizeChange, StoreSwitchRepricer, StoreSwitchResult
from .weighting import WeightingPolicy, current_confidence

__all__ = [
    "PriceLedger",
    "PriceHistoryDB",
    "VariantDB",
    "ShoppingListDB",
    "UpsertStatus",
    "LedgerError",
    "LedgerConflictError",
    "PriceRecord",
    "PriceSource",
    "Variant",
    "ListItem",
    "normalize_item_name",
    "levenshtein_distance",
    "calculate_similarity",
    "find_fuzzy_matches",
    "is_duplicate_item_name",
    "parse_size",
    "ParsedSize",
    "SizeCategory",
    "find_closest_size",
    "WeightingPolicy",
    "current_confidence",
    "ResolutionCascade",
    "Resolution",
    "StoreComparator",
    "StoreComparison",
    "StoreAlternative",
    "StoreSwitchRepricer",
    "StoreSwitchResult",
    "SizeChange",
    "PriceChange",
    "normalize_store_name",
    "ReceiptIngestor",
    "ReceiptLine",
    "IngestSummary",
    "PriceEstimator",
    "create_estimator",
    "PricingConfig",
    "DatabaseConfig",
    "MatchingConfig",
    "SizesConfig",
    "LedgerConfig",
    "CascadeConfig",
    "load_config",
]
