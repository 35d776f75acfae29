"""Pack size parsing and cross-store size matching."""

from .matching import (
    DEFAULT_TOLERANCE,
    EXACT_TOLERANCE,
    SizeMatch,
    SizeMatchResult,
    find_closest_size,
    match_within_tolerance,
    size_percent_diff,
    sizes_equivalent,
)
from .parser import (
    ParsedSize,
    SizeCategory,
    normalize_size,
    parse_size,
    price_per_unit,
    size_key,
    unit_label,
)

__all__ = [
    "DEFAULT_TOLERANCE",
    "EXACT_TOLERANCE",
    "ParsedSize",
    "SizeCategory",
    "SizeMatch",
    "SizeMatchResult",
    "find_closest_size",
    "match_within_tolerance",
    "normalize_size",
    "parse_size",
    "price_per_unit",
    "size_key",
    "size_percent_diff",
    "sizes_equivalent",
    "unit_label",
]
