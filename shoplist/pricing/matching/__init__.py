"""Item name normalization and fuzzy matching."""

from .fuzzy import (
    FuzzyMatch,
    calculate_similarity,
    find_duplicate_name,
    find_fuzzy_matches,
    is_duplicate_item_name,
    levenshtein_distance,
)
from .names import normalize_item_name

__all__ = [
    "FuzzyMatch",
    "calculate_similarity",
    "find_duplicate_name",
    "find_fuzzy_matches",
    "is_duplicate_item_name",
    "levenshtein_distance",
    "normalize_item_name",
]
