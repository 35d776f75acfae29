"""Levenshtein-based similarity scoring and ranked candidate search."""

from __future__ import annotations

from dataclasses import dataclass

from .names import normalize_item_name

DEFAULT_MIN_SIMILARITY = 50
DEFAULT_MAX_RESULTS = 10

# Similarity at or above which two distinct names count as the same item
DUPLICATE_SIMILARITY_THRESHOLD = 85


@dataclass(frozen=True)
class FuzzyMatch:
    name: str  # candidate as given by the caller
    similarity: int  # 0-100
    is_exact: bool  # normalized forms are equal


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance with unit-cost insert, delete and substitute.

    A transposition costs two operations.
    """
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Two-row dynamic programming table
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current[j] = previous[j - 1]
            else:
                current[j] = 1 + min(
                    previous[j],  # delete
                    current[j - 1],  # insert
                    previous[j - 1],  # substitute
                )
        previous = current
    return previous[-1]


def calculate_similarity(a: str, b: str) -> int:
    """Similarity percentage (0-100) between two strings.

    Case-insensitive and whitespace-trimmed. Identical strings score 100.
    """
    left = (a or "").strip().lower()
    right = (b or "").strip().lower()

    if left == right:
        return 100

    longest = max(len(left), len(right), 1)
    distance = levenshtein_distance(left, right)
    return round(100 * (1 - distance / longest))


def find_fuzzy_matches(
    query: str,
    candidates: list[str],
    *,
    min_similarity: int = DEFAULT_MIN_SIMILARITY,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[FuzzyMatch]:
    """Rank candidates by similarity to the query.

    Query and candidates are compared in normalized form. Candidates that
    normalize to the same name are collapsed onto the first occurrence.
    Results below ``min_similarity`` are dropped; the rest are sorted by
    similarity descending, ties keeping candidate order, and truncated to
    ``max_results``.
    """
    normalized_query = normalize_item_name(query)
    if not normalized_query or max_results <= 0:
        return []

    seen: set[str] = set()
    matches: list[FuzzyMatch] = []
    for candidate in candidates:
        normalized = normalize_item_name(candidate)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)

        if normalized == normalized_query:
            matches.append(FuzzyMatch(name=candidate, similarity=100, is_exact=True))
            continue

        # Edit distance only: no boost for substring containment and no
        # lower threshold for short queries
        similarity = calculate_similarity(normalized_query, normalized)
        if similarity >= min_similarity:
            matches.append(
                FuzzyMatch(name=candidate, similarity=similarity, is_exact=False)
            )

    # list.sort is stable, so equal scores stay in candidate order
    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches[:max_results]


def is_duplicate_item_name(
    a: str,
    b: str,
    *,
    threshold: int = DUPLICATE_SIMILARITY_THRESHOLD,
) -> bool:
    """True when two names refer to the same item (pantry dedup)."""
    left = normalize_item_name(a)
    right = normalize_item_name(b)
    if not left or not right:
        return False
    if left == right:
        return True
    return calculate_similarity(left, right) >= threshold


def find_duplicate_name(
    name: str,
    existing: list[str],
    *,
    threshold: int = DUPLICATE_SIMILARITY_THRESHOLD,
) -> str | None:
    """Return the first existing name that duplicates ``name``, if any."""
    for candidate in existing:
        if is_duplicate_item_name(name, candidate, threshold=threshold):
            return candidate
    return None
