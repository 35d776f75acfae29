"""Tolerance-based size matching across stores."""

from __future__ import annotations

from dataclasses import dataclass, field

from .parser import ParsedSize, parse_size

# 20% allows for pack variations such as 250g → 227g butter
DEFAULT_TOLERANCE = 0.2

# Differences this small are rounding, not a different pack
EXACT_TOLERANCE = 0.01


@dataclass(frozen=True)
class SizeMatch:
    index: int  # position in the list of available sizes
    size: str
    parsed: ParsedSize
    percent_diff: float  # relative to the target size
    is_exact: bool
    within_tolerance: bool


@dataclass
class SizeMatchResult:
    best_match: SizeMatch | None = None
    matches: list[SizeMatch] = field(default_factory=list)

    @property
    def has_exact_match(self) -> bool:
        return any(m.is_exact for m in self.matches)

    @property
    def has_tolerance_match(self) -> bool:
        return any(m.within_tolerance for m in self.matches)


def find_closest_size(
    target: str | ParsedSize | None,
    available: list[str | None],
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    exact_tolerance: float = EXACT_TOLERANCE,
) -> SizeMatchResult:
    """Rank available sizes by closeness to the target.

    Only sizes in the target's category are considered. Sizes that fail to
    parse are skipped. Matches are sorted by percentage difference, ties
    keeping the order of ``available``.
    """
    target_parsed = target if isinstance(target, ParsedSize) else parse_size(target)
    if target_parsed is None or target_parsed.normalized_value <= 0:
        return SizeMatchResult()

    matches: list[SizeMatch] = []
    for index, size in enumerate(available):
        parsed = parse_size(size)
        if parsed is None or not parsed.comparable_with(target_parsed):
            continue

        diff = abs(parsed.normalized_value - target_parsed.normalized_value)
        percent_diff = diff / target_parsed.normalized_value
        matches.append(
            SizeMatch(
                index=index,
                size=size or "",
                parsed=parsed,
                percent_diff=percent_diff,
                is_exact=percent_diff <= exact_tolerance,
                within_tolerance=percent_diff <= tolerance,
            )
        )

    matches.sort(key=lambda m: m.percent_diff)
    return SizeMatchResult(best_match=matches[0] if matches else None, matches=matches)


def match_within_tolerance(
    target: str | ParsedSize | None,
    available: list[str | None],
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    exact_tolerance: float = EXACT_TOLERANCE,
) -> SizeMatch | None:
    """Closest available size inside the tolerance band, or None."""
    result = find_closest_size(
        target, available, tolerance=tolerance, exact_tolerance=exact_tolerance
    )
    best = result.best_match
    if best is None or not best.within_tolerance:
        return None
    return best


def size_percent_diff(a: str | None, b: str | None) -> float | None:
    """Relative difference between two sizes (0-1), None if not comparable."""
    left = parse_size(a)
    right = parse_size(b)
    if left is None or right is None or not left.comparable_with(right):
        return None
    largest = max(left.normalized_value, right.normalized_value)
    if largest <= 0:
        return 0.0
    return abs(left.normalized_value - right.normalized_value) / largest


def sizes_equivalent(
    a: str | None, b: str | None, *, exact_tolerance: float = EXACT_TOLERANCE
) -> bool:
    """True when both sizes parse and differ by rounding only.

    "2pt" ≡ "2 pints", "1L" ≡ "1000ml", "500g" ≡ "0.5kg".
    """
    diff = size_percent_diff(a, b)
    return diff is not None and diff <= exact_tolerance
