"""Grocery pack size parsing and unit normalization."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class SizeCategory(str, Enum):
    VOLUME = "volume"
    WEIGHT = "weight"
    COUNT = "count"
    UNKNOWN = "unknown"  # bare number with no unit


# Unit token → (factor to base unit, base unit, category)
# Volume normalizes to millilitres, weight to grams, count to packs/each.
_UNIT_TABLE: dict[str, tuple[float, str, SizeCategory]] = {
    # Volume
    "ml": (1.0, "ml", SizeCategory.VOLUME),
    "millilitre": (1.0, "ml", SizeCategory.VOLUME),
    "milliliter": (1.0, "ml", SizeCategory.VOLUME),
    "millilitres": (1.0, "ml", SizeCategory.VOLUME),
    "milliliters": (1.0, "ml", SizeCategory.VOLUME),
    "cl": (10.0, "ml", SizeCategory.VOLUME),
    "centilitre": (10.0, "ml", SizeCategory.VOLUME),
    "centiliter": (10.0, "ml", SizeCategory.VOLUME),
    "l": (1000.0, "ml", SizeCategory.VOLUME),
    "ltr": (1000.0, "ml", SizeCategory.VOLUME),
    "litre": (1000.0, "ml", SizeCategory.VOLUME),
    "liter": (1000.0, "ml", SizeCategory.VOLUME),
    "litres": (1000.0, "ml", SizeCategory.VOLUME),
    "liters": (1000.0, "ml", SizeCategory.VOLUME),
    "pt": (568.0, "ml", SizeCategory.VOLUME),
    "pint": (568.0, "ml", SizeCategory.VOLUME),
    "pints": (568.0, "ml", SizeCategory.VOLUME),
    "floz": (29.5735, "ml", SizeCategory.VOLUME),
    # Weight
    "g": (1.0, "g", SizeCategory.WEIGHT),
    "gram": (1.0, "g", SizeCategory.WEIGHT),
    "grams": (1.0, "g", SizeCategory.WEIGHT),
    "kg": (1000.0, "g", SizeCategory.WEIGHT),
    "kilo": (1000.0, "g", SizeCategory.WEIGHT),
    "kilos": (1000.0, "g", SizeCategory.WEIGHT),
    "kilogram": (1000.0, "g", SizeCategory.WEIGHT),
    "kilograms": (1000.0, "g", SizeCategory.WEIGHT),
    "oz": (28.35, "g", SizeCategory.WEIGHT),
    "ounce": (28.35, "g", SizeCategory.WEIGHT),
    "ounces": (28.35, "g", SizeCategory.WEIGHT),
    "lb": (453.6, "g", SizeCategory.WEIGHT),
    "lbs": (453.6, "g", SizeCategory.WEIGHT),
    "pound": (453.6, "g", SizeCategory.WEIGHT),
    "pounds": (453.6, "g", SizeCategory.WEIGHT),
    # Count
    "pk": (1.0, "pk", SizeCategory.COUNT),
    "pack": (1.0, "pk", SizeCategory.COUNT),
    "packs": (1.0, "pk", SizeCategory.COUNT),
    "x": (1.0, "pk", SizeCategory.COUNT),
    "ct": (1.0, "each", SizeCategory.COUNT),
    "count": (1.0, "each", SizeCategory.COUNT),
    "each": (1.0, "each", SizeCategory.COUNT),
    "ea": (1.0, "each", SizeCategory.COUNT),
    "pcs": (1.0, "each", SizeCategory.COUNT),
    "pieces": (1.0, "each", SizeCategory.COUNT),
}

_PRICE_PER_UNIT_LABELS: dict[SizeCategory, str] = {
    SizeCategory.VOLUME: "/100ml",
    SizeCategory.WEIGHT: "/100g",
    SizeCategory.COUNT: "/each",
    SizeCategory.UNKNOWN: "/each",
}

# "2pt", "500ml", "1.5kg", "6-pack" (whitespace already removed)
_SIMPLE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)[-x]?([a-z]+)$")
# "6x500ml"
_MULTIPACK_PATTERN = re.compile(r"^(\d+)x(\d+(?:\.\d+)?)([a-z]+)$")
# "packof6"
_PACK_OF_PATTERN = re.compile(r"^(?:pack|box|case)of(\d+)$")
_BARE_NUMBER = re.compile(r"^\d+(?:\.\d+)?$")
_DECIMAL_COMMA = re.compile(r"(\d),(\d)")
_HAS_LETTER = re.compile(r"[a-z]", re.IGNORECASE)

# Pint sizes between 1pt and 6pt are displayed in pints
_PINT_ML = 568.0
_MAX_PINT_DISPLAY_ML = 6 * _PINT_ML


@dataclass(frozen=True)
class ParsedSize:
    value: float  # magnitude as written (multipacks: total)
    unit: str  # base unit: "ml", "g", "pk", "each" or "" for unknown
    category: SizeCategory
    normalized_value: float  # value in the base unit
    display: str  # canonical display form, e.g. "2pt", "500ml", "6pk"
    original: str

    def comparable_with(self, other: ParsedSize) -> bool:
        return self.category == other.category


def parse_size(raw: str | None, unit: str | None = None) -> ParsedSize | None:
    """Parse a size string into a normalized magnitude and unit category.

    Args:
        raw: e.g. "2L", "500 g", "6-pack", "2 pints", "6 x 330ml"
        unit: Optional separate unit for sizes stored as a bare number
            (e.g. raw="2", unit="pints").

    Returns:
        ParsedSize, or None when the text cannot be understood. None means
        "no size information", never zero.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        raw = str(raw)
    if not isinstance(raw, str):
        return None

    original = raw.strip()
    text = original
    if unit and text and not _HAS_LETTER.search(text):
        text = f"{text}{unit}"

    cleaned = _DECIMAL_COMMA.sub(r"\1.\2", re.sub(r"\s+", "", text.lower()))
    if not cleaned:
        return None

    m = _MULTIPACK_PATTERN.match(cleaned)
    if m:
        conversion = _UNIT_TABLE.get(m.group(3))
        if conversion is None:
            return None
        count = int(m.group(1))
        each = float(m.group(2))
        factor, base_unit, category = conversion
        return ParsedSize(
            value=count * each,
            unit=base_unit,
            category=category,
            normalized_value=count * each * factor,
            display=f"{count}x{_display(each * factor, base_unit, category)}",
            original=original,
        )

    m = _PACK_OF_PATTERN.match(cleaned)
    if m:
        count = float(m.group(1))
        return ParsedSize(
            value=count,
            unit="pk",
            category=SizeCategory.COUNT,
            normalized_value=count,
            display=f"{_format_number(count)}pk",
            original=original,
        )

    m = _SIMPLE_PATTERN.match(cleaned)
    if m:
        conversion = _UNIT_TABLE.get(m.group(2))
        if conversion is None:
            return None
        value = float(m.group(1))
        factor, base_unit, category = conversion
        normalized = value * factor
        return ParsedSize(
            value=value,
            unit=base_unit,
            category=category,
            normalized_value=normalized,
            display=_display(normalized, base_unit, category),
            original=original,
        )

    if _BARE_NUMBER.match(cleaned):
        value = float(cleaned)
        return ParsedSize(
            value=value,
            unit="",
            category=SizeCategory.UNKNOWN,
            normalized_value=value,
            display=_format_number(value),
            original=original,
        )

    return None


def normalize_size(raw: str | None, unit: str | None = None) -> str:
    """Canonical display form of a size, or the input unchanged if unparseable.

    "2 pints" → "2pt", "1000 ml" → "1L", "0.5kg" → "500g".
    """
    parsed = parse_size(raw, unit)
    if parsed is None:
        return (raw or "").strip() if isinstance(raw, str) else ""
    return parsed.display


def size_key(raw: str | None, unit: str | None = None) -> str:
    """Storage key for a size slot; "" when no size was given."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return ""
    parsed = parse_size(raw, unit)
    if parsed is None:
        return str(raw).strip().lower()
    return parsed.display


def price_per_unit(price: float, raw: str | None, unit: str | None = None) -> float | None:
    """Price per 100ml / 100g, or per item for count sizes."""
    parsed = parse_size(raw, unit)
    if parsed is None or parsed.normalized_value <= 0:
        return None
    if parsed.category in (SizeCategory.COUNT, SizeCategory.UNKNOWN):
        return price / parsed.value
    return price / parsed.normalized_value * 100


def unit_label(raw: str | None, unit: str | None = None) -> str:
    """Price-per-unit label matching ``price_per_unit``."""
    parsed = parse_size(raw, unit)
    if parsed is None:
        return "/each"
    return _PRICE_PER_UNIT_LABELS[parsed.category]


def _display(normalized: float, base_unit: str, category: SizeCategory) -> str:
    if category is SizeCategory.VOLUME:
        if (
            _PINT_ML <= normalized <= _MAX_PINT_DISPLAY_ML
            and normalized % _PINT_ML == 0
        ):
            return f"{_format_number(normalized / _PINT_ML)}pt"
        if normalized >= 1000:
            return f"{_format_number(normalized / 1000)}L"
        return f"{_format_number(normalized)}ml"

    if category is SizeCategory.WEIGHT:
        if normalized >= 1000:
            return f"{_format_number(normalized / 1000)}kg"
        return f"{_format_number(normalized)}g"

    return f"{_format_number(normalized)}{base_unit}"


def _format_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    # Three places keep 1.75L and 1.8L apart
    return f"{value:.3f}".rstrip("0").rstrip(".")
