"""Canonical store ids for UK grocery retailers.

Receipts and user input name the same retailer many ways ("TESCO
EXPRESS", "Tesco Stores Ltd"); the price ledger keys records by the
canonical id ("tesco") returned from :func:`normalize_store_name`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class StoreInfo:
    id: str
    display_name: str
    type: str  # supermarket, discounter, convenience, premium, frozen, wholesale
    market_share: float  # approximate UK share, percent
    aliases: tuple[str, ...]


# Largest market share first
_STORES: tuple[StoreInfo, ...] = (
    StoreInfo("tesco", "Tesco", "supermarket", 27, (
        "tesco", "tesco express", "tesco extra", "tesco metro", "tesco superstore",
        "tesco stores", "tesco stores ltd", "tesco plc", "tesco petrol",
    )),
    StoreInfo("sainsburys", "Sainsbury's", "supermarket", 15, (
        "sainsburys", "sainsbury", "sainsburys local", "sainsbury local",
        "j sainsbury", "j sainsbury plc", "sainsburys supermarket",
    )),
    StoreInfo("asda", "Asda", "supermarket", 14, (
        "asda", "asda stores", "asda superstore", "asda express", "asda living",
        "asda stores ltd", "asda supercentre",
    )),
    StoreInfo("aldi", "Aldi", "discounter", 10, (
        "aldi", "aldi stores", "aldi uk", "aldi stores ltd", "aldi sud",
    )),
    StoreInfo("morrisons", "Morrisons", "supermarket", 9, (
        "morrisons", "wm morrisons", "wm morrison", "morrisons daily",
        "morrisons supermarkets", "wm morrison supermarkets",
    )),
    StoreInfo("lidl", "Lidl", "discounter", 7, (
        "lidl", "lidl uk", "lidl gb", "lidl great britain", "lidl ltd",
    )),
    StoreInfo("coop", "Co-op", "convenience", 5, (
        "co-op", "coop", "co op", "the co-operative", "the cooperative",
        "cooperative food", "co-op food", "co-operative food", "coop food",
        "the co-op", "midcounties co-op", "central co-op", "southern co-op",
    )),
    StoreInfo("waitrose", "Waitrose", "premium", 5, (
        "waitrose", "waitrose & partners", "waitrose and partners",
        "little waitrose", "john lewis waitrose",
    )),
    StoreInfo("marks", "M&S Food", "premium", 3, (
        "m&s", "marks & spencer", "marks and spencer", "m&s food", "m & s",
        "marks", "m&s foodhall", "m&s simply food", "m and s",
    )),
    StoreInfo("iceland", "Iceland", "frozen", 2, (
        "iceland", "iceland foods", "the food warehouse", "food warehouse",
    )),
    StoreInfo("nisa", "Nisa Local", "convenience", 1, ("nisa", "nisa local", "nisa extra")),
    StoreInfo("spar", "Spar", "convenience", 1, ("spar", "spar uk", "eurospar")),
    StoreInfo("londis", "Londis", "convenience", 0.5, ("londis",)),
    StoreInfo("costcutter", "Costcutter", "convenience", 0.5, ("costcutter", "cost cutter")),
    StoreInfo("premier", "Premier", "convenience", 0.5, ("premier", "premier convenience")),
    StoreInfo("onestop", "One Stop", "convenience", 0.5, ("one stop", "onestop", "one-stop")),
    StoreInfo("budgens", "Budgens", "convenience", 0.5, ("budgens", "budgen")),
    StoreInfo("farmfoods", "Farmfoods", "frozen", 0.5, ("farmfoods", "farm foods")),
    StoreInfo("costco", "Costco", "wholesale", 0.5, ("costco", "costco wholesale")),
    StoreInfo("booker", "Booker", "wholesale", 0.5, (
        "booker", "booker cash & carry", "booker cash and carry", "makro",
    )),
)

_BY_ID: dict[str, StoreInfo] = {s.id: s for s in _STORES}
_BY_ALIAS: dict[str, str] = {alias: s.id for s in _STORES for alias in s.aliases}

# Format suffixes removed before retrying the alias lookup
_STRIP_SUFFIXES: tuple[str, ...] = (
    "express", "extra", "metro", "local", "superstore", "supermarket",
    "stores", "store", "ltd", "plc", "uk", "gb", "wholesale",
)

_PUNCTUATION = re.compile(r"[.,;:!?'\"]")
_WHITESPACE = re.compile(r"\s+")


def normalize_store_name(raw: str | None) -> str | None:
    """Map a raw store name to a canonical store id, or None if unknown.

    >>> normalize_store_name("TESCO EXPRESS")
    'tesco'
    >>> normalize_store_name("Sainsbury's Local")
    'sainsburys'
    """
    if not isinstance(raw, str):
        return None

    cleaned = _WHITESPACE.sub(" ", _PUNCTUATION.sub("", raw.lower())).strip()
    if not cleaned:
        return None

    if cleaned in _BY_ALIAS:
        return _BY_ALIAS[cleaned]

    stripped = cleaned
    for suffix in _STRIP_SUFFIXES:
        stripped = re.sub(rf"\s+{suffix}$", "", stripped).strip()
    if stripped in _BY_ALIAS:
        return _BY_ALIAS[stripped]

    for store in _STORES:
        if store.id in cleaned or store.id in stripped:
            return store.id

    # Alias at the start only, so "asda" does not match inside "hasda"
    for store in _STORES:
        for alias in store.aliases:
            if cleaned.startswith(alias) or stripped.startswith(alias):
                return store.id

    return None


def get_store_info(store_id: str) -> StoreInfo | None:
    return _BY_ID.get(store_id)


def all_stores() -> list[StoreInfo]:
    return list(_STORES)


def store_slug(raw: str) -> str:
    """Fallback id for a store missing from the table."""
    cleaned = _PUNCTUATION.sub("", raw.lower())
    return re.sub(r"[^a-z0-9]+", "_", cleaned).strip("_")
