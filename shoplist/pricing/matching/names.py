"""Item name canonicalization used as the join key across the price engine."""

from __future__ import annotations

import re

# Leading qualifier words dropped as whole-word prefixes
_QUALIFIER_PREFIXES: frozenset[str] = frozenset({
    "a",
    "an",
    "the",
    "some",
    "fresh",
    "organic",
})

_WHITESPACE = re.compile(r"\s+")

# Suffixes where the plural adds "es" (tomatoes, peaches, dishes)
_ES_SUFFIXES: tuple[str, ...] = ("oes", "ches", "shes")


def normalize_item_name(raw: str) -> str:
    """Canonicalize a free-text item name for comparison.

    Lowercases and trims, collapses runs of whitespace, strips leading
    qualifier words ("the", "organic", ...) and singularizes the final
    word. Never raises; non-string input yields "".

    The result is stable under re-application:
    ``normalize_item_name(normalize_item_name(x)) == normalize_item_name(x)``.
    """
    if not isinstance(raw, str):
        return ""

    name = _WHITESPACE.sub(" ", raw.strip().lower())
    if not name:
        return ""

    name = _strip_qualifiers(name)
    return _singularize(name)


def _strip_qualifiers(name: str) -> str:
    words = name.split(" ")
    # A lone qualifier ("the") is kept rather than emptied
    while len(words) > 1 and words[0] in _QUALIFIER_PREFIXES:
        words.pop(0)
    return " ".join(words)


def _singularize(name: str) -> str:
    head, _, word = name.rpartition(" ")
    word = _singular_word(word)
    return f"{head} {word}" if head else word


def _singular_word(word: str) -> str:
    if len(word) > 4:
        if word.endswith(_ES_SUFFIXES):
            return word[:-2]
        if word.endswith("ies"):
            return word[:-3] + "y"
        if word.endswith("ves"):
            return word[:-3] + "f"

    if len(word) > 2 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]

    return word
