"""Claude API backend for variant and price estimation."""

from __future__ import annotations

import json

from ..matching import normalize_item_name
from ..models import Variant
from ..sizes import normalize_size, parse_size
from . import PriceEstimator

_PROMPT = """\
List the pack sizes a UK supermarket shopper is most likely to buy for
this grocery item: "{item}".

Reply with a JSON array only (no other text):
[
  {{"variant_name": "name", "size": "2pt", "unit": "pint",
    "commonality": 0.0-1.0, "estimated_price": 1.45}}
]

Use metric or pint sizes as printed on UK packaging. commonality is how
often shoppers choose this size compared with the others. estimated_price
is a typical shelf price in GBP, or null if unknown. Return at most 6
variants.
"""


class ClaudePriceEstimator(PriceEstimator):
    """Estimate item variants using Claude."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    async def estimate_variants(self, base_item: str) -> list[Variant]:
        if not self._api_key:
            raise ValueError(
                "No Anthropic API key configured. "
                "Set it in the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install 'shoplist-pricing[ai]'"
            ) from None

        name = normalize_item_name(base_item)
        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=1024,
            messages=[{"role": "user", "content": _PROMPT.format(item=name)}],
        )

        text = response.content[0].text
        return _parse_response(text, name)


def _parse_response(text: str, base_item: str) -> list[Variant]:
    """Parse the JSON array from Claude's response."""
    # Strip markdown fences if present
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    items = json.loads(cleaned)
    seen: dict[str, Variant] = {}
    for item in items:
        size = str(item.get("size") or "")
        if not size:
            continue
        name = item.get("variant_name") or size
        commonality = float(item.get("commonality") or 0.0)
        if name in seen and seen[name].commonality >= commonality:
            continue

        price = item.get("estimated_price")
        parsed = parse_size(size, item.get("unit"))
        seen[name] = Variant(
            base_item=base_item,
            variant_name=name,
            size=normalize_size(size, item.get("unit")),
            unit=item.get("unit") or "",
            category=parsed.category.value if parsed else "",
            commonality=min(max(commonality, 0.0), 1.0),
            estimated_price=float(price) if price is not None else None,
            source="ai",
        )
    return list(seen.values())
