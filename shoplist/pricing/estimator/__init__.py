"""Price estimator base class and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import PricingConfig
    from ..models import Variant


class PriceEstimator(ABC):
    """Abstract base for estimating the common variants of an item."""

    @abstractmethod
    async def estimate_variants(self, base_item: str) -> list[Variant]:
        """Suggest sizes and typical UK prices for a base item.

        Variants with the same name should be merged.
        """
        ...


def create_estimator(config: PricingConfig) -> PriceEstimator:
    """Create a price estimator based on configuration."""
    backend_name = config.estimator.backend

    match backend_name:
        case "claude":
            from .claude import ClaudePriceEstimator

            return ClaudePriceEstimator(
                api_key=config.estimator.claude.api_key,
                model=config.estimator.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown estimator backend: {backend_name!r} (expected 'claude')"
            )
