"""Recency and report-count weighting for the price ledger.

The merge plumbing in :mod:`.db.ledger` only asks this module for weights
and confidence scores, so the policy can be replaced without touching
the storage code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import LedgerConfig
    from .models import PriceRecord


@dataclass(frozen=True)
class MergeWeights:
    new: float  # weight of the incoming observation
    existing: float  # weight of the stored average


@dataclass(frozen=True)
class WeightingPolicy:
    decay_days: float = 30.0
    min_existing_weight: float = 0.3
    count_saturation: float = 10.0
    count_cap: float = 0.5

    @classmethod
    def from_config(cls, config: LedgerConfig) -> WeightingPolicy:
        return cls(
            decay_days=config.decay_days,
            min_existing_weight=config.min_existing_weight,
            count_saturation=config.count_saturation,
            count_cap=config.count_cap,
        )

    def recency_weight(self, days_since: float) -> float:
        """1.0 for a same-day observation, decaying linearly to 0."""
        return max(0.0, 1.0 - days_since / self.decay_days)

    def count_factor(self, report_count: int) -> float:
        return min(report_count / self.count_saturation, self.count_cap)

    def recency_factor(self, days_since: float) -> float:
        return max(0.0, 0.5 * (1.0 - days_since / self.decay_days))

    def merge_weights(self, observation_age: float, record_age: float) -> MergeWeights:
        """Weights for blending a new observation into a stored average.

        Args:
            observation_age: Days from the observation to the reference date.
            record_age: Days from the record's last sighting to the
                reference date.
        """
        return MergeWeights(
            new=self.recency_weight(observation_age),
            existing=max(self.min_existing_weight, self.recency_weight(record_age)),
        )

    def initial_confidence(self, days_since: float) -> float:
        """Confidence of a record created from a single observation."""
        return self.recency_factor(days_since)

    def confidence(self, report_count: int, days_since: float) -> float:
        return min(1.0, self.count_factor(report_count) + self.recency_factor(days_since))


DEFAULT_POLICY = WeightingPolicy()


def days_between(earlier: date, later: date) -> int:
    """Whole days from ``earlier`` to ``later``, never negative."""
    return max(0, (later - earlier).days)


def current_confidence(
    record: PriceRecord,
    as_of: date,
    policy: WeightingPolicy = DEFAULT_POLICY,
) -> float:
    """Record confidence re-decayed to ``as_of`` without mutating it."""
    age = days_between(record.last_seen_date, as_of)
    if record.report_count <= 1:
        return policy.initial_confidence(age)
    return policy.confidence(record.report_count, age)
