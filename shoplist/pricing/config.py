"""TOML configuration loader for the price engine."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class DatabaseConfig:
    path: str = "~/.config/shoplist/pricing.db"


@dataclass
class MatchingConfig:
    min_similarity: int = 50
    max_results: int = 10
    duplicate_threshold: int = 85


@dataclass
class SizesConfig:
    tolerance: float = 0.2
    exact_tolerance: float = 0.01


@dataclass
class LedgerConfig:
    decay_days: float = 30.0
    min_existing_weight: float = 0.3
    count_saturation: float = 10.0
    count_cap: float = 0.5
    max_retries: int = 5


@dataclass
class CascadeConfig:
    personal_confidence: float = 0.8
    crowdsourced_confidence: float = 0.6
    ai_confidence: float = 0.5


@dataclass
class ClaudeEstimatorConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class EstimatorConfig:
    backend: str = "claude"
    claude: ClaudeEstimatorConfig = field(default_factory=ClaudeEstimatorConfig)


@dataclass
class PricingConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    sizes: SizesConfig = field(default_factory=SizesConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    cascade: CascadeConfig = field(default_factory=CascadeConfig)
    estimator: EstimatorConfig = field(default_factory=EstimatorConfig)


def load_config(path: str | Path | None = None) -> PricingConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    mat = raw.get("matching", {})
    siz = raw.get("sizes", {})
    led = raw.get("ledger", {})
    cas = raw.get("cascade", {})
    est = raw.get("estimator", {})

    claude_cfg = est.get("claude", {})

    # Resolve API keys: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    return PricingConfig(
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/shoplist/pricing.db"),
        ),
        matching=MatchingConfig(
            min_similarity=mat.get("min_similarity", 50),
            max_results=mat.get("max_results", 10),
            duplicate_threshold=mat.get("duplicate_threshold", 85),
        ),
        sizes=SizesConfig(
            tolerance=siz.get("tolerance", 0.2),
            exact_tolerance=siz.get("exact_tolerance", 0.01),
        ),
        ledger=LedgerConfig(
            decay_days=led.get("decay_days", 30.0),
            min_existing_weight=led.get("min_existing_weight", 0.3),
            count_saturation=led.get("count_saturation", 10.0),
            count_cap=led.get("count_cap", 0.5),
            max_retries=led.get("max_retries", 5),
        ),
        cascade=CascadeConfig(
            personal_confidence=cas.get("personal_confidence", 0.8),
            crowdsourced_confidence=cas.get("crowdsourced_confidence", 0.6),
            ai_confidence=cas.get("ai_confidence", 0.5),
        ),
        estimator=EstimatorConfig(
            backend=est.get("backend", "claude"),
            claude=ClaudeEstimatorConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
    )
