"""Burn-rate estimation, model capacity classes and price tiers."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from archflow.domain.graph import BurnRate

DEFAULT_BASE_TOKENS = 500
DEFAULT_MCP_FACTOR = 1

COMPLEXITY_MULTIPLIERS: Dict[str, int] = {
    "simple": 1,
    "medium": 3,
    "complex": 10,
}

LOW_RATE_LIMIT = 1000
HIGH_RATE_LIMIT = 4000

# Capacity markers, matched inside a lowercased model id but never as the
# head of a longer word. Light markers win over heavy ones ("gpt-4o-mini").
LIGHT_MODEL_MARKERS: Tuple[str, ...] = ("haiku", "flash", "gpt-3.5", "turbo", "mini")
HEAVY_MODEL_MARKERS: Tuple[str, ...] = (
    "opus",
    "gpt-4",
    "gpt-4o",
    "gemini-pro",
    "gemini-1.5-pro",
    "gemini-2.5-pro",
    "sonnet",
    "o1",
)


def _as_number(value: Any, default: float) -> float:
    """Coerce an attribute to a number; missing, zero or garbage gives ``default``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number == 0:
        return default
    return number


def complexity_multiplier(task_complexity: Any) -> int:
    if not isinstance(task_complexity, str):
        return 1
    return COMPLEXITY_MULTIPLIERS.get(task_complexity.strip().lower(), 1)


def rate_tier(rate: float) -> str:
    if rate < LOW_RATE_LIMIT:
        return "low"
    if rate < HIGH_RATE_LIMIT:
        return "medium"
    return "high"


def estimate(attributes: Mapping[str, Any]) -> BurnRate:
    """Estimate the per-call token burn of a node from its own attributes."""
    base = _as_number(attributes.get("baseTokens"), DEFAULT_BASE_TOKENS)
    mcp_factor = _as_number(attributes.get("mcpFactor"), DEFAULT_MCP_FACTOR)
    rate = base * complexity_multiplier(attributes.get("taskComplexity")) * mcp_factor

    # Cosmetic only: the numeric rate and tier stay as computed.
    free_tier = bool(attributes.get("userHasFreeTier")) and rate < HIGH_RATE_LIMIT

    return BurnRate(
        rate=rate,
        tier=rate_tier(rate),
        free_tier_override=free_tier,
        formatted=f"{rate / 1000:.1f}k tkn",
    )


# These must also start a fragment: "gemini" is not "mini".
_FRAGMENT_START_MARKERS = frozenset({"mini", "o1"})


def _marker_pattern(marker: str) -> re.Pattern:
    head = r"(?<![a-z0-9])" if marker in _FRAGMENT_START_MARKERS else ""
    return re.compile(head + re.escape(marker) + r"(?![a-z0-9])")


_LIGHT_PATTERNS = [_marker_pattern(m) for m in LIGHT_MODEL_MARKERS]
_HEAVY_PATTERNS = [_marker_pattern(m) for m in HEAVY_MODEL_MARKERS]


def capacity_class(model_id: Optional[str]) -> str:
    """Classify a model id as "light", "heavy" or (fallback) "medium"."""
    if not model_id:
        return "medium"
    normalized = model_id.strip().lower()
    if any(p.search(normalized) for p in _LIGHT_PATTERNS):
        return "light"
    if any(p.search(normalized) for p in _HEAVY_PATTERNS):
        return "heavy"
    return "medium"


@dataclass(frozen=True)
class PriceBreakpoints:
    """33rd/66th percentile of known prompt prices."""
    low: float
    high: float


def price_tier(price: float, breakpoints: PriceBreakpoints) -> str:
    if price < breakpoints.low:
        return "light"
    if price > breakpoints.high:
        return "heavy"
    return "standard"


@dataclass(frozen=True)
class ModelPriceIndex:
    """Prompt price per model id plus the catalogue-wide breakpoints."""
    prices: Dict[str, float] = field(default_factory=dict)
    breakpoints: Optional[PriceBreakpoints] = None

    @property
    def has_data(self) -> bool:
        return bool(self.prices) and self.breakpoints is not None

    def tier_for(self, model_id: Optional[str]) -> Optional[str]:
        """Price tier of ``model_id``, or None when there is nothing to compare against."""
        if not model_id or not self.has_data:
            return None
        price = self.prices.get(model_id)
        if price is None:
            return None
        return price_tier(price, self.breakpoints)
