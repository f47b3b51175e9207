"""Model price catalogue.

Wraps an OpenRouter style ``/models`` payload::

    {"data": [{"id": "anthropic/claude-3-haiku", "name": "...",
               "pricing": {"prompt": "0.00000025", "completion": "..."}}]}

and derives the prompt-price breakpoints used to style agent edges.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from archflow.domain.pricing import ModelPriceIndex, PriceBreakpoints

logger = logging.getLogger(__name__)

LOW_PERCENTILE = 0.33
HIGH_PERCENTILE = 0.66

# Below this prompt price there is nothing worth suggesting.
SUGGESTION_MIN_PRICE = 5
SUGGESTION_PRICE_RATIO = 0.5
EFFICIENT_MARKERS = ("haiku", "flash", "turbo")
POPULAR_EFFICIENT_MODELS = ("gemini-1.5-flash", "claude-3-haiku", "gpt-3.5-turbo")


@dataclass(frozen=True)
class CatalogueModel:
    id: str
    name: str
    prompt_price: Optional[float]
    completion_price: Optional[float]

    @property
    def provider(self) -> str:
        return self.id.split("/")[0]


def _parse_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(price) else price


def compute_breakpoints(prices: List[float]) -> Optional[PriceBreakpoints]:
    """33rd/66th percentile of the positive prices, or None without data."""
    ordered = sorted(p for p in prices if p is not None and p > 0)
    if not ordered:
        return None
    return PriceBreakpoints(
        low=ordered[math.floor(len(ordered) * LOW_PERCENTILE)],
        high=ordered[math.floor(len(ordered) * HIGH_PERCENTILE)],
    )


class ModelCatalogue:
    """In-memory view over the known models and their prompt prices."""

    def __init__(self, models: List[CatalogueModel]) -> None:
        self.models = models
        self._by_id: Dict[str, CatalogueModel] = {m.id: m for m in models}
        self.breakpoints = compute_breakpoints([m.prompt_price for m in models])

    @classmethod
    def empty(cls) -> ModelCatalogue:
        return cls([])

    @classmethod
    def from_payload(cls, payload: Any) -> ModelCatalogue:
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            logger.warning("Model catalogue payload missing data array")
            return cls.empty()

        models = []
        for raw in payload["data"]:
            if not isinstance(raw, dict) or not raw.get("id"):
                continue
            pricing = raw.get("pricing") or {}
            models.append(CatalogueModel(
                id=str(raw["id"]),
                name=str(raw.get("name") or raw["id"]),
                prompt_price=_parse_price(pricing.get("prompt")),
                completion_price=_parse_price(pricing.get("completion")),
            ))
        return cls(models)

    @classmethod
    def from_file(cls, path: str) -> ModelCatalogue:
        if not path:
            return cls.empty()
        file_path = Path(path)
        if not file_path.exists():
            logger.warning(f"Model catalogue file not found: {path}")
            return cls.empty()
        try:
            with file_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to read model catalogue {path}: {e}")
            return cls.empty()
        return cls.from_payload(payload)

    def get(self, model_id: str) -> Optional[CatalogueModel]:
        return self._by_id.get(model_id)

    def price_index(self) -> ModelPriceIndex:
        prices = {m.id: m.prompt_price for m in self.models if m.prompt_price is not None}
        return ModelPriceIndex(prices=prices, breakpoints=self.breakpoints)

    def suggest_cheaper_model(self, model_id: str) -> Optional[CatalogueModel]:
        """A cheaper efficient model from the same provider, else a popular efficient one."""
        current = self.get(model_id)
        if current is None or current.prompt_price is None:
            return None
        if current.prompt_price < SUGGESTION_MIN_PRICE:
            return None

        ceiling = current.prompt_price * SUGGESTION_PRICE_RATIO
        alternatives = [
            m for m in self.models
            if m.prompt_price is not None and 0 < m.prompt_price < ceiling
        ]

        for m in alternatives:
            if current.provider in m.id and any(marker in m.id for marker in EFFICIENT_MARKERS):
                return m
        for m in alternatives:
            if any(popular in m.id for popular in POPULAR_EFFICIENT_MODELS):
                return m
        return None

    def grouped_by_provider(self, limit: int = 100) -> Dict[str, List[CatalogueModel]]:
        groups: Dict[str, List[CatalogueModel]] = {}
        for m in self.models[:limit]:
            groups.setdefault(m.provider or "other", []).append(m)
        return groups
