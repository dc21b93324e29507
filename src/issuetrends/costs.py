"""Approximate USD cost of a run from token counts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class ModelPricing:
    """USD per one million tokens."""

    input_price_per_million: float
    output_price_per_million: float

    @property
    def blended_price_per_million(self) -> float:
        return (self.input_price_per_million + self.output_price_per_million) / 2


DEFAULT_PRICING_MODEL = "gemini-2.0-flash"

PRICING: dict[str, ModelPricing] = {
    "gemini-2.0-flash": ModelPricing(0.10, 0.40),
    "gpt-4o-mini": ModelPricing(0.15, 0.60),
}


def get_pricing(model: str, pricing: Mapping[str, ModelPricing] = PRICING) -> ModelPricing:
    # unknown models are priced like the default primary model
    return pricing.get(model) or pricing.get(DEFAULT_PRICING_MODEL) or ModelPricing(0.0, 0.0)


def extraction_cost(
    tokens_by_model: Mapping[str, int],
    pricing: Mapping[str, ModelPricing] = PRICING,
) -> float:
    """Extraction prompts dominate their calls, so only the input price applies."""
    return sum(
        max(tokens, 0) / 1_000_000 * get_pricing(model, pricing).input_price_per_million
        for model, tokens in tokens_by_model.items()
    )


def synthesis_cost(
    tokens: int,
    model: str,
    pricing: Mapping[str, ModelPricing] = PRICING,
) -> float:
    return max(tokens, 0) / 1_000_000 * get_pricing(model, pricing).blended_price_per_million


def estimate_cost(
    tokens_by_model: Mapping[str, int],
    synthesis_tokens: int,
    synthesis_model: str,
    pricing: Mapping[str, ModelPricing] = PRICING,
) -> float:
    return extraction_cost(tokens_by_model, pricing) + synthesis_cost(
        synthesis_tokens, synthesis_model, pricing
    )
