"""Per-model token pricing in USD."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict


class ModelPricing(BaseModel):
    """Input/output price per million tokens."""

    model_config = ConfigDict(frozen=True)

    input_cost_per_1m: float
    output_cost_per_1m: float

    @classmethod
    def for_model(cls, model: str) -> "ModelPricing":
        return MODEL_PRICING.get(model, DEFAULT_PRICING)

    def calculate_cost(self, tokens_input: int, tokens_output: int) -> float:
        input_cost = tokens_input / 1_000_000 * self.input_cost_per_1m
        output_cost = tokens_output / 1_000_000 * self.output_cost_per_1m
        return input_cost + output_cost


DEFAULT_PRICING = ModelPricing(input_cost_per_1m=1.00, output_cost_per_1m=3.00)

MODEL_PRICING: Dict[str, ModelPricing] = {
    # Grok
    "grok-2-1212": ModelPricing(input_cost_per_1m=2.00, output_cost_per_1m=10.00),
    "grok-beta": ModelPricing(input_cost_per_1m=5.00, output_cost_per_1m=15.00),
    # DeepSeek
    "deepseek-chat": ModelPricing(input_cost_per_1m=0.14, output_cost_per_1m=0.28),
    "deepseek-reasoner": ModelPricing(input_cost_per_1m=0.55, output_cost_per_1m=2.19),
    # Gemini
    "gemini-3-pro-preview": ModelPricing(input_cost_per_1m=2.00, output_cost_per_1m=12.00),
    # image output varies by resolution
    "gemini-3-pro-image-preview": ModelPricing(
        input_cost_per_1m=2.00, output_cost_per_1m=0.134
    ),
    "gemini-2.5-flash-lite": ModelPricing(input_cost_per_1m=0.10, output_cost_per_1m=0.40),
    "gemini-2.0-flash-exp": ModelPricing(input_cost_per_1m=0.00, output_cost_per_1m=0.00),
    "gemini-exp-1206": ModelPricing(input_cost_per_1m=0.00, output_cost_per_1m=0.00),
    "gemini-1.5-pro": ModelPricing(input_cost_per_1m=1.25, output_cost_per_1m=5.00),
    "gemini-1.5-flash": ModelPricing(input_cost_per_1m=0.075, output_cost_per_1m=0.30),
    # Claude
    "claude-3-opus-20240229": ModelPricing(input_cost_per_1m=15.00, output_cost_per_1m=75.00),
    "claude-3-sonnet-20240229": ModelPricing(input_cost_per_1m=3.00, output_cost_per_1m=15.00),
    "claude-3-haiku-20240307": ModelPricing(input_cost_per_1m=0.25, output_cost_per_1m=1.25),
}


def calculate_cost(model: str, tokens_input: int, tokens_output: int) -> float:
    """Cost in USD of ``tokens_input``/``tokens_output`` on ``model``."""
    return ModelPricing.for_model(model).calculate_cost(tokens_input, tokens_output)
