"""
Pricing tables and cost formulas.

Token-priced chat models are billed per million input/output tokens.
Speech services are billed per unit of audio duration or text length.
Prices are versioned with the code; a price change is a code change.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

COST_PRECISION = Decimal("0.000001")
TOKENS_PER_PRICE_UNIT = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    input_cost_per_1m: Decimal  # USD per 1M input tokens
    output_cost_per_1m: Decimal  # USD per 1M output tokens


@dataclass(frozen=True)
class ServicePricing:
    """Fixed pricing for a duration- or character-billed service."""
    unit_cost: Decimal  # USD per billing unit
    unit_size: Decimal  # quantity that makes up one billing unit


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model

        Raises:
            ValueError: If model is not supported
        """
        if model not in self.prices:
            raise ValueError(f"Unsupported model: {model}")
        return self.prices[model]

    def supports(self, model: str) -> bool:
        return model in self.prices


PRICING_TABLE = PricingTable({
    "gpt-4o-mini": ModelPricing(
        input_cost_per_1m=Decimal("0.15"),
        output_cost_per_1m=Decimal("0.60")
    ),
    "gpt-4o": ModelPricing(
        input_cost_per_1m=Decimal("2.50"),
        output_cost_per_1m=Decimal("10.00")
    ),
    "gpt-4.1": ModelPricing(
        input_cost_per_1m=Decimal("2.00"),
        output_cost_per_1m=Decimal("8.00")
    ),
    "gpt-4.1-mini": ModelPricing(
        input_cost_per_1m=Decimal("0.40"),
        output_cost_per_1m=Decimal("1.60")
    ),
    "claude-opus-4-6": ModelPricing(
        input_cost_per_1m=Decimal("15.00"),
        output_cost_per_1m=Decimal("75.00")
    ),
    "claude-sonnet-4": ModelPricing(
        input_cost_per_1m=Decimal("3.00"),
        output_cost_per_1m=Decimal("15.00")
    ),
})

# whisper-1 is billed per minute of audio (quantity in ms), tts per 1K characters
SERVICE_PRICING: Dict[str, ServicePricing] = {
    "whisper-1": ServicePricing(
        unit_cost=Decimal("0.006"),
        unit_size=Decimal("60000")
    ),
    "tts-1": ServicePricing(
        unit_cost=Decimal("0.015"),
        unit_size=Decimal("1000")
    ),
    "tts-1-hd": ServicePricing(
        unit_cost=Decimal("0.030"),
        unit_size=Decimal("1000")
    ),
}


def round_cost(amount: Decimal) -> Decimal:
    """Round a cost to 6 decimal places (micro-dollars)."""
    return amount.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)


def calculate_token_cost(model: str, input_tokens: int, output_tokens: int) -> Decimal:
    """Calculate the cost of one chat completion.

    Args:
        model: Model identifier
        input_tokens: Prompt tokens consumed
        output_tokens: Completion tokens produced

    Returns:
        Cost in USD rounded to 6 decimal places

    Raises:
        ValueError: If model is not supported or counts are negative
    """
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError("token counts cannot be negative")
    pricing = PRICING_TABLE.get_pricing(model)

    total = (
        Decimal(input_tokens) * pricing.input_cost_per_1m
        + Decimal(output_tokens) * pricing.output_cost_per_1m
    ) / TOKENS_PER_PRICE_UNIT

    return round_cost(total)


def calculate_service_cost(service: str, quantity: float) -> Decimal:
    """Calculate the cost of a fixed-priced service call.

    Args:
        service: Service model identifier (whisper-1, tts-1, tts-1-hd)
        quantity: Duration in ms for audio, character count for speech

    Returns:
        Cost in USD rounded to 6 decimal places

    Raises:
        ValueError: If service is not supported or quantity is negative
    """
    if service not in SERVICE_PRICING:
        raise ValueError(f"Unsupported service: {service}")
    if quantity < 0:
        raise ValueError("quantity cannot be negative")
    pricing = SERVICE_PRICING[service]
    units = Decimal(str(quantity)) / pricing.unit_size
    return round_cost(units * pricing.unit_cost)
