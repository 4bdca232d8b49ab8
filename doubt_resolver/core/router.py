"""
Tiered model routing.

Maps each complexity level to exactly one provider/model configuration
and exposes the next, strictly more capable, tier for fallback.

Tiers:
- easy, medium -> tier 1
- hard         -> tier 2
- expert       -> tier 3
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .complexity import ComplexityLevel


class Provider(str, Enum):
    """Completion provider families."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class ModelConfig:
    """Provider and model used to answer a question."""
    provider: Provider
    model_id: str
    tier: int
    max_output_tokens: int

    def __post_init__(self):
        """Validate tier and token limit."""
        if self.tier not in (1, 2, 3):
            raise ValueError("tier must be 1, 2 or 3")
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be > 0")


@dataclass(frozen=True)
class TierModels:
    """Model identifiers for each tier plus the vision override."""
    tier1: str = "gpt-4o-mini"
    tier2: str = "gpt-4.1"
    tier3: str = "claude-opus-4-6"
    vision: str = "gpt-4o"


FALLBACK_CHAIN: Tuple[ComplexityLevel, ...] = (
    ComplexityLevel.EASY,
    ComplexityLevel.MEDIUM,
    ComplexityLevel.HARD,
    ComplexityLevel.EXPERT,
)

VISION_PROVIDER = Provider.OPENAI


def build_model_map(models: TierModels) -> Dict[ComplexityLevel, ModelConfig]:
    """Build the static level -> config table for the given tier models."""
    tier1 = ModelConfig(
        provider=Provider.OPENAI,
        model_id=models.tier1,
        tier=1,
        max_output_tokens=2048
    )
    return {
        ComplexityLevel.EASY: tier1,
        ComplexityLevel.MEDIUM: tier1,
        ComplexityLevel.HARD: ModelConfig(
            provider=Provider.OPENAI,
            model_id=models.tier2,
            tier=2,
            max_output_tokens=4096
        ),
        ComplexityLevel.EXPERT: ModelConfig(
            provider=Provider.ANTHROPIC,
            model_id=models.tier3,
            tier=3,
            max_output_tokens=4096
        ),
    }


class ModelRouter:
    """Pure lookup from complexity level to model configuration."""

    def __init__(self, models: Optional[TierModels] = None):
        self.models = models or TierModels()
        self._model_map = build_model_map(self.models)

    def select_model(self, level: ComplexityLevel) -> ModelConfig:
        """Return the primary configuration for a complexity level."""
        return self._model_map[ComplexityLevel(level)]

    def next_fallback(self, level: ComplexityLevel) -> Optional[ModelConfig]:
        """Return the configuration one step along the fallback chain.

        Args:
            level: Level whose configuration just failed

        Returns:
            The next tier's ModelConfig, or None at the end of the chain
        """
        index = FALLBACK_CHAIN.index(ComplexityLevel(level))
        if index + 1 < len(FALLBACK_CHAIN):
            return self._model_map[FALLBACK_CHAIN[index + 1]]
        return None

    def vision_model(self, base: ModelConfig) -> ModelConfig:
        """Force a configuration onto the vision-capable model.

        Keeps the tier and token limit of the configuration being replaced.
        """
        return ModelConfig(
            provider=VISION_PROVIDER,
            model_id=self.models.vision,
            tier=base.tier,
            max_output_tokens=base.max_output_tokens
        )
