"""
Provider adapters for the doubt resolver.

Wraps each completion provider SDK behind one uniform interface.
"""

from .providers import (
    AnthropicAdapter,
    ModelResponse,
    OpenAIAdapter,
    ProviderAdapter,
    build_default_adapters,
)

__all__ = [
    "AnthropicAdapter",
    "ModelResponse",
    "OpenAIAdapter",
    "ProviderAdapter",
    "build_default_adapters",
]
