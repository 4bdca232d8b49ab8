"""
Error taxonomy for the resolution pipeline.

Only RateLimited is meant to reach the caller. Everything else is
handled inside the pipeline by falling back to another tier, an offline
response, or a logged accounting failure.
"""

from typing import Optional


class DoubtResolverError(Exception):
    """Base class for all doubt resolver errors."""


class ProviderError(DoubtResolverError):
    """Raised by a provider adapter on any transport, auth or quota failure."""

    def __init__(self, message: str, provider: str, model_id: str):
        super().__init__(message)
        self.provider = provider
        self.model_id = model_id


class RoutingExhausted(DoubtResolverError):
    """Raised when no more capable tier exists after a failed call."""

    def __init__(self, level: str):
        super().__init__(f"No fallback tier available after '{level}'")
        self.level = level


class PersistenceError(DoubtResolverError):
    """Raised when a usage record cannot be written to the store."""


class RateLimited(DoubtResolverError):
    """Raised when an actor exceeds its request window."""

    def __init__(self, key: str, retry_after_ms: Optional[int] = None):
        super().__init__(f"Rate limit exceeded for {key}")
        self.key = key
        self.retry_after_ms = retry_after_ms
