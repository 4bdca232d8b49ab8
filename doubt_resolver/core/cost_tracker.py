"""
Usage cost accounting.

Converts token, duration and character counts into USD and appends one
immutable usage record per provider call.
"""

import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog

from doubt_resolver.storage.models import UsageRecord
from doubt_resolver.storage.repository import UsageRepository
from .pricing import PRICING_TABLE, calculate_service_cost, calculate_token_cost, round_cost
from .token_counter import TokenUsage

log = structlog.get_logger(__name__)

WHISPER_MODEL = "whisper-1"
DEFAULT_TTS_MODEL = "tts-1"


class CostTracker:
    """Prices provider calls and records them in the usage ledger.

    Writes are serialized so concurrent resolutions can share one tracker.
    Recording failures surface as PersistenceError; whether to swallow
    them is the caller's decision.
    """

    def __init__(self, repository: UsageRepository):
        self.repository = repository
        self._lock = threading.Lock()

    def token_cost(self, model_id: str, input_tokens: int, output_tokens: int) -> Decimal:
        """Cost of a chat completion; models without a price cost zero."""
        if not PRICING_TABLE.supports(model_id):
            log.warning("cost_tracker.unpriced_model", model_id=model_id)
            return round_cost(Decimal(0))
        return calculate_token_cost(model_id, input_tokens, output_tokens)

    def fixed_service_cost(self, service: str, quantity: float) -> Decimal:
        """Cost of a duration- or character-priced service call."""
        return calculate_service_cost(service, quantity)

    def record_usage(
        self,
        service: str,
        model_id: str,
        provider: str,
        cost_usd: Decimal,
        usage: Optional[TokenUsage] = None,
        actor_id: Optional[str] = None,
        subject_request_id: Optional[str] = None,
        duration_ms: Optional[int] = None
    ) -> UsageRecord:
        """Build a usage record and append it to the ledger.

        Args:
            service: Calling service ("chat", "whisper-stt", "tts")
            model_id: Model that served the call
            provider: Provider family of the model
            cost_usd: Cost before rounding
            usage: Token counts, absent for non-token services
            actor_id: Actor who made the request
            subject_request_id: Request (doubt) the call belongs to
            duration_ms: Wall-clock or audio duration

        Returns:
            The stored UsageRecord

        Raises:
            ValueError: If cost or token counts are negative
            PersistenceError: If the store cannot be written
        """
        cost_usd = Decimal(cost_usd)
        # Checked before rounding so sub-micro negatives are rejected too
        if cost_usd < 0:
            raise ValueError("cost_usd cannot be negative")

        usage = usage or TokenUsage(input_tokens=0, output_tokens=0)
        record = UsageRecord(
            created_at=datetime.now(timezone.utc),
            actor_id=actor_id,
            subject_request_id=subject_request_id,
            service=service,
            model_id=model_id,
            provider=provider,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            total_tokens=usage.total_tokens,
            cost_usd=round_cost(cost_usd),
            duration_ms=duration_ms
        )

        with self._lock:
            self.repository.append(record)

        log.debug(
            "cost_tracker.recorded",
            service=service,
            model_id=model_id,
            total_tokens=record.total_tokens,
            cost_usd=str(record.cost_usd),
        )
        return record

    def record_transcription(
        self,
        duration_ms: int,
        actor_id: Optional[str] = None
    ) -> UsageRecord:
        """Price and record one speech-to-text call."""
        return self.record_usage(
            service="whisper-stt",
            model_id=WHISPER_MODEL,
            provider="openai",
            cost_usd=self.fixed_service_cost(WHISPER_MODEL, duration_ms),
            actor_id=actor_id,
            duration_ms=duration_ms
        )

    def record_speech(
        self,
        character_count: int,
        actor_id: Optional[str] = None,
        model_id: str = DEFAULT_TTS_MODEL
    ) -> UsageRecord:
        """Price and record one text-to-speech call."""
        return self.record_usage(
            service="tts",
            model_id=model_id,
            provider="openai",
            cost_usd=self.fixed_service_cost(model_id, character_count),
            actor_id=actor_id
        )
