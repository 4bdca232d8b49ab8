"""
Data models for storage layer.

Defines the usage ledger entity.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class UsageRecord:
    """Immutable record of one provider call for cost reporting.
    
    Append-only rows: one per chat, speech-to-text or text-to-speech call.
    Once written, these records must never be modified.
    """
    created_at: datetime
    service: str
    model_id: str
    provider: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost_usd: Decimal
    actor_id: Optional[str] = None
    subject_request_id: Optional[str] = None
    duration_ms: Optional[int] = None
    
    def __post_init__(self):
        """Validate accounting invariants."""
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("token counts cannot be negative")
        if self.total_tokens != self.input_tokens + self.output_tokens:
            raise ValueError("total_tokens must equal input_tokens + output_tokens")
        if self.cost_usd < 0:
            raise ValueError("cost_usd cannot be negative")
