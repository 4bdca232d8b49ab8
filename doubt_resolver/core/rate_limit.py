"""
Fixed-window request rate limiting.

Windows are fixed, not sliding: a client can burst up to 2 x limit
requests across a window boundary.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from .errors import RateLimited

log = structlog.get_logger(__name__)

CLEANUP_INTERVAL_MS = 60 * 1000


def _now_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass
class RateLimitWindow:
    """Request count for one key inside its current window."""
    key: str
    count: int
    reset_at_ms: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int


class RateLimiter:
    """In-memory fixed-window counter keyed by an arbitrary string.

    One instance is shared per process. Expired windows are swept lazily,
    at most once per cleanup interval, on the next call.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        cleanup_interval_ms: int = CLEANUP_INTERVAL_MS
    ):
        self._clock = clock or _now_ms
        self._cleanup_interval_ms = cleanup_interval_ms
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()
        self._last_cleanup_ms = self._clock()

    def allow(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one request against key.

        Args:
            key: Bucket key, e.g. "doubt:<actor_id>"
            limit: Requests allowed per window
            window_ms: Window length in milliseconds

        Returns:
            RateLimitResult with the decision and requests left in the window
        """
        if limit <= 0:
            raise ValueError("limit must be > 0")
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0")

        with self._lock:
            now = self._clock()
            self._cleanup(now)

            window = self._windows.get(key)
            if window is None or now > window.reset_at_ms:
                self._windows[key] = RateLimitWindow(
                    key=key, count=1, reset_at_ms=now + window_ms
                )
                return RateLimitResult(allowed=True, remaining=limit - 1)

            if window.count >= limit:
                return RateLimitResult(allowed=False, remaining=0)

            window.count += 1
            return RateLimitResult(allowed=True, remaining=limit - window.count)

    def check(self, key: str, limit: int, window_ms: int) -> int:
        """Count one request, raising when the window is exhausted.

        Returns:
            Requests remaining in the window

        Raises:
            RateLimited: If the request is over the limit
        """
        result = self.allow(key, limit, window_ms)
        if not result.allowed:
            log.info("rate_limit.rejected", key=key, limit=limit)
            raise RateLimited(key, retry_after_ms=self.retry_after_ms(key))
        return result.remaining

    def retry_after_ms(self, key: str) -> Optional[int]:
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return None
            return max(window.reset_at_ms - self._clock(), 0)

    def reset(self) -> None:
        """Drop every window."""
        with self._lock:
            self._windows.clear()
            self._last_cleanup_ms = self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _cleanup(self, now: int) -> None:
        if now - self._last_cleanup_ms < self._cleanup_interval_ms:
            return
        self._last_cleanup_ms = now
        expired = [key for key, window in self._windows.items() if now > window.reset_at_ms]
        for key in expired:
            del self._windows[key]
