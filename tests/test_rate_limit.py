"""
Unit tests for fixed-window rate limiting.
"""

import threading

import pytest

from doubt_resolver.core.errors import RateLimited
from doubt_resolver.core.rate_limit import RateLimiter


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class TestAllow:
    """Test window counting."""

    def test_first_request_opens_window(self):
        limiter = RateLimiter(clock=FakeClock())
        result = limiter.allow("doubt:a", limit=5, window_ms=60_000)
        assert result.allowed
        assert result.remaining == 4

    def test_limit_then_reject(self):
        limiter = RateLimiter(clock=FakeClock())
        remaining = [limiter.allow("doubt:a", 3, 1000).remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

        result = limiter.allow("doubt:a", 3, 1000)
        assert not result.allowed
        assert result.remaining == 0

    def test_rejected_requests_are_not_counted(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(10):
            limiter.allow("doubt:a", 1, 1000)
        clock.advance(1001)
        assert limiter.allow("doubt:a", 1, 1000).allowed

    def test_window_resets_after_expiry(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.allow("doubt:a", 1, 1000)

        clock.advance(1000)
        assert not limiter.allow("doubt:a", 1, 1000).allowed

        clock.advance(1)
        result = limiter.allow("doubt:a", 1, 1000)
        assert result.allowed
        assert result.remaining == 0

    def test_keys_are_independent(self):
        limiter = RateLimiter(clock=FakeClock())
        limiter.allow("doubt:a", 1, 1000)
        assert not limiter.allow("doubt:a", 1, 1000).allowed
        assert limiter.allow("doubt:b", 1, 1000).allowed

    def test_burst_across_boundary(self):
        """Fixed windows allow up to twice the limit across a boundary."""
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        decisions = [limiter.allow("k", 2, 1000).allowed]
        clock.advance(999)
        decisions.append(limiter.allow("k", 2, 1000).allowed)
        clock.advance(2)
        decisions.append(limiter.allow("k", 2, 1000).allowed)
        decisions.append(limiter.allow("k", 2, 1000).allowed)
        assert decisions == [True, True, True, True]

    @pytest.mark.parametrize("limit,window_ms", [(0, 1000), (-1, 1000), (5, 0)])
    def test_invalid_arguments(self, limit, window_ms):
        limiter = RateLimiter(clock=FakeClock())
        with pytest.raises(ValueError):
            limiter.allow("k", limit, window_ms)


class TestCheck:
    """Test the raising variant."""

    def test_check_returns_remaining(self):
        limiter = RateLimiter(clock=FakeClock())
        assert limiter.check("doubt:a", 2, 1000) == 1

    def test_check_raises_with_retry_after(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.check("doubt:a", 1, 1000)
        clock.advance(400)

        with pytest.raises(RateLimited, match="Rate limit exceeded for doubt:a") as exc_info:
            limiter.check("doubt:a", 1, 1000)
        assert exc_info.value.key == "doubt:a"
        assert exc_info.value.retry_after_ms == 600

    def test_retry_after_unknown_key(self):
        assert RateLimiter(clock=FakeClock()).retry_after_ms("nobody") is None


class TestCleanup:
    """Test lazy sweeping of expired windows."""

    def test_expired_windows_swept_after_interval(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, cleanup_interval_ms=60_000)
        limiter.allow("a", 5, 1000)
        limiter.allow("b", 5, 1000)
        assert len(limiter) == 2

        clock.advance(60_000)
        limiter.allow("c", 5, 1000)
        assert len(limiter) == 1

    def test_no_sweep_before_interval(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, cleanup_interval_ms=60_000)
        limiter.allow("a", 5, 1000)
        clock.advance(5000)
        limiter.allow("b", 5, 1000)
        assert len(limiter) == 2

    def test_live_windows_survive_sweep(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, cleanup_interval_ms=1000)
        limiter.allow("long", 5, 10_000)
        clock.advance(1000)
        limiter.allow("other", 5, 10_000)
        assert len(limiter) == 2

    def test_reset_drops_everything(self):
        limiter = RateLimiter(clock=FakeClock())
        limiter.allow("a", 1, 1000)
        limiter.reset()
        assert len(limiter) == 0
        assert limiter.allow("a", 1, 1000).allowed


class TestConcurrency:
    """Test shared use from several threads."""

    def test_concurrent_callers_share_one_window(self):
        limiter = RateLimiter(clock=FakeClock())
        allowed = []
        lock = threading.Lock()

        def hammer():
            for _ in range(25):
                result = limiter.allow("doubt:shared", 30, 60_000)
                if result.allowed:
                    with lock:
                        allowed.append(result.remaining)

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(allowed) == 30
        assert sorted(allowed) == list(range(30))
