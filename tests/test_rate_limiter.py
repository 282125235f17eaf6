"""
Tests for the sliding-window rate limiter.
"""

import pytest

from repscheduler.config import RateLimitConfig
from repscheduler.domain.exceptions import RateLimitExceededError
from repscheduler.services.rate_limiter import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_allows_up_to_limit_within_window(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limit = RateLimitConfig(max_calls=2, window_seconds=1)

        assert limiter.can_make_call("reads", limit)
        assert limiter.can_make_call("reads", limit)
        assert not limiter.can_make_call("reads", limit)

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limit = RateLimitConfig(max_calls=1, window_seconds=1)

        assert limiter.can_make_call("writes", limit)
        clock.now += 0.5
        assert not limiter.can_make_call("writes", limit)
        clock.now += 0.5
        assert limiter.can_make_call("writes", limit)

    def test_rejected_calls_are_not_counted(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limit = RateLimitConfig(max_calls=1, window_seconds=10)

        assert limiter.can_make_call("k", limit)
        clock.now += 5
        assert not limiter.can_make_call("k", limit)
        clock.now += 5
        assert limiter.can_make_call("k", limit)

    def test_keys_are_independent(self):
        limiter = RateLimiter(clock=FakeClock())
        limit = RateLimitConfig(max_calls=1, window_seconds=1)

        assert limiter.can_make_call("rep-1", limit)
        assert limiter.can_make_call("rep-2", limit)
        assert not limiter.can_make_call("rep-1", limit)

    def test_reset(self):
        limiter = RateLimiter(clock=FakeClock())
        limit = RateLimitConfig(max_calls=1, window_seconds=60)

        limiter.can_make_call("a", limit)
        limiter.can_make_call("b", limit)
        limiter.reset("a")

        assert limiter.can_make_call("a", limit)
        assert not limiter.can_make_call("b", limit)

        limiter.reset_all()
        assert limiter.can_make_call("b", limit)

    def test_acquire_raises_when_exceeded(self):
        limiter = RateLimiter(
            limits={"geocode": RateLimitConfig(max_calls=1, window_seconds=1)},
            clock=FakeClock(),
        )

        limiter.acquire("geocode")
        with pytest.raises(RateLimitExceededError, match="geocode"):
            limiter.acquire("geocode")

    def test_acquire_with_bucket_key(self):
        limiter = RateLimiter(
            limits={"read": RateLimitConfig(max_calls=1, window_seconds=1)},
            clock=FakeClock(),
        )

        limiter.acquire("read", "read:rep-1")
        limiter.acquire("read", "read:rep-2")
        with pytest.raises(RateLimitExceededError):
            limiter.acquire("read", "read:rep-1")

    def test_acquire_without_configured_limit_is_free(self):
        limiter = RateLimiter(clock=FakeClock())

        for _ in range(100):
            limiter.acquire("anything")
