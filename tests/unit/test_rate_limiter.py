"""Tests for the fixed-window rate limiter."""
from datetime import datetime, timezone

import pytest

from portfolio_api.core.config import Settings
from portfolio_api.core.rate_limiter import (
    FixedWindowRateLimiter,
    InMemoryBackend,
    RateLimitEntry,
    build_rate_limiter,
)


class TestIncrement:
    @pytest.mark.parametrize("n", [1, 4, 5, 7])
    def test_limited_iff_count_reaches_max(self, limiter, n):
        status = None
        for _ in range(n):
            status = limiter.increment("ip:203.0.113.10")
        assert status.is_limited == (n >= 5)
        assert status.remaining == max(0, 5 - n)

    def test_fifth_request_is_limited_with_zero_remaining(self, limiter):
        statuses = [limiter.increment("email:jane@example.com") for _ in range(5)]
        assert [s.is_limited for s in statuses] == [False, False, False, False, True]
        assert statuses[-1].remaining == 0
        assert statuses[-1].ms_before_next == 60_000

    def test_window_expiry_resets_count_to_one(self, limiter, clock):
        for _ in range(5):
            limiter.increment("ip:1")
        clock.advance_ms(60_001)
        status = limiter.increment("ip:1")
        assert status.is_limited is False
        assert status.remaining == 4

    def test_exact_window_boundary_is_still_inside(self, limiter, clock):
        for _ in range(5):
            limiter.increment("ip:1")
        clock.advance_ms(60_000)
        assert limiter.increment("ip:1").remaining == 0

    def test_ms_before_next_counts_down(self, limiter, clock):
        for _ in range(5):
            limiter.increment("ip:1")
        clock.advance_ms(15_000)
        assert limiter.check("ip:1").ms_before_next == 45_000

    def test_keys_are_independent(self, limiter):
        for _ in range(5):
            limiter.increment("ip:1")
        assert limiter.check("ip:1").is_limited is True
        assert limiter.check("ip:2").is_limited is False

    def test_boundary_burst_allows_twice_max(self, limiter, clock):
        # Fixed window: max requests at the end of one window and max at the
        # start of the next are all accepted.
        accepted = 0
        for _ in range(4):
            if not limiter.check("ip:1").is_limited:
                limiter.increment("ip:1")
                accepted += 1
        clock.advance_ms(60_001)
        for _ in range(5):
            if not limiter.check("ip:1").is_limited:
                limiter.increment("ip:1")
                accepted += 1
        assert accepted == 9


class TestCheck:
    def test_check_does_not_count(self, limiter):
        for _ in range(10):
            status = limiter.check("ip:1")
        assert status.is_limited is False
        assert status.remaining == 5
        assert limiter.backend.keys() == []

    def test_check_reports_zero_after_expiry(self, limiter, clock):
        for _ in range(5):
            limiter.increment("ip:1")
        clock.advance_ms(60_001)
        status = limiter.check("ip:1")
        assert status.is_limited is False
        assert status.remaining == 5

    def test_reset_time_is_window_end(self, limiter, clock):
        limiter.increment("ip:1")
        expected = datetime.fromtimestamp(clock.now + 60, tz=timezone.utc)
        assert limiter.check("ip:1").reset_time == expected


class TestReset:
    def test_reset_single_key(self, limiter):
        for _ in range(5):
            limiter.increment("ip:1")
        limiter.increment("ip:2")
        limiter.reset("ip:1")
        assert limiter.check("ip:1").remaining == 5
        assert limiter.check("ip:2").remaining == 4

    def test_reset_all(self, limiter):
        limiter.increment("ip:1")
        limiter.increment("ip:2")
        limiter.reset_all()
        assert limiter.stats()["tracked_keys"] == 0


class FailingBackend(InMemoryBackend):
    def save(self, key, entry, ttl_ms):
        raise ConnectionError("store down")


def test_storage_errors_never_fail_a_request(clock):
    limiter = FixedWindowRateLimiter(
        window_ms=1000, max_requests=2, backend=FailingBackend(), clock=clock
    )
    status = limiter.increment("ip:1")
    assert status.is_limited is False


def test_retry_after_rounds_up():
    entry = RateLimitEntry(count=3, first_request=0, last_request=0)
    limiter = FixedWindowRateLimiter(window_ms=1500, max_requests=3, clock=lambda: 0.0)
    limiter.backend.save("rate_limit_k", entry, 1500)
    assert limiter.check("k").retry_after_seconds == 2


def test_build_rate_limiter_defaults_to_memory():
    limiter = build_rate_limiter(Settings(RATE_LIMIT_MAX_REQUESTS=3, RATE_LIMIT_WINDOW_MS=1000))
    assert limiter.backend.name == "in_memory"
    assert limiter.max_requests == 3
    assert limiter.window_ms == 1000


def test_build_rate_limiter_falls_back_when_redis_unreachable():
    settings = Settings(RATE_LIMIT_BACKEND="redis", REDIS_URL="redis://127.0.0.1:1/0")
    assert build_rate_limiter(settings).backend.name == "in_memory"
