"""Tests for the fixed-window rate limiter"""

from datetime import datetime, timedelta, timezone

import pytest

from src.engine.rate_limit import RateLimiter, RateWindow, parse_timestamp

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestRateLimiter:
    """Fixed-window decisions"""

    @pytest.fixture
    def limiter(self):
        return RateLimiter(limit=5, period_seconds=60, clock=lambda: NOW)

    def test_empty_window_allows_and_starts_new(self, limiter):
        decision = limiter.check(None)

        assert decision.allowed
        assert decision.remaining == 4
        assert decision.next_window.count == 1
        assert decision.next_window.reset_at == NOW + timedelta(seconds=60)

    def test_last_slot_allows_with_zero_remaining(self, limiter):
        window = RateWindow(count=4, reset_at=NOW + timedelta(seconds=30))

        decision = limiter.check(window)

        assert decision.allowed
        assert decision.remaining == 0
        assert decision.next_window.count == 5
        assert decision.next_window.reset_at == window.reset_at

    def test_full_window_denies_and_keeps_window(self, limiter):
        window = RateWindow(count=5, reset_at=NOW + timedelta(seconds=30))

        decision = limiter.check(window)

        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.next_window is window
        assert decision.reset_at == window.reset_at

    @pytest.mark.parametrize("count", [0, 5, 50])
    def test_expired_window_always_resets(self, limiter, count):
        window = RateWindow(count=count, reset_at=NOW)

        decision = limiter.check(window)

        assert decision.allowed
        assert decision.next_window.count == 1
        assert decision.next_window.reset_at == NOW + timedelta(seconds=60)

    def test_limit_override(self, limiter):
        window = RateWindow(count=5, reset_at=NOW + timedelta(seconds=30))
        assert limiter.check(window, limit=10).allowed

    def test_sequence_allows_exactly_limit(self, limiter):
        window = None
        allowed = 0
        for _ in range(8):
            decision = limiter.check(window)
            if decision.allowed:
                allowed += 1
            window = decision.next_window
        assert allowed == 5

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            RateLimiter(limit=0)
        with pytest.raises(ValueError):
            RateLimiter(period_seconds=0)


class TestRateWindow:
    """Window serialization"""

    def test_round_trip(self):
        window = RateWindow(count=3, reset_at=NOW)
        restored = RateWindow.from_dict(window.to_dict())
        assert restored == window

    def test_from_empty(self):
        assert RateWindow.from_dict(None) == RateWindow()

    def test_parse_timestamp_naive_is_utc(self):
        assert parse_timestamp("2025-01-15T12:00:00") == NOW
        assert parse_timestamp("2025-01-15T12:00:00Z") == NOW
        assert parse_timestamp("") is None
