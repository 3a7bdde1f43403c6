"""Tests for the sliding-window FEC rate limiter."""

import pytest

from candidate_finance_etl.utils.rate_limiter import FECRateLimiter
from tests.helpers import FakeClock


def _limiter(max_per_minute: int, clock: FakeClock, min_delay: float = 0.0):
    sleeps: list[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    limiter = FECRateLimiter(max_per_minute, min_delay=min_delay, clock=clock, sleep=sleep)
    return limiter, sleeps


class TestFECRateLimiter:
    def test_no_wait_within_budget(self):
        clock = FakeClock()
        limiter, sleeps = _limiter(3, clock)

        for _ in range(3):
            assert limiter.wait_if_needed() == 0.0

        assert sleeps == []
        assert limiter.get_stats() == {"requests_last_minute": 3, "remaining_minute": 0}

    def test_waits_for_window_when_budget_exhausted(self):
        clock = FakeClock()
        limiter, sleeps = _limiter(2, clock)

        limiter.wait_if_needed()
        clock.advance(10)
        limiter.wait_if_needed()
        clock.advance(5)

        waited = limiter.wait_if_needed()

        # Oldest request at t=0 leaves the window at t=60; now is t=15
        assert waited == pytest.approx(45.0)
        assert sleeps == [pytest.approx(45.0)]

    def test_requests_age_out_of_window(self):
        clock = FakeClock()
        limiter, sleeps = _limiter(1, clock)

        limiter.wait_if_needed()
        clock.advance(61)

        assert limiter.wait_if_needed() == 0.0
        assert sleeps == []

    def test_on_wait_callback_receives_duration(self):
        clock = FakeClock()
        waits: list[float] = []
        limiter = FECRateLimiter(
            1, clock=clock, sleep=lambda s: clock.advance(s), on_wait=waits.append
        )

        limiter.wait_if_needed()
        limiter.wait_if_needed()

        assert waits == [pytest.approx(60.0)]

    def test_min_delay_spaces_requests(self):
        clock = FakeClock()
        limiter, sleeps = _limiter(100, clock, min_delay=0.5)

        limiter.wait_if_needed()
        clock.advance(0.2)
        limiter.wait_if_needed()

        assert sleeps == [pytest.approx(0.3)]

    def test_set_limit_applies_to_next_request(self):
        clock = FakeClock()
        limiter, sleeps = _limiter(10, clock)
        limiter.wait_if_needed()

        limiter.set_limit(1)
        limiter.wait_if_needed()

        assert len(sleeps) == 1

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            FECRateLimiter(0)
        with pytest.raises(ValueError):
            FECRateLimiter(5).set_limit(0)
