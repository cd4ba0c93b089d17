import pytest
from firebase_admin.exceptions import ResourceExhaustedError

from rentals.rate_limit import RateLimitBackoff, call_with_backoff, is_rate_limit_error


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_is_rate_limit_error():
    assert is_rate_limit_error(ResourceExhaustedError("quota", None))
    assert is_rate_limit_error(Exception("TOO_MANY_ATTEMPTS: Too many attempts, try later"))
    assert is_rate_limit_error(Exception("project is rate-limited"))
    assert not is_rate_limit_error(ValueError("bad uid"))


def test_backoff_doubles_up_to_cap():
    clock = FakeClock()
    backoff = RateLimitBackoff(clock=clock)
    delays = []
    for _ in range(7):
        delays.append(backoff.next_delay())
        clock.now += 1
    assert delays == [1, 2, 4, 8, 16, 16, 16]


def test_backoff_resets_after_quiet_period():
    clock = FakeClock()
    backoff = RateLimitBackoff(clock=clock)
    backoff.next_delay()
    backoff.next_delay()
    clock.now = 61
    assert backoff.next_delay() == 1


def test_call_with_backoff_retries_rate_limits():
    attempts = []
    sleeps = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise Exception("Too many attempts")
        return "ok"

    backoff = RateLimitBackoff(clock=FakeClock())
    assert call_with_backoff(flaky, sleep=sleeps.append, backoff=backoff) == "ok"
    assert sleeps == [1, 2]


def test_call_with_backoff_gives_up_after_retries():
    sleeps = []

    def always_limited():
        raise Exception("rate-limited")

    with pytest.raises(Exception, match="rate-limited"):
        call_with_backoff(always_limited, retries=2, sleep=sleeps.append, backoff=RateLimitBackoff(clock=FakeClock()))
    assert len(sleeps) == 2


def test_call_with_backoff_propagates_other_errors_immediately():
    sleeps = []

    def broken():
        raise KeyError("uid")

    with pytest.raises(KeyError):
        call_with_backoff(broken, sleep=sleeps.append)
    assert sleeps == []
