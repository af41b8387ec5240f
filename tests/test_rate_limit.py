import pytest

from pdfbatch.batch.errors import RateLimitExceededError
from pdfbatch.batch.rate_limit import RateLimiter


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_limit_then_rejects():
    limiter = RateLimiter(max_requests=3, window_seconds=60, clock=Clock())
    for _ in range(3):
        limiter.check("u1")

    with pytest.raises(RateLimitExceededError) as info:
        limiter.check("u1")
    assert info.value.status_code == 429
    assert "retryAfter" in info.value.details


def test_keys_are_independent():
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=Clock())
    limiter.check("u1")
    limiter.check("u2")
    with pytest.raises(RateLimitExceededError):
        limiter.check("u1")


def test_window_resets_and_expired_entries_are_swept():
    clock = Clock()
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    limiter.check("u1")
    limiter.check("u2")
    assert len(limiter) == 2

    clock.now += 61
    limiter.check("u1")
    assert len(limiter) == 1
