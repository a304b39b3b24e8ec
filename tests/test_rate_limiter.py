import pytest

from partner_app.core import rate_limit
from partner_app.core.errors import RateLimitedError
from partner_app.core.rate_limit import RateLimiter


@pytest.fixture
def clock(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(rate_limit.time, "monotonic", lambda: now[0])
    return now


def test_allows_up_to_limit(clock):
    limiter = RateLimiter()
    assert all(limiter.allow_request("k", 3, 60) for _ in range(3))
    assert limiter.allow_request("k", 3, 60) is False
    # other keys are independent
    assert limiter.allow_request("other", 3, 60) is True


def test_window_slides(clock):
    limiter = RateLimiter()
    for _ in range(2):
        limiter.allow_request("k", 2, 60)
    assert limiter.allow_request("k", 2, 60) is False

    clock[0] += 61
    assert limiter.allow_request("k", 2, 60) is True


def test_hit_raises_and_reset_clears(clock):
    limiter = RateLimiter()
    limiter.hit("k", 1, 60)
    with pytest.raises(RateLimitedError):
        limiter.hit("k", 1, 60)

    limiter.reset("k")
    limiter.hit("k", 1, 60)


def test_is_limited_does_not_record(clock):
    limiter = RateLimiter()
    for _ in range(5):
        assert limiter.is_limited("k", 2, 60) is False

    limiter.allow_request("k", 2, 60)
    limiter.allow_request("k", 2, 60)
    assert limiter.is_limited("k", 2, 60) is True

    clock[0] += 61
    assert limiter.is_limited("k", 2, 60) is False
