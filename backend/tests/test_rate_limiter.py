import threading
from unittest.mock import MagicMock

import pytest

from services.rate_limiter import RATE_LIMITED, SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_call_past_ceiling_is_rate_limited_without_transport():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(max_calls=3, window_seconds=60, clock=clock)
    transport = MagicMock(return_value="response")

    results = [limiter.attempt_call(transport, "url") for _ in range(3)]
    assert results == ["response"] * 3

    assert limiter.attempt_call(transport, "url") is RATE_LIMITED
    assert transport.call_count == 3


def test_calls_succeed_again_after_window_elapses():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(max_calls=2, window_seconds=60, clock=clock)
    transport = MagicMock(return_value="ok")

    limiter.attempt_call(transport)
    clock.now += 30
    limiter.attempt_call(transport)
    assert limiter.attempt_call(transport) is RATE_LIMITED

    # first call leaves the window, second is still inside it
    clock.now += 31
    assert limiter.current_window_count() == 1
    assert limiter.attempt_call(transport) == "ok"
    assert limiter.attempt_call(transport) is RATE_LIMITED


def test_transport_failure_propagates_and_counts_as_attempt():
    limiter = SlidingWindowRateLimiter(max_calls=5, window_seconds=60, clock=FakeClock())
    transport = MagicMock(side_effect=ConnectionError("boom"))

    with pytest.raises(ConnectionError):
        limiter.attempt_call(transport, tag="Nearby")
    assert limiter.current_window_count() == 1


def test_kwargs_are_forwarded_and_tag_is_not():
    limiter = SlidingWindowRateLimiter(max_calls=5, window_seconds=60, clock=FakeClock())
    transport = MagicMock(return_value=1)

    limiter.attempt_call(transport, "u", params={"a": 1}, tag="Nearby")
    transport.assert_called_once_with("u", params={"a": 1})


def test_sentinel_is_falsy_singleton():
    assert not RATE_LIMITED
    assert repr(RATE_LIMITED) == "RATE_LIMITED"
    assert type(RATE_LIMITED)() is RATE_LIMITED


def test_instances_are_isolated():
    a = SlidingWindowRateLimiter(max_calls=1, window_seconds=60, clock=FakeClock())
    b = SlidingWindowRateLimiter(max_calls=1, window_seconds=60, clock=FakeClock())
    a.attempt_call(lambda: None)
    assert a.attempt_call(lambda: None) is RATE_LIMITED
    assert b.attempt_call(lambda: "free") == "free"


def test_concurrent_attempts_never_exceed_ceiling():
    limiter = SlidingWindowRateLimiter(max_calls=10, window_seconds=60)
    calls = []
    lock = threading.Lock()

    def transport():
        with lock:
            calls.append(1)

    threads = [threading.Thread(target=limiter.attempt_call, args=(transport,)) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 10


@pytest.mark.parametrize("max_calls,window", [(0, 60), (1, 0)])
def test_invalid_configuration_rejected(max_calls, window):
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(max_calls=max_calls, window_seconds=window)
