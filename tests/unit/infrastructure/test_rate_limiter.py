# tests/unit/infrastructure/test_rate_limiter.py
from __future__ import annotations

import threading

import pytest

from support.fakes import ManualClock
from tickerhub_api.infrastructure.resilience.rate_limiter import SlidingWindowRateLimiter


def test_grants_up_to_quota_then_reports_wait() -> None:
    clock = ManualClock()
    limiter = SlidingWindowRateLimiter(3, 60.0, clock)

    assert all(limiter.try_acquire().granted for _ in range(3))
    clock.advance(15.0)
    denied = limiter.try_acquire()

    assert not denied.granted
    assert denied.wait_s == pytest.approx(45.0)
    assert limiter.in_window() == 3
    assert limiter.remaining() == 0


def test_window_slides_call_by_call() -> None:
    clock = ManualClock()
    limiter = SlidingWindowRateLimiter(2, 10.0, clock)

    assert limiter.try_acquire().granted
    clock.advance(4.0)
    assert limiter.try_acquire().granted

    clock.advance(6.0)  # first call leaves the window exactly now
    assert limiter.try_acquire().granted
    assert not limiter.try_acquire().granted

    clock.advance(4.0)  # second call leaves
    assert limiter.in_window() == 1


def test_denied_attempts_do_not_consume_budget() -> None:
    clock = ManualClock()
    limiter = SlidingWindowRateLimiter(1, 60.0, clock)

    limiter.try_acquire()
    for _ in range(5):
        assert not limiter.try_acquire().granted

    clock.advance(60.0)
    assert limiter.try_acquire().granted


def test_waiting_exactly_the_reported_time_is_enough() -> None:
    clock = ManualClock()
    limiter = SlidingWindowRateLimiter(1, 60.0, clock)
    limiter.try_acquire()
    clock.advance(0.3)

    denied = limiter.try_acquire()
    clock.advance(denied.wait_s)

    assert limiter.try_acquire().granted


@pytest.mark.parametrize(("quota", "window_s"), [(0, 60.0), (1, 0.0)])
def test_invalid_configuration(quota: int, window_s: float) -> None:
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(quota, window_s, ManualClock())


def test_concurrent_threads_never_exceed_quota() -> None:
    limiter = SlidingWindowRateLimiter(8, 60.0, ManualClock())
    granted: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(10):
            ok = limiter.try_acquire().granted
            with lock:
                granted.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(granted) == 8
    assert limiter.in_window() == 8
