# src/tickerhub_api/infrastructure/resilience/rate_limiter.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Sliding-window rate limiter (in-memory).

Behavior:
    - Records the monotonic time of every granted call.
    - A call is granted while fewer than ``quota`` records fall inside the
      trailing ``window_s`` seconds.
    - A denied call learns how long until the oldest record leaves the
      window, so the caller can decide whether to wait.

This is process-local. The check and the record happen under one lock, so
concurrent callers can never overrun the quota.
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from tickerhub_api.application.interfaces.clock import Clock
from tickerhub_api.application.interfaces.rate_limiter_port import RateDecision
from tickerhub_api.infrastructure.observability.metrics_market_data import (
    market_data_rate_limit_decisions_total,
)

logger = logging.getLogger(__name__)

# Absorbs float drift between a computed wait and the slept duration.
_EPSILON = 1e-9


class SlidingWindowRateLimiter:
    """At most ``quota`` calls in any trailing ``window_s`` seconds."""

    def __init__(self, quota: int, window_s: float, clock: Clock) -> None:
        if quota < 1:
            raise ValueError("quota must be >= 1")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self._quota = quota
        self._window_s = float(window_s)
        self._clock = clock
        self._calls: deque[float] = deque()
        self._lock = threading.Lock()

    @property
    def quota(self) -> int:
        return self._quota

    @property
    def window_s(self) -> float:
        return self._window_s

    def try_acquire(self) -> RateDecision:
        """Record a call and grant it, or report how long to wait."""
        with self._lock:
            now = self._clock.monotonic()
            self._prune(now)
            if len(self._calls) < self._quota:
                self._calls.append(now)
                decision = RateDecision(granted=True)
            else:
                wait_s = max(0.0, self._calls[0] + self._window_s - now)
                decision = RateDecision(granted=False, wait_s=wait_s)

        market_data_rate_limit_decisions_total.labels(
            decision="granted" if decision.granted else "denied"
        ).inc()
        if not decision.granted:
            logger.debug(
                "rate_limiter.denied",
                extra={"wait_s": round(decision.wait_s, 3), "quota": self._quota},
            )
        return decision

    def in_window(self) -> int:
        with self._lock:
            self._prune(self._clock.monotonic())
            return len(self._calls)

    def remaining(self) -> int:
        return max(0, self._quota - self.in_window())

    def _prune(self, now: float) -> None:
        cutoff = now - self._window_s + _EPSILON
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()
