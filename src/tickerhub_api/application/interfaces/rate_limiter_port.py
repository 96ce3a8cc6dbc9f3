# src/tickerhub_api/application/interfaces/rate_limiter_port.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Application Port: provider request budget."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RateDecision:
    """Outcome of one acquisition attempt.

    Attributes:
        granted: True when a request slot was recorded for the caller.
        wait_s: When not granted, seconds until the oldest recorded call
            leaves the window.
    """

    granted: bool
    wait_s: float = 0.0


class RateLimiterPort(Protocol):
    """Process-wide quota of provider calls per rolling window."""

    def try_acquire(self) -> RateDecision:
        """Atomically check the budget and record a call when allowed."""

    def in_window(self) -> int:
        """Return how many calls are currently counted in the window."""

    def remaining(self) -> int:
        """Return how many calls could be granted right now."""
