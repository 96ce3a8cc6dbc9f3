# src/tickerhub_api/application/interfaces/clock.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Application Port: Clock.

Synopsis:
    Time source used by the rate limiter, cache and client state machine.
    Injecting it keeps rate-limit waits, backoff and TTL expiry testable
    without real sleeping.

Layer:
    application/interfaces
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    """Monotonic + wall-clock time with a cooperative sleep."""

    def monotonic(self) -> float:
        """Return a monotonic timestamp in seconds (for windows and deadlines)."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC wall-clock time."""

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling coroutine for ``seconds``."""
