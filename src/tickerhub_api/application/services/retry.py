# src/tickerhub_api/application/services/retry.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Retry policy with (optionally jittered) exponential backoff."""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry attempts."""

    total: int = 2  # number of retries (not counting the first attempt)
    base: float = 0.25  # base backoff seconds
    cap: float = 2.0  # max backoff seconds
    jitter: bool = False  # full jitter if True

    def __post_init__(self) -> None:
        if self.total < 0:
            raise ValueError("RetryPolicy.total must be >= 0.")
        if self.base < 0 or self.cap < 0:
            raise ValueError("RetryPolicy backoff values must be >= 0.")

    def backoff(self, attempt: int) -> float:
        """Return the delay before retry number ``attempt + 1``.

        Args:
            attempt: Zero-based index of the attempt that just failed.

        Returns:
            Seconds to wait: ``min(cap, base * 2**attempt)``, drawn uniformly
            from ``[0, that]`` when jitter is enabled.
        """
        delay = min(self.cap, self.base * (2**attempt))
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay
