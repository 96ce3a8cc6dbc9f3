# src/tickerhub_api/infrastructure/time/system_clock.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Process clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime


class SystemClock:
    """Real-time implementation of the application ``Clock`` port."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(tz=UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))
