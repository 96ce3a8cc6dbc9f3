# src/tickerhub_api/application/services/cache_ttl.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Cache TTL bands by query kind.

Synopsis:
    Chooses how long a normalized result stays fresh. Intraday series live
    roughly one bar, calendars live until the end of the exchange's trading
    day, and quotes are short-lived during regular market hours.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from tickerhub_api.domain.entities.time_series_bar import BarInterval

#: Regular US equity session, exchange local time.
_MARKET_OPEN = time(9, 30)
_MARKET_CLOSE = time(16, 0)


@dataclass(frozen=True)
class CacheTtlPolicy:
    """TTL selection for each query kind.

    Attributes:
        daily_series_ttl_s: TTL for daily/weekly/monthly series.
        calendar_min_ttl_s: Floor for calendar TTLs near midnight.
        quote_market_hours_ttl_s: Quote TTL during the regular session.
        quote_after_hours_ttl_s: Quote TTL outside the regular session.
        exchange_timezone: IANA zone that defines the trading day.
    """

    daily_series_ttl_s: float = 3600.0
    calendar_min_ttl_s: float = 60.0
    quote_market_hours_ttl_s: float = 10.0
    quote_after_hours_ttl_s: float = 60.0
    exchange_timezone: str = "America/New_York"

    def for_series(self, interval: BarInterval) -> float:
        """Return the TTL for a series of ``interval`` bars."""
        if interval.is_intraday:
            return float(interval.seconds)
        return self.daily_series_ttl_s

    def for_calendar(self, now: datetime) -> float:
        """Return the seconds left in the exchange's current day (floored)."""
        local = now.astimezone(ZoneInfo(self.exchange_timezone))
        next_midnight = datetime.combine(
            local.date() + timedelta(days=1), time(0), tzinfo=local.tzinfo
        )
        # timestamp() honors the UTC offset on DST transition days.
        remaining = next_midnight.timestamp() - now.timestamp()
        return max(self.calendar_min_ttl_s, remaining)

    def for_quote(self, now: datetime) -> float:
        """Return a short TTL in market hours and a longer one otherwise."""
        if self.is_market_hours(now):
            return self.quote_market_hours_ttl_s
        return self.quote_after_hours_ttl_s

    def is_market_hours(self, now: datetime) -> bool:
        """Return True during the regular weekday session (holidays ignored)."""
        local = now.astimezone(ZoneInfo(self.exchange_timezone))
        if local.weekday() >= 5:
            return False
        return _MARKET_OPEN <= local.time() < _MARKET_CLOSE
