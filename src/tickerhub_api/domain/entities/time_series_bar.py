# src/tickerhub_api/domain/entities/time_series_bar.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Time-Series Bars (Domain Entities).

Synopsis:
    Immutable domain primitives for OHLCV bars (intraday and end-of-day).
    Contains strict value semantics and the supported interval enumeration.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Final

from tickerhub_api.domain.entities.base import BaseEntity, require_finite, require_symbol
from tickerhub_api.domain.exceptions.market_data import MarketDataBadRequest


class BarInterval(str, Enum):
    """Supported bar intervals, valued with the provider's labels."""

    I1MIN = "1min"
    I5MIN = "5min"
    I15MIN = "15min"
    I30MIN = "30min"
    I45MIN = "45min"
    I1H = "1h"
    I2H = "2h"
    I4H = "4h"
    I1DAY = "1day"
    I1WEEK = "1week"
    I1MONTH = "1month"

    def __str__(self) -> str:  # pragma: no cover - trivial
        """Return the canonical string representation for this interval."""
        return self.value

    @property
    def seconds(self) -> int:
        """Nominal length of one bar in seconds (months count as 30 days)."""
        return _INTERVAL_SECONDS[self]

    @property
    def is_intraday(self) -> bool:
        """Return True for intervals shorter than one trading day."""
        return self.seconds < _INTERVAL_SECONDS[BarInterval.I1DAY]

    @classmethod
    def parse(cls, value: BarInterval | str) -> BarInterval:
        """Parse a caller interval (canonical label or short alias).

        Args:
            value: Interval such as ``"5min"``, ``"5m"``, ``"1d"`` or an enum member.

        Returns:
            The matching :class:`BarInterval`.

        Raises:
            MarketDataBadRequest: On an unsupported interval.
        """
        if isinstance(value, BarInterval):
            return value
        s = str(value).strip().lower()
        s = _INTERVAL_ALIASES.get(s, s)
        try:
            return cls(s)
        except ValueError as exc:
            raise MarketDataBadRequest(
                f"Unsupported interval '{value}'",
                details={"allowed": [i.value for i in cls]},
            ) from exc


_INTERVAL_SECONDS: Final[dict[BarInterval, int]] = {
    BarInterval.I1MIN: 60,
    BarInterval.I5MIN: 5 * 60,
    BarInterval.I15MIN: 15 * 60,
    BarInterval.I30MIN: 30 * 60,
    BarInterval.I45MIN: 45 * 60,
    BarInterval.I1H: 3600,
    BarInterval.I2H: 2 * 3600,
    BarInterval.I4H: 4 * 3600,
    BarInterval.I1DAY: 86400,
    BarInterval.I1WEEK: 7 * 86400,
    BarInterval.I1MONTH: 30 * 86400,
}

_INTERVAL_ALIASES: Final[dict[str, str]] = {
    "1m": "1min",
    "5m": "5min",
    "15m": "15min",
    "30m": "30min",
    "45m": "45min",
    "60m": "1h",
    "60min": "1h",
    "1hour": "1h",
    "1d": "1day",
    "1w": "1week",
    "1mo": "1month",
}


@dataclass(frozen=True)
class TimeSeriesBar(BaseEntity):
    """A single OHLCV bar for a symbol at a given timestamp.

    Attributes:
        symbol:
            Upper-case ticker symbol (non-empty).
        timestamp:
            Timezone-aware datetime at bar open, normalized to UTC.
        open:
            Open price for the interval (finite, >= 0).
        high:
            High price for the interval (finite, >= 0).
        low:
            Low price for the interval (finite, >= 0 and <= high).
        close:
            Close price for the interval (finite, >= 0).
        volume:
            Traded volume, or ``None`` when the provider does not report it
            (e.g. forex pairs).
        interval:
            Interval used to aggregate this bar.
    """

    symbol: str
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal | None
    interval: BarInterval

    def __post_init__(self) -> None:
        """Enforce core invariants for time-series bars."""
        super().__post_init__()

        require_symbol("TimeSeriesBar", self.symbol)
        if self.timestamp.tzinfo is None:
            raise ValueError("TimeSeriesBar.timestamp must be timezone-aware.")

        for field_name in ("open", "high", "low", "close"):
            require_finite("TimeSeriesBar", field_name, getattr(self, field_name))
        require_finite("TimeSeriesBar", "volume", self.volume, optional=True)

        if self.low > self.high:
            raise ValueError("TimeSeriesBar.low must be <= TimeSeriesBar.high.")
