# src/tickerhub_api/domain/value_objects/market_query.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Market data query value objects.

Synopsis:
    Validated, normalized descriptions of what a caller asks the market data
    client for. Each query exposes a ``signature``: the identity used for
    cache keys and in-flight request coalescing.

Design:
    * Symbols are stripped and upper-cased; the provider treats them
      case-insensitively, so ``aapl`` and ``AAPL`` share one signature.
    * ``output_size`` outside ``[1, MAX_OUTPUT_SIZE]`` is rejected rather
      than silently clamped.

Layer:
    domain/value_objects
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Final

from tickerhub_api.domain.entities.calendar_event import CalendarKind
from tickerhub_api.domain.entities.time_series_bar import BarInterval
from tickerhub_api.domain.exceptions.market_data import MarketDataBadRequest

#: Largest ``outputsize`` the provider accepts for a time series.
MAX_OUTPUT_SIZE: Final[int] = 5000

#: Most distinct symbols accepted in one batch quote lookup.
MAX_BATCH_SYMBOLS: Final[int] = 50


def normalize_symbol(symbol: str) -> str:
    """Return the canonical (stripped, upper-case) form of a ticker symbol.

    Raises:
        MarketDataBadRequest: If the symbol is empty or not a string.
    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise MarketDataBadRequest("symbol must be a non-empty string")
    return symbol.strip().upper()


def quote_signature(symbol: str) -> str:
    """Return the cache/coalescing signature for a latest-quote lookup."""
    return f"quote:{normalize_symbol(symbol)}"


def normalize_symbol_batch(symbols: Iterable[str]) -> tuple[str, ...]:
    """Normalize a batch of symbols, dropping duplicates but keeping order.

    Raises:
        MarketDataBadRequest: If the batch is empty, holds an invalid symbol,
            or names more than ``MAX_BATCH_SYMBOLS`` distinct symbols.
    """
    if isinstance(symbols, str):
        raise MarketDataBadRequest("symbols must be a collection of strings")
    batch = tuple(dict.fromkeys(normalize_symbol(s) for s in symbols))
    if not batch:
        raise MarketDataBadRequest("at least one symbol is required")
    if len(batch) > MAX_BATCH_SYMBOLS:
        raise MarketDataBadRequest(
            f"at most {MAX_BATCH_SYMBOLS} symbols per request",
            details={"symbols": len(batch)},
        )
    return batch


@dataclass(frozen=True)
class TimeSeriesQuery:
    """A request for OHLCV bars.

    Attributes:
        symbol: Ticker symbol (normalized to upper case).
        interval: Bar interval (aliases such as ``"5m"`` are accepted).
        output_size: Maximum number of bars to return.
        start_date: Optional inclusive lower date bound.
        end_date: Optional inclusive upper date bound.
    """

    symbol: str
    interval: BarInterval
    output_size: int
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", normalize_symbol(self.symbol))
        object.__setattr__(self, "interval", BarInterval.parse(self.interval))

        if isinstance(self.output_size, bool) or not isinstance(self.output_size, int):
            raise MarketDataBadRequest("output_size must be an integer")
        if not 1 <= self.output_size <= MAX_OUTPUT_SIZE:
            raise MarketDataBadRequest(
                f"output_size must be between 1 and {MAX_OUTPUT_SIZE}",
                details={"output_size": self.output_size},
            )
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        ):
            raise MarketDataBadRequest(
                "start_date must be <= end_date",
                details={
                    "start_date": self.start_date.isoformat(),
                    "end_date": self.end_date.isoformat(),
                },
            )

    @property
    def signature(self) -> str:
        """Identity tuple rendered as a cache key."""
        start = self.start_date.isoformat() if self.start_date else "-"
        end = self.end_date.isoformat() if self.end_date else "-"
        return f"series:{self.symbol}:{self.interval.value}:{self.output_size}:{start}:{end}"


@dataclass(frozen=True)
class CalendarQuery:
    """A request for one day of a calendar (dividends, IPOs or earnings)."""

    kind: CalendarKind
    day: date

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "kind", CalendarKind(self.kind))
        except ValueError as exc:
            raise MarketDataBadRequest(f"Unsupported calendar '{self.kind}'") from exc
        if not isinstance(self.day, date):
            raise MarketDataBadRequest("day must be a date")

    @property
    def signature(self) -> str:
        """Identity tuple rendered as a cache key."""
        return f"calendar:{self.kind.value}:{self.day.isoformat()}"
