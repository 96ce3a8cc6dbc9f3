# src/tickerhub_api/adapters/schemas/http/market_data.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""HTTP response schemas for market data routes.

Each schema offers ``from_domain`` to render the corresponding frozen domain
record; routers stay free of field-by-field copying.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field

from tickerhub_api.adapters.schemas.http.base import BaseHTTPSchema, DecimalStr
from tickerhub_api.domain.entities.calendar_event import (
    DividendEvent,
    EarningsEvent,
    IpoEvent,
)
from tickerhub_api.domain.entities.quote import Quote
from tickerhub_api.domain.entities.time_series_bar import TimeSeriesBar


class BarHTTP(BaseHTTPSchema):
    """One OHLCV bar; ``timestamp`` is UTC."""

    timestamp: datetime
    open: DecimalStr
    high: DecimalStr
    low: DecimalStr
    close: DecimalStr
    volume: DecimalStr | None = None

    @classmethod
    def from_domain(cls, bar: TimeSeriesBar) -> BarHTTP:
        return cls(
            timestamp=bar.timestamp,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
        )


class TimeSeriesHTTP(BaseHTTPSchema):
    """Bars for one symbol and interval, ordered oldest-first."""

    symbol: str = Field(..., examples=["AAPL"])
    interval: str = Field(..., examples=["5min"])
    count: int
    bars: list[BarHTTP]

    @classmethod
    def from_domain(cls, symbol: str, interval: str, bars: list[TimeSeriesBar]) -> TimeSeriesHTTP:
        return cls(
            symbol=symbol,
            interval=interval,
            count=len(bars),
            bars=[BarHTTP.from_domain(b) for b in bars],
        )


class QuoteHTTP(BaseHTTPSchema):
    """Latest quote."""

    symbol: str
    close: DecimalStr
    name: str | None = None
    exchange: str | None = None
    currency: str | None = None
    timestamp: datetime | None = None
    open: DecimalStr | None = None
    high: DecimalStr | None = None
    low: DecimalStr | None = None
    volume: DecimalStr | None = None
    previous_close: DecimalStr | None = None
    change: DecimalStr | None = None
    percent_change: DecimalStr | None = None
    is_market_open: bool | None = None

    @classmethod
    def from_domain(cls, quote: Quote) -> QuoteHTTP:
        return cls(
            symbol=quote.symbol,
            close=quote.close,
            name=quote.name,
            exchange=quote.exchange,
            currency=quote.currency,
            timestamp=quote.timestamp,
            open=quote.open,
            high=quote.high,
            low=quote.low,
            volume=quote.volume,
            previous_close=quote.previous_close,
            change=quote.change,
            percent_change=quote.percent_change,
            is_market_open=quote.is_market_open,
        )


class QuoteBatchHTTP(BaseHTTPSchema):
    """Latest quotes for several symbols.

    ``missing`` lists requested symbols the provider returned no quote for.
    """

    quotes: list[QuoteHTTP]
    missing: list[str]

    @classmethod
    def from_domain(cls, requested: tuple[str, ...], quotes: dict[str, Quote]) -> QuoteBatchHTTP:
        return cls(
            quotes=[QuoteHTTP.from_domain(q) for q in quotes.values()],
            missing=[s for s in requested if s not in quotes],
        )


class DividendEventHTTP(BaseHTTPSchema):
    symbol: str
    name: str
    event_date: date
    amount: DecimalStr
    payment_date: date | None = None
    dividend_yield: DecimalStr | None = None
    currency: str | None = None
    exchange: str | None = None

    @classmethod
    def from_domain(cls, event: DividendEvent) -> DividendEventHTTP:
        return cls(
            symbol=event.symbol,
            name=event.name,
            event_date=event.event_date,
            amount=event.amount,
            payment_date=event.payment_date,
            dividend_yield=event.dividend_yield,
            currency=event.currency,
            exchange=event.exchange,
        )


class IpoEventHTTP(BaseHTTPSchema):
    symbol: str
    name: str
    event_date: date
    exchange: str | None = None
    price_range: str = Field(..., examples=["$18-$20", "TBD"])
    offer_price: DecimalStr | None = None
    shares: int | None = None
    currency: str | None = None

    @classmethod
    def from_domain(cls, event: IpoEvent) -> IpoEventHTTP:
        return cls(
            symbol=event.symbol,
            name=event.name,
            event_date=event.event_date,
            exchange=event.exchange,
            price_range=event.price_range,
            offer_price=event.offer_price,
            shares=event.shares,
            currency=event.currency,
        )


class EarningsEventHTTP(BaseHTTPSchema):
    symbol: str
    name: str
    event_date: date
    time: str | None = None
    eps_estimate: DecimalStr | None = None
    eps_actual: DecimalStr | None = None

    @classmethod
    def from_domain(cls, event: EarningsEvent) -> EarningsEventHTTP:
        return cls(
            symbol=event.symbol,
            name=event.name,
            event_date=event.event_date,
            time=event.time,
            eps_estimate=event.eps_estimate,
            eps_actual=event.eps_actual,
        )


class ClientStatsHTTP(BaseHTTPSchema):
    """Snapshot of cache, rate budget and coalescing counters."""

    cache: dict[str, int]
    rate_limit: dict[str, int]
    in_flight: int
    coalesced_total: int
    provider_calls_total: int

    @classmethod
    def from_domain(cls, stats: dict[str, Any]) -> ClientStatsHTTP:
        return cls(**stats)
