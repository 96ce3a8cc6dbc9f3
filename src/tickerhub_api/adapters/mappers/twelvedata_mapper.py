# src/tickerhub_api/adapters/mappers/twelvedata_mapper.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Adapter Mapper: Twelve Data payloads → domain records.

Synopsis:
    Implements the application ``PayloadNormalizer`` port. Each raw body is
    first decoded against a pydantic model of the shape Twelve Data is known
    to return; anything else raises ``MarketDataShapeError``. Decoded rows
    are then converted into frozen domain entities.

Design principles:
    * Pure: no I/O, no clock, no logging side effects.
    * Numeric strings are parsed as ``Decimal``, so provider precision is
      preserved exactly.
    * Series timestamps are read in ``meta.exchange_timezone`` (UTC when
      absent) and converted to UTC; bars are returned oldest-first.
    * Calendar rows are kept only when they fall on the requested day.
    * Entity invariant violations (e.g. ``low > high``) surface as shape
      errors: the provider sent something the domain cannot represent.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from tickerhub_api.domain.entities.calendar_event import DividendEvent, EarningsEvent, IpoEvent
from tickerhub_api.domain.entities.quote import Quote
from tickerhub_api.domain.entities.time_series_bar import TimeSeriesBar
from tickerhub_api.domain.exceptions.market_data import MarketDataShapeError
from tickerhub_api.domain.value_objects.market_query import CalendarQuery, TimeSeriesQuery

M = TypeVar("M")
E = TypeVar("E")

_DEFAULT_DIVIDEND_CURRENCY = "USD"


# --------------------------------------------------------------------------- #
# Raw provider shapes
# --------------------------------------------------------------------------- #


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class _RawBar(_RawModel):
    stamp: str = Field(alias="datetime")
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal | None = None


class _RawSeriesMeta(_RawModel):
    symbol: str | None = None
    interval: str | None = None
    exchange_timezone: str | None = None


class _RawSeries(_RawModel):
    meta: _RawSeriesMeta = Field(default_factory=_RawSeriesMeta)
    values: list[_RawBar]


class _RawDividend(_RawModel):
    symbol: str
    name: str | None = None
    ex_date: date | None = None
    ex_dividend_date: date | None = None
    amount: Decimal | None = None
    dividend_amount: Decimal | None = None
    payment_date: date | None = None
    dividend_yield: Decimal | None = Field(default=None, alias="yield")
    currency: str | None = None
    exchange: str | None = None


class _RawDividendEnvelope(_RawModel):
    dividends: list[_RawDividend]


class _RawIpo(_RawModel):
    symbol: str
    name: str | None = None
    exchange: str | None = None
    price_range_low: Decimal | None = None
    price_range_high: Decimal | None = None
    offer_price: Decimal | None = None
    shares: int | None = None
    currency: str | None = None


class _RawEarning(_RawModel):
    symbol: str
    name: str | None = None
    day: date | None = Field(default=None, alias="date")
    time: str | None = None
    eps_estimate: Decimal | None = None
    eps_actual: Decimal | None = None


class _RawEarningsEnvelope(_RawModel):
    earnings: list[_RawEarning] | dict[date, list[_RawEarning]]


class _RawQuote(_RawModel):
    symbol: str
    name: str | None = None
    exchange: str | None = None
    currency: str | None = None
    timestamp: int | None = None
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    close: Decimal
    volume: Decimal | None = None
    previous_close: Decimal | None = None
    change: Decimal | None = None
    percent_change: Decimal | None = None
    is_market_open: bool | None = None


_DIVIDEND_ROWS = TypeAdapter(list[_RawDividend])
_IPO_DAYS = TypeAdapter(dict[date, list[_RawIpo]])


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _decode(what: str, parse: Callable[[Any], M], raw: Any) -> M:
    """Run a pydantic decode step, mapping failures to ``MarketDataShapeError``."""
    try:
        return parse(raw)
    except ValidationError as exc:
        first = exc.errors(include_url=False)[0]
        raise MarketDataShapeError(
            f"unrecognized {what} payload",
            details={
                "payload": what,
                "errors": exc.error_count(),
                "loc": ".".join(str(p) for p in first.get("loc", ())),
                "reason": str(first.get("msg", "")),
            },
        ) from exc


def _build(what: str, factory: Callable[..., E], **fields: Any) -> E:
    """Construct a domain entity, mapping invariant violations to shape errors."""
    try:
        return factory(**fields)
    except ValueError as exc:
        raise MarketDataShapeError(
            f"{what} violates domain invariants",
            details={"payload": what, "reason": str(exc)},
        ) from exc


def _zone(name: str | None) -> ZoneInfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise MarketDataShapeError(
            "unknown exchange timezone", details={"exchange_timezone": name}
        ) from exc


def _to_utc(stamp: str, zone: ZoneInfo | None) -> datetime:
    """Parse a provider ``datetime`` (``YYYY-MM-DD[ HH:MM:SS]``) into UTC."""
    try:
        parsed = datetime.fromisoformat(stamp)
    except ValueError as exc:
        raise MarketDataShapeError(
            "unparseable bar timestamp", details={"datetime": stamp}
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone or UTC)
    return parsed.astimezone(UTC)


def _upper(symbol: str) -> str:
    return symbol.strip().upper()


def _on_day(rows: Iterable[E], day: date, event_day: Callable[[E], date | None]) -> list[E]:
    return [row for row in rows if event_day(row) == day]


# --------------------------------------------------------------------------- #
# Normalizer
# --------------------------------------------------------------------------- #


class TwelveDataNormalizer:
    """Twelve Data implementation of the ``PayloadNormalizer`` port."""

    def time_series(self, raw: Any, query: TimeSeriesQuery) -> tuple[TimeSeriesBar, ...]:
        """Map a ``/time_series`` body to bars ordered oldest-first.

        Raises:
            MarketDataShapeError: On an unrecognized body, an unparseable
                timestamp, duplicate timestamps or an invalid bar.
        """
        series = _decode("time_series", _RawSeries.model_validate, raw)
        zone = _zone(series.meta.exchange_timezone)

        bars = [
            _build(
                "time_series bar",
                TimeSeriesBar,
                symbol=query.symbol,
                timestamp=_to_utc(row.stamp, zone),
                open=row.open,
                high=row.high,
                low=row.low,
                close=row.close,
                volume=row.volume,
                interval=query.interval,
            )
            for row in series.values
        ]
        bars.sort(key=lambda bar: bar.timestamp)

        for previous, current in zip(bars, bars[1:], strict=False):
            if previous.timestamp == current.timestamp:
                raise MarketDataShapeError(
                    "duplicate bar timestamp",
                    details={"timestamp": current.timestamp.isoformat()},
                )

        # Keep the most recent ``output_size`` bars.
        return tuple(bars[-query.output_size :])

    def dividends(self, raw: Any, query: CalendarQuery) -> tuple[DividendEvent, ...]:
        """Map a ``/dividends_calendar`` body to the day's dividends.

        The provider may return events for other dates; only rows whose
        ex-date (``ex_date`` or ``ex_dividend_date``) is ``query.day`` are kept.
        """
        if isinstance(raw, Mapping):
            rows = _decode("dividends_calendar", _RawDividendEnvelope.model_validate, raw).dividends
        else:
            rows = _decode("dividends_calendar", _DIVIDEND_ROWS.validate_python, raw)

        events: list[DividendEvent] = []
        for row in _on_day(rows, query.day, lambda r: r.ex_date or r.ex_dividend_date):
            amount = row.amount if row.amount is not None else row.dividend_amount
            if amount is None:
                raise MarketDataShapeError(
                    "dividend row without an amount", details={"symbol": row.symbol}
                )
            symbol = _upper(row.symbol)
            events.append(
                _build(
                    "dividend",
                    DividendEvent,
                    symbol=symbol,
                    name=row.name or symbol,
                    event_date=query.day,
                    amount=amount,
                    payment_date=row.payment_date,
                    dividend_yield=row.dividend_yield,
                    currency=row.currency or _DEFAULT_DIVIDEND_CURRENCY,
                    exchange=row.exchange,
                )
            )
        return tuple(events)

    def ipos(self, raw: Any, query: CalendarQuery) -> tuple[IpoEvent, ...]:
        """Map an ``/ipo_calendar`` body (keyed by date) to the day's IPOs."""
        if isinstance(raw, list) and not raw:
            return ()
        days = _decode("ipo_calendar", _IPO_DAYS.validate_python, raw)

        events: list[IpoEvent] = []
        for row in days.get(query.day, []):
            symbol = _upper(row.symbol)
            events.append(
                _build(
                    "ipo",
                    IpoEvent,
                    symbol=symbol,
                    name=row.name or symbol,
                    event_date=query.day,
                    exchange=row.exchange,
                    price_range_low=row.price_range_low,
                    price_range_high=row.price_range_high,
                    offer_price=row.offer_price,
                    shares=row.shares,
                    currency=row.currency,
                )
            )
        return tuple(events)

    def earnings(self, raw: Any, query: CalendarQuery) -> tuple[EarningsEvent, ...]:
        """Map an ``/earnings_calendar`` body to the day's earnings releases.

        Accepts both ``{"earnings": [...]}`` and ``{"earnings": {date: [...]}}``.
        Rows without a date of their own belong to the requested day.
        """
        envelope = _decode("earnings_calendar", _RawEarningsEnvelope.model_validate, raw)
        if isinstance(envelope.earnings, dict):
            rows = envelope.earnings.get(query.day, [])
        else:
            rows = _on_day(envelope.earnings, query.day, lambda r: r.day or query.day)

        events: list[EarningsEvent] = []
        for row in rows:
            symbol = _upper(row.symbol)
            events.append(
                _build(
                    "earnings",
                    EarningsEvent,
                    symbol=symbol,
                    name=row.name or symbol,
                    event_date=query.day,
                    time=row.time,
                    eps_estimate=row.eps_estimate,
                    eps_actual=row.eps_actual,
                )
            )
        return tuple(events)

    def quote(self, raw: Any, symbol: str) -> Quote:
        """Map a ``/quote`` body to a :class:`Quote`."""
        row = _decode("quote", _RawQuote.model_validate, raw)
        timestamp = (
            datetime.fromtimestamp(row.timestamp, tz=UTC) if row.timestamp is not None else None
        )
        return _build(
            "quote",
            Quote,
            symbol=_upper(symbol),
            close=row.close,
            name=row.name,
            exchange=row.exchange,
            currency=row.currency,
            timestamp=timestamp,
            open=row.open,
            high=row.high,
            low=row.low,
            volume=row.volume,
            previous_close=row.previous_close,
            change=row.change,
            percent_change=row.percent_change,
            is_market_open=row.is_market_open,
        )

    def quotes(self, raw: Any, symbols: tuple[str, ...]) -> dict[str, Quote]:
        """Map a batch ``/quote`` body to quotes keyed by requested symbol.

        A single-symbol request comes back as a plain quote body. Larger
        batches are keyed by symbol; entries flagged ``status: error`` and
        symbols absent from the body are left out.
        """
        if len(symbols) == 1:
            symbol = _upper(symbols[0])
            return {symbol: self.quote(raw, symbol)}
        if not isinstance(raw, Mapping):
            raise MarketDataShapeError(
                "unrecognized quote_batch payload",
                details={"payload": "quote_batch", "type": type(raw).__name__},
            )

        by_symbol = {_upper(str(k)): v for k, v in raw.items()}
        result: dict[str, Quote] = {}
        for requested in symbols:
            symbol = _upper(requested)
            row = by_symbol.get(symbol)
            if row is None or (isinstance(row, Mapping) and row.get("status") == "error"):
                continue
            result[symbol] = self.quote(row, symbol)
        return result
