# src/tickerhub_api/adapters/routers/market_data_router.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Market Data Router (v1).

Synopsis:
    Thin HTTP surface over the shared :class:`MarketDataClient`: historical
    bars, latest quote, the three corporate-event calendars and client
    statistics.

Design:
    * Presentation-only: parameters go straight to the client, which owns
      validation; domain errors are rendered by the app-level handler.
    * Calendar ``date`` defaults to today (UTC).
    * ``/quote`` serves one symbol (``symbol``) or a comma-separated batch
      (``symbols``, at most 50).

Layer:
    adapters/routers
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Annotated

from fastapi import Depends, Query

from tickerhub_api.adapters.routers.base_router import BaseRouter
from tickerhub_api.adapters.schemas.http.market_data import (
    ClientStatsHTTP,
    DividendEventHTTP,
    EarningsEventHTTP,
    IpoEventHTTP,
    QuoteBatchHTTP,
    QuoteHTTP,
    TimeSeriesHTTP,
)
from tickerhub_api.application.services.market_data_client import MarketDataClient
from tickerhub_api.dependencies.market_data import get_market_data_client
from tickerhub_api.domain.entities.time_series_bar import BarInterval
from tickerhub_api.domain.exceptions.market_data import MarketDataBadRequest
from tickerhub_api.domain.value_objects.market_query import (
    normalize_symbol,
    normalize_symbol_batch,
)

router = BaseRouter(version="v1", resource="market", tags=["Market Data"])

ClientDep = Annotated[MarketDataClient, Depends(get_market_data_client)]


def _today_utc() -> date:
    return datetime.now(tz=UTC).date()


@router.get(
    "/history",
    response_model=TimeSeriesHTTP,
    responses=BaseRouter.std_error_responses(),
    summary="Get historical OHLCV bars",
)
async def get_history(
    client: ClientDep,
    symbol: Annotated[str, Query(min_length=1, examples=["AAPL"])],
    interval: Annotated[str, Query(examples=["5min"])] = "5min",
    outputsize: Annotated[int, Query(description="Maximum number of bars.")] = 78,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> TimeSeriesHTTP:
    bars = await client.get_time_series(symbol, interval, outputsize, start_date, end_date)
    return TimeSeriesHTTP.from_domain(
        normalize_symbol(symbol), BarInterval.parse(interval).value, bars
    )


@router.get(
    "/quote",
    response_model=QuoteHTTP | QuoteBatchHTTP,
    responses=BaseRouter.std_error_responses(),
    summary="Get the latest quote for one symbol or a batch",
)
async def get_quote(
    client: ClientDep,
    symbol: Annotated[str | None, Query(min_length=1, examples=["AAPL"])] = None,
    symbols: Annotated[
        str | None,
        Query(description="Comma-separated symbols (max 50).", examples=["AAPL,MSFT"]),
    ] = None,
) -> QuoteHTTP | QuoteBatchHTTP:
    if symbol is not None:
        return QuoteHTTP.from_domain(await client.get_quote(symbol))
    if symbols is None:
        raise MarketDataBadRequest("symbol or symbols parameter is required")

    requested = normalize_symbol_batch([s for s in symbols.split(",") if s.strip()])
    quotes = await client.get_quotes(requested)
    return QuoteBatchHTTP.from_domain(requested, quotes)


@router.get(
    "/calendar/dividends",
    response_model=list[DividendEventHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Dividends going ex on a day",
)
async def get_dividend_calendar(
    client: ClientDep,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> list[DividendEventHTTP]:
    events = await client.get_dividend_calendar(day or _today_utc())
    return [DividendEventHTTP.from_domain(e) for e in events]


@router.get(
    "/calendar/ipo",
    response_model=list[IpoEventHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="IPOs scheduled on a day",
)
async def get_ipo_calendar(
    client: ClientDep,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> list[IpoEventHTTP]:
    events = await client.get_ipo_calendar(day or _today_utc())
    return [IpoEventHTTP.from_domain(e) for e in events]


@router.get(
    "/calendar/earnings",
    response_model=list[EarningsEventHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Earnings releases scheduled on a day",
)
async def get_earnings_calendar(
    client: ClientDep,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> list[EarningsEventHTTP]:
    events = await client.get_earnings_calendar(day or _today_utc())
    return [EarningsEventHTTP.from_domain(e) for e in events]


@router.get(
    "/stats",
    response_model=ClientStatsHTTP,
    summary="Cache, rate budget and coalescing counters",
)
async def get_stats(client: ClientDep) -> ClientStatsHTTP:
    return ClientStatsHTTP.from_domain(client.stats())
