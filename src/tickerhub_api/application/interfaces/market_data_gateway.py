# src/tickerhub_api/application/interfaces/market_data_gateway.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Application Ports: market data gateway and payload normalizer.

This module defines the two provider-facing seams the market data client
composes:

Design:
    * ``MarketDataGateway`` performs exactly one provider call per method
      invocation and returns the parsed JSON body untouched. It maps
      transport failures to ``MarketDataNetworkError`` and non-success
      responses to ``MarketDataProviderError``; it never retries.
    * ``PayloadNormalizer`` turns those raw bodies into domain records or
      raises ``MarketDataShapeError``. It is pure: no I/O, no clock.
"""

from __future__ import annotations

from typing import Any, Protocol

from tickerhub_api.domain.entities.calendar_event import (
    DividendEvent,
    EarningsEvent,
    IpoEvent,
)
from tickerhub_api.domain.entities.quote import Quote
from tickerhub_api.domain.entities.time_series_bar import TimeSeriesBar
from tickerhub_api.domain.value_objects.market_query import CalendarQuery, TimeSeriesQuery


class MarketDataGateway(Protocol):
    """Protocol for raw provider access."""

    async def fetch_series(self, query: TimeSeriesQuery) -> Any:
        """Fetch the raw time-series payload for ``query``."""

    async def fetch_calendar(self, query: CalendarQuery) -> Any:
        """Fetch the raw calendar payload for ``query.kind`` on ``query.day``."""

    async def fetch_quote(self, symbol: str) -> Any:
        """Fetch the raw latest-quote payload for ``symbol``."""

    async def fetch_quotes(self, symbols: tuple[str, ...]) -> Any:
        """Fetch latest-quote payloads for several symbols in one call."""


class PayloadNormalizer(Protocol):
    """Protocol for provider payload → domain record mapping."""

    def time_series(self, raw: Any, query: TimeSeriesQuery) -> tuple[TimeSeriesBar, ...]:
        """Return bars ordered oldest-first with strictly increasing timestamps."""

    def dividends(self, raw: Any, query: CalendarQuery) -> tuple[DividendEvent, ...]:
        """Return dividend events for ``query.day``."""

    def ipos(self, raw: Any, query: CalendarQuery) -> tuple[IpoEvent, ...]:
        """Return IPO events for ``query.day``."""

    def earnings(self, raw: Any, query: CalendarQuery) -> tuple[EarningsEvent, ...]:
        """Return earnings events for ``query.day``."""

    def quote(self, raw: Any, symbol: str) -> Quote:
        """Return the latest quote for ``symbol``."""

    def quotes(self, raw: Any, symbols: tuple[str, ...]) -> dict[str, Quote]:
        """Return quotes keyed by symbol, omitting symbols the provider rejected."""
