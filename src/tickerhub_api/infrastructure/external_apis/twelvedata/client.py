# src/tickerhub_api/infrastructure/external_apis/twelvedata/client.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Twelve Data Transport Client: instrumented, async, single-shot.

This transport implements the application ``MarketDataGateway`` port and
provides:

* Async HTTP (httpx) with a per-request timeout.
* Deterministic mapping to domain errors:
    - transport failures (connect/read errors, timeouts) → ``MarketDataNetworkError``
    - non-2xx statuses → ``MarketDataProviderError(status=...)``
    - bodies that are not JSON → ``MarketDataProviderError``
    - ``{"status": "error", "code": ..., "message": ...}`` bodies, which
      Twelve Data returns with HTTP 200 → ``MarketDataProviderError(status=code)``
* Correlation headers (``X-Request-ID``, ``x-trace-id``) on every call.
* Prometheus metrics via :func:`observe_upstream_request`.

The client never retries and never rate-limits; both belong to the market
data client that owns this gateway. The API key is sent as a query parameter
and is never logged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

import httpx

from tickerhub_api.domain.exceptions.market_data import (
    MarketDataNetworkError,
    MarketDataProviderError,
)
from tickerhub_api.domain.value_objects.market_query import CalendarQuery, TimeSeriesQuery
from tickerhub_api.infrastructure.external_apis.twelvedata.settings import TwelveDataSettings
from tickerhub_api.infrastructure.logging.logger import get_request_id, get_trace_id
from tickerhub_api.infrastructure.observability.metrics_market_data import (
    UpstreamObservation,
    observe_upstream_request,
)

logger = logging.getLogger(__name__)

_PROVIDER: Final[str] = "twelvedata"

_DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/json",
    "User-Agent": "tickerhub-twelvedata-client/1.0",
}

_CALENDAR_PATHS: Final[dict[str, str]] = {
    "dividends": "/dividends_calendar",
    "ipo": "/ipo_calendar",
    "earnings": "/earnings_calendar",
}


def _provider_error_details(body: Any) -> dict[str, Any]:
    """Extract ``code``/``message`` from a Twelve Data error body, if present."""
    if not isinstance(body, Mapping):
        return {}
    details: dict[str, Any] = {}
    if body.get("code") is not None:
        details["code"] = body.get("code")
    if body.get("message"):
        details["provider_message"] = str(body.get("message"))
    return details


class TwelveDataClient:
    """Transport client for the Twelve Data REST API."""

    def __init__(
        self,
        settings: TwelveDataSettings,
        *,
        http: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
    ) -> None:
        """Initialize the transport client.

        Args:
            settings: Provider settings loaded from environment or DI.
            http: Optional shared ``httpx.AsyncClient``. If omitted, a client
                is created and owned by this instance.
            timeout_s: Optional per-request timeout override in seconds.
                When omitted, ``settings.timeout_s`` is used.
        """
        self._settings = settings
        self._base_url = str(settings.base_url).rstrip("/")
        self._timeout = float(timeout_s if timeout_s is not None else settings.timeout_s)

        self._owns_client = http is None
        self._client = http or httpx.AsyncClient(
            timeout=self._timeout,
            headers=_DEFAULT_HEADERS.copy(),
        )
        if http is not None:
            for key, value in _DEFAULT_HEADERS.items():
                self._client.headers.setdefault(key, value)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    # ---------------------------- Public API ----------------------------- #

    async def fetch_series(self, query: TimeSeriesQuery) -> Any:
        """Call ``/time_series`` for ``query`` and return the parsed body."""
        params: dict[str, Any] = {
            "symbol": query.symbol,
            "interval": query.interval.value,
            "outputsize": query.output_size,
            "prepost": "true",
        }
        if query.start_date is not None:
            params["start_date"] = query.start_date.isoformat()
        if query.end_date is not None:
            params["end_date"] = query.end_date.isoformat()
        return await self._observe_call(
            op="time_series",
            interval=query.interval.value,
            path="/time_series",
            params=params,
        )

    async def fetch_calendar(self, query: CalendarQuery) -> Any:
        """Call the calendar endpoint for ``query.kind`` on ``query.day``."""
        op = f"{query.kind.value}_calendar"
        return await self._observe_call(
            op=op,
            interval=None,
            path=_CALENDAR_PATHS[query.kind.value],
            params={"date": query.day.isoformat()},
        )

    async def fetch_quote(self, symbol: str) -> Any:
        """Call ``/quote`` for ``symbol`` (pre/post-market included)."""
        return await self._observe_call(
            op="quote",
            interval=None,
            path="/quote",
            params={"symbol": symbol, "prepost": "true"},
        )

    async def fetch_quotes(self, symbols: tuple[str, ...]) -> Any:
        """Call ``/quote`` once for a comma-joined list of symbols.

        With two or more symbols the body is keyed by symbol, and a rejected
        symbol carries its own ``{"status": "error"}`` entry instead of
        failing the whole call.
        """
        return await self._observe_call(
            op="quote_batch",
            interval=None,
            path="/quote",
            params={"symbol": ",".join(symbols), "prepost": "true"},
        )

    # --------------------------- Internal helpers ------------------------- #

    async def _observe_call(
        self,
        *,
        op: str,
        interval: str | None,
        path: str,
        params: Mapping[str, Any],
    ) -> Any:
        """Perform one GET with metrics and domain error mapping."""
        url = f"{self._base_url}{path}"

        headers: dict[str, str] = {}
        request_id = get_request_id()
        trace_id = get_trace_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        if trace_id:
            headers["x-trace-id"] = trace_id

        query_params = dict(params)
        query_params["apikey"] = self._settings.api_key.get_secret_value()

        with observe_upstream_request(provider=_PROVIDER, endpoint=op, interval=interval) as obs:
            try:
                response = await self._client.get(
                    url,
                    params=query_params,
                    headers=headers,
                    timeout=self._timeout,
                )
            except httpx.RequestError as exc:
                obs.mark_error(type(exc).__name__)
                logger.warning(
                    "twelvedata.transport_error",
                    extra={"endpoint": op, "error": type(exc).__name__},
                )
                raise MarketDataNetworkError(
                    f"Twelve Data {op} request failed: {type(exc).__name__}",
                    details={"endpoint": op},
                ) from exc

            obs.record_status(response.status_code)
            return self._decode(op, response, obs)

    @staticmethod
    def _decode(op: str, response: httpx.Response, obs: UpstreamObservation) -> Any:
        """Map a provider response to its JSON body or a domain error."""
        try:
            body: Any = response.json()
        except ValueError as exc:
            if not response.is_success:
                obs.mark_error(f"http_{response.status_code}")
                raise MarketDataProviderError(
                    f"Twelve Data {op} responded with HTTP {response.status_code}",
                    status=response.status_code,
                    details={"endpoint": op},
                ) from exc
            obs.mark_error("non_json")
            raise MarketDataProviderError(
                f"Twelve Data {op} returned a malformed body",
                status=response.status_code,
                details={"endpoint": op, "error": str(exc)},
            ) from exc

        if not response.is_success:
            obs.mark_error(f"http_{response.status_code}")
            raise MarketDataProviderError(
                f"Twelve Data {op} responded with HTTP {response.status_code}",
                status=response.status_code,
                details={"endpoint": op, **_provider_error_details(body)},
            )

        if isinstance(body, Mapping) and body.get("status") == "error":
            code = body.get("code")
            obs.mark_error("provider_error")
            raise MarketDataProviderError(
                str(body.get("message") or f"Twelve Data {op} reported an error"),
                status=code if isinstance(code, int) else None,
                details={"endpoint": op, **_provider_error_details(body)},
            )

        return body
