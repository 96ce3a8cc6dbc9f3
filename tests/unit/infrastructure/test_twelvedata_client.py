# tests/unit/infrastructure/test_twelvedata_client.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date

import httpx
import pytest
import pytest_asyncio
import respx

from support.fakes import batch_quote_payload, quote_payload, series_payload
from tickerhub_api.domain.entities.calendar_event import CalendarKind
from tickerhub_api.domain.entities.time_series_bar import BarInterval
from tickerhub_api.domain.exceptions.market_data import (
    MarketDataNetworkError,
    MarketDataProviderError,
)
from tickerhub_api.domain.value_objects.market_query import CalendarQuery, TimeSeriesQuery
from tickerhub_api.infrastructure.external_apis.twelvedata.client import TwelveDataClient
from tickerhub_api.infrastructure.external_apis.twelvedata.settings import TwelveDataSettings
from tickerhub_api.infrastructure.logging.logger import set_request_context

_BASE_URL = "https://api.twelvedata.test"


@pytest_asyncio.fixture
async def client() -> AsyncIterator[TwelveDataClient]:
    settings = TwelveDataSettings(base_url=_BASE_URL, api_key="secret", timeout_s=2.0)
    td = TwelveDataClient(settings)
    yield td
    await td.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_fetch_series_sends_provider_params(client: TwelveDataClient) -> None:
    payload = series_payload("AAPL", 3)
    route = respx.get(f"{_BASE_URL}/time_series").mock(
        return_value=httpx.Response(200, json=payload)
    )
    query = TimeSeriesQuery(
        symbol="aapl",
        interval=BarInterval.I5MIN,
        output_size=3,
        start_date=date(2024, 1, 2),
    )

    body = await client.fetch_series(query)

    assert body == payload
    params = route.calls.last.request.url.params
    assert params["symbol"] == "AAPL"
    assert params["interval"] == "5min"
    assert params["outputsize"] == "3"
    assert params["prepost"] == "true"
    assert params["start_date"] == "2024-01-02"
    assert "end_date" not in params
    assert params["apikey"] == "secret"


@pytest.mark.asyncio
@respx.mock
@pytest.mark.parametrize(
    ("kind", "path"),
    [
        (CalendarKind.DIVIDENDS, "/dividends_calendar"),
        (CalendarKind.IPO, "/ipo_calendar"),
        (CalendarKind.EARNINGS, "/earnings_calendar"),
    ],
)
async def test_fetch_calendar_hits_kind_endpoint(
    client: TwelveDataClient, kind: CalendarKind, path: str
) -> None:
    route = respx.get(f"{_BASE_URL}{path}").mock(return_value=httpx.Response(200, json=[]))

    body = await client.fetch_calendar(CalendarQuery(kind=kind, day=date(2024, 1, 3)))

    assert body == []
    assert route.calls.last.request.url.params["date"] == "2024-01-03"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_quote_includes_extended_hours(client: TwelveDataClient) -> None:
    route = respx.get(f"{_BASE_URL}/quote").mock(
        return_value=httpx.Response(200, json=quote_payload())
    )

    body = await client.fetch_quote("AAPL")

    assert body["close"] == "187.25"
    assert route.calls.last.request.url.params["prepost"] == "true"


@pytest.mark.asyncio
@respx.mock
async def test_fetch_quotes_joins_symbols_into_one_call(client: TwelveDataClient) -> None:
    payload = batch_quote_payload("AAPL", "MSFT", "NOPE", rejected=("NOPE",))
    route = respx.get(f"{_BASE_URL}/quote").mock(return_value=httpx.Response(200, json=payload))

    body = await client.fetch_quotes(("AAPL", "MSFT", "NOPE"))

    assert body == payload
    assert route.call_count == 1
    assert route.calls.last.request.url.params["symbol"] == "AAPL,MSFT,NOPE"


@pytest.mark.asyncio
@respx.mock
async def test_http_error_status_maps_to_provider_error(client: TwelveDataClient) -> None:
    respx.get(f"{_BASE_URL}/quote").mock(
        return_value=httpx.Response(500, json={"code": 500, "message": "internal"})
    )

    with pytest.raises(MarketDataProviderError) as excinfo:
        await client.fetch_quote("AAPL")

    assert excinfo.value.status == 500
    assert excinfo.value.details["provider_message"] == "internal"


@pytest.mark.asyncio
@respx.mock
async def test_in_body_error_with_http_200_maps_to_provider_error(
    client: TwelveDataClient,
) -> None:
    respx.get(f"{_BASE_URL}/quote").mock(
        return_value=httpx.Response(
            200,
            json={"code": 404, "message": "symbol not found", "status": "error"},
        )
    )

    with pytest.raises(MarketDataProviderError) as excinfo:
        await client.fetch_quote("NOPE")

    assert excinfo.value.status == 404
    assert excinfo.value.message == "symbol not found"


@pytest.mark.asyncio
@respx.mock
async def test_non_json_body_is_a_provider_error(client: TwelveDataClient) -> None:
    respx.get(f"{_BASE_URL}/quote").mock(
        return_value=httpx.Response(200, text="<html>maintenance</html>")
    )

    with pytest.raises(MarketDataProviderError, match="malformed"):
        await client.fetch_quote("AAPL")


@pytest.mark.asyncio
@respx.mock
async def test_non_json_error_page_keeps_http_status(client: TwelveDataClient) -> None:
    respx.get(f"{_BASE_URL}/quote").mock(return_value=httpx.Response(503, text="busy"))

    with pytest.raises(MarketDataProviderError) as excinfo:
        await client.fetch_quote("AAPL")

    assert excinfo.value.status == 503


@pytest.mark.asyncio
@respx.mock
@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")],
)
async def test_transport_failures_map_to_network_error(
    client: TwelveDataClient, error: Exception
) -> None:
    respx.get(f"{_BASE_URL}/quote").mock(side_effect=error)

    with pytest.raises(MarketDataNetworkError) as excinfo:
        await client.fetch_quote("AAPL")

    assert excinfo.value.retryable
    assert "secret" not in str(excinfo.value)


@pytest.mark.asyncio
@respx.mock
async def test_request_id_is_forwarded(client: TwelveDataClient) -> None:
    route = respx.get(f"{_BASE_URL}/quote").mock(
        return_value=httpx.Response(200, json=quote_payload())
    )
    set_request_context(request_id="req-123", trace_id="trace-9")

    await client.fetch_quote("AAPL")

    headers = route.calls.last.request.headers
    assert headers["X-Request-ID"] == "req-123"
    assert headers["x-trace-id"] == "trace-9"
    assert headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_shared_http_client_is_not_closed() -> None:
    async with httpx.AsyncClient() as http:
        td = TwelveDataClient(TwelveDataSettings(), http=http)
        await td.aclose()
        assert not http.is_closed
