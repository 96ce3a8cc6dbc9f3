# tests/integration/test_market_data_router.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""HTTP surface of the market data client, with the provider faked or mocked."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from support.fakes import (
    Harness,
    batch_quote_payload,
    build_harness,
    quote_payload,
    series_payload,
)
from tickerhub_api.config.settings import Settings
from tickerhub_api.dependencies.market_data import get_market_data_client
from tickerhub_api.domain.exceptions.market_data import (
    MarketDataNetworkError,
    MarketDataProviderError,
)
from tickerhub_api.infrastructure.external_apis.twelvedata.settings import TwelveDataSettings
from tickerhub_api.main import create_app

pytestmark = pytest.mark.integration

_BASE_URL = "https://api.twelvedata.test"


@pytest.fixture
def harness() -> Harness:
    return build_harness()


@pytest.fixture
def api(harness: Harness) -> Iterator[TestClient]:
    app = create_app(Settings())
    app.dependency_overrides[get_market_data_client] = lambda: harness.client
    with TestClient(app) as client:
        yield client


def test_healthz(api: TestClient) -> None:
    resp = api.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_history_returns_normalized_bars(api: TestClient) -> None:
    resp = api.get("/v1/market/history", params={"symbol": "aapl", "interval": "5m"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["symbol"] == "AAPL"
    assert body["interval"] == "5min"
    assert body["count"] == 78
    first = body["bars"][0]
    assert first["open"] == "180.10"
    assert first["timestamp"].startswith("2024-01-02T14:30:00")


def test_history_rejects_unknown_interval(api: TestClient, harness: Harness) -> None:
    resp = api.get("/v1/market/history", params={"symbol": "AAPL", "interval": "7min"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "MARKET_DATA_BAD_REQUEST"
    assert harness.gateway.calls == []


def test_history_rejects_out_of_range_outputsize(api: TestClient) -> None:
    resp = api.get("/v1/market/history", params={"symbol": "AAPL", "outputsize": 0})
    assert resp.status_code == 400


def test_non_integer_outputsize_is_a_validation_error(api: TestClient) -> None:
    resp = api.get("/v1/market/history", params={"symbol": "AAPL", "outputsize": "many"})

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_quote_without_symbol_or_symbols_is_a_bad_request(api: TestClient) -> None:
    resp = api.get("/v1/market/quote")

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "MARKET_DATA_BAD_REQUEST"


def test_batch_quote_serves_cache_and_fetches_the_rest_once(
    api: TestClient, harness: Harness
) -> None:
    api.get("/v1/market/quote", params={"symbol": "AAPL"})
    harness.gateway.quotes = lambda s: batch_quote_payload(*s, rejected=("NOPE",))

    resp = api.get("/v1/market/quote", params={"symbols": "aapl, msft,NOPE,,goog"})

    assert resp.status_code == 200
    body = resp.json()
    assert [q["symbol"] for q in body["quotes"]] == ["AAPL", "MSFT", "GOOG"]
    assert body["missing"] == ["NOPE"]
    assert body["quotes"][1]["close"] == "187.25"
    assert harness.gateway.calls[-1] == ("quotes", ("GOOG", "MSFT", "NOPE"))
    assert len(harness.gateway.calls) == 2


def test_batch_quote_over_fifty_symbols_is_rejected(api: TestClient, harness: Harness) -> None:
    symbols = ",".join(f"S{i}" for i in range(51))

    resp = api.get("/v1/market/quote", params={"symbols": symbols})

    assert resp.status_code == 400
    assert harness.gateway.calls == []


def test_quote(api: TestClient) -> None:
    resp = api.get("/v1/market/quote", params={"symbol": "AAPL"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["close"] == "187.25"
    assert body["change"] == "1.61"


def test_rate_limited_request_gets_retry_after(api: TestClient) -> None:
    for i in range(8):
        assert api.get("/v1/market/quote", params={"symbol": f"SYM{i}"}).status_code == 200

    resp = api.get("/v1/market/quote", params={"symbol": "ORCL"})

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"
    assert resp.json()["error"]["code"] == "MARKET_DATA_RATE_LIMITED"


def test_provider_error_is_bad_gateway(api: TestClient, harness: Harness) -> None:
    harness.gateway.errors.append(MarketDataProviderError("invalid api key", status=401))

    resp = api.get("/v1/market/quote", params={"symbol": "AAPL"})

    assert resp.status_code == 502
    assert resp.json()["error"]["details"]["status"] == 401


def test_network_error_after_retries_is_service_unavailable(
    api: TestClient, harness: Harness
) -> None:
    harness.gateway.errors.extend([MarketDataNetworkError("down") for _ in range(3)])

    resp = api.get("/v1/market/quote", params={"symbol": "AAPL"})

    assert resp.status_code == 503
    assert len(harness.gateway.calls) == 3


def test_ipo_calendar_for_explicit_date(api: TestClient, harness: Harness) -> None:
    harness.gateway.calendar = lambda q: {
        "2024-01-03": [{"symbol": "NEWC", "name": "NewCo", "price_range_low": 18}]
    }

    resp = api.get("/v1/market/calendar/ipo", params={"date": "2024-01-03"})

    assert resp.status_code == 200
    assert resp.json() == [
        {
            "symbol": "NEWC",
            "name": "NewCo",
            "event_date": "2024-01-03",
            "exchange": None,
            "price_range": "TBD",
            "offer_price": None,
            "shares": None,
            "currency": None,
        }
    ]
    _, query = harness.gateway.calls[0]
    assert query.signature == "calendar:ipo:2024-01-03"


def test_dividend_and_earnings_calendars(api: TestClient, harness: Harness) -> None:
    def calendar(q):  # type: ignore[no-untyped-def]
        if q.kind.value == "dividends":
            return [{"symbol": "KO", "ex_date": "2024-01-03", "amount": "0.46"}]
        return {"earnings": [{"symbol": "JPM", "date": "2024-01-03"}]}

    harness.gateway.calendar = calendar

    dividends = api.get("/v1/market/calendar/dividends", params={"date": "2024-01-03"}).json()
    earnings = api.get("/v1/market/calendar/earnings", params={"date": "2024-01-03"}).json()

    assert dividends[0]["amount"] == "0.46"
    assert earnings[0]["symbol"] == "JPM"


def test_stats_reflect_cache_and_budget(api: TestClient) -> None:
    api.get("/v1/market/quote", params={"symbol": "AAPL"})
    api.get("/v1/market/quote", params={"symbol": "AAPL"})

    stats = api.get("/v1/market/stats").json()

    assert stats["cache"]["hits"] == 1
    assert stats["rate_limit"] == {"in_window": 1, "remaining": 7}
    assert stats["provider_calls_total"] == 1


def test_request_id_is_echoed(api: TestClient) -> None:
    resp = api.get("/healthz", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_unsafe_request_id_is_replaced(api: TestClient) -> None:
    resp = api.get("/healthz", headers={"X-Request-ID": "bad id with spaces"})
    assert resp.headers["X-Request-ID"] != "bad id with spaces"


def test_full_stack_against_mocked_provider() -> None:
    settings = Settings(
        twelvedata=TwelveDataSettings(base_url=_BASE_URL, api_key="k", timeout_s=1.0)
    )
    app = create_app(settings)

    with respx.mock(base_url=_BASE_URL, assert_all_called=False) as provider:
        series = provider.get("/time_series").mock(
            return_value=httpx.Response(200, json=series_payload("AAPL", 5))
        )
        provider.get("/quote").mock(
            return_value=httpx.Response(200, json=quote_payload("MSFT", close="402.10"))
        )
        with TestClient(app) as client:
            first = client.get(
                "/v1/market/history", params={"symbol": "AAPL", "outputsize": 5}
            )
            again = client.get(
                "/v1/market/history", params={"symbol": "AAPL", "outputsize": 5}
            )
            quote = client.get("/v1/market/quote", params={"symbol": "msft"})

    assert first.status_code == 200
    assert again.json() == first.json()
    assert series.call_count == 1
    assert quote.json()["close"] == "402.10"
    assert quote.json()["symbol"] == "MSFT"
