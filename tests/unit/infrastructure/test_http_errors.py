# tests/unit/infrastructure/test_http_errors.py
from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException

from tickerhub_api.domain.exceptions.market_data import (
    MarketDataBadRequest,
    MarketDataError,
    MarketDataNetworkError,
    MarketDataProviderError,
    MarketDataRateLimitExceeded,
    MarketDataShapeError,
    MarketDataTimeout,
)
from tickerhub_api.infrastructure.http.errors import (
    error_envelope,
    handle_http_exception,
    handle_market_data_error,
    handle_unhandled_exception,
    status_for,
)


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (MarketDataBadRequest("x"), 400),
        (MarketDataRateLimitExceeded(wait_s=3), 429),
        (MarketDataShapeError("x"), 502),
        (MarketDataProviderError("x", status=401), 502),
        (MarketDataNetworkError("x"), 503),
        (MarketDataTimeout("x"), 504),
        (MarketDataError("x"), 500),
    ],
)
def test_status_mapping(exc: MarketDataError, status: int) -> None:
    assert status_for(exc) == status


def test_error_envelope_omits_empty_optionals() -> None:
    assert error_envelope(code="C", http_status=400, message="m") == {
        "error": {"code": "C", "http_status": 400, "message": "m"}
    }


def _app(exc: Exception) -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(MarketDataError, handle_market_data_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unhandled_exception)

    @app.get("/boom")
    async def boom() -> None:
        raise exc

    return app


def test_rate_limit_sets_retry_after_rounded_up() -> None:
    client = TestClient(_app(MarketDataRateLimitExceeded(wait_s=12.2)))

    resp = client.get("/boom")

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "13"
    body = resp.json()
    assert body["error"]["code"] == "MARKET_DATA_RATE_LIMITED"
    assert body["error"]["details"]["retry_after_s"] == 12.2


def test_retry_after_is_at_least_one_second() -> None:
    resp = TestClient(_app(MarketDataRateLimitExceeded(wait_s=0.0))).get("/boom")
    assert resp.headers["Retry-After"] == "1"


def test_provider_error_envelope() -> None:
    resp = TestClient(_app(MarketDataProviderError("bad key", status=401))).get("/boom")

    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error == {
        "code": "MARKET_DATA_PROVIDER_ERROR",
        "http_status": 502,
        "message": "bad key",
        "details": {"status": 401},
    }


def test_http_exception_uses_envelope() -> None:
    resp = TestClient(_app(HTTPException(status_code=404, detail="nope"))).get("/boom")

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "nope"


def test_unhandled_exception_is_opaque() -> None:
    client = TestClient(_app(RuntimeError("secret detail")), raise_server_exceptions=False)

    resp = client.get("/boom")

    assert resp.status_code == 500
    assert "secret detail" not in json.dumps(resp.json())
    assert resp.json()["error"]["code"] == "INTERNAL_ERROR"
