# tests/unit/domain/test_market_data_entities.py
from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from tickerhub_api.domain.entities.calendar_event import DividendEvent, IpoEvent
from tickerhub_api.domain.entities.quote import Quote
from tickerhub_api.domain.entities.time_series_bar import BarInterval, TimeSeriesBar
from tickerhub_api.domain.exceptions.market_data import (
    MarketDataError,
    MarketDataNetworkError,
    MarketDataProviderError,
    MarketDataRateLimitExceeded,
    MarketDataShapeError,
)


def _bar(**overrides: object) -> TimeSeriesBar:
    fields: dict[str, object] = {
        "symbol": "AAPL",
        "timestamp": datetime(2024, 1, 2, 14, 30, tzinfo=UTC),
        "open": Decimal("185.10"),
        "high": Decimal("186.00"),
        "low": Decimal("184.90"),
        "close": Decimal("185.50"),
        "volume": Decimal("1000"),
        "interval": BarInterval.I5MIN,
    }
    fields.update(overrides)
    return TimeSeriesBar(**fields)  # type: ignore[arg-type]


def test_bar_accepts_valid_values_and_missing_volume() -> None:
    bar = _bar(volume=None)
    assert bar.volume is None
    assert bar.low <= bar.high


def test_bar_rejects_low_above_high() -> None:
    with pytest.raises(ValueError, match="low"):
        _bar(low=Decimal("190"))


def test_bar_rejects_naive_timestamp() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        _bar(timestamp=datetime(2024, 1, 2, 14, 30))


@pytest.mark.parametrize("field", ["open", "close"])
def test_bar_rejects_negative_or_non_finite_prices(field: str) -> None:
    with pytest.raises(ValueError):
        _bar(**{field: Decimal("-1")})
    with pytest.raises(ValueError):
        _bar(**{field: Decimal("NaN")})


def test_bar_rejects_lower_case_symbol() -> None:
    with pytest.raises(ValueError, match="upper-case"):
        _bar(symbol="aapl")


def test_ipo_price_range_label() -> None:
    day = date(2024, 1, 3)
    known = IpoEvent(
        symbol="NEWC",
        name="NewCo",
        event_date=day,
        price_range_low=Decimal("18"),
        price_range_high=Decimal("20"),
    )
    partial = IpoEvent(symbol="NEWC", name="NewCo", event_date=day, price_range_low=Decimal("18"))

    assert known.price_range == "$18-$20"
    assert partial.price_range == "TBD"


def test_dividend_amount_must_be_finite() -> None:
    with pytest.raises(ValueError):
        DividendEvent(symbol="KO", name="KO", event_date=date(2024, 1, 3), amount=Decimal("Inf"))


def test_quote_allows_negative_change() -> None:
    q = Quote(symbol="AAPL", close=Decimal("180"), change=Decimal("-2.5"))
    assert q.change == Decimal("-2.5")


def test_error_taxonomy() -> None:
    assert MarketDataNetworkError().retryable
    assert not MarketDataProviderError().retryable
    assert MarketDataShapeError.code == "UPSTREAM_SCHEMA_ERROR"

    err = MarketDataProviderError("bad", status=404)
    assert err.details["status"] == 404
    assert isinstance(err, MarketDataError)

    limited = MarketDataRateLimitExceeded(wait_s=12.3456)
    assert limited.details["retry_after_s"] == 12.346
    assert limited.message == "provider request quota exhausted"
