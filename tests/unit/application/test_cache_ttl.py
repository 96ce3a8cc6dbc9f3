# tests/unit/application/test_cache_ttl.py
from __future__ import annotations

from datetime import date

import pytest

from support.fakes import ny
from tickerhub_api.application.services.cache_ttl import CacheTtlPolicy
from tickerhub_api.domain.entities.time_series_bar import BarInterval

POLICY = CacheTtlPolicy()


@pytest.mark.parametrize(
    ("interval", "ttl"),
    [
        (BarInterval.I1MIN, 60.0),
        (BarInterval.I5MIN, 300.0),
        (BarInterval.I1H, 3600.0),
        (BarInterval.I1DAY, 3600.0),
        (BarInterval.I1MONTH, 3600.0),
    ],
)
def test_series_ttl_is_one_bar_intraday_and_flat_otherwise(
    interval: BarInterval, ttl: float
) -> None:
    assert POLICY.for_series(interval) == ttl


def test_calendar_ttl_runs_to_exchange_midnight() -> None:
    assert POLICY.for_calendar(ny(date(2024, 1, 3), 10)) == pytest.approx(14 * 3600)


def test_calendar_ttl_is_floored_near_midnight() -> None:
    now = ny(date(2024, 1, 3), 23, 59).replace(second=30)
    assert POLICY.for_calendar(now) == 60.0


def test_calendar_ttl_on_spring_forward_day_is_23_hours() -> None:
    # 2024-03-10 skips 02:00-03:00 in New York.
    assert POLICY.for_calendar(ny(date(2024, 3, 10), 0)) == pytest.approx(23 * 3600)


def test_calendar_ttl_on_fall_back_day_is_25_hours() -> None:
    assert POLICY.for_calendar(ny(date(2024, 11, 3), 0)) == pytest.approx(25 * 3600)


@pytest.mark.parametrize(
    ("when", "ttl"),
    [
        (ny(date(2024, 1, 3), 10), 10.0),
        (ny(date(2024, 1, 3), 9, 30), 10.0),
        (ny(date(2024, 1, 3), 9, 29), 60.0),
        (ny(date(2024, 1, 3), 16), 60.0),
        (ny(date(2024, 1, 6), 12), 60.0),  # Saturday
    ],
)
def test_quote_ttl_tracks_the_regular_session(when, ttl: float) -> None:  # type: ignore[no-untyped-def]
    assert POLICY.for_quote(when) == ttl


def test_exchange_timezone_is_configurable() -> None:
    london = CacheTtlPolicy(exchange_timezone="Europe/London")
    # 10:00 New York is 15:00 London: nine hours to London midnight.
    assert london.for_calendar(ny(date(2024, 1, 3), 10)) == pytest.approx(9 * 3600)
