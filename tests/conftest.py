# tests/conftest.py
from __future__ import annotations

from collections.abc import Generator

import pytest

from support.fakes import FakeGateway, Harness, ManualClock, build_harness
from tickerhub_api.config.settings import get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Keep env-driven settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def harness(gateway: FakeGateway, clock: ManualClock) -> Harness:
    """Client with the default budget: 8 calls per 60 s, 15 s max wait, 30 s deadline."""
    return build_harness(gateway=gateway, clock=clock)
