# src/tickerhub_api/dependencies/market_data.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Dependency wiring for Market Data (composition root).

Overview:
    Builds the process-wide :class:`MarketDataClient` from settings and
    exposes it to request handlers. The client is created once in the
    application lifespan, stored on ``app.state`` and shared by every
    request; it exclusively owns its cache and rate limiter.

Layer:
    dependencies
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from tickerhub_api.adapters.mappers.twelvedata_mapper import TwelveDataNormalizer
from tickerhub_api.application.interfaces.clock import Clock
from tickerhub_api.application.services.cache_ttl import CacheTtlPolicy
from tickerhub_api.application.services.market_data_client import MarketDataClient
from tickerhub_api.application.services.retry import RetryPolicy
from tickerhub_api.config.settings import Settings
from tickerhub_api.infrastructure.caching.memory_cache import InMemoryTtlCache
from tickerhub_api.infrastructure.external_apis.twelvedata.client import TwelveDataClient
from tickerhub_api.infrastructure.resilience.rate_limiter import SlidingWindowRateLimiter
from tickerhub_api.infrastructure.time.system_clock import SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketDataRuntime:
    """The market data client plus the transport it must close on shutdown."""

    client: MarketDataClient
    gateway: TwelveDataClient

    async def aclose(self) -> None:
        await self.gateway.aclose()


def build_market_data_runtime(
    settings: Settings,
    *,
    http: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
) -> MarketDataRuntime:
    """Wire gateway, normalizer, cache, rate limiter and client from ``settings``.

    Args:
        settings: Application settings.
        http: Optional shared ``httpx.AsyncClient`` (tests inject a mocked one).
        clock: Optional clock; the system clock by default.

    Returns:
        A :class:`MarketDataRuntime` holding the ready client.
    """
    cfg = settings.market_data
    clock = clock or SystemClock()

    gateway = TwelveDataClient(settings.twelvedata, http=http)
    client = MarketDataClient(
        gateway=gateway,
        normalizer=TwelveDataNormalizer(),
        cache=InMemoryTtlCache(clock=clock, max_entries=cfg.cache_max_entries),
        rate_limiter=SlidingWindowRateLimiter(cfg.quota, cfg.window_s, clock),
        clock=clock,
        ttl_policy=CacheTtlPolicy(
            daily_series_ttl_s=cfg.daily_series_ttl_s,
            calendar_min_ttl_s=cfg.calendar_min_ttl_s,
            exchange_timezone=cfg.exchange_timezone,
        ),
        retry_policy=RetryPolicy(
            total=cfg.max_retries,
            base=cfg.retry_base_s,
            cap=cfg.retry_cap_s,
            jitter=cfg.retry_jitter,
        ),
        max_rate_wait_s=cfg.max_rate_wait_s,
        request_timeout_s=cfg.request_timeout_s,
    )
    logger.info(
        "market_data.client_ready",
        extra={
            "quota": cfg.quota,
            "window_s": cfg.window_s,
            "cache_max_entries": cfg.cache_max_entries,
            "request_timeout_s": cfg.request_timeout_s,
        },
    )
    return MarketDataRuntime(client=client, gateway=gateway)


def get_market_data_client(request: Request) -> MarketDataClient:
    """FastAPI dependency returning the shared client from ``app.state``."""
    runtime: MarketDataRuntime = request.app.state.market_data
    return runtime.client
