# src/tickerhub_api/main.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap that wires middleware, exception handlers and routers.
    Provides an application factory (``create_app``) and a module-level app
    (``app``) for ASGI servers.

Design:
    • Bootstrap only (no business logic).
    • Lifespan builds the shared market data client, runs the periodic
      cache sweep and closes the provider transport on shutdown.
    • Domain errors are rendered as the standard error envelope.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from tickerhub_api.adapters.routers.health_router import router as health_router
from tickerhub_api.adapters.routers.market_data_router import router as market_data_router
from tickerhub_api.application.services.market_data_client import MarketDataClient
from tickerhub_api.config.settings import Settings, get_settings
from tickerhub_api.dependencies.market_data import build_market_data_runtime
from tickerhub_api.domain.exceptions.market_data import MarketDataError
from tickerhub_api.infrastructure.http.errors import (
    handle_http_exception,
    handle_market_data_error,
    handle_unhandled_exception,
    handle_validation_error,
)
from tickerhub_api.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
)
from tickerhub_api.infrastructure.middleware.access_log import AccessLogMiddleware
from tickerhub_api.infrastructure.middleware.request_id import RequestIdMiddleware

logger = get_json_logger(__name__)

#: Seconds between background sweeps of expired cache entries.
CACHE_SWEEP_INTERVAL_S = 60.0


async def _sweep_cache(client: MarketDataClient, interval_s: float) -> None:
    """Evict expired cache entries every ``interval_s`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_s)
        removed = client.evict_expired()
        if removed:
            logger.info("market_data.cache_swept", extra={"removed": removed})


@asynccontextmanager
async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the market data runtime and tear it down on shutdown."""
    settings: Settings = app.state.settings
    runtime = build_market_data_runtime(settings)
    app.state.market_data = runtime
    sweeper = asyncio.create_task(
        _sweep_cache(runtime.client, CACHE_SWEEP_INTERVAL_S), name="market-data-cache-sweep"
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await runtime.aclose()
        logger.info("market_data.runtime_closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings; resolved from the environment when omitted.

    Returns:
        The configured application.
    """
    settings = settings or get_settings()
    configure_root_logging(settings.log_level)

    app = FastAPI(
        title="TickerHub API",
        version="1.0.0",
        lifespan=runtime_lifespan,
    )
    app.state.settings = settings

    # Added last runs first: request id must be set before the access log.
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(MarketDataError, handle_market_data_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unhandled_exception)

    app.include_router(health_router)
    app.include_router(market_data_router)

    logger.info("app_created", extra={"environment": settings.environment.value})
    return app


app = create_app()
