# src/tickerhub_api/config/settings.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""TickerHub Configuration (Pydantic Settings, v2)

Summary:
    Typed, validated application configuration. Only the composition root
    (``dependencies``) and bootstrap (``main``) read it; inner layers receive
    plain values through constructors.

Design:
    - Pydantic v2 BaseSettings with explicit, constrained fields.
    - Provider and client settings are separate groups with their own env
      prefixes (``TWELVEDATA_`` and ``MARKET_DATA_``).
    - Singleton accessor ``get_settings()`` with LRU cache.
    - Structured startup log line (no secrets).
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tickerhub_api.infrastructure.external_apis.twelvedata.settings import TwelveDataSettings

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Logical deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    CI = "ci"
    STAGING = "staging"
    PRODUCTION = "production"


class MarketDataClientSettings(BaseSettings):
    """Budget, deadline and cache configuration for the market data client.

    Environment variables use the ``MARKET_DATA_`` prefix, e.g.
    ``MARKET_DATA_QUOTA=8`` or ``MARKET_DATA_WINDOW_S=60``.
    """

    quota: int = Field(8, ge=1, description="Provider requests allowed per window.")
    window_s: float = Field(60.0, gt=0, description="Rate-limit window length in seconds.")
    max_rate_wait_s: float = Field(
        15.0, ge=0, description="Longest a request may wait for a provider slot."
    )
    request_timeout_s: float = Field(
        30.0, gt=0, description="Deadline for a whole lookup, cache check to return."
    )
    max_retries: int = Field(2, ge=0, le=10, description="Retries after a network error.")
    retry_base_s: float = Field(0.25, ge=0, description="Base backoff in seconds.")
    retry_cap_s: float = Field(2.0, ge=0, description="Maximum backoff in seconds.")
    retry_jitter: bool = Field(False, description="Apply full jitter to backoff delays.")
    cache_max_entries: int = Field(1024, ge=1, description="Cache capacity (LRU beyond it).")
    daily_series_ttl_s: float = Field(
        3600.0, gt=0, description="TTL for daily, weekly and monthly series."
    )
    calendar_min_ttl_s: float = Field(
        60.0, gt=0, description="Floor for calendar TTLs near the end of the trading day."
    )
    exchange_timezone: str = Field(
        "America/New_York", description="IANA zone that defines the trading day."
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="MARKET_DATA_",
        extra="ignore",
    )


class Settings(BaseSettings):
    """Typed application configuration for TickerHub."""

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Logical deployment environment.",
        validation_alias="ENVIRONMENT",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level.",
        validation_alias="LOG_LEVEL",
    )
    twelvedata: TwelveDataSettings = Field(default_factory=TwelveDataSettings)
    market_data: MarketDataClientSettings = Field(default_factory=MarketDataClientSettings)

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton ``Settings`` instance.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        logger.exception("Invalid application configuration")
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    logger.info(
        "Settings initialized",
        extra={
            "environment": settings.environment.value,
            "twelvedata_base_url": settings.twelvedata.base_url,
            "twelvedata_has_api_key": bool(settings.twelvedata.api_key.get_secret_value()),
            "market_data_quota": settings.market_data.quota,
            "market_data_window_s": settings.market_data.window_s,
            "market_data_request_timeout_s": settings.market_data.request_timeout_s,
        },
    )
    return settings
