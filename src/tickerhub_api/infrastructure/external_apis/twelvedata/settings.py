# src/tickerhub_api/infrastructure/external_apis/twelvedata/settings.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Pydantic settings for the Twelve Data transport client."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class TwelveDataSettings(BaseSettings):
    """Configuration for the Twelve Data REST client.

    Environment variables (with ``model_config.env_prefix``):

    * ``TWELVEDATA_BASE_URL``
    * ``TWELVEDATA_API_KEY``
    * ``TWELVEDATA_TIMEOUT_S``
    """

    base_url: str = Field(
        "https://api.twelvedata.com",
        description="Base URL for the Twelve Data REST API.",
    )
    api_key: SecretStr = Field(
        SecretStr(""),
        description="Twelve Data API key (sent as the ``apikey`` query parameter).",
    )
    timeout_s: float = Field(
        8.0,
        gt=0,
        description="Per-request timeout in seconds for the transport client.",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="TWELVEDATA_",
        extra="ignore",
    )
