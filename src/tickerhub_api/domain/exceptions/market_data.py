# src/tickerhub_api/domain/exceptions/market_data.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Market Data Domain Exceptions.

Synopsis:
    Domain-level exceptions representing error conditions when interacting with
    the external market data provider. These are raised in domain/application and
    mapped to canonical HTTP envelopes by the HTTP error handlers.

Design:
    * Inherit from :class:`MarketDataError` for consistent `.code` and safety.
    * ``retryable`` marks the only kind the client retries locally (transport).
    * Keep HTTP concerns out of the domain; map at the boundary.

Layer:
    domain/exceptions
"""

from __future__ import annotations

from typing import Any

from tickerhub_api.domain.exceptions.base import DomainError


class MarketDataError(DomainError):
    """Base class for every failure surfaced by the market data client."""

    code = "MARKET_DATA_ERROR"
    retryable: bool = False


class MarketDataBadRequest(MarketDataError):
    """The query itself is invalid (unknown interval, empty symbol, bad range).

    Raised locally before any provider call is made.
    """

    code = "MARKET_DATA_BAD_REQUEST"


class MarketDataNetworkError(MarketDataError):
    """Connection-level failure talking to the provider (DNS, reset, timeout).

    This is the only kind retried by the client.
    """

    code = "MARKET_DATA_NETWORK_ERROR"
    retryable = True


class MarketDataProviderError(MarketDataError):
    """Provider answered with a non-success status or a malformed body.

    Attributes:
        status: HTTP status, or the provider's in-body error code when the
            provider reports errors with HTTP 200.
    """

    code = "MARKET_DATA_PROVIDER_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status = status
        if status is not None:
            self.details.setdefault("status", status)


class MarketDataShapeError(MarketDataError):
    """Payload is structurally invalid for normalization.

    Indicates schema drift, missing required fields, or invariant violations.
    Results that fail this way are never cached.
    """

    code = "UPSTREAM_SCHEMA_ERROR"


class MarketDataRateLimitExceeded(MarketDataError):
    """Obtaining a provider request slot would take longer than allowed.

    Attributes:
        wait_s: Seconds until a slot would have become available.
    """

    code = "MARKET_DATA_RATE_LIMITED"

    def __init__(
        self,
        message: str = "",
        *,
        wait_s: float = 0.0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or "provider request quota exhausted", details=details)
        self.wait_s = wait_s
        self.details.setdefault("retry_after_s", round(wait_s, 3))


class MarketDataTimeout(MarketDataError):
    """The whole operation exceeded its deadline (wait + network + retries)."""

    code = "MARKET_DATA_TIMEOUT"
