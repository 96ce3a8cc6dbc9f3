# src/tickerhub_api/adapters/routers/base_router.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""
Base Router (Adapters Layer)

Purpose:
    Canonical APIRouter wrapper for TickerHub HTTP endpoints:
      - Versioned routing with stable prefixes (e.g., "/v1/market").
      - Standard error responses documented with ErrorEnvelope.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from fastapi import APIRouter

from tickerhub_api.adapters.schemas.http.envelopes import ErrorEnvelope
from tickerhub_api.infrastructure.logging.logger import get_json_logger

_LOGGER = get_json_logger(__name__)

TagType = str | Enum


class BaseRouter(APIRouter):
    """Canonical router wrapper for TickerHub HTTP endpoints.

    Args:
        version: API version segment (e.g., "v1").
        resource: Resource segment (e.g., "market").
        prefix: Optional explicit prefix (overrides version/resource).
        tags: Default tags applied to all routes mounted on this router.
        **kwargs: Additional APIRouter kwargs.
    """

    def __init__(
        self,
        *,
        version: str,
        resource: str,
        prefix: str | None = None,
        tags: Sequence[TagType] | None = None,
        **kwargs: Any,
    ) -> None:
        computed_prefix = prefix or f"/{version}/{resource}"
        super().__init__(
            prefix=computed_prefix,
            tags=list(tags) if tags is not None else None,
            **kwargs,
        )
        _LOGGER.info(
            "router_initialized",
            extra={"service": "tickerhub-api", "prefix": computed_prefix},
        )

    @staticmethod
    def std_error_responses() -> dict[int | str, dict[str, Any]]:
        """Return the error response mapping shared by market data endpoints.

        Use in routes via ``responses=BaseRouter.std_error_responses()``.
        """
        return {
            400: {"model": ErrorEnvelope, "description": "Bad request (invalid parameter)."},
            422: {"model": ErrorEnvelope, "description": "Unprocessable content."},
            429: {"model": ErrorEnvelope, "description": "Provider request quota exhausted."},
            502: {"model": ErrorEnvelope, "description": "Provider error or malformed payload."},
            503: {"model": ErrorEnvelope, "description": "Provider unreachable."},
            504: {"model": ErrorEnvelope, "description": "Request deadline exceeded."},
        }
