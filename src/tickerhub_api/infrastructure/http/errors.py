# src/tickerhub_api/infrastructure/http/errors.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""HTTP error envelope and exception handlers."""

from __future__ import annotations

import math
from typing import Any, Final

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.responses import Response

from tickerhub_api.domain.exceptions.market_data import (
    MarketDataBadRequest,
    MarketDataError,
    MarketDataNetworkError,
    MarketDataProviderError,
    MarketDataRateLimitExceeded,
    MarketDataShapeError,
    MarketDataTimeout,
)
from tickerhub_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

# Most specific class first.
_STATUS_BY_ERROR: Final[tuple[tuple[type[MarketDataError], int], ...]] = (
    (MarketDataBadRequest, 400),
    (MarketDataRateLimitExceeded, 429),
    (MarketDataShapeError, 502),
    (MarketDataProviderError, 502),
    (MarketDataNetworkError, 503),
    (MarketDataTimeout, 504),
)


def _trace_id(request: Request) -> str | None:
    state = getattr(request, "state", None)
    return getattr(state, "trace_id", None) or getattr(state, "request_id", None)


def error_envelope(
    *,
    code: str,
    http_status: int,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    err: dict[str, Any] = {
        "code": code,
        "http_status": http_status,
        "message": message,
    }
    if details is not None:
        err["details"] = details
    if trace_id is not None:
        err["trace_id"] = trace_id
    return {"error": err}


def status_for(exc: MarketDataError) -> int:
    """Return the HTTP status a market data error is rendered with."""
    for error_type, http_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return http_status
    return 500


async def handle_market_data_error(request: Request, exc: MarketDataError) -> Response:
    http_status = status_for(exc)
    payload = error_envelope(
        code=exc.code,
        http_status=http_status,
        message=exc.message or type(exc).__name__,
        details=jsonable_encoder(exc.details) if exc.details else None,
        trace_id=_trace_id(request),
    )
    headers: dict[str, str] = {}
    if isinstance(exc, MarketDataRateLimitExceeded):
        headers["Retry-After"] = str(max(1, math.ceil(exc.wait_s)))

    log = logger.warning if http_status < 500 else logger.error
    log(
        "http.market_data_error",
        extra={"code": exc.code, "http_status": http_status, "path": request.url.path},
    )
    return JSONResponse(status_code=http_status, content=payload, headers=headers)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    payload = error_envelope(
        code="VALIDATION_ERROR",
        http_status=422,
        message="Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=422, content=payload)


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    payload = error_envelope(
        code="HTTP_ERROR",
        http_status=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
        details=None if isinstance(exc.detail, str) else {"detail": exc.detail},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    logger.exception("http.unhandled_exception", extra={"path": request.url.path})
    payload = error_envelope(
        code="INTERNAL_ERROR",
        http_status=500,
        message="Internal server error",
        details=None,
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=500, content=payload)
