# src/tickerhub_api/infrastructure/middleware/access_log.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Access Log Middleware.

Summary:
    Emits one structured access log entry per request/response pair.

Fields:
    evt: Literal "access" marker.
    method: HTTP method.
    path: URL path (no scheme/host).
    query: Raw query string.
    status: HTTP status code (500 if the handler raised).
    elapsed_ms: Latency in milliseconds, rounded to two decimals.
    ok: True if the downstream handler returned normally.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from tickerhub_api.infrastructure.logging.logger import get_json_logger

_logger: logging.Logger = get_json_logger(__name__)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Structured access logging middleware."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        t0 = time.perf_counter()
        response: Response | None = None
        ok = False
        try:
            response = await call_next(request)
            ok = True
            return response
        finally:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            log: dict[str, Any] = {
                "evt": "access",
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query),
                "status": response.status_code if response is not None else 500,
                "elapsed_ms": round(elapsed_ms, 2),
                "ok": ok,
            }
            _logger.info("access_log", extra=log)
