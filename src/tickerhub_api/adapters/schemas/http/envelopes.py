# src/tickerhub_api/adapters/schemas/http/envelopes.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Error envelope schema shared by every route's OpenAPI error responses."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from tickerhub_api.adapters.schemas.http.base import BaseHTTPSchema


class ErrorObject(BaseHTTPSchema):
    """Structured error body."""

    code: str = Field(..., examples=["MARKET_DATA_RATE_LIMITED"])
    http_status: int = Field(..., examples=[429])
    message: str
    details: dict[str, Any] | None = None
    trace_id: str | None = None


class ErrorEnvelope(BaseHTTPSchema):
    r"""Canonical error envelope: {"error": ErrorObject}."""

    model_config = ConfigDict(
        title="ErrorEnvelope",
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "error": {
                        "code": "MARKET_DATA_RATE_LIMITED",
                        "http_status": 429,
                        "message": "provider request quota exhausted",
                        "details": {"retry_after_s": 42.0},
                        "trace_id": "req-456",
                    }
                }
            ]
        },
    )

    error: ErrorObject = Field(..., description="Structured error details.")
