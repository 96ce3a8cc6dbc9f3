# src/tickerhub_api/adapters/routers/health_router.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Liveness endpoint (Adapters Layer)."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter

from tickerhub_api.adapters.schemas.http.base import BaseHTTPSchema

router = APIRouter(tags=["Health"])


class LivenessResponse(BaseHTTPSchema):
    status: Literal["ok"] = "ok"


@router.get("/healthz", response_model=LivenessResponse, summary="Liveness probe")
async def healthz() -> LivenessResponse:
    return LivenessResponse()
