# src/tickerhub_api/domain/entities/quote.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Quote (Domain Entity).

Synopsis:
    Latest price snapshot for a single symbol. Only ``symbol`` and ``close``
    are structurally required; the remaining fields are ``None`` when the
    provider omits them.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from tickerhub_api.domain.entities.base import BaseEntity, require_finite, require_symbol


@dataclass(frozen=True)
class Quote(BaseEntity):
    """Latest quote for a symbol.

    ``change`` and ``percent_change`` may be negative; every price field is
    finite and non-negative.
    """

    symbol: str
    close: Decimal
    name: str | None = None
    exchange: str | None = None
    currency: str | None = None
    timestamp: datetime | None = None
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    volume: Decimal | None = None
    previous_close: Decimal | None = None
    change: Decimal | None = None
    percent_change: Decimal | None = None
    is_market_open: bool | None = None

    def __post_init__(self) -> None:
        """Enforce quote invariants."""
        super().__post_init__()
        require_symbol("Quote", self.symbol)
        require_finite("Quote", "close", self.close)
        for field_name in ("open", "high", "low", "volume", "previous_close"):
            require_finite("Quote", field_name, getattr(self, field_name), optional=True)
        for field_name in ("change", "percent_change"):
            value = getattr(self, field_name)
            if value is not None and not value.is_finite():
                raise ValueError(f"Quote.{field_name} must be a finite number.")
