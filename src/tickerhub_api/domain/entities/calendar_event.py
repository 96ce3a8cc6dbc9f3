# src/tickerhub_api/domain/entities/calendar_event.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Calendar Events (Domain Entities).

Synopsis:
    Immutable records for corporate calendar events returned by the market
    data provider: dividends, IPOs and earnings releases. Optional fields the
    provider omits are carried as ``None``.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from tickerhub_api.domain.entities.base import BaseEntity, require_finite, require_symbol


class CalendarKind(str, Enum):
    """Calendar families exposed by the provider."""

    DIVIDENDS = "dividends"
    IPO = "ipo"
    EARNINGS = "earnings"


@dataclass(frozen=True)
class CalendarEvent(BaseEntity):
    """Fields shared by every calendar event.

    Attributes:
        symbol: Upper-case ticker symbol.
        name: Company name (falls back to the symbol when unknown).
        event_date: Day the event applies to.
    """

    symbol: str
    name: str
    event_date: date

    def __post_init__(self) -> None:
        """Validate shared invariants."""
        super().__post_init__()
        require_symbol(type(self).__name__, self.symbol)
        if not isinstance(self.event_date, date):
            raise ValueError(f"{type(self).__name__}.event_date must be a date.")


@dataclass(frozen=True)
class DividendEvent(CalendarEvent):
    """A dividend keyed on its ex-dividend date."""

    amount: Decimal = Decimal(0)
    payment_date: date | None = None
    dividend_yield: Decimal | None = None
    currency: str | None = None
    exchange: str | None = None

    def __post_init__(self) -> None:
        """Validate dividend amounts."""
        super().__post_init__()
        require_finite("DividendEvent", "amount", self.amount)
        require_finite("DividendEvent", "dividend_yield", self.dividend_yield, optional=True)


@dataclass(frozen=True)
class IpoEvent(CalendarEvent):
    """An initial public offering scheduled for ``event_date``."""

    exchange: str | None = None
    price_range_low: Decimal | None = None
    price_range_high: Decimal | None = None
    offer_price: Decimal | None = None
    shares: int | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        """Validate optional price fields when present."""
        super().__post_init__()
        for field_name in ("price_range_low", "price_range_high", "offer_price"):
            require_finite("IpoEvent", field_name, getattr(self, field_name), optional=True)

    @property
    def price_range(self) -> str:
        """Display label for the expected price range, ``"TBD"`` when unknown."""
        if self.price_range_low is not None and self.price_range_high is not None:
            return f"${self.price_range_low}-${self.price_range_high}"
        return "TBD"


@dataclass(frozen=True)
class EarningsEvent(CalendarEvent):
    """An earnings release with optional EPS estimate and actual."""

    time: str | None = None
    eps_estimate: Decimal | None = None
    eps_actual: Decimal | None = None
