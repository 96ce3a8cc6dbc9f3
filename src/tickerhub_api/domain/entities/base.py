# src/tickerhub_api/domain/entities/base.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Base Entity (Domain Layer).

Purpose:
    Mixin for immutable domain entities. Provides frozen dataclass semantics
    and a small validation hook for invariants, plus the shared field checks
    used by market data records.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class BaseEntity:
    """Base mixin for domain entities.

    Concrete entities subclass this mixin, declare their own fields and
    extend :meth:`__post_init__` with invariant checks.
    """

    def __post_init__(self) -> None:
        """Hook for subclasses to extend with invariant checks."""
        return


def require_symbol(owner: str, symbol: object) -> None:
    """Validate a ticker symbol (non-empty, upper-case string).

    Raises:
        ValueError: If the symbol is empty or not upper-case.
    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValueError(f"{owner}.symbol must be a non-empty string.")
    if symbol != symbol.upper():
        raise ValueError(f"{owner}.symbol must be upper-case.")


def require_finite(owner: str, name: str, value: Decimal | None, *, optional: bool = False) -> None:
    """Validate that a numeric field is a finite, non-negative Decimal.

    Raises:
        ValueError: If the value is missing (unless ``optional``), NaN/Infinity,
            or negative.
    """
    if value is None:
        if optional:
            return
        raise ValueError(f"{owner}.{name} is required.")
    if not isinstance(value, Decimal) or not value.is_finite():
        raise ValueError(f"{owner}.{name} must be a finite number.")
    if value < 0:
        raise ValueError(f"{owner}.{name} must be >= 0.")
