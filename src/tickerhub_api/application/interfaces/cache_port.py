# src/tickerhub_api/application/interfaces/cache_port.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Application Interface: Cache Port.

Synopsis:
    Minimal in-process cache behavior used by the market data client. Values
    are normalized, immutable results (tuples of frozen entities or a single
    frozen entity); they are stored by reference, never serialized.

Layer:
    application/interfaces
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored value with its lifetime.

    Attributes:
        key: Query signature the value was stored under.
        value: Normalized, immutable result.
        stored_at: Monotonic time of insertion.
        expires_at: Monotonic time after which the entry is invisible.
    """

    key: str
    value: Any
    stored_at: float
    expires_at: float

    def __post_init__(self) -> None:
        if self.expires_at <= self.stored_at:
            raise ValueError("CacheEntry.expires_at must be > stored_at.")

    def is_live(self, now: float) -> bool:
        """Return True while ``now`` is strictly before expiry."""
        return now < self.expires_at


class CachePort(Protocol):
    """Key/value cache with per-entry TTL semantics.

    Implementations treat expired entries as misses and must make every
    check-and-update sequence atomic with respect to concurrent callers.
    """

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` or ``None`` on a miss."""

    def put(self, key: str, value: Any, ttl_s: float) -> CacheEntry:
        """Store ``value`` under ``key`` for ``ttl_s`` seconds (must be > 0)."""

    def evict_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""

    def stats(self) -> dict[str, int]:
        """Return counters describing the cache (size, hits, misses, ...)."""
