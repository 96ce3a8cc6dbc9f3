# src/tickerhub_api/infrastructure/caching/memory_cache.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""In-memory TTL cache.

Synopsis:
    Implements the application CachePort Protocol with an ordered dict kept
    in least-recently-used order. Each entry carries its own expiry measured
    on the injected monotonic clock.

Design:
    * Expired entries are invisible: ``get`` treats them as misses and drops
      them on sight; ``evict_expired`` sweeps the rest.
    * Capacity is bounded by ``max_entries``; inserting past it evicts the
      least recently used entry.
    * Values are stored by reference. Callers store immutable results only.
    * Every operation runs under one lock.

Layer:
    infrastructure/caching

See Also:
    - tickerhub_api.application.interfaces.cache_port.CachePort
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any

from tickerhub_api.application.interfaces.cache_port import CacheEntry
from tickerhub_api.application.interfaces.clock import Clock
from tickerhub_api.infrastructure.observability.metrics_market_data import (
    market_data_cache_evictions_total,
    market_data_cache_hits_total,
    market_data_cache_misses_total,
    signature_kind,
)

__all__ = ["InMemoryTtlCache"]

logger = logging.getLogger(__name__)


class InMemoryTtlCache:
    """Process-local LRU cache with per-entry TTL."""

    def __init__(self, *, clock: Clock, max_entries: int = 1024) -> None:
        """Initialize the cache.

        Args:
            clock: Monotonic time source for expiry.
            max_entries: Capacity; the least recently used entry is evicted
                when an insert would exceed it.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._clock = clock
        self._max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` or ``None``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_live(self._clock.monotonic()):
                del self._entries[key]
                self._expirations += 1
                entry = None

            if entry is None:
                self._misses += 1
            else:
                self._entries.move_to_end(key)
                self._hits += 1

        counter = market_data_cache_misses_total if entry is None else market_data_cache_hits_total
        counter.labels(kind=signature_kind(key)).inc()
        return entry

    def put(self, key: str, value: Any, ttl_s: float) -> CacheEntry:
        """Store ``value`` for ``ttl_s`` seconds, replacing any previous entry.

        Raises:
            ValueError: If ``ttl_s`` is not positive.
        """
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")

        evicted: list[str] = []
        stale = 0
        with self._lock:
            now = self._clock.monotonic()
            entry = CacheEntry(key=key, value=value, stored_at=now, expires_at=now + ttl_s)
            if key not in self._entries and len(self._entries) >= self._max_entries:
                stale = self._purge_expired(now)
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                old_key, _ = self._entries.popitem(last=False)
                evicted.append(old_key)
            self._evictions += len(evicted)

        if stale:
            market_data_cache_evictions_total.labels(cause="expired").inc(stale)
        if evicted:
            market_data_cache_evictions_total.labels(cause="capacity").inc(len(evicted))
            logger.debug("cache.evicted", extra={"keys": evicted})
        return entry

    def expire(self, key: str) -> bool:
        """Drop ``key`` immediately; returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def evict_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            removed = self._purge_expired(self._clock.monotonic())

        if removed:
            market_data_cache_evictions_total.labels(cause="expired").inc(removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Return size and lifetime counters.

        ``size`` counts stored entries, expired ones included until they are
        swept; ``live`` counts only those still visible to ``get``.
        """
        with self._lock:
            now = self._clock.monotonic()
            return {
                "size": len(self._entries),
                "live": sum(1 for e in self._entries.values() if e.is_live(now)),
                "capacity": self._max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def _purge_expired(self, now: float) -> int:
        stale = [k for k, e in self._entries.items() if not e.is_live(now)]
        for key in stale:
            del self._entries[key]
        self._expirations += len(stale)
        return len(stale)
