# src/tickerhub_api/infrastructure/observability/metrics_market_data.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Market Data observability helpers and Prometheus metrics.

Exports
-------
Collectors (names are part of the public contract and must remain stable):

* ``tickerhub_market_data_gateway_latency_seconds`` (Histogram)
* ``tickerhub_market_data_errors_total`` (Counter)
* ``tickerhub_market_data_http_status_total`` (Counter)
* ``tickerhub_market_data_cache_hits_total`` (Counter)
* ``tickerhub_market_data_cache_misses_total`` (Counter)
* ``tickerhub_market_data_cache_evictions_total`` (Counter)
* ``tickerhub_market_data_rate_limit_decisions_total`` (Counter)

Helpers:

* :func:`observe_upstream_request` – context manager for one upstream call.

Design
------
All collectors are created against the *current* default registry
(:data:`prometheus_client.REGISTRY`). If a collector with the same name is
already registered (module re-import, tests swapping the registry), the
existing instance is reused instead of registering a duplicate.
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from time import perf_counter

import prometheus_client as prom
from prometheus_client import Counter, Histogram
from prometheus_client.registry import CollectorRegistry


def _lookup(registry: CollectorRegistry, name: str) -> object | None:
    mapping = getattr(registry, "_names_to_collectors", {})  # internal but stable
    return mapping.get(name)


def _get_or_create_histogram(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Histogram:
    """Return a histogram bound to the current default registry (idempotent)."""
    registry: CollectorRegistry = prom.REGISTRY
    existing = _lookup(registry, name)
    if isinstance(existing, Histogram):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Histogram(name, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = _lookup(registry, name)
            if isinstance(again, Histogram):
                return again
        raise


def _get_or_create_counter(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Counter:
    """Return a counter bound to the current default registry (idempotent).

    Note:
        ``prometheus_client`` registers counters under both ``name`` and
        ``name`` without its ``_total`` suffix; either lookup finds the
        existing collector.
    """
    registry: CollectorRegistry = prom.REGISTRY
    existing = _lookup(registry, name) or _lookup(registry, name.removesuffix("_total"))
    if isinstance(existing, Counter):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Counter(name, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = _lookup(registry, name) or _lookup(registry, name.removesuffix("_total"))
            if isinstance(again, Counter):
                return again
        raise


# ---------------------------------------------------------------------------
# Upstream provider
# ---------------------------------------------------------------------------

market_data_gateway_latency_seconds: Histogram = _get_or_create_histogram(
    "tickerhub_market_data_gateway_latency_seconds",
    "Latency of upstream market data gateway calls (seconds).",
    labelnames=("provider", "endpoint", "interval", "outcome"),
)

market_data_errors_total: Counter = _get_or_create_counter(
    "tickerhub_market_data_errors_total",
    "Total errors encountered when calling upstream market data providers.",
    labelnames=("provider", "endpoint", "interval", "reason"),
)

market_data_http_status_total: Counter = _get_or_create_counter(
    "tickerhub_market_data_http_status_total",
    "HTTP status codes returned by market data providers.",
    labelnames=("provider", "endpoint", "status_code"),
)

# ---------------------------------------------------------------------------
# Cache and rate budget
# ---------------------------------------------------------------------------

market_data_cache_hits_total: Counter = _get_or_create_counter(
    "tickerhub_market_data_cache_hits_total",
    "Cache hits for market data lookups.",
    labelnames=("kind",),
)

market_data_cache_misses_total: Counter = _get_or_create_counter(
    "tickerhub_market_data_cache_misses_total",
    "Cache misses for market data lookups.",
    labelnames=("kind",),
)

market_data_cache_evictions_total: Counter = _get_or_create_counter(
    "tickerhub_market_data_cache_evictions_total",
    "Cache entries removed, by cause (expired or capacity).",
    labelnames=("cause",),
)

market_data_rate_limit_decisions_total: Counter = _get_or_create_counter(
    "tickerhub_market_data_rate_limit_decisions_total",
    "Provider request-slot decisions made by the rate limiter.",
    labelnames=("decision",),
)


def signature_kind(key: str) -> str:
    """Return the low-cardinality label for a cache key (``series``, ``quote``...)."""
    kind, _, _ = key.partition(":")
    return kind or "unknown"


# ---------------------------------------------------------------------------
# Observation context manager used by gateways
# ---------------------------------------------------------------------------


@dataclass
class UpstreamObservation:
    """State captured while observing an upstream call.

    Attributes:
        provider: Upstream provider identifier (for labelling).
        endpoint: Logical endpoint name (for labelling).
        interval: Interval label (e.g. ``"5min"``), if applicable.
        start: Monotonic start time in seconds.
        outcome: Outcome of the call (``"success"`` or ``"error"``).
        error_reason: Short, machine-readable error reason if any.
    """

    provider: str
    endpoint: str
    interval: str | None = None
    start: float = field(default_factory=perf_counter)
    outcome: str = "success"
    error_reason: str | None = None

    def mark_error(self, reason: str) -> None:
        """Mark the upstream call as failed with a given reason."""
        self.outcome = "error"
        self.error_reason = reason

    def record_status(self, status_code: int) -> None:
        """Count one upstream HTTP status code."""
        with suppress(Exception):
            market_data_http_status_total.labels(
                provider=self.provider,
                endpoint=self.endpoint,
                status_code=str(status_code),
            ).inc()


@contextmanager
def observe_upstream_request(
    *,
    provider: str,
    endpoint: str,
    interval: str | None = None,
) -> Generator[UpstreamObservation, None, None]:
    """Observe an upstream market data request.

    Records a latency sample in
    :data:`tickerhub_market_data_gateway_latency_seconds` and, when the call
    failed, an increment in :data:`tickerhub_market_data_errors_total`.

    Args:
        provider: Upstream provider identifier (e.g. ``"twelvedata"``).
        endpoint: Logical endpoint name (e.g. ``"time_series"``).
        interval: Optional interval label.

    Yields:
        A mutable :class:`UpstreamObservation` used to signal errors.
    """
    obs = UpstreamObservation(provider=provider, endpoint=endpoint, interval=interval)
    try:
        yield obs
    except Exception:
        if obs.error_reason is None:
            obs.mark_error("exception")
        raise
    finally:
        elapsed = perf_counter() - obs.start

        with suppress(Exception):
            market_data_gateway_latency_seconds.labels(
                provider=obs.provider,
                endpoint=obs.endpoint,
                interval=obs.interval or "n/a",
                outcome=obs.outcome,
            ).observe(elapsed)

            if obs.error_reason is not None:
                market_data_errors_total.labels(
                    provider=obs.provider,
                    endpoint=obs.endpoint,
                    interval=obs.interval or "n/a",
                    reason=obs.error_reason,
                ).inc()
