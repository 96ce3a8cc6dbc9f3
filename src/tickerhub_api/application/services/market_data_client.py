# src/tickerhub_api/application/services/market_data_client.py
# Copyright (c) TickerHub.
# SPDX-License-Identifier: MIT
"""Market Data Client (orchestrator).

Synopsis:
    The single process-wide entry point for market data. Callers ask for a
    time series, a calendar day or a quote; the client answers from cache or
    performs one gated, bounded provider fetch and caches the normalized
    result.

State machine (per request):
    CheckCache ─ hit ─────────────────────────────────────────────► Return
        └ miss ─► JoinInFlight | StartFetch
                    └► AcquireRateSlot ─► Fetch ─► Normalize ─► Store ─► Return

    * AcquireRateSlot: ``max_rate_wait_s`` bounds the whole acquisition,
      time queued behind other waiters included. Exhausting it fails with
      ``MarketDataRateLimitExceeded``; a wait that would overrun the request
      deadline fails with ``MarketDataTimeout``; otherwise sleep once and
      re-acquire (a second denial is ``MarketDataRateLimitExceeded``).
    * Fetch: ``MarketDataNetworkError`` is retried per ``RetryPolicy``; each
      attempt takes its own rate slot. Provider and shape errors are final.
    * Normalize failures are never stored.
    * Concurrent callers with the same signature share one task. They await
      it through ``asyncio.shield`` so a caller giving up never cancels it.
    * Batch quotes serve cached symbols directly and fetch the rest in one
      provider call under one rate slot; each quote is stored under its own
      ``quote:{SYMBOL}`` signature.

Ownership:
    The client exclusively owns its cache and rate limiter. It is built once
    at startup by the composition root and handed to request handlers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from datetime import date
from functools import partial
from typing import Any, TypeVar, cast

from tickerhub_api.application.interfaces.cache_port import CachePort
from tickerhub_api.application.interfaces.clock import Clock
from tickerhub_api.application.interfaces.market_data_gateway import (
    MarketDataGateway,
    PayloadNormalizer,
)
from tickerhub_api.application.interfaces.rate_limiter_port import RateLimiterPort
from tickerhub_api.application.services.cache_ttl import CacheTtlPolicy
from tickerhub_api.application.services.retry import RetryPolicy
from tickerhub_api.domain.entities.calendar_event import (
    CalendarKind,
    DividendEvent,
    EarningsEvent,
    IpoEvent,
)
from tickerhub_api.domain.entities.quote import Quote
from tickerhub_api.domain.entities.time_series_bar import BarInterval, TimeSeriesBar
from tickerhub_api.domain.exceptions.market_data import (
    MarketDataNetworkError,
    MarketDataRateLimitExceeded,
    MarketDataShapeError,
    MarketDataTimeout,
)
from tickerhub_api.domain.value_objects.market_query import (
    CalendarQuery,
    TimeSeriesQuery,
    normalize_symbol,
    normalize_symbol_batch,
    quote_signature,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MarketDataClient:
    """Cache-first, rate-limited, coalescing access to the market data provider."""

    def __init__(
        self,
        *,
        gateway: MarketDataGateway,
        normalizer: PayloadNormalizer,
        cache: CachePort,
        rate_limiter: RateLimiterPort,
        clock: Clock,
        ttl_policy: CacheTtlPolicy | None = None,
        retry_policy: RetryPolicy | None = None,
        max_rate_wait_s: float = 15.0,
        request_timeout_s: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            gateway: Raw provider access (one call per invocation, no retries).
            normalizer: Provider payload → domain record mapping.
            cache: Cache store owned by this client.
            rate_limiter: Provider request budget owned by this client.
            clock: Time source for deadlines, waits and backoff.
            ttl_policy: TTL bands per query kind.
            retry_policy: Retry budget for network errors.
            max_rate_wait_s: Longest acceptable wait for a request slot.
            request_timeout_s: Deadline for a whole lookup, cache to return.
        """
        if max_rate_wait_s < 0:
            raise ValueError("max_rate_wait_s must be >= 0")
        if request_timeout_s <= 0:
            raise ValueError("request_timeout_s must be > 0")

        self._gateway = gateway
        self._normalizer = normalizer
        self._cache = cache
        self._limiter = rate_limiter
        self._clock = clock
        self._ttl = ttl_policy or CacheTtlPolicy()
        self._retry = retry_policy or RetryPolicy()
        self._max_rate_wait_s = float(max_rate_wait_s)
        self._request_timeout_s = float(request_timeout_s)

        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._slot_waiters = asyncio.Lock()
        self._coalesced_total = 0
        self._provider_calls_total = 0

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def get_time_series(
        self,
        symbol: str,
        interval: BarInterval | str,
        output_size: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[TimeSeriesBar]:
        """Return OHLCV bars for ``symbol`` ordered oldest-first.

        Raises:
            MarketDataBadRequest: On an invalid query (checked before any I/O).
            MarketDataError: Any other kind of the market data taxonomy.
        """
        query = TimeSeriesQuery(
            symbol=symbol,
            interval=cast(BarInterval, interval),
            output_size=output_size,
            start_date=start_date,
            end_date=end_date,
        )
        bars = await self._resolve(
            query.signature,
            endpoint="time_series",
            fetch=lambda: self._gateway.fetch_series(query),
            normalize=lambda raw: self._normalizer.time_series(raw, query),
            ttl=lambda: self._ttl.for_series(query.interval),
        )
        return list(bars)

    async def get_dividend_calendar(self, day: date) -> list[DividendEvent]:
        """Return dividends going ex on ``day``."""
        query = CalendarQuery(kind=CalendarKind.DIVIDENDS, day=day)
        return list(await self._resolve_calendar(query, self._normalizer.dividends))

    async def get_ipo_calendar(self, day: date) -> list[IpoEvent]:
        """Return IPOs scheduled for ``day``."""
        query = CalendarQuery(kind=CalendarKind.IPO, day=day)
        return list(await self._resolve_calendar(query, self._normalizer.ipos))

    async def get_earnings_calendar(self, day: date) -> list[EarningsEvent]:
        """Return earnings releases scheduled for ``day``."""
        query = CalendarQuery(kind=CalendarKind.EARNINGS, day=day)
        return list(await self._resolve_calendar(query, self._normalizer.earnings))

    async def get_quote(self, symbol: str) -> Quote:
        """Return the latest quote for ``symbol``."""
        normalized = normalize_symbol(symbol)
        return await self._resolve(
            quote_signature(normalized),
            endpoint="quote",
            fetch=lambda: self._gateway.fetch_quote(normalized),
            normalize=lambda raw: self._normalizer.quote(raw, normalized),
            ttl=lambda: self._ttl.for_quote(self._clock.now()),
        )

    async def get_quotes(self, symbols: Iterable[str]) -> dict[str, Quote]:
        """Return latest quotes for several symbols, keyed by normalized symbol.

        Cached symbols cost nothing. The remaining symbols are fetched in a
        single provider call under a single rate slot; a lone missing symbol
        goes through :meth:`get_quote` so it coalesces with single lookups.
        Symbols the provider rejects inside a batch are absent from the
        result. Keys follow request order.

        Raises:
            MarketDataBadRequest: On an empty list or more than
                ``MAX_BATCH_SYMBOLS`` distinct symbols (checked before any I/O).
            MarketDataError: Any other kind of the market data taxonomy.
        """
        wanted = normalize_symbol_batch(symbols)

        found: dict[str, Quote] = {}
        missing: list[str] = []
        for symbol in wanted:
            entry = self._cache.get(quote_signature(symbol))
            if entry is None:
                missing.append(symbol)
            else:
                found[symbol] = cast(Quote, entry.value)

        if len(missing) == 1:
            found[missing[0]] = await self.get_quote(missing[0])
        elif missing:
            batch = tuple(sorted(missing))
            key = f"quotes:{','.join(batch)}"
            deadline = self._clock.monotonic() + self._request_timeout_s
            found.update(
                await self._coalesce(
                    key,
                    deadline,
                    lambda: self._load_quotes(key, batch, deadline=deadline),
                )
            )

        logger.debug(
            "market_data.quote_batch",
            extra={"requested": len(wanted), "cached": len(wanted) - len(missing)},
        )
        return {symbol: found[symbol] for symbol in wanted if symbol in found}

    def evict_expired(self) -> int:
        """Drop expired cache entries; returns the number removed."""
        return self._cache.evict_expired()

    def stats(self) -> dict[str, Any]:
        """Return a snapshot of cache, rate budget and coalescing counters."""
        return {
            "cache": self._cache.stats(),
            "rate_limit": {
                "in_window": self._limiter.in_window(),
                "remaining": self._limiter.remaining(),
            },
            "in_flight": len(self._in_flight),
            "coalesced_total": self._coalesced_total,
            "provider_calls_total": self._provider_calls_total,
        }

    # ------------------------------------------------------------------ #
    # State machine
    # ------------------------------------------------------------------ #
    async def _resolve_calendar(
        self,
        query: CalendarQuery,
        normalize: Callable[[Any, CalendarQuery], T],
    ) -> T:
        return await self._resolve(
            query.signature,
            endpoint=f"{query.kind.value}_calendar",
            fetch=lambda: self._gateway.fetch_calendar(query),
            normalize=lambda raw: normalize(raw, query),
            ttl=lambda: self._ttl.for_calendar(self._clock.now()),
        )

    async def _resolve(
        self,
        key: str,
        *,
        endpoint: str,
        fetch: Callable[[], Awaitable[Any]],
        normalize: Callable[[Any], T],
        ttl: Callable[[], float],
    ) -> T:
        deadline = self._clock.monotonic() + self._request_timeout_s

        entry = self._cache.get(key)
        if entry is not None:
            logger.debug("market_data.cache_hit", extra={"key": key})
            return cast(T, entry.value)

        return await self._coalesce(
            key,
            deadline,
            lambda: self._load(
                key,
                endpoint=endpoint,
                fetch=fetch,
                normalize=normalize,
                ttl=ttl,
                deadline=deadline,
            ),
        )

    async def _coalesce(
        self,
        key: str,
        deadline: float,
        start: Callable[[], Coroutine[Any, Any, T]],
    ) -> T:
        """Join the in-flight load for ``key`` or start one, bounded by ``deadline``."""
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(start(), name=f"market-data:{key}")
            self._in_flight[key] = task
            task.add_done_callback(partial(self._release, key))
        else:
            self._coalesced_total += 1
            logger.debug("market_data.coalesced", extra={"key": key})

        remaining = self._remaining(deadline)
        try:
            return cast(T, await asyncio.wait_for(asyncio.shield(task), timeout=remaining))
        except TimeoutError as exc:
            raise MarketDataTimeout(
                "market data request exceeded its deadline",
                details={"key": key, "timeout_s": self._request_timeout_s},
            ) from exc

    def _release(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Waiters may all have timed out; mark the outcome as retrieved.
        if not task.cancelled():
            task.exception()

    async def _load(
        self,
        key: str,
        *,
        endpoint: str,
        fetch: Callable[[], Awaitable[Any]],
        normalize: Callable[[Any], T],
        ttl: Callable[[], float],
        deadline: float,
    ) -> T:
        raw = await self._fetch_with_retry(key, endpoint=endpoint, fetch=fetch, deadline=deadline)
        try:
            value = normalize(raw)
        except MarketDataShapeError as exc:
            logger.warning(
                "market_data.shape_error",
                extra={"key": key, "endpoint": endpoint, "reason": str(exc)},
            )
            raise

        entry = self._cache.put(key, value, ttl())
        logger.info(
            "market_data.stored",
            extra={
                "key": key,
                "endpoint": endpoint,
                "ttl_s": round(entry.expires_at - entry.stored_at, 3),
            },
        )
        return value

    async def _load_quotes(
        self,
        key: str,
        symbols: tuple[str, ...],
        *,
        deadline: float,
    ) -> dict[str, Quote]:
        raw = await self._fetch_with_retry(
            key,
            endpoint="quote_batch",
            fetch=lambda: self._gateway.fetch_quotes(symbols),
            deadline=deadline,
        )
        try:
            quotes = self._normalizer.quotes(raw, symbols)
        except MarketDataShapeError as exc:
            logger.warning(
                "market_data.shape_error",
                extra={"key": key, "endpoint": "quote_batch", "reason": str(exc)},
            )
            raise

        ttl_s = self._ttl.for_quote(self._clock.now())
        for symbol, quote in quotes.items():
            self._cache.put(quote_signature(symbol), quote, ttl_s)
        logger.info(
            "market_data.stored",
            extra={
                "key": key,
                "endpoint": "quote_batch",
                "stored": len(quotes),
                "rejected": len(symbols) - len(quotes),
                "ttl_s": round(ttl_s, 3),
            },
        )
        return quotes

    async def _fetch_with_retry(
        self,
        key: str,
        *,
        endpoint: str,
        fetch: Callable[[], Awaitable[Any]],
        deadline: float,
    ) -> Any:
        attempt = 0
        while True:
            await self._acquire_slot(key, deadline)
            self._provider_calls_total += 1
            try:
                return await self._call_before_deadline(key, fetch, deadline)
            except MarketDataNetworkError as exc:
                if attempt >= self._retry.total:
                    logger.warning(
                        "market_data.retries_exhausted",
                        extra={"key": key, "endpoint": endpoint, "attempts": attempt + 1},
                    )
                    raise
                delay = self._retry.backoff(attempt)
                if delay >= self._remaining(deadline):
                    raise MarketDataTimeout(
                        "market data request exceeded its deadline before retrying",
                        details={"key": key, "attempts": attempt + 1},
                    ) from exc
                logger.warning(
                    "market_data.retry",
                    extra={
                        "key": key,
                        "endpoint": endpoint,
                        "attempt": attempt + 1,
                        "backoff_s": round(delay, 3),
                        "reason": str(exc),
                    },
                )
                await self._clock.sleep(delay)
                attempt += 1

    async def _call_before_deadline(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        deadline: float,
    ) -> Any:
        remaining = self._remaining(deadline)
        if remaining <= 0:
            raise MarketDataTimeout(
                "market data request exceeded its deadline", details={"key": key}
            )
        try:
            return await asyncio.wait_for(fetch(), timeout=remaining)
        except TimeoutError as exc:
            raise MarketDataTimeout(
                "provider call exceeded the request deadline", details={"key": key}
            ) from exc

    async def _acquire_slot(self, key: str, deadline: float) -> None:
        # Newcomers queue behind an active waiter instead of racing it.
        if not self._slot_waiters.locked() and self._limiter.try_acquire().granted:
            return

        wait_deadline = self._clock.monotonic() + self._max_rate_wait_s
        await self._join_slot_queue(key, wait_deadline, deadline)
        try:
            decision = self._limiter.try_acquire()
            if decision.granted:
                return
            self._check_wait(key, decision.wait_s, wait_deadline, deadline)

            logger.info(
                "market_data.rate_wait",
                extra={"key": key, "wait_s": round(decision.wait_s, 3)},
            )
            await self._clock.sleep(decision.wait_s)

            decision = self._limiter.try_acquire()
            if decision.granted:
                return
            raise MarketDataRateLimitExceeded(wait_s=decision.wait_s, details={"key": key})
        finally:
            self._slot_waiters.release()

    async def _join_slot_queue(self, key: str, wait_deadline: float, deadline: float) -> None:
        """Take the waiter lock, giving up when either budget runs out first."""
        if not self._slot_waiters.locked():
            await self._slot_waiters.acquire()
            return

        budget = min(wait_deadline, deadline) - self._clock.monotonic()
        if budget > 0:
            try:
                await asyncio.wait_for(self._slot_waiters.acquire(), timeout=budget)
                return
            except TimeoutError:
                logger.info("market_data.slot_queue_expired", extra={"key": key})

        if wait_deadline <= deadline:
            raise MarketDataRateLimitExceeded(
                wait_s=self._max_rate_wait_s,
                details={"key": key, "max_wait_s": self._max_rate_wait_s, "queued": True},
            )
        raise MarketDataTimeout(
            "queued for a provider request slot past the deadline",
            details={"key": key},
        )

    def _check_wait(
        self, key: str, wait_s: float, wait_deadline: float, deadline: float
    ) -> None:
        if wait_s > wait_deadline - self._clock.monotonic():
            raise MarketDataRateLimitExceeded(
                wait_s=wait_s,
                details={"key": key, "max_wait_s": self._max_rate_wait_s},
            )
        if wait_s >= self._remaining(deadline):
            raise MarketDataTimeout(
                "waiting for a provider request slot would exceed the deadline",
                details={"key": key, "wait_s": round(wait_s, 3)},
            )

    def _remaining(self, deadline: float) -> float:
        return deadline - self._clock.monotonic()
