"""
Time-bounded cache in front of another MarketDataSource.

History is cached per (symbol, start, end) and quotes per symbol, each entry
expiring after its TTL. This is the only shared mutable state around the
engine. Each key has its own asyncio.Lock, so concurrent backtests of
different symbols fetch in parallel while duplicate requests for one key share
a single upstream call. Expired entries are swept whenever a new one is stored.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from tradesim_core.bars import PricePoint
from tradesim_core.data.source import MarketDataSource

logger = logging.getLogger(__name__)

# Quotes go stale quickly; history much less so.
QUOTE_TTL = 60.0
HISTORY_TTL = 3600.0


class CachedDataSource(MarketDataSource):
    """Wraps ``source``; repeated calls within the TTL are served from memory."""

    def __init__(
        self,
        source: MarketDataSource,
        *,
        history_ttl: float = HISTORY_TTL,
        quote_ttl: float = QUOTE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._history_ttl = history_ttl
        self._quote_ttl = quote_ttl
        self._clock = clock
        self._entries: dict[tuple[Any, ...], tuple[float, Any]] = {}
        self._locks: dict[tuple[Any, ...], asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _get(self, key: tuple[Any, ...]) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def _put(self, key: tuple[Any, ...], value: Any, ttl: float) -> None:
        now = self._clock()
        for stale in [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]:
            del self._entries[stale]
        self._entries[key] = (now + ttl, value)

    async def _fetch(self, key: tuple[Any, ...], ttl: float, load: Callable[[], Awaitable[Any]]) -> Any:
        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                cached = self._get(key)
                if cached is not None:
                    logger.debug("cache hit for %s", key)
                    return cached
                value = await load()
                self._put(key, value, ttl)
                return value
        finally:
            if not lock.locked():
                self._locks.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_historical_data(
        self,
        symbol: str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[PricePoint]:
        async def load() -> tuple[PricePoint, ...]:
            return tuple(await self._source.get_historical_data(symbol, start_date, end_date))

        return list(await self._fetch(("history", symbol, start_date, end_date), self._history_ttl, load))

    async def get_latest_quote(self, symbol: str) -> PricePoint:
        return await self._fetch(("quote", symbol), self._quote_ttl, lambda: self._source.get_latest_quote(symbol))
