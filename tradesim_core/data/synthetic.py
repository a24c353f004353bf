"""
Synthetic price data: a seeded random walk used as an explicit fallback when no
real history exists.

Each day moves the price by a uniform +/-2%; volumes are uniform in
[500_000, 1_500_000). All randomness comes from a ``random.Random`` built from the
source seed and the symbol, so the same (seed, symbol, range) always produces
the same series.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from datetime import date, timedelta

from tradesim_core.bars import PricePoint
from tradesim_core.data.source import MarketDataSource

DAILY_MOVE = 0.02
DEFAULT_START_PRICE = 100.0


def synthetic_series(
    start_date: str,
    end_date: str,
    start_price: float,
    rng: random.Random,
) -> list[PricePoint]:
    """One bar per calendar day from start_date to end_date inclusive."""
    start = date.fromisoformat(start_date)
    end = date.fromisoformat(end_date)
    price = float(start_price)
    points: list[PricePoint] = []
    for offset in range((end - start).days + 1):
        price *= 1.0 + rng.uniform(-DAILY_MOVE, DAILY_MOVE)
        points.append(
            PricePoint(
                date=start + timedelta(days=offset),
                price=price,
                volume=rng.randrange(500_000, 1_500_000),
            )
        )
    return points


class SyntheticDataSource(MarketDataSource):
    """
    Random-walk history per symbol, starting from ``start_prices[symbol]``
    (or DEFAULT_START_PRICE) on the first requested day.
    """

    def __init__(
        self,
        start_prices: Mapping[str, float] | None = None,
        *,
        seed: int | None = None,
        history_days: int = 365,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._start_prices = dict(start_prices or {})
        self._seed = seed
        self._history_days = history_days
        self._clock = clock

    def _rng(self, symbol: str) -> random.Random:
        if self._seed is None:
            return random.Random()
        return random.Random(f"{self._seed}:{symbol}")

    def _default_range(self) -> tuple[str, str]:
        today = self._clock()
        return (today - timedelta(days=self._history_days)).isoformat(), today.isoformat()

    async def get_historical_data(
        self,
        symbol: str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[PricePoint]:
        default_start, default_end = self._default_range()
        start_price = self._start_prices.get(symbol, DEFAULT_START_PRICE)
        return synthetic_series(start_date or default_start, end_date or default_end, start_price, self._rng(symbol))

    async def get_latest_quote(self, symbol: str) -> PricePoint:
        series = await self.get_historical_data(symbol)
        return series[-1]
