"""
Market-data abstraction layer.

MarketDataSource ABC: get_historical_data, get_latest_quote. These calls are the
only suspension points of a backtest or prediction; everything downstream of
them is synchronous. Implementations: InMemoryDataSource, SyntheticDataSource,
CachedDataSource (in this package) and tradesim.data_loader.CsvDataSource.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tradesim_core.bars import PricePoint


class MarketDataSource(ABC):
    """
    Abstract provider of price history and latest quotes for a symbol.
    """

    @abstractmethod
    async def get_historical_data(
        self,
        symbol: str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[PricePoint]:
        """
        Return bars for ``symbol`` with start_date <= date <= end_date (inclusive,
        'YYYY-MM-DD'), ascending by date. An unknown symbol or empty range yields
        an empty list; deciding what that means is the caller's job.
        """
        ...

    @abstractmethod
    async def get_latest_quote(self, symbol: str) -> PricePoint:
        """
        Return the most recent bar for ``symbol``.
        Raises DataUnavailable if the source knows nothing about the symbol.
        """
        ...


def in_range(point: PricePoint, start_date: str | None, end_date: str | None) -> bool:
    """Inclusive ISO-date range check; a missing bound is open."""
    if start_date is not None and point.date < start_date:
        return False
    if end_date is not None and point.date > end_date:
        return False
    return True
