"""
In-memory data source: serves fixed series from a dict of symbol -> bars.

No I/O. Used by tests and demos, and as the backing store for CSV and
synthetic sources.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from tradesim_core.bars import PricePoint, validate_series
from tradesim_core.data.source import MarketDataSource, in_range
from tradesim_core.errors import DataUnavailable


class InMemoryDataSource(MarketDataSource):
    """
    Serves history from a mapping symbol -> bars. Series are validated
    (ascending, no duplicate dates) and frozen on construction.
    """

    def __init__(self, series: Mapping[str, Iterable[PricePoint]] | None = None) -> None:
        self._series: dict[str, tuple[PricePoint, ...]] = {
            symbol: validate_series(points) for symbol, points in (series or {}).items()
        }

    @property
    def symbols(self) -> list[str]:
        return list(self._series)

    async def get_historical_data(
        self,
        symbol: str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[PricePoint]:
        return [p for p in self._series.get(symbol, ()) if in_range(p, start_date, end_date)]

    async def get_latest_quote(self, symbol: str) -> PricePoint:
        series = self._series.get(symbol)
        if not series:
            raise DataUnavailable(symbol)
        return series[-1]
