"""
Price bars: one (date, price, volume) sample of a historical series.

Immutable data carriers produced by the data collaborators. The engine only
reads them; it never mutates a series it was handed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable


def to_iso_date(value: Any) -> str:
    """Normalize a date-like value (str, date, datetime, pd.Timestamp) to 'YYYY-MM-DD'."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime().date().isoformat()
    return date.fromisoformat(str(value)[:10]).isoformat()


@dataclass(frozen=True)
class PricePoint:
    """One bar: calendar date, positive price, non-negative volume."""

    date: str
    price: float
    volume: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", to_iso_date(self.date))
        object.__setattr__(self, "price", float(self.price))
        object.__setattr__(self, "volume", int(self.volume))
        if not self.price > 0:
            raise ValueError(f"price must be positive, got {self.price!r} on {self.date}")
        if self.volume < 0:
            raise ValueError(f"volume must be non-negative, got {self.volume!r} on {self.date}")


def validate_series(points: Iterable[PricePoint]) -> tuple[PricePoint, ...]:
    """
    Return the series as a tuple, checking it is strictly ascending by date.

    Raises ValueError on out-of-order or duplicate dates.
    """
    series = tuple(points)
    for prev, cur in zip(series, series[1:]):
        if cur.date <= prev.date:
            raise ValueError(f"series not strictly ascending: {prev.date} followed by {cur.date}")
    return series


def split_series(points: Iterable[PricePoint]) -> tuple[list[float], list[str], list[int]]:
    """Columns of a series: (prices, dates, volumes)."""
    series = list(points)
    return (
        [p.price for p in series],
        [p.date for p in series],
        [p.volume for p in series],
    )
