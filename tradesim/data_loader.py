"""
Load historical prices from CSV or DataFrame into PricePoint series.

Two layouts are supported:

- long: one symbol per file, a date column plus price (or close) and optional volume;
- wide: a ``Date`` column plus one price column per symbol (volume not recorded).

Missing volumes default to DEFAULT_VOLUME. Sparse (e.g. monthly) series can be
expanded to business days by linear interpolation in time.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path

import pandas as pd

from tradesim.config import DATA_CSV_ENV
from tradesim_core.bars import PricePoint
from tradesim_core.data.memory import InMemoryDataSource

DEFAULT_VOLUME = 1_000_000

# Tried in order; "adj close" wins over "close" in Yahoo-style exports.
PRICE_ALIASES = ("adj close", "close", "c")
VOLUME_ALIASES = ("vol", "v")


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Ensure columns are lowercase; map common aliases to price/volume.

    Only one column becomes ``price``: an explicit price column, else the first of
    PRICE_ALIASES present. The remaining aliases are dropped.
    """
    out = df.copy()
    out.columns = [str(c).lower().strip() for c in out.columns]
    aliases = [c for c in PRICE_ALIASES if c in out.columns]
    if "price" not in out.columns and aliases:
        out = out.rename(columns={aliases.pop(0): "price"})
    out = out.drop(columns=aliases)
    for alias in VOLUME_ALIASES:
        if "volume" not in out.columns and alias in out.columns:
            out = out.rename(columns={alias: "volume"})
    return out


def load_csv(
    path: str | Path,
    *,
    date_column: str | None = None,
    datetime_format: str | None = None,
    symbol: str | None = None,
) -> pd.DataFrame:
    """
    Load a single-symbol price file.

    Parameters
    ----------
    path : str or Path
        Path to the CSV file.
    date_column : str, optional
        Column to use as datetime index. If None, 'date' or the first column is used.
    datetime_format : str, optional
        Format for parsing dates (e.g. '%Y-%m-%d').
    symbol : str, optional
        Symbol to attach (stored in df.attrs['symbol'] if provided).

    Returns
    -------
    pd.DataFrame
        DatetimeIndex named 'datetime', ascending; columns price and optionally volume.
    """
    df = _normalize_columns(pd.read_csv(path))
    date_col = date_column.lower() if date_column else ("date" if "date" in df.columns else df.columns[0])
    df.index = pd.DatetimeIndex(pd.to_datetime(df.pop(date_col), format=datetime_format))
    df = df.sort_index()
    return load_dataframe(df, symbol=symbol)


def load_dataframe(
    df: pd.DataFrame,
    *,
    datetime_index: str | None = None,
    symbol: str | None = None,
) -> pd.DataFrame:
    """
    Normalize a DataFrame to a DatetimeIndex and price[, volume] columns.

    Raises ValueError if no price column can be found.
    """
    out = _normalize_columns(df.copy())
    if datetime_index is not None and datetime_index.lower() in out.columns:
        out["datetime"] = pd.to_datetime(out[datetime_index.lower()])
        out = out.set_index("datetime").sort_index()
    elif not isinstance(out.index, pd.DatetimeIndex):
        out.index = pd.to_datetime(out.index)
        out = out.sort_index()
    out.index.name = "datetime"
    if "price" not in out.columns:
        raise ValueError(f"no price/close column in {list(out.columns)}")
    out = out[[c for c in ("price", "volume") if c in out.columns]]
    if symbol is not None:
        out.attrs["symbol"] = symbol
    return out


def load_price_table(path: str | Path, *, date_column: str = "Date") -> pd.DataFrame:
    """
    Load a wide file: one row per date, one price column per symbol.

    Returns a DataFrame indexed by ascending datetime with one float column per symbol.
    """
    df = pd.read_csv(path)
    df[date_column] = pd.to_datetime(df[date_column])
    table = df.set_index(date_column).sort_index()
    table.index.name = "datetime"
    return table.apply(pd.to_numeric, errors="coerce")


def frame_to_series(df: pd.DataFrame) -> list[PricePoint]:
    """Rows with a positive price become PricePoints; missing volume -> DEFAULT_VOLUME."""
    points: list[PricePoint] = []
    for ts, row in df.iterrows():
        price = row["price"]
        if pd.isna(price) or price <= 0:
            continue
        volume = row.get("volume", DEFAULT_VOLUME)
        points.append(PricePoint(date=ts, price=price, volume=DEFAULT_VOLUME if pd.isna(volume) else volume))
    return points


def series_to_frame(points: Iterable[PricePoint]) -> pd.DataFrame:
    series = list(points)
    return pd.DataFrame(
        {"price": [p.price for p in series], "volume": [p.volume for p in series]},
        index=pd.DatetimeIndex(pd.to_datetime([p.date for p in series]), name="datetime"),
    )


def table_to_series(table: pd.DataFrame) -> dict[str, list[PricePoint]]:
    """Split a wide price table into one series per symbol column."""
    return {
        str(symbol): frame_to_series(table[[symbol]].rename(columns={symbol: "price"}))
        for symbol in table.columns
    }


def interpolate_daily(points: Iterable[PricePoint]) -> list[PricePoint]:
    """
    Fill every business day between the first and last bar by linear
    interpolation in time. Original bars are kept as-is; volume carries forward.
    """
    frame = series_to_frame(points)
    if len(frame) < 2:
        return frame_to_series(frame)
    days = pd.bdate_range(frame.index[0], frame.index[-1])
    full = frame.reindex(frame.index.union(days))
    full["price"] = full["price"].interpolate(method="time")
    full["volume"] = full["volume"].ffill().fillna(DEFAULT_VOLUME)
    return frame_to_series(full)


class CsvDataSource(InMemoryDataSource):
    """
    MarketDataSource backed by CSV files, loaded eagerly into memory.
    """

    @classmethod
    def from_series(
        cls,
        series: Mapping[str, Iterable[PricePoint]],
        *,
        interpolate: bool = False,
    ) -> "CsvDataSource":
        if interpolate:
            series = {symbol: interpolate_daily(points) for symbol, points in series.items()}
        return cls(series)

    @classmethod
    def from_csv(
        cls,
        path: str | Path,
        *,
        symbol: str | None = None,
        interpolate: bool = False,
    ) -> "CsvDataSource":
        """
        Load ``path``. With ``symbol`` the file is read as a single-symbol (long)
        file; without it, as a wide table with one column per symbol.
        """
        if symbol is not None:
            series = {symbol: frame_to_series(load_csv(path, symbol=symbol))}
        else:
            series = table_to_series(load_price_table(path))
        return cls.from_series(series, interpolate=interpolate)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, interpolate: bool = False) -> "CsvDataSource":
        """Load the wide CSV named by the TRADESIM_DATA_CSV environment variable."""
        env = os.environ if environ is None else environ
        path = env.get(DATA_CSV_ENV)
        if not path:
            raise ValueError(f"{DATA_CSV_ENV} is not set")
        return cls.from_csv(path, interpolate=interpolate)
