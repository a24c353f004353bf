"""
Prediction demo: 1/7/30-day directional calls from the indicator ensemble.

Uses the wide sample CSV (interpolated to business days) behind a cache. A
prior backtest of the same symbol is passed in to show the confidence boost.
Set TRADESIM_DATA_CSV to point at another wide CSV.
"""

import asyncio
import logging
import os
from datetime import date
from pathlib import Path

from tradesim import BacktestConfig, BacktestEngine, CsvDataSource, PredictionEngine
from tradesim.config import DATA_CSV_ENV
from tradesim_core.data import CachedDataSource


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if os.environ.get(DATA_CSV_ENV):
        source = CsvDataSource.from_env(interpolate=True)
    else:
        source = CsvDataSource.from_csv(Path(__file__).resolve().parent / "data" / "sample_prices.csv", interpolate=True)
    cached = CachedDataSource(source)

    # The sample data ends in September 2024; pin "today" to its last day.
    as_of = date(2024, 9, 6)
    backtest = await BacktestEngine(cached).run(
        "AAPL",
        "rsi-strategy",
        None,
        BacktestConfig.for_period("6M", end_date=as_of),
    )
    print(f"Prior backtest: {backtest.total_return:.2f}% over {backtest.start_date} -> {backtest.end_date}")

    engine = PredictionEngine(cached, clock=lambda: as_of)
    for prediction in await engine.generate_many("AAPL", prior_backtest=backtest, seed=42):
        print(
            f"{prediction.stock_symbol} {prediction.date} -> {prediction.target_date}: "
            f"{prediction.predicted_direction.value} {prediction.predicted_price:.2f} "
            f"({prediction.confidence}% confidence{', degraded' if prediction.degraded else ''})"
        )


if __name__ == "__main__":
    asyncio.run(main())
