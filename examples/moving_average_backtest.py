"""
Moving-average crossover backtest demo.

Demonstrates: load CSV -> generate signals -> simulate fills -> metrics, for a
single symbol and then for every symbol in a wide price table.
"""

import asyncio
import logging
from pathlib import Path

from tradesim import BacktestConfig, BacktestEngine, CsvDataSource, print_report, print_summary


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    data_dir = Path(__file__).resolve().parent / "data"

    # Single-symbol file (date, close, volume)
    spy = CsvDataSource.from_csv(data_dir / "sample_spy.csv", symbol="SPY")
    config = BacktestConfig(start_date="2024-01-01", end_date="2024-06-30", initial_capital=100_000.0)
    result = await BacktestEngine(spy).run("SPY", "moving-average-crossover", {"short-ma": 5, "long-ma": 20}, config)
    print_report(result)

    # Wide table: one column per symbol, run concurrently
    table = CsvDataSource.from_csv(data_dir / "sample_prices.csv")
    config = BacktestConfig(start_date="2024-01-01", end_date="2024-09-30")
    batch = await BacktestEngine(table).run_many(table.symbols, "macd-strategy", None, config)
    print_summary(batch.results)
    for symbol, error in batch.failures.items():
        print(f"{symbol}: {error}")


if __name__ == "__main__":
    asyncio.run(main())
