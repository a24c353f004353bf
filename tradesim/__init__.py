"""
Backtesting and prediction on top of tradesim-core.

Fetches history through a MarketDataSource, replays strategy signals through
the execution simulator, computes metrics, and produces indicator-ensemble
predictions.
"""

from tradesim.config import BacktestConfig, PredictionConfig
from tradesim.engine import (
    AggregateMetrics,
    BacktestEngine,
    BacktestResult,
    BatchResult,
    aggregate_results,
    run_backtest,
)
from tradesim.data_loader import CsvDataSource, load_csv, load_dataframe, load_price_table
from tradesim.metrics import Metrics, compute_metrics
from tradesim.portfolio_report import print_report, print_summary
from tradesim.prediction import Direction, Prediction, PredictionEngine, generate_prediction
from tradesim.simulator import simulate

__all__ = [
    "BacktestConfig",
    "PredictionConfig",
    "AggregateMetrics",
    "BacktestEngine",
    "BacktestResult",
    "BatchResult",
    "aggregate_results",
    "run_backtest",
    "CsvDataSource",
    "load_csv",
    "load_dataframe",
    "load_price_table",
    "Metrics",
    "compute_metrics",
    "print_report",
    "print_summary",
    "Direction",
    "Prediction",
    "PredictionEngine",
    "generate_prediction",
    "simulate",
]
