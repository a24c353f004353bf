"""
tradesim-core: indicators, strategies and domain types for the trading simulator.

Pure, synchronous computation over immutable price series. No I/O apart from the
MarketDataSource interface in tradesim_core.data.
"""

__version__ = "0.1.0"

from tradesim_core.bars import PricePoint
from tradesim_core.signal import Position, Side, Signal
from tradesim_core.trade import EquityPoint, Trade
from tradesim_core.strategy import ParameterSpec, SignalOutput, StrategyDefinition
from tradesim_core.strategies import STRATEGIES, generate_signals, get_strategy
from tradesim_core.errors import (
    BacktestError,
    DataUnavailable,
    InsufficientData,
    InvalidParameters,
    UnknownStrategy,
)

__all__ = [
    "PricePoint",
    "Signal",
    "Side",
    "Position",
    "Trade",
    "EquityPoint",
    "ParameterSpec",
    "SignalOutput",
    "StrategyDefinition",
    "STRATEGIES",
    "generate_signals",
    "get_strategy",
    "BacktestError",
    "DataUnavailable",
    "InsufficientData",
    "InvalidParameters",
    "UnknownStrategy",
]
