"""
Error taxonomy for backtests and predictions.

Callers catch ``BacktestError`` to render a message, and the subclasses to tell
"no data" apart from "strategy not implemented" or "bad parameters".

Zero-variance and zero-denominator cases (RSI with no losses, Sharpe of a flat
equity curve, z-score of a flat window) are not errors: they resolve to defined
sentinel values at the point of computation.
"""

from __future__ import annotations


class BacktestError(Exception):
    """Base class for engine errors surfaced to callers."""


class DataUnavailable(BacktestError):
    """No usable price history for the requested symbol / date range."""

    def __init__(self, symbol: str, start_date: str | None = None, end_date: str | None = None) -> None:
        self.symbol = symbol
        self.start_date = start_date
        self.end_date = end_date
        if start_date or end_date:
            msg = f"No historical data available for {symbol} between {start_date} and {end_date}"
        else:
            msg = f"No data available for {symbol}"
        super().__init__(msg)


class UnknownStrategy(BacktestError, KeyError):
    """Strategy id is not in the registry."""

    def __init__(self, strategy_id: str) -> None:
        self.strategy_id = strategy_id
        super().__init__(f"Strategy {strategy_id} not implemented")

    def __str__(self) -> str:
        return self.args[0]


class InsufficientData(BacktestError):
    """History shorter than a strategy's minimum window. Handled by a fallback signal sequence."""

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"need at least {required} bars, got {available}")


class InvalidParameters(BacktestError, ValueError):
    """Strategy parameters failed validation against the strategy's schema."""

    def __init__(self, strategy_id: str, errors: list[str]) -> None:
        self.strategy_id = strategy_id
        self.errors = list(errors)
        super().__init__(f"Invalid parameters for {strategy_id}: " + "; ".join(self.errors))
