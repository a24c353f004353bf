"""
Backtest metrics: total and annualized return, max drawdown, Sharpe ratio.

Uses the equity curve and initial capital. Returns are in percent; Sharpe is
annualized with 252 trading days. Degenerate inputs (empty or flat curves) give
0 rather than NaN or infinity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from tradesim_core.trade import EquityPoint


@dataclass
class Metrics:
    """Standard backtest performance metrics."""

    initial_value: float
    final_value: float
    total_pnl: float
    total_return_pct: float
    annualized_return_pct: float
    sharpe_ratio: float
    max_drawdown_pct: float


def _values(equity_curve: Sequence[EquityPoint] | Sequence[float]) -> np.ndarray:
    return np.array(
        [p.value if isinstance(p, EquityPoint) else p for p in equity_curve],
        dtype=float,
    )


def max_drawdown_pct(initial_value: float, values: np.ndarray) -> float:
    """Largest decline from the running peak (seeded with initial_value), in percent."""
    if len(values) == 0:
        return 0.0
    peak = np.maximum.accumulate(np.concatenate(([initial_value], values)))[1:]
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peak > 0, (peak - values) / peak * 100.0, 0.0)
    return float(max(np.max(drawdowns), 0.0))


def sharpe_ratio(values: np.ndarray, *, trading_days_per_year: int = 252) -> float:
    """
    Mean / stddev of bar-to-bar equity returns, times sqrt(trading_days_per_year).
    Zero when there are fewer than two points or the returns have no variance.
    """
    if len(values) < 2:
        return 0.0
    returns = np.diff(values) / np.maximum(values[:-1], 1e-14)
    std = np.std(returns)
    if std <= 1e-14:
        return 0.0
    return float(np.mean(returns) / std * np.sqrt(trading_days_per_year))


def compute_metrics(
    initial_value: float,
    equity_curve: Sequence[EquityPoint] | Sequence[float],
    *,
    days: int,
    trading_days_per_year: int = 252,
) -> Metrics:
    """
    Compute performance metrics from initial capital and equity curve.

    Parameters
    ----------
    initial_value : float
        Starting capital.
    equity_curve : sequence of EquityPoint (or plain values)
        Time-ordered portfolio values, one per bar.
    days : int
        Length of the backtest period in calendar days; annualized return is
        ``total_return_pct * 365 / days``.
    trading_days_per_year : int
        Used to annualize Sharpe (default 252).

    Returns
    -------
    Metrics
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")
    values = _values(equity_curve)
    if len(values) == 0:
        return Metrics(
            initial_value=initial_value,
            final_value=initial_value,
            total_pnl=0.0,
            total_return_pct=0.0,
            annualized_return_pct=0.0,
            sharpe_ratio=0.0,
            max_drawdown_pct=0.0,
        )

    final_value = float(values[-1])
    total_pnl = final_value - initial_value
    total_return_pct = (final_value / initial_value - 1.0) * 100.0 if initial_value else 0.0

    return Metrics(
        initial_value=initial_value,
        final_value=final_value,
        total_pnl=total_pnl,
        total_return_pct=total_return_pct,
        annualized_return_pct=total_return_pct * (365.0 / days),
        sharpe_ratio=sharpe_ratio(values, trading_days_per_year=trading_days_per_year),
        max_drawdown_pct=max_drawdown_pct(initial_value, values),
    )
