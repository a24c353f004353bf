"""
Technical indicators over a price sequence: SMA, EMA, RSI, Bollinger Bands, MACD.

Pure functions; inputs are any sequence of floats, outputs are numpy arrays.
Too-short input never raises: the result is simply empty. Minimum input lengths
for a non-empty result:

    sma(period)          period            len = n - period + 1
    bollinger(period)    period            len = n - period + 1 (each band)
    rsi(period)          period + 2        len = n - period - 1
    ema(period)          1                 len = n
    macd(...)            1                 len = n (each line)

Index alignment: ``sma(p, k)[i]`` and the Bollinger bands at ``i`` describe input
bar ``i + k - 1``; ``rsi(p, k)[i]`` describes input bar ``i + k + 1``.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


class BollingerBands(NamedTuple):
    middle: np.ndarray
    upper: np.ndarray
    lower: np.ndarray


class MACDResult(NamedTuple):
    macd: np.ndarray
    signal: np.ndarray
    histogram: np.ndarray


def _as_array(prices: Sequence[float]) -> np.ndarray:
    return np.asarray(prices, dtype=float)


def _check_period(period: int, name: str = "period") -> None:
    if int(period) != period or period < 1:
        raise ValueError(f"{name} must be a positive integer, got {period!r}")


def _windows(values: np.ndarray, period: int) -> np.ndarray:
    """Trailing windows of ``period`` values, one row per window. Empty if too short."""
    if len(values) < period:
        return np.empty((0, period))
    return sliding_window_view(values, period)


def sma(prices: Sequence[float], period: int) -> np.ndarray:
    """Simple moving average of each trailing window."""
    _check_period(period)
    period = int(period)
    return _windows(_as_array(prices), period).mean(axis=1)


def rolling_std(prices: Sequence[float], period: int) -> np.ndarray:
    """Population standard deviation of each trailing window (same alignment as sma)."""
    _check_period(period)
    period = int(period)
    return _windows(_as_array(prices), period).std(axis=1)


def ema(prices: Sequence[float], period: int) -> np.ndarray:
    """Exponential moving average, multiplier 2/(period+1), seeded with the first price."""
    _check_period(period)
    values = _as_array(prices)
    out = np.empty_like(values)
    if len(values) == 0:
        return out
    k = 2.0 / (period + 1.0)
    out[0] = values[0]
    for i in range(1, len(values)):
        out[i] = values[i] * k + out[i - 1] * (1.0 - k)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    # avg_loss == 0: all gains -> 100, no movement at all -> 50
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(prices: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder smoothing.

    Averages are seeded with the mean gain/loss of the first ``period`` price
    changes; every later change updates them as ``(avg * (period - 1) + x) / period``
    and yields one RSI value. Values are always within [0, 100].
    """
    _check_period(period)
    period = int(period)
    values = _as_array(prices)
    changes = np.diff(values)
    if len(changes) <= period:
        return np.empty(0)

    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)
    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()

    out = np.empty(len(changes) - period)
    for j, i in enumerate(range(period, len(changes))):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out[j] = _rsi_value(avg_gain, avg_loss)
    return out


def bollinger(prices: Sequence[float], period: int = 20, deviation: float = 2.0) -> BollingerBands:
    """Middle band = SMA; upper/lower = middle +/- deviation * stddev of the same window."""
    middle = sma(prices, period)
    std = rolling_std(prices, period)
    return BollingerBands(
        middle=middle,
        upper=middle + deviation * std,
        lower=middle - deviation * std,
    )


def macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """MACD line (fast EMA - slow EMA), its signal EMA, and the histogram."""
    _check_period(fast_period, "fast_period")
    _check_period(slow_period, "slow_period")
    _check_period(signal_period, "signal_period")
    line = ema(prices, fast_period) - ema(prices, slow_period)
    signal = ema(line, signal_period)
    return MACDResult(macd=line, signal=signal, histogram=line - signal)
