"""
Built-in strategies and the registry that dispatches on strategy id.

Every generator is a pure function ``(prices, dates, params) -> SignalOutput``
returning exactly one signal per input bar; bars before the indicators are
defined are HOLD. Each generator tracks the position it believes it holds only
to suppress repeated entries; exits are emitted only while a position is open.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from tradesim_core import indicators as ind
from tradesim_core.errors import InsufficientData, UnknownStrategy
from tradesim_core.signal import Position, Signal
from tradesim_core.strategy import (
    Constraint,
    ParameterSpec,
    ParameterType,
    ParameterValue,
    RiskLevel,
    SignalOutput,
    StrategyDefinition,
    StrategyParameters,
)

logger = logging.getLogger(__name__)

# Fraction of the band half-width around the middle band that counts as "back to the mean".
BOLLINGER_EXIT_BAND = 0.1


def _number(id: str, name: str, description: str, default: float, lo: float, hi: float, step: float) -> ParameterSpec:
    return ParameterSpec(
        id=id,
        name=name,
        description=description,
        type=ParameterType.NUMBER,
        default=default,
        min_value=lo,
        max_value=hi,
        step=step,
    )


# --- Moving-average crossover ---


def moving_average_crossover(
    prices: Sequence[float],
    dates: Sequence[str],
    params: Mapping[str, Any],
) -> SignalOutput:
    """BUY when the short SMA crosses above the long SMA, SELL on the reverse cross."""
    short_period = int(params["short-ma"])
    long_period = int(params["long-ma"])
    short_ma = ind.sma(prices, short_period)
    long_ma = ind.sma(prices, long_period)

    signals = [Signal.HOLD] * len(prices)
    position = Position.NONE
    # both averages exist from bar long_period - 1; a cross needs the bar before as well
    for i in range(max(long_period, short_period), len(prices)):
        cur_short, prev_short = short_ma[i - short_period + 1], short_ma[i - short_period]
        cur_long, prev_long = long_ma[i - long_period + 1], long_ma[i - long_period]
        if prev_short <= prev_long and cur_short > cur_long and position is not Position.LONG:
            signals[i] = Signal.BUY
            position = Position.LONG
            logger.debug("MA crossover BUY at %s (bar %d)", dates[i], i)
        elif prev_short >= prev_long and cur_short < cur_long and position is Position.LONG:
            signals[i] = Signal.SELL
            position = Position.NONE
            logger.debug("MA crossover SELL at %s (bar %d)", dates[i], i)

    return SignalOutput(tuple(signals), {"short_ma": short_ma, "long_ma": long_ma})


def buy_then_sell_fallback(n: int) -> SignalOutput:
    """BUY on the first bar, SELL on the last, HOLD in between."""
    signals = [Signal.HOLD] * n
    if n:
        signals[-1] = Signal.SELL
        signals[0] = Signal.BUY
    return SignalOutput(tuple(signals), {"short_ma": np.empty(0), "long_ma": np.empty(0)})


# --- RSI overbought / oversold ---


def rsi_strategy(
    prices: Sequence[float],
    dates: Sequence[str],
    params: Mapping[str, Any],
) -> SignalOutput:
    period = int(params["rsi-period"])
    oversold = float(params["oversold-threshold"])
    overbought = float(params["overbought-threshold"])
    values = ind.rsi(prices, period)

    signals = [Signal.HOLD] * len(prices)
    position = Position.NONE
    for j, value in enumerate(values):
        i = j + period + 1
        if value < oversold and position is not Position.LONG:
            signals[i] = Signal.BUY
            position = Position.LONG
        elif value > overbought and position is not Position.SHORT:
            signals[i] = Signal.SELL
            position = Position.SHORT

    return SignalOutput(
        tuple(signals),
        {"rsi": values, "oversold_threshold": oversold, "overbought_threshold": overbought},
    )


# --- Bollinger breakout ---


def bollinger_breakout(
    prices: Sequence[float],
    dates: Sequence[str],
    params: Mapping[str, Any],
) -> SignalOutput:
    """
    Breakout entries with a return-to-mean exit.

    BUY above the upper band, SELL below the lower band; an open position is
    closed once price comes back within ``BOLLINGER_EXIT_BAND`` of the band
    half-width around the middle band.
    """
    period = int(params["period"])
    deviation = float(params["deviation"])
    bands = ind.bollinger(prices, period, deviation)

    signals = [Signal.HOLD] * len(prices)
    position = Position.NONE
    for j in range(len(bands.middle)):
        i = j + period - 1
        price = prices[i]
        upper, lower, middle = bands.upper[j], bands.lower[j], bands.middle[j]
        if price > upper and position is not Position.LONG:
            signals[i] = Signal.BUY
            position = Position.LONG
        elif price < lower and position is not Position.SHORT:
            signals[i] = Signal.SELL
            position = Position.SHORT
        elif position is not Position.NONE and abs(price - middle) < (upper - middle) * BOLLINGER_EXIT_BAND:
            signals[i] = Signal.SELL if position is Position.LONG else Signal.BUY
            position = Position.NONE

    return SignalOutput(
        tuple(signals),
        {"middle": bands.middle, "upper": bands.upper, "lower": bands.lower},
    )


# --- MACD crossover ---


def macd_crossover(
    prices: Sequence[float],
    dates: Sequence[str],
    params: Mapping[str, Any],
) -> SignalOutput:
    fast = int(params["fast-period"])
    slow = int(params["slow-period"])
    signal_period = int(params["signal-period"])
    data = ind.macd(prices, fast, slow, signal_period)

    signals = [Signal.HOLD] * len(prices)
    last = Signal.HOLD
    for i in range(max(slow + signal_period - 1, 1), len(prices)):
        cur_macd, prev_macd = data.macd[i], data.macd[i - 1]
        cur_signal, prev_signal = data.signal[i], data.signal[i - 1]
        if prev_macd <= prev_signal and cur_macd > cur_signal and last is not Signal.BUY:
            signals[i] = last = Signal.BUY
        elif prev_macd >= prev_signal and cur_macd < cur_signal and last is not Signal.SELL:
            signals[i] = last = Signal.SELL

    return SignalOutput(
        tuple(signals),
        {"macd": data.macd, "signal": data.signal, "histogram": data.histogram},
    )


# --- Mean reversion ---


def mean_reversion(
    prices: Sequence[float],
    dates: Sequence[str],
    params: Mapping[str, Any],
) -> SignalOutput:
    """
    Z-score of each price against the mean/stddev of the ``lookback`` bars before it.

    Enter when |z| exceeds the entry threshold, flatten once z is back inside the
    (narrower) exit threshold. A flat window has z = 0.
    """
    lookback = int(params["lookback-period"])
    entry = float(params["entry-threshold"])
    exit_ = float(params["exit-threshold"])
    history = np.asarray(prices, dtype=float)[:-1]
    means = ind.sma(history, lookback)
    stds = ind.rolling_std(history, lookback)

    signals = [Signal.HOLD] * len(prices)
    z_scores = np.zeros(len(means))
    position = Position.NONE
    for j in range(len(means)):
        i = j + lookback
        z = (prices[i] - means[j]) / stds[j] if stds[j] > 0 else 0.0
        z_scores[j] = z
        if z < -entry and position is not Position.LONG:
            signals[i] = Signal.BUY
            position = Position.LONG
        elif z > entry and position is not Position.SHORT:
            signals[i] = Signal.SELL
            position = Position.SHORT
        elif position is Position.LONG and z > -exit_:
            signals[i] = Signal.SELL
            position = Position.NONE
        elif position is Position.SHORT and z < exit_:
            signals[i] = Signal.BUY
            position = Position.NONE

    return SignalOutput(
        tuple(signals),
        {
            "means": means,
            "std_devs": stds,
            "z_scores": z_scores,
            "entry_threshold": entry,
            "exit_threshold": exit_,
        },
    )


# --- Registry ---


def _less_than(a: str, b: str) -> Constraint:
    def check(params: Mapping[str, Any]) -> str | None:
        if params[a] >= params[b]:
            return f"{a} ({params[a]}) must be less than {b} ({params[b]})"
        return None

    return check


STRATEGIES: dict[str, StrategyDefinition] = {
    d.id: d
    for d in (
        StrategyDefinition(
            id="moving-average-crossover",
            name="Moving Average Crossover",
            description=(
                "Buys when a shorter-term moving average crosses above a longer-term one "
                "and sells when it crosses back below."
            ),
            risk_level=RiskLevel.MEDIUM,
            parameters=(
                _number("short-ma", "Short Moving Average Period",
                        "The period for the short-term moving average", 10, 2, 50, 1),
                _number("long-ma", "Long Moving Average Period",
                        "The period for the long-term moving average", 50, 10, 200, 1),
            ),
            generate=moving_average_crossover,
            min_history=lambda p: int(p["long-ma"]) + 10,
            fallback=buy_then_sell_fallback,
            constraints=(_less_than("short-ma", "long-ma"),),
        ),
        StrategyDefinition(
            id="rsi-strategy",
            name="RSI Overbought/Oversold",
            description="Trades reversals when RSI marks the security as oversold or overbought.",
            risk_level=RiskLevel.MEDIUM,
            parameters=(
                _number("rsi-period", "RSI Period", "The number of periods to calculate RSI", 14, 2, 30, 1),
                _number("oversold-threshold", "Oversold Threshold",
                        "The RSI value below which a security is considered oversold", 30, 10, 40, 1),
                _number("overbought-threshold", "Overbought Threshold",
                        "The RSI value above which a security is considered overbought", 70, 60, 90, 1),
            ),
            generate=rsi_strategy,
            min_history=lambda p: int(p["rsi-period"]) + 2,
        ),
        StrategyDefinition(
            id="bollinger-bands",
            name="Bollinger Bands Breakout",
            description="Trades breakouts beyond the Bollinger Bands and exits on the return to the mean.",
            risk_level=RiskLevel.HIGH,
            parameters=(
                _number("period", "Moving Average Period",
                        "The period for the middle band (moving average)", 20, 5, 50, 1),
                _number("deviation", "Standard Deviation Multiplier",
                        "The number of standard deviations for the upper and lower bands", 2, 1, 4, 0.1),
            ),
            generate=bollinger_breakout,
            min_history=lambda p: int(p["period"]),
        ),
        StrategyDefinition(
            id="macd-strategy",
            name="MACD Crossover",
            description="Momentum strategy trading crossovers of the MACD line and its signal line.",
            risk_level=RiskLevel.MEDIUM,
            parameters=(
                _number("fast-period", "Fast EMA Period",
                        "The period for the fast exponential moving average", 12, 5, 30, 1),
                _number("slow-period", "Slow EMA Period",
                        "The period for the slow exponential moving average", 26, 10, 50, 1),
                _number("signal-period", "Signal Period", "The period for the signal line", 9, 3, 20, 1),
            ),
            generate=macd_crossover,
            min_history=lambda p: int(p["slow-period"]) + int(p["signal-period"]),
            constraints=(_less_than("fast-period", "slow-period"),),
        ),
        StrategyDefinition(
            id="mean-reversion",
            name="Mean Reversion",
            description=(
                "Buys when price is far below its rolling mean and sells when it is far above, "
                "flattening as it reverts."
            ),
            risk_level=RiskLevel.MEDIUM,
            parameters=(
                _number("lookback-period", "Lookback Period",
                        "The number of periods to calculate the mean", 50, 10, 200, 1),
                _number("entry-threshold", "Entry Threshold",
                        "The number of standard deviations from the mean to trigger an entry", 2, 0.5, 4, 0.1),
                _number("exit-threshold", "Exit Threshold",
                        "The number of standard deviations from the mean to trigger an exit", 0.5, 0.1, 2, 0.1),
            ),
            generate=mean_reversion,
            min_history=lambda p: int(p["lookback-period"]) + 1,
            constraints=(_less_than("exit-threshold", "entry-threshold"),),
        ),
    )
}


def get_strategy(strategy_id: str) -> StrategyDefinition:
    """Look up a strategy. Raises UnknownStrategy."""
    try:
        return STRATEGIES[strategy_id]
    except KeyError:
        raise UnknownStrategy(strategy_id) from None


def list_strategies() -> list[StrategyDefinition]:
    return list(STRATEGIES.values())


def default_parameters(strategy_id: str) -> dict[str, ParameterValue]:
    return get_strategy(strategy_id).defaults()


def generate_signals(
    strategy_id: str,
    prices: Sequence[float],
    dates: Sequence[str],
    parameters: StrategyParameters | None = None,
) -> SignalOutput:
    """
    Validate parameters, then run the strategy's generator over the series.

    Histories shorter than the strategy's minimum are not an error: the
    strategy's fallback sequence is returned instead (logged at WARNING).

    Raises UnknownStrategy or InvalidParameters.
    """
    definition = get_strategy(strategy_id)
    params = definition.resolve_parameters(parameters)
    if len(dates) != len(prices):
        raise ValueError(f"{len(prices)} prices but {len(dates)} dates")

    try:
        definition.require_history(len(prices), params)
    except InsufficientData as exc:
        logger.warning("%s: insufficient data (%s); using fallback signals", strategy_id, exc)
        return definition.fallback(len(prices))

    output = definition.generate(prices, dates, params)
    logger.debug(
        "%s: %d BUY, %d SELL over %d bars",
        strategy_id,
        output.signals.count(Signal.BUY),
        output.signals.count(Signal.SELL),
        len(output.signals),
    )
    return output
