"""
Execution simulator: replays a signal sequence against its price bars.

The simulation is a fold of ``step`` over (bar, signal) pairs. Each step takes an
immutable SimulationState and returns the next one, so the state machine can be
exercised one bar at a time without any I/O:

    FLAT --BUY-->  LONG   if cash > price + commission; buys floor((cash - commission) / price)
    LONG --SELL--> FLAT   sells every share at the bar's price, paying commission once

Any other (state, signal) pair leaves the state unchanged. No short selling is
modeled: SELL while FLAT is a no-op, as is BUY while LONG.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, replace
from functools import partial
from itertools import accumulate

from tradesim_core.bars import PricePoint
from tradesim_core.signal import Position, Side, Signal
from tradesim_core.trade import EquityPoint, Trade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationState:
    """
    Accumulator of the fold. ``fill`` is the trade executed on the bar that
    produced this state, if any. ``last_buy_price`` is the cost basis used for
    the P&L of the next SELL.
    """

    cash: float
    shares: int = 0
    last_buy_price: float | None = None
    fill: Trade | None = None

    @property
    def position(self) -> Position:
        return Position.LONG if self.shares > 0 else Position.NONE

    def value(self, price: float) -> float:
        """Portfolio value at ``price``: cash + shares held."""
        return self.cash + self.shares * price


@dataclass(frozen=True)
class SimulationOutcome:
    """Trades in execution order, one equity point per bar, and the final state."""

    trades: tuple[Trade, ...]
    equity_curve: tuple[EquityPoint, ...]
    final_state: SimulationState


def step(
    state: SimulationState,
    bar_signal: tuple[PricePoint, Signal],
    commission: float = 0.0,
) -> SimulationState:
    """Apply one bar's signal to ``state``."""
    bar, signal = bar_signal
    price = bar.price

    if signal is Signal.BUY and state.position is Position.NONE and state.cash > price + commission:
        quantity = math.floor((state.cash - commission) / price)
        return SimulationState(
            cash=state.cash - (quantity * price + commission),
            shares=quantity,
            last_buy_price=price,
            fill=Trade(date=bar.date, type=Side.BUY, price=price, quantity=quantity),
        )

    if signal is Signal.SELL and state.shares > 0:
        proceeds = state.shares * price
        # a fee larger than everything we hold is capped so cash never goes negative
        fee = min(commission, state.cash + proceeds)
        basis = state.last_buy_price if state.last_buy_price is not None else price
        return SimulationState(
            cash=state.cash + proceeds - fee,
            shares=0,
            last_buy_price=None,
            fill=Trade(
                date=bar.date,
                type=Side.SELL,
                price=price,
                quantity=state.shares,
                pnl=proceeds - state.shares * basis,
            ),
        )

    if state.fill is None:
        return state
    return replace(state, fill=None)


def simulate(
    bars: Sequence[PricePoint],
    signals: Sequence[Signal],
    initial_capital: float,
    commission: float = 0.0,
) -> SimulationOutcome:
    """
    Run the fold over the whole series.

    ``signals[i]`` is executed at ``bars[i].price``; the two sequences must have
    the same length.
    """
    if len(bars) != len(signals):
        raise ValueError(f"signal sequence ({len(signals)}) is not aligned with bars ({len(bars)})")

    initial = SimulationState(cash=float(initial_capital))
    states = list(accumulate(zip(bars, signals), partial(step, commission=commission), initial=initial))[1:]

    trades = tuple(s.fill for s in states if s.fill is not None)
    equity = tuple(EquityPoint(date=bar.date, value=s.value(bar.price)) for bar, s in zip(bars, states))
    for trade in trades:
        logger.debug(
            "%s: %s %d @ %.2f%s",
            trade.date,
            trade.type.value,
            trade.quantity,
            trade.price,
            f", P&L {trade.pnl:.2f}" if trade.pnl is not None else "",
        )
    return SimulationOutcome(
        trades=trades,
        equity_curve=equity,
        final_state=states[-1] if states else initial,
    )
