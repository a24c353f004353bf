"""
Trade and equity records written by the execution simulator.

Immutable. The simulator appends them to its log; nothing edits them afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass

from tradesim_core.signal import Side


@dataclass(frozen=True)
class Trade:
    """A simulated fill. ``pnl`` is set on SELL trades only."""

    date: str
    type: Side
    price: float
    quantity: int
    pnl: float | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"trade quantity must be positive, got {self.quantity}")

    @property
    def value(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class EquityPoint:
    """Total portfolio value (cash + shares at the bar's price) after one bar."""

    date: str
    value: float
