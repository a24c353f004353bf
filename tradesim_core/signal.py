"""
Signal: per-bar trading instruction produced by a strategy.

A signal sequence is aligned 1:1 with the price sequence it was computed from.
"""

from enum import Enum


class Signal(Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Side(Enum):
    """Direction of an executed trade."""

    BUY = "BUY"
    SELL = "SELL"


class Position(Enum):
    """Position a signal generator believes it holds. Used only to gate repeated signals."""

    NONE = "NONE"
    LONG = "LONG"
    SHORT = "SHORT"
