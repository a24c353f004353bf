"""
Instrument: what a backtest or prediction is run on.

Callers may pass a bare symbol string wherever an Instrument is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Instrument:
    """A tradable symbol, with an optional display name and last known price."""

    symbol: str
    name: str | None = None
    price: float | None = None

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("symbol must be non-empty")


def as_instrument(value: "Instrument | str") -> Instrument:
    if isinstance(value, Instrument):
        return value
    return Instrument(symbol=str(value))
