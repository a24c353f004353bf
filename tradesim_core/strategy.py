"""
Strategy: declared parameter schema plus a pure signal generator.

Strategies are plain data: a ``StrategyDefinition`` carries its id, parameter
specs and the function that turns prices into signals. The registry in
``tradesim_core.strategies`` maps ids to definitions; the engine looks them up
there and never subclasses anything.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tradesim_core.errors import InsufficientData, InvalidParameters
from tradesim_core.signal import Signal

ParameterValue = float | int | bool | str
StrategyParameters = Mapping[str, ParameterValue]


class ParameterType(Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"


class RiskLevel(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class ParameterSpec:
    """One tunable parameter and its bounds."""

    id: str
    name: str
    description: str
    type: ParameterType
    default: ParameterValue
    min_value: float | None = None
    max_value: float | None = None
    step: float | None = None
    options: tuple[str, ...] = ()

    def check(self, value: Any) -> str | None:
        """Return an error message for ``value``, or None if it is acceptable."""
        if self.type is ParameterType.BOOLEAN:
            return None if isinstance(value, bool) else f"{self.id}: expected a boolean, got {value!r}"
        if self.type is ParameterType.SELECT:
            if value not in self.options:
                return f"{self.id}: {value!r} is not one of {list(self.options)}"
            return None

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"{self.id}: expected a number, got {value!r}"
        if not math.isfinite(value):
            return f"{self.id}: must be finite, got {value!r}"
        if self.min_value is not None and value < self.min_value:
            return f"{self.id}: {value} is below the minimum {self.min_value}"
        if self.max_value is not None and value > self.max_value:
            return f"{self.id}: {value} is above the maximum {self.max_value}"
        if self.step:
            base = self.min_value if self.min_value is not None else 0.0
            steps = (value - base) / self.step
            if abs(steps - round(steps)) > 1e-6:
                return f"{self.id}: {value} is not a multiple of step {self.step} from {base}"
        return None


@dataclass(frozen=True)
class SignalOutput:
    """Signals aligned with the input prices, plus the indicator values behind them."""

    signals: tuple[Signal, ...]
    indicators: Mapping[str, Any] = field(default_factory=dict)


SignalGenerator = Callable[[Sequence[float], Sequence[str], Mapping[str, Any]], SignalOutput]
Constraint = Callable[[Mapping[str, Any]], "str | None"]


def hold_fallback(n: int) -> SignalOutput:
    """All-HOLD sequence of length n."""
    return SignalOutput(signals=(Signal.HOLD,) * n)


@dataclass(frozen=True)
class StrategyDefinition:
    """A registered strategy kind: schema, generator, minimum history and fallback."""

    id: str
    name: str
    description: str
    risk_level: RiskLevel
    parameters: tuple[ParameterSpec, ...]
    generate: SignalGenerator
    min_history: Callable[[Mapping[str, Any]], int]
    fallback: Callable[[int], SignalOutput] = hold_fallback
    constraints: tuple[Constraint, ...] = ()

    def defaults(self) -> dict[str, ParameterValue]:
        return {p.id: p.default for p in self.parameters}

    def resolve_parameters(self, parameters: StrategyParameters | None) -> dict[str, ParameterValue]:
        """
        Validate ``parameters`` against the schema and fill in defaults.

        Raises InvalidParameters listing every problem found.
        """
        given = dict(parameters or {})
        specs = {p.id: p for p in self.parameters}
        errors = [f"unknown parameter {key!r}" for key in given if key not in specs]
        resolved = self.defaults()
        for key, value in given.items():
            spec = specs.get(key)
            if spec is None:
                continue
            problem = spec.check(value)
            if problem:
                errors.append(problem)
            else:
                resolved[key] = value
        if not errors:
            errors = [msg for msg in (c(resolved) for c in self.constraints) if msg]
        if errors:
            raise InvalidParameters(self.id, errors)
        return resolved

    def require_history(self, available: int, parameters: Mapping[str, Any]) -> None:
        """Raise InsufficientData if ``available`` bars cannot feed this strategy."""
        required = self.min_history(parameters)
        if available < required:
            raise InsufficientData(required, available)
