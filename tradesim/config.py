"""
Run configuration for backtests and predictions.

Frozen dataclasses validated on construction, so a bad config is rejected
before any data is fetched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from tradesim_core.bars import to_iso_date

# Environment variable naming the CSV file used by CsvDataSource.from_env().
DATA_CSV_ENV = "TRADESIM_DATA_CSV"

# Look-back periods offered by the dashboard, in calendar days.
PERIOD_PRESETS: dict[str, int] = {
    "1W": 7,
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
}

DEFAULT_INITIAL_CAPITAL = 100_000.0
DEFAULT_COMMISSION = 10.0


@dataclass(frozen=True)
class BacktestConfig:
    """
    Capital, costs and date range of one backtest.

    ``days`` is the period length used to annualize returns; it defaults to the
    number of calendar days between start_date and end_date (at least 1).
    ``allow_synthetic_fallback`` makes an empty history fall back to a seeded
    random walk instead of raising DataUnavailable.
    """

    start_date: str
    end_date: str
    initial_capital: float = DEFAULT_INITIAL_CAPITAL
    commission: float = DEFAULT_COMMISSION
    days: int | None = None
    allow_synthetic_fallback: bool = False
    synthetic_seed: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_date", to_iso_date(self.start_date))
        object.__setattr__(self, "end_date", to_iso_date(self.end_date))
        if self.start_date > self.end_date:
            raise ValueError(f"start_date {self.start_date} is after end_date {self.end_date}")
        if not self.initial_capital > 0:
            raise ValueError(f"initial_capital must be positive, got {self.initial_capital}")
        if self.commission < 0:
            raise ValueError(f"commission must be non-negative, got {self.commission}")
        if self.days is None:
            span = (date.fromisoformat(self.end_date) - date.fromisoformat(self.start_date)).days
            object.__setattr__(self, "days", max(span, 1))
        elif self.days <= 0:
            raise ValueError(f"days must be positive, got {self.days}")

    @classmethod
    def for_period(
        cls,
        period: str | int,
        *,
        end_date: date | str | None = None,
        **kwargs,
    ) -> "BacktestConfig":
        """Config covering ``period`` (a PERIOD_PRESETS key or a day count) up to end_date (default today)."""
        if isinstance(period, str):
            try:
                days = PERIOD_PRESETS[period]
            except KeyError:
                raise ValueError(f"unknown period {period!r}; expected one of {list(PERIOD_PRESETS)}") from None
        else:
            days = int(period)
        end = date.fromisoformat(to_iso_date(end_date)) if end_date is not None else date.today()
        start = end - timedelta(days=days)
        return cls(start_date=start.isoformat(), end_date=end.isoformat(), days=days, **kwargs)


@dataclass(frozen=True)
class PredictionConfig:
    """
    Horizon and history window of one prediction.

    ``confidence`` and ``use_ml`` are carried for callers that display them; the
    heuristic ensemble does not read them.
    """

    days: int = 7
    confidence: int = 80
    use_ml: bool = True
    history_days: int = 365
    min_history: int = 50
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.days <= 0:
            raise ValueError(f"days must be positive, got {self.days}")
        if self.history_days <= 0:
            raise ValueError(f"history_days must be positive, got {self.history_days}")
