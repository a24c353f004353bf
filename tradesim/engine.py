"""
Backtesting engine: fetch history -> generate signals -> simulate -> metrics.

The data fetch is the only await; once the series is in hand the run is pure,
synchronous computation over an immutable snapshot. Independent backtests (one
per instrument) can therefore run concurrently via ``run_many``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tradesim.config import BacktestConfig
from tradesim.metrics import compute_metrics
from tradesim.simulator import simulate
from tradesim_core.bars import PricePoint, split_series, validate_series
from tradesim_core.data.source import MarketDataSource
from tradesim_core.data.synthetic import DEFAULT_START_PRICE, synthetic_series
from tradesim_core.errors import BacktestError, DataUnavailable
from tradesim_core.instrument import Instrument, as_instrument
from tradesim_core.signal import Signal
from tradesim_core.strategies import generate_signals, get_strategy
from tradesim_core.strategy import StrategyParameters
from tradesim_core.trade import EquityPoint, Trade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestResult:
    """
    Outcome of one backtest. Percent fields are in percent (5.0 == 5%).
    ``days`` is the period length the annualized return was computed with.
    """

    strategy_id: str
    stock_symbol: str
    start_date: str
    end_date: str
    initial_investment: float
    final_value: float
    total_return: float
    annualized_return: float
    max_drawdown: float
    sharpe_ratio: float
    trades: tuple[Trade, ...] = ()
    equity_curve: tuple[EquityPoint, ...] = ()
    signals: tuple[Signal, ...] = ()
    indicators: Mapping[str, Any] = field(default_factory=dict)
    synthetic_data: bool = False
    days: int | None = None


@dataclass(frozen=True)
class BatchResult:
    """Results of ``run_many``: successes in input order, failures by symbol."""

    results: tuple[BacktestResult, ...]
    failures: Mapping[str, BacktestError]


@dataclass(frozen=True)
class AggregateMetrics:
    """Summary across several backtests of the same strategy."""

    average_return: float
    win_rate: float
    max_drawdown: float
    average_sharpe: float


class BacktestEngine:
    """
    Runs backtests against a MarketDataSource.

    Empty history raises DataUnavailable unless the config explicitly allows the
    synthetic fallback; the two behaviors never mix within one run.
    """

    def __init__(self, data_source: MarketDataSource) -> None:
        self.data_source = data_source

    async def _load_history(
        self,
        instrument: Instrument,
        config: BacktestConfig,
    ) -> tuple[tuple[PricePoint, ...], bool]:
        """Series for the run, and whether it is synthetic."""
        points = await self.data_source.get_historical_data(instrument.symbol, config.start_date, config.end_date)
        if points:
            series = validate_series(points)
            logger.info(
                "Loaded %d data points for %s from %s to %s",
                len(series),
                instrument.symbol,
                config.start_date,
                config.end_date,
            )
            return series, False

        if not config.allow_synthetic_fallback:
            raise DataUnavailable(instrument.symbol, config.start_date, config.end_date)

        logger.warning("No historical data found for %s, using synthetic fallback", instrument.symbol)
        series = synthetic_series(
            config.start_date,
            config.end_date,
            instrument.price or DEFAULT_START_PRICE,
            random.Random(config.synthetic_seed),
        )
        return tuple(series), True

    async def run(
        self,
        instrument: Instrument | str,
        strategy_id: str,
        parameters: StrategyParameters | None,
        config: BacktestConfig,
    ) -> BacktestResult:
        """
        Run one backtest.

        Parameters are validated and the strategy resolved before any data is
        fetched. Raises UnknownStrategy, InvalidParameters or DataUnavailable.
        """
        instrument = as_instrument(instrument)
        params = get_strategy(strategy_id).resolve_parameters(parameters)

        bars, synthetic = await self._load_history(instrument, config)
        prices, dates, _ = split_series(bars)
        output = generate_signals(strategy_id, prices, dates, params)

        outcome = simulate(bars, output.signals, config.initial_capital, config.commission)
        metrics = compute_metrics(config.initial_capital, outcome.equity_curve, days=config.days)
        logger.info(
            "Backtest completed for %s (%s): %d trades, final value %.2f",
            instrument.symbol,
            strategy_id,
            len(outcome.trades),
            metrics.final_value,
        )

        return BacktestResult(
            strategy_id=strategy_id,
            stock_symbol=instrument.symbol,
            start_date=config.start_date,
            end_date=config.end_date,
            initial_investment=config.initial_capital,
            final_value=metrics.final_value,
            total_return=metrics.total_return_pct,
            annualized_return=metrics.annualized_return_pct,
            max_drawdown=metrics.max_drawdown_pct,
            sharpe_ratio=metrics.sharpe_ratio,
            trades=outcome.trades,
            equity_curve=outcome.equity_curve,
            signals=output.signals,
            indicators=output.indicators,
            synthetic_data=synthetic,
            days=config.days,
        )

    async def run_many(
        self,
        instruments: Sequence[Instrument | str],
        strategy_id: str,
        parameters: StrategyParameters | None,
        config: BacktestConfig,
    ) -> BatchResult:
        """
        Backtest several instruments concurrently with the same strategy and config.

        A failure for one instrument is logged and reported in ``failures``; it
        does not stop the others. Strategy and parameter errors apply to every
        instrument alike and are raised immediately.
        """
        get_strategy(strategy_id).resolve_parameters(parameters)
        targets = [as_instrument(i) for i in instruments]

        async def attempt(instrument: Instrument) -> BacktestResult | BacktestError:
            try:
                return await self.run(instrument, strategy_id, parameters, config)
            except BacktestError as exc:
                logger.error("Failed to backtest %s: %s", instrument.symbol, exc)
                return exc

        outcomes = await asyncio.gather(*(attempt(i) for i in targets))
        results = tuple(o for o in outcomes if isinstance(o, BacktestResult))
        failures = {i.symbol: o for i, o in zip(targets, outcomes) if isinstance(o, BacktestError)}
        return BatchResult(results=results, failures=failures)


async def run_backtest(
    instrument: Instrument | str,
    strategy_id: str,
    parameters: StrategyParameters | None,
    config: BacktestConfig,
    data_source: MarketDataSource,
) -> BacktestResult:
    """Convenience wrapper: ``BacktestEngine(data_source).run(...)``."""
    return await BacktestEngine(data_source).run(instrument, strategy_id, parameters, config)


def aggregate_results(results: Sequence[BacktestResult]) -> AggregateMetrics | None:
    """Average return and Sharpe, share of profitable runs, worst drawdown. None if empty."""
    if not results:
        return None
    n = len(results)
    return AggregateMetrics(
        average_return=sum(r.total_return for r in results) / n,
        win_rate=sum(1 for r in results if r.total_return > 0) / n * 100.0,
        max_drawdown=max(r.max_drawdown for r in results),
        average_sharpe=sum(r.sharpe_ratio for r in results) / n,
    )
