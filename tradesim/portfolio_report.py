"""
Portfolio report: print performance summary from BacktestResult and Metrics.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from tradesim.engine import AggregateMetrics, BacktestResult, aggregate_results
from tradesim.metrics import Metrics, compute_metrics
from tradesim_core.signal import Side


def print_report(
    result: BacktestResult,
    *,
    days: int | None = None,
    trading_days_per_year: int = 252,
) -> Metrics:
    """
    Compute metrics from backtest result and print a performance summary.

    Parameters
    ----------
    result : BacktestResult
        Output of BacktestEngine.run().
    days : int, optional
        Period length in calendar days for the annualized return. Defaults to
        ``result.days``, else the span between the start and end dates (at least 1).
    trading_days_per_year : int
        Used for Sharpe (default 252).

    Returns
    -------
    Metrics
        The computed metrics (e.g. for programmatic use).
    """
    if days is None:
        days = result.days
    if days is None:
        span = (date.fromisoformat(result.end_date) - date.fromisoformat(result.start_date)).days
        days = max(span, 1)
    metrics = compute_metrics(
        result.initial_investment,
        result.equity_curve,
        days=days,
        trading_days_per_year=trading_days_per_year,
    )
    sells = [t for t in result.trades if t.type is Side.SELL]
    print(f"--- Backtest Performance: {result.stock_symbol} / {result.strategy_id} ---")
    print(f"Period:          {result.start_date} -> {result.end_date}")
    if result.synthetic_data:
        print("Data:            synthetic")
    print(f"Initial value:   {metrics.initial_value:,.2f}")
    print(f"Final value:     {metrics.final_value:,.2f}")
    print(f"Total PnL:       {metrics.total_pnl:,.2f}")
    print(f"Total return:    {metrics.total_return_pct:.2f}%")
    print(f"Annualized:      {metrics.annualized_return_pct:.2f}%")
    print(f"Sharpe ratio:    {metrics.sharpe_ratio:.2f}")
    print(f"Max drawdown:    {metrics.max_drawdown_pct:.2f}%")
    print(f"Trades:          {len(result.trades)} ({len(sells)} round trips)")
    print("----------------------------")
    return metrics


def print_summary(results: Sequence[BacktestResult]) -> AggregateMetrics | None:
    """Print one line per result plus the aggregate; returns the aggregate (None if empty)."""
    summary = aggregate_results(results)
    if summary is None:
        print("No backtest results.")
        return None
    print("--- Backtest Summary ---")
    for r in results:
        print(f"{r.stock_symbol:<8} {r.total_return:>8.2f}%  sharpe {r.sharpe_ratio:>6.2f}  dd {r.max_drawdown:>6.2f}%")
    print(f"Average return:  {summary.average_return:.2f}%")
    print(f"Win rate:        {summary.win_rate:.1f}%")
    print(f"Worst drawdown:  {summary.max_drawdown:.2f}%")
    print(f"Average Sharpe:  {summary.average_sharpe:.2f}")
    print("------------------------")
    return summary
