"""
Tests for tradesim.prediction: sub-model votes, ensemble combine, PredictionEngine.
"""

import logging
import random
from dataclasses import replace
from datetime import date, timedelta

import pytest

from tradesim import prediction as prediction_module
from tradesim import BacktestResult, PredictionConfig, PredictionEngine, generate_prediction
from tradesim.prediction import (
    MAX_CONFIDENCE,
    Direction,
    Vote,
    bollinger_vote,
    combine,
    linear_trend,
    macd_vote,
    rsi_vote,
    volume_vote,
)
from tradesim_core import DataUnavailable, PricePoint
from tradesim_core.data import InMemoryDataSource
from tradesim_core.instrument import Instrument

TODAY = date(2024, 6, 30)


def _history(prices: list[float], volumes: list[int] | None = None, end: date = TODAY) -> list[PricePoint]:
    start = end - timedelta(days=len(prices) - 1)
    volumes = volumes or [1_000] * len(prices)
    return [PricePoint(date=start + timedelta(days=i), price=p, volume=v) for i, (p, v) in enumerate(zip(prices, volumes))]


def _backtest(total_return: float) -> BacktestResult:
    return BacktestResult(
        strategy_id="macd-strategy",
        stock_symbol="AAPL",
        start_date="2024-01-01",
        end_date="2024-06-30",
        initial_investment=10_000.0,
        final_value=10_000.0,
        total_return=total_return,
        annualized_return=total_return,
        max_drawdown=0.0,
        sharpe_ratio=0.0,
    )


class NoQuoteSource(InMemoryDataSource):
    async def get_latest_quote(self, symbol):
        raise DataUnavailable(symbol)


# --- Sub-models ---


def test_macd_vote_follows_trend():
    rising = [100.0 + i for i in range(60)]
    falling = [200.0 - i for i in range(60)]
    assert macd_vote(rising).direction is Direction.UP
    assert macd_vote(falling).direction is Direction.DOWN
    assert macd_vote([100.0] * 60).direction is Direction.NEUTRAL
    assert 0 < macd_vote(rising).strength <= 1.0


def test_rsi_vote_needs_two_values():
    assert rsi_vote([100.0, 101.0, 102.0]).direction is Direction.NEUTRAL
    assert rsi_vote([100.0] * 30).direction is Direction.NEUTRAL


def test_rsi_vote_oversold_recovery():
    prices = [100.0 - i for i in range(20)] + [81.5]
    vote = rsi_vote(prices)
    assert vote.direction is Direction.UP
    assert 0 < vote.strength <= 1.0


def test_bollinger_vote_squeeze_breakout():
    assert bollinger_vote([100.0] * 19 + [110.0]) == Vote(Direction.UP, 0.8)
    assert bollinger_vote([100.0] * 19 + [90.0]) == Vote(Direction.DOWN, 0.8)
    assert bollinger_vote([100.0] * 25).direction is Direction.NEUTRAL
    assert bollinger_vote([100.0] * 5).direction is Direction.NEUTRAL


def test_volume_vote():
    rising = [100.0 + i for i in range(10)]
    assert volume_vote(rising, [1_000] * 10) == Vote(Direction.UP, 1.0)
    falling = [100.0 - i for i in range(10)]
    assert volume_vote(falling, [1_000] * 10) == Vote(Direction.DOWN, 1.0)
    assert volume_vote([100.0] * 10, [1_000] * 10).direction is Direction.NEUTRAL
    assert volume_vote(rising[:5], [1_000] * 5).direction is Direction.NEUTRAL


def test_linear_trend():
    fit = linear_trend([10.0 + 2.0 * i for i in range(20)])
    assert fit.slope == pytest.approx(2.0)
    assert fit.intercept == pytest.approx(10.0)
    assert fit.r2 == pytest.approx(1.0)
    flat = linear_trend([5.0] * 10)
    assert flat.slope == pytest.approx(0.0, abs=1e-12)
    assert flat.r2 == 0.0


# --- combine ---


def test_combine_all_neutral():
    assert combine([Vote(Direction.NEUTRAL)] * 4) == (Direction.NEUTRAL, 50)


def test_combine_below_activation_floor_is_neutral():
    assert combine([Vote(Direction.UP, 1.0)]) == (Direction.NEUTRAL, 50)


def test_combine_winner_and_confidence():
    votes = [Vote(Direction.UP, 0.5), Vote(Direction.UP, 0.75), Vote(Direction.DOWN, 0.25)]
    assert combine(votes) == (Direction.UP, 81)
    down = [Vote(Direction.DOWN, 0.5), Vote(Direction.DOWN, 0.75)]
    assert combine(down) == (Direction.DOWN, 81)


def test_combine_tie_is_neutral():
    votes = [Vote(Direction.UP, 1.0), Vote(Direction.UP, 0.5), Vote(Direction.DOWN, 1.0), Vote(Direction.DOWN, 0.5)]
    assert combine(votes) == (Direction.NEUTRAL, 50)


def test_combine_backtest_boost():
    votes = [Vote(Direction.UP, 0.5), Vote(Direction.UP, 0.75)]
    assert combine(votes, _backtest(10.0)) == (Direction.UP, 87)
    assert combine(votes, _backtest(5.0)) == (Direction.UP, 81)


def test_combine_confidence_capped():
    votes = [Vote(Direction.UP, 1.0)] * 4
    assert combine(votes) == (Direction.UP, MAX_CONFIDENCE)


# --- PredictionEngine ---


@pytest.mark.asyncio
async def test_flat_history_predicts_neutral():
    source = InMemoryDataSource({"AAPL": _history([100.0] * 120)})
    engine = PredictionEngine(source, rng=random.Random(1), clock=lambda: TODAY)
    prediction = await engine.generate("AAPL", PredictionConfig(days=7))
    assert prediction.predicted_direction is Direction.NEUTRAL
    assert prediction.confidence == 50
    assert prediction.degraded is False
    assert prediction.date == "2024-06-30"
    assert prediction.target_date == "2024-07-07"
    assert abs(prediction.predicted_price - 100.0) <= 1.0 + 1e-9


@pytest.mark.asyncio
async def test_rising_history_predicts_up():
    prices = [100.0 + 0.5 * i for i in range(120)]
    source = InMemoryDataSource({"AAPL": _history(prices)})
    prediction = await generate_prediction("AAPL", PredictionConfig(days=7, seed=3), source, clock=lambda: TODAY)
    assert prediction.predicted_direction is Direction.UP
    assert 50 < prediction.confidence <= MAX_CONFIDENCE
    assert prediction.predicted_price > prices[-1]


@pytest.mark.asyncio
async def test_short_history_uses_degraded_mode():
    source = InMemoryDataSource({"AAPL": _history([100.0 + i for i in range(20)])})
    engine = PredictionEngine(source, rng=random.Random(5), clock=lambda: TODAY)
    prediction = await engine.generate("AAPL", PredictionConfig(days=30))
    assert prediction.degraded is True
    assert prediction.predicted_direction in (Direction.UP, Direction.DOWN)
    assert 50 <= prediction.confidence < 80
    assert abs(prediction.predicted_price / 119.0 - 1.0) <= 0.05 + 1e-9


@pytest.mark.asyncio
async def test_seeded_predictions_are_reproducible():
    prices = [100.0 + 5.0 * ((i % 9) - 4) for i in range(80)]
    source = InMemoryDataSource({"AAPL": _history(prices)})
    first = await PredictionEngine(source, clock=lambda: TODAY).generate("AAPL", PredictionConfig(seed=42))
    second = await PredictionEngine(source, clock=lambda: TODAY).generate("AAPL", PredictionConfig(seed=42))
    assert first == second


@pytest.mark.asyncio
async def test_missing_quote_falls_back_to_instrument_price():
    source = NoQuoteSource({"AAPL": _history([100.0] * 10)})
    engine = PredictionEngine(source, rng=random.Random(0), clock=lambda: TODAY)
    prediction = await engine.generate(Instrument("AAPL", price=250.0), PredictionConfig())
    assert prediction.degraded is True
    assert abs(prediction.predicted_price / 250.0 - 1.0) <= 0.05 + 1e-9


@pytest.mark.asyncio
async def test_missing_quote_falls_back_to_last_bar():
    source = NoQuoteSource({"AAPL": _history([100.0] * 9 + [120.0])})
    engine = PredictionEngine(source, rng=random.Random(0), clock=lambda: TODAY)
    prediction = await engine.generate("AAPL", PredictionConfig())
    assert abs(prediction.predicted_price / 120.0 - 1.0) <= 0.05 + 1e-9


@pytest.mark.asyncio
async def test_no_data_at_all_raises():
    engine = PredictionEngine(InMemoryDataSource(), clock=lambda: TODAY)
    with pytest.raises(DataUnavailable):
        await engine.generate("NOPE", PredictionConfig())


@pytest.mark.asyncio
async def test_generate_many_horizons():
    source = InMemoryDataSource({"AAPL": _history([100.0] * 120)})
    engine = PredictionEngine(source, clock=lambda: TODAY)
    predictions = await engine.generate_many("AAPL", seed=9)
    assert [p.target_date for p in predictions] == ["2024-07-01", "2024-07-07", "2024-07-30"]
    assert all(p.stock_symbol == "AAPL" for p in predictions)


# --- Prior backtest ---


@pytest.mark.asyncio
async def test_prior_backtest_of_other_symbol_is_ignored(monkeypatch, caplog):
    seen = []

    def recording_combine(votes, prior_backtest=None):
        seen.append(prior_backtest)
        return Direction.NEUTRAL, 50

    monkeypatch.setattr(prediction_module, "combine", recording_combine)
    source = InMemoryDataSource({"AAPL": _history([100.0] * 120)})
    engine = PredictionEngine(source, rng=random.Random(1), clock=lambda: TODAY)

    other = replace(_backtest(100.0), stock_symbol="MSFT")
    with caplog.at_level(logging.WARNING, logger="tradesim.prediction"):
        await engine.generate("AAPL", PredictionConfig(), prior_backtest=other)
    same = _backtest(100.0)
    await engine.generate("AAPL", PredictionConfig(), prior_backtest=same)

    assert seen == [None, same]
    assert "Ignoring backtest of MSFT" in caplog.text
