"""
Prediction ensemble: four indicator-based votes combined into one call.

Sub-models (each returns a Vote of direction and strength in [0, 1]):
    macd_vote        sign of the MACD histogram
    rsi_vote         oversold recovery / overbought decline / general momentum
    bollinger_vote   squeeze resolution or band breakout
    volume_vote      share of up-volume over the last 10 bars

Votes carry equal weight. The winning side must beat the other and the
activation floor, else the call is NEUTRAL. A prior backtest of the same
instrument returning more than 5% boosts the winning score by 20%; it is passed
in explicitly, never looked up.

Randomness (the small price noise and the degraded-mode guess) comes from an
injected ``random.Random`` so results are reproducible under a seed.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

import numpy as np

from tradesim.config import PredictionConfig
from tradesim.engine import BacktestResult
from tradesim_core import indicators as ind
from tradesim_core.bars import PricePoint, split_series
from tradesim_core.data.source import MarketDataSource
from tradesim_core.errors import DataUnavailable
from tradesim_core.instrument import Instrument, as_instrument

logger = logging.getLogger(__name__)

MODEL_WEIGHT = 0.25
ACTIVATION_FLOOR = 0.3
BACKTEST_BOOST = 1.2
BOOST_MIN_RETURN = 5.0
MAX_CONFIDENCE = 95
NEUTRAL_CONFIDENCE = 50
DIRECTION_BIAS = 0.05
PRICE_NOISE = 0.01
PRICE_FLOOR = 0.5
VOLUME_WINDOW = 10
SQUEEZE_BANDWIDTH = 0.1


class Direction(Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class Vote:
    direction: Direction
    strength: float = 0.0


NEUTRAL_VOTE = Vote(Direction.NEUTRAL, 0.0)


@dataclass(frozen=True)
class TrendFit:
    slope: float
    intercept: float
    r2: float


@dataclass(frozen=True)
class Prediction:
    """
    Directional call for ``stock_symbol`` made on ``date`` for ``target_date``.
    ``degraded`` marks the reduced-confidence mode used when history is short.
    """

    stock_symbol: str
    date: str
    predicted_price: float
    predicted_direction: Direction
    confidence: int
    target_date: str
    degraded: bool = False


# --- Sub-models ---


def macd_vote(prices: Sequence[float]) -> Vote:
    if len(prices) == 0:
        return NEUTRAL_VOTE
    data = ind.macd(prices)
    line, signal, hist = data.macd[-1], data.signal[-1], data.histogram[-1]
    if line > signal and hist > 0:
        return Vote(Direction.UP, min(abs(hist) * 10, 1.0))
    if line < signal and hist < 0:
        return Vote(Direction.DOWN, min(abs(hist) * 10, 1.0))
    return NEUTRAL_VOTE


def rsi_vote(prices: Sequence[float]) -> Vote:
    values = ind.rsi(prices)
    if len(values) < 2:
        return NEUTRAL_VOTE
    latest, prev = values[-1], values[-2]
    if latest < 30 and latest > prev:
        return Vote(Direction.UP, (30 - latest) / 30)
    if latest > 70 and latest < prev:
        return Vote(Direction.DOWN, (latest - 70) / 30)
    if latest > 50 and latest > prev:
        return Vote(Direction.UP, min((latest - 50) / 50, 0.7))
    if latest < 50 and latest < prev:
        return Vote(Direction.DOWN, min((50 - latest) / 50, 0.7))
    return NEUTRAL_VOTE


def bollinger_vote(prices: Sequence[float], period: int = 20, deviation: float = 2.0) -> Vote:
    """
    In a squeeze (band width under 10% of the middle band) the side of the band
    the price sits on decides; otherwise only a close outside the bands votes.
    """
    bands = ind.bollinger(prices, period, deviation)
    if len(bands.middle) == 0:
        return NEUTRAL_VOTE
    price = prices[-1]
    upper, lower, middle = bands.upper[-1], bands.lower[-1], bands.middle[-1]
    width = upper - lower
    if width <= 0 or middle <= 0:
        return NEUTRAL_VOTE

    if width / middle < SQUEEZE_BANDWIDTH:
        position = (price - lower) / width
        if position > 0.6:
            return Vote(Direction.UP, 0.8)
        if position < 0.4:
            return Vote(Direction.DOWN, 0.8)
        return NEUTRAL_VOTE
    if price > upper:
        return Vote(Direction.UP, min((price - upper) / upper, 0.6))
    if price < lower:
        return Vote(Direction.DOWN, min((lower - price) / lower, 0.6))
    return NEUTRAL_VOTE


def volume_vote(prices: Sequence[float], volumes: Sequence[int]) -> Vote:
    if len(prices) < VOLUME_WINDOW or len(volumes) < VOLUME_WINDOW:
        return NEUTRAL_VOTE
    recent_prices = list(prices[-VOLUME_WINDOW:])
    recent_volumes = list(volumes[-VOLUME_WINDOW:])
    up_volume = down_volume = 0
    for i in range(1, VOLUME_WINDOW):
        if recent_prices[i] > recent_prices[i - 1]:
            up_volume += recent_volumes[i]
        elif recent_prices[i] < recent_prices[i - 1]:
            down_volume += recent_volumes[i]

    total = up_volume + down_volume
    if total == 0:
        return NEUTRAL_VOTE
    up_ratio = up_volume / total
    if up_ratio > 0.6:
        return Vote(Direction.UP, (up_ratio - 0.5) * 2)
    if up_ratio < 0.4:
        return Vote(Direction.DOWN, (0.5 - up_ratio) * 2)
    return NEUTRAL_VOTE


def linear_trend(prices: Sequence[float]) -> TrendFit:
    """Least-squares line through (bar index, price)."""
    y = np.asarray(prices, dtype=float)
    if len(y) < 2:
        return TrendFit(slope=0.0, intercept=float(y[0]) if len(y) else 0.0, r2=0.0)
    x = np.arange(len(y), dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0
    return TrendFit(slope=float(slope), intercept=float(intercept), r2=r2)


# --- Ensemble ---


def combine(votes: Sequence[Vote], prior_backtest: BacktestResult | None = None) -> tuple[Direction, int]:
    """Weighted vote -> (direction, confidence 0..100)."""
    up_score = sum(v.strength * MODEL_WEIGHT for v in votes if v.direction is Direction.UP)
    down_score = sum(v.strength * MODEL_WEIGHT for v in votes if v.direction is Direction.DOWN)

    if up_score > down_score and up_score > ACTIVATION_FLOOR:
        direction, score = Direction.UP, up_score
    elif down_score > up_score and down_score > ACTIVATION_FLOOR:
        direction, score = Direction.DOWN, down_score
    else:
        return Direction.NEUTRAL, NEUTRAL_CONFIDENCE

    if prior_backtest is not None and prior_backtest.total_return > BOOST_MIN_RETURN:
        score *= BACKTEST_BOOST
    return direction, int(min(50 + score * 100, MAX_CONFIDENCE))


class PredictionEngine:
    """
    Generates predictions from a MarketDataSource.

    ``rng`` supplies all randomness; when omitted a ``random.Random`` seeded
    from ``PredictionConfig.seed`` is used for each call. ``clock`` returns
    "today".
    """

    def __init__(
        self,
        data_source: MarketDataSource,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.data_source = data_source
        self._rng = rng
        self._clock = clock

    async def _current_price(self, instrument: Instrument, history: Sequence[PricePoint]) -> float:
        try:
            quote = await self.data_source.get_latest_quote(instrument.symbol)
            return quote.price
        except DataUnavailable:
            logger.warning("No live quote for %s, using last known price", instrument.symbol)
        if instrument.price:
            return float(instrument.price)
        if history:
            return history[-1].price
        raise DataUnavailable(instrument.symbol)

    async def generate(
        self,
        instrument: Instrument | str,
        config: PredictionConfig,
        prior_backtest: BacktestResult | None = None,
    ) -> Prediction:
        instrument = as_instrument(instrument)
        if prior_backtest is not None and prior_backtest.stock_symbol != instrument.symbol:
            logger.warning(
                "Ignoring backtest of %s for %s prediction",
                prior_backtest.stock_symbol,
                instrument.symbol,
            )
            prior_backtest = None
        rng = self._rng if self._rng is not None else random.Random(config.seed)
        today = self._clock()
        target = (today + timedelta(days=config.days)).isoformat()
        history = await self.data_source.get_historical_data(
            instrument.symbol,
            (today - timedelta(days=config.history_days)).isoformat(),
            today.isoformat(),
        )
        current = await self._current_price(instrument, history)

        if len(history) < config.min_history:
            logger.warning(
                "Insufficient historical data for %s (%d points), using degraded prediction",
                instrument.symbol,
                len(history),
            )
            return self._degraded(instrument.symbol, current, today.isoformat(), target, rng)

        prices, _, volumes = split_series(history)
        votes = [macd_vote(prices), rsi_vote(prices), bollinger_vote(prices), volume_vote(prices, volumes)]
        direction, confidence = combine(votes, prior_backtest)

        trend = linear_trend(prices)
        relative_slope = trend.slope / float(np.mean(prices))
        bias = {Direction.UP: DIRECTION_BIAS, Direction.DOWN: -DIRECTION_BIAS}.get(direction, 0.0)
        noise = rng.uniform(-PRICE_NOISE, PRICE_NOISE)
        predicted = current * (1 + relative_slope * config.days + bias + noise)

        logger.info(
            "Prediction for %s: %s (%d%%), %.2f -> %.2f in %d days",
            instrument.symbol,
            direction.value,
            confidence,
            current,
            predicted,
            config.days,
        )
        return Prediction(
            stock_symbol=instrument.symbol,
            date=today.isoformat(),
            predicted_price=max(predicted, current * PRICE_FLOOR),
            predicted_direction=direction,
            confidence=confidence,
            target_date=target,
        )

    def _degraded(self, symbol: str, current: float, today: str, target: str, rng: random.Random) -> Prediction:
        """Reduced-confidence guess: random direction, +/-5% price move, confidence 50..79."""
        direction = Direction.UP if rng.random() > 0.5 else Direction.DOWN
        change = (rng.random() - 0.5) * 0.1
        return Prediction(
            stock_symbol=symbol,
            date=today,
            predicted_price=max(current * (1 + change), current * PRICE_FLOOR),
            predicted_direction=direction,
            confidence=rng.randrange(50, 80),
            target_date=target,
            degraded=True,
        )

    async def generate_many(
        self,
        instrument: Instrument | str,
        horizons: Sequence[int] = (1, 7, 30),
        *,
        prior_backtest: BacktestResult | None = None,
        seed: int | None = None,
    ) -> list[Prediction]:
        """One prediction per horizon (days), in the order given."""
        return [
            await self.generate(instrument, PredictionConfig(days=days, seed=seed), prior_backtest)
            for days in horizons
        ]


async def generate_prediction(
    instrument: Instrument | str,
    config: PredictionConfig,
    data_source: MarketDataSource,
    prior_backtest: BacktestResult | None = None,
    *,
    rng: random.Random | None = None,
    clock: Callable[[], date] = date.today,
) -> Prediction:
    """Convenience wrapper: ``PredictionEngine(data_source, ...).generate(...)``."""
    return await PredictionEngine(data_source, rng=rng, clock=clock).generate(instrument, config, prior_backtest)
