"""
Tests for tradesim_core.indicators: SMA, EMA, RSI, Bollinger Bands, MACD.
"""

import numpy as np
import pytest

from tradesim_core import indicators as ind

PRICES = [44.0, 44.3, 44.1, 43.6, 44.3, 44.8, 45.1, 45.4, 45.8, 46.1, 45.9, 46.3, 46.0, 46.4, 46.2, 45.6, 46.2, 46.3]


# --- SMA / rolling std ---


def test_sma_matches_brute_force():
    out = ind.sma(PRICES, 5)
    expected = [sum(PRICES[i - 4 : i + 1]) / 5 for i in range(4, len(PRICES))]
    assert len(out) == len(PRICES) - 5 + 1
    assert np.allclose(out, expected)


def test_sma_too_short_is_empty():
    assert len(ind.sma([1.0, 2.0], 3)) == 0
    assert len(ind.sma([], 3)) == 0


def test_sma_rejects_bad_period():
    with pytest.raises(ValueError):
        ind.sma(PRICES, 0)
    with pytest.raises(ValueError):
        ind.sma(PRICES, 2.5)


def test_rolling_std_is_population_std():
    out = ind.rolling_std([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0], 8)
    assert out[0] == pytest.approx(2.0)


# --- EMA ---


def test_ema_seeded_with_first_price():
    out = ind.ema([10.0, 20.0, 30.0], 3)
    k = 0.5
    assert out[0] == 10.0
    assert out[1] == pytest.approx(20.0 * k + 10.0 * (1 - k))
    assert out[2] == pytest.approx(30.0 * k + out[1] * (1 - k))


def test_ema_constant_series():
    assert np.allclose(ind.ema([7.0] * 10, 4), 7.0)


# --- RSI ---


def test_rsi_length_and_range():
    out = ind.rsi(PRICES, 14)
    assert len(out) == len(PRICES) - 14 - 1
    assert np.all((out >= 0) & (out <= 100))


def test_rsi_needs_period_plus_two_prices():
    assert len(ind.rsi(list(range(1, 16)), 14)) == 0
    assert len(ind.rsi(list(range(1, 17)), 14)) == 1


def test_rsi_saturates_on_monotonic_series():
    assert np.allclose(ind.rsi([float(x) for x in range(1, 40)], 14), 100.0)
    assert np.allclose(ind.rsi([float(x) for x in range(40, 1, -1)], 14), 0.0)


def test_rsi_flat_series_is_neutral():
    assert np.allclose(ind.rsi([50.0] * 30, 14), 50.0)


# --- Bollinger ---


def test_bollinger_bands_bracket_middle():
    bands = ind.bollinger(PRICES, 5, 2.0)
    assert len(bands.middle) == len(PRICES) - 5 + 1
    assert np.allclose(bands.middle, ind.sma(PRICES, 5))
    assert np.all(bands.upper >= bands.middle)
    assert np.all(bands.lower <= bands.middle)
    assert np.allclose(bands.upper - bands.middle, 2.0 * ind.rolling_std(PRICES, 5))


def test_bollinger_flat_series_has_zero_width():
    bands = ind.bollinger([10.0] * 25, 20, 2.0)
    assert np.allclose(bands.upper, bands.lower)


# --- MACD ---


def test_macd_lines_full_length():
    prices = [float(x) for x in range(1, 61)]
    data = ind.macd(prices)
    assert len(data.macd) == len(data.signal) == len(data.histogram) == 60
    assert np.allclose(data.histogram, data.macd - data.signal)
    assert data.macd[-1] > 0


def test_macd_constant_series_is_zero():
    data = ind.macd([100.0] * 40)
    assert np.allclose(data.macd, 0.0)
    assert np.allclose(data.histogram, 0.0)
