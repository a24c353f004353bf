"""
Tests for tradesim_core.data: InMemoryDataSource, SyntheticDataSource, CachedDataSource.
"""

import asyncio
import random
from datetime import date

import pytest

from tradesim_core import DataUnavailable, PricePoint
from tradesim_core.data import CachedDataSource, InMemoryDataSource, SyntheticDataSource, synthetic_series
from tradesim_core.data.synthetic import DAILY_MOVE


def _points() -> list[PricePoint]:
    return [
        PricePoint("2024-01-01", 100.0, 10),
        PricePoint("2024-01-02", 101.0, 20),
        PricePoint("2024-01-03", 102.0, 30),
        PricePoint("2024-01-04", 103.0, 40),
    ]


class CountingSource(InMemoryDataSource):
    def __init__(self, series=None):
        super().__init__(series)
        self.history_calls = 0
        self.quote_calls = 0

    async def get_historical_data(self, symbol, start_date=None, end_date=None):
        self.history_calls += 1
        return await super().get_historical_data(symbol, start_date, end_date)

    async def get_latest_quote(self, symbol):
        self.quote_calls += 1
        return await super().get_latest_quote(symbol)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# --- InMemoryDataSource ---


@pytest.mark.asyncio
async def test_in_memory_range_is_inclusive():
    source = InMemoryDataSource({"AAPL": _points()})
    history = await source.get_historical_data("AAPL", "2024-01-02", "2024-01-03")
    assert [p.date for p in history] == ["2024-01-02", "2024-01-03"]
    assert len(await source.get_historical_data("AAPL")) == 4
    assert len(await source.get_historical_data("AAPL", start_date="2024-01-04")) == 1


@pytest.mark.asyncio
async def test_in_memory_unknown_symbol():
    source = InMemoryDataSource({"AAPL": _points()})
    assert await source.get_historical_data("MSFT") == []
    with pytest.raises(DataUnavailable):
        await source.get_latest_quote("MSFT")
    assert (await source.get_latest_quote("AAPL")).price == 103.0


def test_in_memory_rejects_unordered_series():
    with pytest.raises(ValueError):
        InMemoryDataSource({"AAPL": list(reversed(_points()))})


# --- Synthetic ---


def test_synthetic_series_shape():
    points = synthetic_series("2024-01-01", "2024-01-31", 50.0, random.Random(1))
    assert len(points) == 31
    assert points[0].date == "2024-01-01"
    assert points[-1].date == "2024-01-31"
    prev = 50.0
    for p in points:
        assert abs(p.price / prev - 1.0) <= DAILY_MOVE + 1e-12
        assert 500_000 <= p.volume < 1_500_000
        prev = p.price


@pytest.mark.asyncio
async def test_synthetic_source_deterministic_per_symbol():
    clock = lambda: date(2024, 6, 30)
    a = SyntheticDataSource({"AAPL": 190.0}, seed=11, clock=clock)
    b = SyntheticDataSource({"AAPL": 190.0}, seed=11, clock=clock)
    first = await a.get_historical_data("AAPL", "2024-01-01", "2024-03-01")
    assert first == await b.get_historical_data("AAPL", "2024-01-01", "2024-03-01")
    assert first != await a.get_historical_data("MSFT", "2024-01-01", "2024-03-01")
    assert len(await a.get_historical_data("AAPL")) == 366
    quote = await a.get_latest_quote("AAPL")
    assert quote.date == "2024-06-30"


# --- CachedDataSource ---


@pytest.mark.asyncio
async def test_cache_serves_history_within_ttl():
    inner = CountingSource({"AAPL": _points()})
    clock = FakeClock()
    cached = CachedDataSource(inner, history_ttl=100.0, clock=clock)
    first = await cached.get_historical_data("AAPL", "2024-01-01", "2024-01-04")
    second = await cached.get_historical_data("AAPL", "2024-01-01", "2024-01-04")
    assert first == second
    assert inner.history_calls == 1

    await cached.get_historical_data("AAPL", "2024-01-02", "2024-01-04")
    assert inner.history_calls == 2

    clock.now = 100.0
    await cached.get_historical_data("AAPL", "2024-01-01", "2024-01-04")
    assert inner.history_calls == 3


@pytest.mark.asyncio
async def test_cache_quote_ttl_and_clear():
    inner = CountingSource({"AAPL": _points()})
    clock = FakeClock()
    cached = CachedDataSource(inner, quote_ttl=5.0, clock=clock)
    await cached.get_latest_quote("AAPL")
    clock.now = 4.9
    await cached.get_latest_quote("AAPL")
    assert inner.quote_calls == 1
    clock.now = 5.0
    await cached.get_latest_quote("AAPL")
    assert inner.quote_calls == 2
    cached.clear()
    await cached.get_latest_quote("AAPL")
    assert inner.quote_calls == 3


@pytest.mark.asyncio
async def test_cache_returns_copies():
    cached = CachedDataSource(InMemoryDataSource({"AAPL": _points()}))
    history = await cached.get_historical_data("AAPL")
    history.clear()
    assert len(await cached.get_historical_data("AAPL")) == 4


@pytest.mark.asyncio
async def test_cache_does_not_store_errors():
    inner = CountingSource()
    cached = CachedDataSource(inner)
    for _ in range(2):
        with pytest.raises(DataUnavailable):
            await cached.get_latest_quote("NOPE")
    assert inner.quote_calls == 2


class HandshakeSource(InMemoryDataSource):
    """AAPL history waits until MSFT history has been requested."""

    def __init__(self, series=None):
        super().__init__(series)
        self.msft_requested = asyncio.Event()
        self.history_calls = 0

    async def get_historical_data(self, symbol, start_date=None, end_date=None):
        self.history_calls += 1
        if symbol == "AAPL":
            await self.msft_requested.wait()
        else:
            self.msft_requested.set()
        await asyncio.sleep(0)
        return await super().get_historical_data(symbol, start_date, end_date)


@pytest.mark.asyncio
async def test_cache_fetches_different_symbols_concurrently():
    inner = HandshakeSource({"AAPL": _points(), "MSFT": _points()})
    cached = CachedDataSource(inner)
    aapl, msft = await asyncio.wait_for(
        asyncio.gather(cached.get_historical_data("AAPL"), cached.get_historical_data("MSFT")),
        timeout=1.0,
    )
    assert len(aapl) == len(msft) == 4
    assert inner.history_calls == 2


@pytest.mark.asyncio
async def test_cache_concurrent_requests_for_one_key_share_a_fetch():
    inner = HandshakeSource({"MSFT": _points()})
    cached = CachedDataSource(inner)
    results = await asyncio.gather(*(cached.get_historical_data("MSFT") for _ in range(3)))
    assert all(r == results[0] for r in results)
    assert inner.history_calls == 1


@pytest.mark.asyncio
async def test_cache_sweeps_expired_entries_on_insert():
    inner = CountingSource({"AAPL": _points(), "MSFT": _points()})
    clock = FakeClock()
    cached = CachedDataSource(inner, history_ttl=10.0, quote_ttl=10.0, clock=clock)
    await cached.get_historical_data("AAPL")
    await cached.get_latest_quote("AAPL")
    assert len(cached) == 2

    clock.now = 10.0
    await cached.get_historical_data("MSFT")
    assert len(cached) == 1
