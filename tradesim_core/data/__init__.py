"""
Data-collaborator layer: where price history and quotes come from.

MarketDataSource interface; in-memory, synthetic and TTL-cached implementations.
The CSV-backed source lives in tradesim.data_loader (it needs pandas).
"""

from tradesim_core.data.source import MarketDataSource
from tradesim_core.data.memory import InMemoryDataSource
from tradesim_core.data.synthetic import SyntheticDataSource, synthetic_series
from tradesim_core.data.cache import CachedDataSource

__all__ = [
    "MarketDataSource",
    "InMemoryDataSource",
    "SyntheticDataSource",
    "CachedDataSource",
    "synthetic_series",
]
