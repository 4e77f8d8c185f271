"""Coin price tracking: CoinGecko market data, favorites, periodic refresh."""

from .api_client import CoinGeckoAPIError, CoinGeckoClient, InvalidRequestError
from .app import CryptoWatchApp
from .constants import ErrorKind, PriceTrend
from .events import StateChange
from .favorites import FavoritesStore
from .market_data import MarketDataService
from .schemas import Coin, SearchCoin, SearchResponse
from .storage import JsonFileSettingsStore, MemorySettingsStore, PersistenceError

__all__ = [
    "CoinGeckoAPIError",
    "CoinGeckoClient",
    "InvalidRequestError",
    "CryptoWatchApp",
    "ErrorKind",
    "PriceTrend",
    "StateChange",
    "FavoritesStore",
    "MarketDataService",
    "Coin",
    "SearchCoin",
    "SearchResponse",
    "JsonFileSettingsStore",
    "MemorySettingsStore",
    "PersistenceError",
]
