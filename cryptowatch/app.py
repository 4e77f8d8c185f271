from __future__ import annotations

import logging
from typing import Optional

from .api_client import CoinGeckoClient
from .config import Settings, get_settings
from .favorites import FavoritesStore
from .logging_config import setup_logging
from .market_data import MarketDataService
from .storage import JsonFileSettingsStore
from .validators import CryptoDataValidator

logger = logging.getLogger("app")


class CryptoWatchApp:
    """
    Owns the services for one app session and wires them together.

    The presentation layer gets `market_data` and `favorites` from here and
    subscribes to them; nothing else holds a global instance.
    """

    def __init__(self, settings: Settings, market_data: MarketDataService, favorites: FavoritesStore):
        self.settings = settings
        self.market_data = market_data
        self.favorites = favorites

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, settings_store=None) -> "CryptoWatchApp":
        settings = settings or get_settings()
        if settings_store is None:
            settings_store = JsonFileSettingsStore(settings.FAVORITES_STORE_PATH)

        favorites = FavoritesStore(settings_store)
        client = CoinGeckoClient(base_url=settings.COINGECKO_BASE_URL, timeout=settings.COINGECKO_TIMEOUT)
        market_data = MarketDataService(
            client=client,
            favorites=favorites,
            validator=CryptoDataValidator(),
            search_debounce_seconds=settings.SEARCH_DEBOUNCE_SECONDS,
        )
        return cls(settings, market_data, favorites)

    async def start(self) -> None:
        setup_logging(self.settings.LOG_LEVEL, self.settings.LOG_FILE)
        logger.info(f"Starting CryptoWatch | favorites={len(self.favorites)}")

        await self.market_data.fetch_top_coins(self.settings.TOP_COINS_LIMIT)
        if self.market_data.error_message:
            logger.warning(f"Initial fetch failed: {self.market_data.error_message}")

        self.market_data.start_periodic_refresh(self.settings.REFRESH_INTERVAL_SECONDS)

    async def stop(self) -> None:
        await self.market_data.aclose()
        logger.info("CryptoWatch stopped")

    async def __aenter__(self) -> "CryptoWatchApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
