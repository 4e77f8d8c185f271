from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def parse_int(value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


def parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


def parse_optional(value: str | None) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    COINGECKO_BASE_URL: str
    COINGECKO_TIMEOUT: float
    TOP_COINS_LIMIT: int
    REFRESH_INTERVAL_SECONDS: float
    SEARCH_DEBOUNCE_SECONDS: float
    FAVORITES_STORE_PATH: str
    LOG_LEVEL: str
    LOG_FILE: Optional[str]

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            COINGECKO_BASE_URL=os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"),
            COINGECKO_TIMEOUT=parse_float(os.getenv("COINGECKO_TIMEOUT"), 30.0),
            TOP_COINS_LIMIT=parse_int(os.getenv("TOP_COINS_LIMIT"), 100),
            REFRESH_INTERVAL_SECONDS=parse_float(os.getenv("REFRESH_INTERVAL_SECONDS"), 5.0),
            SEARCH_DEBOUNCE_SECONDS=parse_float(os.getenv("SEARCH_DEBOUNCE_SECONDS"), 0.5),
            FAVORITES_STORE_PATH=os.getenv("FAVORITES_STORE_PATH", "./cryptowatch_settings.json"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            LOG_FILE=parse_optional(os.getenv("LOG_FILE")),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
