from pydantic import BaseModel
from typing import List, Optional

from .constants import PriceTrend


def format_currency(value: float) -> str:
    """
    Format a USD amount, keeping up to 6 fraction digits for sub-dollar prices.
    """

    digits = 6 if abs(value) < 1 else 2
    text = f"{abs(value):,.{digits}f}"
    if digits > 2:
        whole, fraction = text.split(".")
        text = f"{whole}.{fraction.rstrip('0').ljust(2, '0')}"
    sign = "-" if value < 0 else ""
    return f"{sign}${text}"


def format_large_number(value: float) -> str:
    """
    Scale a dollar amount to K/M/B, e.g. 1_234_000_000 -> "$1.23B".
    """

    billion = 1_000_000_000
    million = 1_000_000
    thousand = 1_000

    if value >= billion:
        return f"${value / billion:.2f}B"
    if value >= million:
        return f"${value / million:.2f}M"
    if value >= thousand:
        return f"${value / thousand:.2f}K"
    return f"${value:.2f}"


class Coin(BaseModel):
    """
    Market snapshot of a single coin, as returned by CoinGecko /coins/markets.
    
    Two records describe the same coin when their ids match, so a newer
    snapshot replaces an older one instead of sitting next to it.
    
    Reference: https://docs.coingecko.com/reference/coins-markets
    """
    
    # Basic information
    id: str
    symbol: str
    name: str
    image: Optional[str] = None

    # Price information
    current_price: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    
    # Market cap information
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    fully_diluted_valuation: Optional[float] = None
    market_cap_change_24h: Optional[float] = None
    market_cap_change_percentage_24h: Optional[float] = None
    
    # Trading volume
    total_volume: Optional[float] = None
    
    # Supply information
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None

    # All-time high / low
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    ath_date: Optional[str] = None
    atl: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    atl_date: Optional[str] = None

    last_updated: Optional[str] = None

    class Config:
        extra = "ignore"   # Ignore extra fields
        frozen = True

    def __eq__(self, other):
        if not isinstance(other, Coin):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    @property
    def formatted_price(self) -> str:
        if self.current_price is None:
            return "N/A"
        return format_currency(self.current_price)

    @property
    def formatted_price_change(self) -> str:
        change = self.price_change_percentage_24h
        if change is None:
            return "N/A"
        sign = "+" if change >= 0 else ""
        return f"{sign}{change:.2f}%"

    @property
    def price_change_color(self) -> PriceTrend:
        change = self.price_change_percentage_24h
        if change is None:
            return PriceTrend.NEUTRAL
        return PriceTrend.UP if change >= 0 else PriceTrend.DOWN

    @property
    def formatted_market_cap(self) -> str:
        if self.market_cap is None:
            return "N/A"
        return format_large_number(self.market_cap)

    @property
    def formatted_volume(self) -> str:
        if self.total_volume is None:
            return "N/A"
        return format_large_number(self.total_volume)


class SearchCoin(BaseModel):
    """Lightweight match returned by /search; carries no market data."""

    id: str
    name: str
    symbol: str
    market_cap_rank: Optional[int] = None
    thumb: Optional[str] = None
    large: Optional[str] = None

    class Config:
        extra = "ignore"


class SearchResponse(BaseModel):
    """Response format for CoinGecko /search (only the coins section is used)."""

    coins: List[SearchCoin] = []

    class Config:
        extra = "ignore"
