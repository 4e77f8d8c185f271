import logging
from typing import List, Optional, Sequence

import requests
from pydantic import ValidationError

from .constants import ErrorKind
from .schemas import Coin, SearchResponse

logger = logging.getLogger("api_client")


class CoinGeckoAPIError(Exception):
    """Raised when a CoinGecko API call fails.

    `kind` tells callers which part of the exchange broke; the message is
    meant for display.
    """

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


class InvalidRequestError(CoinGeckoAPIError, ValueError):
    """Raised when a request cannot be built from the given parameters."""

    def __init__(self, detail: str):
        super().__init__(ErrorKind.INVALID_REQUEST, detail)


class CoinGeckoClient:
    """Thin client wrapper for CoinGecko's /coins/markets and /search endpoints."""
    
    BASE_URL = "https://api.coingecko.com/api/v3"
    DEFAULT_TIMEOUT = 30
    DEFAULT_RETRY_WAIT = 60
    MAX_PER_PAGE = 250

    HEADERS = {
        'Accept': 'application/json',
        'User-Agent': 'CryptoWatch/1.0'
    }

    def __init__(self, base_url: str = BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
    
    def get_markets_data(
        self, 
        vs_currency: str = 'usd',
        per_page: int = 100,
        page: int = 1,
        price_change_percentage: str = '24h',
        ids: Optional[Sequence[str]] = None
    ) -> List[Coin]:
        """
        Fetch market data ordered by descending market cap and return typed records.

        Args:
            vs_currency: Quote currency (e.g. 'usd').
            per_page: Number of records per page (1–250).
            page: Page index (1-based).
            price_change_percentage: Comma-separated periods requested from the API.
            ids: Restrict the result to these coin ids.

        Returns:
            A list of `Coin` instances in the order the API returned them.

        Raises:
            InvalidRequestError: If input parameters are invalid.
            CoinGeckoAPIError: If the request fails or the body cannot be decoded.
        """
        
        # parameter validation
        if not 1 <= per_page <= self.MAX_PER_PAGE:
            raise InvalidRequestError("per_page must be between 1-250")
        if page < 1:
            raise InvalidRequestError("page must be greater than 0")
        
        params = {
            'vs_currency': vs_currency,
            'order': 'market_cap_desc',
            'per_page': per_page,
            'page': page,
            'sparkline': 'false',
            'price_change_percentage': price_change_percentage
        }

        if ids is not None:
            if not ids:
                raise InvalidRequestError("ids must not be empty")
            params['ids'] = ",".join(ids)

        json_data = self._get_json("/coins/markets", params)

        if not isinstance(json_data, list):
            error_msg = f"Decode error: expected a list of coins, got {type(json_data).__name__}"
            logger.error(error_msg)
            raise CoinGeckoAPIError(ErrorKind.DECODE_FAILURE, error_msg)

        try:
            market_data = [Coin(**item) for item in json_data]
        except (TypeError, ValidationError) as e:
            logger.error(f"Decode error: {str(e)}")
            raise CoinGeckoAPIError(ErrorKind.DECODE_FAILURE, f"Decode error: {str(e)}")

        logger.info(f"Successfully fetched {len(market_data)} cryptocurrency records")
        return market_data

    def search(self, query: str) -> SearchResponse:
        """
        Search coins by name or symbol.

        The response only carries ids, names and symbols; prices have to be
        looked up separately through `get_markets_data(ids=...)`.
        """

        if not query or not query.strip():
            raise InvalidRequestError("query must not be empty")

        json_data = self._get_json("/search", {'query': query.strip()})

        try:
            response = SearchResponse(**json_data)
        except (TypeError, ValidationError) as e:
            logger.error(f"Decode error: {str(e)}")
            raise CoinGeckoAPIError(ErrorKind.DECODE_FAILURE, f"Decode error: {str(e)}")

        logger.info(f"Search '{query}' matched {len(response.coins)} coins")
        return response

    def _get_json(self, path: str, params: dict):
        url = f"{self.base_url}{path}"

        try:            
            response = requests.get(
                url, 
                params=params, 
                headers=self.HEADERS,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error(f"Request timeout")
            raise CoinGeckoAPIError(ErrorKind.NETWORK_FAILURE, "Request timeout")

        except (
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.InvalidURL,
        ) as e:
            logger.error(f"Invalid URL {url}: {str(e)}")
            raise InvalidRequestError(f"Invalid URL: {url}")

        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {str(e)}")
            raise CoinGeckoAPIError(ErrorKind.NETWORK_FAILURE, f"Request error: {str(e)}")

        logger.info(f"API Response {path}: Status {response.status_code}")

        if response.status_code == 429:
            retry_after = response.headers.get('Retry-After', self.DEFAULT_RETRY_WAIT)
            logger.warning(f"Rate limited, server asks to wait {retry_after} seconds")
            raise CoinGeckoAPIError(
                ErrorKind.NETWORK_FAILURE,
                f"API rate limit (429), Retry-After: {retry_after} seconds"
            )
            
        if response.status_code != 200:
            error_msg = f"API error: HTTP {response.status_code} - {response.text}"
            logger.error(error_msg)
            raise CoinGeckoAPIError(ErrorKind.NETWORK_FAILURE, error_msg)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Decode error: response is not valid JSON ({str(e)})")
            raise CoinGeckoAPIError(ErrorKind.DECODE_FAILURE, "Decode error: response is not valid JSON")
