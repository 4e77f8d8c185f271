from enum import Enum

class ErrorKind(str, Enum):
    """
    Closed set of failure kinds surfaced by the services.
    """

    INVALID_REQUEST = "invalid_request"
    NETWORK_FAILURE = "network_failure"
    DECODE_FAILURE = "decode_failure"
    PERSISTENCE_FAILURE = "persistence_failure"


class PriceTrend(str, Enum):
    """
    Display color for a 24h price change.
    """

    UP = "green"
    DOWN = "red"
    NEUTRAL = "gray"


class ValidationStatus(str, Enum):
    """
    Overall status for a data-quality run.
    """

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ValidationFields:
    """
    Field names for data-quality flag columns.
    """
    
    HAS_ABNORMAL_PRICE = "has_abnormal_price"
    HAS_MISSING_VALUES = "has_missing_values"
    HAS_DUPLICATE = "has_duplicate"


class StateFields:
    """
    Names of the observable fields published by the services.
    """

    TOP_COINS = "top_coins"
    SEARCH_RESULTS = "search_results"
    IS_LOADING = "is_loading"
    ERROR_MESSAGE = "error_message"
    FAVORITES = "favorites"


FAVORITES_KEY = "FavoriteCoins"
SEARCH_RESULT_LIMIT = 20
MAX_DETAILS_PER_PAGE = 250
