import pytest


@pytest.fixture
def market_payload():
    """Two records shaped like CoinGecko /coins/markets output."""
    return [
        {
            'id': 'bitcoin',
            'symbol': 'btc',
            'name': 'Bitcoin',
            'image': 'https://coin-images.coingecko.com/coins/images/1/large/bitcoin.png?1696501400',
            'current_price': 93043,
            'market_cap': 1858305095863,
            'market_cap_rank': 1,
            'fully_diluted_valuation': 1858307979414,
            'total_volume': 43671338173,
            'high_24h': 95468,
            'low_24h': 92263,
            'price_change_24h': -2074.357513210838,
            'price_change_percentage_24h': -2.18084,
            'market_cap_change_24h': -40753566375.51294,
            'market_cap_change_percentage_24h': -2.14599,
            'circulating_supply': 19977962.0,
            'total_supply': 19977993.0,
            'max_supply': 21000000.0,
            'ath': 126080,
            'ath_change_percentage': -26.20318,
            'ath_date': '2025-10-06T18:57:42.558Z',
            'atl': 67.81,
            'atl_change_percentage': 137113.27782,
            'atl_date': '2013-07-06T00:00:00.000Z',
            'roi': None,
            'last_updated': '2026-01-19T16:04:33.996Z',
            'price_change_percentage_24h_in_currency': -2.180841251101688
        },
        {
            'id': 'ethereum',
            'symbol': 'eth',
            'name': 'Ethereum',
            'image': 'https://coin-images.coingecko.com/coins/images/279/large/ethereum.png?1696501628',
            'current_price': 3214.98,
            'market_cap': 387931240279,
            'market_cap_rank': 2,
            'total_volume': 30641480222,
            'high_24h': 3364.25,
            'low_24h': 3190.76,
            'price_change_24h': 119.47590655700606,
            'price_change_percentage_24h': 3.58307,
            'circulating_supply': 120694585.0611229,
            'total_supply': 120694585.0611229,
            'max_supply': None,
            'roi': {'times': 45.19295638735206, 'currency': 'btc', 'percentage': 4519.295638735206},
            'last_updated': '2026-01-19T16:04:34.506Z'
        }
    ]


@pytest.fixture
def search_payload():
    return {
        'coins': [
            {'id': 'bitcoin', 'name': 'Bitcoin', 'symbol': 'BTC', 'market_cap_rank': 1,
             'thumb': 'https://coin-images.coingecko.com/coins/images/1/thumb/bitcoin.png',
             'large': 'https://coin-images.coingecko.com/coins/images/1/large/bitcoin.png'},
            {'id': 'wrapped-bitcoin', 'name': 'Wrapped Bitcoin', 'symbol': 'WBTC', 'market_cap_rank': 18},
        ],
        'exchanges': [],
        'categories': [],
        'nfts': []
    }
