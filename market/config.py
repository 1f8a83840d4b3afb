"""
Market Configuration
Crypto price lookup settings
"""

import os

# In-memory price cache lifetime (seconds)
CRYPTO_CACHE_TTL = int(os.getenv("CRYPTO_CACHE_TTL", "300"))

# Timeout for each price oracle request (seconds)
CRYPTO_HTTP_TIMEOUT = int(os.getenv("CRYPTO_HTTP_TIMEOUT", "10"))

COINGECKO_API_URL = os.getenv("COINGECKO_API_URL", "https://api.coingecko.com/api/v3")
COINCAP_API_URL = os.getenv("COINCAP_API_URL", "https://api.coincap.io/v2")

# symbol -> (CoinGecko id, CoinCap id)
SUPPORTED_CRYPTOS = {
    'BTC': ('bitcoin', 'bitcoin'),
    'ETH': ('ethereum', 'ethereum'),
    'SOL': ('solana', 'solana'),
    'USDT': ('tether', 'tether'),
    'LTC': ('litecoin', 'litecoin'),
    'XRP': ('ripple', 'xrp'),
    'BNB': ('binancecoin', 'binance-coin'),
    'USDC': ('usd-coin', 'usd-coin'),
    'DOGE': ('dogecoin', 'dogecoin'),
    'ADA': ('cardano', 'cardano'),
}

# Listing page size for brainrot commands
BRAINROTS_PER_PAGE = 15
