"""
Crypto Price Service
EUR prices for the coins buyers can pay with

Lookup order: in-memory cache (CRYPTO_CACHE_TTL), CoinGecko, CoinCap,
then the last price persisted in crypto_prices.
"""

import math
import asyncio
import time
import logging
import aiohttp
from sqlalchemy import text

from core.errors import ValidationError, ExternalAPIError
from utils.error_helpers import db_error_handler
from utils.logging_config import log_api_call
from .config import (
    CRYPTO_CACHE_TTL,
    CRYPTO_HTTP_TIMEOUT,
    COINGECKO_API_URL,
    COINCAP_API_URL,
    SUPPORTED_CRYPTOS,
)

logger = logging.getLogger(__name__)


def normalize_symbol(symbol):
    """Upper-case a coin symbol and check it is supported"""
    normalized = str(symbol or '').strip().upper()
    if normalized not in SUPPORTED_CRYPTOS:
        raise ValidationError(
            f"Unsupported cryptocurrency '{symbol}'. Supported: {', '.join(SUPPORTED_CRYPTOS)}",
            field='symbol'
        )
    return normalized


class CryptoPriceStore:
    """Last known prices, used when both price oracles are down"""

    def __init__(self, engine):
        self.engine = engine

    @db_error_handler
    def upsert(self, symbol, price_eur, price_usd=None):
        with self.engine.begin() as conn:
            conn.execute(text("""
                INSERT INTO crypto_prices (crypto, price_eur, price_usd, updated_at)
                VALUES (:crypto, :price_eur, :price_usd, CURRENT_TIMESTAMP)
                ON CONFLICT (crypto) DO UPDATE SET
                    price_eur = excluded.price_eur,
                    price_usd = excluded.price_usd,
                    updated_at = CURRENT_TIMESTAMP
            """), {'crypto': symbol, 'price_eur': price_eur, 'price_usd': price_usd})

    @db_error_handler
    def find_by_symbol(self, symbol):
        with self.engine.connect() as conn:
            row = conn.execute(text("""
                SELECT crypto, price_eur, price_usd, updated_at
                FROM crypto_prices WHERE crypto = :crypto
            """), {'crypto': symbol}).fetchone()
        return dict(row._mapping) if row else None


class CryptoPriceService:
    """Cached EUR price lookup with two HTTP oracles and a database fallback"""

    def __init__(self, engine=None, cache_ttl=CRYPTO_CACHE_TTL, clock=None):
        self.store = CryptoPriceStore(engine) if engine is not None else None
        self.cache_ttl = cache_ttl
        self.clock = clock or time.monotonic
        self._cache = {}  # symbol -> (price_eur, fetched_at)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _get_json(self, api_name, url, params=None):
        started = time.monotonic()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    params=params,
                    headers={'Accept': 'application/json'},
                    timeout=aiohttp.ClientTimeout(total=CRYPTO_HTTP_TIMEOUT)
                ) as response:
                    log_api_call(logger, api_name, url, response.status, time.monotonic() - started)
                    if response.status != 200:
                        raise ExternalAPIError(api_name, f"HTTP {response.status}", status=response.status)
                    return await response.json()
        except asyncio.TimeoutError:
            raise ExternalAPIError(api_name, "request timed out")
        except aiohttp.ClientError as e:
            raise ExternalAPIError(api_name, f"{type(e).__name__}: {e}")

    async def _fetch_coingecko(self, symbol):
        """Returns (price_eur, price_usd)"""
        coin_id = SUPPORTED_CRYPTOS[symbol][0]
        data = await self._get_json('CoinGecko', f"{COINGECKO_API_URL}/simple/price",
                                    params={'ids': coin_id, 'vs_currencies': 'eur,usd'})
        prices = (data or {}).get(coin_id) or {}
        if prices.get('eur') is None:
            raise ExternalAPIError('CoinGecko', f"no EUR price for {symbol}")
        return float(prices['eur']), (float(prices['usd']) if prices.get('usd') is not None else None)

    async def _fetch_coincap(self, symbol):
        """CoinCap only quotes USD, converted with its EUR rate"""
        coin_id = SUPPORTED_CRYPTOS[symbol][1]
        asset = await self._get_json('CoinCap', f"{COINCAP_API_URL}/assets/{coin_id}")
        rate = await self._get_json('CoinCap', f"{COINCAP_API_URL}/rates/euro")
        try:
            price_usd = float(asset['data']['priceUsd'])
            eur_in_usd = float(rate['data']['rateUsd'])
        except (KeyError, TypeError, ValueError):
            raise ExternalAPIError('CoinCap', f"unexpected response for {symbol}")
        if eur_in_usd <= 0:
            raise ExternalAPIError('CoinCap', "invalid EUR rate")
        return price_usd / eur_in_usd, price_usd

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_price_eur(self, symbol):
        """
        Current EUR price of one coin

        Raises:
            ValidationError: unsupported symbol
            ExternalAPIError: every source failed and nothing is persisted
        """
        symbol = normalize_symbol(symbol)

        cached = self._cache.get(symbol)
        if cached and self.clock() - cached[1] < self.cache_ttl:
            return cached[0]

        try:
            price_eur, price_usd = await self._fetch_coingecko(symbol)
        except ExternalAPIError as e:
            logger.warning(f"CoinGecko failed for {symbol}, trying CoinCap: {e}")
            try:
                price_eur, price_usd = await self._fetch_coincap(symbol)
            except ExternalAPIError as fallback_error:
                return self._fallback_price(symbol, fallback_error)

        self._cache[symbol] = (price_eur, self.clock())
        if self.store is not None:
            self.store.upsert(symbol, price_eur, price_usd)

        logger.debug(f"💱 {symbol} = {price_eur} EUR")
        return price_eur

    def _fallback_price(self, symbol, error):
        saved = self.store.find_by_symbol(symbol) if self.store is not None else None
        if not saved:
            logger.error(f"❌ No price available for {symbol}: {error}")
            raise error
        logger.warning(f"⚠️ Using last saved {symbol} price from {saved['updated_at']}")
        return float(saved['price_eur'])

    async def get_all_prices(self):
        """Prices of every supported coin; coins with no price at all are skipped"""
        prices = {}
        for symbol in SUPPORTED_CRYPTOS:
            try:
                prices[symbol] = await self.get_price_eur(symbol)
            except ExternalAPIError as e:
                logger.warning(f"Skipping {symbol}: {e}")
        return prices

    async def refresh_all_prices(self):
        self.invalidate_cache()
        return await self.get_all_prices()

    async def convert_eur_to_crypto(self, amount_eur, symbol):
        amount_eur = self._check_amount(amount_eur)
        price = await self.get_price_eur(symbol)
        if price <= 0:
            raise ExternalAPIError('prices', f"invalid price {price} for {symbol}")
        return round(amount_eur / price, 8)

    async def convert_crypto_to_eur(self, amount, symbol):
        amount = self._check_amount(amount)
        price = await self.get_price_eur(symbol)
        return round(amount * price, 2)

    @staticmethod
    def _check_amount(amount):
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid amount '{amount}'", field='amount')
        if not math.isfinite(amount):
            raise ValidationError(f"Invalid amount '{amount}'", field='amount')
        if amount < 0:
            raise ValidationError("Amount cannot be negative", field='amount')
        return amount

    def invalidate_cache(self, symbol=None):
        if symbol is None:
            self._cache.clear()
        else:
            self._cache.pop(normalize_symbol(symbol), None)
