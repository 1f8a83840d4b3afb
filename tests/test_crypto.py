"""
Test crypto price lookup
Cache, CoinGecko -> CoinCap -> database fallback, conversions
"""

import asyncio

import pytest

from core.errors import ValidationError, ExternalAPIError
from market.crypto import CryptoPriceService, CryptoPriceStore


class FakeMonotonic:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def prices(engine, monotonic):
    return CryptoPriceService(engine, cache_ttl=300, clock=monotonic)


def oracle(result=None, error=None, calls=None):
    """Stand-in for a price oracle fetch method"""
    async def fetch(symbol):
        if calls is not None:
            calls.append(symbol)
        if error is not None:
            raise error
        return result
    return fetch


def test_coingecko_price_is_cached_and_persisted(prices, engine, monkeypatch, monotonic):
    calls = []
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle((50000.0, 54000.0), calls=calls))

    assert asyncio.run(prices.get_price_eur('btc')) == 50000.0
    assert asyncio.run(prices.get_price_eur('BTC')) == 50000.0
    assert calls == ['BTC']

    saved = CryptoPriceStore(engine).find_by_symbol('BTC')
    assert saved['price_eur'] == 50000.0
    assert saved['price_usd'] == 54000.0

    monotonic.now += 301
    asyncio.run(prices.get_price_eur('BTC'))
    assert calls == ['BTC', 'BTC']


def test_falls_back_to_coincap(prices, monkeypatch):
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle(error=ExternalAPIError('CoinGecko', 'HTTP 429', 429)))
    monkeypatch.setattr(prices, '_fetch_coincap', oracle((2000.0, 2150.0)))

    assert asyncio.run(prices.get_price_eur('ETH')) == 2000.0


def test_falls_back_to_saved_price(prices, engine, monkeypatch):
    CryptoPriceStore(engine).upsert('SOL', 120.5, 130.0)
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle(error=ExternalAPIError('CoinGecko', 'down')))
    monkeypatch.setattr(prices, '_fetch_coincap', oracle(error=ExternalAPIError('CoinCap', 'down')))

    assert asyncio.run(prices.get_price_eur('SOL')) == 120.5


def test_raises_when_no_price_anywhere(prices, monkeypatch):
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle(error=ExternalAPIError('CoinGecko', 'down')))
    monkeypatch.setattr(prices, '_fetch_coincap', oracle(error=ExternalAPIError('CoinCap', 'down')))

    with pytest.raises(ExternalAPIError):
        asyncio.run(prices.get_price_eur('LTC'))


def test_upsert_overwrites(engine):
    store = CryptoPriceStore(engine)
    store.upsert('BTC', 1.0)
    store.upsert('BTC', 2.0, 2.2)

    assert store.find_by_symbol('BTC')['price_eur'] == 2.0
    assert store.find_by_symbol('DOGE') is None


def test_unsupported_symbol(prices):
    with pytest.raises(ValidationError):
        asyncio.run(prices.get_price_eur('FAKECOIN'))


def test_conversions(prices, monkeypatch):
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle((3.0, 3.3)))

    assert asyncio.run(prices.convert_eur_to_crypto(10, 'LTC')) == 3.33333333
    assert asyncio.run(prices.convert_crypto_to_eur('2.5', 'LTC')) == 7.5

    with pytest.raises(ValidationError):
        asyncio.run(prices.convert_eur_to_crypto('abc', 'LTC'))
    with pytest.raises(ValidationError):
        asyncio.run(prices.convert_eur_to_crypto(-1, 'LTC'))


@pytest.mark.parametrize('amount', [float('nan'), 'inf', '-inf'])
def test_rejects_non_finite_amounts(prices, monkeypatch, amount):
    calls = []
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle((3.0, 3.3), calls=calls))

    with pytest.raises(ValidationError):
        asyncio.run(prices.convert_eur_to_crypto(amount, 'LTC'))
    with pytest.raises(ValidationError):
        asyncio.run(prices.convert_crypto_to_eur(amount, 'LTC'))
    assert calls == []


def test_get_all_prices_skips_failures(prices, monkeypatch):
    async def coingecko(symbol):
        if symbol == 'BTC':
            return 50000.0, None
        raise ExternalAPIError('CoinGecko', 'down')

    monkeypatch.setattr(prices, '_fetch_coingecko', coingecko)
    monkeypatch.setattr(prices, '_fetch_coincap', oracle(error=ExternalAPIError('CoinCap', 'down')))

    assert asyncio.run(prices.get_all_prices()) == {'BTC': 50000.0}


def test_refresh_ignores_cache(prices, monkeypatch):
    calls = []
    monkeypatch.setattr(prices, '_fetch_coingecko', oracle((1.0, 1.1), calls=calls))

    asyncio.run(prices.get_all_prices())
    asyncio.run(prices.refresh_all_prices())

    assert len(calls) == 20


def test_coincap_converts_usd_to_eur(prices, monkeypatch):
    responses = {
        'assets': {'data': {'priceUsd': '110.0'}},
        'rates': {'data': {'rateUsd': '1.1'}},
    }

    async def get_json(api_name, url, params=None):
        return responses['rates'] if url.endswith('/rates/euro') else responses['assets']

    monkeypatch.setattr(prices, '_get_json', get_json)

    price_eur, price_usd = asyncio.run(prices._fetch_coincap('SOL'))
    assert price_eur == pytest.approx(100.0)
    assert price_usd == 110.0


def test_coingecko_missing_price(prices, monkeypatch):
    async def get_json(api_name, url, params=None):
        return {}

    monkeypatch.setattr(prices, '_get_json', get_json)

    with pytest.raises(ExternalAPIError):
        asyncio.run(prices._fetch_coingecko('BTC'))
