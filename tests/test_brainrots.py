"""
Test the brainrot catalogue
Validation, merging by structural key, traits and statistics
"""

import asyncio

import pytest

from core.errors import ValidationError, NotFoundError, ConflictError
from market.brainrots import BrainrotService, BrainrotStore, brainrot_key


@pytest.fixture
def brainrots(engine):
    return BrainrotService(BrainrotStore(engine))


def add(brainrots, server_id='guild-1', **data):
    defaults = {'name': 'Tralalero Tralala', 'rarity': 'Secret', 'income_rate': '1.5M', 'price_eur': 25}
    defaults.update(data)
    return asyncio.run(brainrots.add(server_id, defaults))


def test_add_parses_and_normalizes(brainrots):
    brainrot_id = add(brainrots, rarity='secret', mutation='gold', traits='fire, Taco', price_eur='12,50')
    brainrot = asyncio.run(brainrots.get_by_id(brainrot_id))

    assert brainrot['rarity'] == 'Secret'
    assert brainrot['mutation'] == 'Gold'
    assert brainrot['traits'] == ['Fire', 'Taco']
    assert brainrot['income_rate'] == 1_500_000
    assert brainrot['price_eur'] == 12.5
    assert brainrot['quantity'] == 1


def test_same_item_merges_regardless_of_trait_order(brainrots):
    first = add(brainrots, traits=['Fire', 'Taco'])
    second = add(brainrots, name='tralalero tralala', traits=['Taco', 'Fire'], quantity=2)

    assert first == second
    stock = asyncio.run(brainrots.get_all('guild-1'))
    assert len(stock) == 1
    assert stock[0]['quantity'] == 3


def test_different_mutation_is_a_different_item(brainrots):
    first = add(brainrots)
    second = add(brainrots, mutation='Rainbow')

    assert first != second
    assert len(asyncio.run(brainrots.get_all('guild-1'))) == 2


def test_items_are_scoped_per_server(brainrots):
    add(brainrots, server_id='guild-1')
    add(brainrots, server_id='guild-2')

    assert len(asyncio.run(brainrots.get_all('guild-1'))) == 1
    assert len(asyncio.run(brainrots.get_all('guild-2'))) == 1


def test_key_ignores_case_and_trait_order():
    base = {'server_id': 1, 'name': 'Cappuccino Assassino', 'rarity': 'Epic',
            'mutation': 'Default', 'traits': ['Nyan', 'Fire'], 'account': None, 'crypto': None}
    other = dict(base, name='cappuccino assassino ', traits=['Fire', 'Nyan'], server_id='1')

    assert brainrot_key(base) == brainrot_key(other)


@pytest.mark.parametrize('field, value', [
    ('rarity', 'Ultra'),
    ('mutation', 'Plastic'),
    ('traits', ['NotATrait']),
    ('income_rate', 'lots'),
    ('price_eur', -1),
    ('price_eur', 'free'),
    ('crypto', 'FAKECOIN'),
    ('quantity', 0),
    ('name', ''),
])
def test_add_rejects_invalid_fields(brainrots, field, value):
    with pytest.raises(ValidationError):
        add(brainrots, **{field: value})


def test_filters(brainrots):
    add(brainrots, name='A', rarity='Epic')
    add(brainrots, name='B', rarity='Secret', mutation='Gold')
    add(brainrots, name='C', rarity='Secret')

    assert [b['name'] for b in asyncio.run(brainrots.get_all('guild-1', rarity='secret'))] == ['B', 'C']
    assert [b['name'] for b in asyncio.run(brainrots.get_all('guild-1', mutation='Gold'))] == ['B']
    with pytest.raises(ValidationError):
        asyncio.run(brainrots.get_all('guild-1', rarity='Ultra'))


def test_account_filter_ignores_case(brainrots):
    add(brainrots, name='A', account='Main')
    add(brainrots, name='B', account='alt-1')
    add(brainrots, name='C')

    assert [b['name'] for b in asyncio.run(brainrots.get_all('guild-1', account='main'))] == ['A']
    assert [b['name'] for b in asyncio.run(brainrots.get_all('guild-1', account='ALT-1'))] == ['B']


def test_same_item_on_another_account_is_separate(brainrots):
    first = add(brainrots, account='main')
    second = add(brainrots, account='alt-1')

    assert first != second


def test_update_rejects_unknown_values(brainrots):
    brainrot_id = add(brainrots)

    with pytest.raises(ValidationError):
        asyncio.run(brainrots.update(brainrot_id, {'mutation': 'Plastic'}))
    with pytest.raises(ValidationError):
        asyncio.run(brainrots.update(brainrot_id, {'traits': 'Fire,Nope'}))
    with pytest.raises(ValidationError):
        asyncio.run(brainrots.update(brainrot_id, {}))


def test_update(brainrots):
    brainrot_id = add(brainrots)

    updated = asyncio.run(brainrots.update(brainrot_id, {'price_eur': '30', 'crypto': 'ltc'}))

    assert updated['price_eur'] == 30.0
    assert updated['crypto'] == 'LTC'
    assert updated['name'] == 'Tralalero Tralala'


def test_traits(brainrots):
    brainrot_id = add(brainrots, traits=['Fire'])

    assert asyncio.run(brainrots.add_trait(brainrot_id, 'nyan'))['traits'] == ['Fire', 'Nyan']
    with pytest.raises(ConflictError):
        asyncio.run(brainrots.add_trait(brainrot_id, 'Fire'))

    assert asyncio.run(brainrots.remove_trait(brainrot_id, 'fire'))['traits'] == ['Nyan']
    with pytest.raises(NotFoundError):
        asyncio.run(brainrots.remove_trait(brainrot_id, 'Fire'))

    assert asyncio.run(brainrots.get_by_id(brainrot_id))['traits'] == ['Nyan']


def test_delete(brainrots):
    brainrot_id = add(brainrots)

    assert asyncio.run(brainrots.delete(brainrot_id)) is True
    with pytest.raises(NotFoundError):
        asyncio.run(brainrots.delete(brainrot_id))


def test_stats(brainrots):
    add(brainrots, name='A', rarity='Epic', price_eur=10, quantity=2)
    add(brainrots, name='B', rarity='Secret', price_eur=25)
    add(brainrots, name='B', rarity='Secret', mutation='Gold', price_eur=40)

    stats = asyncio.run(brainrots.get_stats('guild-1'))

    assert stats['total_brainrots'] == 4
    assert stats['total_value'] == 85.0
    assert stats['unique_types'] == 2
    assert stats['by_rarity'] == {'Epic': 2, 'Secret': 2}
    assert list(stats['by_rarity']) == ['Epic', 'Secret']
