"""
Shared fixtures: a throwaway SQLite database and a controllable clock
"""

import os
import sys
import random

import pytest
from sqlalchemy import create_engine

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from giveaway_system.database import setup_giveaway_database
from giveaway_system.service import GiveawayService
from giveaway_system.store import GiveawayStore
from market.database import setup_market_database


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to"""

    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    assert setup_giveaway_database(engine)
    assert setup_market_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(engine):
    return GiveawayStore(engine)


@pytest.fixture
def service(store, clock):
    return GiveawayService(store, clock=clock, rng=random.Random(1337))
