"""
Giveaway System Package
Timed giveaways with a Join button, fair or forced winners and rerolls
"""

__version__ = "1.0.0"

from .store import GiveawayStore
from .service import GiveawayService
from .scheduler import GiveawayScheduler, setup_giveaway_scheduler
from .database import setup_giveaway_database
from .draw import select_winners

__all__ = [
    'GiveawayStore',
    'GiveawayService',
    'GiveawayScheduler',
    'setup_giveaway_scheduler',
    'setup_giveaway_database',
    'select_winners',
]
