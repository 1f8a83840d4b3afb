"""
Giveaway Winner Selection
Picks winners uniformly at random from the participant list
"""

import secrets
import logging

from core.errors import ValidationError

logger = logging.getLogger(__name__)

# OS entropy source for production draws; tests pass a seeded random.Random
_system_random = secrets.SystemRandom()


def select_winners(participants, count, rng=None):
    """
    Select ``min(count, len(participants))`` distinct winners

    Every subset of that size is equally likely and the winners come back in
    random order. ``rng.sample`` draws without replacement, which is the same
    distribution as taking the head of a Fisher-Yates shuffle.

    Args:
        participants: list of user id strings (non-empty, no duplicates)
        count: number of winners wanted (>= 1)
        rng: object with a ``sample`` method (random.Random compatible)

    Returns:
        list: winner user ids

    Raises:
        ValidationError: empty participant list or count < 1
    """
    if not participants:
        raise ValidationError("Cannot select winners from an empty participant list", field='participants')
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValidationError("Winner count must be a positive integer", field='winners_count')

    rng = rng or _system_random
    winners = rng.sample(list(participants), min(count, len(participants)))

    logger.debug(f"🎲 Selected {len(winners)} winner(s) from {len(participants)} participant(s)")
    return winners
