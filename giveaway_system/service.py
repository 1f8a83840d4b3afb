"""
Giveaway Service
All giveaway business rules: creation, joining, ending, forced results and rerolls
"""

import random
import logging

from core.errors import ValidationError, NotFoundError, ConflictError
from .draw import select_winners
from .store import now_ms

logger = logging.getLogger(__name__)


def _require_text(value, field):
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


class GiveawayService:
    """
    Giveaway lifecycle on top of a GiveawayStore

    A giveaway is either active or ended. It ends exactly once, through
    end_giveaway or end_giveaway_with_winner; both persist the result with a
    conditional update so a second ender (another process, a late timer)
    gets a ConflictError instead of overwriting winners.
    """

    def __init__(self, store, clock=None, rng=None, scheduler=None):
        """
        Args:
            store: GiveawayStore instance
            clock: callable returning epoch milliseconds (defaults to wall clock)
            rng: random source passed to select_winners (defaults to SystemRandom)
            scheduler: optional object with ``schedule_end(giveaway_id, end_time)``
        """
        self.store = store
        self.clock = clock or now_ms
        self.rng = rng or random.SystemRandom()
        self.scheduler = scheduler

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_all(self, server_id, active_only=False):
        return self.store.find_all_for_server(server_id, active_only=active_only, now=self.clock())

    async def get_by_id(self, giveaway_id):
        giveaway = self.store.find_by_id(giveaway_id)
        if giveaway is None:
            raise NotFoundError("Giveaway", giveaway_id)
        return giveaway

    async def get_by_message_id(self, chat_message_id):
        giveaway = self.store.find_by_chat_message_id(chat_message_id)
        if giveaway is None:
            raise NotFoundError("Giveaway for message", chat_message_id)
        return giveaway

    async def get_expired_unended(self):
        return self.store.find_expired_unended(self.clock())

    async def get_pending(self):
        return self.store.find_pending(self.clock())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create(self, server_id, prize, winners_count, duration_ms, channel_id, chat_message_id):
        """
        Create an active giveaway ending ``duration_ms`` from now

        Returns:
            int: new giveaway id

        Raises:
            ValidationError: bad winner count, non-positive duration, missing text field
            ConflictError: chat_message_id already used by another giveaway
        """
        server_id = _require_text(server_id, 'server_id')
        prize = _require_text(prize, 'prize')
        channel_id = _require_text(channel_id, 'channel_id')
        chat_message_id = _require_text(chat_message_id, 'chat_message_id')

        if isinstance(winners_count, bool) or not isinstance(winners_count, int) or winners_count < 1:
            raise ValidationError("Winner count must be an integer of at least 1", field='winners_count')
        if isinstance(duration_ms, bool) or not isinstance(duration_ms, int) or duration_ms <= 0:
            raise ValidationError("Duration must be a positive number of milliseconds", field='duration')

        end_time = self.clock() + duration_ms

        giveaway_id = self.store.insert({
            'server_id': server_id,
            'chat_message_id': chat_message_id,
            'channel_id': channel_id,
            'prize': prize,
            'winners_count': winners_count,
            'end_time': end_time,
        })

        logger.info(f"🎉 Created giveaway #{giveaway_id} '{prize}' on server {server_id} "
                    f"({winners_count} winner(s), ends at {end_time})")

        if self.scheduler is not None:
            self.scheduler.schedule_end(giveaway_id, end_time)

        return giveaway_id

    async def add_participant(self, giveaway_id, user_id):
        """
        Register a user in an active giveaway

        Idempotent: joining twice returns True and leaves the list unchanged.

        Raises:
            NotFoundError: unknown giveaway
            ConflictError: giveaway ended or past its end time
        """
        user_id = _require_text(user_id, 'user_id')
        giveaway = await self.get_by_id(giveaway_id)

        if giveaway['ended'] or giveaway['end_time'] <= self.clock():
            raise ConflictError("This giveaway is closed", ConflictError.CLOSED)

        if user_id in giveaway['participants']:
            return True

        participants = giveaway['participants'] + [user_id]
        if not self.store.update(giveaway_id, {'participants': participants}, expected_ended=False):
            raise ConflictError("This giveaway is closed", ConflictError.CLOSED)

        logger.debug(f"User {user_id} joined giveaway #{giveaway_id} ({len(participants)} participants)")
        return True

    def select_winners(self, participants, count):
        return select_winners(participants, count, rng=self.rng)

    async def end_giveaway(self, giveaway_id):
        """
        End a giveaway and draw its winners

        A giveaway without participants still ends, with no winners.

        Returns:
            dict: the ended giveaway record

        Raises:
            NotFoundError: unknown giveaway
            ConflictError: already ended (including by a concurrent caller)
        """
        giveaway = await self.get_by_id(giveaway_id)
        if giveaway['ended']:
            raise ConflictError(f"Giveaway #{giveaway_id} has already ended", ConflictError.ALREADY_ENDED)

        participants = giveaway['participants']
        winners = self.select_winners(participants, giveaway['winners_count']) if participants else []

        self._persist_end(giveaway_id, {'ended': True, 'winners': winners})

        giveaway.update(ended=True, winners=winners)
        logger.info(f"🏆 Giveaway #{giveaway_id} ended: {len(winners)} winner(s) "
                    f"from {len(participants)} participant(s)")
        return giveaway

    async def end_giveaway_with_winner(self, giveaway_id, forced_user_id):
        """
        End a giveaway with an administrator-chosen winner

        The winner does not need to be a participant. The record is flagged
        ``is_rigged`` so the result can be told apart from a fair draw.
        """
        forced_user_id = _require_text(forced_user_id, 'winner_id')
        giveaway = await self.get_by_id(giveaway_id)
        if giveaway['ended']:
            raise ConflictError(f"Giveaway #{giveaway_id} has already ended", ConflictError.ALREADY_ENDED)

        winners = [forced_user_id]
        self._persist_end(giveaway_id, {
            'ended': True,
            'winners': winners,
            'is_rigged': True,
            'forced_winner_id': forced_user_id,
        })

        giveaway.update(ended=True, winners=winners, is_rigged=True, forced_winner_id=forced_user_id)
        logger.warning(f"⚠️ Giveaway #{giveaway_id} ended with forced winner {forced_user_id}")
        return giveaway

    def _persist_end(self, giveaway_id, fields):
        if not self.store.update(giveaway_id, fields, expected_ended=False):
            # Deleted or ended by someone else since we read it
            if self.store.find_by_id(giveaway_id) is None:
                raise NotFoundError("Giveaway", giveaway_id)
            raise ConflictError(f"Giveaway #{giveaway_id} has already ended", ConflictError.ALREADY_ENDED)

    async def reroll_winners(self, giveaway_id):
        """
        Draw new winners for an ended giveaway

        Only ``winners`` changes; ``ended`` and ``is_rigged`` are left as they are.

        Raises:
            NotFoundError: unknown giveaway
            ConflictError: giveaway not yet ended
        """
        giveaway = await self.get_by_id(giveaway_id)
        if not giveaway['ended']:
            raise ConflictError(f"Giveaway #{giveaway_id} has not ended yet", ConflictError.NOT_ENDED)

        participants = giveaway['participants']
        winners = self.select_winners(participants, giveaway['winners_count']) if participants else []

        if not self.store.update(giveaway_id, {'winners': winners}, expected_ended=True):
            raise NotFoundError("Giveaway", giveaway_id)

        giveaway['winners'] = winners
        logger.info(f"🔄 Giveaway #{giveaway_id} rerolled: {len(winners)} new winner(s)")
        return giveaway

    async def delete(self, giveaway_id):
        if not self.store.delete(giveaway_id):
            raise NotFoundError("Giveaway", giveaway_id)
        logger.info(f"🗑️ Deleted giveaway #{giveaway_id}")
        return True
