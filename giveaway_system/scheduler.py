"""
Giveaway Scheduler
One-shot end timers per giveaway, startup reconciliation and a periodic sweep
"""

import asyncio
import logging
from discord.ext import tasks

from core.errors import ConflictError, NotFoundError
from .config import SWEEP_INTERVAL_SECONDS
from .store import now_ms
from utils.logging_config import log_error

logger = logging.getLogger(__name__)


class GiveawayScheduler:
    """
    Ends giveaways when their end time is reached

    Timers live only in memory. ``end_time`` is persisted, so after a restart
    ``reconcile()`` ends what expired while the bot was down and re-arms the
    rest. Once armed, a timer always fires; ending a giveaway that was
    already ended by a command is reported as benign.
    """

    def __init__(self, service, clock=None):
        self.service = service
        self.clock = clock or now_ms
        self._timers = {}
        self._on_ended = []

    def add_listener(self, callback):
        """Register an async callback(giveaway) awaited after each automatic end"""
        self._on_ended.append(callback)

    @property
    def pending_count(self):
        return len(self._timers)

    def schedule_end(self, giveaway_id, end_time):
        """
        Arm a one-shot timer that ends the giveaway at ``end_time``

        Must be called from inside the running event loop. Scheduling an id
        that already has a live timer is a no-op.
        """
        existing = self._timers.get(giveaway_id)
        if existing is not None and not existing.done():
            return existing

        delay = max(0.0, (end_time - self.clock()) / 1000)
        task = asyncio.get_running_loop().create_task(self._end_after(giveaway_id, delay))
        self._timers[giveaway_id] = task
        task.add_done_callback(lambda _task: self._timers.pop(giveaway_id, None))

        logger.debug(f"⏰ Giveaway #{giveaway_id} scheduled to end in {delay:.0f}s")
        return task

    async def _end_after(self, giveaway_id, delay):
        await asyncio.sleep(delay)
        await self.end_now(giveaway_id)

    async def end_now(self, giveaway_id):
        """
        End a giveaway on behalf of a timer or the sweep

        Returns:
            dict or None: the ended giveaway, or None if there was nothing to do
        """
        try:
            giveaway = await self.service.end_giveaway(giveaway_id)
        except ConflictError:
            logger.info(f"Giveaway #{giveaway_id} was already ended, nothing to do")
            return None
        except NotFoundError:
            logger.warning(f"Giveaway #{giveaway_id} no longer exists, skipping scheduled end")
            return None
        except Exception as e:
            log_error(logger, e, f"Failed to end giveaway #{giveaway_id}")
            return None

        for callback in self._on_ended:
            try:
                await callback(giveaway)
            except Exception as e:
                logger.error(f"Giveaway #{giveaway_id} end listener failed: {e}", exc_info=True)

        return giveaway

    async def end_expired(self):
        """End every giveaway past its end time that is still open"""
        expired = await self.service.get_expired_unended()
        ended = []
        for giveaway in expired:
            result = await self.end_now(giveaway['id'])
            if result is not None:
                ended.append(result)
        if expired:
            logger.info(f"Ended {len(ended)} of {len(expired)} expired giveaway(s)")
        return ended

    async def reconcile(self):
        """
        Startup recovery

        Returns:
            dict: counts of giveaways ended and timers armed
        """
        ended = await self.end_expired()

        pending = await self.service.get_pending()
        for giveaway in pending:
            self.schedule_end(giveaway['id'], giveaway['end_time'])

        logger.info(f"✅ Giveaway reconciliation done: {len(ended)} ended, {len(pending)} timer(s) armed")
        return {'ended': len(ended), 'scheduled': len(pending)}


async def setup_giveaway_scheduler(bot, service, on_ended=None):
    """
    Attach a scheduler to the service, recover state and start the sweep task

    The sweep also picks up giveaways created by the admin web process,
    which has no timers of its own.

    Args:
        bot: Discord bot instance
        service: GiveawayService instance
        on_ended: optional async callback(giveaway), e.g. the winner announcement

    Returns:
        GiveawayScheduler instance
    """
    scheduler = GiveawayScheduler(service)
    service.scheduler = scheduler
    if on_ended is not None:
        scheduler.add_listener(on_ended)

    await scheduler.reconcile()

    @tasks.loop(seconds=SWEEP_INTERVAL_SECONDS)
    async def sweep_expired_giveaways():
        try:
            await scheduler.end_expired()
        except Exception as e:
            logger.error(f"Error in giveaway sweep task: {e}", exc_info=True)

    sweep_expired_giveaways.start()
    scheduler.sweep_task = sweep_expired_giveaways
    bot.giveaway_scheduler = scheduler
    logger.info(f"✅ Giveaway scheduler started (sweep every {SWEEP_INTERVAL_SECONDS}s)")

    return scheduler
