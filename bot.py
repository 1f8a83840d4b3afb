import os
from datetime import datetime

from dotenv import load_dotenv

import discord
from discord.ext import commands

from core.database import create_db_engine
from giveaway_system.database import setup_giveaway_database
from giveaway_system.store import GiveawayStore
from giveaway_system.service import GiveawayService
from giveaway_system.scheduler import setup_giveaway_scheduler
from giveaway_system.commands import setup as setup_giveaway_commands
from market.database import setup_market_database
from market.brainrots import BrainrotStore, BrainrotService
from market.crypto import CryptoPriceService
from market.commands import setup as setup_market_commands
from utils.logging_config import setup_logging

# -------------------------
# Load config
# -------------------------
load_dotenv()

logger = setup_logging('brainrot-bot')

DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
COMMAND_PREFIX = os.getenv("COMMAND_PREFIX", "!")

# -------------------------
# Database setup
# -------------------------
engine = create_db_engine()

if not setup_giveaway_database(engine) or not setup_market_database(engine):
    logger.error("❌ Database schema setup failed, commands touching the database will error")

giveaway_service = GiveawayService(GiveawayStore(engine))
brainrot_service = BrainrotService(BrainrotStore(engine))
crypto_service = CryptoPriceService(engine)

# -------------------------
# Bot
# -------------------------
intents = discord.Intents.default()
intents.message_content = True
intents.members = True

bot = commands.Bot(command_prefix=COMMAND_PREFIX, intents=intents)


@bot.event
async def on_ready():
    # on_ready fires again after every reconnect
    if getattr(bot, 'services_ready', False):
        logger.info(f"🔄 Reconnected as {bot.user}")
        return
    bot.services_ready = True
    bot.uptime_start = datetime.now()

    logger.info(f"✅ Logged in as {bot.user} (ID: {bot.user.id}) on {len(bot.guilds)} server(s)")

    giveaway_cog = await setup_giveaway_commands(bot, giveaway_service)
    await setup_market_commands(bot, brainrot_service, crypto_service)

    # Ends what expired while offline, re-arms the rest
    await setup_giveaway_scheduler(
        bot, giveaway_service, on_ended=giveaway_cog.announce_result
    )

    try:
        synced = await bot.tree.sync()
        logger.info(f"✅ Synced {len(synced)} slash command(s)")
    except discord.HTTPException as e:
        logger.error(f"Failed to sync slash commands: {e}")


@bot.event
async def on_command_error(ctx, error):
    """Handle command errors gracefully."""
    try:
        if isinstance(error, commands.MissingRequiredArgument):
            await ctx.send(f"❌ Missing argument: `{error.param.name}`")
        elif isinstance(error, commands.BadArgument):
            await ctx.send(f"❌ Invalid argument: {error}")
        elif isinstance(error, commands.CommandNotFound):
            pass  # Ignore unknown commands
        elif isinstance(error, commands.NoPrivateMessage):
            await ctx.send("❌ This command can only be used in a server.")
        elif isinstance(error, commands.CheckFailure):
            await ctx.send("❌ You don't have permission to use this command.")
        else:
            logger.error(f"Unhandled error in command {ctx.command}: {error}", exc_info=error)
            await ctx.send("❌ An error occurred. Please try again.")
    except discord.Forbidden:
        logger.warning(f"Cannot send error message in channel {ctx.channel.id}: {error}")


@bot.command(name='health')
async def health(ctx):
    """Bot status: uptime, latency and pending giveaway timers"""
    uptime = datetime.now() - bot.uptime_start
    scheduler = getattr(bot, 'giveaway_scheduler', None)
    pending = scheduler.pending_count if scheduler else 0
    await ctx.send(
        f"✅ Online for {str(uptime).split('.')[0]} | "
        f"latency {bot.latency * 1000:.0f}ms | "
        f"{pending} giveaway timer(s) armed | "
        f"database: {engine.dialect.name}"
    )


# -------------------------
# Run bot
# -------------------------
if __name__ == "__main__":
    if not DISCORD_TOKEN:
        raise SystemExit("❌ DISCORD_TOKEN environment variable is required")

    # Logging is already configured by setup_logging
    bot.run(DISCORD_TOKEN, log_handler=None)
