"""
Discord Commands for the Giveaway System
Admin commands to run giveaways and the persistent Join button
"""

import logging
import discord
from discord.ext import commands
from discord.ui import View

from core.errors import MarketError, NotFoundError, ValidationError
from market.parsers import parse_duration, format_duration
from .config import (
    MIN_GIVEAWAY_DURATION_MS,
    MAX_GIVEAWAY_WINNERS,
    GIVEAWAY_EMBED_COLOR,
    GIVEAWAY_ENDED_COLOR,
    JOIN_BUTTON_CUSTOM_ID,
)

logger = logging.getLogger(__name__)


def mention_list(user_ids):
    return ', '.join(f"<@{user_id}>" for user_id in user_ids)


def build_active_embed(prize, winners_count, end_time, host, giveaway_id=None):
    embed = discord.Embed(
        title="🎉 GIVEAWAY 🎉",
        description=(
            f"**{prize}**\n\n"
            f"Click **Join** below to enter!\n"
            f"Ends: <t:{end_time // 1000}:R> (<t:{end_time // 1000}:f>)\n"
            f"Winners: **{winners_count}**\n"
            f"Hosted by: {host.mention}"
        ),
        color=GIVEAWAY_EMBED_COLOR
    )
    if giveaway_id is not None:
        embed.set_footer(text=f"Giveaway #{giveaway_id}")
    return embed


def build_ended_embed(giveaway):
    winners = giveaway['winners']
    embed = discord.Embed(
        title="🎉 GIVEAWAY ENDED 🎉",
        description=(
            f"**{giveaway['prize']}**\n\n"
            f"Winner(s): {mention_list(winners) if winners else 'No valid participants'}\n"
            f"Participants: **{len(giveaway['participants'])}**"
        ),
        color=GIVEAWAY_ENDED_COLOR
    )
    embed.set_footer(text=f"Giveaway #{giveaway['id']}")
    return embed


class GiveawayJoinView(View):
    """Persistent Join button shared by every giveaway message"""

    def __init__(self, service):
        super().__init__(timeout=None)  # Persistent view
        self.service = service

    @discord.ui.button(
        style=discord.ButtonStyle.success,
        label="Join",
        emoji="🎉",
        custom_id=JOIN_BUTTON_CUSTOM_ID
    )
    async def join_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        """Handle join button click"""
        try:
            await self.handle_join(interaction)
        except MarketError as e:
            await interaction.response.send_message(f"❌ {e.message}", ephemeral=True)
        except Exception as e:
            logger.error(f"Error handling giveaway join interaction: {e}", exc_info=True)
            if not interaction.response.is_done():
                await interaction.response.send_message("❌ An error occurred.", ephemeral=True)

    async def handle_join(self, interaction: discord.Interaction):
        # The announcement message id is the giveaway's chat_message_id
        giveaway = await self.service.get_by_message_id(interaction.message.id)
        user_id = str(interaction.user.id)

        if user_id in giveaway['participants']:
            await interaction.response.send_message("✅ You are already entered in this giveaway!", ephemeral=True)
            return

        await self.service.add_participant(giveaway['id'], user_id)
        await interaction.response.send_message(
            f"🎉 You joined the giveaway for **{giveaway['prize']}**! Good luck!",
            ephemeral=True
        )


class GiveawayCommands(commands.Cog):
    """Discord commands for giveaways - multi-server aware"""

    def __init__(self, bot, service):
        self.bot = bot
        self.service = service
        self.join_view = GiveawayJoinView(service)

    async def cog_load(self):
        # Re-attach button handling to messages sent before a restart
        self.bot.add_view(self.join_view)

    async def _get_own_giveaway(self, ctx, giveaway_id):
        """Giveaways of other servers are reported as not found"""
        giveaway = await self.service.get_by_id(giveaway_id)
        if giveaway['server_id'] != str(ctx.guild.id):
            raise NotFoundError("Giveaway", giveaway_id)
        return giveaway

    # ========================================
    # ANNOUNCEMENTS
    # ========================================

    async def announce_result(self, giveaway, rerolled=False):
        """Post the winners and close the original giveaway message"""
        try:
            channel = self.bot.get_channel(int(giveaway['channel_id']))
        except ValueError:
            channel = None  # created from the web panel, no Discord channel
        if channel is None:
            logger.warning(f"Cannot announce giveaway #{giveaway['id']}: channel {giveaway['channel_id']} not found")
            return

        try:
            message = await channel.fetch_message(int(giveaway['chat_message_id']))
            await message.edit(embed=build_ended_embed(giveaway), view=None)
        except (ValueError, discord.NotFound):
            message = None
        except discord.HTTPException as e:
            logger.warning(f"Could not edit giveaway #{giveaway['id']} message: {e}")
            message = None

        winners = giveaway['winners']
        if winners:
            prefix = "🔄 New winner(s)" if rerolled else "🎉 Congratulations"
            content = f"{prefix} {mention_list(winners)}! You won **{giveaway['prize']}**!"
        else:
            content = f"😢 Giveaway for **{giveaway['prize']}** ended with no valid participants."

        try:
            if message is not None:
                await message.reply(content)
            else:
                await channel.send(content)
        except discord.HTTPException as e:
            logger.error(f"Failed to announce giveaway #{giveaway['id']}: {e}")

    # ========================================
    # ADMIN COMMANDS
    # ========================================

    @commands.hybrid_command(name='giveaway', aliases=['gstart'])
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def start_giveaway(self, ctx, duration: str, winners: int, *, prize: str):
        """
        Start a giveaway in this channel
        Usage: !giveaway <duration> <winners> <prize>
        Example: !giveaway 2h 1 Secret Brainrot
        """
        try:
            duration_ms = parse_duration(duration)
            if duration_ms < MIN_GIVEAWAY_DURATION_MS:
                raise ValidationError(
                    f"Duration must be at least {format_duration(MIN_GIVEAWAY_DURATION_MS)}",
                    field='duration'
                )
            if winners < 1 or winners > MAX_GIVEAWAY_WINNERS:
                raise ValidationError(f"Winners must be between 1 and {MAX_GIVEAWAY_WINNERS}", field='winners_count')

            embed = build_active_embed(prize, winners, self.service.clock() + duration_ms, ctx.author)
            message = await ctx.send(embed=embed, view=self.join_view)

            try:
                giveaway_id = await self.service.create(
                    server_id=ctx.guild.id,
                    prize=prize,
                    winners_count=winners,
                    duration_ms=duration_ms,
                    channel_id=ctx.channel.id,
                    chat_message_id=message.id,
                )
            except MarketError:
                await message.delete()
                raise

            giveaway = await self.service.get_by_id(giveaway_id)
            await message.edit(embed=build_active_embed(prize, winners, giveaway['end_time'], ctx.author, giveaway_id))
            logger.info(f"{ctx.author} started giveaway #{giveaway_id} in #{ctx.channel}")

        except MarketError as e:
            await ctx.send(f"❌ {e.message}")
        except Exception as e:
            logger.error(f"Error starting giveaway: {e}", exc_info=True)
            await ctx.send("❌ Failed to start the giveaway. Check the logs.")

    @commands.hybrid_command(name='gend')
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def end_giveaway(self, ctx, giveaway_id: int):
        """
        End a giveaway now and draw the winners
        Usage: !gend <giveaway_id>
        """
        try:
            await self._get_own_giveaway(ctx, giveaway_id)
            giveaway = await self.service.end_giveaway(giveaway_id)
            await self.announce_result(giveaway)
            await ctx.send(f"✅ Giveaway #{giveaway_id} ended.", ephemeral=True)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}", ephemeral=True)

    @commands.hybrid_command(name='grig')
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    async def rig_giveaway(self, ctx, giveaway_id: int, member: discord.Member):
        """
        End a giveaway with a chosen winner
        Usage: !grig <giveaway_id> <@member>
        """
        try:
            await self._get_own_giveaway(ctx, giveaway_id)
            giveaway = await self.service.end_giveaway_with_winner(giveaway_id, str(member.id))
            await self.announce_result(giveaway)
            await ctx.send(f"✅ Giveaway #{giveaway_id} ended with {member.mention} as winner.", ephemeral=True)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}", ephemeral=True)

    @commands.hybrid_command(name='greroll')
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def reroll_giveaway(self, ctx, giveaway_id: int):
        """
        Draw new winners for an ended giveaway
        Usage: !greroll <giveaway_id>
        """
        try:
            await self._get_own_giveaway(ctx, giveaway_id)
            giveaway = await self.service.reroll_winners(giveaway_id)
            await self.announce_result(giveaway, rerolled=True)
            await ctx.send(f"✅ Giveaway #{giveaway_id} rerolled.", ephemeral=True)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}", ephemeral=True)

    @commands.hybrid_command(name='glist')
    @commands.guild_only()
    async def list_giveaways(self, ctx, status: str = 'active'):
        """
        List this server's giveaways
        Usage: !glist [active|ended|all]
        """
        status = status.lower()
        if status not in ('active', 'ended', 'all'):
            await ctx.send("❌ Status must be `active`, `ended` or `all`")
            return

        try:
            giveaways = await self.service.get_all(ctx.guild.id, active_only=(status == 'active'))
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")
            return

        if status == 'ended':
            giveaways = [g for g in giveaways if g['ended']]

        if not giveaways:
            await ctx.send(f"📭 No {status} giveaways.")
            return

        embed = discord.Embed(title=f"🎉 Giveaways ({status})", color=GIVEAWAY_EMBED_COLOR)
        for giveaway in giveaways[:25]:
            if giveaway['ended']:
                state = f"Ended, winners: {mention_list(giveaway['winners']) or 'none'}"
            else:
                state = f"Ends <t:{giveaway['end_time'] // 1000}:R>"
            embed.add_field(
                name=f"#{giveaway['id']} {giveaway['prize']}",
                value=f"{state}\n{len(giveaway['participants'])} participant(s), "
                      f"{giveaway['winners_count']} winner(s)",
                inline=False
            )
        if len(giveaways) > 25:
            embed.set_footer(text=f"Showing 25 of {len(giveaways)}")
        await ctx.send(embed=embed)

    @commands.hybrid_command(name='gdelete')
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    async def delete_giveaway(self, ctx, giveaway_id: int):
        """
        Delete a giveaway record
        Usage: !gdelete <giveaway_id>
        """
        try:
            await self._get_own_giveaway(ctx, giveaway_id)
            await self.service.delete(giveaway_id)
            await ctx.send(f"🗑️ Giveaway #{giveaway_id} deleted.", ephemeral=True)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}", ephemeral=True)


async def setup(bot, service):
    """Add giveaway commands to bot"""
    cog = GiveawayCommands(bot, service)
    await bot.add_cog(cog)
    logger.info("✅ Giveaway commands loaded")
    return cog
