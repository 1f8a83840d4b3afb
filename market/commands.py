"""
Discord Commands for the Brainrot Market
Stock management for sellers and price lookups for everyone
"""

import shlex
import logging
import discord
from discord.ext import commands

from core.errors import MarketError, ValidationError
from . import enums
from .brainrots import UPDATABLE_FIELDS
from .config import BRAINROTS_PER_PAGE, SUPPORTED_CRYPTOS
from .parsers import format_price

logger = logging.getLogger(__name__)


def describe_brainrot(brainrot):
    rarity = enums.RARITIES.get(brainrot['rarity'], {})
    line = f"{rarity.get('emoji', '')} **{brainrot['name']}**"
    if brainrot['mutation'] != enums.DEFAULT_MUTATION:
        line += f" [{enums.MUTATIONS.get(brainrot['mutation'], '')} {brainrot['mutation']}]"
    if brainrot['quantity'] > 1:
        line += f" x{brainrot['quantity']}"
    line += f" - {format_price(brainrot['income_rate'])}/s - {brainrot['price_eur']:.2f}€"
    if brainrot['traits']:
        line += f"\n   Traits: {', '.join(brainrot['traits'])}"
    return f"`#{brainrot['id']}` {line}"


# Short names accepted by !bupdate
FIELD_ALIASES = {
    'income': 'income_rate',
    'price': 'price_eur',
    'qty': 'quantity',
}


def parse_changes(text):
    """
    Parse ``field=value`` pairs from a command argument

    Values may be quoted to include spaces. Unknown fields raise
    ValidationError.
    """
    try:
        tokens = shlex.split(text)
    except ValueError as e:
        raise ValidationError(f"Could not read changes: {e}")

    changes = {}
    for token in tokens:
        field, sep, value = token.partition('=')
        if not sep:
            raise ValidationError(f"Expected field=value, got '{token}'")
        field = field.strip().lower()
        field = FIELD_ALIASES.get(field, field)
        if field not in UPDATABLE_FIELDS:
            raise ValidationError(f"Unknown field '{field}'", field=field)
        changes[field] = value
    if not changes:
        raise ValidationError("Nothing to update")
    return changes


class MarketCommands(commands.Cog):
    """Brainrot stock and crypto price commands"""

    def __init__(self, bot, brainrot_service, crypto_service):
        self.bot = bot
        self.brainrots = brainrot_service
        self.crypto = crypto_service

    # ========================================
    # STOCK COMMANDS
    # ========================================

    @commands.hybrid_command(name='badd')
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def add_brainrot(self, ctx, name: str, rarity: str, income: str, price_eur: str,
                           mutation: str = enums.DEFAULT_MUTATION, traits: str = '',
                           account: str = None, quantity: int = 1, crypto: str = None):
        """
        Add a brainrot to the stock
        Usage: !badd "<name>" <rarity> <income/s> <price €> [mutation] [trait1,trait2|-] [account] [quantity] [crypto]
        Example: !badd "Tralalero Tralala" Secret 1.5M 25 Gold Fire,Taco alt-1 2 LTC
        """
        try:
            brainrot_id = await self.brainrots.add(ctx.guild.id, {
                'name': name,
                'rarity': rarity,
                'income_rate': income,
                'price_eur': price_eur,
                'mutation': mutation,
                'traits': '' if traits == '-' else traits,
                'account': account,
                'quantity': quantity,
                'crypto': crypto,
            })
            brainrot = await self.brainrots.get_by_id(brainrot_id)
            await ctx.send(f"✅ Stock updated:\n{describe_brainrot(brainrot)}")
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")

    @commands.hybrid_command(name='blist', aliases=['stock'])
    @commands.guild_only()
    async def list_brainrots(self, ctx, rarity: str = None):
        """
        Show the brainrots in stock
        Usage: !blist [rarity]
        """
        try:
            brainrots = await self.brainrots.get_all(ctx.guild.id, rarity=rarity)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")
            return

        if not brainrots:
            await ctx.send("📭 No brainrots in stock.")
            return

        brainrots.sort(key=lambda b: (-enums.rarity_order(b['rarity']), b['name'].casefold()))
        color = enums.get_rarity_color(rarity) if rarity else 0x5865F2
        embed = discord.Embed(
            title="🧠 Brainrot stock" + (f" ({enums.normalize_rarity(rarity)})" if rarity else ""),
            description='\n'.join(describe_brainrot(b) for b in brainrots[:BRAINROTS_PER_PAGE]),
            color=color
        )
        if len(brainrots) > BRAINROTS_PER_PAGE:
            embed.set_footer(text=f"Showing {BRAINROTS_PER_PAGE} of {len(brainrots)}")
        await ctx.send(embed=embed)

    @commands.hybrid_command(name='baccount')
    @commands.guild_only()
    async def list_account(self, ctx, *, account: str):
        """
        Show the brainrots held on one game account
        Usage: !baccount <account>
        """
        try:
            brainrots = await self.brainrots.get_all(ctx.guild.id, account=account)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")
            return

        if not brainrots:
            await ctx.send(f"📭 No brainrots on account **{account}**.")
            return

        brainrots.sort(key=lambda b: (-enums.rarity_order(b['rarity']), b['name'].casefold()))
        total = sum(b['price_eur'] * b['quantity'] for b in brainrots)
        embed = discord.Embed(
            title=f"👤 Account {account}",
            description='\n'.join(describe_brainrot(b) for b in brainrots[:BRAINROTS_PER_PAGE]),
            color=0x5865F2
        )
        embed.set_footer(text=f"{sum(b['quantity'] for b in brainrots)} brainrot(s) - {total:.2f}€")
        await ctx.send(embed=embed)

    @commands.hybrid_command(name='bupdate')
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def update_brainrot(self, ctx, brainrot_id: int, *, changes: str):
        """
        Change fields of a brainrot
        Usage: !bupdate <id> field=value [field=value ...]
        Fields: name, rarity, mutation, traits, income, price, crypto, account, quantity
        Example: !bupdate 12 price=30 account="alt 2"
        """
        try:
            data = parse_changes(changes)
            brainrot = await self.brainrots.get_by_id(brainrot_id)
            if brainrot['server_id'] != str(ctx.guild.id):
                await ctx.send(f"❌ Brainrot #{brainrot_id} not found")
                return
            brainrot = await self.brainrots.update(brainrot_id, data)
            await ctx.send(f"✅ Updated:\n{describe_brainrot(brainrot)}")
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")

    @commands.hybrid_command(name='bremove')
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def remove_brainrot(self, ctx, brainrot_id: int):
        """
        Remove a brainrot from the stock
        Usage: !bremove <id>
        """
        try:
            brainrot = await self.brainrots.get_by_id(brainrot_id)
            if brainrot['server_id'] != str(ctx.guild.id):
                await ctx.send(f"❌ Brainrot #{brainrot_id} not found")
                return
            await self.brainrots.delete(brainrot_id)
            await ctx.send(f"🗑️ Removed **{brainrot['name']}** (#{brainrot_id})")
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")

    @commands.hybrid_command(name='btrait')
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def edit_trait(self, ctx, brainrot_id: int, action: str, *, trait: str):
        """
        Add or remove a trait
        Usage: !btrait <id> <add|remove> <trait>
        """
        action = action.lower()
        if action not in ('add', 'remove'):
            await ctx.send("❌ Action must be `add` or `remove`")
            return

        try:
            brainrot = await self.brainrots.get_by_id(brainrot_id)
            if brainrot['server_id'] != str(ctx.guild.id):
                await ctx.send(f"❌ Brainrot #{brainrot_id} not found")
                return
            if action == 'add':
                brainrot = await self.brainrots.add_trait(brainrot_id, trait)
            else:
                brainrot = await self.brainrots.remove_trait(brainrot_id, trait)
            await ctx.send(f"✅ {describe_brainrot(brainrot)}")
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")

    @commands.hybrid_command(name='bstats')
    @commands.guild_only()
    async def stock_stats(self, ctx):
        """Stock totals by rarity"""
        try:
            stats = await self.brainrots.get_stats(ctx.guild.id)
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")
            return

        embed = discord.Embed(title="📊 Stock statistics", color=0x5865F2)
        embed.add_field(name="Brainrots", value=str(stats['total_brainrots']))
        embed.add_field(name="Unique types", value=str(stats['unique_types']))
        embed.add_field(name="Total value", value=f"{stats['total_value']:.2f}€")
        if stats['by_rarity']:
            embed.add_field(
                name="By rarity",
                value='\n'.join(f"{enums.RARITIES[r]['emoji']} {r}: {n}" for r, n in stats['by_rarity'].items()),
                inline=False
            )
        await ctx.send(embed=embed)

    # ========================================
    # CRYPTO COMMANDS
    # ========================================

    @commands.hybrid_command(name='crypto', aliases=['prices'])
    async def crypto_prices(self, ctx, symbol: str = None):
        """
        Show crypto prices in EUR
        Usage: !crypto [symbol]
        """
        try:
            if symbol:
                price = await self.crypto.get_price_eur(symbol)
                await ctx.send(f"💱 1 {symbol.upper()} = **{price:,.2f}€**")
                return

            prices = await self.crypto.get_all_prices()
        except MarketError as e:
            await ctx.send(f"❌ {e.message}")
            return

        if not prices:
            await ctx.send("❌ Crypto prices are unavailable right now.")
            return

        embed = discord.Embed(title="💱 Crypto prices (EUR)", color=0xF7931A)
        for sym, price in prices.items():
            embed.add_field(name=sym, value=f"{price:,.4f}€" if price < 1 else f"{price:,.2f}€")
        await ctx.send(embed=embed)

    @commands.hybrid_command(name='crefresh')
    @commands.has_permissions(manage_guild=True)
    async def refresh_prices(self, ctx):
        """Drop cached prices and fetch every coin again"""
        prices = await self.crypto.refresh_all_prices()
        missing = [sym for sym in SUPPORTED_CRYPTOS if sym not in prices]
        message = f"🔄 Refreshed {len(prices)} price(s)"
        if missing:
            message += f", unavailable: {', '.join(missing)}"
        logger.info(f"{ctx.author} refreshed crypto prices ({len(prices)} ok)")
        await ctx.send(message)

    @commands.hybrid_command(name='convert')
    async def convert_price(self, ctx, amount_eur: str, symbol: str):
        """
        Convert a EUR amount to crypto
        Usage: !convert <amount €> <symbol>
        """
        try:
            amount = await self.crypto.convert_eur_to_crypto(amount_eur.replace(',', '.'), symbol)
            await ctx.send(f"💱 {amount_eur}€ = **{amount:.8f} {symbol.upper()}**")
        except MarketError as e:
            await ctx.send(f"❌ {e.message}\nSupported: {', '.join(SUPPORTED_CRYPTOS)}")


async def setup(bot, brainrot_service, crypto_service):
    """Add market commands to bot"""
    cog = MarketCommands(bot, brainrot_service, crypto_service)
    await bot.add_cog(cog)
    logger.info("✅ Market commands loaded")
    return cog
