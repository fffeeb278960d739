from __future__ import annotations

import time
from typing import Callable, Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..game import (
    begin_rest,
    begin_training,
    buy_item,
    cancel_action,
    equip_item,
    exchange_gold,
    finish_instantly,
    heal_at_inn,
    sell_item,
    unequip_item,
    use_item,
)
from ..models.catalog import EQUIPMENT_SLOT_ORDER, ItemType
from ..models.players import ActionKind, Player
from ..notifications import ActionResult
from ..season import SeasonTrack, claim_reward, purchase_premium, skip_level
from ..views import (
    ConfirmView,
    inventory_embed,
    profile_embed,
    rankings_embed,
    season_embed,
    shop_embed,
)
from .base import RPGCog

TRAINING_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=kind.label, value=kind.value)
    for kind in ActionKind
    if kind is not ActionKind.RESTING
]

SLOT_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=slot.value.title(), value=slot.value) for slot in EQUIPMENT_SLOT_ORDER
]

TRACK_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=track.value.title(), value=track.value) for track in SeasonTrack
]

CATEGORY_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=kind.value.title(), value=kind.value) for kind in ItemType
]

EQUIPPABLE_TYPES = (ItemType.WEAPON, ItemType.ARMOR, ItemType.ACCESSORY)
USABLE_TYPES = (ItemType.CHEST, ItemType.POTION, ItemType.CONSUMABLE)


class HubCog(RPGCog):
    async def _start_action(
        self,
        interaction: discord.Interaction,
        player: Player,
        starter: Callable[[Player, bool], ActionResult],
    ) -> None:
        if player.active_action is None:
            await self.reply_result(interaction, player, starter(player, False))
            return

        current = player.active_action.kind.label
        view = ConfirmView(interaction.user.id)
        await self.send(
            interaction,
            f"{current} is still running. Replace it? Progress will be lost.",
            view=view,
            ephemeral=True,
        )
        await view.wait()
        if not view.confirmed:
            await interaction.followup.send("Kept the current action.", ephemeral=True)
            return
        player = self.state.player_for(interaction.user.id)
        if player is None:
            return
        await self.reply_result(interaction, player, starter(player, True))

    @app_commands.command(name="profile", description="Show your hunter's status")
    async def profile(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.send(interaction, embed=profile_embed(player, self.catalog), ephemeral=True)

    @app_commands.command(name="train", description="Start a training session")
    @app_commands.describe(stat="Attribute to train")
    @app_commands.choices(stat=TRAINING_CHOICES)
    async def train(self, interaction: discord.Interaction, stat: app_commands.Choice[str]) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        kind = ActionKind.from_value(stat.value)
        await self._start_action(
            interaction,
            player,
            lambda target, replace: begin_training(target, kind, time.time(), replace=replace),
        )

    @app_commands.command(name="rest", description="Rest to recover missing health")
    async def rest(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self._start_action(
            interaction,
            player,
            lambda target, replace: begin_rest(target, time.time(), replace=replace),
        )

    @app_commands.command(name="cancel", description="Abandon the running action")
    async def cancel(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, cancel_action(player))

    @app_commands.command(name="finish", description="Spend diamonds to finish the running action")
    async def finish(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, finish_instantly(player))

    @app_commands.command(name="inventory", description="List the items in your bag")
    @app_commands.describe(category="Only show one kind of item")
    @app_commands.choices(category=CATEGORY_CHOICES)
    async def inventory(
        self,
        interaction: discord.Interaction,
        category: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        kind = ItemType.from_value(category.value) if category else None
        await self.send(
            interaction, embed=inventory_embed(player, self.catalog, kind=kind), ephemeral=True
        )

    @app_commands.command(name="equip", description="Equip a weapon, armor or accessory")
    @app_commands.describe(item="Item from your inventory")
    async def equip(self, interaction: discord.Interaction, item: str) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, equip_item(player, item, self.catalog))

    @equip.autocomplete("item")
    async def equip_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        return self.inventory_choices(interaction.user.id, current, types=EQUIPPABLE_TYPES)

    @app_commands.command(name="unequip", description="Return an equipped item to your bag")
    @app_commands.choices(slot=SLOT_CHOICES)
    async def unequip(self, interaction: discord.Interaction, slot: app_commands.Choice[str]) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, unequip_item(player, slot.value))

    @app_commands.command(name="use", description="Open a chest, drink a potion or eat food")
    @app_commands.describe(item="Item from your inventory")
    async def use(self, interaction: discord.Interaction, item: str) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        result = use_item(player, item, self.catalog, time.time())
        await self.reply_result(interaction, player, result)

    @use.autocomplete("item")
    async def use_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        return self.inventory_choices(interaction.user.id, current, types=USABLE_TYPES)

    @app_commands.command(name="sell", description="Sell one item to the merchant")
    @app_commands.describe(item="Item from your inventory")
    async def sell(self, interaction: discord.Interaction, item: str) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, sell_item(player, item, self.catalog))

    @sell.autocomplete("item")
    async def sell_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        return self.inventory_choices(interaction.user.id, current)

    @app_commands.command(name="shop", description="Browse the merchant's wares")
    async def shop(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.send(interaction, embed=shop_embed(player, self.catalog), ephemeral=True)

    @app_commands.command(name="buy", description="Buy one item from the merchant")
    @app_commands.describe(item="Item on sale")
    async def buy(self, interaction: discord.Interaction, item: str) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, buy_item(player, item, self.catalog))

    @buy.autocomplete("item")
    async def buy_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        player = self.state.player_for(interaction.user.id)
        names = player.shop_stock if player is not None else self.catalog.shop_stock
        return self.item_choices(list(names), current)

    @app_commands.command(name="heal", description="Pay the inn to restore all health")
    async def heal(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, heal_at_inn(player))

    @app_commands.command(name="exchange", description="Trade gold for diamonds")
    @app_commands.describe(diamonds="Diamonds to buy (1000 gold each)")
    async def exchange(
        self,
        interaction: discord.Interaction,
        diamonds: app_commands.Range[int, 1, 1000] = 1,
    ) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, exchange_gold(player, diamonds))

    @app_commands.command(name="season", description="Show the season pass track")
    async def season(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.send(interaction, embed=season_embed(player, self.catalog), ephemeral=True)

    @app_commands.command(name="season_claim", description="Claim a season pass reward")
    @app_commands.describe(level="Season level of the reward", track="Reward track")
    @app_commands.choices(track=TRACK_CHOICES)
    async def season_claim(
        self,
        interaction: discord.Interaction,
        level: app_commands.Range[int, 1, 100],
        track: app_commands.Choice[str],
    ) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        result = claim_reward(player, level, track.value, self.catalog.season)
        await self.reply_result(interaction, player, result)

    @app_commands.command(name="season_skip", description="Spend diamonds to gain a season level")
    async def season_skip(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, skip_level(player, self.catalog.season))

    @app_commands.command(name="season_premium", description="Buy the premium season pass")
    async def season_premium(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.reply_result(interaction, player, purchase_premium(player, self.catalog.season))

    @app_commands.command(name="rankings", description="Show the strongest hunters")
    async def rankings(self, interaction: discord.Interaction) -> None:
        for player in list(self.state.players.values()):
            await self.persist(player)
        players = await self.accounts.rankings(10)
        await self.send(interaction, embed=rankings_embed(players))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(HubCog(bot))
