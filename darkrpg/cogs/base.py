"""Shared helpers for cogs."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..accounts import AccountService
from ..game import GameState, Session
from ..models.catalog import Catalog, ItemType
from ..models.players import Player
from ..notifications import ActionResult
from ..storage import DataStore
from ..views import notice_embed

log = logging.getLogger(__name__)

LOGIN_HINT = "Log in first with /login or create a hunter with /register."


class RPGCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def store(self) -> DataStore:
        return self.bot.store  # type: ignore[return-value]

    @property
    def state(self) -> GameState:
        return self.bot.state  # type: ignore[return-value]

    @property
    def accounts(self) -> AccountService:
        return self.bot.accounts  # type: ignore[return-value]

    @property
    def catalog(self) -> Catalog:
        return self.state.catalog

    async def send(
        self,
        interaction: discord.Interaction,
        content: str | None = None,
        *,
        ephemeral: bool = False,
        **kwargs,
    ) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(content, ephemeral=ephemeral, **kwargs)
        else:
            await interaction.response.send_message(content, ephemeral=ephemeral, **kwargs)

    async def session_player(
        self, interaction: discord.Interaction
    ) -> tuple[Optional[Session], Optional[Player]]:
        session = self.state.session_for(interaction.user.id)
        player = self.state.player_for(interaction.user.id)
        if session is None or player is None:
            await self.send(interaction, LOGIN_HINT, ephemeral=True)
            return None, None
        if session.channel_id is None and interaction.channel_id is not None:
            session.channel_id = interaction.channel_id
        return session, player

    async def persist(self, player: Player) -> None:
        if not await self.accounts.save(player):
            log.warning("Account record for %s is missing; player not saved", player.username)

    async def reply_result(
        self,
        interaction: discord.Interaction,
        player: Player,
        result: ActionResult,
    ) -> None:
        if result.success:
            await self.persist(player)
        await self.send(
            interaction,
            embed=notice_embed(result.message, result.notice.category),
            ephemeral=not result.success,
        )

    def item_choices(
        self,
        names: Iterable[str],
        current: str,
        *,
        types: Iterable[ItemType] = (),
    ) -> list[app_commands.Choice[str]]:
        wanted = set(types)
        search = current.lower()
        choices: list[app_commands.Choice[str]] = []
        for name in names:
            if search and search not in name.lower():
                continue
            if wanted:
                details = self.catalog.item(name)
                if details is None or details.type not in wanted:
                    continue
            choices.append(app_commands.Choice(name=name, value=name))
            if len(choices) >= 25:
                break
        return choices

    def inventory_choices(
        self,
        user_id: int,
        current: str,
        *,
        types: Iterable[ItemType] = (),
    ) -> list[app_commands.Choice[str]]:
        player = self.state.player_for(user_id)
        if player is None:
            return []
        return self.item_choices(sorted(player.inventory_counts()), current, types=types)
