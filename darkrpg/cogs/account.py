from __future__ import annotations

import io
import logging
import time

import discord
from discord import app_commands
from discord.ext import commands

from ..accounts import AccountError
from ..game import TickOutcome
from ..notifications import NoticeCategory
from ..savecodec import SaveDecodeError
from ..views import notice_embed, profile_embed
from .base import RPGCog

log = logging.getLogger(__name__)


class AccountCog(RPGCog):
    async def _busy(self, interaction: discord.Interaction) -> bool:
        session = self.state.session_for(interaction.user.id)
        if session is not None and session.in_combat:
            await self.send(interaction, "Finish your battle first.", ephemeral=True)
            return True
        return False

    async def _release(self, user_id: int) -> None:
        player = self.state.unbind(user_id)
        if player is not None:
            await self.persist(player)

    async def _enter(self, interaction: discord.Interaction, outcome: TickOutcome, greeting: str) -> None:
        await self._release(interaction.user.id)
        player = outcome.player
        self.state.bind(interaction.user.id, player, channel_id=interaction.channel_id)
        embeds = [notice_embed(greeting, NoticeCategory.SUCCESS)]
        if outcome.notices:
            summary = "\n".join(notice.message for notice in outcome.notices)
            embeds.append(notice_embed(summary, NoticeCategory.INFO))
        embeds.append(profile_embed(player, self.catalog))
        await self.send(interaction, embeds=embeds, ephemeral=True)

    @app_commands.command(name="register", description="Create a new hunter account")
    @app_commands.describe(username="Hunter name", password="Password for future logins")
    async def register(self, interaction: discord.Interaction, username: str, password: str) -> None:
        if await self._busy(interaction):
            return
        try:
            player = await self.accounts.register(username, password)
        except AccountError as exc:
            await self.send(interaction, str(exc), ephemeral=True)
            return
        await self._enter(
            interaction,
            TickOutcome(player),
            f"Welcome, {player.username}. Your hunt begins.",
        )

    @app_commands.command(name="login", description="Resume an existing hunter")
    @app_commands.describe(username="Hunter name", password="Account password")
    async def login(self, interaction: discord.Interaction, username: str, password: str) -> None:
        if await self._busy(interaction):
            return
        try:
            outcome = await self.accounts.login(username, password, time.time())
        except AccountError as exc:
            await self.send(interaction, str(exc), ephemeral=True)
            return
        await self._enter(interaction, outcome, f"Welcome back, {outcome.player.username}.")

    @app_commands.command(name="logout", description="Save and leave the game")
    async def logout(self, interaction: discord.Interaction) -> None:
        session = self.state.session_for(interaction.user.id)
        if session is None:
            await self.send(interaction, "You are not logged in.", ephemeral=True)
            return
        if await self._busy(interaction):
            return
        await self._release(interaction.user.id)
        await self.send(interaction, "Progress saved. See you soon.", ephemeral=True)

    @app_commands.command(name="export", description="Get a save string for your hunter")
    async def export(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.persist(player)
        try:
            text = await self.accounts.export(player.username)
        except AccountError as exc:
            await self.send(interaction, str(exc), ephemeral=True)
            return
        if len(text) > 1900:
            attachment = discord.File(
                fp=io.BytesIO(text.encode("utf8")), filename=f"{player.username}.save.txt"
            )
            await self.send(interaction, "Your save string:", file=attachment, ephemeral=True)
        else:
            await self.send(interaction, f"Your save string:\n```\n{text}\n```", ephemeral=True)

    @app_commands.command(name="import", description="Restore a hunter from a save string")
    @app_commands.describe(save="Save string produced by /export")
    async def import_save(self, interaction: discord.Interaction, save: str) -> None:
        if await self._busy(interaction):
            return
        try:
            outcome = await self.accounts.import_save(save, time.time())
        except SaveDecodeError as exc:
            await self.send(interaction, f"Invalid save file: {exc}", ephemeral=True)
            return
        except AccountError as exc:
            await self.send(interaction, str(exc), ephemeral=True)
            return
        log.info("User %s imported save for %s", interaction.user.id, outcome.player.username)
        await self._enter(interaction, outcome, f"Save imported for {outcome.player.username}.")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(AccountCog(bot))
