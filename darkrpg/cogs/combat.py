from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..combat import AutoCombat, ManualCombat
from ..config import BotConfig
from ..game import Session, can_enter_dungeon
from ..models.catalog import Dungeon
from ..models.players import Player
from ..views import AutoBattleView, CombatView, autobattle_embed, combat_embed, dungeons_embed
from .base import RPGCog

log = logging.getLogger(__name__)


class CombatCog(RPGCog):
    def __init__(self, bot: commands.Bot):
        super().__init__(bot)
        self._auto_tasks: Dict[int, asyncio.Task[None]] = {}

    @property
    def config(self) -> BotConfig:
        return self.bot.config  # type: ignore[return-value]

    async def cog_unload(self) -> None:
        for task in self._auto_tasks.values():
            task.cancel()
        self._auto_tasks.clear()

    async def _prepare(
        self, interaction: discord.Interaction, dungeon_id: int
    ) -> tuple[Optional[Session], Optional[Player], Optional[Dungeon]]:
        session, player = await self.session_player(interaction)
        if session is None or player is None:
            return None, None, None
        if session.in_combat:
            await self.send(interaction, "You are already in a battle.", ephemeral=True)
            return None, None, None
        dungeon = self.catalog.dungeon(dungeon_id)
        if dungeon is None:
            await self.send(interaction, f"There is no dungeon #{dungeon_id}.", ephemeral=True)
            return None, None, None
        result = can_enter_dungeon(player, dungeon)
        if not result:
            await self.send(interaction, result.message, ephemeral=True)
            return None, None, None
        return session, player, dungeon

    def _release(self, user_id: int) -> None:
        session = self.state.session_for(user_id)
        if session is not None:
            session.in_combat = False

    @app_commands.command(name="dungeons", description="List the dungeons and their enemies")
    async def dungeons(self, interaction: discord.Interaction) -> None:
        _, player = await self.session_player(interaction)
        if player is None:
            return
        await self.send(interaction, embed=dungeons_embed(player, self.catalog), ephemeral=True)

    @app_commands.command(name="fight", description="Fight a dungeon enemy turn by turn")
    @app_commands.describe(dungeon="Dungeon to enter")
    async def fight(self, interaction: discord.Interaction, dungeon: int) -> None:
        session, player, target = await self._prepare(interaction, dungeon)
        if session is None or player is None or target is None:
            return

        user_id = interaction.user.id

        async def finished(combat: ManualCombat) -> None:
            self._release(user_id)
            outcome = combat.outcome.value if combat.outcome else "ended"
            log.info("%s finished a battle in %s: %s", combat.player.username, target.name, outcome)
            await self.persist(combat.player)

        session.in_combat = True
        combat = ManualCombat(player, target, self.catalog)
        view = CombatView(
            user_id,
            combat,
            on_finish=finished,
            enemy_delay=self.config.enemy_turn_delay,
            timeout=self.config.combat_timeout,
        )
        await interaction.response.send_message(embed=combat_embed(combat), view=view)
        view.message = await interaction.original_response()

    def _dungeon_choices(self, user_id: int, current: str) -> list[app_commands.Choice[int]]:
        player = self.state.player_for(user_id)
        level = player.level if player is not None else 1
        search = current.lower()
        choices: list[app_commands.Choice[int]] = []
        for dungeon in self.catalog.dungeons:
            if search and search not in dungeon.name.lower() and search != str(dungeon.id):
                continue
            lock = "" if level >= dungeon.req_level else " (locked)"
            choices.append(
                app_commands.Choice(
                    name=f"{dungeon.name} · Lv {dungeon.req_level}{lock}", value=dungeon.id
                )
            )
        return choices[:25]

    @fight.autocomplete("dungeon")
    async def fight_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[int]]:
        return self._dungeon_choices(interaction.user.id, current)

    @app_commands.command(name="autobattle", description="Farm a dungeon automatically")
    @app_commands.describe(dungeon="Dungeon to farm")
    async def autobattle(self, interaction: discord.Interaction, dungeon: int) -> None:
        session, player, target = await self._prepare(interaction, dungeon)
        if session is None or player is None or target is None:
            return

        user_id = interaction.user.id
        session.in_combat = True
        battle = AutoCombat(player, target, self.catalog)
        view = AutoBattleView(user_id, battle)
        await interaction.response.send_message(embed=autobattle_embed(battle), view=view)
        view.message = await interaction.original_response()
        self._auto_tasks[user_id] = asyncio.create_task(self._run_auto(user_id, battle, view))

    @autobattle.autocomplete("dungeon")
    async def autobattle_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[int]]:
        return self._dungeon_choices(interaction.user.id, current)

    async def _run_auto(self, user_id: int, battle: AutoCombat, view: AutoBattleView) -> None:
        kills = battle.kills
        try:
            while not battle.halted:
                await asyncio.sleep(self.config.auto_combat_tick)
                battle.tick()
                if battle.kills != kills:
                    kills = battle.kills
                    await self.persist(battle.player)
                if view.message is None:
                    continue
                if battle.halted:
                    view.disable_all()
                    view.stop()
                try:
                    await view.message.edit(embed=autobattle_embed(battle), view=view)
                except discord.HTTPException:
                    log.debug("Failed to refresh auto battle for %s", user_id, exc_info=True)
        finally:
            self._auto_tasks.pop(user_id, None)
            self._release(user_id)
            log.info(
                "%s left auto battle in %s after %s kills",
                battle.player.username,
                battle.dungeon.name,
                battle.kills,
            )
            await self.persist(battle.player)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(CombatCog(bot))
