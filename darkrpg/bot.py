"""Entry point for the Dark RPG idle hunter Discord bot."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import discord
from discord.ext import commands

from .accounts import AccountService
from .config import BotConfig
from .game import GameState, tick
from .models import load_catalog
from .notifications import Notice, deliver
from .storage import DataStore
from .views import notice_embed

log = logging.getLogger(__name__)


class ChannelNoticeSink:
    """Posts notices to the channel a player last used, without waiting."""

    def __init__(self, bot: commands.Bot, channel_id: int, user_id: int) -> None:
        self.bot = bot
        self.channel_id = channel_id
        self.user_id = user_id

    def publish(self, notice: Notice) -> None:
        channel = self.bot.get_channel(self.channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            return
        task = asyncio.create_task(
            channel.send(
                content=f"<@{self.user_id}>",
                embed=notice_embed(notice.message, notice.category),
            )
        )
        task.add_done_callback(_log_send_failure)


def _log_send_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if isinstance(exc, discord.HTTPException):
        log.debug("Failed to deliver notice: %s", exc)
    elif exc is not None:
        log.error("Notice delivery crashed", exc_info=exc)


class DarkRPG(commands.Bot):
    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents)
        self.config = config
        self.state = GameState(load_catalog())
        self.store = DataStore()
        self.accounts = AccountService(self.store, self.state.catalog)
        self._synced = False
        self._tick_task: Optional[asyncio.Task[None]] = None

    async def setup_hook(self) -> None:
        await self.load_extension("darkrpg.cogs.account")
        await self.load_extension("darkrpg.cogs.hub")
        await self.load_extension("darkrpg.cogs.combat")
        self._tick_task = asyncio.create_task(self._tick_loop())

    async def close(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None
        for player in list(self.state.players.values()):
            await self.accounts.save(player)
        await super().close()

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_seconds)
            try:
                await self.tick_sessions(time.time())
            except Exception:
                log.exception("Tick loop iteration failed")

    async def tick_sessions(self, now: float) -> None:
        """Advance every logged-in player that is not fighting."""

        for user_id, session in self.state.active_sessions():
            if session.in_combat:
                continue
            player = self.state.players.get(session.username)
            if player is None:
                continue
            outcome = tick(player, now)
            if not outcome.changed:
                continue
            self.state.replace_player(outcome.player)
            if not outcome.notices:
                continue
            if session.channel_id is not None:
                deliver(ChannelNoticeSink(self, session.channel_id, user_id), outcome.notices)
            await self.accounts.save(outcome.player)

    async def on_ready(self) -> None:
        if not self._synced:
            await self.tree.sync()
            self._synced = True
            log.info("Application commands synced")
        if self.user:
            log.info("Connected as %s (%s)", self.user, self.user.id)


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = BotConfig.from_env()
    bot = DarkRPG(config)
    async with bot:
        await bot.start(config.token)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
