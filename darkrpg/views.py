"""Discord embeds and interactive views."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, Optional, Sequence

import discord

from .buffs import remaining_seconds
from .combat import AutoCombat, ManualCombat
from .constants import CURRENCY_EMOJI_TEXT, DIAMOND_EMOJI_TEXT
from .game import effective_stats
from .models.catalog import Catalog, Dungeon, ItemType
from .models.combat import CombatOutcome, LogEntry, LogKind, TurnPhase
from .models.players import Player
from .notifications import NoticeCategory
from .season import SeasonTrack, is_claimable
from .utils import format_counts, format_duration, format_number, progress_bar

log = logging.getLogger(__name__)

_CATEGORY_COLOURS = {
    NoticeCategory.INFO: discord.Colour.blurple(),
    NoticeCategory.SUCCESS: discord.Colour.green(),
    NoticeCategory.ERROR: discord.Colour.red(),
    NoticeCategory.LOOT: discord.Colour.gold(),
}

_LOG_PREFIXES = {
    LogKind.INFO: "•",
    LogKind.PLAYER: "⚔️",
    LogKind.ENEMY: "🩸",
    LogKind.CRIT: "💥",
    LogKind.GOLD: "🪙",
    LogKind.LOOT: "🎁",
}


def category_colour(category: NoticeCategory | None) -> discord.Colour:
    return _CATEGORY_COLOURS.get(category or NoticeCategory.INFO, discord.Colour.blurple())


def _format_log(entries: Iterable[LogEntry], *, limit: int = 12) -> str:
    lines = [f"{_LOG_PREFIXES.get(entry.kind, '•')} {entry.text}" for entry in entries]
    if not lines:
        return "—"
    return "\n".join(lines[-limit:])


def profile_embed(player: Player, catalog: Catalog, *, now: float | None = None) -> discord.Embed:
    now = time.time() if now is None else now
    stats = effective_stats(player, catalog)
    embed = discord.Embed(
        title=f"[{player.hunter_rank}] {player.username}",
        description=f"Level {player.level} hunter",
        colour=discord.Colour.dark_purple(),
    )
    embed.add_field(
        name="Health",
        value=f"{progress_bar(player.current_hp / max(1, player.max_hp))} {player.current_hp}/{player.max_hp}",
        inline=False,
    )
    embed.add_field(
        name="Experience",
        value=f"{progress_bar(player.current_xp / max(1, player.max_xp))} {player.current_xp}/{player.max_xp}",
        inline=False,
    )
    embed.add_field(
        name="Stats",
        value="\n".join(f"**{label}** {value}" for label, value in stats.display().items()),
        inline=True,
    )
    embed.add_field(
        name="Wallet",
        value=(
            f"{CURRENCY_EMOJI_TEXT} {format_number(player.gold)}\n"
            f"{DIAMOND_EMOJI_TEXT} {format_number(player.diamonds)}"
        ),
        inline=True,
    )
    equipment = "\n".join(
        f"**{slot.value.title()}**: {name or '—'}" for slot, name in player.equipment.items()
    )
    embed.add_field(name="Equipment", value=equipment, inline=False)

    action = player.active_action
    if action is not None:
        embed.add_field(
            name=action.kind.label,
            value=(
                f"{progress_bar(action.progress)} "
                f"{format_duration(max(0.0, action.remaining_time))} left (base speed)"
            ),
            inline=False,
        )
    if player.active_buffs:
        embed.add_field(
            name="Buffs",
            value="\n".join(
                f"{buff.name}: {buff.multiplier:g}x {buff.kind.value} "
                f"({format_duration(remaining_seconds(buff, now))})"
                for buff in player.active_buffs
            ),
            inline=False,
        )
    return embed


def inventory_embed(player: Player, catalog: Catalog, *, kind: ItemType | None = None) -> discord.Embed:
    counts = player.inventory_counts()
    if kind is not None:
        counts = {
            name: amount
            for name, amount in counts.items()
            if (details := catalog.item(name)) is not None and details.type is kind
        }
    lines = []
    for name, entry in zip(sorted(counts), format_counts(counts)):
        details = catalog.item(name)
        suffix = f" — {details.type.value}, {details.price}g" if details else ""
        lines.append(f"{entry}{suffix}")
    title = "Inventory" if kind is None else f"Inventory: {kind.value}"
    return discord.Embed(
        title=title,
        description="\n".join(lines[:40]) or "Your bag is empty.",
        colour=discord.Colour.dark_teal(),
    )


def shop_embed(player: Player, catalog: Catalog) -> discord.Embed:
    embed = discord.Embed(
        title="Merchant",
        description=f"You have {CURRENCY_EMOJI_TEXT} {format_number(player.gold)}",
        colour=discord.Colour.gold(),
    )
    lines = []
    for name, stock in player.shop_stock.items():
        details = catalog.item(name)
        if details is None:
            continue
        extra = details.stats.summary() if details.stats is not None else ""
        stock_text = f"{stock} left" if stock > 0 else "sold out"
        line = f"**{name}** — {format_number(details.price)}g ({stock_text})"
        if extra:
            line += f"\n  {extra}"
        lines.append(line)
    embed.add_field(name="Wares", value="\n".join(lines[:25]) or "Nothing for sale.", inline=False)
    return embed


def dungeons_embed(player: Player, catalog: Catalog) -> discord.Embed:
    embed = discord.Embed(title="Dungeons", colour=discord.Colour.dark_red())
    for dungeon in catalog.dungeons:
        locked = player.level < dungeon.req_level
        drops = ", ".join(f"{drop.item} {drop.chance:g}%" for drop in dungeon.drops) or "none"
        enemy = dungeon.enemy
        embed.add_field(
            name=f"{'🔒' if locked else '⚔️'} #{dungeon.id} {dungeon.name} (Lv {dungeon.req_level})",
            value=(
                f"{enemy.name}: {enemy.hp} HP, {enemy.attack} ATK\n"
                f"Rewards: {enemy.xp} XP, {enemy.gold}g\nDrops: {drops}"
            ),
            inline=False,
        )
    return embed


def season_embed(player: Player, catalog: Catalog) -> discord.Embed:
    config = catalog.season
    stats = player.season_stats
    embed = discord.Embed(
        title=config.name,
        description=(
            f"Level {stats.level}/{config.max_level} "
            f"{progress_bar(stats.xp / config.xp_per_level)} {stats.xp}/{config.xp_per_level} XP\n"
            f"Pass: {'Premium' if stats.is_premium else 'Free'}"
        ),
        colour=discord.Colour.purple(),
    )
    lines = []
    for reward in config.rewards:
        free_mark = "✅" if reward.level in stats.claimed_free else (
            "🎁" if is_claimable(stats, reward.level, SeasonTrack.FREE) else "🔒"
        )
        premium_mark = "✅" if reward.level in stats.claimed_premium else (
            "🎁" if is_claimable(stats, reward.level, SeasonTrack.PREMIUM) else "🔒"
        )
        lines.append(
            f"`{reward.level:>2}` {free_mark} {reward.free_amount}x {reward.free_item}"
            f" | {premium_mark} {reward.premium_amount}x {reward.premium_item}"
        )
    embed.add_field(name="Rewards (free | premium)", value="\n".join(lines[:20]), inline=False)
    return embed


def rankings_embed(players: Sequence[Player]) -> discord.Embed:
    lines = [
        f"`{position:>2}` [{player.hunter_rank}] **{player.username}** — Lv {player.level}"
        for position, player in enumerate(players, start=1)
    ]
    return discord.Embed(
        title="Hunter Rankings",
        description="\n".join(lines) or "No hunters yet.",
        colour=discord.Colour.dark_gold(),
    )


def combat_embed(combat: ManualCombat) -> discord.Embed:
    enemy = combat.enemy
    player = combat.player
    if combat.outcome is CombatOutcome.VICTORY:
        colour = discord.Colour.green()
    elif combat.outcome is CombatOutcome.DEFEAT:
        colour = discord.Colour.red()
    else:
        colour = discord.Colour.dark_red()
    embed = discord.Embed(title=f"{combat.dungeon.name}: {enemy.name}", colour=colour)
    embed.add_field(
        name=player.username,
        value=f"{progress_bar(player.current_hp / max(1, player.max_hp))} {player.current_hp}/{player.max_hp}",
        inline=True,
    )
    embed.add_field(
        name=enemy.name,
        value=f"{progress_bar(enemy.hp / max(1, enemy.max_hp))} {enemy.hp}/{enemy.max_hp}",
        inline=True,
    )
    embed.add_field(name="Battle log", value=_format_log(combat.log), inline=False)
    if combat.phase is TurnPhase.ENEMY:
        embed.set_footer(text=f"{enemy.name} is attacking...")
    elif combat.ended:
        embed.set_footer(text=f"Battle over: {combat.outcome.value if combat.outcome else 'ended'}")
    return embed


def autobattle_embed(battle: AutoCombat) -> discord.Embed:
    player = battle.player
    embed = discord.Embed(
        title=f"Auto battle: {battle.dungeon.name}",
        colour=discord.Colour.dark_orange() if not battle.halted else discord.Colour.dark_grey(),
    )
    embed.add_field(
        name=player.username,
        value=f"{progress_bar(player.current_hp / max(1, player.max_hp))} {player.current_hp}/{player.max_hp}",
        inline=True,
    )
    if battle.enemy is not None:
        enemy = battle.enemy
        enemy_text = f"{progress_bar(enemy.hp / max(1, enemy.max_hp))} {enemy.hp}/{enemy.max_hp}"
        embed.add_field(name=enemy.name, value=enemy_text, inline=True)
    else:
        embed.add_field(name="Status", value=battle.state.value.title(), inline=True)
    embed.add_field(name="Kills", value=str(battle.kills), inline=True)
    embed.add_field(name="Log", value=_format_log(battle.log, limit=10), inline=False)
    return embed


def notice_embed(message: str, category: NoticeCategory | None) -> discord.Embed:
    return discord.Embed(description=message, colour=category_colour(category))


class OwnedView(discord.ui.View):
    """Base view that restricts interactions to a single Discord user."""

    def __init__(self, owner_id: int | None, *, timeout: float | None = 120.0) -> None:
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.message: Optional[discord.Message] = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:  # type: ignore[override]
        if self.owner_id is None or interaction.user.id == self.owner_id:
            return True
        await interaction.response.send_message(
            "Only the hunter who opened these controls may use them.",
            ephemeral=True,
        )
        return False

    def disable_all(self) -> None:
        for child in self.children:
            if isinstance(child, (discord.ui.Button, discord.ui.Select)):
                child.disabled = True


CombatFinished = Callable[[ManualCombat], Awaitable[None]]


class CombatView(OwnedView):
    """Attack / Flee controls for a manual encounter."""

    def __init__(
        self,
        owner_id: int,
        combat: ManualCombat,
        *,
        on_finish: CombatFinished,
        enemy_delay: float = 0.8,
        timeout: float = 300.0,
    ) -> None:
        super().__init__(owner_id, timeout=timeout)
        self.combat = combat
        self._on_finish = on_finish
        self._enemy_delay = enemy_delay
        self._finished = False

    async def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self.disable_all()
        self.stop()
        await self._on_finish(self.combat)

    async def _refresh(self, interaction: discord.Interaction | None = None) -> None:
        embed = combat_embed(self.combat)
        try:
            if interaction is not None and not interaction.response.is_done():
                await interaction.response.edit_message(embed=embed, view=self)
            elif self.message is not None:
                await self.message.edit(embed=embed, view=self)
        except discord.HTTPException:
            log.debug("Failed to refresh combat message", exc_info=True)

    @discord.ui.button(label="Attack", style=discord.ButtonStyle.danger, emoji="⚔️")
    async def attack(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        if self.combat.phase is not TurnPhase.PLAYER:
            await interaction.response.defer()
            return
        self.combat.player_attack()
        if self.combat.ended:
            await self._finish()
            await self._refresh(interaction)
            return
        button.disabled = True
        await self._refresh(interaction)
        await asyncio.sleep(self._enemy_delay)
        self.combat.enemy_turn()
        button.disabled = False
        if self.combat.ended:
            await self._finish()
        await self._refresh()

    @discord.ui.button(label="Flee", style=discord.ButtonStyle.secondary, emoji="🏃")
    async def flee(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.combat.flee()
        await self._finish()
        await self._refresh(interaction)

    async def on_timeout(self) -> None:
        if not self._finished:
            self.combat.flee()
            await self._finish()
            await self._refresh()


class AutoBattleView(OwnedView):
    """Stop button for a running auto battle."""

    def __init__(self, owner_id: int, battle: AutoCombat, *, timeout: float | None = None) -> None:
        super().__init__(owner_id, timeout=timeout)
        self.battle = battle

    @discord.ui.button(label="Stop", style=discord.ButtonStyle.secondary, emoji="⏹️")
    async def stop_battle(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.battle.stop()
        self.disable_all()
        self.stop()
        await interaction.response.edit_message(embed=autobattle_embed(self.battle), view=self)


class ConfirmView(OwnedView):
    """Yes/No prompt; ``confirmed`` is ``None`` when the prompt timed out."""

    def __init__(self, owner_id: int, *, timeout: float = 60.0) -> None:
        super().__init__(owner_id, timeout=timeout)
        self.confirmed: Optional[bool] = None

    @discord.ui.button(label="Confirm", style=discord.ButtonStyle.success)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.confirmed = True
        self.disable_all()
        self.stop()
        await interaction.response.edit_message(view=self)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.confirmed = False
        self.disable_all()
        self.stop()
        await interaction.response.edit_message(view=self)


__all__ = [
    "AutoBattleView",
    "CombatView",
    "ConfirmView",
    "OwnedView",
    "autobattle_embed",
    "category_colour",
    "combat_embed",
    "dungeons_embed",
    "inventory_embed",
    "notice_embed",
    "profile_embed",
    "rankings_embed",
    "season_embed",
    "shop_embed",
]
