"""Combat resolution for manual (turn-based) and automatic (idle) battles."""

from __future__ import annotations

import logging
import math
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from .constants import (
    AUTO_COMBAT_LOG_LINES,
    AUTO_COMBAT_SPAWN_THRESHOLD,
    CRIT_DAMAGE_MULTIPLIER,
    DAMAGE_VARIANCE,
    DEFEAT_HP,
    DEFENSE_DIVISOR,
    MIN_ENEMY_DAMAGE,
)
from .game import effective_stats
from .loot import VictoryReward, apply_level_ups, roll_victory_reward
from .models.catalog import Catalog, Dungeon
from .models.combat import (
    CombatOutcome,
    CombatStats,
    EnemyState,
    LogEntry,
    LogKind,
    SearchState,
    Strike,
    TurnPhase,
)
from .models.players import Player
from .season import award_season_xp

log = logging.getLogger(__name__)


def roll_player_strike(stats: CombatStats, rng: random.Random | None = None) -> Strike:
    rng = rng or random
    critical = rng.random() * 100 < stats.crit_chance
    damage = math.floor(stats.attack * rng.uniform(*DAMAGE_VARIANCE))
    if critical:
        damage *= CRIT_DAMAGE_MULTIPLIER
    return Strike(damage=damage, critical=critical)


def roll_enemy_strike(
    enemy_attack: float,
    stats: CombatStats,
    rng: random.Random | None = None,
) -> Strike:
    rng = rng or random
    if rng.random() * 100 > 100 - stats.dodge:
        return Strike(damage=0, missed=True)
    raw = math.floor(enemy_attack * rng.uniform(*DAMAGE_VARIANCE))
    mitigation = math.floor(stats.defense / DEFENSE_DIVISOR)
    return Strike(damage=max(MIN_ENEMY_DAMAGE, raw - mitigation))


@dataclass(slots=True)
class VictoryReport:
    reward: VictoryReward
    levels_gained: int = 0
    season_level_up: bool = False

    def log_entries(self) -> list[LogEntry]:
        reward = self.reward
        entries = [
            LogEntry("Victory!", LogKind.GOLD),
            LogEntry(f"Gained {reward.gold} Gold and {reward.xp} XP.", LogKind.GOLD),
        ]
        if reward.xp_multiplier > 1:
            entries.append(LogEntry(f"(XP Boosted {reward.xp_multiplier:g}x)", LogKind.INFO))
        for item in reward.items:
            entries.append(LogEntry(f"Looted: {item}", LogKind.LOOT))
        if reward.chest:
            entries.append(LogEntry(f"Found a {reward.chest}!", LogKind.LOOT))
        if self.season_level_up:
            entries.append(LogEntry("SEASON PASS LEVEL UP!", LogKind.INFO))
        if self.levels_gained:
            entries.append(LogEntry(f"LEVEL UP! +{self.levels_gained} level(s).", LogKind.INFO))
        return entries


def resolve_victory(
    player: Player,
    dungeon: Dungeon,
    catalog: Catalog,
    rng: random.Random | None = None,
) -> VictoryReport:
    """Fold one kill into ``player``: gold, experience, loot and season progress."""

    reward = roll_victory_reward(dungeon, player.active_buffs, rng)
    player.gold += reward.gold
    player.current_xp += reward.xp
    for item in reward.items:
        player.add_items(item)
    if reward.chest:
        player.add_items(reward.chest)
    season_level_up = award_season_xp(player.season_stats, catalog.season)
    levels = apply_level_ups(player)
    if levels:
        log.debug("%s reached level %s in %s", player.username, player.level, dungeon.name)
    return VictoryReport(reward=reward, levels_gained=levels, season_level_up=season_level_up)


def resolve_defeat(player: Player) -> None:
    player.current_hp = DEFEAT_HP


class ManualCombat:
    """One turn-based encounter against a dungeon's enemy.

    The player's stats are aggregated once when the encounter starts.
    """

    def __init__(
        self,
        player: Player,
        dungeon: Dungeon,
        catalog: Catalog,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.player = player
        self.dungeon = dungeon
        self.catalog = catalog
        self.rng = rng or random
        self.stats = effective_stats(player, catalog)
        self.enemy = EnemyState.from_template(dungeon.enemy)
        self.phase = TurnPhase.PLAYER
        self.outcome: Optional[CombatOutcome] = None
        self.report: Optional[VictoryReport] = None
        self.log: List[LogEntry] = [LogEntry(f"A wild {self.enemy.name} appears!")]

    @property
    def ended(self) -> bool:
        return self.phase is TurnPhase.ENDED

    def _emit(self, entries: list[LogEntry]) -> list[LogEntry]:
        self.log.extend(entries)
        return entries

    def player_attack(self) -> list[LogEntry]:
        if self.phase is not TurnPhase.PLAYER:
            return []
        strike = roll_player_strike(self.stats, self.rng)
        entries = []
        if strike.critical:
            entries.append(LogEntry("CRITICAL HIT!", LogKind.CRIT))
        self.enemy.hp = max(0, self.enemy.hp - strike.damage)
        entries.append(LogEntry(f"You dealt {strike.damage} damage!", LogKind.PLAYER))
        if self.enemy.defeated:
            self.phase = TurnPhase.ENDED
            self.outcome = CombatOutcome.VICTORY
            self.report = resolve_victory(self.player, self.dungeon, self.catalog, self.rng)
            entries.extend(self.report.log_entries())
        else:
            self.phase = TurnPhase.ENEMY
        return self._emit(entries)

    def enemy_turn(self) -> list[LogEntry]:
        if self.phase is not TurnPhase.ENEMY:
            return []
        strike = roll_enemy_strike(self.enemy.attack, self.stats, self.rng)
        if strike.missed:
            self.phase = TurnPhase.PLAYER
            return self._emit([LogEntry(f"You dodged {self.enemy.name}'s attack!")])
        self.player.current_hp = max(0, self.player.current_hp - strike.damage)
        entries = [LogEntry(f"{self.enemy.name} dealt {strike.damage} damage!", LogKind.ENEMY)]
        if self.player.current_hp <= 0:
            self.phase = TurnPhase.ENDED
            self.outcome = CombatOutcome.DEFEAT
            resolve_defeat(self.player)
            entries.append(LogEntry("You were defeated...", LogKind.ENEMY))
        else:
            self.phase = TurnPhase.PLAYER
        return self._emit(entries)

    def exchange(self) -> list[LogEntry]:
        """Player attack followed by the enemy's reply when it survives."""

        entries = self.player_attack()
        entries.extend(self.enemy_turn())
        return entries

    def flee(self) -> list[LogEntry]:
        if self.ended:
            return []
        self.phase = TurnPhase.ENDED
        self.outcome = CombatOutcome.FLED
        return self._emit([LogEntry("You fled the battle.")])


class AutoCombat:
    """Idle farming loop: search, fight, collect, repeat until the player falls.

    Each :meth:`tick` is one beat of the fixed cadence. Stats are aggregated
    again on every tick so equipment changes apply mid-run.
    """

    def __init__(
        self,
        player: Player,
        dungeon: Dungeon,
        catalog: Catalog,
        *,
        rng: random.Random | None = None,
        log_lines: int = AUTO_COMBAT_LOG_LINES,
    ) -> None:
        self.player = player
        self.dungeon = dungeon
        self.catalog = catalog
        self.rng = rng or random
        self.state = SearchState.SEARCHING
        self.enemy: Optional[EnemyState] = None
        self.kills = 0
        self.halted = False
        self.stats = effective_stats(player, catalog)
        self.log: Deque[LogEntry] = deque(maxlen=log_lines)

    def _emit(self, entries: list[LogEntry]) -> list[LogEntry]:
        self.log.extend(entries)
        return entries

    def _halt(self) -> list[LogEntry]:
        self.halted = True
        self.enemy = None
        self.state = SearchState.SEARCHING
        return self._emit([LogEntry("You have fallen! Returning to the hub...", LogKind.ENEMY)])

    def stop(self) -> None:
        self.halted = True
        self.enemy = None

    def tick(self) -> list[LogEntry]:
        if self.halted:
            return []
        if self.player.current_hp <= 0:
            return self._halt()

        self.stats = effective_stats(self.player, self.catalog)

        if self.state is SearchState.SEARCHING or self.enemy is None:
            if self.rng.random() > AUTO_COMBAT_SPAWN_THRESHOLD:
                self.enemy = EnemyState.from_template(self.dungeon.enemy)
                self.state = SearchState.FIGHTING
                return self._emit([LogEntry(f"Found a {self.enemy.name}!")])
            return self._emit([LogEntry("Searching for enemies...")])

        entries: list[LogEntry] = []
        strike = roll_player_strike(self.stats, self.rng)
        self.enemy.hp = max(0, self.enemy.hp - strike.damage)
        if strike.critical:
            entries.append(LogEntry(f"CRITICAL HIT! Dealt {strike.damage} damage.", LogKind.CRIT))
        if self.enemy.defeated:
            report = resolve_victory(self.player, self.dungeon, self.catalog, self.rng)
            self.kills += 1
            self.enemy = None
            self.state = SearchState.SEARCHING
            entries.extend(report.log_entries())
            return self._emit(entries)

        if not strike.critical:
            entries.append(
                LogEntry(f"You hit {self.enemy.name} for {strike.damage}.", LogKind.PLAYER)
            )
        reply = roll_enemy_strike(self.enemy.attack, self.stats, self.rng)
        if reply.missed:
            entries.append(LogEntry(f"You dodged {self.enemy.name}'s attack!"))
            return self._emit(entries)
        self.player.current_hp = max(0, self.player.current_hp - reply.damage)
        entries.append(
            LogEntry(f"{self.enemy.name} hits you for {reply.damage}.", LogKind.ENEMY)
        )
        self._emit(entries)
        if self.player.current_hp <= 0:
            resolve_defeat(self.player)
            entries.extend(self._halt())
        return entries


__all__ = [
    "AutoCombat",
    "ManualCombat",
    "VictoryReport",
    "resolve_defeat",
    "resolve_victory",
    "roll_enemy_strike",
    "roll_player_strike",
]
