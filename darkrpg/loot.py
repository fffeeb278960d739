"""Victory rewards, chest opening and the level-up cascade."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .buffs import experience_multiplier
from .constants import (
    CHEST_GOLD_RANGE,
    CHEST_ITEM_CHANCE_PER_TIER,
    CHEST_ITEM_PRICE_PER_TIER,
    CHEST_MAJOR_POTION_TIER,
    CHEST_MAJOR_POTIONS,
    CHEST_MINOR_POTIONS,
    CHEST_POTION_CHANCE_PER_TIER,
    CHEST_TIERS,
    CHEST_XP_RANGE,
    GLOBAL_CHEST_LADDER,
    LEVEL_UP_ATTACK_GAIN,
    LEVEL_UP_DEFENSE_GAIN,
    LEVEL_UP_HP_GAIN,
    XP_GROWTH_FACTOR,
)
from .models.catalog import Catalog, DropEntry, Dungeon, ItemType
from .models.players import Buff, Player


@dataclass(slots=True)
class VictoryReward:
    gold: int
    xp: int
    xp_multiplier: float = 1.0
    items: List[str] = field(default_factory=list)
    chest: Optional[str] = None


@dataclass(slots=True)
class ChestReward:
    chest: str
    tier: int
    gold: int
    xp: int
    items: List[str] = field(default_factory=list)

    def summary(self) -> str:
        parts = [f"{self.gold} Gold", f"{self.xp} XP"]
        parts.extend(self.items)
        return f"Opened {self.chest}: " + ", ".join(parts)


def roll_drops(drops: Sequence[DropEntry], rng: random.Random | None = None) -> list[str]:
    """Roll every drop entry independently; one draw per entry."""

    rng = rng or random
    return [drop.item for drop in drops if rng.uniform(0, 100) <= drop.chance]


def roll_global_chest(rng: random.Random | None = None) -> str | None:
    rng = rng or random
    roll = rng.uniform(0, 100)
    for threshold, chest in GLOBAL_CHEST_LADDER:
        if roll <= threshold:
            return chest
    return None


def roll_victory_reward(
    dungeon: Dungeon,
    buffs: Sequence[Buff],
    rng: random.Random | None = None,
) -> VictoryReward:
    rng = rng or random
    multiplier = experience_multiplier(buffs)
    return VictoryReward(
        gold=dungeon.enemy.gold,
        xp=math.floor(dungeon.enemy.xp * multiplier),
        xp_multiplier=multiplier,
        items=roll_drops(dungeon.drops, rng),
        chest=roll_global_chest(rng),
    )


def apply_level_ups(player: Player) -> int:
    """Spend accumulated experience on levels; returns how many were gained.

    Each level costs the current requirement, which then grows by half.
    Gaining at least one level fully heals the player. A non-positive
    requirement never levels.
    """

    gained = 0
    while player.max_xp > 0 and player.current_xp >= player.max_xp:
        player.level += 1
        player.current_xp -= player.max_xp
        player.max_xp = math.floor(player.max_xp * XP_GROWTH_FACTOR)
        player.max_hp += LEVEL_UP_HP_GAIN
        player.attack += LEVEL_UP_ATTACK_GAIN
        player.defense += LEVEL_UP_DEFENSE_GAIN
        gained += 1
    if gained:
        player.restore_full_health()
    return gained


def chest_tier(chest: str) -> int:
    return CHEST_TIERS.get(chest, 1)


def _chest_item_pool(catalog: Catalog, tier: int) -> list[str]:
    limit = tier * CHEST_ITEM_PRICE_PER_TIER
    return [
        details.name
        for details in catalog.items.values()
        if details.type is not ItemType.CHEST and details.price < limit
    ]


def _chest_potion_pool(catalog: Catalog, tier: int) -> list[str]:
    names = list(CHEST_MINOR_POTIONS)
    if tier > CHEST_MAJOR_POTION_TIER:
        names.extend(CHEST_MAJOR_POTIONS)
    return [name for name in names if name in catalog.items]


def roll_chest(
    chest: str,
    catalog: Catalog,
    rng: random.Random | None = None,
) -> ChestReward:
    rng = rng or random
    tier = chest_tier(chest)
    reward = ChestReward(
        chest=chest,
        tier=tier,
        gold=math.floor(rng.uniform(*CHEST_GOLD_RANGE) * tier),
        xp=math.floor(rng.uniform(*CHEST_XP_RANGE) * tier),
    )
    if rng.random() < CHEST_ITEM_CHANCE_PER_TIER * tier:
        pool = _chest_item_pool(catalog, tier)
        if pool:
            reward.items.append(rng.choice(pool))
    if rng.random() < CHEST_POTION_CHANCE_PER_TIER * tier:
        pool = _chest_potion_pool(catalog, tier)
        if pool:
            reward.items.append(rng.choice(pool))
    return reward


def open_chest(
    player: Player,
    chest: str,
    catalog: Catalog,
    rng: random.Random | None = None,
) -> ChestReward | None:
    """Consume one ``chest`` from the inventory and grant its contents.

    Returns ``None`` without touching the player when no such chest is held.
    """

    details = catalog.item(chest)
    if details is not None and details.type is not ItemType.CHEST:
        return None
    if not player.has_item(chest):
        return None
    reward = roll_chest(chest, catalog, rng)
    player.remove_item(chest)
    player.gold += reward.gold
    player.current_xp += reward.xp
    for name in reward.items:
        player.add_items(name)
    apply_level_ups(player)
    return reward


__all__ = [
    "ChestReward",
    "VictoryReward",
    "apply_level_ups",
    "chest_tier",
    "open_chest",
    "roll_chest",
    "roll_drops",
    "roll_global_chest",
    "roll_victory_reward",
]
