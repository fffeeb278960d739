"""Game-rule constants shared by the engine, the cogs and the tests."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .models.players import ActionKind

SECONDS_PER_MINUTE = 60

# Action speed bases. The legacy boost replaces the base, buffs multiply it.
LEGACY_BOOST_SPEED = 3.0
ONLINE_BASE_SPEED = 1.25
OFFLINE_BASE_SPEED = 1.0

# Minutes per training session.
TRAINING_MINUTES: Mapping[ActionKind, int] = MappingProxyType(
    {
        ActionKind.TRAIN_ATTACK: 5,
        ActionKind.TRAIN_DEFENSE: 5,
        ActionKind.TRAIN_DODGE: 3,
        ActionKind.TRAIN_CRIT: 10,
    }
)

TRAIN_ATTACK_GAIN = 1
TRAIN_DEFENSE_GAIN = 1
TRAIN_DODGE_GAIN = 0.1
TRAIN_CRIT_GAIN = 0.5

# Missing HP restored per minute of rest.
REST_HP_PER_MINUTE = 10

# Remaining minutes bought by one diamond when finishing an action early.
FINISH_MINUTES_PER_DIAMOND = 5

# Levelling.
XP_GROWTH_FACTOR = 1.5
LEVEL_UP_HP_GAIN = 10
LEVEL_UP_ATTACK_GAIN = 1
LEVEL_UP_DEFENSE_GAIN = 1

# Combat.
DAMAGE_VARIANCE = (0.8, 1.2)
CRIT_DAMAGE_MULTIPLIER = 2
DEFENSE_DIVISOR = 4
MIN_ENEMY_DAMAGE = 1
AUTO_COMBAT_SPAWN_THRESHOLD = 0.3
AUTO_COMBAT_LOG_LINES = 50
DEFEAT_HP = 1

# Global chest roll after every victory: upper bounds (percent) per chest.
GLOBAL_CHEST_LADDER: tuple[tuple[float, str], ...] = (
    (5.0, "Common Chest"),
    (8.0, "Uncommon Chest"),
    (9.0, "Rare Chest"),
)

CHEST_TIERS: Mapping[str, int] = MappingProxyType(
    {
        "Common Chest": 1,
        "Uncommon Chest": 2,
        "Rare Chest": 3,
        "Legendary Chest": 5,
    }
)
CHEST_GOLD_RANGE = (10, 60)
CHEST_XP_RANGE = (5, 25)
CHEST_ITEM_CHANCE_PER_TIER = 0.3
CHEST_POTION_CHANCE_PER_TIER = 0.1
CHEST_ITEM_PRICE_PER_TIER = 3000
CHEST_MINOR_POTIONS = ("Minor XP Potion", "Minor Speed Potion")
CHEST_MAJOR_POTIONS = ("Major XP Potion", "Major Speed Potion")
# Chests above this tier may also roll the major potions.
CHEST_MAJOR_POTION_TIER = 2

# Season pass.
SEASON_XP_PER_KILL = 5
SEASON_SKIP_COST = 50

# Economy.
INN_GOLD_PER_HP = 1
GOLD_PER_DIAMOND = 1000
SELL_PRICE_FALLBACK = 1

CURRENCY_EMOJI_TEXT = "\U0001fa99"
DIAMOND_EMOJI_TEXT = "\U0001f48e"
