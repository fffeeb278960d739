from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.loot import (
    apply_level_ups,
    chest_tier,
    open_chest,
    roll_chest,
    roll_drops,
    roll_global_chest,
    roll_victory_reward,
)
from darkrpg.models.catalog import BuffKind, DropEntry, ItemType
from darkrpg.models.players import Buff, Player


def test_certain_drops_always_land() -> None:
    drops = [DropEntry(item="Rat Tail", chance=100), DropEntry(item="Old Cheese", chance=100)]
    rng = random.Random(7)

    for _ in range(50):
        assert roll_drops(drops, rng) == ["Rat Tail", "Old Cheese"]


@pytest.mark.parametrize(
    ("roll", "expected"),
    [
        (0.0, "Common Chest"),
        (5.0, "Common Chest"),
        (7.5, "Uncommon Chest"),
        (8.9, "Rare Chest"),
        (9.01, None),
        (100.0, None),
    ],
)
def test_global_chest_ladder(scripted, roll: float, expected) -> None:
    assert roll_global_chest(scripted(uniforms=[roll])) == expected


def test_victory_reward_applies_xp_buffs(catalog, scripted) -> None:
    buffs = [
        Buff(id=1, kind=BuffKind.XP, multiplier=1.25, expires_at=99.0, name="Minor XP Potion"),
        Buff(id=2, kind=BuffKind.SPEED, multiplier=3.0, expires_at=99.0, name="Speed"),
    ]

    reward = roll_victory_reward(catalog.dungeon(0), buffs, scripted(uniforms=[99, 99, 99]))

    assert reward.xp == 37
    assert reward.xp_multiplier == pytest.approx(1.25)
    assert reward.gold == 5
    assert reward.items == []


def test_level_up_cascade() -> None:
    player = Player(username="Grinder", current_hp=10, current_xp=400)

    gained = apply_level_ups(player)

    assert gained == 2
    assert player.level == 3
    assert player.current_xp == 25
    assert player.max_xp == 337
    assert player.max_hp == 70
    assert player.current_hp == 70
    assert player.attack == pytest.approx(4.0)
    assert player.defense == pytest.approx(4.0)


def test_no_level_up_keeps_health() -> None:
    player = Player(username="Patient", current_hp=10, current_xp=149)

    assert apply_level_ups(player) == 0
    assert player.current_hp == 10


def test_zero_requirement_does_not_loop() -> None:
    player = Player(username="Corrupt", current_xp=10, max_xp=0)

    assert apply_level_ups(player) == 0
    assert player.level == 1
    assert player.current_xp == 10


def test_chest_tiers() -> None:
    assert chest_tier("Common Chest") == 1
    assert chest_tier("Uncommon Chest") == 2
    assert chest_tier("Rare Chest") == 3
    assert chest_tier("Legendary Chest") == 5


def test_open_common_chest(catalog, scripted) -> None:
    player = Player(username="Looter", inventory=["Common Chest", "Common Chest"])

    reward = open_chest(player, "Common Chest", catalog, scripted(randoms=[0.9, 0.9], uniforms=[20.5, 10.2]))

    assert reward is not None
    assert (reward.gold, reward.xp, reward.items) == (20, 10, [])
    assert player.gold == 20
    assert player.current_xp == 10
    assert player.inventory == ["Common Chest"]


def test_open_chest_without_one_changes_nothing(catalog, scripted) -> None:
    player = Player(username="Empty")

    assert open_chest(player, "Rare Chest", catalog, scripted()) is None
    assert player.gold == 0


def test_chest_xp_feeds_level_ups(catalog, scripted) -> None:
    player = Player(username="Lucky", current_xp=140, current_hp=5, inventory=["Rare Chest"])

    open_chest(player, "Rare Chest", catalog, scripted(randoms=[0.99, 0.99], uniforms=[10.0, 5.0]))

    assert player.level == 2
    assert player.current_xp == 5
    assert player.current_hp == player.max_hp


def test_rare_chest_item_and_potion_pools(catalog, scripted) -> None:
    reward = roll_chest("Rare Chest", catalog, scripted(randoms=[0.1, 0.1], uniforms=[10.0, 5.0]))

    assert len(reward.items) == 2
    item, potion = reward.items
    details = catalog.item(item)
    assert details.type is not ItemType.CHEST
    assert details.price < 3 * 3000
    assert potion == "Minor XP Potion"
