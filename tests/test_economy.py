from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.game import (
    GameState,
    buy_item,
    can_enter_dungeon,
    drink_potion,
    eat_item,
    equip_item,
    exchange_gold,
    heal_at_inn,
    rank_players,
    sell_item,
    unequip_item,
    use_item,
)
from darkrpg.models.catalog import BuffKind
from darkrpg.models.players import Player, new_player


def _player(catalog, **overrides) -> Player:
    player = new_player("Shopper", catalog.shop_stock)
    for key, value in overrides.items():
        setattr(player, key, value)
    return player


def test_new_player_gets_private_shop_stock(catalog) -> None:
    first = new_player("A", catalog.shop_stock)
    second = new_player("B", catalog.shop_stock)

    first.shop_stock["Old Cheese"] -= 1

    assert second.shop_stock["Old Cheese"] == 50
    assert first.inventory == ["Old Cheese", "Old Cheese"]


def test_buy_decrements_stock_and_gold(catalog) -> None:
    player = _player(catalog, gold=100)

    result = buy_item(player, "Rusty Sword", catalog)

    assert result.success
    assert player.gold == 50
    assert player.shop_stock["Rusty Sword"] == 4
    assert "Rusty Sword" in player.inventory


def test_buy_failures_leave_player_untouched(catalog) -> None:
    player = _player(catalog, gold=10)
    player.shop_stock["Old Cheese"] = 0

    poor = buy_item(player, "Rusty Sword", catalog)
    sold_out = buy_item(player, "Old Cheese", catalog)
    unknown = buy_item(player, "Excalibur", catalog)

    assert (poor.message, sold_out.message) == ("Not enough gold!", "Out of stock!")
    assert not unknown.success
    assert player.gold == 10
    assert player.inventory == ["Old Cheese", "Old Cheese"]


def test_sell_removes_one_copy(catalog) -> None:
    player = _player(catalog)

    assert sell_item(player, "Old Cheese", catalog).success
    assert player.gold == 10
    assert player.inventory == ["Old Cheese"]
    assert not sell_item(player, "Dragon Blade", catalog).success


def test_sell_unknown_item_uses_fallback_price(catalog) -> None:
    player = _player(catalog, inventory=["Odd Pebble"])

    assert sell_item(player, "Odd Pebble", catalog).success
    assert player.gold == 1


def test_equip_swaps_previous_item_back(catalog) -> None:
    player = _player(catalog, inventory=["Rusty Sword", "Pickaxe"])

    assert equip_item(player, "Rusty Sword", catalog).success
    assert equip_item(player, "Pickaxe", catalog).success

    assert player.equipment.weapon == "Pickaxe"
    assert player.inventory == ["Rusty Sword"]
    assert not equip_item(player, "Rat Tail", catalog).success


def test_unequip_returns_item(catalog) -> None:
    player = _player(catalog, inventory=[])
    player.equipment.set("armor", "Chainmail")

    assert unequip_item(player, "armor").success
    assert player.inventory == ["Chainmail"]
    assert player.equipment.armor is None
    assert not unequip_item(player, "armor").success
    assert not unequip_item(player, "boots").success


def test_drink_potion_adds_timed_buff(catalog) -> None:
    player = _player(catalog, inventory=["Minor XP Potion"])

    result = drink_potion(player, "Minor XP Potion", catalog, now=1_000.0)

    assert result.success
    (buff,) = player.active_buffs
    assert buff.kind is BuffKind.XP
    assert buff.multiplier == pytest.approx(1.25)
    assert buff.expires_at == pytest.approx(1_000.0 + 25 * 60)
    assert player.inventory == []


def test_eat_heals_up_to_max(catalog) -> None:
    player = _player(catalog, current_hp=48)

    assert eat_item(player, "Old Cheese", catalog).success
    assert player.current_hp == 50
    assert player.inventory == ["Old Cheese"]
    assert not eat_item(player, "Old Cheese", catalog).success
    assert player.inventory == ["Old Cheese"]


def test_use_dispatches_on_item_type(catalog, scripted) -> None:
    player = _player(catalog, inventory=["Common Chest", "Minor Speed Potion", "Lucky Ring"])

    chest = use_item(player, "Common Chest", catalog, 0.0, scripted(randoms=[0.9, 0.9], uniforms=[30.0, 6.0]))
    potion = use_item(player, "Minor Speed Potion", catalog, 0.0)
    ring = use_item(player, "Lucky Ring", catalog, 0.0)

    assert chest.success and chest.message.startswith("Opened Common Chest")
    assert potion.success and player.active_buffs[0].kind is BuffKind.SPEED
    assert ring.success and player.equipment.accessory == "Lucky Ring"
    assert not use_item(player, "Rat Tail", catalog, 0.0).success


def test_inn_heal_costs_one_gold_per_hp(catalog) -> None:
    player = _player(catalog, current_hp=20, gold=29)

    assert not heal_at_inn(player).success
    player.gold = 30
    assert heal_at_inn(player).success
    assert (player.current_hp, player.gold) == (50, 0)
    assert not heal_at_inn(player).success


def test_exchange_gold_for_diamonds(catalog) -> None:
    player = _player(catalog, gold=2_500)

    assert exchange_gold(player, 2).success
    assert (player.gold, player.diamonds) == (500, 2)
    assert not exchange_gold(player).success
    assert not exchange_gold(player, 0).success


def test_dungeon_gate(catalog) -> None:
    player = _player(catalog)

    assert can_enter_dungeon(player, catalog.dungeon(0)).success
    assert not can_enter_dungeon(player, catalog.dungeon(1)).success
    player.level = 3
    assert can_enter_dungeon(player, catalog.dungeon(1)).success


def test_rankings_order_by_level_then_xp() -> None:
    players = [
        Player(username="low", level=2),
        Player(username="mid", level=5, current_xp=10),
        Player(username="top", level=5, current_xp=90),
    ]

    ranked = rank_players(players, limit=2)

    assert [player.username for player in ranked] == ["top", "mid"]
    assert ranked[0].hunter_rank == "D"


def test_game_state_session_binding(catalog) -> None:
    state = GameState(catalog)
    player = state.create_player("Solo")

    state.bind(1, player, channel_id=10)
    state.bind(2, player)

    assert state.session_for(1) is None
    assert state.player_for(2) is player
    assert state.unbind(2) is player
    assert state.players == {}
