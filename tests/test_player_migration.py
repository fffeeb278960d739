import sys
from pathlib import Path
import importlib

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

import pytest
import tomllib

from darkrpg.loot import apply_level_ups
from darkrpg.models.players import (
    PLAYER_SCHEMA_VERSION,
    ActionKind,
    Player,
    migrate_player_payload,
)
from darkrpg.storage import CollectionConfig, MigrationContext, _write_toml


LEGACY_BROWSER_PAYLOAD = {
    "username": "Oldtimer",
    "level": 4,
    "currentHp": 90,
    "maxHp": 80,
    "currentXp": 12,
    "maxXp": 337,
    "attack": 6,
    "defense": 5,
    "dodge": 0.7,
    "critChance": 2,
    "gold": 420,
    "diamonds": 3,
    "inventory": ["Rat Tail", "Old Cheese"],
    "equipment": {"weapon": "Rusty Sword", "armor": None},
    "activeAction": {
        "type": "train_atk",
        "totalTime": 300000,
        "remainingTime": 120000,
        "lastTick": 1_700_000_000_000,
    },
    "boostExpires": 1_700_000_500_000,
    "activeBuffs": [
        {"id": 5, "type": "xp", "multiplier": 1.25, "expiresAt": 1_700_000_900_000, "name": "Minor XP Potion"}
    ],
    "seasonStats": {"level": 3, "xp": 40, "isPremium": True, "claimedFree": [2, 1, 2]},
}


def test_legacy_browser_payload_is_normalized() -> None:
    migrated = migrate_player_payload(LEGACY_BROWSER_PAYLOAD, default_shop_stock={"Old Cheese": 50})

    assert migrated["current_hp"] == 80
    assert migrated["crit_chance"] == 2
    assert migrated["shop_stock"] == {"Old Cheese": 50}
    assert migrated["equipment"] == {"weapon": "Rusty Sword", "armor": None, "accessory": None}
    assert migrated["active_action"] == {
        "kind": "train_atk",
        "total_time": 300.0,
        "remaining_time": 120.0,
        "last_tick": 1_700_000_000.0,
    }
    assert migrated["boost_expires"] == 1_700_000_500.0
    assert migrated["active_buffs"][0]["expires_at"] == 1_700_000_900.0
    assert migrated["season_stats"]["claimed_free"] == [1, 2]
    assert migrated["season_stats"]["claimed_premium"] == []
    assert migrated["season_stats"]["is_premium"] is True
    assert migrated["schema_version"] == PLAYER_SCHEMA_VERSION


def test_migration_is_idempotent() -> None:
    once = migrate_player_payload(LEGACY_BROWSER_PAYLOAD, default_shop_stock={"Old Cheese": 50})
    twice = migrate_player_payload(once, default_shop_stock={"Old Cheese": 1})

    assert twice == once


def test_empty_payload_gets_defaults() -> None:
    migrated = migrate_player_payload({"username": "Blank"})
    player = Player.from_mapping(migrated)

    assert player.level == 1
    assert (player.current_hp, player.max_hp) == (50, 50)
    assert player.active_action is None
    assert player.active_buffs == []
    assert player.equipment.equipped_names() == []


@pytest.mark.parametrize("bad", [0, -5, "nope"])
def test_non_positive_maximums_get_defaults(bad) -> None:
    player = Player.from_mapping(
        {"username": "Broken", "maxXp": bad, "maxHp": bad, "currentXp": 10, "currentHp": 20}
    )

    assert player.max_xp == 150
    assert player.max_hp == 50
    assert player.current_hp == 20
    assert apply_level_ups(player) == 0


def test_player_round_trips_through_mapping() -> None:
    player = Player.from_mapping(LEGACY_BROWSER_PAYLOAD)

    assert player.active_action.kind is ActionKind.TRAIN_ATTACK
    assert Player.from_mapping(player.to_mapping()) == player


def test_accounts_migration_fills_stored_records(tmp_path: Path) -> None:
    migration = importlib.import_module("migrations.accounts.0002_player_defaults")

    accounts_config = CollectionConfig(
        name="accounts",
        path="accountdata/accounts/{key}.toml",
        version=2,
        migration_key="accounts",
    )

    base = tmp_path
    account_dir = base / "accountdata/accounts"
    account_dir.mkdir(parents=True, exist_ok=True)
    record_path = account_dir / "Oldtimer.toml"
    _write_toml(
        record_path,
        {
            "password": "hunter2",
            "playerData": {"username": "Oldtimer", "level": 2, "gold": 15, "maxHp": 60},
        },
    )
    _write_toml(account_dir / "schema_version.toml", {"collections": {"accounts": 1}})

    context = MigrationContext(collection=accounts_config, base=base, scope_path=account_dir)

    migration.apply(context)

    updated = tomllib.load(record_path.open("rb"))

    assert updated["credential"] == "hunter2"
    assert "playerData" not in updated
    player = updated["player"]
    assert player["max_hp"] == 60
    assert player["gold"] == 15
    assert player["schema_version"] == PLAYER_SCHEMA_VERSION
    assert player["shop_stock"]["Old Cheese"] == 50
    versions = tomllib.load((account_dir / "schema_version.toml").open("rb"))
    assert versions == {"collections": {"accounts": 1}}
