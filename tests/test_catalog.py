from __future__ import annotations

import copy
import sys
import tomllib
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.models import ModelValidationError
from darkrpg.models.catalog import (
    DEFAULT_CATALOG_PATH,
    BuffKind,
    EquipmentSlot,
    ItemType,
    catalog_from_mapping,
)


@pytest.fixture
def document() -> dict:
    with DEFAULT_CATALOG_PATH.open("rb") as handle:
        return tomllib.load(handle)


def test_default_catalog_contents(catalog) -> None:
    assert [dungeon.id for dungeon in catalog.dungeons] == [0, 1, 2, 3, 4, 5]
    assert catalog.dungeon(5).req_level == 50
    assert catalog.dungeon(99) is None
    assert catalog.season.max_level == 20
    assert len(catalog.season.rewards) == 20
    assert catalog.season.reward_for(1).premium_item == "Common Chest"
    assert catalog.shop_stock["Old Cheese"] == 50


def test_item_details_and_slots(catalog) -> None:
    chainmail = catalog.item("Chainmail")
    potion = catalog.item("Minor Speed Potion")

    assert chainmail.slot is EquipmentSlot.ARMOR
    assert chainmail.stats.dodge == -2
    assert potion.type is ItemType.POTION
    assert potion.slot is None
    assert potion.stats.buff_type is BuffKind.SPEED
    assert potion.stats.grants_buff
    assert catalog.price_of("Nonexistent") == 1


def test_catalog_is_read_only(catalog) -> None:
    with pytest.raises(TypeError):
        catalog.shop_stock["Old Cheese"] = 0  # type: ignore[index]


def test_unknown_drop_reference_is_rejected(document: dict) -> None:
    broken = copy.deepcopy(document)
    broken["dungeons"][0]["drops"].append({"item": "Ghost Item", "chance": 10})

    with pytest.raises(ModelValidationError) as excinfo:
        catalog_from_mapping(broken)

    assert "Dungeon 'Rat Cave' drops unknown item 'Ghost Item'" in excinfo.value.errors


def test_item_typo_is_reported(document: dict) -> None:
    broken = copy.deepcopy(document)
    broken["items"]["Rat Tail"]["prise"] = 3

    with pytest.raises(ModelValidationError) as excinfo:
        catalog_from_mapping(broken)

    assert excinfo.value.key == "Rat Tail"
    assert any("Unknown field(s): prise" in error for error in excinfo.value.errors)


def test_drop_chance_must_be_percentage(document: dict) -> None:
    broken = copy.deepcopy(document)
    broken["dungeons"][1]["drops"][0]["chance"] = 140

    with pytest.raises(ModelValidationError):
        catalog_from_mapping(broken)


def test_potion_without_buff_is_rejected(document: dict) -> None:
    broken = copy.deepcopy(document)
    del broken["items"]["Minor XP Potion"]["stats"]

    with pytest.raises(ModelValidationError) as excinfo:
        catalog_from_mapping(broken)

    assert "Potion 'Minor XP Potion' is missing its buff stats" in excinfo.value.errors
