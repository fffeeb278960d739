"""Static game content: items, dungeons, shop stock and the season pass."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence

from ._validation import (
    FieldSpec,
    MappingSpec,
    ModelValidationError,
    ModelValidator,
    SequenceSpec,
    is_non_empty_str,
    is_non_negative_int,
    is_number,
    is_percentage,
)

log = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.toml"


class ItemType(str, Enum):
    """Every kind of item the catalog can describe."""

    MATERIAL = "material"
    WEAPON = "weapon"
    ARMOR = "armor"
    ACCESSORY = "accessory"
    CONSUMABLE = "consumable"
    CHEST = "chest"
    POTION = "potion"

    @classmethod
    def from_value(cls, value: "ItemType | str") -> "ItemType":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown item type: {value}") from exc


class EquipmentSlot(str, Enum):
    """Equipment positions on a player, one per equippable item type."""

    WEAPON = "weapon"
    ARMOR = "armor"
    ACCESSORY = "accessory"

    @classmethod
    def from_value(cls, value: "EquipmentSlot | str") -> "EquipmentSlot":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown equipment slot: {value}") from exc

    @classmethod
    def for_item_type(cls, item_type: ItemType) -> "EquipmentSlot | None":
        return _SLOT_BY_ITEM_TYPE.get(item_type)


_SLOT_BY_ITEM_TYPE: Mapping[ItemType, EquipmentSlot] = MappingProxyType(
    {
        ItemType.WEAPON: EquipmentSlot.WEAPON,
        ItemType.ARMOR: EquipmentSlot.ARMOR,
        ItemType.ACCESSORY: EquipmentSlot.ACCESSORY,
    }
)

EQUIPMENT_SLOT_ORDER: tuple[EquipmentSlot, ...] = tuple(EquipmentSlot)


class BuffKind(str, Enum):
    """What a timed buff multiplies."""

    XP = "xp"
    SPEED = "speed"

    @classmethod
    def from_value(cls, value: "BuffKind | str") -> "BuffKind":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown buff kind: {value}") from exc


@dataclass(frozen=True, slots=True)
class ItemStats:
    attack: float = 0.0
    defense: float = 0.0
    dodge: float = 0.0
    crit_chance: float = 0.0
    hp: int = 0
    buff_type: Optional[BuffKind] = None
    buff_multiplier: Optional[float] = None
    buff_duration: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, key: str | None = None) -> "ItemStats":
        payload = ItemStatsValidator.validate(data, key=key)
        buff_type = payload.get("buff_type")
        return cls(
            attack=float(payload.get("attack", 0)),
            defense=float(payload.get("defense", 0)),
            dodge=float(payload.get("dodge", 0)),
            crit_chance=float(payload.get("crit_chance", 0)),
            hp=int(payload.get("hp", 0)),
            buff_type=BuffKind.from_value(buff_type) if buff_type is not None else None,
            buff_multiplier=(
                float(payload["buff_multiplier"]) if "buff_multiplier" in payload else None
            ),
            buff_duration=(
                float(payload["buff_duration"]) if "buff_duration" in payload else None
            ),
        )

    @property
    def grants_buff(self) -> bool:
        return (
            self.buff_type is not None
            and self.buff_multiplier is not None
            and self.buff_duration is not None
        )

    def summary(self) -> str:
        parts = []
        for label, value in (
            ("ATK", self.attack),
            ("DEF", self.defense),
            ("Dodge", self.dodge),
            ("Crit", self.crit_chance),
        ):
            if value:
                suffix = "%" if label in {"Dodge", "Crit"} else ""
                parts.append(f"{label} {value:+g}{suffix}")
        if self.hp:
            parts.append(f"HP +{self.hp}")
        if self.grants_buff:
            parts.append(
                f"{self.buff_multiplier:g}x {self.buff_type.value} for {self.buff_duration:g}m"
            )
        return ", ".join(parts)


@dataclass(frozen=True, slots=True)
class ItemDetails:
    name: str
    type: ItemType
    price: int
    description: str = ""
    stats: Optional[ItemStats] = None

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "ItemDetails":
        payload = ItemValidator.validate(data, key=name)
        stats_payload = payload.get("stats")
        return cls(
            name=name,
            type=ItemType.from_value(payload["type"]),
            price=int(payload["price"]),
            description=str(payload.get("description", "")),
            stats=ItemStats.from_mapping(stats_payload, key=name) if stats_payload else None,
        )

    @property
    def slot(self) -> EquipmentSlot | None:
        return EquipmentSlot.for_item_type(self.type)


@dataclass(frozen=True, slots=True)
class EnemyTemplate:
    name: str
    hp: int
    attack: int
    xp: int
    gold: int


@dataclass(frozen=True, slots=True)
class DropEntry:
    item: str
    chance: float


@dataclass(frozen=True, slots=True)
class Dungeon:
    id: int
    name: str
    req_level: int
    enemy: EnemyTemplate
    drops: tuple[DropEntry, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Dungeon":
        label = data.get("name") if isinstance(data, Mapping) else None
        payload = DungeonValidator.validate(data, key=label)
        enemy = EnemyValidator.validate(payload["enemy"], key=payload["name"])
        drops = tuple(
            DropEntry(item=entry["item"], chance=float(entry["chance"]))
            for entry in (
                DropValidator.validate(raw, key=payload["name"])
                for raw in payload.get("drops", ())
            )
        )
        return cls(
            id=int(payload["id"]),
            name=payload["name"],
            req_level=int(payload["req_level"]),
            enemy=EnemyTemplate(
                name=enemy["name"],
                hp=int(enemy["hp"]),
                attack=int(enemy["attack"]),
                xp=int(enemy["xp"]),
                gold=int(enemy["gold"]),
            ),
            drops=drops,
        )


@dataclass(frozen=True, slots=True)
class SeasonReward:
    level: int
    free_item: str
    free_amount: int
    premium_item: str
    premium_amount: int


@dataclass(frozen=True, slots=True)
class SeasonConfig:
    name: str
    max_level: int
    xp_per_level: int
    premium_cost: int
    rewards: tuple[SeasonReward, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SeasonConfig":
        payload = SeasonValidator.validate(data, key="season")
        rewards = []
        for raw in payload.get("rewards", ()):
            label = str(raw.get("level")) if isinstance(raw, Mapping) else None
            entry = SeasonRewardValidator.validate(raw, key=label)
            rewards.append(SeasonReward(**entry))
        rewards.sort(key=lambda reward: reward.level)
        return cls(
            name=payload["name"],
            max_level=int(payload["max_level"]),
            xp_per_level=int(payload["xp_per_level"]),
            premium_cost=int(payload["premium_cost"]),
            rewards=tuple(rewards),
        )

    def reward_for(self, level: int) -> SeasonReward | None:
        for reward in self.rewards:
            if reward.level == level:
                return reward
        return None


@dataclass(frozen=True, slots=True)
class Catalog:
    """Immutable registry of static content, shared by every engine component."""

    items: Mapping[str, ItemDetails]
    dungeons: tuple[Dungeon, ...]
    shop_stock: Mapping[str, int]
    season: SeasonConfig

    def item(self, name: str) -> ItemDetails | None:
        return self.items.get(name)

    def price_of(self, name: str, default: int = 1) -> int:
        details = self.items.get(name)
        return details.price if details is not None else default

    def dungeon(self, dungeon_id: int) -> Dungeon | None:
        for dungeon in self.dungeons:
            if dungeon.id == dungeon_id:
                return dungeon
        return None

    def items_of_type(self, *types: ItemType) -> list[ItemDetails]:
        wanted = set(types)
        return [details for details in self.items.values() if details.type in wanted]

    def default_shop_stock(self) -> dict[str, int]:
        return dict(self.shop_stock)


class ItemStatsValidator(ModelValidator):
    model = ItemStats
    fields = {
        "attack": FieldSpec(is_number, "number", required=False),
        "defense": FieldSpec(is_number, "number", required=False),
        "dodge": FieldSpec(is_number, "number", required=False),
        "crit_chance": FieldSpec(is_number, "number", required=False),
        "hp": FieldSpec(is_non_negative_int, "non-negative integer", required=False),
        "buff_type": FieldSpec(
            lambda value: value in {kind.value for kind in BuffKind},
            "buff kind",
            required=False,
        ),
        "buff_multiplier": FieldSpec(
            lambda value: is_number(value) and value > 1, "multiplier above 1", required=False
        ),
        "buff_duration": FieldSpec(
            lambda value: is_number(value) and value > 0, "positive minutes", required=False
        ),
    }


class ItemValidator(ModelValidator):
    model = ItemDetails
    fields = {
        "type": FieldSpec(
            lambda value: value in {kind.value for kind in ItemType}, "item type"
        ),
        "price": FieldSpec(is_non_negative_int, "non-negative integer"),
        "description": FieldSpec(str, "string", required=False),
        "stats": FieldSpec(MappingSpec(str, Any), "stats table", required=False),
    }


class EnemyValidator(ModelValidator):
    model = EnemyTemplate
    fields = {
        "name": FieldSpec(is_non_empty_str, "non-empty string"),
        "hp": FieldSpec(lambda value: is_non_negative_int(value) and value > 0, "positive integer"),
        "attack": FieldSpec(is_non_negative_int, "non-negative integer"),
        "xp": FieldSpec(is_non_negative_int, "non-negative integer"),
        "gold": FieldSpec(is_non_negative_int, "non-negative integer"),
    }


class DropValidator(ModelValidator):
    model = DropEntry
    fields = {
        "item": FieldSpec(is_non_empty_str, "item name"),
        "chance": FieldSpec(is_percentage, "percentage between 0 and 100"),
    }


class DungeonValidator(ModelValidator):
    model = Dungeon
    fields = {
        "id": FieldSpec(is_non_negative_int, "non-negative integer"),
        "name": FieldSpec(is_non_empty_str, "non-empty string"),
        "req_level": FieldSpec(lambda value: is_non_negative_int(value) and value >= 1, "level"),
        "enemy": FieldSpec(MappingSpec(str, Any, allow_empty=False), "enemy table"),
        "drops": FieldSpec(SequenceSpec(MappingSpec(str, Any)), "list of drops", required=False),
    }


class SeasonRewardValidator(ModelValidator):
    model = SeasonReward
    fields = {
        "level": FieldSpec(lambda value: is_non_negative_int(value) and value >= 1, "level"),
        "free_item": FieldSpec(is_non_empty_str, "item name"),
        "free_amount": FieldSpec(is_non_negative_int, "non-negative integer"),
        "premium_item": FieldSpec(is_non_empty_str, "item name"),
        "premium_amount": FieldSpec(is_non_negative_int, "non-negative integer"),
    }


class SeasonValidator(ModelValidator):
    model = SeasonConfig
    fields = {
        "name": FieldSpec(is_non_empty_str, "non-empty string"),
        "max_level": FieldSpec(lambda value: is_non_negative_int(value) and value >= 1, "level"),
        "xp_per_level": FieldSpec(
            lambda value: is_non_negative_int(value) and value > 0, "positive integer"
        ),
        "premium_cost": FieldSpec(is_non_negative_int, "non-negative integer"),
        "rewards": FieldSpec(
            SequenceSpec(MappingSpec(str, Any)), "list of rewards", required=False
        ),
    }


def _missing_references(names: Iterable[str], items: Mapping[str, ItemDetails]) -> list[str]:
    return sorted({name for name in names if name not in items})


def _cross_check(
    items: Mapping[str, ItemDetails],
    dungeons: Sequence[Dungeon],
    shop_stock: Mapping[str, int],
    season: SeasonConfig,
) -> list[str]:
    errors: list[str] = []
    for name in _missing_references(shop_stock, items):
        errors.append(f"Shop stock references unknown item '{name}'")
    for dungeon in dungeons:
        for name in _missing_references((drop.item for drop in dungeon.drops), items):
            errors.append(f"Dungeon '{dungeon.name}' drops unknown item '{name}'")
    seen_ids: set[int] = set()
    for dungeon in dungeons:
        if dungeon.id in seen_ids:
            errors.append(f"Duplicate dungeon id {dungeon.id}")
        seen_ids.add(dungeon.id)
    reward_names = []
    seen_levels: set[int] = set()
    for reward in season.rewards:
        reward_names.extend((reward.free_item, reward.premium_item))
        if reward.level in seen_levels:
            errors.append(f"Duplicate season reward for level {reward.level}")
        if reward.level > season.max_level:
            errors.append(f"Season reward level {reward.level} exceeds max level")
        seen_levels.add(reward.level)
    for name in _missing_references(reward_names, items):
        errors.append(f"Season reward references unknown item '{name}'")
    for details in items.values():
        if details.type is ItemType.POTION and (
            details.stats is None or not details.stats.grants_buff
        ):
            errors.append(f"Potion '{details.name}' is missing its buff stats")
    return errors


def catalog_from_mapping(payload: Mapping[str, Any]) -> Catalog:
    """Build a validated :class:`Catalog` from a parsed content document."""

    if not isinstance(payload, Mapping):
        raise ModelValidationError(Catalog, ["Catalog document must be a table"])

    raw_items = payload.get("items", {})
    if not isinstance(raw_items, Mapping):
        raise ModelValidationError(Catalog, ["'items' must be a table of item tables"])
    items = {name: ItemDetails.from_mapping(name, data) for name, data in raw_items.items()}

    dungeons = tuple(
        sorted(
            (Dungeon.from_mapping(entry) for entry in payload.get("dungeons", ())),
            key=lambda dungeon: dungeon.id,
        )
    )

    raw_stock = payload.get("shop_stock", {})
    if not isinstance(raw_stock, Mapping) or not all(
        is_non_negative_int(value) for value in raw_stock.values()
    ):
        raise ModelValidationError(Catalog, ["'shop_stock' must map items to quantities"])
    shop_stock = {str(name): int(value) for name, value in raw_stock.items()}

    if "season" not in payload:
        raise ModelValidationError(Catalog, ["Missing required table 'season'"])
    season = SeasonConfig.from_mapping(payload["season"])

    errors = _cross_check(items, dungeons, shop_stock, season)
    if errors:
        raise ModelValidationError(Catalog, errors)

    return Catalog(
        items=MappingProxyType(items),
        dungeons=dungeons,
        shop_stock=MappingProxyType(shop_stock),
        season=season,
    )


def load_catalog(path: Path | str | None = None) -> Catalog:
    """Read and validate the content file, raising on any static-data problem."""

    source = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    with source.open("rb") as handle:
        payload = tomllib.load(handle)
    catalog = catalog_from_mapping(payload)
    log.info(
        "Loaded catalog from %s: %d items, %d dungeons, %d season rewards",
        source,
        len(catalog.items),
        len(catalog.dungeons),
        len(catalog.season.rewards),
    )
    return catalog


__all__ = [
    "BuffKind",
    "Catalog",
    "DEFAULT_CATALOG_PATH",
    "DropEntry",
    "Dungeon",
    "EQUIPMENT_SLOT_ORDER",
    "EnemyTemplate",
    "EquipmentSlot",
    "ItemDetails",
    "ItemStats",
    "ItemType",
    "SeasonConfig",
    "SeasonReward",
    "catalog_from_mapping",
    "load_catalog",
]
