"""Player-centric domain models and the stored payload migration."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from .catalog import BuffKind, EquipmentSlot, EQUIPMENT_SLOT_ORDER

# Bumped whenever a field is added to the stored player payload.
PLAYER_SCHEMA_VERSION = 2

STARTING_INVENTORY: tuple[str, ...] = ("Old Cheese", "Old Cheese")


class ActionKind(str, Enum):
    """Timed actions a player can run from the hub."""

    TRAIN_ATTACK = "train_atk"
    TRAIN_DEFENSE = "train_def"
    TRAIN_DODGE = "train_dodge"
    TRAIN_CRIT = "train_crit"
    RESTING = "resting"

    @classmethod
    def from_value(cls, value: "ActionKind | str") -> "ActionKind":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        aliases = {
            "attack": cls.TRAIN_ATTACK,
            "atk": cls.TRAIN_ATTACK,
            "defense": cls.TRAIN_DEFENSE,
            "def": cls.TRAIN_DEFENSE,
            "dodge": cls.TRAIN_DODGE,
            "crit": cls.TRAIN_CRIT,
            "rest": cls.RESTING,
        }
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown action: {value}") from exc

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]


_ACTION_LABELS = {
    ActionKind.TRAIN_ATTACK: "Attack training",
    ActionKind.TRAIN_DEFENSE: "Defense training",
    ActionKind.TRAIN_DODGE: "Agility training",
    ActionKind.TRAIN_CRIT: "Precision training",
    ActionKind.RESTING: "Resting",
}


@dataclass(slots=True)
class ActiveAction:
    kind: ActionKind
    total_time: float
    remaining_time: float
    last_tick: float

    def __post_init__(self) -> None:
        self.kind = ActionKind.from_value(self.kind)
        self.total_time = float(self.total_time)
        self.remaining_time = min(float(self.remaining_time), self.total_time)
        self.last_tick = float(self.last_tick)

    @property
    def complete(self) -> bool:
        return self.remaining_time <= 0

    @property
    def progress(self) -> float:
        if self.total_time <= 0:
            return 1.0
        done = self.total_time - max(0.0, self.remaining_time)
        return max(0.0, min(1.0, done / self.total_time))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ActiveAction":
        return cls(
            kind=data["kind"],
            total_time=data.get("total_time", 0.0),
            remaining_time=data.get("remaining_time", 0.0),
            last_tick=data.get("last_tick", 0.0),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "total_time": self.total_time,
            "remaining_time": self.remaining_time,
            "last_tick": self.last_tick,
        }


@dataclass(slots=True)
class Buff:
    id: int
    kind: BuffKind
    multiplier: float
    expires_at: float
    name: str

    def __post_init__(self) -> None:
        self.id = int(self.id)
        self.kind = BuffKind.from_value(self.kind)
        self.multiplier = float(self.multiplier)
        self.expires_at = float(self.expires_at)
        self.name = str(self.name)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Buff":
        return cls(
            id=data.get("id", 0),
            kind=data["kind"],
            multiplier=data.get("multiplier", 1.0),
            expires_at=data.get("expires_at", 0.0),
            name=data.get("name", ""),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "multiplier": self.multiplier,
            "expires_at": self.expires_at,
            "name": self.name,
        }


@dataclass(slots=True)
class SeasonStats:
    level: int = 1
    xp: int = 0
    is_premium: bool = False
    claimed_free: List[int] = field(default_factory=list)
    claimed_premium: List[int] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SeasonStats":
        return cls(
            level=int(data.get("level", 1)),
            xp=int(data.get("xp", 0)),
            is_premium=bool(data.get("is_premium", False)),
            claimed_free=[int(level) for level in data.get("claimed_free", ())],
            claimed_premium=[int(level) for level in data.get("claimed_premium", ())],
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "xp": self.xp,
            "is_premium": self.is_premium,
            "claimed_free": list(self.claimed_free),
            "claimed_premium": list(self.claimed_premium),
        }


@dataclass(slots=True)
class Equipment:
    weapon: Optional[str] = None
    armor: Optional[str] = None
    accessory: Optional[str] = None

    def get(self, slot: EquipmentSlot | str) -> Optional[str]:
        return getattr(self, EquipmentSlot.from_value(slot).value)

    def set(self, slot: EquipmentSlot | str, item: Optional[str]) -> Optional[str]:
        """Place ``item`` in ``slot`` and return whatever was there before."""

        key = EquipmentSlot.from_value(slot).value
        previous = getattr(self, key)
        setattr(self, key, item)
        return previous

    def items(self) -> Iterator[tuple[EquipmentSlot, Optional[str]]]:
        for slot in EQUIPMENT_SLOT_ORDER:
            yield slot, getattr(self, slot.value)

    def equipped_names(self) -> list[str]:
        return [name for _, name in self.items() if name]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Equipment":
        return cls(
            weapon=data.get("weapon") or None,
            armor=data.get("armor") or None,
            accessory=data.get("accessory") or None,
        )

    def to_mapping(self) -> dict[str, Any]:
        return {slot.value: name for slot, name in self.items()}


@dataclass(slots=True)
class Player:
    username: str
    level: int = 1
    current_hp: int = 50
    max_hp: int = 50
    current_xp: int = 0
    max_xp: int = 150
    attack: float = 2.0
    defense: float = 2.0
    dodge: float = 0.5
    crit_chance: float = 1.5
    gold: int = 0
    diamonds: int = 0
    inventory: List[str] = field(default_factory=list)
    equipment: Equipment = field(default_factory=Equipment)
    shop_stock: Dict[str, int] = field(default_factory=dict)
    active_action: Optional[ActiveAction] = None
    boost_expires: float = 0.0
    active_buffs: List[Buff] = field(default_factory=list)
    season_stats: SeasonStats = field(default_factory=SeasonStats)
    schema_version: int = PLAYER_SCHEMA_VERSION

    def __post_init__(self) -> None:
        if isinstance(self.equipment, Mapping):
            self.equipment = Equipment.from_mapping(self.equipment)
        if isinstance(self.active_action, Mapping):
            self.active_action = ActiveAction.from_mapping(self.active_action)
        if isinstance(self.season_stats, Mapping):
            self.season_stats = SeasonStats.from_mapping(self.season_stats)
        self.active_buffs = [
            entry if isinstance(entry, Buff) else Buff.from_mapping(entry)
            for entry in self.active_buffs
        ]
        self.inventory = [str(item) for item in self.inventory]
        self.shop_stock = {str(name): int(amount) for name, amount in self.shop_stock.items()}
        self.current_hp = min(int(self.current_hp), int(self.max_hp))

    @property
    def hunter_rank(self) -> str:
        return hunter_rank(self.level)

    def count_item(self, name: str) -> int:
        return sum(1 for entry in self.inventory if entry == name)

    def has_item(self, name: str) -> bool:
        return name in self.inventory

    def add_items(self, name: str, amount: int = 1) -> None:
        self.inventory.extend([name] * max(0, amount))

    def remove_item(self, name: str) -> bool:
        """Remove the first copy of ``name``; returns ``False`` when absent."""

        try:
            self.inventory.remove(name)
        except ValueError:
            return False
        return True

    def inventory_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for name in self.inventory:
            counts[name] = counts.get(name, 0) + 1
        return counts

    def restore_full_health(self) -> None:
        self.current_hp = self.max_hp

    def copy(self) -> "Player":
        return copy.deepcopy(self)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "username": self.username,
            "level": self.level,
            "current_hp": self.current_hp,
            "max_hp": self.max_hp,
            "current_xp": self.current_xp,
            "max_xp": self.max_xp,
            "attack": self.attack,
            "defense": self.defense,
            "dodge": self.dodge,
            "crit_chance": self.crit_chance,
            "gold": self.gold,
            "diamonds": self.diamonds,
            "inventory": list(self.inventory),
            "equipment": self.equipment.to_mapping(),
            "shop_stock": dict(self.shop_stock),
            "active_action": (
                self.active_action.to_mapping() if self.active_action is not None else None
            ),
            "boost_expires": self.boost_expires,
            "active_buffs": [buff.to_mapping() for buff in self.active_buffs],
            "season_stats": self.season_stats.to_mapping(),
        }

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        default_shop_stock: Mapping[str, int] | None = None,
    ) -> "Player":
        payload = migrate_player_payload(data, default_shop_stock=default_shop_stock)
        return cls(
            username=payload["username"],
            level=int(payload["level"]),
            current_hp=int(payload["current_hp"]),
            max_hp=int(payload["max_hp"]),
            current_xp=int(payload["current_xp"]),
            max_xp=int(payload["max_xp"]),
            attack=float(payload["attack"]),
            defense=float(payload["defense"]),
            dodge=float(payload["dodge"]),
            crit_chance=float(payload["crit_chance"]),
            gold=int(payload["gold"]),
            diamonds=int(payload["diamonds"]),
            inventory=list(payload["inventory"]),
            equipment=payload["equipment"],
            shop_stock=dict(payload["shop_stock"]),
            active_action=payload["active_action"],
            boost_expires=float(payload["boost_expires"]),
            active_buffs=list(payload["active_buffs"]),
            season_stats=payload["season_stats"],
            schema_version=int(payload["schema_version"]),
        )


_HUNTER_RANKS: tuple[tuple[int, str], ...] = (
    (50, "S"),
    (30, "A"),
    (20, "B"),
    (10, "C"),
    (5, "D"),
)


def hunter_rank(level: int) -> str:
    for threshold, rank in _HUNTER_RANKS:
        if level >= threshold:
            return rank
    return "E"


def new_player(username: str, shop_stock: Mapping[str, int]) -> Player:
    """Return the registration-time player with a private copy of the shop stock."""

    return Player(
        username=username,
        inventory=list(STARTING_INVENTORY),
        shop_stock=dict(shop_stock),
    )


# Keys written by the browser build of the game; accepted on import.
_LEGACY_KEYS: Mapping[str, str] = {
    "currentHp": "current_hp",
    "maxHp": "max_hp",
    "currentXp": "current_xp",
    "maxXp": "max_xp",
    "critChance": "crit_chance",
    "shopStock": "shop_stock",
    "activeAction": "active_action",
    "boostExpires": "boost_expires",
    "activeBuffs": "active_buffs",
    "seasonStats": "season_stats",
}

_LEGACY_NESTED_KEYS: Mapping[str, str] = {
    "type": "kind",
    "totalTime": "total_time",
    "remainingTime": "remaining_time",
    "lastTick": "last_tick",
    "expiresAt": "expires_at",
    "isPremium": "is_premium",
    "claimedFree": "claimed_free",
    "claimedPremium": "claimed_premium",
}

_MILLISECOND_THRESHOLD = 1e11


def _rename_keys(data: Mapping[str, Any], aliases: Mapping[str, str]) -> dict[str, Any]:
    renamed: dict[str, Any] = {}
    for key, value in data.items():
        target = aliases.get(key, key)
        if target in renamed and key != target:
            continue
        renamed[target] = value
    return renamed


def _seconds(value: Any) -> float:
    # Browser saves stored epoch milliseconds.
    number = float(value or 0)
    if number > _MILLISECOND_THRESHOLD:
        number /= 1000.0
    return number


def _fill_action(value: Any) -> Optional[dict[str, Any]]:
    if not isinstance(value, Mapping):
        return None
    action = _rename_keys(value, _LEGACY_NESTED_KEYS)
    try:
        kind = ActionKind.from_value(action.get("kind", "")).value
    except ValueError:
        return None
    total = float(action.get("total_time", 0) or 0)
    remaining = float(action.get("remaining_time", total) or 0)
    legacy = "totalTime" in value
    if legacy:
        total /= 1000.0
        remaining /= 1000.0
    return {
        "kind": kind,
        "total_time": total,
        "remaining_time": min(remaining, total),
        "last_tick": _seconds(action.get("last_tick", 0)),
    }


def _fill_buffs(value: Any) -> list[dict[str, Any]]:
    buffs: list[dict[str, Any]] = []
    if not isinstance(value, list):
        return buffs
    for entry in value:
        if not isinstance(entry, Mapping):
            continue
        buff = _rename_keys(entry, _LEGACY_NESTED_KEYS)
        try:
            kind = BuffKind.from_value(buff.get("kind", "")).value
        except ValueError:
            continue
        buffs.append(
            {
                "id": int(buff.get("id", 0) or 0),
                "kind": kind,
                "multiplier": float(buff.get("multiplier", 1.0) or 1.0),
                "expires_at": _seconds(buff.get("expires_at", 0)),
                "name": str(buff.get("name", "")),
            }
        )
    return buffs


def _fill_season(value: Any) -> dict[str, Any]:
    season = _rename_keys(value, _LEGACY_NESTED_KEYS) if isinstance(value, Mapping) else {}
    return {
        "level": int(season.get("level", 1) or 1),
        "xp": int(season.get("xp", 0) or 0),
        "is_premium": bool(season.get("is_premium", False)),
        "claimed_free": sorted({int(level) for level in season.get("claimed_free", ()) or ()}),
        "claimed_premium": sorted(
            {int(level) for level in season.get("claimed_premium", ()) or ()}
        ),
    }


def _fill_equipment(value: Any) -> dict[str, Any]:
    equipment = value if isinstance(value, Mapping) else {}
    return {slot.value: equipment.get(slot.value) or None for slot in EQUIPMENT_SLOT_ORDER}


_SCALAR_DEFAULTS: Mapping[str, Callable[[], Any]] = {
    "username": lambda: "Guest",
    "level": lambda: 1,
    "current_hp": lambda: 50,
    "max_hp": lambda: 50,
    "current_xp": lambda: 0,
    "max_xp": lambda: 150,
    "attack": lambda: 2.0,
    "defense": lambda: 2.0,
    "dodge": lambda: 0.5,
    "crit_chance": lambda: 1.5,
    "gold": lambda: 0,
    "diamonds": lambda: 0,
    "boost_expires": lambda: 0.0,
}


# Zero or negative values here are treated as missing.
_POSITIVE_FIELDS = ("max_hp", "max_xp")


def _is_positive(value: Any) -> bool:
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def migrate_player_payload(
    data: Mapping[str, Any],
    *,
    default_shop_stock: Mapping[str, int] | None = None,
) -> dict[str, Any]:
    """Return a fully populated copy of a stored player payload.

    Every field missing from older records (or dropped by the TOML writer
    because it was ``None``) is filled with a deterministic default so the
    engine never sees a partial aggregate. Running the migration on its own
    output returns an equal payload.
    """

    payload = _rename_keys(data, _LEGACY_KEYS)
    migrated: dict[str, Any] = {}
    for key, factory in _SCALAR_DEFAULTS.items():
        value = payload.get(key)
        migrated[key] = factory() if value is None else value
    for key in _POSITIVE_FIELDS:
        if not _is_positive(migrated[key]):
            migrated[key] = _SCALAR_DEFAULTS[key]()
    migrated["boost_expires"] = _seconds(migrated["boost_expires"])

    inventory = payload.get("inventory")
    migrated["inventory"] = [str(item) for item in inventory] if isinstance(inventory, list) else []
    migrated["equipment"] = _fill_equipment(payload.get("equipment"))

    stock = payload.get("shop_stock")
    if isinstance(stock, Mapping):
        migrated["shop_stock"] = {str(name): int(amount) for name, amount in stock.items()}
    else:
        migrated["shop_stock"] = dict(default_shop_stock or {})

    migrated["active_action"] = _fill_action(payload.get("active_action"))
    migrated["active_buffs"] = _fill_buffs(payload.get("active_buffs"))
    migrated["season_stats"] = _fill_season(payload.get("season_stats"))
    migrated["current_hp"] = min(int(migrated["current_hp"]), int(migrated["max_hp"]))
    migrated["schema_version"] = PLAYER_SCHEMA_VERSION
    return migrated


__all__ = [
    "ActionKind",
    "ActiveAction",
    "Buff",
    "Equipment",
    "PLAYER_SCHEMA_VERSION",
    "Player",
    "STARTING_INVENTORY",
    "SeasonStats",
    "hunter_rank",
    "migrate_player_payload",
    "new_player",
]
