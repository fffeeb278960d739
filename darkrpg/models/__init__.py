"""Domain models for the Dark RPG engine."""

from __future__ import annotations

from ._validation import ModelValidationError
from .catalog import (
    BuffKind,
    Catalog,
    DropEntry,
    Dungeon,
    EnemyTemplate,
    EquipmentSlot,
    ItemDetails,
    ItemStats,
    ItemType,
    SeasonConfig,
    SeasonReward,
    load_catalog,
)
from .combat import (
    CombatOutcome,
    CombatStats,
    EnemyState,
    LogEntry,
    LogKind,
    SearchState,
    Strike,
    TurnPhase,
)
from .players import (
    ActionKind,
    ActiveAction,
    Buff,
    Equipment,
    Player,
    SeasonStats,
    hunter_rank,
    migrate_player_payload,
    new_player,
)

__all__ = [
    "ActionKind",
    "ActiveAction",
    "Buff",
    "BuffKind",
    "Catalog",
    "CombatOutcome",
    "CombatStats",
    "DropEntry",
    "Dungeon",
    "EnemyState",
    "EnemyTemplate",
    "Equipment",
    "EquipmentSlot",
    "ItemDetails",
    "ItemStats",
    "ItemType",
    "LogEntry",
    "LogKind",
    "ModelValidationError",
    "Player",
    "SearchState",
    "SeasonConfig",
    "SeasonReward",
    "SeasonStats",
    "Strike",
    "TurnPhase",
    "hunter_rank",
    "load_catalog",
    "migrate_player_payload",
    "new_player",
]
