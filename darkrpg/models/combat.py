"""Combat-facing value types shared by the resolver and the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .catalog import EnemyTemplate


@dataclass(frozen=True, slots=True)
class CombatStats:
    """Effective combat attributes after equipment modifiers."""

    attack: float
    defense: float
    dodge: float
    crit_chance: float

    def display(self) -> dict[str, str]:
        return {
            "ATK": f"{self.attack:g}",
            "DEF": f"{self.defense:g}",
            "Dodge": f"{round(self.dodge, 2):g}%",
            "Crit": f"{round(self.crit_chance, 2):g}%",
        }


@dataclass(slots=True)
class EnemyState:
    name: str
    hp: int
    max_hp: int
    attack: int
    xp: int
    gold: int

    @classmethod
    def from_template(cls, template: EnemyTemplate) -> "EnemyState":
        return cls(
            name=template.name,
            hp=template.hp,
            max_hp=template.hp,
            attack=template.attack,
            xp=template.xp,
            gold=template.gold,
        )

    @property
    def defeated(self) -> bool:
        return self.hp <= 0


class TurnPhase(str, Enum):
    PLAYER = "player"
    ENEMY = "enemy"
    ENDED = "ended"


class CombatOutcome(str, Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"


class SearchState(str, Enum):
    SEARCHING = "searching"
    FIGHTING = "fighting"


class LogKind(str, Enum):
    """Tags for battle log lines, used to pick colours and icons."""

    INFO = "info"
    PLAYER = "player"
    ENEMY = "enemy"
    CRIT = "crit"
    GOLD = "gold"
    LOOT = "loot"


@dataclass(frozen=True, slots=True)
class LogEntry:
    text: str
    kind: LogKind = LogKind.INFO


@dataclass(frozen=True, slots=True)
class Strike:
    damage: int
    critical: bool = False
    missed: bool = False


__all__ = [
    "CombatOutcome",
    "CombatStats",
    "EnemyState",
    "LogEntry",
    "LogKind",
    "SearchState",
    "Strike",
    "TurnPhase",
]
