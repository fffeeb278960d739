"""The timed-action clock: training sessions and resting."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Sequence

from .buffs import ClockMode, speed_multiplier
from .constants import (
    FINISH_MINUTES_PER_DIAMOND,
    REST_HP_PER_MINUTE,
    SECONDS_PER_MINUTE,
    TRAIN_ATTACK_GAIN,
    TRAIN_CRIT_GAIN,
    TRAIN_DEFENSE_GAIN,
    TRAIN_DODGE_GAIN,
    TRAINING_MINUTES,
)
from .models.players import ActionKind, ActiveAction, Buff, Player


def start_action(kind: ActionKind | str, minutes: float, now: float) -> ActiveAction:
    total = float(minutes) * SECONDS_PER_MINUTE
    return ActiveAction(
        kind=ActionKind.from_value(kind),
        total_time=total,
        remaining_time=total,
        last_tick=now,
    )


def advance_action(
    action: ActiveAction,
    buffs: Sequence[Buff],
    *,
    legacy_boost_active: bool,
    now: float,
    mode: ClockMode = ClockMode.ONLINE,
) -> ActiveAction:
    """Return ``action`` moved forward to ``now``.

    Progress is ``elapsed * multiplier`` where the multiplier is computed once
    from ``buffs`` as given. For the offline catch-up that means buffs that
    expired somewhere during the absence no longer count for any of it.
    Calling again with the same ``now`` changes nothing.
    """

    elapsed = max(0.0, now - action.last_tick)
    if elapsed == 0.0:
        return action
    multiplier = speed_multiplier(buffs, legacy_boost_active=legacy_boost_active, mode=mode)
    return replace(
        action,
        remaining_time=action.remaining_time - elapsed * multiplier,
        last_tick=max(action.last_tick, now),
    )


def force_complete(action: ActiveAction) -> ActiveAction:
    return replace(action, remaining_time=0.0)


def training_minutes(kind: ActionKind) -> int:
    return TRAINING_MINUTES[kind]


def rest_minutes(player: Player) -> int:
    missing = max(0, player.max_hp - player.current_hp)
    return math.ceil(missing / REST_HP_PER_MINUTE)


def finish_cost(action: ActiveAction) -> int:
    """Diamonds needed to complete ``action`` immediately."""

    remaining_minutes = math.ceil(max(0.0, action.remaining_time) / SECONDS_PER_MINUTE)
    return max(1, math.ceil(remaining_minutes / FINISH_MINUTES_PER_DIAMOND))


def apply_completion(player: Player, kind: ActionKind) -> str:
    """Apply the reward for a finished action and return its summary line."""

    if kind is ActionKind.TRAIN_ATTACK:
        player.attack += TRAIN_ATTACK_GAIN
        return f"Training complete! Attack +{TRAIN_ATTACK_GAIN}"
    if kind is ActionKind.TRAIN_DEFENSE:
        player.defense += TRAIN_DEFENSE_GAIN
        return f"Training complete! Defense +{TRAIN_DEFENSE_GAIN}"
    if kind is ActionKind.TRAIN_DODGE:
        player.dodge = round(player.dodge + TRAIN_DODGE_GAIN, 2)
        return f"Training complete! Dodge +{TRAIN_DODGE_GAIN}%"
    if kind is ActionKind.TRAIN_CRIT:
        player.crit_chance = round(player.crit_chance + TRAIN_CRIT_GAIN, 2)
        return f"Training complete! Crit +{TRAIN_CRIT_GAIN}%"
    player.restore_full_health()
    return "Rest complete! HP fully restored."


__all__ = [
    "advance_action",
    "apply_completion",
    "finish_cost",
    "force_complete",
    "rest_minutes",
    "start_action",
    "training_minutes",
]
