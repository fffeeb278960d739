"""Timed buff bookkeeping and the speed/experience multipliers derived from it."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Sequence

from .constants import (
    LEGACY_BOOST_SPEED,
    OFFLINE_BASE_SPEED,
    ONLINE_BASE_SPEED,
    SECONDS_PER_MINUTE,
)
from .models.catalog import BuffKind, ItemDetails
from .models.players import Buff


class ClockMode(str, Enum):
    """Whether time is being advanced live or reconciled after an absence."""

    ONLINE = "online"
    OFFLINE = "offline"


def prune_buffs(buffs: List[Buff], now: float) -> List[Buff]:
    """Drop every buff with ``expires_at <= now``.

    When nothing expired the very same list object is returned, so callers can
    compare identity to decide whether a write is needed.
    """

    surviving = [buff for buff in buffs if buff.expires_at > now]
    if len(surviving) == len(buffs):
        return buffs
    return surviving


def expired_buffs(buffs: Iterable[Buff], now: float) -> list[Buff]:
    return [buff for buff in buffs if buff.expires_at <= now]


def legacy_boost_active(boost_expires: float, now: float) -> bool:
    return now < boost_expires


def _product(buffs: Iterable[Buff], kind: BuffKind) -> float:
    multiplier = 1.0
    for buff in buffs:
        if buff.kind is kind:
            multiplier *= buff.multiplier
    return multiplier


def speed_multiplier(
    buffs: Sequence[Buff],
    *,
    legacy_boost_active: bool = False,
    mode: ClockMode = ClockMode.ONLINE,
) -> float:
    if legacy_boost_active:
        base = LEGACY_BOOST_SPEED
    elif ClockMode(mode) is ClockMode.ONLINE:
        base = ONLINE_BASE_SPEED
    else:
        base = OFFLINE_BASE_SPEED
    return base * _product(buffs, BuffKind.SPEED)


def experience_multiplier(buffs: Sequence[Buff]) -> float:
    return _product(buffs, BuffKind.XP)


def make_buff(item: ItemDetails, now: float) -> Buff | None:
    """Build the buff a potion grants, or ``None`` for items without one."""

    stats = item.stats
    if stats is None or not stats.grants_buff:
        return None
    return Buff(
        id=int(now * 1000),
        kind=stats.buff_type,
        multiplier=stats.buff_multiplier,
        expires_at=now + stats.buff_duration * SECONDS_PER_MINUTE,
        name=item.name,
    )


def remaining_seconds(buff: Buff, now: float) -> float:
    return max(0.0, buff.expires_at - now)


__all__ = [
    "ClockMode",
    "experience_multiplier",
    "expired_buffs",
    "legacy_boost_active",
    "make_buff",
    "prune_buffs",
    "remaining_seconds",
    "speed_multiplier",
]
