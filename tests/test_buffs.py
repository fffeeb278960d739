from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.buffs import ClockMode, experience_multiplier, prune_buffs, speed_multiplier
from darkrpg.models.catalog import BuffKind
from darkrpg.models.players import Buff


def _buff(ident: int, kind: BuffKind, multiplier: float, expires_at: float) -> Buff:
    return Buff(id=ident, kind=kind, multiplier=multiplier, expires_at=expires_at, name=f"Buff {ident}")


def test_prune_returns_same_list_when_nothing_expired() -> None:
    buffs = [_buff(1, BuffKind.XP, 1.25, 100.0), _buff(2, BuffKind.SPEED, 1.5, 200.0)]

    assert prune_buffs(buffs, 50.0) is buffs
    assert prune_buffs([], 50.0) == []


def test_prune_drops_buffs_expiring_at_or_before_now() -> None:
    buffs = [
        _buff(1, BuffKind.XP, 1.25, 100.0),
        _buff(2, BuffKind.SPEED, 1.5, 150.0),
        _buff(3, BuffKind.XP, 2.0, 300.0),
    ]

    pruned = prune_buffs(buffs, 150.0)

    assert pruned is not buffs
    assert [buff.id for buff in pruned] == [3]
    assert all(buff.expires_at > 150.0 for buff in pruned)
    assert len(buffs) == 3


def test_pruning_again_later_never_grows_the_list() -> None:
    buffs = [_buff(ident, BuffKind.XP, 1.1, ident * 10.0) for ident in range(1, 6)]

    first = prune_buffs(buffs, 25.0)
    second = prune_buffs(first, 25.0)
    later = prune_buffs(second, 45.0)

    assert second is first
    assert len(later) <= len(second) <= len(buffs)
    assert [buff.id for buff in later] == [5]


def test_experience_multiplier_products() -> None:
    assert experience_multiplier([]) == 1.0

    stacked = [
        _buff(1, BuffKind.XP, 1.25, 100.0),
        _buff(2, BuffKind.XP, 2.0, 100.0),
        _buff(3, BuffKind.SPEED, 3.0, 100.0),
    ]

    assert experience_multiplier(stacked) == pytest.approx(2.5)


@pytest.mark.parametrize(
    ("legacy", "mode", "expected"),
    [
        (False, ClockMode.ONLINE, 1.25 * 1.5),
        (False, ClockMode.OFFLINE, 1.0 * 1.5),
        (True, ClockMode.OFFLINE, 3.0 * 1.5),
    ],
)
def test_speed_multiplier_bases(legacy: bool, mode: ClockMode, expected: float) -> None:
    buffs = [_buff(1, BuffKind.SPEED, 1.5, 100.0), _buff(2, BuffKind.XP, 4.0, 100.0)]

    assert speed_multiplier(buffs, legacy_boost_active=legacy, mode=mode) == pytest.approx(expected)
