from __future__ import annotations

import sys
from pathlib import Path

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.models.players import Player, SeasonStats
from darkrpg.season import (
    SeasonTrack,
    award_season_xp,
    claim_reward,
    claimable_levels,
    purchase_premium,
    skip_level,
)


def test_kill_grants_at_most_one_level(catalog) -> None:
    stats = SeasonStats(level=1, xp=195)

    assert award_season_xp(stats, catalog.season)
    assert (stats.level, stats.xp) == (2, 0)

    assert award_season_xp(stats, catalog.season, amount=1_000)
    assert (stats.level, stats.xp) == (3, 800)

    assert award_season_xp(stats, catalog.season)
    assert stats.level == 4


def test_max_level_keeps_bar_full(catalog) -> None:
    stats = SeasonStats(level=20, xp=190)

    assert not award_season_xp(stats, catalog.season)
    assert stats.xp == 195
    assert not award_season_xp(stats, catalog.season, amount=50)
    assert (stats.level, stats.xp) == (20, 200)


def test_claim_is_exactly_once(catalog) -> None:
    player = Player(username="Claimer")

    first = claim_reward(player, 1, SeasonTrack.FREE, catalog.season)
    second = claim_reward(player, 1, "free", catalog.season)

    assert first.success
    assert not second.success
    assert player.inventory.count("Old Cheese") == 3
    assert player.season_stats.claimed_free == [1]


def test_claim_requires_level_and_pass(catalog) -> None:
    player = Player(username="Claimer")

    assert not claim_reward(player, 2, "free", catalog.season).success
    assert not claim_reward(player, 1, "premium", catalog.season).success
    assert not claim_reward(player, 99, "free", catalog.season).success
    assert player.inventory == []

    player.season_stats.is_premium = True
    assert claim_reward(player, 1, "premium", catalog.season).success
    assert player.inventory.count("Common Chest") == 2
    assert claimable_levels(player.season_stats, catalog.season, "premium") == []
    assert claimable_levels(player.season_stats, catalog.season, "free") == [1]


def test_skip_level_costs_diamonds(catalog) -> None:
    player = Player(username="Whale", diamonds=60)
    player.season_stats.xp = 120

    assert skip_level(player, catalog.season).success
    assert player.diamonds == 10
    assert (player.season_stats.level, player.season_stats.xp) == (2, 0)
    assert not skip_level(player, catalog.season).success
    assert player.season_stats.level == 2


def test_skip_is_blocked_at_max_level(catalog) -> None:
    player = Player(username="Done", diamonds=500)
    player.season_stats.level = catalog.season.max_level

    assert not skip_level(player, catalog.season).success
    assert player.diamonds == 500


def test_premium_purchase(catalog) -> None:
    player = Player(username="Buyer", gold=14_999)

    assert not purchase_premium(player, catalog.season).success
    assert not player.season_stats.is_premium

    player.gold = 15_000
    assert purchase_premium(player, catalog.season).success
    assert player.gold == 0
    assert player.season_stats.is_premium
    assert not purchase_premium(player, catalog.season).success
