"""Season pass progression and reward claiming."""

from __future__ import annotations

from enum import Enum

from .constants import DIAMOND_EMOJI_TEXT, SEASON_SKIP_COST, SEASON_XP_PER_KILL
from .models.catalog import SeasonConfig
from .models.players import Player, SeasonStats
from .notifications import ActionResult, NoticeCategory


class SeasonTrack(str, Enum):
    FREE = "free"
    PREMIUM = "premium"

    @classmethod
    def from_value(cls, value: "SeasonTrack | str") -> "SeasonTrack":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown season track: {value}") from exc


def award_season_xp(
    stats: SeasonStats,
    config: SeasonConfig,
    amount: int = SEASON_XP_PER_KILL,
) -> bool:
    """Add season experience from one victory; returns ``True`` on level-up.

    At most one level is gained per call. At the maximum level the
    experience bar stays full.
    """

    stats.xp += amount
    if stats.level >= config.max_level:
        stats.xp = min(stats.xp, config.xp_per_level)
        return False
    if stats.xp >= config.xp_per_level:
        stats.level += 1
        stats.xp -= config.xp_per_level
        return True
    return False


def _claimed(stats: SeasonStats, track: SeasonTrack) -> list[int]:
    return stats.claimed_free if track is SeasonTrack.FREE else stats.claimed_premium


def is_claimable(stats: SeasonStats, level: int, track: SeasonTrack | str) -> bool:
    track = SeasonTrack.from_value(track)
    if stats.level < level:
        return False
    if track is SeasonTrack.PREMIUM and not stats.is_premium:
        return False
    return level not in _claimed(stats, track)


def claimable_levels(stats: SeasonStats, config: SeasonConfig, track: SeasonTrack | str) -> list[int]:
    return [
        reward.level
        for reward in config.rewards
        if is_claimable(stats, reward.level, track)
    ]


def claim_reward(
    player: Player,
    level: int,
    track: SeasonTrack | str,
    config: SeasonConfig,
) -> ActionResult:
    track = SeasonTrack.from_value(track)
    stats = player.season_stats
    reward = config.reward_for(level)
    if reward is None:
        return ActionResult.fail(f"There is no reward for season level {level}.")
    if stats.level < level:
        return ActionResult.fail(f"Reach season level {level} to claim this reward.")
    if track is SeasonTrack.PREMIUM and not stats.is_premium:
        return ActionResult.fail("The premium track requires the Season Pass.")
    claimed = _claimed(stats, track)
    if level in claimed:
        return ActionResult.fail("Reward already claimed.")

    if track is SeasonTrack.FREE:
        item, amount = reward.free_item, reward.free_amount
    else:
        item, amount = reward.premium_item, reward.premium_amount
    player.add_items(item, amount)
    claimed.append(level)
    return ActionResult.ok(f"Claimed {amount}x {item}!", NoticeCategory.LOOT)


def skip_level(player: Player, config: SeasonConfig) -> ActionResult:
    stats = player.season_stats
    if stats.level >= config.max_level:
        return ActionResult.fail("Season pass is already at the maximum level.")
    if player.diamonds < SEASON_SKIP_COST:
        return ActionResult.fail(f"You need {SEASON_SKIP_COST} {DIAMOND_EMOJI_TEXT} to skip a level.")
    player.diamonds -= SEASON_SKIP_COST
    stats.level += 1
    stats.xp = 0
    return ActionResult.ok(f"Season level skipped! Now level {stats.level}.")


def purchase_premium(player: Player, config: SeasonConfig) -> ActionResult:
    stats = player.season_stats
    if stats.is_premium:
        return ActionResult.fail("You already own the Season Pass.")
    if player.gold < config.premium_cost:
        return ActionResult.fail(f"The Season Pass costs {config.premium_cost} gold.")
    player.gold -= config.premium_cost
    stats.is_premium = True
    return ActionResult.ok("Season Pass unlocked! Premium rewards are now claimable.")


__all__ = [
    "SeasonTrack",
    "award_season_xp",
    "claim_reward",
    "claimable_levels",
    "is_claimable",
    "purchase_premium",
    "skip_level",
]
