"""Bot configuration utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass


def env(name: str, default: str | None = None) -> str:
    value = os.getenv(name, default)
    if value is None:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


@dataclass(slots=True)
class BotConfig:
    token: str
    tick_seconds: float = 1.0
    auto_combat_tick: float = 1.0
    combat_timeout: float = 300.0
    enemy_turn_delay: float = 0.8

    @classmethod
    def from_env(cls) -> "BotConfig":
        token = env("DISCORD_TOKEN")
        tick_seconds = float(os.getenv("DARKRPG_TICK_SECONDS", "1"))
        auto_combat_tick = float(os.getenv("DARKRPG_AUTO_COMBAT_TICK", "1"))
        combat_timeout = float(os.getenv("DARKRPG_COMBAT_TIMEOUT", "300"))
        enemy_turn_delay = float(os.getenv("DARKRPG_ENEMY_TURN_DELAY", "0.8"))
        return cls(
            token=token,
            tick_seconds=max(0.1, tick_seconds),
            auto_combat_tick=max(0.1, auto_combat_tick),
            combat_timeout=max(10.0, combat_timeout),
            enemy_turn_delay=max(0.0, enemy_turn_delay),
        )


__all__ = ["BotConfig", "env"]
