from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.bot import DarkRPG
from darkrpg.config import BotConfig
from darkrpg.game import begin_training, tick
from darkrpg.models.players import ActionKind, Player
from darkrpg.notifications import CollectingSink, NoticeCategory, deliver


@pytest.fixture
def bot(data_root: Path) -> DarkRPG:
    return DarkRPG(BotConfig(token="test-token"))


def _logged_in(bot: DarkRPG, user_id: int, name: str):
    player = asyncio.run(bot.accounts.register(name, "hunter2"))
    begin_training(player, ActionKind.TRAIN_ATTACK, 0.0)
    return bot.state.bind(user_id, player), player


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    monkeypatch.setenv("DARKRPG_TICK_SECONDS", "0.01")
    monkeypatch.delenv("DARKRPG_COMBAT_TIMEOUT", raising=False)

    config = BotConfig.from_env()

    assert config.token == "abc"
    assert config.tick_seconds == 0.1
    assert config.combat_timeout == 300.0


def test_config_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)

    with pytest.raises(RuntimeError):
        BotConfig.from_env()


def test_tick_sessions_completes_and_saves(bot: DarkRPG) -> None:
    _, player = _logged_in(bot, 1, "Ticker")

    asyncio.run(bot.tick_sessions(10.0))
    progressed = bot.state.player_for(1)
    assert progressed is not player
    assert progressed.active_action.remaining_time == pytest.approx(287.5)

    asyncio.run(bot.tick_sessions(1_000.0))
    finished = bot.state.player_for(1)
    assert finished.active_action is None
    stored = asyncio.run(bot.store.get_account("Ticker"))
    assert stored["player"]["attack"] == pytest.approx(3.0)


def test_tick_sessions_skips_players_in_combat(bot: DarkRPG) -> None:
    session, player = _logged_in(bot, 2, "Fighter")
    session.in_combat = True

    asyncio.run(bot.tick_sessions(1_000.0))

    assert bot.state.player_for(2) is player
    assert player.active_action is not None


def test_notices_reach_the_sink() -> None:
    player = Player(username="Listener")
    begin_training(player, ActionKind.TRAIN_DODGE, 0.0)
    sink = CollectingSink()

    deliver(sink, tick(player, 1_000.0).notices)

    assert sink.messages == ["Training complete! Dodge +0.1%"]
    assert sink.notices[0].category is NoticeCategory.SUCCESS
