"""Game mechanics: stat aggregation, the tick reducer and hub operations."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .actions import (
    advance_action,
    apply_completion,
    finish_cost,
    force_complete,
    rest_minutes,
    start_action,
    training_minutes,
)
from .buffs import (
    ClockMode,
    expired_buffs,
    legacy_boost_active,
    make_buff,
    prune_buffs,
)
from .constants import (
    CURRENCY_EMOJI_TEXT,
    DIAMOND_EMOJI_TEXT,
    GOLD_PER_DIAMOND,
    INN_GOLD_PER_HP,
    SELL_PRICE_FALLBACK,
)
from .loot import open_chest
from .models.catalog import Catalog, Dungeon, EquipmentSlot, ItemType
from .models.combat import CombatStats
from .models.players import ActionKind, Player, new_player
from .notifications import ActionResult, Notice, NoticeCategory

log = logging.getLogger(__name__)


def effective_stats(player: Player, catalog: Catalog) -> CombatStats:
    """Base attributes plus the modifiers of every equipped item.

    Unknown items and absent stat fields contribute nothing.
    """

    attack = player.attack
    defense = player.defense
    dodge = player.dodge
    crit_chance = player.crit_chance
    for name in player.equipment.equipped_names():
        details = catalog.item(name)
        if details is None or details.stats is None:
            continue
        attack += details.stats.attack
        defense += details.stats.defense
        dodge += details.stats.dodge
        crit_chance += details.stats.crit_chance
    return CombatStats(attack=attack, defense=defense, dodge=dodge, crit_chance=crit_chance)


@dataclass(frozen=True, slots=True)
class TickOutcome:
    player: Player
    notices: tuple[Notice, ...] = ()
    changed: bool = False


def tick(player: Player, now: float, *, mode: ClockMode = ClockMode.ONLINE) -> TickOutcome:
    """Advance buffs and the active action to ``now`` without mutating ``player``.

    Expired buffs are pruned first so the action advances with the buffs that
    are still running at ``now``. When nothing changes the original player is
    returned and ``changed`` is ``False``.
    """

    mode = ClockMode(mode)
    expired = expired_buffs(player.active_buffs, now)
    action = player.active_action
    if not expired and action is None:
        return TickOutcome(player)

    updated = player.copy()
    notices: List[Notice] = []
    changed = False

    pruned = prune_buffs(updated.active_buffs, now)
    if pruned is not updated.active_buffs:
        for buff in expired:
            notices.append(Notice(f"{buff.name} has worn off.", NoticeCategory.INFO))
        updated.active_buffs = pruned
        changed = True

    if updated.active_action is not None:
        advanced = advance_action(
            updated.active_action,
            updated.active_buffs,
            legacy_boost_active=legacy_boost_active(updated.boost_expires, now),
            now=now,
            mode=mode,
        )
        if advanced.complete:
            message = apply_completion(updated, advanced.kind)
            if mode is ClockMode.OFFLINE:
                message = f"While you were away: {message}"
            notices.append(Notice(message, NoticeCategory.SUCCESS))
            updated.active_action = None
            changed = True
        elif advanced is not updated.active_action:
            updated.active_action = advanced
            changed = True

    if not changed:
        return TickOutcome(player)
    return TickOutcome(updated, tuple(notices), True)


def resume_session(player: Player, now: float) -> TickOutcome:
    """Reconcile a whole absence in a single offline step."""

    return tick(player, now, mode=ClockMode.OFFLINE)


def _start(player: Player, kind: ActionKind, minutes: float, now: float, replace: bool) -> ActionResult:
    current = player.active_action
    if current is not None and not replace:
        return ActionResult.fail(
            f"{current.kind.label} is still running. Confirm to replace it."
        )
    player.active_action = start_action(kind, minutes, now)
    return ActionResult.ok(f"{kind.label} started ({minutes:g} min).", NoticeCategory.INFO)


def begin_training(
    player: Player,
    kind: ActionKind | str,
    now: float,
    *,
    replace: bool = False,
) -> ActionResult:
    kind = ActionKind.from_value(kind)
    if kind is ActionKind.RESTING:
        return begin_rest(player, now, replace=replace)
    return _start(player, kind, training_minutes(kind), now, replace)


def begin_rest(player: Player, now: float, *, replace: bool = False) -> ActionResult:
    minutes = rest_minutes(player)
    if minutes <= 0:
        return ActionResult.fail("You are not tired.")
    return _start(player, ActionKind.RESTING, minutes, now, replace)


def cancel_action(player: Player) -> ActionResult:
    if player.active_action is None:
        return ActionResult.fail("Nothing to cancel.")
    label = player.active_action.kind.label
    player.active_action = None
    return ActionResult.ok(f"{label} cancelled.", NoticeCategory.INFO)


def finish_instantly(player: Player) -> ActionResult:
    """Spend diamonds to complete the running action right away."""

    action = player.active_action
    if action is None:
        return ActionResult.fail("No action is running.")
    cost = finish_cost(action)
    if player.diamonds < cost:
        return ActionResult.fail(f"Need {cost} {DIAMOND_EMOJI_TEXT} to finish instantly.")
    player.diamonds -= cost
    finished = force_complete(action)
    message = apply_completion(player, finished.kind)
    player.active_action = None
    return ActionResult.ok(f"Spent {cost} {DIAMOND_EMOJI_TEXT}. {message}")


def buy_item(player: Player, name: str, catalog: Catalog) -> ActionResult:
    details = catalog.item(name)
    if details is None:
        return ActionResult.fail(f"Unknown item: {name}")
    stock = player.shop_stock.get(name, 0)
    if player.gold < details.price:
        return ActionResult.fail("Not enough gold!")
    if stock <= 0:
        return ActionResult.fail("Out of stock!")
    player.gold -= details.price
    player.add_items(name)
    player.shop_stock[name] = stock - 1
    return ActionResult.ok(f"Bought {name} for {details.price} {CURRENCY_EMOJI_TEXT}.")


def sell_item(player: Player, name: str, catalog: Catalog) -> ActionResult:
    if not player.remove_item(name):
        return ActionResult.fail(f"You don't have {name}.")
    price = catalog.price_of(name, SELL_PRICE_FALLBACK) or SELL_PRICE_FALLBACK
    player.gold += price
    return ActionResult.ok(f"Sold {name} for {price} {CURRENCY_EMOJI_TEXT}.", NoticeCategory.INFO)


def equip_item(player: Player, name: str, catalog: Catalog) -> ActionResult:
    details = catalog.item(name)
    if details is None:
        return ActionResult.fail(f"Unknown item: {name}")
    slot = details.slot
    if slot is None:
        return ActionResult.fail(f"{name} cannot be equipped.")
    if not player.remove_item(name):
        return ActionResult.fail(f"You don't have {name}.")
    previous = player.equipment.set(slot, name)
    if previous:
        player.add_items(previous)
    return ActionResult.ok(f"Equipped {name}.")


def unequip_item(player: Player, slot: EquipmentSlot | str) -> ActionResult:
    try:
        slot = EquipmentSlot.from_value(slot)
    except ValueError as exc:
        return ActionResult.fail(str(exc))
    previous = player.equipment.set(slot, None)
    if not previous:
        return ActionResult.fail(f"Nothing is equipped as {slot.value}.")
    player.add_items(previous)
    return ActionResult.ok(f"Unequipped {previous}.", NoticeCategory.INFO)


def drink_potion(player: Player, name: str, catalog: Catalog, now: float) -> ActionResult:
    details = catalog.item(name)
    if details is None or details.type is not ItemType.POTION:
        return ActionResult.fail(f"{name} is not a potion.")
    buff = make_buff(details, now)
    if buff is None:
        return ActionResult.fail(f"{name} has no effect.")
    if not player.remove_item(name):
        return ActionResult.fail(f"You don't have {name}.")
    player.active_buffs.append(buff)
    return ActionResult.ok(f"Drank {name}! Buff applied.")


def eat_item(player: Player, name: str, catalog: Catalog) -> ActionResult:
    details = catalog.item(name)
    if details is None or details.type is not ItemType.CONSUMABLE:
        return ActionResult.fail(f"{name} is not edible.")
    heal = details.stats.hp if details.stats is not None else 0
    if heal <= 0:
        return ActionResult.fail(f"{name} has no effect.")
    if player.current_hp >= player.max_hp:
        return ActionResult.fail("Health is already full.")
    if not player.remove_item(name):
        return ActionResult.fail(f"You don't have {name}.")
    before = player.current_hp
    player.current_hp = min(player.max_hp, player.current_hp + heal)
    return ActionResult.ok(f"Ate {name} and recovered {player.current_hp - before} HP.")


def use_item(
    player: Player,
    name: str,
    catalog: Catalog,
    now: float,
    rng: random.Random | None = None,
) -> ActionResult:
    """Open, drink or eat ``name`` depending on its item type."""

    details = catalog.item(name)
    if details is None:
        return ActionResult.fail(f"Unknown item: {name}")
    if details.type is ItemType.CHEST:
        reward = open_chest(player, name, catalog, rng)
        if reward is None:
            return ActionResult.fail(f"You don't have {name}.")
        return ActionResult.ok(reward.summary(), NoticeCategory.LOOT)
    if details.type is ItemType.POTION:
        return drink_potion(player, name, catalog, now)
    if details.type is ItemType.CONSUMABLE:
        return eat_item(player, name, catalog)
    if details.slot is not None:
        return equip_item(player, name, catalog)
    return ActionResult.fail(f"{name} cannot be used.")


def heal_at_inn(player: Player) -> ActionResult:
    missing = player.max_hp - player.current_hp
    if missing <= 0:
        return ActionResult.fail("Health is already full.")
    cost = missing * INN_GOLD_PER_HP
    if player.gold < cost:
        return ActionResult.fail(f"Healing costs {cost} {CURRENCY_EMOJI_TEXT}. Not enough gold!")
    player.gold -= cost
    player.restore_full_health()
    return ActionResult.ok(f"Fully healed for {cost} {CURRENCY_EMOJI_TEXT}.")


def exchange_gold(player: Player, diamonds: int = 1) -> ActionResult:
    if diamonds < 1:
        return ActionResult.fail("Exchange at least one diamond.")
    cost = diamonds * GOLD_PER_DIAMOND
    if player.gold < cost:
        return ActionResult.fail(f"Need at least {cost} {CURRENCY_EMOJI_TEXT}.")
    player.gold -= cost
    player.diamonds += diamonds
    return ActionResult.ok(
        f"Exchanged {cost} {CURRENCY_EMOJI_TEXT} for {diamonds} {DIAMOND_EMOJI_TEXT}."
    )


def can_enter_dungeon(player: Player, dungeon: Dungeon) -> ActionResult:
    if player.level < dungeon.req_level:
        return ActionResult.fail(f"{dungeon.name} requires level {dungeon.req_level}.")
    if player.current_hp <= 0:
        return ActionResult.fail("You are too wounded to fight. Rest or heal first.")
    return ActionResult.ok(f"Entering {dungeon.name}.", NoticeCategory.INFO)


def rank_players(players: Iterable[Player], limit: int = 10) -> list[Player]:
    ordered = sorted(
        players,
        key=lambda player: (-player.level, -player.current_xp, player.username.lower()),
    )
    return ordered[:limit]


@dataclass(slots=True)
class Session:
    username: str
    channel_id: Optional[int] = None
    in_combat: bool = False


@dataclass
class GameState:
    """In-memory cache of logged-in players keyed by Discord user id."""

    catalog: Catalog
    players: Dict[str, Player] = field(default_factory=dict)
    sessions: Dict[int, Session] = field(default_factory=dict)

    def create_player(self, username: str) -> Player:
        return new_player(username, self.catalog.shop_stock)

    def bind(self, user_id: int, player: Player, *, channel_id: int | None = None) -> Session:
        for other_id, session in list(self.sessions.items()):
            if session.username == player.username and other_id != user_id:
                log.info("Moving session for %s from %s to %s", player.username, other_id, user_id)
                del self.sessions[other_id]
        session = Session(username=player.username, channel_id=channel_id)
        self.sessions[user_id] = session
        self.players[player.username] = player
        return session

    def unbind(self, user_id: int) -> Player | None:
        session = self.sessions.pop(user_id, None)
        if session is None:
            return None
        return self.players.pop(session.username, None)

    def session_for(self, user_id: int) -> Session | None:
        return self.sessions.get(user_id)

    def player_for(self, user_id: int) -> Player | None:
        session = self.sessions.get(user_id)
        if session is None:
            return None
        return self.players.get(session.username)

    def replace_player(self, player: Player) -> None:
        self.players[player.username] = player

    def active_sessions(self) -> list[tuple[int, Session]]:
        return list(self.sessions.items())


__all__ = [
    "GameState",
    "Session",
    "TickOutcome",
    "begin_rest",
    "begin_training",
    "buy_item",
    "can_enter_dungeon",
    "cancel_action",
    "drink_potion",
    "eat_item",
    "effective_stats",
    "equip_item",
    "exchange_gold",
    "finish_instantly",
    "heal_at_inn",
    "rank_players",
    "resume_session",
    "sell_item",
    "tick",
    "unequip_item",
    "use_item",
]
