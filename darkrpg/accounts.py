"""Account registration, login and save transfer on top of :class:`DataStore`."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Any, Mapping

from .game import TickOutcome, rank_players, resume_session
from .models.catalog import Catalog
from .models.players import Player, new_player
from .savecodec import export_save, import_save
from .storage import DataStore

log = logging.getLogger(__name__)

_HASH_SCHEME = "pbkdf2_sha256"
_HASH_ITERATIONS = 120_000
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_. -]{3,24}$")
_RESERVED_USERNAMES = {"schema_version"}
MIN_PASSWORD_LENGTH = 4


class AccountError(Exception):
    """Raised for user-facing account problems."""


def hash_credential(secret: str, *, salt: str | None = None, iterations: int = _HASH_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", secret.encode("utf8"), salt.encode("utf8"), iterations)
    return f"{_HASH_SCHEME}${iterations}${salt}${digest.hex()}"


def is_hashed(stored: str) -> bool:
    return stored.startswith(f"{_HASH_SCHEME}$")


def verify_credential(secret: str, stored: str) -> bool:
    """Check ``secret`` against a stored credential.

    Plain-text credentials from imported browser saves are compared directly.
    """

    if not is_hashed(stored):
        return hmac.compare_digest(secret.encode("utf8"), stored.encode("utf8"))
    try:
        _, iterations, salt, expected = stored.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    candidate = hash_credential(secret, salt=salt, iterations=rounds)
    return hmac.compare_digest(candidate.rsplit("$", 1)[1], expected)


def _same_owner(saved: str, stored: str) -> bool:
    if hmac.compare_digest(saved.encode("utf8"), stored.encode("utf8")):
        return True
    return not is_hashed(saved) and verify_credential(saved, stored)


def normalize_username(username: str) -> str:
    name = " ".join(str(username).split())
    if not _USERNAME_PATTERN.match(name) or name.lower() in _RESERVED_USERNAMES:
        raise AccountError(
            "Usernames are 3-24 characters: letters, digits, spaces, '.', '_' or '-'."
        )
    return name


@dataclass(slots=True)
class AccountRecord:
    credential: str
    player: Player

    def to_mapping(self) -> dict[str, Any]:
        return {"credential": self.credential, "player": self.player.to_mapping()}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], catalog: Catalog) -> "AccountRecord":
        player = data.get("player", {})
        return cls(
            credential=str(data.get("credential", "")),
            player=Player.from_mapping(player, default_shop_stock=catalog.shop_stock),
        )


class AccountService:
    def __init__(self, store: DataStore, catalog: Catalog) -> None:
        self.store = store
        self.catalog = catalog

    async def register(self, username: str, password: str) -> Player:
        name = normalize_username(username)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AccountError(f"Passwords need at least {MIN_PASSWORD_LENGTH} characters.")
        if await self.store.account_exists(name):
            raise AccountError("That username is already taken.")
        player = new_player(name, self.catalog.shop_stock)
        record = AccountRecord(credential=hash_credential(password), player=player)
        await self.store.put_account(name, record.to_mapping())
        log.info("Registered account %s", name)
        return player

    async def _load(self, username: str) -> AccountRecord | None:
        payload = await self.store.get_account(username)
        if payload is None:
            return None
        return AccountRecord.from_mapping(payload, self.catalog)

    async def login(self, username: str, password: str, now: float) -> TickOutcome:
        """Authenticate and reconcile the time spent offline.

        The reconciled player is written back before it is returned.
        """

        name = normalize_username(username)
        record = await self._load(name)
        if record is None or not verify_credential(password, record.credential):
            raise AccountError("Invalid username or password.")
        outcome = resume_session(record.player, now)
        credential = record.credential
        if not is_hashed(credential):
            credential = hash_credential(password)
        await self.store.put_account(
            name, {"credential": credential, "player": outcome.player.to_mapping()}
        )
        return outcome

    async def save(self, player: Player) -> bool:
        return await self.store.update_player(player.username, player.to_mapping())

    async def export(self, username: str) -> str:
        payload = await self.store.get_account(username)
        if payload is None:
            raise AccountError("No stored account to export.")
        record = AccountRecord.from_mapping(payload, self.catalog)
        return export_save(record.to_mapping())

    async def import_save(self, text: str, now: float) -> TickOutcome:
        """Restore an account from a save string and log into it.

        An existing account is only replaced when the save carries its
        credential, either the stored hash itself or the plain password.
        """

        record = import_save(text, default_shop_stock=self.catalog.shop_stock)
        player = Player.from_mapping(record["player"], default_shop_stock=self.catalog.shop_stock)
        name = normalize_username(player.username)
        player.username = name
        credential = str(record["credential"])
        existing = await self.store.get_account(name)
        stored = str(existing.get("credential", "")) if existing is not None else None
        if stored is not None and not _same_owner(credential, stored):
            raise AccountError("An account with that name already exists.")
        outcome = resume_session(player, now)
        await self.store.put_account(
            name, {"credential": credential, "player": outcome.player.to_mapping()}
        )
        log.info("Imported save for %s", name)
        return outcome

    async def rankings(self, limit: int = 10) -> list[Player]:
        accounts = await self.store.list_accounts()
        players = []
        for username, payload in accounts.items():
            try:
                players.append(AccountRecord.from_mapping(payload, self.catalog).player)
            except (KeyError, TypeError, ValueError):
                log.warning("Skipping unreadable account %s in rankings", username)
        return rank_players(players, limit)


__all__ = [
    "AccountError",
    "AccountRecord",
    "AccountService",
    "hash_credential",
    "normalize_username",
    "verify_credential",
]
