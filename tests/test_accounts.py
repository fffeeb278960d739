from __future__ import annotations

import asyncio
import base64
import json
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.accounts import (
    AccountError,
    AccountService,
    hash_credential,
    normalize_username,
    verify_credential,
)
from darkrpg.admin import main as admin_main
from darkrpg.game import begin_training
from darkrpg.models.players import ActionKind, new_player
from darkrpg.savecodec import SaveDecodeError, export_save, import_save
from darkrpg.storage import DataStore


@pytest.fixture
def service(data_root: Path, catalog) -> AccountService:
    return AccountService(DataStore(data_root), catalog)


def test_credentials_are_hashed_and_verified() -> None:
    stored = hash_credential("hunter2", iterations=1_000)

    assert stored.startswith("pbkdf2_sha256$1000$")
    assert "hunter2" not in stored
    assert verify_credential("hunter2", stored)
    assert not verify_credential("hunter3", stored)
    assert verify_credential("plain", "plain")
    assert not verify_credential("x", "pbkdf2_sha256$broken")


@pytest.mark.parametrize("name", ["ab", "x" * 25, "bad/name", "schema_version"])
def test_invalid_usernames_are_rejected(name: str) -> None:
    with pytest.raises(AccountError):
        normalize_username(name)


def test_username_whitespace_is_collapsed() -> None:
    assert normalize_username("  Dark   Hunter ") == "Dark Hunter"


def test_register_then_login(service: AccountService) -> None:
    player = asyncio.run(service.register("Hunter One", "hunter2"))
    assert player.inventory == ["Old Cheese", "Old Cheese"]

    with pytest.raises(AccountError):
        asyncio.run(service.register("Hunter One", "another"))
    with pytest.raises(AccountError):
        asyncio.run(service.login("Hunter One", "wrong", 0.0))

    outcome = asyncio.run(service.login("Hunter One", "hunter2", 0.0))
    assert outcome.player.username == "Hunter One"

    stored = asyncio.run(service.store.get_account("Hunter One"))
    assert stored["credential"].startswith("pbkdf2_sha256$")


def test_short_password_is_rejected(service: AccountService) -> None:
    with pytest.raises(AccountError):
        asyncio.run(service.register("Shorty", "abc"))


def test_login_reconciles_offline_progress(service: AccountService) -> None:
    player = asyncio.run(service.register("Sleeper", "hunter2"))
    begin_training(player, ActionKind.TRAIN_DEFENSE, 1_000.0)
    assert asyncio.run(service.save(player))

    outcome = asyncio.run(service.login("Sleeper", "hunter2", 1_000.0 + 600.0))

    assert outcome.player.active_action is None
    assert outcome.player.defense == pytest.approx(3.0)
    assert outcome.notices[0].message == "While you were away: Training complete! Defense +1"
    stored = asyncio.run(service.store.get_account("Sleeper"))
    assert stored["player"]["defense"] == pytest.approx(3.0)
    assert "active_action" not in stored["player"]


def test_save_without_account_is_refused(service: AccountService, catalog) -> None:
    assert not asyncio.run(service.save(new_player("Ghost", catalog.shop_stock)))


def test_export_import_round_trip(service: AccountService) -> None:
    player = asyncio.run(service.register("Traveler", "hunter2"))
    player.gold = 777
    asyncio.run(service.save(player))

    text = asyncio.run(service.export("Traveler"))
    asyncio.run(service.store.delete_account("Traveler"))
    outcome = asyncio.run(service.import_save(text, 0.0))

    assert outcome.player.gold == 777
    assert asyncio.run(service.login("Traveler", "hunter2", 0.0)).player.gold == 777


def test_import_browser_save_rehashes_plain_password(service: AccountService) -> None:
    document = {
        "password": "letmein",
        "playerData": {"username": "Browser Hero", "level": 7, "maxHp": 110, "currentHp": 110},
    }
    text = base64.b64encode(json.dumps(document).encode("utf8")).decode("ascii")

    outcome = asyncio.run(service.import_save(text, 0.0))
    assert outcome.player.level == 7
    assert outcome.player.hunter_rank == "D"

    asyncio.run(service.login("Browser Hero", "letmein", 0.0))
    stored = asyncio.run(service.store.get_account("Browser Hero"))
    assert stored["credential"].startswith("pbkdf2_sha256$")


def _save_text(credential: str, username: str, **player) -> str:
    document = {"credential": credential, "player": {"username": username, **player}}
    return base64.b64encode(json.dumps(document).encode("utf8")).decode("ascii")


def test_import_cannot_take_over_existing_account(service: AccountService) -> None:
    asyncio.run(service.register("Alice", "alicepw"))

    with pytest.raises(AccountError):
        asyncio.run(service.import_save(_save_text("evil", "Alice", gold=999_999), 0.0))

    assert asyncio.run(service.login("Alice", "alicepw", 0.0)).player.gold == 0
    with pytest.raises(AccountError):
        asyncio.run(service.login("Alice", "evil", 0.0))


def test_import_over_own_account_with_matching_credential(service: AccountService) -> None:
    player = asyncio.run(service.register("Owner", "ownerpw"))
    player.gold = 50
    asyncio.run(service.save(player))
    exported = asyncio.run(service.export("Owner"))

    restored = asyncio.run(service.import_save(exported, 0.0))
    assert restored.player.gold == 50

    plain = asyncio.run(service.import_save(_save_text("ownerpw", "Owner", gold=75), 0.0))
    assert plain.player.gold == 75
    assert asyncio.run(service.login("Owner", "ownerpw", 0.0)).player.gold == 75


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not base64 at all!",
        base64.b64encode(b"{not json").decode("ascii"),
        base64.b64encode(b"[1, 2]").decode("ascii"),
        base64.b64encode(json.dumps({"player": {}}).encode("utf8")).decode("ascii"),
    ],
)
def test_corrupt_saves_are_rejected(text: str) -> None:
    with pytest.raises(SaveDecodeError):
        import_save(text)


def test_export_save_is_plain_base64_json() -> None:
    text = export_save({"credential": "c", "player": {"username": "P"}})

    assert json.loads(base64.b64decode(text)) == {"credential": "c", "player": {"username": "P"}}


def test_rankings_read_stored_accounts(service: AccountService) -> None:
    low = asyncio.run(service.register("Lowbie", "hunter2"))
    high = asyncio.run(service.register("Highbie", "hunter2"))
    high.level = 12
    asyncio.run(service.save(high))
    assert low.level == 1

    ranked = asyncio.run(service.rankings(5))

    assert [player.username for player in ranked] == ["Highbie", "Lowbie"]
    assert ranked[0].hunter_rank == "C"


def test_admin_cli_lists_accounts(service: AccountService, data_root: Path, capsys) -> None:
    asyncio.run(service.register("Cli User", "hunter2"))

    assert admin_main(["--data-root", str(data_root), "list"]) == 0
    output = capsys.readouterr().out
    assert "Cli User: level 1 [E]" in output

    assert admin_main(["validate-catalog"]) == 0
    assert "Catalog OK" in capsys.readouterr().out
