"""Fill missing player fields in stored accounts."""

from __future__ import annotations

from darkrpg.models.catalog import load_catalog
from darkrpg.models.players import migrate_player_payload


FROM_VERSION = 1
TO_VERSION = 2
DESCRIPTION = "Default-fill player payloads and stamp their schema version"


def apply(context) -> None:  # type: ignore[override]
    shop_stock = load_catalog().shop_stock
    updated = 0
    for path in context.records():
        if path.name == "schema_version.toml":
            continue
        record = context.read(path)
        if record is None:
            continue
        player = record.get("player", record.get("playerData"))
        if not isinstance(player, dict):
            context.log("skipping %s: no player payload", path.name)
            continue
        credential = record.get("credential", record.get("password", ""))
        migrated = migrate_player_payload(player, default_shop_stock=shop_stock)
        context.write(path, {"credential": str(credential), "player": migrated})
        updated += 1

    if updated:
        context.log("default-filled %d account(s)", updated)
