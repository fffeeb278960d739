"""Portable save strings: base64-encoded JSON account records."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Mapping

from .models.players import migrate_player_payload


class SaveDecodeError(ValueError):
    """Raised when a save string cannot be turned back into an account record."""


def export_save(record: Mapping[str, Any]) -> str:
    payload = {"credential": record["credential"], "player": record["player"]}
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(text.encode("utf8")).decode("ascii")


def import_save(
    text: str,
    *,
    default_shop_stock: Mapping[str, int] | None = None,
) -> dict[str, Any]:
    """Decode ``text`` into ``{"credential": str, "player": {...}}``.

    Saves written by the browser build (``password``/``playerData`` keys,
    camelCase fields) are accepted. The player payload comes back migrated.
    """

    cleaned = "".join(str(text).split())
    if not cleaned:
        raise SaveDecodeError("Save string is empty.")
    try:
        raw = base64.b64decode(cleaned, validate=True)
        document = json.loads(raw.decode("utf8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SaveDecodeError("Corrupt save string.") from exc
    if not isinstance(document, Mapping):
        raise SaveDecodeError("Save does not contain an account record.")

    credential = document.get("credential", document.get("password"))
    player = document.get("player", document.get("playerData"))
    if not isinstance(credential, str) or not credential:
        raise SaveDecodeError("Save is missing its credential.")
    if not isinstance(player, Mapping):
        raise SaveDecodeError("Save is missing its player data.")
    return {
        "credential": credential,
        "player": migrate_player_payload(player, default_shop_stock=default_shop_stock),
    }


__all__ = ["SaveDecodeError", "export_save", "import_save"]
