"""Command line utilities for inspecting and maintaining stored accounts."""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Sequence

from .accounts import AccountError, AccountRecord, AccountService
from .models import ModelValidationError, load_catalog
from .savecodec import SaveDecodeError
from .storage import DataStore
from .utils import format_number


def _service(args: argparse.Namespace) -> AccountService:
    root = Path(args.data_root).expanduser().resolve() if args.data_root else None
    return AccountService(DataStore(root), load_catalog())


def _command_list(args: argparse.Namespace) -> int:
    service = _service(args)
    accounts = asyncio.run(service.store.list_accounts())
    if not accounts:
        print("No accounts stored.")
        return 0
    print(f"Storage root: {service.store.storage_root}\n")
    for username, payload in accounts.items():
        player = AccountRecord.from_mapping(payload, service.catalog).player
        print(
            f"- {username}: level {player.level} [{player.hunter_rank}], "
            f"{format_number(player.gold)} gold, {format_number(player.diamonds)} diamonds"
        )
    return 0


def _command_rankings(args: argparse.Namespace) -> int:
    service = _service(args)
    players = asyncio.run(service.rankings(args.limit))
    for position, player in enumerate(players, start=1):
        print(f"{position:>2}. [{player.hunter_rank}] {player.username} (Lv {player.level})")
    if not players:
        print("No accounts stored.")
    return 0


def _command_export(args: argparse.Namespace) -> int:
    service = _service(args)
    try:
        text = asyncio.run(service.export(args.username))
    except AccountError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf8")
        print(f"Wrote save for {args.username} to {args.output}")
    else:
        print(text)
    return 0


def _command_import(args: argparse.Namespace) -> int:
    service = _service(args)
    text = Path(args.input).read_text(encoding="utf8")
    try:
        outcome = asyncio.run(service.import_save(text, time.time()))
    except (SaveDecodeError, AccountError) as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        return 1
    print(f"Imported {outcome.player.username} (level {outcome.player.level}).")
    return 0


def _command_delete(args: argparse.Namespace) -> int:
    service = _service(args)
    if not args.force:
        response = input(
            f"Delete account {args.username}? This cannot be undone. Type 'yes' to confirm: "
        ).strip()
        if response.lower() != "yes":
            print("Aborted.")
            return 3
    if not asyncio.run(service.store.delete_account(args.username)):
        print(f"No account named {args.username}.", file=sys.stderr)
        return 1
    print(f"Deleted account {args.username}.")
    return 0


def _command_validate(args: argparse.Namespace) -> int:
    try:
        catalog = load_catalog(args.catalog)
    except ModelValidationError as exc:
        print(f"Catalog is invalid: {exc}", file=sys.stderr)
        return 1
    print(
        f"Catalog OK: {len(catalog.items)} items, {len(catalog.dungeons)} dungeons, "
        f"{len(catalog.season.rewards)} season rewards."
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Administrative utilities for Dark RPG accounts.")
    parser.add_argument("--data-root", help="Storage root (default: DARKRPG_DATA_ROOT or the project)")

    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list", help="Show stored accounts")
    list_parser.set_defaults(func=_command_list)

    rank_parser = subparsers.add_parser("rankings", help="Show the hunter leaderboard")
    rank_parser.add_argument("--limit", type=int, default=10)
    rank_parser.set_defaults(func=_command_rankings)

    export_parser = subparsers.add_parser("export-save", help="Print an account's save string")
    export_parser.add_argument("username")
    export_parser.add_argument("--output", help="Write the save string to a file instead")
    export_parser.set_defaults(func=_command_export)

    import_parser = subparsers.add_parser(
        "import-save", help="Overwrite an account from a save string file"
    )
    import_parser.add_argument("input", help="File containing the save string")
    import_parser.set_defaults(func=_command_import)

    delete_parser = subparsers.add_parser("delete-account", help="Remove a stored account")
    delete_parser.add_argument("username")
    delete_parser.add_argument("--force", action="store_true", help="Skip the confirmation prompt")
    delete_parser.set_defaults(func=_command_delete)

    validate_parser = subparsers.add_parser(
        "validate-catalog", aliases=["lint"], help="Load and validate the content file"
    )
    validate_parser.add_argument("--catalog", help="Path to an alternative catalog.toml")
    validate_parser.set_defaults(func=_command_validate)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        return 0
    return args.func(args)


__all__ = ["build_parser", "main"]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
