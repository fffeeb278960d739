"""Initial migration for account records."""

from __future__ import annotations


FROM_VERSION = 0
TO_VERSION = 1
DESCRIPTION = "Bootstrap the account directory"


def apply(context) -> None:  # type: ignore[override]
    context.scope_path.mkdir(parents=True, exist_ok=True)
