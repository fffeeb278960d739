"""Formatting helpers shared by embeds and the admin CLI."""

from __future__ import annotations

import math
from typing import Mapping, SupportsInt


def format_number(value: SupportsInt) -> str:
    """Return ``value`` with ``'`` as the thousands separator."""

    integer = int(value)
    sign = "-" if integer < 0 else ""
    formatted = f"{abs(integer):,}".replace(",", "'")
    return f"{sign}{formatted}"


def format_duration(seconds: float) -> str:
    """Render a countdown as ``h:mm:ss`` or ``m:ss``."""

    total = max(0, math.ceil(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def progress_bar(fraction: float, *, width: int = 12) -> str:
    fraction = max(0.0, min(1.0, fraction))
    filled = round(fraction * width)
    return "█" * filled + "░" * (width - filled)


def format_counts(counts: Mapping[str, int]) -> list[str]:
    return [
        f"{name} x{amount}" if amount > 1 else name
        for name, amount in sorted(counts.items())
    ]


__all__ = ["format_counts", "format_duration", "format_number", "progress_bar"]
