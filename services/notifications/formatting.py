"""
Plain-text rendering of fills for chat notifications.
"""

from __future__ import annotations

from typing import Iterable

from accounts.events import FillEvent

SIDE_LABELS = {
    "A": "Long",
    "B": "Short",
}


def side_label(side: str) -> str:
    return SIDE_LABELS.get(side, "Unknown")


def format_fill_line(side: str, coin: str, size: str) -> str:
    """Render one fill as ``"{Side} {Coin} {Size}"``."""
    return f"{side_label(side)} {coin} {size}"


def format_fill(fill: FillEvent) -> str:
    return format_fill_line(fill.side, fill.coin, fill.size)


def format_fills(fills: Iterable[FillEvent]) -> str:
    return "\n".join(format_fill(fill) for fill in fills)
