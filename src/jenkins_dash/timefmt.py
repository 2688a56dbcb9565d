"""Compact multi-unit rendering of elapsed time, e.g. ``2d:3h:5m``."""

from __future__ import annotations

from typing import Sequence

# (symbol, size relative to the previous unit), smallest unit first.
DEFAULT_UNITS: tuple[tuple[str, int], ...] = (
    ("s", 1),
    ("m", 60),
    ("h", 60),
    ("d", 24),
)

MAX_GROUPS = 3


def split_units(
    seconds: float, units: Sequence[tuple[str, int]] = DEFAULT_UNITS
) -> list[tuple[str, int]]:
    """Break ``seconds`` into per-unit counts, smallest unit first.

    The largest unit absorbs whatever remains, so nothing is lost at the top.
    Negative input (an event in the future) counts as zero.
    """
    value = max(int(seconds), 0)
    counts: list[tuple[str, int]] = []
    for index, (symbol, _) in enumerate(units):
        if index + 1 < len(units):
            size = units[index + 1][1]
            count = value % size
            value = (value - count) // size
        else:
            count = value
        counts.append((symbol, count))
    return counts


def format_elapsed(
    seconds: float, units: Sequence[tuple[str, int]] = DEFAULT_UNITS
) -> str:
    """Format ``seconds`` as the three largest non-zero units joined by ``:``.

    >>> format_elapsed(2 * 86400 + 3 * 3600 + 5 * 60 + 7)
    '2d:3h:5m'
    >>> format_elapsed(0)
    ''
    """
    groups = [
        f"{count}{symbol}"
        for symbol, count in reversed(split_units(seconds, units))
        if count
    ]
    return ":".join(groups[:MAX_GROUPS])


def format_age(timestamp_ms: int | float, now: float) -> str:
    """Age of a Jenkins millisecond timestamp relative to ``now`` (seconds)."""
    return format_elapsed(now - timestamp_ms / 1000)
