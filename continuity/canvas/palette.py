"""Default marker colors for characters and shot cameras."""

from __future__ import annotations

CHARACTER_COLORS = [
    "#3b82f6", "#ef4444", "#22c55e", "#f59e0b",
    "#8b5cf6", "#ec4899", "#14b8a6", "#f97316",
    "#6366f1", "#06b6d4", "#84cc16", "#e11d48",
]

SHOT_COLORS = [
    "#22c55e", "#3b82f6", "#a855f7", "#fb923c",
    "#ec4899", "#14b8a6", "#f59e0b", "#8b5cf6",
]


def _to_int32(v: int) -> int:
    v &= 0xFFFFFFFF
    return v - 0x100000000 if v >= 0x80000000 else v


def _name_hash(name: str) -> int:
    # Classic "hash * 31 + c" string hash over UTF-16 code units, with the
    # shift done in 32-bit signed arithmetic. Colors stay stable across
    # sessions and match what earlier saves displayed.
    h = 0
    raw = name.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = unit + (_to_int32(_to_int32(h) << 5) - h)
    return h


def character_color(name: str) -> str:
    """Deterministic palette color for a character name."""
    return CHARACTER_COLORS[abs(_name_hash(name)) % len(CHARACTER_COLORS)]


def shot_color(index: int) -> str:
    return SHOT_COLORS[index % len(SHOT_COLORS)]
