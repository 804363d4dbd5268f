"""XP to level mapping.

One formula drives both the level and the progress bar:

    level            = total_xp // XP_PER_LEVEL + 1
    current_level_xp = total_xp %  XP_PER_LEVEL

so the two can never disagree.
"""

from __future__ import annotations

XP_PER_LEVEL = 1000


def _check_xp(total_xp: int) -> None:
    if total_xp < 0:
        msg = f"total_xp must be non-negative, got {total_xp}"
        raise ValueError(msg)


def get_level_from_xp(total_xp: int) -> int:
    """Level reached with ``total_xp`` accumulated XP (1-based)."""
    _check_xp(total_xp)
    return total_xp // XP_PER_LEVEL + 1


def get_level_start_xp(level: int) -> int:
    """Cumulative XP at which ``level`` begins."""
    return (max(level, 1) - 1) * XP_PER_LEVEL


def get_level_progress(total_xp: int, current_level: int | None = None) -> dict:
    """Progress toward the next level.

    ``current_level`` is accepted for callers that hold a cached level, but the
    level is always re-derived from ``total_xp``; a stale cached value never
    produces a percentage outside [0, 100].
    """
    level = get_level_from_xp(total_xp)
    current_level_xp = total_xp - get_level_start_xp(level)
    percent = min(current_level_xp / XP_PER_LEVEL * 100, 100.0)
    return {
        "current_level_xp": current_level_xp,
        "required_xp": XP_PER_LEVEL,
        "percent": percent,
    }


def compute_level(total_xp: int) -> dict:
    """Full level info for API responses."""
    level = get_level_from_xp(total_xp)
    progress = get_level_progress(total_xp, level)
    return {
        "level": level,
        "xp_into_level": progress["current_level_xp"],
        "xp_for_level": progress["required_xp"],
        "percent": progress["percent"],
        "next_level": level + 1,
        "next_level_xp": get_level_start_xp(level + 1),
    }
