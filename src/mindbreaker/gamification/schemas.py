"""Response models for XP, level progress and the leaderboard."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class XPResponse(BaseModel):
    """A profile's XP and where it sits inside its current level.

    Levels are a flat 1000 XP wide, so ``xp_for_level`` is always 1000 and
    ``next_level_xp`` is the total at which the next level starts.
    """

    total_xp: int
    level: int
    xp_into_level: int
    xp_for_level: int
    percent: float
    next_level: int
    next_level_xp: int


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


class LevelUpItem(BaseModel):
    """One unacknowledged level-up; a multi-level jump is a single item."""

    celebration_id: int
    old_level: int
    new_level: int
    created_at: datetime


class PendingLevelUpsResponse(BaseModel):
    celebrations: list[LevelUpItem]


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    level: int
    total_xp: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]


class StreakResponse(BaseModel):
    streak_days: int
    updated: bool
    last_streak_at: datetime | None = None
