"""Daily activity streak.

Days are UTC calendar days. Activity on the day after the last recorded one
extends the streak; activity on the same day changes nothing; any longer gap
(or a clock that went backwards) starts over at 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.gamification.xp_service import lock_profile

logger = structlog.get_logger()


@dataclass
class StreakUpdate:
    streak_days: int
    updated: bool
    last_streak_at: datetime | None


def utc_day(dt: datetime) -> date:
    """Calendar day of ``dt`` in UTC; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        return dt.date()
    return dt.astimezone(timezone.utc).date()


def next_streak(current: int, last_streak_at: datetime | None, now: datetime) -> tuple[int, bool]:
    """Return ``(streak_days, changed)`` for activity at ``now``."""
    if last_streak_at is None:
        return 1, True

    gap = (utc_day(now) - utc_day(last_streak_at)).days
    if gap == 0:
        return max(current, 1), False
    if gap == 1:
        return current + 1, True
    return 1, True


async def record_activity(db: AsyncSession, user_id: int, now: datetime | None = None) -> StreakUpdate:
    """Apply today's activity to the profile's streak. Does not commit."""
    if now is None:
        now = datetime.now(timezone.utc)

    profile = await lock_profile(db, user_id)
    streak, changed = next_streak(profile.streak_days, profile.last_streak_at, now)
    if changed:
        old = profile.streak_days
        profile.streak_days = streak
        profile.last_streak_at = now
        await db.flush()
        logger.info("streak_updated", user_id=user_id, old_streak=old, streak=streak)

    return StreakUpdate(streak_days=streak, updated=changed, last_streak_at=profile.last_streak_at)
