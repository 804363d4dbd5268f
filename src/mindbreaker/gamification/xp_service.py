"""The single write path for XP: delta, level recompute, level-up detection."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.db.models import LevelCelebration, Notification, Profile, XPLedger
from mindbreaker.errors import NotFound
from mindbreaker.gamification.leveling import get_level_from_xp
from mindbreaker.notifications.service import create_notification, push_notification

logger = structlog.get_logger()


@dataclass
class XPChange:
    """Outcome of one ``adjust_xp`` call."""

    user_id: int
    old_total: int
    new_total: int
    old_level: int
    new_level: int
    notification: Notification | None = None

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


async def lock_profile(db: AsyncSession, user_id: int) -> Profile:
    """Load a profile with a row lock held until the transaction ends.

    Every per-user write (XP, progress, bookmarks, streak) takes this lock
    first, so concurrent requests from one user run one after another.
    """
    result = await db.execute(
        select(Profile)
        .where(Profile.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFound("Profile not found")
    return profile


async def adjust_xp(
    db: AsyncSession,
    user_id: int,
    amount: int,
    source: str,
    source_id: str | None = None,
    description: str | None = None,
) -> XPChange:
    """Apply a signed XP delta to a profile. Does not commit.

    1. Lock the profile row and apply the delta, floored at 0
    2. Recompute ``level`` from ``total_xp`` and write both together
    3. Append an ``xp_ledger`` row with the delta actually applied
    4. If the level went up, record ONE celebration for the highest level
       reached, however many thresholds were crossed
    """
    profile = await lock_profile(db, user_id)
    old_total = profile.total_xp
    old_level = profile.level
    new_total = max(0, old_total + amount)

    profile.total_xp = new_total
    profile.level = get_level_from_xp(new_total)

    db.add(XPLedger(
        user_id=user_id,
        amount=new_total - old_total,
        source=source,
        source_id=source_id,
        description=description,
    ))

    change = XPChange(
        user_id=user_id,
        old_total=old_total,
        new_total=new_total,
        old_level=old_level,
        new_level=profile.level,
    )

    if change.leveled_up:
        db.add(LevelCelebration(user_id=user_id, old_level=old_level, new_level=profile.level))
        change.notification = await create_notification(
            db,
            user_id,
            "gamification",
            "level_up",
            "Level Up!",
            description=f"You reached level {profile.level}",
            action_url="/guild-hall",
            metadata={"old_level": old_level, "new_level": profile.level},
        )
        logger.info("level_up", user_id=user_id, old_level=old_level, new_level=profile.level)

    await db.flush()
    logger.info("xp_adjusted", user_id=user_id, amount=amount, source=source, total_xp=new_total)
    return change


async def publish_xp_change(redis: object | None, change: XPChange) -> None:
    """Broadcast a committed level-up to realtime subscribers."""
    if redis is None or not change.leveled_up:
        return

    if change.notification is not None:
        await push_notification(redis, change.notification)
    try:
        await redis.publish(  # type: ignore[attr-defined]
            "pubsub:level_up",
            json.dumps({
                "user_id": change.user_id,
                "old_level": change.old_level,
                "new_level": change.new_level,
            }),
        )
    except Exception:
        logger.warning("level_up_broadcast_failed", user_id=change.user_id, exc_info=True)


# ---------------------------------------------------------------------------
# Level Celebration CRUD
# ---------------------------------------------------------------------------


async def get_pending_level_celebrations(
    db: AsyncSession,
    user_id: int,
) -> list[dict]:
    """Return level-up celebrations the user hasn't seen yet."""
    result = await db.execute(
        select(LevelCelebration)
        .where(
            LevelCelebration.user_id == user_id,
            LevelCelebration.celebrated.is_(False),
        )
        .order_by(LevelCelebration.created_at.asc(), LevelCelebration.id.asc())
    )
    return [
        {
            "celebration_id": row.id,
            "old_level": row.old_level,
            "new_level": row.new_level,
            "created_at": row.created_at,
        }
        for row in result.scalars().all()
    ]


async def acknowledge_level_celebration(
    db: AsyncSession,
    user_id: int,
    celebration_id: int,
) -> bool:
    """Mark a level celebration as seen. Returns True if updated."""
    result = await db.execute(
        select(LevelCelebration).where(
            LevelCelebration.id == celebration_id,
            LevelCelebration.user_id == user_id,
            LevelCelebration.celebrated.is_(False),
        )
    )
    cel = result.scalar_one_or_none()
    if cel is None:
        return False

    cel.celebrated = True
    cel.celebrated_at = datetime.now(timezone.utc)
    await db.commit()
    return True
